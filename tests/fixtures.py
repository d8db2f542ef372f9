"""Common test fixtures."""
from __future__ import annotations

from contextlib import suppress

import pytest

from support import AppRunner, MemoryClipboard, TempTestFile

from snippy import core


def temp_file(suffix: str, mode: str) -> TempTestFile:
    """Provide a temporary file during test execution.

    :suffix:
        Text appended to the end of the file name. Typically just the extension
        (for example '.json').
    :mode:
        The file's mode.
    """
    f = TempTestFile(suffix=suffix, mode=mode)
    yield f
    with suppress(FileNotFoundError):
        f.close()


@pytest.fixture(autouse=True)
def snippy_home(tmp_path, monkeypatch):
    """Keep the default files of every test inside a temporary directory."""
    home = tmp_path / 'snippy-home'
    monkeypatch.setenv('SNIPPY_HOME', str(home))
    return home


@pytest.fixture
def snippet_infile() -> TempTestFile:
    """Provide a temporary snippet store file during test execution."""
    yield from temp_file('snippets.json', 'w+t')


@pytest.fixture
def config_file() -> TempTestFile:
    """Provide a temporary key binding configuration file."""
    yield from temp_file('config.json', 'w+t')


@pytest.fixture
def clipboard() -> MemoryClipboard:
    """Provide an in memory clipboard."""
    return MemoryClipboard()


@pytest.fixture
def simple_run(snippy_home, clipboard):
    """Provide a way to run the Snippy app.

    :return:
        An async function that runs the app and returns the AppRunner.
    """
    async def run_app(
            path, actions: list, *, options: list[str] | None = None):
        args = [str(path), *(options or [])]
        if '--config' not in args:
            args.extend(['--config', str(snippy_home / 'config.json')])
        runner = AppRunner(
            actions,
            make_app=lambda: core.Snippy(
                core.parse_args(args), clipboard=clipboard))
        tb = await runner.run()
        if tb:                                               # pragma: no cover
            print(''.join(tb))
        assert not tb
        return runner

    return run_app
