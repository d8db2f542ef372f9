"""Common test support code."""
from __future__ import annotations

import asyncio
import json
import traceback
from contextlib import suppress
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Callable

from textual.app import App
from textual.pilot import Pilot

from snippy.platform import ClipboardError

std_store = {
    'snippets': [
        {
            'idx': 0,
            'name': 'Read a file',
            'tags': ['python', 'io'],
            'code': "with open(path) as f:\n    text = f.read()",
        },
        {
            'idx': 1,
            'name': 'List comprehension',
            'tags': ['python'],
            'code': '[x * 2 for x in values]',
        },
        {
            'idx': 2,
            'name': 'Shell loop',
            'tags': ['bash'],
            'code': 'for f in *.txt; do echo "$f"; done',
        },
    ],
    'free_idxs': [],
}


def populate(f, data: dict | None = None) -> dict:
    """Populate a snippet store file with JSON data."""
    data = std_store if data is None else data
    f.write_text(json.dumps(data, indent=4))
    return data


def typed(text: str) -> list[str]:
    """Convert text into a list of key presses."""
    return list(text)


class TempTestFile:
    """A named temporary file for testing.

    The main difference is that the string representation is the file's current
    contents.
    """

    def __init__(self, *args, **kwargs):
        kwargs['delete'] = False
        f = NamedTemporaryFile(*args, **kwargs)
        self._name = f.name
        f.close()

    @property
    def name(self):
        """Get the name of the temporary file."""
        return self._name

    @property
    def path(self) -> Path:
        """Get the file's Path."""
        return Path(self._name)

    def backup_paths(self) -> list[Path]:
        """Get Path instances for any backup files."""
        paths = []
        for i in range(1, 11):
            bak_path = Path(f'{self._name}.bak{i}')
            if bak_path.exists():
                paths.append(bak_path)
        return sorted(paths)

    def _cleanup(self):
        for bak_path in self.backup_paths():
            with suppress(OSError):
                bak_path.unlink()
        p = Path(self.name)
        if p.exists():
            with suppress(OSError):                          # pragma: no cover
                p.unlink()
        assert not p.exists()

    def close(self):
        """Close the file and delete this file plus any backups."""
        self._cleanup()

    def write_text(self, text):
        """Write given text as the entire file's content."""
        with open(self._name, 'wt', encoding='utf-8') as f:
            f.write(text)

    def delete(self):
        """Delete the file."""
        Path(self.name).unlink()

    def load_json(self):
        """Parse the file's current contents as JSON."""
        return json.loads(str(self))

    def __str__(self):
        with open(self._name, 'rt', encoding='utf-8') as f:
            return f.read()


class MemoryClipboard:
    """An in memory replacement for the system clipboard.

    :fail: When set, every access raises `ClipboardError`.
    """

    def __init__(self, text: str | None = None):
        self.text = text
        self.fail = False

    def put(self, text: str) -> None:
        """Put a text string into the clipboard."""
        if self.fail:
            msg = 'Clipboard unavailable'
            raise ClipboardError(msg)
        self.text = text

    def get(self) -> str | None:
        """Get the clipboard's text."""
        if self.fail:
            msg = 'Clipboard unavailable'
            raise ClipboardError(msg)
        return self.text


class AppRunner:
    """Runs the Snippy application in a controlled manner.

    The app is run headless, under the pytest asyncio loop.

    :actions:
        A list of actions to perform. Each entry is a callable or a string that
        gets interpreted as described for the following examples:

        pause:0.2
            Pause for a short time.
        click:yes
            Perform a left mouse button click on the widget with the ID
            'yes'.
        f1
            Press the F1 key. Any other action is interpreted as a key to be
            pressed.

        Callable actions are invoked with the app as their only argument and
        any return value is ignored.
    """

    def __init__(
            self,
            actions: list[str | Callable],
            *,
            make_app: Callable[[], App],
        ):
        self.app = make_app()
        self.actions = actions
        self.pilot: Pilot | None = None
        self.exited = False

    async def run(self, *, size: tuple[int, int] = (100, 34)) -> list[str]:
        """Run the application, returning any traceback lines."""
        tb: list[str] = []
        try:
            async with self.app.run_test(headless=True, size=size) as pilot:
                self.pilot = pilot
                await pilot.pause()
                for action in self.actions:
                    await self.apply_action(action)
                    if self.app._exit:
                        break
                self.exited = self.app._exit
        # pylint: disable=broad-exception-caught
        except Exception as exc:                                 # noqa: BLE001
            tb = traceback.format_exception(exc)
        return tb

    async def apply_action(self, action):
        """Apply an action."""
        if callable(action):
            action(self.app)
            return

        cmd, colon, arg = action.partition(':')
        if colon and len(action) > 1:
            handler = getattr(self, f'exec_{cmd}')
            await handler(arg)
        else:
            await self.pilot.press(action)
            await self.pilot.pause()

    @staticmethod
    async def exec_pause(arg):
        """Execute a pause action."""
        await asyncio.sleep(float(arg))

    async def exec_click(self, arg):
        """Execute a click action."""
        await self.pilot.click(f'#{arg}')
        await self.pilot.pause()
