"""Linux specific code."""
from __future__ import annotations

import contextlib
import os
import shutil
import subprocess
import sys


def _clipboard_command(*, paste: bool) -> list[str]:
    """Choose the command used to access the clipboard.

    Wayland sessions use wl-clipboard when it is installed, otherwise xclip
    is used.
    """
    if os.getenv('WAYLAND_DISPLAY') and shutil.which('wl-copy'):
        return ['wl-paste', '--no-newline'] if paste else ['wl-copy']
    cmd = ['xclip', '-selection', 'clipboard']
    return [*cmd, '-o'] if paste else cmd


def put_to_clipboard(text: str) -> None:
    """Put a text string into the clipboard."""
    subprocess.run(
        _clipboard_command(paste=False), input=text.encode(), check=True,
        stderr=subprocess.DEVNULL)


def get_from_clipboard() -> str | None:
    """Get the text held by the clipboard.

    :return: The text or ``None`` if the clipboard does not hold any.
    """
    res = subprocess.run(
        _clipboard_command(paste=True), capture_output=True, check=False)
    if res.returncode != 0:
        return None
    return res.stdout.decode(errors='replace')


@contextlib.contextmanager
def terminal_title(title: str):
    """Temporarily set the text terminal's title."""
    print('\x1b[22;0t', end='')
    print(f'\x1b]0;{title}\x07', end='')
    sys.stdout.flush()
    yield None
    print('\x1b[23;0t', end='')
    sys.stdout.flush()
