"""Code that handles platform specific behaviour."""
from __future__ import annotations

import subprocess
import sys

from textual import log

__all__ = [
    'CLIPBOARD_ERRORS',
    'ClipboardError',
    'SystemClipboard',
    'get_from_clipboard',
    'put_to_clipboard',
    'terminal_title',
]


class ClipboardError(Exception):
    """Inidication that clipboard access failed."""


# The failures that clipboard access may raise on any platform.
CLIPBOARD_ERRORS = (ClipboardError, OSError, subprocess.SubprocessError)

if sys.platform == 'win32':                                  # pragma: no cover
    from .win import get_from_clipboard, put_to_clipboard, terminal_title
elif sys.platform == 'darwin':                               # pragma: no cover
    from .darwin import get_from_clipboard, put_to_clipboard, terminal_title
else:
    from .linux import get_from_clipboard, put_to_clipboard, terminal_title


class SystemClipboard:
    """The operating system's clipboard.

    Failures are logged and then passed on, leaving the caller to decide
    whether they matter.
    """

    def put(self, text: str) -> None:
        """Put a text string into the clipboard."""
        try:
            put_to_clipboard(text)
        except CLIPBOARD_ERRORS as exc:
            log.warning(f'Could not write to the clipboard: {exc}')
            raise

    def get(self) -> str | None:
        """Get the clipboard's text, if it holds any."""
        try:
            return get_from_clipboard()
        except CLIPBOARD_ERRORS as exc:
            log.warning(f'Could not read the clipboard: {exc}')
            raise
