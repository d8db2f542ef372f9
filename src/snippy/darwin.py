"""MacOS specific code."""
from __future__ import annotations

import subprocess

from .linux import terminal_title

__all__ = ['get_from_clipboard', 'put_to_clipboard', 'terminal_title']


def put_to_clipboard(text: str) -> None:
    """Put a text string into the clipboard."""
    subprocess.run(['pbcopy'], input=text.encode(), check=True)


def get_from_clipboard() -> str | None:
    """Get the text held by the clipboard."""
    res = subprocess.run(['pbpaste'], capture_output=True, check=False)
    if res.returncode != 0:
        return None
    return res.stdout.decode(errors='replace')
