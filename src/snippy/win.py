"""Windows specific code.

Clipboard access uses the Win32 API through ctypes, in the manner of
pyperclip (https://pypi.org/project/pyperclip), limited to unicode text.
"""
from __future__ import annotations

import contextlib
import ctypes
import time
from ctypes import c_size_t, c_wchar, c_wchar_p, sizeof
from ctypes.wintypes import BOOL, HANDLE, HGLOBAL, HWND, LPVOID, UINT

from .platform import ClipboardError

CF_UNICODETEXT = 13
GMEM_MOVEABLE = 0x0002
OPEN_TIMEOUT = 0.5

user32 = ctypes.WinDLL('user32', use_last_error=True)    # type: ignore[attr-defined]
kernel32 = ctypes.WinDLL('kernel32', use_last_error=True)  # type: ignore[attr-defined]


def _api(func, argtypes, restype):
    """Declare a Win32 function whose falsy result indicates failure."""
    func.argtypes = argtypes
    func.restype = restype

    def call(*args):
        ret = func(*args)
        if not ret and ctypes.get_last_error():
            msg = f'{func.__name__} failed (error {ctypes.get_last_error()})'
            raise ClipboardError(msg)
        return ret

    return call


user32.OpenClipboard.argtypes = [HWND]
user32.OpenClipboard.restype = BOOL
close_clipboard = _api(user32.CloseClipboard, [], BOOL)
empty_clipboard = _api(user32.EmptyClipboard, [], BOOL)
get_clipboard_data = _api(user32.GetClipboardData, [UINT], HANDLE)
set_clipboard_data = _api(user32.SetClipboardData, [UINT, HANDLE], HANDLE)
global_alloc = _api(kernel32.GlobalAlloc, [UINT, c_size_t], HGLOBAL)
global_lock = _api(kernel32.GlobalLock, [HGLOBAL], LPVOID)
global_unlock = _api(kernel32.GlobalUnlock, [HGLOBAL], BOOL)


@contextlib.contextmanager
def open_for_access():
    """Hold the clipboard open for the duration of the context.

    Other programs can briefly own the clipboard, so opening is retried until
    a short timeout expires.
    """
    deadline = time.monotonic() + OPEN_TIMEOUT
    while not user32.OpenClipboard(None):
        if time.monotonic() > deadline:
            msg = 'The clipboard is in use by another program'
            raise ClipboardError(msg)
        time.sleep(0.01)
    try:
        yield
    finally:
        close_clipboard()


def put_to_clipboard(text: str) -> None:
    """Put a text string into the clipboard."""
    if not text:
        return

    nbytes = (len(text) + 1) * sizeof(c_wchar)
    with open_for_access():
        empty_clipboard()
        handle = global_alloc(GMEM_MOVEABLE, nbytes)
        buf = global_lock(handle)
        try:
            ctypes.memmove(buf, c_wchar_p(text), nbytes)
        finally:
            global_unlock(handle)
        set_clipboard_data(CF_UNICODETEXT, handle)


def get_from_clipboard() -> str | None:
    """Get the unicode text held by the clipboard, if any."""
    with open_for_access():
        handle = get_clipboard_data(CF_UNICODETEXT)
        if not handle:
            return None
        buf = global_lock(handle)
        try:
            return c_wchar_p(buf).value
        finally:
            global_unlock(handle)


@contextlib.contextmanager
def terminal_title(_title: str):
    """Temporarily set the text terminal's title.

    This currently does nothing on Windows.
    """
    yield None
