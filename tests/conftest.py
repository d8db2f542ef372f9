"""Test configuration."""
from __future__ import annotations

from fixtures import (
    clipboard, config_file, simple_run, snippet_infile, snippy_home)

__all__ = (
    'clipboard',
    'config_file',
    'simple_run',
    'snippet_infile',
    'snippy_home',
)
pytest_plugins = ('asyncio',)
