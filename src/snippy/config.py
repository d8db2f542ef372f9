"""Key binding configuration.

The configuration file is JSON, mapping logical action names to single
characters::

    {
        "keys": {
            "KEY_NEW": "n",
            "KEY_FIND": "f",
            "KEY_SAVESNIPPET": "s",
            "KEY_COPY": "c",
            "KEY_DELETE": "x",
            "KEY_EDIT": "e"
        }
    }

All but ``KEY_EDIT`` are required.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

ACTION_NAMES = {
    'new': 'KEY_NEW',
    'find': 'KEY_FIND',
    'save': 'KEY_SAVESNIPPET',
    'copy': 'KEY_COPY',
    'delete': 'KEY_DELETE',
    'edit': 'KEY_EDIT',
}
REQUIRED_ACTIONS = ('new', 'find', 'save', 'copy', 'delete')
# Characters whose ctrl combination already means something while editing.
RESERVED_SAVE_CHARS = frozenset('hijmv[')
DEFAULT_KEYS = {
    'KEY_NEW': 'n',
    'KEY_FIND': 'f',
    'KEY_SAVESNIPPET': 's',
    'KEY_COPY': 'c',
    'KEY_DELETE': 'x',
    'KEY_EDIT': 'e',
}


class ConfigError(Exception):
    """The key binding configuration is unusable."""


def snippy_home() -> Path:
    """The directory used for Snippy's default files.

    The SNIPPY_HOME environment variable overrides the default of
    ``~/.snippy``.
    """
    home = os.getenv('SNIPPY_HOME', '')
    return Path(home) if home else Path.home() / '.snippy'


def default_snippet_path() -> Path:
    """The default location of the snippet store."""
    return snippy_home() / 'snippets.json'


def default_config_path() -> Path:
    """The default location of the key binding configuration."""
    return snippy_home() / 'config.json'


@dataclass
class KeyBindings:
    """The characters that trigger each logical action.

    :keys:
        Mapping from configuration names (``KEY_NEW`` *etc.*) to single
        characters.
    """

    keys: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KEYS))
    names: ClassVar[dict[str, str]] = ACTION_NAMES

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check that the bindings are complete and unambiguous.

        :raise ConfigError: If any required action is unmapped, a binding is
            not a single character, a character is used twice
            or the save character clashes with an editing key.
        """
        for action in REQUIRED_ACTIONS:
            if self.names[action] not in self.keys:
                msg = f'No key is bound for {self.names[action]}'
                raise ConfigError(msg)

        used: dict[str, str] = {}
        for name, char in self.keys.items():
            if name not in self.names.values():
                continue
            if not isinstance(char, str) or len(char) != 1:
                msg = f'{name} must be a single character, not {char!r}'
                raise ConfigError(msg)
            if char in used:
                msg = f'{name} and {used[char]} are both bound to {char!r}'
                raise ConfigError(msg)
            used[char] = name

        save = self.keys[self.names['save']]
        if save.lower() in RESERVED_SAVE_CHARS:
            msg = (
                f'KEY_SAVESNIPPET cannot be {save!r}; ctrl+{save.lower()} is'
                ' already used while editing')
            raise ConfigError(msg)

    def key_for(self, action: str) -> str:
        """Get the character bound to a logical action.

        :return: The character or an empty string for an unbound optional
            action.
        """
        return self.keys.get(self.names[action], '')

    def action_for(self, char: str) -> str:
        """Get the logical action bound to a character, if any."""
        for action, name in self.names.items():
            if self.keys.get(name) == char:
                return action
        return ''

    def to_dict(self) -> dict:
        """Convert to a JSON friendly dictionary."""
        return {'keys': dict(self.keys)}


class ConfigLoader:
    """Loads and saves the key binding configuration."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> tuple[KeyBindings, str]:
        """Load the bindings.

        A missing or unparsable file gives the default bindings. A file that
        parses but describes invalid bindings is an error.

        :return: A tuple of (bindings, message). The message is empty unless
            the default bindings had to be used because of a problem.
        :raise ConfigError: If the bindings are invalid.
        """
        if not self.path.exists():
            return KeyBindings(), ''

        try:
            data = json.loads(self.path.read_text(encoding='utf8'))
        except OSError as exc:
            msg = f'Could not read {self.path}: {exc.strerror}'
            return KeyBindings(), msg
        except UnicodeDecodeError as exc:
            msg = f'File {self.path} is not valid UTF-8: {exc}'
            return KeyBindings(), msg
        except json.JSONDecodeError as exc:
            msg = f'File {self.path} is not valid JSON: {exc}'
            return KeyBindings(), msg

        keys = data.get('keys') if isinstance(data, dict) else None
        if not isinstance(keys, dict):
            msg = f'File {self.path} has no "keys" mapping'
            return KeyBindings(), msg
        try:
            return KeyBindings(dict(keys)), ''
        except ConfigError as exc:
            msg = f'{self.path}: {exc}'
            raise ConfigError(msg) from None

    def save(self, bindings: KeyBindings) -> None:
        """Write the bindings to the configuration file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(bindings.to_dict(), indent=4)
        self.path.write_text(text + '\n', encoding='utf8')
