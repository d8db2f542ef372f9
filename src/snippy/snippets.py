"""Data structures used to store, find and select code snippets."""
from __future__ import annotations

import json
import shutil
from collections import deque
from contextlib import suppress
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Sequence

DEFAULT_NAME = 'Unnamed Code Snippet'


class NotFound(LookupError):
    """There is no live snippet with the requested idx."""


class StoreFormatError(ValueError):
    """A stored document cannot be turned into a valid SnippetStore."""


@dataclass
class CodeSnippet:
    """A single, named and tagged piece of code.

    The ``idx`` is the snippet's identity for its entire lifetime. It is
    independent of the snippet's position within the store.
    """

    idx: int
    name: str = DEFAULT_NAME
    tags: list[str] = field(default_factory=list)
    code: str = ''

    def clone(self) -> CodeSnippet:
        """Create an independent copy of this snippet."""
        return CodeSnippet(self.idx, self.name, list(self.tags), self.code)

    def to_dict(self) -> dict:
        """Convert to a JSON friendly dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> CodeSnippet:
        """Create from a dictionary, as produced by `to_dict`."""
        try:
            idx = data['idx']
            name = data.get('name', DEFAULT_NAME)
            tags = data.get('tags', [])
            code = data.get('code', '')
        except (AttributeError, KeyError, TypeError) as exc:
            msg = f'Bad snippet entry {data!r}'
            raise StoreFormatError(msg) from exc

        if not isinstance(idx, int) or isinstance(idx, bool) or idx < 0:
            msg = f'Bad snippet idx {idx!r}'
            raise StoreFormatError(msg)
        if not isinstance(name, str) or not isinstance(code, str):
            msg = f'Snippet {idx} has a non-text name or code'
            raise StoreFormatError(msg)
        if (not isinstance(tags, list)
                or not all(isinstance(t, str) for t in tags)):
            msg = f'Snippet {idx} has bad tags {tags!r}'
            raise StoreFormatError(msg)
        return cls(idx, name, list(tags), code)


class SnippetStore:
    """The collection of snippets plus the pool of reusable identifiers.

    The store maintains these invariants.

    1. Every live idx is unique and not in the free pool.
    2. Live and free identifiers together are exactly ``0 .. N-1``.

    The second invariant is what makes issuing ``len(snippets)`` safe when
    the free pool is empty.

    :snippets:
        The live snippets, in insertion order.
    :free_idxs:
        Identifiers freed by deletion, oldest first.
    """

    def __init__(
            self,
            snippets: Iterable[CodeSnippet] = (),
            free_idxs: Iterable[int] = ()):
        self.snippets: list[CodeSnippet] = list(snippets)
        self.free_idxs: deque[int] = deque(free_idxs)

    def __len__(self) -> int:
        return len(self.snippets)

    def __iter__(self) -> Iterator[CodeSnippet]:
        return iter(self.snippets)

    def __eq__(self, other: object):
        if not isinstance(other, SnippetStore):
            return NotImplemented
        return (
            self.snippets == other.snippets
            and list(self.free_idxs) == list(other.free_idxs))

    def __repr__(self):
        idxs = [s.idx for s in self.snippets]
        return f'SnippetStore(idxs={idxs}, free={list(self.free_idxs)})'

    def peek_next_idx(self) -> int:
        """The idx that `assign_next_idx` would return, without using it."""
        if self.free_idxs:
            return self.free_idxs[0]
        return len(self.snippets)

    def assign_next_idx(self) -> int:
        """Issue the idx for a new snippet.

        The oldest freed idx is reused first. This must be called at most once
        for each new snippet.
        """
        if self.free_idxs:
            return self.free_idxs.popleft()
        return len(self.snippets)

    def release_idx(self, idx: int) -> None:
        """Give back an idx that was assigned but never committed.

        The idx goes to the front of the pool, so the store behaves as if it
        had never been issued.
        """
        if idx > len(self.snippets) + len(self.free_idxs):
            return
        if not self.contains(idx) and idx not in self.free_idxs:
            self.free_idxs.appendleft(idx)

    def insert(self, snippet: CodeSnippet) -> None:
        """Append a snippet.

        The caller guarantees the idx came from this store and is not live.
        """
        self.snippets.append(snippet)

    def remove(self, idx: int) -> CodeSnippet:
        """Remove the snippet with a given idx, freeing the idx for reuse.

        :return: The removed snippet.
        :raise NotFound: If no live snippet has the idx.
        """
        snippet = self._pop(idx)
        self.free_idxs.append(idx)
        return snippet

    def replace(self, snippet: CodeSnippet) -> None:
        """Replace the live snippet that has the same idx.

        This is a remove followed by an insert, so the replacement moves to
        the end. The idx never enters the free pool.

        :raise NotFound: If no live snippet has the idx.
        """
        self._pop(snippet.idx)
        self.insert(snippet)

    def contains(self, idx: int) -> bool:
        """Test whether a live snippet has the given idx."""
        return self.find(idx) is not None

    def find(self, idx: int) -> CodeSnippet | None:
        """Find the live snippet with the given idx."""
        for snippet in self.snippets:
            if snippet.idx == idx:
                return snippet
        return None

    def _pop(self, idx: int) -> CodeSnippet:
        for i, snippet in enumerate(self.snippets):
            if snippet.idx == idx:
                return self.snippets.pop(i)
        msg = f'No snippet with idx {idx}'
        raise NotFound(msg)

    def to_dict(self) -> dict:
        """Convert to a JSON friendly dictionary."""
        return {
            'snippets': [s.to_dict() for s in self.snippets],
            'free_idxs': list(self.free_idxs),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SnippetStore:
        """Create a store from a dictionary, checking the invariants.

        :raise StoreFormatError: If the data is malformed or the invariants
            do not hold.
        """
        if not isinstance(data, dict):
            msg = 'Top level is not an object'
            raise StoreFormatError(msg)
        raw_snippets = data.get('snippets', [])
        raw_free = data.get('free_idxs', [])
        if not isinstance(raw_snippets, list) or not isinstance(raw_free, list):
            msg = 'Expected lists for "snippets" and "free_idxs"'
            raise StoreFormatError(msg)

        snippets = [CodeSnippet.from_dict(d) for d in raw_snippets]
        if not all(isinstance(i, int) and not isinstance(i, bool)
                for i in raw_free):
            msg = f'Bad free_idxs {raw_free!r}'
            raise StoreFormatError(msg)

        live = [s.idx for s in snippets]
        everything = live + raw_free
        if len(set(everything)) != len(everything):
            msg = 'Duplicated snippet identifiers'
            raise StoreFormatError(msg)
        if set(everything) != set(range(len(everything))):
            msg = 'Snippet identifiers are not contiguous'
            raise StoreFormatError(msg)
        return cls(snippets, raw_free)

    @classmethod
    def default(cls) -> SnippetStore:
        """Create a store holding the standard example snippets."""
        store = cls()
        for name, tags, code in EXAMPLES:
            store.insert(
                CodeSnippet(store.assign_next_idx(), name, list(tags), code))
        return store


EXAMPLES = (
    (
        'Example Snippet #1',
        ('example',),
        'enum InputMode {\n    Normal,\n    Search,\n    NewSnippet,\n}',
    ),
    (
        'Example Snippet #2',
        ('example', 'bro'),
        'func hello():\n    print(hey bro)',
    ),
    (
        'Example Snippet #3',
        ('example', 'bro'),
        'func hello():\n    print(hey bro)',
    ),
)


def search(
        snippets: Sequence[CodeSnippet], query: str, *, listing: bool = False,
    ) -> list[tuple[int, int]]:
    """Find the snippets that match a query.

    A snippet matches if the query is a case-insensitive substring of its name
    or of any of its tags. Each snippet appears once, at its position in the
    store.

    :snippets: The snippets to search, typically the store.
    :query:    The text to look for.
    :listing:
        If set and the query is empty then every snippet matches. Otherwise an
        empty query matches nothing.
    :return:
        A list of (position_in_store, idx) tuples.
    """
    if not query:
        if listing:
            return [(i, s.idx) for i, s in enumerate(snippets)]
        return []

    pat = query.casefold()
    found: list[tuple[int, int]] = []
    seen: set[int] = set()
    for i, snippet in enumerate(snippets):
        if snippet.idx in seen:
            continue
        texts = [*snippet.tags, snippet.name]
        if any(pat in text.casefold() for text in texts):
            found.append((i, snippet.idx))
            seen.add(snippet.idx)
    return found


def filtered_view(
        snippets: Sequence[CodeSnippet], query: str, *, listing: bool = False,
    ) -> list[CodeSnippet]:
    """Provide the snippets selected by `search`, in the same order."""
    return [snippets[i] for i, _ in search(snippets, query, listing=listing)]


class SelectionList:
    """A cursor over an ordered list of snippets.

    Movement wraps around at both ends. When the items are replaced using
    `set_items`, the cursor follows the selected snippet if it is still
    present. Otherwise the numeric position is kept, limited to the new
    length.
    """

    def __init__(self, items: Iterable[CodeSnippet] = ()):
        self.items: list[CodeSnippet] = list(items)
        self.cursor: int | None = None

    def __len__(self) -> int:
        return len(self.items)

    @property
    def selected(self) -> CodeSnippet | None:
        """The snippet under the cursor, if any."""
        if self.cursor is None:
            return None
        return self.items[self.cursor]

    def next(self) -> None:                                       # noqa: A003
        """Move the cursor down, wrapping to the top."""
        if not self.items:
            return
        if self.cursor is None or self.cursor >= len(self.items) - 1:
            self.cursor = 0
        else:
            self.cursor += 1

    def previous(self) -> None:
        """Move the cursor up, wrapping to the bottom."""
        if not self.items:
            return
        if self.cursor is None:
            self.cursor = 0
        elif self.cursor == 0:
            self.cursor = len(self.items) - 1
        else:
            self.cursor -= 1

    def unselect(self) -> None:
        """Clear the selection."""
        self.cursor = None

    def clear(self) -> None:
        """Empty the list."""
        self.items = []
        self.cursor = None

    def set_items(self, items: Iterable[CodeSnippet]) -> None:
        """Replace the items, re-anchoring the cursor where possible."""
        current = self.selected
        self.items = list(items)
        if self.cursor is None:
            return

        if current is not None:
            for i, snippet in enumerate(self.items):
                if snippet.idx == current.idx:
                    self.cursor = i
                    return
        if not self.items:
            self.cursor = None
        else:
            self.cursor = min(self.cursor, len(self.items) - 1)


class Loader:
    """Encapsulation of snippet store loading and saving."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> tuple[SnippetStore, str]:
        """Load the store from the file.

        A file that cannot be read or understood is replaced by the default
        store.

        :return:
            A tuple of (store, message). The message is empty unless the
            default store had to be used.
        """
        try:
            text = self.path.read_text(encoding='utf8')
        except OSError as exc:
            msg = f'Could not read {self.path}: {exc.strerror}'
            return SnippetStore.default(), msg
        except UnicodeDecodeError as exc:
            msg = f'File {self.path} is not valid UTF-8: {exc}'
            return SnippetStore.default(), msg

        try:
            store = SnippetStore.from_dict(json.loads(text))
        except json.JSONDecodeError as exc:
            msg = f'File {self.path} is not valid JSON: {exc}'
            return SnippetStore.default(), msg
        except StoreFormatError as exc:
            msg = f'File {self.path} is not a valid snippet store: {exc}'
            return SnippetStore.default(), msg
        else:
            return store, ''

    def save(self, store: SnippetStore) -> None:
        """Save the store, keeping numbered backups of earlier versions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            backup_file(self.path)
        text = json.dumps(store.to_dict(), indent=4, ensure_ascii=False)
        self.path.write_text(text + '\n', encoding='utf8')


class DefaultLoader(Loader):
    """A loader used when the store file does not yet exist."""

    def load(self) -> tuple[SnippetStore, str]:
        """Provide the default store."""
        return SnippetStore.default(), ''


def make_loader(path: str | Path) -> Loader:
    """Create the appropriate loader for a path."""
    p = Path(path)
    return Loader(p) if p.exists() else DefaultLoader(p)


def backup_file(path) -> None:
    """Create a new backup of path.

    Up to 10 numbered backups are maintained.
    """
    path = Path(path)
    dirpath = path.parent
    name = path.name
    names = [f'{name}.bak{n}' for n in range(1, 11)]
    old_names = reversed(names[:-1])
    new_names = reversed(names[1:])
    for old_name, new_name in zip(old_names, new_names):
        src_path = dirpath / old_name
        if src_path.exists():
            with suppress(OSError):
                shutil.move(src_path, dirpath / new_name)
    with suppress(OSError):
        shutil.copy(path, dirpath / names[0])
