"""The modal input controller.

Snippy is always in exactly one input mode. Each key press is first turned
into an abstract `Event` (see `core.KeyHandler`) and then handed, together
with a `Context`, to `InputModeMachine.handle`. That performs any changes to
the store and selection and returns a `Transition`, giving the new mode plus
the set of side `Effect` values that the application must act upon.

The modes are:

Normal
    Listing all snippets. Single key commands create, find, copy, delete and
    edit snippets.
Search
    Typing builds a query, which filters the list on every key press.
NewSnippet
    Creating or editing a snippet. The stage selects which field receives
    typed text: name, tags or code.
ConfirmDelete
    Waiting for a yes/no answer before deleting a snippet.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, TypeAlias, Union

from textual import log

from .platform import CLIPBOARD_ERRORS
from .snippets import (
    DEFAULT_NAME, CodeSnippet, SelectionList, SnippetStore, filtered_view)

INDENT = '    '


class Stage(Enum):
    """The field being typed into while in NewSnippet mode."""

    TYPE_NAME = 'name'
    TYPE_TAGS = 'tags'
    TYPE_CODE = 'code'


class Action(Enum):
    """The abstract actions that drive the mode machine."""

    NEW = 'new'
    FIND = 'find'
    COPY = 'copy'
    DELETE = 'delete'
    EDIT = 'edit'
    CURSOR_UP = 'cursor_up'
    CURSOR_DOWN = 'cursor_down'
    CURSOR_CLEAR = 'cursor_clear'
    QUIT = 'quit'
    CHAR = 'char'
    BACKSPACE = 'backspace'
    CONFIRM = 'confirm'
    SAVE = 'save'
    PASTE = 'paste'
    TAB = 'tab'
    BACK_TAB = 'back_tab'
    CANCEL = 'cancel'
    YES = 'yes'
    NO = 'no'


class Effect(Enum):
    """Side effects of a transition that the caller must handle."""

    COMMIT_SNIPPET = 'commit_snippet'
    DELETE_SNIPPET = 'delete_snippet'
    COPY_TO_CLIPBOARD = 'copy_to_clipboard'
    CLEAR_BUFFER = 'clear_buffer'
    REQUEST_DELETE = 'request_delete'
    QUIT = 'quit'


@dataclass(frozen=True)
class Event:
    """An abstract input event.

    :action: The logical action.
    :char:   The typed character, only used for `Action.CHAR`.
    """

    action: Action
    char: str = ''


@dataclass
class EditSession:
    """The draft snippet plus the tag editing buffer.

    :draft:   The snippet being created or edited.
    :scratch: The tags text, split into ``draft.tags`` when committed.
    :is_new:  True when creating rather than editing a snippet.
    """

    draft: CodeSnippet
    scratch: str = ''
    is_new: bool = True

    def text(self, stage: Stage) -> str:
        """The text of the field that a given stage edits."""
        match stage:
            case Stage.TYPE_NAME:
                return self.draft.name
            case Stage.TYPE_TAGS:
                return self.scratch
            case Stage.TYPE_CODE:
                return self.draft.code

    def set_text(self, stage: Stage, text: str) -> None:
        """Set the text of the field that a given stage edits."""
        match stage:
            case Stage.TYPE_NAME:
                self.draft.name = text
            case Stage.TYPE_TAGS:
                self.scratch = text
            case Stage.TYPE_CODE:
                self.draft.code = text

    def apply_tags(self) -> None:
        """Rebuild the draft's tags from the scratch buffer.

        Runs of whitespace are treated as a single separator, so no tag is
        ever empty.
        """
        self.draft.tags = self.scratch.split()


@dataclass(frozen=True)
class Normal:
    """Listing all snippets."""


@dataclass(frozen=True)
class Search:
    """Filtering the snippets using a query."""

    query: str = ''


@dataclass(frozen=True)
class NewSnippet:
    """Creating or editing a snippet."""

    stage: Stage
    session: EditSession = field(compare=False)


@dataclass(frozen=True)
class ConfirmDelete:
    """Waiting for the user to confirm deletion of a snippet."""

    target_idx: int


InputMode: TypeAlias = Union[Normal, Search, NewSnippet, ConfirmDelete]


class Clipboard(Protocol):
    """What the mode machine needs from a clipboard."""

    def put(self, text: str) -> None:
        """Put a text string into the clipboard."""

    def get(self) -> str | None:
        """Get the clipboard's text, if it holds any."""


@dataclass
class Context:
    """All the state that the mode machine reads and updates.

    :store:     The snippet store.
    :clipboard: Used for copy and paste.
    :mode:      The current input mode.
    :selection: The filtered view plus its cursor.
    """

    store: SnippetStore
    clipboard: Clipboard
    mode: InputMode = field(default_factory=Search)
    selection: SelectionList = field(default_factory=SelectionList)

    def refresh_view(self) -> None:
        """Recompute the filtered view for the current mode.

        Normal mode lists every snippet and Search mode filters using its
        query. Other modes leave the view alone.
        """
        match self.mode:
            case Normal():
                self.selection.set_items(
                    filtered_view(self.store.snippets, '', listing=True))
            case Search(query=query):
                self.selection.set_items(
                    filtered_view(self.store.snippets, query))


@dataclass
class Transition:
    """The result of handling an event."""

    mode: InputMode
    effects: set[Effect] = field(default_factory=set)

    @property
    def store_changed(self) -> bool:
        """True if the snippet store was modified."""
        return bool(
            self.effects & {Effect.COMMIT_SNIPPET, Effect.DELETE_SNIPPET})

    @property
    def quit(self) -> bool:                                       # noqa: A003
        """True if the application should exit."""
        return Effect.QUIT in self.effects


class InputModeMachine:
    """The controller that moves between input modes."""

    def handle(self, ctx: Context, event: Event) -> Transition:
        """Handle a single event.

        The context is updated in place, including its mode, and the filtered
        view is recomputed for the new mode.
        """
        match ctx.mode:
            case Normal():
                mode, effects = self.handle_normal(ctx, event)
            case Search() as search:
                mode, effects = self.handle_search(ctx, search, event)
            case NewSnippet() as new:
                mode, effects = self.handle_new_snippet(ctx, new, event)
            case ConfirmDelete() as confirm:
                mode, effects = self.handle_confirm_delete(
                    ctx, confirm, event)
            case _:                                          # pragma: no cover
                msg = f'Unknown mode {ctx.mode!r}'
                raise TypeError(msg)

        ctx.mode = mode
        ctx.refresh_view()
        return Transition(mode, effects)

    def handle_normal(
            self, ctx: Context, event: Event,
        ) -> tuple[InputMode, set[Effect]]:
        """Handle an event while listing snippets."""
        selection = ctx.selection
        match event.action:
            case Action.NEW:
                idx = ctx.store.assign_next_idx()
                session = EditSession(CodeSnippet(idx, name=''))
                return (
                    NewSnippet(Stage.TYPE_NAME, session),
                    {Effect.CLEAR_BUFFER})

            case Action.FIND:
                selection.clear()
                return Search(), set()

            case Action.COPY:
                snippet = selection.selected
                if snippet is not None and self._copy(ctx, snippet.code):
                    return Normal(), {Effect.COPY_TO_CLIPBOARD}

            case Action.DELETE:
                snippet = selection.selected
                if snippet is not None and len(ctx.store) > 0:
                    return (
                        ConfirmDelete(snippet.idx), {Effect.REQUEST_DELETE})

            case Action.EDIT | Action.CONFIRM:
                snippet = selection.selected
                if snippet is not None and ctx.store.contains(snippet.idx):
                    session = EditSession(
                        snippet.clone(), ' '.join(snippet.tags), is_new=False)
                    return NewSnippet(Stage.TYPE_NAME, session), set()

            case Action.QUIT:
                return Normal(), {Effect.QUIT}

            case _:
                self.move_cursor(selection, event.action)

        return Normal(), set()

    def handle_search(
            self, ctx: Context, mode: Search, event: Event,
        ) -> tuple[InputMode, set[Effect]]:
        """Handle an event while typing a search query.

        The quit action returns to Normal mode; a second quit then exits.
        """
        match event.action:
            case Action.CHAR:
                return Search(mode.query + event.char), set()
            case Action.BACKSPACE:
                return Search(mode.query[:-1]), set()
            case Action.CONFIRM:
                return Normal(), set()
            case Action.QUIT | Action.CANCEL:
                return Normal(), set()
            case _:
                self.move_cursor(ctx.selection, event.action)
        return mode, set()

    def handle_new_snippet(
            self, ctx: Context, mode: NewSnippet, event: Event,
        ) -> tuple[InputMode, set[Effect]]:
        """Handle an event while creating or editing a snippet."""
        session, stage = mode.session, mode.stage
        text = session.text(stage)
        match event.action:
            case Action.CHAR:
                session.set_text(stage, text + event.char)

            case Action.BACKSPACE:
                session.set_text(stage, text[:-1])

            case Action.CONFIRM:
                match stage:
                    case Stage.TYPE_NAME:
                        return NewSnippet(Stage.TYPE_TAGS, session), set()
                    case Stage.TYPE_TAGS:
                        session.apply_tags()
                        return NewSnippet(Stage.TYPE_CODE, session), set()
                    case Stage.TYPE_CODE:
                        session.set_text(stage, text + '\n')

            case Action.SAVE:
                return Normal(), self.commit(ctx, stage, session)

            case Action.PASTE:
                pasted = self._paste(ctx)
                if pasted:
                    session.set_text(stage, text + pasted)

            case Action.TAB:
                session.set_text(stage, text + INDENT)

            case Action.BACK_TAB:
                session.set_text(stage, dedent_last_line(text))

            case Action.CANCEL:
                if session.is_new:
                    ctx.store.release_idx(session.draft.idx)
                return Normal(), {Effect.CLEAR_BUFFER}

        return mode, set()

    def handle_confirm_delete(
            self, ctx: Context, mode: ConfirmDelete, event: Event,
        ) -> tuple[InputMode, set[Effect]]:
        """Handle an event while waiting for deletion to be confirmed.

        Cancelling is the same as answering no. Anything else is ignored.
        """
        match event.action:
            case Action.YES:
                effects = set()
                if ctx.store.contains(mode.target_idx):
                    ctx.store.remove(mode.target_idx)
                    effects.add(Effect.DELETE_SNIPPET)
                else:
                    log.warning(f'Snippet {mode.target_idx} already gone')
                ctx.selection.unselect()
                return Normal(), effects
            case Action.NO | Action.CANCEL:
                return Normal(), set()
        return mode, set()

    def commit(
            self, ctx: Context, stage: Stage, session: EditSession,
        ) -> set[Effect]:
        """Store the draft snippet, ending the edit session."""
        if stage in (Stage.TYPE_TAGS, Stage.TYPE_CODE):
            session.apply_tags()
        draft = session.draft
        if not draft.name.strip():
            draft.name = DEFAULT_NAME

        store = ctx.store
        if store.contains(draft.idx):
            store.replace(draft)
        elif session.is_new:
            store.insert(draft)
        else:
            log.warning(f'Snippet {draft.idx} vanished while being edited')
            return {Effect.CLEAR_BUFFER}
        return {Effect.COMMIT_SNIPPET, Effect.CLEAR_BUFFER}

    @staticmethod
    def move_cursor(selection: SelectionList, action: Action) -> None:
        """Apply a cursor movement action, ignoring any other action."""
        match action:
            case Action.CURSOR_UP:
                selection.previous()
            case Action.CURSOR_DOWN:
                selection.next()
            case Action.CURSOR_CLEAR:
                selection.unselect()

    @staticmethod
    def _copy(ctx: Context, text: str) -> bool:
        try:
            ctx.clipboard.put(text)
        except CLIPBOARD_ERRORS as exc:
            log.warning(f'Copy failed: {exc}')
            return False
        return True

    @staticmethod
    def _paste(ctx: Context) -> str | None:
        try:
            return ctx.clipboard.get()
        except CLIPBOARD_ERRORS as exc:
            log.warning(f'Paste failed: {exc}')
            return None


def dedent_last_line(text: str) -> str:
    """Undo one level of indentation at the end of the text.

    Only the last line is considered. If it starts with a tab, one trailing
    character is removed. Otherwise, if it ends with four spaces, those are
    removed.
    """
    last_line = text.rpartition('\n')[2]
    if last_line.startswith('\t'):
        return text[:-1]
    elif last_line.endswith(INDENT):
        return text[:-len(INDENT)]
    return text
