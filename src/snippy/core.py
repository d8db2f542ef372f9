"""A terminal program for saving, finding and copying code snippets."""
from __future__ import annotations

import argparse
import sys
from functools import partial
from pathlib import Path
from typing import ClassVar, TYPE_CHECKING

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Header

from .colors import TagTracker
from .config import (
    ConfigError, ConfigLoader, KeyBindings, default_config_path,
    default_snippet_path)
from .modes import (
    Action, ConfirmDelete, Context, Event, InputModeMachine, Normal,
    NewSnippet, Search, Stage, Transition)
from .platform import SystemClipboard, terminal_title
from .snippets import make_loader
from .text import render_code, render_field, render_list
from .widgets import (
    ConfirmDeleteMenu, EditField, KeyForwarder, MyFooter, MyText,
    MyVerticalScroll)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .modes import Clipboard, InputMode

DEFAULT_TITLE = 'Snippy'
TYPING_CONTEXTS = ('search', 'edit')
MODE_LABELS = {
    'normal': 'NORMAL',
    'search': 'SEARCH',
    'edit': 'EDIT',
    'confirm': 'CONFIRM',
}
STAGE_FIELDS = {
    Stage.TYPE_NAME: 'field-name',
    Stage.TYPE_TAGS: 'field-tags',
    Stage.TYPE_CODE: 'field-code',
}


class StartupError(Exception):
    """Error raised when Snippy cannot start."""


def context_name(mode: InputMode) -> str:
    """Provide the key handling context name for an input mode."""
    match mode:
        case Normal():
            return 'normal'
        case Search():
            return 'search'
        case NewSnippet():
            return 'edit'
        case ConfirmDelete():
            return 'confirm'
    return ''                                                # pragma: no cover


class KeyHandler:
    """Context specific translation of key presses into mode machine events.

    Bindings are looked up using the Textual key name and then using the
    typed character, so configured keys may be any single character. In the
    typing contexts, an unbound printable key becomes a character event.
    """

    def __init__(self):
        self.bindings: dict[tuple[str, str], Binding] = {}

    def bind(                              # pylint: disable=too-many-arguments
        self,
        keys: str,
        action: Action,
        *,
        contexts: Iterable[str],
        description: str = '',
        show: bool = True,
        key_display: str | None = None,
    ) -> None:
        """Bind keys to an action.

        Args:
            keys: A space separated list of keys.
            action: Action to bind to.
            contexts: The contexts in which the binding applies.
            description: Short description of action.
            show: Show key in the footer.
            key_display: Replacement text for key, or None to use default.
        """
        for key in keys.split():
            binding = Binding(key, action.value, description, show, key_display)
            for context in contexts:
                self.bindings[(context, key)] = binding

    def classify(self, context: str, event: events.Key) -> Event | None:
        """Convert a key press into an event for the mode machine.

        :return: The event or ``None`` if the key has no meaning in the
            context.
        """
        binding = self.bindings.get((context, event.key))
        if binding is None and event.character:
            binding = self.bindings.get((context, event.character))
        if binding is not None:
            return Event(Action(binding.action))
        if context in TYPING_CONTEXTS and event.is_printable:
            return Event(Action.CHAR, event.character or '')
        return None

    def active_shown_bindings(self, context: str) -> list[Binding]:
        """Provide a list of bindings used for the application Footer."""
        return [
            binding for (ctx, _), binding in self.bindings.items()
            if ctx == context and binding.show]


def init_bindings(handler: KeyHandler, keys: KeyBindings) -> None:
    """Set up the bindings for every context."""
    # Normal mode key bindings.
    bind = partial(handler.bind, contexts=('normal',), show=True)
    bind(keys.key_for('new'), Action.NEW, description='New')
    bind(keys.key_for('find'), Action.FIND, description='Find')
    bind(keys.key_for('copy'), Action.COPY, description='Copy')
    bind(keys.key_for('delete'), Action.DELETE, description='Delete')
    if keys.key_for('edit'):
        bind(keys.key_for('edit'), Action.EDIT, description='Edit')
    bind('escape ctrl+q', Action.QUIT, description='Quit')
    bind = partial(handler.bind, contexts=('normal',), show=False)
    bind('enter', Action.EDIT)

    # Cursor movement, while listing or searching.
    bind = partial(handler.bind, contexts=('normal', 'search'), show=False)
    bind('up', Action.CURSOR_UP)
    bind('down', Action.CURSOR_DOWN)
    bind('ctrl+u', Action.CURSOR_CLEAR)

    # Key bindings while typing a search query.
    bind = partial(handler.bind, contexts=('search',), show=True)
    bind('enter', Action.CONFIRM, description='List')
    bind('escape ctrl+q', Action.QUIT, description='Leave search')
    bind('backspace', Action.BACKSPACE, show=False)

    # Key bindings while creating or editing a snippet.
    save = keys.key_for('save')
    bind = partial(handler.bind, contexts=('edit',), show=True)
    bind(f'ctrl+{save.lower()}', Action.SAVE, description='Save')
    bind('enter', Action.CONFIRM, description='Next/newline')
    bind('ctrl+v', Action.PASTE, description='Paste')
    bind('escape', Action.CANCEL, description='Cancel')
    bind = partial(handler.bind, contexts=('edit',), show=False)
    bind('alt+enter', Action.SAVE)
    bind('tab', Action.TAB)
    bind('shift+tab', Action.BACK_TAB)
    bind('backspace', Action.BACKSPACE)

    # Key bindings for the delete confirmation dialog.
    bind = partial(handler.bind, contexts=('confirm',), show=True)
    bind('y Y', Action.YES, description='Yes')
    bind('n N', Action.NO, description='No')
    bind('escape', Action.CANCEL, description='Cancel')


class MainScreen(KeyForwarder, Screen):
    """Main Snippy screen."""

    _inherit_bindings: ClassVar[bool] = False
    app: Snippy

    def __init__(self):
        super().__init__(name='main', id='main')

    def compose(self) -> ComposeResult:
        """Build the widget hierarchy."""
        yield Header(id='header')
        with Horizontal(id='status-bar'):
            yield MyText(id='mode')
            yield MyText(id='query')
        with Horizontal(id='body'):
            with MyVerticalScroll(id='list-view') as view:
                view.can_focus = False
                yield MyText(id='snippet-list')
            with MyVerticalScroll(id='preview') as preview:
                preview.can_focus = False
                yield MyText(id='code')
            with Vertical(id='editor'):
                yield EditField(id='field-name')
                yield EditField(id='field-tags')
                yield EditField(id='field-code')
        yield MyFooter(id='footer')

    def on_mount(self) -> None:
        """Perform screen start-up actions."""
        self.query_one('#field-name').border_title = 'Name'
        self.query_one('#field-tags').border_title = 'Tags'
        self.query_one('#field-code').border_title = 'Code'
        self.refresh_display()

    def refresh_display(self) -> None:
        """Update every widget to reflect the application's state."""
        app = self.app
        ctx = app.ctx
        mode = ctx.mode
        name = context_name(mode)

        self.query_one('#mode', MyText).update(
            Text(f' {MODE_LABELS[name]} ', style='bold reverse'))
        query_w = self.query_one('#query', MyText)
        match mode:
            case Search(query=query):
                query_w.update(Text.assemble(
                    (' Search: ', 'bold'), render_field(query, active=True)))
            case _:
                query_w.update(Text(' Listing all snippets', style='dim'))

        sel = ctx.selection
        query = mode.query if isinstance(mode, Search) else ''
        self.query_one('#snippet-list', MyText).update(
            render_list(sel.items, sel.cursor, query, app.tags))

        editing = isinstance(mode, NewSnippet)
        self.query_one('#preview').display = not editing
        self.query_one('#editor').display = editing
        if isinstance(mode, NewSnippet):
            self.update_editor(mode)
        else:
            snippet = sel.selected
            self.query_one('#code', MyText).update(
                render_code(snippet.code) if snippet else '')

        self.query_one(MyFooter).check_context()

    def update_editor(self, mode: NewSnippet) -> None:
        """Show the edit session's fields, marking the active one."""
        session = mode.session
        for stage, wid in STAGE_FIELDS.items():
            w = self.query_one(f'#{wid}', EditField)
            active = stage == mode.stage
            w.set_class(active, 'active_field')
            w.update(render_field(session.text(stage), active=active))


class Snippy(App):
    """The textual application object."""

    _inherit_bindings: ClassVar[bool] = False
    ENABLE_COMMAND_PALETTE = False
    AUTO_FOCUS = None
    CSS_PATH = 'snippy.css'
    TITLE = DEFAULT_TITLE

    def __init__(
            self, args: argparse.Namespace, clipboard: Clipboard | None = None):
        super().__init__()
        self.args = args
        self.warnings: list[str] = []

        config_loader = ConfigLoader(args.config)
        try:
            keys, msg = config_loader.load()
        except ConfigError as exc:
            raise StartupError(str(exc)) from None
        if msg:
            self.warnings.append(msg)
        elif not config_loader.path.exists():
            self.write_default_config(config_loader, keys)
        self.key_config = keys

        self.loader = make_loader(args.snippet_file)
        store, msg = self.loader.load()
        if msg:
            self.warnings.append(msg)

        self.ctx = Context(store, clipboard or SystemClipboard())
        self.ctx.refresh_view()
        self.machine = InputModeMachine()
        self.key_handler = KeyHandler()
        init_bindings(self.key_handler, keys)
        self.tags = TagTracker()
        self.tags.apply_changes(self.all_tags())
        self.main_screen = MainScreen()

    def write_default_config(
            self, loader: ConfigLoader, keys: KeyBindings) -> None:
        """Create the configuration file, so the user can find and edit it."""
        try:
            loader.save(keys)
        except OSError as exc:
            self.warnings.append(f'Could not create {loader.path}: {exc}')

    def run(self, *args, **kwargs):                          # pragma: no cover
        """Wrap the standard run method, setting the terminal title."""
        with terminal_title(DEFAULT_TITLE):
            return super().run(*args, **kwargs)

    def get_default_screen(self) -> Screen:
        """Provide the main screen as the application's base screen."""
        return self.main_screen

    def on_mount(self) -> None:
        """Perform app start-up actions."""
        for msg in self.warnings:
            self.log.warning(msg)
            self.notify(msg, severity='warning')

    def context_name(self) -> str:
        """Provide a name identifying the current context."""
        return context_name(self.ctx.mode)

    def active_shown_bindings(self) -> list[Binding]:
        """Provide a list of bindings used for the application Footer."""
        return self.key_handler.active_shown_bindings(self.context_name())

    def all_tags(self) -> set[str]:
        """Provide the set of tags used by any snippet."""
        return {tag for snippet in self.ctx.store for tag in snippet.tags}

    async def process_key(self, event: events.Key) -> None:
        """Handle a key press, as forwarded by the active screen."""
        mode_event = self.key_handler.classify(self.context_name(), event)
        if mode_event is not None:
            self.apply_event(mode_event)

    async def handle_answer(self, answer: str) -> None:
        """Handle a button press from the delete confirmation dialog."""
        if answer == 'yes':
            self.apply_event(Event(Action.YES))
        elif answer == 'no':
            self.apply_event(Event(Action.NO))

    def apply_event(self, event: Event) -> Transition:
        """Pass an event to the mode machine and act on the result."""
        trans = self.machine.handle(self.ctx, event)
        if trans.store_changed:
            self.save_store()
            self.tags.apply_changes(self.all_tags())
        if trans.quit:
            self.exit()
            return trans

        self.sync_dialog()
        self.main_screen.refresh_display()
        return trans

    def save_store(self) -> None:
        """Write the store to its file."""
        try:
            self.loader.save(self.ctx.store)
        except OSError as exc:
            msg = f'Could not save {self.loader.path}: {exc}'
            self.log.error(msg)
            self.notify(msg, severity='error')

    def sync_dialog(self) -> None:
        """Show or hide the delete confirmation dialog to match the mode."""
        showing = isinstance(self.screen, ConfirmDeleteMenu)
        mode = self.ctx.mode
        if isinstance(mode, ConfirmDelete) and not showing:
            snippet = self.ctx.store.find(mode.target_idx)
            name = snippet.name if snippet else str(mode.target_idx)
            self.push_screen(ConfirmDeleteMenu(name, id='confirm-delete'))
        elif not isinstance(mode, ConfirmDelete) and showing:
            self.pop_screen()


def parse_args(sys_args: list[str] | None = None) -> argparse.Namespace:
    """Parse the command line arguments."""
    parser = argparse.ArgumentParser(
        prog='snippy', description='Save, find and copy code snippets.')
    parser.add_argument(
        'snippet_file', type=Path, nargs='?', default=None,
        help='The snippet store file (default: ~/.snippy/snippets.json).')
    parser.add_argument(
        '--config', type=Path, default=None,
        help='The key binding configuration file.')
    args = parser.parse_args(sys_args if sys_args is not None else sys.argv[1:])
    if args.snippet_file is None:
        args.snippet_file = default_snippet_path()
    if args.config is None:
        args.config = default_config_path()
    return args


def main():                                                  # pragma: no cover
    """Run the application."""
    args = parse_args()
    try:
        app = Snippy(args)
    except StartupError as exc:
        sys.exit(str(exc))
    app.run()
