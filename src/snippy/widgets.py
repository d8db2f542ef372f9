"""Application specific widgets."""
from __future__ import annotations

from collections import defaultdict
from typing import ClassVar, cast

from rich.text import Text
from textual import events
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Button, Label, Static

from . import abc


class AppChild(Widget):
    """Mixin for children of the Snippy application class."""

    @property
    def app(self) -> abc.SnippyApp:                    # type: ignore[override]
        """The owning application."""
        return cast(abc.SnippyApp, super().app)


class KeyForwarder:
    """Mixin that passes every key press to the application's mode machine.

    The key is consumed, so Textual's own bindings never see it.
    """

    app: abc.SnippyApp

    async def on_key(self, event: events.Key) -> None:
        """Forward a key press to the application."""
        event.stop()
        event.prevent_default()
        await self.app.process_key(event)


class MyText(Static, AppChild):
    """Application specific Text widget."""


class MyVerticalScroll(VerticalScroll, AppChild):
    """Application specific VerticalScroll widget."""


class EditField(MyText):
    """One of the name, tags or code fields of the snippet editor."""

    DEFAULT_CSS = '''
    EditField {
        border: round $primary-darken-2;
        padding: 0 1;
        height: auto;
        min-height: 3;
    }
    EditField.active_field {
        border: round $accent;
    }
    '''


class PopupDialog(KeyForwarder, ModalScreen):
    """Base for 'popup' dialogues.

    Button presses are passed to the application as answers.
    """

    DEFAULT_CSS = '''
    PopupDialog {
        align: center middle;
    }
    PopupDialog > .popup {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $error 60%;
        background: $surface;
    }
    '''
    _inherit_bindings: ClassVar[bool] = False

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Process a mouse click on a button."""
        event.stop()
        await cast(abc.SnippyApp, self.app).handle_answer(
            event.button.id or '')


class ConfirmDeleteMenu(PopupDialog):
    """Popup asking whether a snippet should really be deleted."""

    AUTO_FOCUS = None
    DEFAULT_CSS = PopupDialog.DEFAULT_CSS + '''
    #question {
        width: 100%;
        content-align: center middle;
        margin-bottom: 1;
    }
    #answers {
        height: auto;
        align-horizontal: center;
    }
    #answers Button {
        margin: 0 2;
    }
    '''

    def __init__(self, name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.snippet_name = name

    def compose(self):
        """Build the widget hierarchy."""
        yes = Button('Yes (y)', variant='error', id='yes')
        no = Button('No (n)', variant='primary', id='no')
        yes.can_focus = no.can_focus = False
        with Vertical(id='dialog', classes='popup'):
            yield Label(f'Delete {self.snippet_name!r}?', id='question')
            with Horizontal(id='answers'):
                yield yes
                yield no


class MyFooter(Static, AppChild):
    """A simple footer showing the keys for the current context."""

    COMPONENT_CLASSES: ClassVar[set[str]] = {
        'footer--key',
        'footer--description',
    }
    DEFAULT_CSS = '''
    MyFooter {
        dock: bottom;
        height: 1;
        background: $panel;
    }
    MyFooter > .footer--key {
        text-style: bold;
        background: $accent-darken-1;
    }
    MyFooter > .footer--description {
        color: $text;
    }
    '''

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._context_name = ''

    def check_context(self):
        """Check whether the application context has changed."""
        new_name = self.app.context_name()
        if new_name != self._context_name:
            self._context_name = new_name
            self.update(self._make_key_text())

    def _make_key_text(self) -> Text:
        """Create text containing all the keys."""
        text = Text(no_wrap=True, overflow='ellipsis', justify='left', end='')
        key_style = self.get_component_rich_style('footer--key')
        description_style = self.get_component_rich_style(
            'footer--description')

        action_to_bindings = defaultdict(list)
        for binding in self.app.active_shown_bindings():
            action_to_bindings[binding.action].append(binding)

        for bindings in action_to_bindings.values():
            binding = bindings[0]
            key_display = binding.key_display or self.app.get_key_display(
                binding)
            text.append_text(Text.assemble(
                (f' {key_display} ', key_style),
                (f' {binding.description} ', description_style),
            ))
        return text
