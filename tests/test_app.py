"""Running the Snippy application.

These tests drive the Textual application headless, pressing keys and then
checking the application state and the saved store file.
"""
from __future__ import annotations
# pylint: disable=no-self-use
# pylint: disable=redefined-outer-name

import json

import pytest
from textual import events

from support import populate, typed

from snippy import core
from snippy.config import DEFAULT_KEYS, KeyBindings
from snippy.modes import Action, ConfirmDelete, Event, NewSnippet, Normal, Search
from snippy.widgets import ConfirmDeleteMenu, MyFooter


@pytest.fixture
def infile(snippet_infile):
    """Create a standard store file for many of this module's tests."""
    populate(snippet_infile)
    return snippet_infile


def names(app) -> list[str]:
    """List the names in the application's current view."""
    return [s.name for s in app.ctx.selection.items]


class TestKeyHandler:
    """Translation of key presses into mode machine events."""

    @pytest.fixture
    def handler(self):
        """Provide a key handler with the default bindings."""
        handler = core.KeyHandler()
        core.init_bindings(handler, KeyBindings())
        return handler

    def test_normal_commands(self, handler):
        """Configured characters trigger commands in Normal mode."""
        assert handler.classify('normal', events.Key('n', 'n')) == Event(
            Action.NEW)
        assert handler.classify('normal', events.Key('x', 'x')) == Event(
            Action.DELETE)
        assert handler.classify('normal', events.Key('z', 'z')) is None

    def test_typing_contexts(self, handler):
        """Printable keys are characters when typing."""
        assert handler.classify('search', events.Key('n', 'n')) == Event(
            Action.CHAR, 'n')
        assert handler.classify('edit', events.Key('space', ' ')) == Event(
            Action.CHAR, ' ')
        assert handler.classify('edit', events.Key('ctrl+s', None)) == Event(
            Action.SAVE)
        assert handler.classify('edit', events.Key('tab', '\t')) == Event(
            Action.TAB)

    def test_confirm_context(self, handler):
        """Only yes, no and escape mean anything in the confirm dialog."""
        assert handler.classify('confirm', events.Key('Y', 'Y')) == Event(
            Action.YES)
        assert handler.classify('confirm', events.Key('n', 'n')) == Event(
            Action.NO)
        assert handler.classify('confirm', events.Key('q', 'q')) is None
        assert handler.classify('confirm', events.Key('escape', None)) == Event(
            Action.CANCEL)

    def test_punctuation_binding(self):
        """A binding may use any character, matched by the typed text."""
        handler = core.KeyHandler()
        core.init_bindings(handler, KeyBindings(dict(DEFAULT_KEYS, KEY_FIND='/')))
        key = events.Key('slash', '/')
        assert handler.classify('normal', key) == Event(Action.FIND)

    def test_footer_bindings(self, handler):
        """The shown bindings depend on the context."""
        descriptions = [
            b.description for b in handler.active_shown_bindings('confirm')]
        assert descriptions == ['Yes', 'Yes', 'No', 'No', 'Cancel']


class TestStartup:
    """Starting the application."""

    @pytest.mark.asyncio
    async def test_starts_searching(self, infile, simple_run):
        """The application starts in Search mode with nothing shown."""
        runner = await simple_run(infile.name, [])
        assert runner.app.ctx.mode == Search('')
        assert names(runner.app) == []

    @pytest.mark.asyncio
    async def test_default_config_written(self, infile, simple_run, snippy_home):
        """A missing configuration file is created with the defaults."""
        await simple_run(infile.name, [])
        data = json.loads((snippy_home / 'config.json').read_text())
        assert data == {'keys': DEFAULT_KEYS}

    @pytest.mark.asyncio
    async def test_custom_keys(self, infile, simple_run, config_file):
        """Configured keys replace the defaults."""
        config_file.write_text(json.dumps(
            {'keys': dict(DEFAULT_KEYS, KEY_FIND='/', KEY_NEW='a')}))
        actions = ['escape', 'f', 'a']
        runner = await simple_run(
            infile.name, actions, options=['--config', config_file.name])
        assert isinstance(runner.app.ctx.mode, NewSnippet)

    def test_bad_config_stops_startup(self, infile, config_file):
        """Invalid bindings prevent the application from starting."""
        config_file.write_text(json.dumps({'keys': {'KEY_NEW': 'n'}}))
        args = core.parse_args([infile.name, '--config', config_file.name])
        with pytest.raises(core.StartupError, match='KEY_FIND'):
            core.Snippy(args)

    @pytest.mark.asyncio
    async def test_corrupt_store_uses_examples(self, snippet_infile, simple_run):
        """A corrupt store file is replaced by the example snippets."""
        snippet_infile.write_text('not json')
        runner = await simple_run(snippet_infile.name, ['escape'])
        assert names(runner.app) == [
            'Example Snippet #1', 'Example Snippet #2', 'Example Snippet #3']
        assert any('not valid JSON' in w for w in runner.app.warnings)

    @pytest.mark.asyncio
    async def test_missing_store(self, tmp_path, simple_run):
        """A missing store file is created by the first change."""
        path = tmp_path / 'store' / 'snippets.json'
        actions = ['escape', 'n', *typed('New'), 'ctrl+s']
        await simple_run(path, actions)
        data = json.loads(path.read_text())
        assert [s['name'] for s in data['snippets']] == [
            'Example Snippet #1', 'Example Snippet #2', 'Example Snippet #3',
            'New']

    @pytest.mark.asyncio
    async def test_footer_follows_mode(self, infile, simple_run):
        """The footer lists the keys of the current mode."""
        seen = []

        def read_footer(app):
            footer = app.main_screen.query_one('#footer', MyFooter)
            seen.append(footer._make_key_text().plain)

        actions = [read_footer, 'escape', read_footer, 'n', read_footer]
        await simple_run(infile.name, actions)
        search, normal, edit = seen
        assert 'Leave search' in search
        assert 'New' in normal
        assert 'Delete' in normal
        assert 'Save' in edit
        assert 'Paste' in edit

    def test_parse_args_defaults(self, snippy_home):
        """Both files default to the Snippy home directory."""
        args = core.parse_args([])
        assert args.snippet_file == snippy_home / 'snippets.json'
        assert args.config == snippy_home / 'config.json'


class TestSearching:
    """Searching from the keyboard."""

    @pytest.mark.asyncio
    async def test_typing_filters(self, infile, simple_run):
        """Typed characters build the query."""
        runner = await simple_run(infile.name, typed('python'))
        assert runner.app.ctx.mode == Search('python')
        assert names(runner.app) == ['Read a file', 'List comprehension']

    @pytest.mark.asyncio
    async def test_backspace(self, infile, simple_run):
        """Backspace shortens the query."""
        actions = [*typed('shellx'), 'backspace']
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == Search('shell')
        assert names(runner.app) == ['Shell loop']

    @pytest.mark.asyncio
    async def test_enter_lists_all(self, infile, simple_run):
        """Enter leaves the search, listing every snippet."""
        runner = await simple_run(infile.name, [*typed('bash'), 'enter'])
        assert runner.app.ctx.mode == Normal()
        assert len(names(runner.app)) == 3

    @pytest.mark.asyncio
    async def test_find_restarts_search(self, infile, simple_run):
        """The find key starts a fresh search."""
        actions = [*typed('bash'), 'enter', 'f', *typed('list')]
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == Search('list')
        assert names(runner.app) == ['List comprehension']


class TestCommands:
    """Normal mode commands."""

    @pytest.mark.asyncio
    async def test_copy(self, infile, simple_run, clipboard):
        """The copy key puts the selected code on the clipboard."""
        actions = ['escape', 'down', 'down', 'c']
        await simple_run(infile.name, actions)
        assert clipboard.text == '[x * 2 for x in values]'

    @pytest.mark.asyncio
    async def test_quit(self, infile, simple_run):
        """Escape leaves the search and then the application."""
        runner = await simple_run(infile.name, ['escape', 'escape'])
        assert runner.exited

    @pytest.mark.asyncio
    async def test_new_snippet_saved(self, infile, simple_run):
        """A new snippet is added and the store saved, with a backup."""
        actions = [
            'escape', 'n', *typed('Hello'), 'enter',
            *typed('greet  demo'), 'enter',
            *typed('if x:'), 'enter', 'tab', *typed('hi()'),
            'ctrl+s']
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == Normal()
        saved = infile.load_json()
        assert saved['snippets'][-1] == {
            'idx': 3, 'name': 'Hello', 'tags': ['greet', 'demo'],
            'code': 'if x:\n    hi()'}
        assert len(infile.backup_paths()) == 1

    @pytest.mark.asyncio
    async def test_cancel_new_snippet(self, infile, simple_run):
        """Escape abandons a new snippet without saving."""
        actions = ['escape', 'n', *typed('Nope'), 'escape']
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == Normal()
        assert len(runner.app.ctx.store) == 3
        assert runner.app.ctx.store.peek_next_idx() == 3
        assert not infile.backup_paths()

    @pytest.mark.asyncio
    async def test_edit_snippet(self, infile, simple_run):
        """The edit key changes an existing snippet."""
        actions = ['escape', 'down', 'e', *typed('!'), 'ctrl+s']
        runner = await simple_run(infile.name, actions)
        saved = infile.load_json()
        assert [s['idx'] for s in saved['snippets']] == [1, 2, 0]
        assert saved['snippets'][-1]['name'] == 'Read a file!'
        assert runner.app.ctx.store.peek_next_idx() == 3

    @pytest.mark.asyncio
    async def test_paste_into_code(self, infile, simple_run, clipboard):
        """Paste appends the clipboard text to the active field."""
        clipboard.text = 'print("pasted")'
        actions = [
            'escape', 'n', *typed('P'), 'enter', 'enter', 'ctrl+v', 'ctrl+s']
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.store.find(3).code == 'print("pasted")'


class TestDeletion:
    """Deleting with confirmation."""

    @pytest.mark.asyncio
    async def test_delete_confirmed_by_key(self, infile, simple_run):
        """The dialog appears and 'y' deletes the snippet."""
        def check_dialog(app):
            assert isinstance(app.screen, ConfirmDeleteMenu)
            assert app.ctx.mode == ConfirmDelete(0)

        def check_dismissed(app):
            assert not isinstance(app.screen, ConfirmDeleteMenu)

        actions = [
            'escape', 'down', 'x', check_dialog, 'y', check_dismissed]
        runner = await simple_run(infile.name, actions)
        app = runner.app
        assert app.ctx.mode == Normal()
        saved = infile.load_json()
        assert [s['idx'] for s in saved['snippets']] == [1, 2]
        assert saved['free_idxs'] == [0]
        assert app.ctx.selection.cursor is None

    @pytest.mark.asyncio
    async def test_delete_declined_by_key(self, infile, simple_run):
        """Answering 'n' keeps the snippet."""
        actions = ['escape', 'down', 'x', 'n']
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == Normal()
        assert len(runner.app.ctx.store) == 3
        assert not infile.backup_paths()

    @pytest.mark.asyncio
    async def test_escape_cancels(self, infile, simple_run):
        """Escape dismisses the dialog without deleting."""
        def check_dismissed(app):
            assert not isinstance(app.screen, ConfirmDeleteMenu)

        actions = ['escape', 'down', 'x', 'escape', check_dismissed]
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == Normal()
        assert len(runner.app.ctx.store) == 3
        assert not infile.backup_paths()

    @pytest.mark.asyncio
    async def test_other_keys_ignored(self, infile, simple_run):
        """Other keys leave the dialog showing."""
        def check_dialog(app):
            assert isinstance(app.screen, ConfirmDeleteMenu)

        actions = ['escape', 'down', 'x', 'q', 'z', 'down', check_dialog]
        runner = await simple_run(infile.name, actions)
        assert runner.app.ctx.mode == ConfirmDelete(0)

    @pytest.mark.asyncio
    async def test_buttons(self, infile, simple_run):
        """The dialog's buttons answer the question."""
        actions = [
            'escape', 'down', 'x', 'click:no',
            'down', 'x', 'click:yes']
        runner = await simple_run(infile.name, actions)
        saved = infile.load_json()
        assert [s['name'] for s in saved['snippets']] == [
            'Read a file', 'Shell loop']
        assert runner.app.ctx.mode == Normal()

    @pytest.mark.asyncio
    async def test_new_snippet_reuses_freed_idx(self, infile, simple_run):
        """After a deletion, the next new snippet takes the freed idx."""
        actions = [
            'escape', 'down', 'down', 'x', 'y',
            'n', *typed('Again'), 'ctrl+s']
        runner = await simple_run(infile.name, actions)
        saved = infile.load_json()
        assert [s['idx'] for s in saved['snippets']] == [0, 2, 1]
        assert saved['free_idxs'] == []
        assert runner.app.ctx.store.find(1).name == 'Again'
