"""Text rendering support."""
from __future__ import annotations

from typing import TYPE_CHECKING

from rich.style import Style
from rich.syntax import Syntax
from rich.text import Text

from .colors import CURSOR_STYLE, MATCH_STYLE

if TYPE_CHECKING:
    from .colors import TagTracker
    from .snippets import CodeSnippet

CODE_THEME = 'monokai'


def highlight_matches(text: str, query: str, base_style: str = '') -> Text:
    """Render text, highlighting case-insensitive occurrences of a query."""
    rendered = Text(text, style=base_style)
    if not query:
        return rendered

    pat = query.casefold()
    folded = text.casefold()
    start = folded.find(pat)
    while start >= 0:
        rendered.stylize(MATCH_STYLE, start, start + len(pat))
        start = folded.find(pat, start + len(pat))
    return rendered


def render_row(
        snippet: CodeSnippet, query: str, tags: TagTracker, *,
        selected: bool,
    ) -> Text:
    """Render a single line of the snippet list."""
    marker = '▶ ' if selected else '  '
    row = Text(marker)
    row.append_text(highlight_matches(snippet.name, query))
    for tag in snippet.tags:
        row.append(' ')
        tag_style = Style(color=tags.color(tag), italic=True)
        row.append_text(highlight_matches(f'#{tag}', query, str(tag_style)))
    if selected:
        row.stylize(CURSOR_STYLE)
    return row


def render_list(
        snippets: list[CodeSnippet], cursor: int | None, query: str,
        tags: TagTracker,
    ) -> Text:
    """Render the full snippet list."""
    if not snippets:
        return Text('No matching snippets', style='dim italic')
    rows = [
        render_row(s, query, tags, selected=i == cursor)
        for i, s in enumerate(snippets)]
    return Text('\n').join(rows)


def render_code(code: str, lexer: str = 'python') -> Syntax:
    """Render snippet code for the preview pane."""
    return Syntax(
        code, lexer, theme=CODE_THEME, line_numbers=True, word_wrap=False,
        indent_guides=True)


def render_field(text: str, *, active: bool) -> Text:
    """Render an edit field, showing a cursor at the end if active."""
    rendered = Text(text)
    if active:
        rendered.append('█', style='blink')
    return rendered
