"""Abstract base classes to help clean type checking."""
# ruff: noqa: D102
# pylint: disable=missing-function-docstring
# type: ignore[empty-body]

from textual import events
from textual.binding import Binding


class SnippyApp:
    """Abstract base class for core.Snippy."""

    def active_shown_bindings(self) -> list[Binding]:
        return []

    def context_name(self) -> str:
        return ''

    def get_key_display(self, binding: Binding) -> str:
        return ''

    async def process_key(self, event: events.Key) -> None:
        ...

    async def handle_answer(self, answer: str) -> None:
        ...
