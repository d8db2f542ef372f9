"""Details of colors and styles."""
from __future__ import annotations

from collections import Counter

TAG_PALETTE = (
    'orchid',
    'dodger_blue1',
    'sea_green2',
    'gold3',
    'light_coral',
    'medium_purple1',
    'dark_orange',
    'steel_blue1',
    'chartreuse3',
    'hot_pink3',
)
MATCH_STYLE = 'bold reverse'
CURSOR_STYLE = 'bold on grey23'


class TagTracker:
    """Allocates palette colors to tags.

    A new tag gets the least used palette entry, lowest index first, so
    colors stay as distinct as the palette allows.
    """

    def __init__(self):
        self.code_map: dict[str, int] = {}
        self.usage: Counter[int] = Counter(dict.fromkeys(
            range(len(TAG_PALETTE)), 0))

    def code(self, tag: str) -> int:
        """Get the palette index of a tag; zero for an unknown tag."""
        return self.code_map.get(tag, 0)

    def color(self, tag: str) -> str:
        """Get the color name for a tag, allocating one if necessary."""
        self.add(tag)
        return TAG_PALETTE[self.code(tag)]

    def add(self, tag: str):
        """Add a tag to the tracked set."""
        if tag not in self.code_map:
            code = min(self.usage, key=lambda c: (self.usage[c], c))
            self.code_map[tag] = code
            self.usage[code] += 1

    def apply_changes(self, new_tags: set[str]):
        """Add new tags and forget dropped ones."""
        for tag in set(self.code_map) - new_tags:
            self.usage[self.code_map.pop(tag)] -= 1
        for tag in sorted(new_tags - set(self.code_map)):
            self.add(tag)
