# fzterm/core/Viewport.py
"""Viewport and selection state of the result list.

Both classes are plain state holders with pure transitions: they never paint
and never lock. The terminal owns one instance of each and mutates them only
while holding its state lock.
"""

import time
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Optional


def constrain(value: int, minimum: int, maximum: int) -> int:
    """Clamps *value* into [minimum, maximum]; an empty range collapses to *minimum*."""
    return max(minimum, min(value, max(minimum, maximum)))


@dataclass
class Viewport:
    """Cursor row, scroll offset and search progress of the result list.

    Rows are counted from the prompt outward: row 0 is the item nearest to the
    query line in either layout.
    """

    cy: int = 0
    offset: int = 0
    count: int = 0
    reading: bool = True
    progress: int = 0
    reverse: bool = False
    cycle: bool = False

    def constrain(self, length: int, height: int) -> None:
        """Keeps `cy` inside the list and inside the visible window."""
        height = max(1, height)
        diffpos = constrain(self.cy - self.offset, 0, height - 1)

        self.cy = constrain(self.cy, 0, length - 1)
        self.offset = max(0, self.offset)

        if self.cy > self.offset + (height - 1):
            # Ceil
            self.offset = self.cy - (height - 1)
        elif self.offset > self.cy:
            # Floor
            self.offset = self.cy

        # The list shrank below the window: re-anchor at the end and keep the
        # cursor on the same screen row where possible.
        if length - self.offset < height:
            self.offset = max(0, length - height)
            self.cy = constrain(self.offset + diffpos, 0, length - 1)

    def vmove(self, delta: int, length: int) -> None:
        if self.reverse:
            delta = -delta
        dest = self.cy + delta
        if self.cycle:
            last = length - 1
            if dest > last and self.cy == last:
                dest = 0
            elif dest < 0 and self.cy == 0:
                dest = last
        self.vset(dest, length)

    def vset(self, pos: int, length: int) -> bool:
        """Moves the cursor to *pos*; False when *pos* had to be clamped."""
        self.cy = constrain(pos, 0, length - 1)
        return self.cy == pos


class SelectedItem(NamedTuple):
    at: float
    text: str


@dataclass
class SelectionSet:
    """Selected items keyed by item identity, independent of any result view."""

    _items: dict[int, SelectedItem] = field(default_factory=dict)

    def __contains__(self, index: object) -> bool:
        return index in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def select(self, index: int, text: str, at: Optional[float] = None) -> bool:
        """Adds the item; returns False if it was already selected."""
        if index in self._items:
            return False
        self._items[index] = SelectedItem(time.monotonic() if at is None else at, text)
        return True

    def deselect(self, index: int) -> bool:
        return self._items.pop(index, None) is not None

    def toggle(self, index: int, text: str, at: Optional[float] = None) -> bool:
        """Flips membership; returns True when the item ends up selected."""
        if self.select(index, text, at):
            return True
        self.deselect(index)
        return False

    def clear(self) -> None:
        self._items.clear()

    def texts(self) -> list[str]:
        """Captured texts, oldest selection first."""
        # sorted() is stable, so equal timestamps keep insertion order.
        return [sel.text for sel in sorted(self._items.values(), key=lambda sel: sel.at)]
