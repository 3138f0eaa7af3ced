# fzterm/ui/DrawScreen.py
"""DrawScreen.py
========================
DrawScreen paints the finder: the query line, the info line and the result
list, all through the terminal driver.

It is responsible for:
- mapping logical rows (counted from the prompt outward) to screen rows in
  both the default and the reversed layout,
- truncating item text to the terminal width with a ".." marker, scrolling
  horizontally so the matched part stays visible,
- highlighting match ranges and expanding tabs,
- the spinner and the "matched/total" counters.

Widths are display widths from `wcwidth`; a tab advances to the next multiple
of eight columns. The functions at module level are pure and can be tested
without a terminal.
"""

import enum
import logging
import time
from typing import TYPE_CHECKING, Callable, Sequence

from wcwidth import wcwidth


if TYPE_CHECKING:
    from fzterm.core.Matcher import Item
    from fzterm.core.Terminal import Terminal
    from fzterm.ui.CursesDriver import CursesDriver


logger = logging.getLogger(__name__)

ELLIPSIS = ".."
SPINNER = ("-", "\\", "|", "/", "-", "\\", "|", "/")
SPINNER_FRAME_NS = 200_000_000

Offset = tuple[int, int]


class ColorPair(enum.IntEnum):
    """Logical colors; the driver maps each to a curses color pair."""

    NORMAL = 0
    PROMPT = 1
    MATCH = 2
    CURRENT = 3
    CURRENT_MATCH = 4
    SPINNER = 5
    INFO = 6
    CURSOR = 7
    SELECTED = 8


class WidthCache:
    """Memoized display widths of single code points.

    Shared by everything that measures text; the cache only grows.
    """

    def __init__(self) -> None:
        self._widths: dict[str, int] = {}

    def rune_width(self, ch: str, prefix_width: int) -> int:
        if ch == "\t":
            return 8 - prefix_width % 8
        w = self._widths.get(ch)
        if w is None:
            # Non-printable characters report -1.
            w = max(0, wcwidth(ch))
            self._widths[ch] = w
        return w

    def __len__(self) -> int:
        return len(self._widths)


def display_width(text: str, cache: WidthCache) -> int:
    width = 0
    for ch in text:
        width += cache.rune_width(ch, width)
    return width


def display_width_with_limit(text: str, prefix_width: int, limit: int, cache: WidthCache) -> int:
    """Width of *text* placed at *prefix_width*; stops early once past *limit*."""
    width = 0
    for ch in text:
        width += cache.rune_width(ch, width + prefix_width)
        if width > limit:
            return width
    return width


def trim_right(text: str, width: int, cache: WidthCache) -> tuple[str, int]:
    """Keeps the longest prefix fitting *width*, possibly empty.

    Returns:
        tuple: (kept text, number of code points removed)
    """
    total = 0
    for idx, ch in enumerate(text):
        total += cache.rune_width(ch, total)
        if total > width:
            return text[:idx], len(text) - idx
    return text, 0


def trim_left(text: str, width: int, cache: WidthCache) -> tuple[str, int]:
    """Drops leading code points until the rest fits *width* after a 2-column marker.

    Returns:
        tuple: (kept text, number of code points removed)
    """
    current = display_width(text, cache)
    trimmed = 0
    while current > width and text:
        text = text[1:]
        trimmed += 1
        current = display_width_with_limit(text, 2, width, cache)
    return text, trimmed


def process_tabs(text: str, prefix_width: int, cache: WidthCache) -> tuple[str, int]:
    """Expands tabs to spaces for text starting at column *prefix_width*.

    Returns:
        tuple: (expanded text, column after the text)
    """
    parts = []
    col = prefix_width
    for ch in text:
        w = cache.rune_width(ch, col)
        col += w
        parts.append(" " * w if ch == "\t" else ch)
    return "".join(parts), col


def fit_highlighted(
    text: str,
    offsets: Sequence[Offset],
    max_width: int,
    hscroll: bool,
    cache: WidthCache,
) -> tuple[str, list[Offset]]:
    """Fits *text* into *max_width* columns, moving the match offsets along.

    Text that already fits is returned unchanged. Otherwise the tail is
    replaced by "..", and with *hscroll* a match that would be cut off is
    brought into view by trimming the head as well ("..ri..").

    Returns:
        tuple: (text to print, offsets clamped into ``[0, len(text)]``)
    """
    new_offsets = [(b, e) for b, e in offsets]
    max_end = max((e for _, e in offsets), default=0)
    full_width = display_width(text, cache)

    if full_width > max_width:
        if hscroll:
            match_end_width = display_width(text[:max_end], cache)
            if match_end_width <= max_width - 2:
                text, _ = trim_right(text, max_width - 2, cache)
                text += ELLIPSIS
            else:
                if match_end_width < full_width - 2:
                    text = text[:max_end] + ELLIPSIS
                text, diff = trim_left(text, max_width - 2, cache)
                shifted = []
                for b, e in new_offsets:
                    b = max(b + 2 - diff, 2)
                    shifted.append((b, max(b, e + 2 - diff)))
                new_offsets = shifted
                text = ELLIPSIS + text
        else:
            text, _ = trim_right(text, max_width - 2, cache)
            text += ELLIPSIS
            new_offsets = [(min(b, max_width - 2), min(e, max_width)) for b, e in new_offsets]

    limit = len(text)
    clamped = []
    for b, e in new_offsets:
        b = max(0, min(b, limit))
        clamped.append((b, max(b, min(e, limit))))
    return text, clamped


def spinner_frame(now_ns: int) -> str:
    return SPINNER[(now_ns % (SPINNER_FRAME_NS * len(SPINNER))) // SPINNER_FRAME_NS]


## ================= class DrawScreen ==============================
class DrawScreen:
    """DrawScreen Class
    =========================
    Renders the finder state owned by a `Terminal` through its driver.

    Every method must be called with the terminal's state lock held; none of
    them touches anything but the driver and the terminal's viewport (which
    `print_list` constrains before painting).

    Attributes:
        terminal (Terminal): Owner of the state being painted.
        driver (CursesDriver): Output surface.
        widths (WidthCache): Shared width memo.
        clock (Callable[[], int]): Nanosecond clock driving the spinner.
    """

    def __init__(
        self,
        terminal: "Terminal",
        driver: "CursesDriver",
        widths: WidthCache,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.terminal = terminal
        self.driver = driver
        self.widths = widths
        self.clock = clock

    # --- geometry ---

    def max_items(self) -> int:
        """Number of visible list rows."""
        reserved = 1 if self.terminal.options.inline_info else 2
        return max(0, self.driver.max_y() - reserved)

    def move(self, y: int, x: int, clear: bool) -> None:
        """Moves to logical row *y*; row 0 is the bottom row unless reversed."""
        if not self.terminal.options.reverse:
            y = self.driver.max_y() - y - 1
        self.driver.move(y, x, clear)

    def place_cursor(self) -> None:
        query = self.terminal.query
        col = len(self.terminal.options.prompt) + display_width(query.text[:query.cx], self.widths)
        self.move(0, col, False)

    # --- rows ---

    def print_prompt(self) -> None:
        self.move(0, 0, True)
        self.driver.cprint(ColorPair.PROMPT, True, self.terminal.options.prompt)
        self.driver.cprint(ColorPair.NORMAL, True, self.terminal.query.text)

    def info_text(self) -> str:
        term = self.terminal
        vp = term.viewport
        output = f"{len(term.view)}/{vp.count}"
        if term.options.toggle_sort:
            output += "/S" if term.sort else "  "
        if term.options.multi and len(term.selected) > 0:
            output += f" ({len(term.selected)})"
        if 0 < vp.progress < 100:
            output += f" ({vp.progress}%)"
        return output

    def print_info(self) -> None:
        term = self.terminal
        reading = term.viewport.reading
        if term.options.inline_info:
            col = len(term.options.prompt) + display_width(term.query.text, self.widths) + 1
            self.move(0, col, True)
            self.driver.cprint(ColorPair.SPINNER if reading else ColorPair.PROMPT, True, " < ")
        else:
            self.move(1, 0, True)
            if reading:
                self.driver.cprint(ColorPair.SPINNER, True, spinner_frame(self.clock()))
            self.move(1, 2, False)
        self.driver.cprint(ColorPair.INFO, False, self.info_text())

    def print_list(self) -> None:
        term = self.terminal
        vp = term.viewport
        view = term.view
        height = self.max_items()
        vp.constrain(len(view), height)

        first_row = 1 if term.options.inline_info else 2
        count = len(view) - vp.offset
        for i in range(height):
            self.move(i + first_row, 0, True)
            if i < count:
                self.print_item(view[i + vp.offset], i == vp.cy - vp.offset)

    def print_item(self, item: "Item", current: bool) -> None:
        selected = item.index in self.terminal.selected
        if current:
            self.driver.cprint(ColorPair.CURSOR, True, ">")
            if selected:
                self.driver.cprint(ColorPair.SELECTED, True, ">")
            else:
                self.driver.cprint(ColorPair.CURRENT, True, " ")
            self.print_highlighted(item, True, ColorPair.CURRENT, ColorPair.CURRENT_MATCH)
        else:
            self.driver.cprint(ColorPair.CURSOR, True, " ")
            if selected:
                self.driver.cprint(ColorPair.SELECTED, True, ">")
            else:
                self.driver.cprint(ColorPair.NORMAL, False, " ")
            self.print_highlighted(item, False, ColorPair.NORMAL, ColorPair.MATCH)

    def print_highlighted(self, item: "Item", bold: bool, base: ColorPair, match: ColorPair) -> None:
        """Prints an item's text with its match ranges in the *match* color."""
        max_width = self.driver.max_x() - 3
        text, offsets = fit_highlighted(
            item.text, item.offsets, max_width, self.terminal.options.hscroll, self.widths
        )

        index = 0
        col = 0
        end = len(text)
        for b, e in offsets:
            b = max(index, min(b, end))
            e = max(index, min(e, end))

            chunk, col = process_tabs(text[index:b], col, self.widths)
            self.driver.cprint(base, bold, chunk)
            if b < e:
                chunk, col = process_tabs(text[b:e], col, self.widths)
                self.driver.cprint(match, bold, chunk)

            index = e
            if index >= end:
                break
        if index < end:
            chunk, _ = process_tabs(text[index:], col, self.widths)
            self.driver.cprint(base, bold, chunk)

    def print_all(self) -> None:
        self.print_list()
        self.print_prompt()
        self.print_info()
