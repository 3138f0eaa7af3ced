# fzterm/core/QueryLine.py
"""QueryLine: the editable query with its cursor and yank buffer.

Word motions are defined by boundaries between character classes. A
`Boundary` matches at index ``i`` when ``text[i]`` belongs to its left class
and ``text[i + 1]`` to its right class; ``at_end`` additionally lets it match
on the last character of the text. A regular expression string is accepted
wherever a boundary is, and an expression that does not compile simply never
matches.
"""

import logging
import re
from typing import Callable, NamedTuple, Union

logger = logging.getLogger(__name__)


def _is_word(ch: str) -> bool:
    return ch.isalnum()


def _is_not_word(ch: str) -> bool:
    return not ch.isalnum()


def _is_space(ch: str) -> bool:
    return ch.isspace()


def _is_not_space(ch: str) -> bool:
    return not ch.isspace()


class Boundary(NamedTuple):
    left: Callable[[str], bool]
    right: Callable[[str], bool]
    at_end: bool = False

    def matches_at(self, text: str, i: int) -> bool:
        if i + 1 < len(text):
            return self.left(text[i]) and self.right(text[i + 1])
        return self.at_end and i == len(text) - 1


# Start of an alphanumeric run.
WORD_START = Boundary(_is_not_word, _is_word)
# End of an alphanumeric run, or the last character.
WORD_END = Boundary(_is_word, _is_not_word, at_end=True)
# Start of a whitespace-delimited word.
SPACE_WORD_START = Boundary(_is_space, _is_not_space)

Pattern = Union[Boundary, str]


def _compile(pattern: str) -> "re.Pattern[str] | None":
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning("Ignoring invalid boundary pattern %r: %s", pattern, e)
        return None


def find_last_match(pattern: Pattern, text: str) -> int:
    """Index where the last match of *pattern* starts, or -1."""
    if isinstance(pattern, str):
        rx = _compile(pattern)
        if rx is None:
            return -1
        starts = [m.start() for m in rx.finditer(text)]
        return starts[-1] if starts else -1
    for i in range(len(text) - 1, -1, -1):
        if pattern.matches_at(text, i):
            return i
    return -1


def find_first_match(pattern: Pattern, text: str) -> int:
    """Index where the first match of *pattern* starts, or -1."""
    if isinstance(pattern, str):
        rx = _compile(pattern)
        if rx is None:
            return -1
        m = rx.search(text)
        return m.start() if m else -1
    for i in range(len(text)):
        if pattern.matches_at(text, i):
            return i
    return -1


class QueryLine:
    """Query text, cursor position `cx` and the single-slot yank buffer.

    Every operation keeps ``0 <= cx <= len(text)``.
    """

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.cx = len(text)
        self.yanked = ""

    def __len__(self) -> int:
        return len(self.text)

    def __repr__(self) -> str:
        return f"QueryLine({self.text!r}, cx={self.cx}, yanked={self.yanked!r})"

    # --- cursor motion ---

    def beginning_of_line(self) -> None:
        self.cx = 0

    def end_of_line(self) -> None:
        self.cx = len(self.text)

    def backward_char(self) -> None:
        if self.cx > 0:
            self.cx -= 1

    def forward_char(self) -> None:
        if self.cx < len(self.text):
            self.cx += 1

    def move_to(self, col: int) -> None:
        self.cx = max(0, min(col, len(self.text)))

    def backward_word(self) -> None:
        self.cx = find_last_match(WORD_START, self.text[:self.cx]) + 1

    def forward_word(self) -> None:
        self.cx += find_first_match(WORD_END, self.text[self.cx:]) + 1

    # --- editing ---

    def insert(self, ch: str) -> None:
        self.text = self.text[:self.cx] + ch + self.text[self.cx:]
        self.cx += len(ch)

    def delete_char(self) -> bool:
        """Deletes the character under the cursor; False when there is none."""
        if self.text and self.cx < len(self.text):
            self.text = self.text[:self.cx] + self.text[self.cx + 1:]
            return True
        return False

    def backward_delete_char(self) -> None:
        if self.cx > 0:
            self.text = self.text[:self.cx - 1] + self.text[self.cx:]
            self.cx -= 1

    def set_text(self, text: str) -> None:
        """Replaces the whole query and puts the cursor at the end."""
        self.text = text
        self.cx = len(text)

    # --- kill / yank ---

    def unix_line_discard(self) -> None:
        if self.cx > 0:
            self.yanked = self.text[:self.cx]
            self.text = self.text[self.cx:]
            self.cx = 0

    def kill_line(self) -> None:
        if self.cx < len(self.text):
            self.yanked = self.text[self.cx:]
            self.text = self.text[:self.cx]

    def kill_word(self) -> None:
        ncx = self.cx + find_first_match(WORD_END, self.text[self.cx:]) + 1
        if ncx > self.cx:
            self.yanked = self.text[self.cx:ncx]
            self.text = self.text[:self.cx] + self.text[ncx:]

    def rubout(self, pattern: Pattern) -> None:
        """Deletes back to just after the last *pattern* match before the cursor."""
        pcx = self.cx
        self.cx = find_last_match(pattern, self.text[:pcx]) + 1
        self.yanked = self.text[self.cx:pcx]
        self.text = self.text[:self.cx] + self.text[pcx:]

    def unix_word_rubout(self) -> None:
        if self.cx > 0:
            self.rubout(SPACE_WORD_START)

    def backward_kill_word(self) -> None:
        if self.cx > 0:
            self.rubout(WORD_START)

    def yank(self) -> None:
        self.text = self.text[:self.cx] + self.yanked + self.text[self.cx:]
        self.cx += len(self.yanked)
