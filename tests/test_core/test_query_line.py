# tests/test_core/test_query_line.py
"""QueryLine Tests
========================

Unit tests for query editing: cursor motions, word motions, kill and yank,
and the cursor bound that every operation must keep.
"""

import random

import pytest

from fzterm.core.QueryLine import (
    SPACE_WORD_START,
    WORD_END,
    WORD_START,
    QueryLine,
    find_first_match,
    find_last_match,
)


def test_insert_advances_cursor() -> None:
    q = QueryLine()
    for ch in "abc":
        q.insert(ch)
    q.backward_char()
    q.insert("X")
    assert q.text == "abXc"
    assert q.cx == 3


def test_new_query_puts_cursor_at_end() -> None:
    q = QueryLine("hello")
    assert q.cx == 5
    q.beginning_of_line()
    assert q.cx == 0
    q.end_of_line()
    assert q.cx == 5


def test_backward_kill_word_then_yank() -> None:
    """Killing the only word empties the query; yanking restores it."""
    q = QueryLine("abc")
    q.backward_kill_word()
    assert (q.text, q.cx, q.yanked) == ("", 0, "abc")

    q.yank()
    assert (q.text, q.cx) == ("abc", 3)


def test_unix_word_rubout_stops_at_whitespace() -> None:
    q = QueryLine("foo-bar baz")
    q.unix_word_rubout()
    assert q.text == "foo-bar "
    assert q.yanked == "baz"
    q.unix_word_rubout()
    assert q.text == ""
    assert q.yanked == "foo-bar "


def test_backward_kill_word_stops_at_punctuation() -> None:
    q = QueryLine("foo-bar")
    q.backward_kill_word()
    assert q.text == "foo-"
    assert q.yanked == "bar"


def test_backward_word_walks_word_starts() -> None:
    q = QueryLine("foo-bar baz")
    positions = []
    for _ in range(4):
        q.backward_word()
        positions.append(q.cx)
    assert positions == [8, 4, 0, 0]


def test_forward_word_walks_word_ends() -> None:
    q = QueryLine("foo-bar baz")
    q.beginning_of_line()
    positions = []
    for _ in range(4):
        q.forward_word()
        positions.append(q.cx)
    assert positions == [3, 7, 11, 11]


def test_kill_word_removes_to_word_end() -> None:
    q = QueryLine("foo bar")
    q.beginning_of_line()
    q.kill_word()
    assert q.text == " bar"
    assert q.yanked == "foo"
    assert q.cx == 0


def test_kill_line_and_unix_line_discard() -> None:
    q = QueryLine("hello world")
    q.move_to(5)
    q.kill_line()
    assert (q.text, q.yanked) == ("hello", " world")

    q.move_to(2)
    q.unix_line_discard()
    assert (q.text, q.cx, q.yanked) == ("llo", 0, "he")


def test_delete_char_reports_nothing_to_delete() -> None:
    q = QueryLine("")
    assert q.delete_char() is False

    q = QueryLine("ab")
    q.beginning_of_line()
    assert q.delete_char() is True
    assert q.text == "b"
    q.end_of_line()
    assert q.delete_char() is False


def test_backward_delete_char_at_start_is_noop() -> None:
    q = QueryLine("ab")
    q.beginning_of_line()
    q.backward_delete_char()
    assert (q.text, q.cx) == ("ab", 0)


def test_move_to_clamps() -> None:
    q = QueryLine("abc")
    q.move_to(-4)
    assert q.cx == 0
    q.move_to(99)
    assert q.cx == 3


@pytest.mark.parametrize(
    "pattern, text, last, first",
    [
        (WORD_START, "a b", 1, 1),
        (WORD_START, "abc", -1, -1),
        (SPACE_WORD_START, "x  y", 2, 2),
        (WORD_END, "ab", 1, 1),
        (r"\s\S", "a b c", 3, 1),
    ],
)
def test_find_matches(pattern, text, last, first) -> None:
    assert find_last_match(pattern, text) == last
    assert find_first_match(pattern, text) == first


def test_invalid_regex_never_matches() -> None:
    assert find_last_match("[unclosed", "a [unclosed b") == -1
    assert find_first_match("(", "((") == -1


def test_unicode_word_characters() -> None:
    q = QueryLine("héllo wörld")
    q.backward_kill_word()
    assert q.text == "héllo "
    assert q.yanked == "wörld"


def test_random_edits_keep_cursor_in_bounds() -> None:
    """Any sequence of editing operations keeps 0 <= cx <= len(text)."""
    rng = random.Random(20240611)
    ops = [
        QueryLine.beginning_of_line,
        QueryLine.end_of_line,
        QueryLine.backward_char,
        QueryLine.forward_char,
        QueryLine.backward_word,
        QueryLine.forward_word,
        QueryLine.backward_delete_char,
        QueryLine.delete_char,
        QueryLine.unix_line_discard,
        QueryLine.unix_word_rubout,
        QueryLine.backward_kill_word,
        QueryLine.kill_word,
        QueryLine.kill_line,
        QueryLine.yank,
    ]
    alphabet = "ab -_./\tZé"
    q = QueryLine()
    for _ in range(3000):
        if rng.random() < 0.4:
            q.insert(rng.choice(alphabet))
        else:
            rng.choice(ops)(q)
        assert 0 <= q.cx <= len(q.text), repr(q)
