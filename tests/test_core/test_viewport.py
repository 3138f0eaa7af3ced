# tests/test_core/test_viewport.py
"""Viewport and SelectionSet Tests
==================================

Unit tests for cursor and scroll bookkeeping of the result list and for the
selection set.

This test module verifies that:

1. `Viewport.constrain` keeps the cursor inside the list and the window and
   is idempotent.
2. `vmove` honors the layout direction and wraps only from a boundary row
   when cycling.
3. `SelectionSet` reports selections in the order they were made.
"""

import itertools

import pytest

from fzterm.core.Viewport import SelectionSet, Viewport, constrain


def test_constrain_helper() -> None:
    assert constrain(5, 0, 3) == 3
    assert constrain(-1, 0, 3) == 0
    assert constrain(2, 0, -1) == 0


def test_constrain_is_idempotent() -> None:
    """Applying constrain twice never changes the state a second time."""
    for length, height, cy, offset in itertools.product(
        range(0, 9), range(1, 6), range(-2, 12), range(-2, 12)
    ):
        vp = Viewport(cy=cy, offset=offset)
        vp.constrain(length, height)
        once = (vp.cy, vp.offset)
        vp.constrain(length, height)
        assert (vp.cy, vp.offset) == once, (length, height, cy, offset)

        assert vp.offset >= 0
        if length == 0:
            assert once == (0, 0)
        else:
            assert 0 <= vp.cy < length
            assert 0 <= vp.cy - vp.offset < height


def test_constrain_scrolls_to_cursor() -> None:
    vp = Viewport(cy=7, offset=0)
    vp.constrain(10, 5)
    assert (vp.cy, vp.offset) == (7, 3)

    vp.cy = 1
    vp.constrain(10, 5)
    assert (vp.cy, vp.offset) == (1, 1)


def test_constrain_keeps_screen_row_when_list_shrinks() -> None:
    vp = Viewport(cy=7, offset=3)
    vp.constrain(4, 5)
    assert (vp.cy, vp.offset) == (3, 0)


def test_vmove_default_layout() -> None:
    vp = Viewport()
    vp.vmove(1, 5)
    assert vp.cy == 1
    vp.vmove(-1, 5)
    vp.vmove(-1, 5)
    assert vp.cy == 0


def test_vmove_reversed_layout_flips_direction() -> None:
    vp = Viewport(reverse=True)
    vp.vmove(-1, 5)
    assert vp.cy == 1
    vp.vmove(1, 5)
    assert vp.cy == 0


def test_vmove_cycle_wraps_only_from_boundary() -> None:
    vp = Viewport(cycle=True)
    vp.vmove(-1, 5)
    assert vp.cy == 4

    vp.vmove(1, 5)
    assert vp.cy == 0

    vp.cy = 2
    vp.vmove(10, 5)
    assert vp.cy == 4


def test_vmove_cycle_reversed_from_top_row() -> None:
    vp = Viewport(reverse=True, cycle=True)
    vp.vmove(1, 5)
    assert vp.cy == 4


def test_vmove_on_empty_list() -> None:
    vp = Viewport(cycle=True)
    vp.vmove(1, 0)
    assert vp.cy == 0


@pytest.mark.parametrize("pos, expected_cy, exact", [(2, 2, True), (7, 4, False), (-3, 0, False)])
def test_vset(pos: int, expected_cy: int, exact: bool) -> None:
    vp = Viewport()
    assert vp.vset(pos, 5) is exact
    assert vp.cy == expected_cy


def test_selection_order_follows_selection_time() -> None:
    sel = SelectionSet()
    sel.select(5, "five", at=3.0)
    sel.select(1, "one", at=1.0)
    sel.select(9, "nine", at=2.0)
    assert sel.texts() == ["one", "nine", "five"]


def test_selection_ties_keep_insertion_order() -> None:
    sel = SelectionSet()
    for index, text in [(3, "c"), (1, "a"), (2, "b")]:
        sel.select(index, text, at=1.0)
    assert sel.texts() == ["c", "a", "b"]


def test_select_twice_keeps_first_timestamp() -> None:
    sel = SelectionSet()
    assert sel.select(1, "a", at=1.0) is True
    assert sel.select(1, "a", at=9.0) is False
    sel.select(2, "b", at=5.0)
    assert sel.texts() == ["a", "b"]


def test_toggle_and_deselect() -> None:
    sel = SelectionSet()
    assert sel.toggle(4, "x") is True
    assert 4 in sel
    assert sel.toggle(4, "x") is False
    assert 4 not in sel
    assert len(sel) == 0

    sel.select(1, "a")
    assert sel.deselect(1) is True
    assert sel.deselect(1) is False


def test_clear() -> None:
    sel = SelectionSet()
    sel.select(1, "a")
    sel.select(2, "b")
    sel.clear()
    assert len(sel) == 0
    assert list(sel) == []
