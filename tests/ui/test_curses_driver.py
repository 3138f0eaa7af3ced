# tests/ui/test_curses_driver.py
"""Tests for `CursesDriver`, mostly without a real terminal.

The driver's window is replaced by a `MagicMock`, and module-level curses
functions that would need an initialized screen are patched one by one. The
last test runs the driver for real inside a pseudo-terminal.
"""

import curses
import os
import pty
import select
from unittest.mock import MagicMock

import pytest

from fzterm.ui.CursesDriver import COLOR_DEFINITIONS, MONO_ATTRS, CursesDriver
from fzterm.ui.DrawScreen import ColorPair
from fzterm.ui.KeyBinder import Event, Key, MouseEvent
from fzterm.utils.utils import hex_to_xterm


@pytest.fixture
def driver() -> CursesDriver:
    d = CursesDriver()
    d.stdscr = MagicMock()
    d.inputwin = MagicMock()
    return d


def feed(driver: CursesDriver, *keys) -> None:
    """Scripts `get_wch`; the input runs dry after *keys*."""
    driver.inputwin.get_wch.side_effect = list(keys) + [curses.error("no input")]


# --- keys ---------------------------------------------------------------------


@pytest.mark.parametrize(
    "key, expected",
    [
        ("a", Event(Key.RUNE, "a")),
        ("é", Event(Key.RUNE, "é")),
        ("\x01", Event(Key.CTRL_A)),
        ("\r", Event(Key.ENTER)),
        ("\n", Event(Key.CTRL_J)),
        ("\t", Event(Key.TAB)),
        ("\x7f", Event(Key.BSPACE)),
        ("\x1c", Event(Key.INVALID)),
        (curses.KEY_UP, Event(Key.UP)),
        (curses.KEY_NPAGE, Event(Key.PGDN)),
        (curses.KEY_BTAB, Event(Key.BTAB)),
        (curses.KEY_F3, Event(Key.F3)),
        (curses.KEY_F9, Event(Key.INVALID)),
    ],
)
def test_decode(driver, key, expected) -> None:
    assert driver.decode(key) == expected


def test_read_event(driver) -> None:
    feed(driver, "x")
    assert driver.read_event() == Event(Key.RUNE, "x")
    assert driver.read_event() == Event(Key.INVALID)


# --- escape sequences ---------------------------------------------------------


@pytest.mark.parametrize(
    "tail, expected",
    [
        ((), Key.ESC),
        (("b",), Key.ALT_A + 1),
        (("\x7f",), Key.ALT_BS),
        (("B",), Key.INVALID),
        (("[", "A"), Key.UP),
        (("O", "D"), Key.LEFT),
        (("[", "1", ";", "2", "C"), Key.SRIGHT),
        (("[", "5", "~"), Key.PGUP),
        (("[", "Z"), Key.BTAB),
        (("O", "Q"), Key.F2),
        (("[", "9", "9", "~"), Key.INVALID),
    ],
)
def test_escape_sequences(driver, tail, expected) -> None:
    feed(driver, *tail)
    assert driver.decode("\x1b") == Event(expected)
    assert driver.inputwin.nodelay.call_args_list[-1].args == (False,)


def test_doubled_escape_is_alt(driver) -> None:
    feed(driver, "\x1b", "[", "A")
    assert driver.decode("\x1b") == Event(Key.UP)


# --- mouse --------------------------------------------------------------------


def mouse_report(monkeypatch, bstate: int, x: int = 5, y: int = 3) -> None:
    monkeypatch.setattr(curses, "getmouse", lambda: (0, x, y, 0, bstate))


def test_wheel_up(driver, monkeypatch) -> None:
    mouse_report(monkeypatch, curses.BUTTON4_PRESSED)
    assert driver.decode(curses.KEY_MOUSE) == Event(Key.MOUSE, mouse=MouseEvent(3, 5, scroll=1))


@pytest.mark.skipif(not hasattr(curses, "BUTTON5_PRESSED"), reason="no wheel-down button in this curses")
def test_wheel_down(driver, monkeypatch) -> None:
    mouse_report(monkeypatch, curses.BUTTON5_PRESSED)
    assert driver.decode(curses.KEY_MOUSE).mouse.scroll == -1


def test_double_click(driver, monkeypatch) -> None:
    mouse_report(monkeypatch, curses.BUTTON1_DOUBLE_CLICKED)
    assert driver.decode(curses.KEY_MOUSE).mouse == MouseEvent(3, 5, double=True)


def test_press_with_modifier(driver, monkeypatch) -> None:
    mouse_report(monkeypatch, curses.BUTTON1_PRESSED | curses.BUTTON_CTRL)
    assert driver.decode(curses.KEY_MOUSE).mouse == MouseEvent(3, 5, down=True, mod=True)


def test_unusable_mouse_report(driver, monkeypatch) -> None:
    def fail():
        raise curses.error("no mouse")

    monkeypatch.setattr(curses, "getmouse", fail)
    assert driver.decode(curses.KEY_MOUSE) == Event(Key.INVALID)


# --- output -------------------------------------------------------------------


def test_cprint_applies_attributes(driver) -> None:
    driver.attrs = {ColorPair.MATCH: 512}
    driver.cprint(ColorPair.MATCH, True, "x")
    driver.stdscr.addstr.assert_called_once_with("x", 512 | curses.A_BOLD)


def test_cprint_skips_empty_text(driver) -> None:
    driver.cprint(ColorPair.NORMAL, False, "")
    driver.stdscr.addstr.assert_not_called()


def test_cprint_ignores_curses_errors(driver) -> None:
    driver.stdscr.addstr.side_effect = curses.error("bottom-right cell")
    driver.cprint(ColorPair.NORMAL, False, "x")


def test_move_with_clear(driver) -> None:
    driver.move(2, 4, clear=True)
    driver.stdscr.move.assert_called_once_with(2, 4)
    driver.stdscr.clrtoeol.assert_called_once()


def test_uninitialized_driver_is_inert() -> None:
    d = CursesDriver()
    d.move(0, 0, True)
    d.cprint(ColorPair.NORMAL, False, "x")
    d.refresh()
    d.close()
    assert d.max_y() == 0


# --- lifecycle and colors -----------------------------------------------------


def test_close_is_idempotent(driver, monkeypatch) -> None:
    endwin = MagicMock()
    for name in ("noraw", "echo", "nl"):
        monkeypatch.setattr(curses, name, MagicMock())
    monkeypatch.setattr(curses, "endwin", endwin)
    driver.close()
    driver.close()
    endwin.assert_called_once()


def test_bw_theme_uses_attributes_only(driver) -> None:
    driver.init_colors("bw", False)
    assert driver.attrs == MONO_ATTRS


@pytest.fixture
def fake_colors(monkeypatch):
    init_pair = MagicMock()
    monkeypatch.setattr(curses, "has_colors", lambda: True)
    monkeypatch.setattr(curses, "start_color", lambda: None)
    monkeypatch.setattr(curses, "use_default_colors", lambda: None)
    monkeypatch.setattr(curses, "init_pair", init_pair)
    monkeypatch.setattr(curses, "color_pair", lambda n: n << 8)
    monkeypatch.setattr(curses, "COLORS", 256, raising=False)
    monkeypatch.setattr(curses, "COLOR_PAIRS", 256, raising=False)
    return init_pair


def test_dark_theme_with_user_override(fake_colors) -> None:
    d = CursesDriver(colors={"prompt": "#ff0000"})
    d.init_colors("dark", False)

    fake_colors.assert_any_call(int(ColorPair.PROMPT), 196, -1)
    fake_colors.assert_any_call(int(ColorPair.CURRENT), hex_to_xterm("#e4e4e4"), hex_to_xterm("#303030"))
    assert d.attrs[ColorPair.MATCH] == int(ColorPair.MATCH) << 8
    assert len(d.attrs) == len(COLOR_DEFINITIONS)


def test_sixteen_color_theme_on_black(fake_colors) -> None:
    d = CursesDriver(colors={"prompt": "#ff0000"})
    d.init_colors("16", True)
    fake_colors.assert_any_call(int(ColorPair.PROMPT), curses.COLOR_BLUE, curses.COLOR_BLACK)


# --- real terminal ------------------------------------------------------------


def _read_output(fd: int, quiet: float) -> bytes:
    """Collects pty output until nothing arrives for *quiet* seconds or EOF."""
    data = b""
    while True:
        ready, _, _ = select.select([fd], [], [], quiet)
        if not ready:
            return data
        try:
            chunk = os.read(fd, 4096)
        except OSError:  # EIO once the child has exited
            return data
        if not chunk:
            return data
        data += chunk


def _paint_then_read() -> None:
    """Runs in the pty child: paints without refreshing, then blocks on a key."""
    os.environ["TERM"] = "xterm"
    d = CursesDriver()
    d.init(theme="bw", mouse=False)
    d.move(3, 0, True)
    d.cprint(ColorPair.NORMAL, False, "UNFLUSHED_PAINT")
    event = d.read_event()
    d.refresh()
    d.close()
    os._exit(0 if event == Event(Key.RUNE, "x") else 3)


@pytest.mark.skipif(not hasattr(os, "fork"), reason="needs fork and a pty")
def test_reading_a_key_does_not_flush_pending_paint() -> None:
    pid, fd = pty.fork()
    if pid == 0:
        try:
            _paint_then_read()
        finally:
            os._exit(1)

    try:
        before = _read_output(fd, 0.5)
        os.write(fd, b"x")
        after = _read_output(fd, 2.0)
    finally:
        _, status = os.waitpid(pid, 0)
        os.close(fd)

    assert b"UNFLUSHED_PAINT" not in before
    assert b"UNFLUSHED_PAINT" in after
    assert os.waitstatus_to_exitcode(status) == 0
