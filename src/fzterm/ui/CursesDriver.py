# fzterm/ui/CursesDriver.py
"""CursesDriver.py
========================
The terminal driver: everything that talks to curses lives here.

It is responsible for:
- putting the terminal into raw, no-echo, keypad mode and restoring it,
- decoding keys, escape sequences and mouse reports into `Event`s,
- color pairs for the "dark", "16" and "bw" themes, with per-color hex
  overrides from the ``[colors]`` configuration section,
- cursor movement, printing and refreshing,
- suspending the screen while an external command runs.

Painting faults (`curses.error`, typically writing into the bottom-right
cell) are logged and ignored.
"""

import curses
import logging
import os
import re
from typing import Optional

from fzterm.ui.DrawScreen import ColorPair
from fzterm.ui.KeyBinder import Event, Key, MouseEvent
from fzterm.utils.logging_config import KEY_LOGGER
from fzterm.utils.utils import hex_to_xterm


logger = logging.getLogger(__name__)

# Normalized escape sequences, without the leading ESC.
ESCAPE_SEQUENCE_MAP: dict[str, int] = {
    "[A": Key.UP, "[B": Key.DOWN, "[C": Key.RIGHT, "[D": Key.LEFT,
    "OA": Key.UP, "OB": Key.DOWN, "OC": Key.RIGHT, "OD": Key.LEFT,
    "[1;2C": Key.SRIGHT, "[1;2D": Key.SLEFT,
    "[H": Key.HOME, "[F": Key.END, "OH": Key.HOME, "OF": Key.END,
    "[1~": Key.HOME, "[4~": Key.END, "[7~": Key.HOME, "[8~": Key.END,
    "[3~": Key.DEL, "[5~": Key.PGUP, "[6~": Key.PGDN,
    "[Z": Key.BTAB,
    "OP": Key.F1, "OQ": Key.F2, "OR": Key.F3, "OS": Key.F4,
    "[11~": Key.F1, "[12~": Key.F2, "[13~": Key.F3, "[14~": Key.F4,
}

CURSES_KEY_MAP: dict[int, int] = {
    curses.KEY_UP: Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    curses.KEY_LEFT: Key.LEFT,
    curses.KEY_RIGHT: Key.RIGHT,
    curses.KEY_HOME: Key.HOME,
    curses.KEY_END: Key.END,
    curses.KEY_PPAGE: Key.PGUP,
    curses.KEY_NPAGE: Key.PGDN,
    curses.KEY_DC: Key.DEL,
    curses.KEY_BACKSPACE: Key.BSPACE,
    curses.KEY_BTAB: Key.BTAB,
    curses.KEY_SLEFT: Key.SLEFT,
    curses.KEY_SRIGHT: Key.SRIGHT,
    curses.KEY_ENTER: Key.ENTER,
    curses.KEY_F1: Key.F1,
    curses.KEY_F2: Key.F2,
    curses.KEY_F3: Key.F3,
    curses.KEY_F4: Key.F4,
}

# pair -> (config name, 256-color hex, 8-color fallback, on the highlight background)
COLOR_DEFINITIONS: dict[ColorPair, tuple[str, str, int, bool]] = {
    ColorPair.PROMPT: ("prompt", "#87afd7", curses.COLOR_BLUE, False),
    ColorPair.MATCH: ("match", "#87af87", curses.COLOR_GREEN, False),
    ColorPair.CURRENT: ("current", "#e4e4e4", curses.COLOR_YELLOW, True),
    ColorPair.CURRENT_MATCH: ("current_match", "#afd7af", curses.COLOR_GREEN, True),
    ColorPair.SPINNER: ("spinner", "#afd700", curses.COLOR_GREEN, False),
    ColorPair.INFO: ("info", "#afaf87", curses.COLOR_WHITE, False),
    ColorPair.CURSOR: ("cursor", "#d7005f", curses.COLOR_RED, True),
    ColorPair.SELECTED: ("selected", "#d75f87", curses.COLOR_MAGENTA, True),
}
DARK_BG_HEX = "#303030"

# Attributes used when the terminal has no usable colors.
MONO_ATTRS: dict[ColorPair, int] = {
    ColorPair.MATCH: curses.A_UNDERLINE,
    ColorPair.CURRENT: curses.A_REVERSE,
    ColorPair.CURRENT_MATCH: curses.A_UNDERLINE | curses.A_REVERSE,
    ColorPair.CURSOR: curses.A_REVERSE,
    ColorPair.SELECTED: curses.A_REVERSE,
}

_ALT_BS_CHARS = ("\x7f", "\x08")


class CursesDriver:
    """Class CursesDriver
    =========================
    Attributes:
        user_colors (dict[str, str]): Hex overrides keyed by color name.
        escdelay (int): Milliseconds to wait for the rest of an escape sequence.
        stdscr (curses.window | None): Main window once initialized.
        inputwin (curses.window | None): 1x1 window keys are read from; never
            drawn on, so a blocking read never flushes `stdscr`.
        attrs (dict[ColorPair, int]): curses attribute of each logical color.
    """

    def __init__(self, colors: Optional[dict[str, str]] = None, escdelay: int = 25) -> None:
        self.user_colors = dict(colors or {})
        self.escdelay = escdelay
        self.stdscr: Optional[curses.window] = None
        self.inputwin: Optional[curses.window] = None
        self.attrs: dict[ColorPair, int] = {}
        self._closed = False

    # --- lifecycle ---

    def init(self, theme: str = "dark", black: bool = False, mouse: bool = True) -> None:
        """Initializes curses and puts the terminal into application mode."""
        self.stdscr = curses.initscr()
        try:
            curses.raw()
        except curses.error:
            curses.cbreak()
        curses.noecho()
        curses.nonl()
        self.inputwin = curses.newwin(1, 1, 0, 0)
        self.inputwin.keypad(True)
        self.inputwin.leaveok(True)
        # Leave the input window untouched so get_wch never refreshes.
        self.inputwin.noutrefresh()
        try:
            curses.set_escdelay(self.escdelay)
        except (AttributeError, curses.error) as e:
            logger.debug("set_escdelay(%d) unavailable: %r", self.escdelay, e)
        if mouse:
            curses.mousemask(curses.ALL_MOUSE_EVENTS)
        self.init_colors(theme, black)
        self.stdscr.leaveok(False)
        self.stdscr.erase()
        logger.debug("CursesDriver: initialized (theme=%s, black=%s, mouse=%s)", theme, black, mouse)

    def init_colors(self, theme: str, black: bool) -> None:
        """Initializes color pairs with graceful degradation."""
        self.attrs = {}
        if theme == "bw" or not curses.has_colors():
            self.attrs = dict(MONO_ATTRS)
            return

        curses.start_color()
        try:
            curses.use_default_colors()
        except curses.error:
            black = True

        can_use_256_colors = theme == "dark" and curses.COLORS >= 256
        if can_use_256_colors:
            bg = 16 if black else -1
            dark_bg = hex_to_xterm(self.user_colors.get("dark_bg", DARK_BG_HEX))
        else:
            bg = curses.COLOR_BLACK if black else -1
            dark_bg = curses.COLOR_BLACK

        for pair, (name, default_hex, default_8_color, on_dark_bg) in COLOR_DEFINITIONS.items():
            if pair >= curses.COLOR_PAIRS:
                logger.warning("Ran out of color pairs; '%s' falls back to attributes.", name)
                self.attrs[pair] = MONO_ATTRS.get(pair, curses.A_NORMAL)
                continue
            fg = hex_to_xterm(self.user_colors.get(name, default_hex)) if can_use_256_colors else default_8_color
            try:
                curses.init_pair(int(pair), fg, dark_bg if on_dark_bg else bg)
                self.attrs[pair] = curses.color_pair(int(pair))
            except curses.error as e:
                logger.error(f"Failed to initialize curses pair for '{name}': {e}")
                self.attrs[pair] = MONO_ATTRS.get(pair, curses.A_NORMAL)

    def close(self) -> None:
        """Restores the terminal; safe to call more than once."""
        if self._closed or self.stdscr is None:
            return
        self._closed = True
        try:
            if self.inputwin is not None:
                self.inputwin.keypad(False)
            curses.noraw()
            curses.echo()
            curses.nl()
        except curses.error as e:
            logger.debug("Restoring terminal modes failed: %r", e)
        curses.endwin()
        logger.debug("CursesDriver: closed")

    def leave_managed_mode(self) -> None:
        """Hands the terminal to a child process."""
        curses.endwin()

    def enter_managed_mode(self) -> None:
        if self.stdscr is not None:
            self.stdscr.refresh()

    # --- geometry ---

    def max_y(self) -> int:
        return self.stdscr.getmaxyx()[0] if self.stdscr is not None else 0

    def max_x(self) -> int:
        return self.stdscr.getmaxyx()[1] if self.stdscr is not None else 0

    def clear(self) -> None:
        """Clears the screen, picking up a changed terminal size first."""
        if self.stdscr is None:
            return
        try:
            size = os.get_terminal_size(1)
            if (size.lines, size.columns) != self.stdscr.getmaxyx():
                curses.resizeterm(size.lines, size.columns)
        except (OSError, curses.error) as e:
            logger.debug("Terminal size resync skipped: %r", e)
        self.stdscr.clear()

    # --- output ---

    def move(self, y: int, x: int, clear: bool = False) -> None:
        if self.stdscr is None:
            return
        try:
            self.stdscr.move(y, x)
            if clear:
                self.stdscr.clrtoeol()
        except curses.error as e:
            logger.debug("move(%d, %d) failed: %r", y, x, e)

    def cprint(self, color: ColorPair, bold: bool, text: str) -> None:
        if self.stdscr is None or not text:
            return
        attr = self.attrs.get(color, curses.A_NORMAL)
        if bold:
            attr |= curses.A_BOLD
        try:
            self.stdscr.addstr(text, attr)
        except curses.error:
            # Writing past the last column of the last row always "fails".
            pass

    def refresh(self) -> None:
        if self.stdscr is None:
            return
        try:
            self.stdscr.refresh()
        except curses.error as e:
            logger.error(f"Curses error during refresh: {e}")

    # --- input ---

    def read_event(self) -> Event:
        """Blocks for the next key or mouse event."""
        try:
            key = self.inputwin.get_wch()
        except curses.error:
            return Event(Key.INVALID)
        event = self.decode(key)
        KEY_LOGGER.debug("raw=%r event=%r", key, event)
        return event

    def decode(self, key: "int | str") -> Event:
        if isinstance(key, int):
            if key == curses.KEY_MOUSE:
                return self._mouse_event()
            return Event(CURSES_KEY_MAP.get(key, Key.INVALID))

        code = ord(key)
        if code == 27:
            return self._escape_event()
        if code == 127:
            return Event(Key.BSPACE)
        if Key.CTRL_A <= code <= Key.CTRL_Z:
            return Event(code)
        if code < 32:
            return Event(Key.INVALID)
        return Event(Key.RUNE, key)

    def _read_pending(self) -> str:
        """Reads whatever follows an ESC without blocking."""
        seq = ""
        self.inputwin.nodelay(True)
        try:
            while True:
                try:
                    nx = self.inputwin.get_wch()
                except curses.error:
                    break
                seq += nx if isinstance(nx, str) else f"<{nx}>"
        finally:
            self.inputwin.nodelay(False)
        return seq

    def _escape_event(self) -> Event:
        seq = self._read_pending()
        if not seq:
            return Event(Key.ESC)
        if seq[0] == "\x1b":
            seq = seq[1:]

        if len(seq) == 1:
            if seq in _ALT_BS_CHARS:
                return Event(Key.ALT_BS)
            if "a" <= seq <= "z":
                return Event(Key.ALT_A + ord(seq) - ord("a"))
            return Event(Key.INVALID)

        code = ESCAPE_SEQUENCE_MAP.get(seq)
        if code is None:
            cleaned = "".join(re.findall(r"[\[O0-9;~A-Za-z]", seq))
            code = ESCAPE_SEQUENCE_MAP.get(cleaned)
        if code is None:
            logger.warning("Unknown escape sequence: ESC + %r", seq)
            return Event(Key.INVALID)
        return Event(code)

    def _mouse_event(self) -> Event:
        try:
            _, x, y, _, bstate = curses.getmouse()
        except curses.error:
            return Event(Key.INVALID)

        mod = bool(bstate & (curses.BUTTON_CTRL | curses.BUTTON_ALT | curses.BUTTON_SHIFT))
        if bstate & curses.BUTTON4_PRESSED:
            me = MouseEvent(y, x, scroll=1, mod=mod)
        elif bstate & getattr(curses, "BUTTON5_PRESSED", 0):
            me = MouseEvent(y, x, scroll=-1, mod=mod)
        elif bstate & curses.BUTTON1_DOUBLE_CLICKED:
            me = MouseEvent(y, x, double=True, mod=mod)
        elif bstate & (curses.BUTTON1_PRESSED | curses.BUTTON1_CLICKED):
            me = MouseEvent(y, x, down=True, mod=mod)
        else:
            return Event(Key.INVALID)
        return Event(Key.MOUSE, mouse=me)
