# fzterm/ui/KeyBinder.py
"""KeyBinder.py
==================
Description:
-----------------------
KeyBinder translates terminal key events into finder actions. It owns the key
vocabulary shared by the terminal driver and the dispatcher, the default key
table, and the parsing of user bindings from the configuration.

Key Features:
- Driver-independent integer key codes (`Key`) and the `Event` / `MouseEvent`
  records produced by the terminal driver.
- The closed set of finder actions (`Action`).
- Parsing of key specifications ("ctrl-a", "ctrl+a", "alt-b", "f1", "pgup",
  single characters) and of bindings, including `execute(...)` commands.
- Resolution of an event to exactly one action: direct lookup by key code,
  where a printable character may be overridden by a binding for that very
  character.
- Naming of the key that accepted the session, for the output contract.

A printable character used as a binding key is encoded as ``Key.ALT_Z + ord(ch)``
so that character bindings never collide with the special keys.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


class Key:
    """Integer key codes reported by the terminal driver."""

    RUNE = 0
    CTRL_A, CTRL_B, CTRL_C, CTRL_D, CTRL_E, CTRL_F, CTRL_G, CTRL_H = range(1, 9)
    CTRL_I, CTRL_J, CTRL_K, CTRL_L, CTRL_M, CTRL_N, CTRL_O, CTRL_P = range(9, 17)
    CTRL_Q, CTRL_R, CTRL_S, CTRL_T, CTRL_U, CTRL_V, CTRL_W, CTRL_X = range(17, 25)
    CTRL_Y, CTRL_Z = 25, 26
    ESC = 27
    INVALID = 28
    MOUSE = 29
    BTAB = 30
    BSPACE = 31
    DEL = 32
    PGUP = 33
    PGDN = 34
    UP = 35
    DOWN = 36
    LEFT = 37
    RIGHT = 38
    HOME = 39
    END = 40
    SLEFT = 41
    SRIGHT = 42
    F1, F2, F3, F4 = 43, 44, 45, 46
    ALT_BS = 47
    ALT_A = 48
    ALT_Z = ALT_A + 25

    TAB = CTRL_I
    ENTER = CTRL_M

    @staticmethod
    def char_code(ch: str) -> int:
        """Binding key of the printable character *ch*."""
        return Key.ALT_Z + ord(ch)


@dataclass(frozen=True)
class MouseEvent:
    y: int
    x: int
    scroll: int = 0
    down: bool = False
    double: bool = False
    mod: bool = False


@dataclass(frozen=True)
class Event:
    type: int
    char: str = ""
    mouse: Optional[MouseEvent] = None


class Action(enum.IntEnum):
    IGNORE = enum.auto()
    INVALID = enum.auto()
    RUNE = enum.auto()
    MOUSE = enum.auto()
    BEGINNING_OF_LINE = enum.auto()
    ABORT = enum.auto()
    ACCEPT = enum.auto()
    BACKWARD_CHAR = enum.auto()
    BACKWARD_DELETE_CHAR = enum.auto()
    BACKWARD_WORD = enum.auto()
    CLEAR_SCREEN = enum.auto()
    DELETE_CHAR = enum.auto()
    END_OF_LINE = enum.auto()
    FORWARD_CHAR = enum.auto()
    FORWARD_WORD = enum.auto()
    KILL_LINE = enum.auto()
    KILL_WORD = enum.auto()
    UNIX_LINE_DISCARD = enum.auto()
    UNIX_WORD_RUBOUT = enum.auto()
    YANK = enum.auto()
    BACKWARD_KILL_WORD = enum.auto()
    SELECT_ALL = enum.auto()
    DESELECT_ALL = enum.auto()
    TOGGLE = enum.auto()
    TOGGLE_ALL = enum.auto()
    TOGGLE_DOWN = enum.auto()
    TOGGLE_UP = enum.auto()
    DOWN = enum.auto()
    UP = enum.auto()
    PAGE_UP = enum.auto()
    PAGE_DOWN = enum.auto()
    TOGGLE_SORT = enum.auto()
    PREVIOUS_HISTORY = enum.auto()
    NEXT_HISTORY = enum.auto()
    EXECUTE = enum.auto()

    @property
    def binding_name(self) -> str:
        """Name used in bindings, e.g. ``backward-kill-word``."""
        return self.name.lower().replace("_", "-")

    @classmethod
    def from_name(cls, name: str) -> "Action":
        try:
            return cls[name.strip().lower().replace("-", "_").upper()]
        except KeyError:
            raise ValueError(f"Unknown action: {name!r}") from None


def default_keymap() -> dict[int, Action]:
    keymap: dict[int, Action] = {
        Key.INVALID: Action.INVALID,
        Key.CTRL_A: Action.BEGINNING_OF_LINE,
        Key.CTRL_B: Action.BACKWARD_CHAR,
        Key.CTRL_C: Action.ABORT,
        Key.CTRL_G: Action.ABORT,
        Key.CTRL_Q: Action.ABORT,
        Key.ESC: Action.ABORT,
        Key.CTRL_D: Action.DELETE_CHAR,
        Key.CTRL_E: Action.END_OF_LINE,
        Key.CTRL_F: Action.FORWARD_CHAR,
        Key.CTRL_H: Action.BACKWARD_DELETE_CHAR,
        Key.BSPACE: Action.BACKWARD_DELETE_CHAR,
        Key.TAB: Action.TOGGLE_DOWN,
        Key.BTAB: Action.TOGGLE_UP,
        Key.CTRL_J: Action.DOWN,
        Key.CTRL_K: Action.UP,
        Key.CTRL_L: Action.CLEAR_SCREEN,
        Key.CTRL_M: Action.ACCEPT,
        Key.CTRL_N: Action.DOWN,
        Key.CTRL_P: Action.UP,
        Key.CTRL_U: Action.UNIX_LINE_DISCARD,
        Key.CTRL_W: Action.UNIX_WORD_RUBOUT,
        Key.CTRL_Y: Action.YANK,
        Key.ALT_A + ord("b") - ord("a"): Action.BACKWARD_WORD,
        Key.SLEFT: Action.BACKWARD_WORD,
        Key.ALT_A + ord("f") - ord("a"): Action.FORWARD_WORD,
        Key.SRIGHT: Action.FORWARD_WORD,
        Key.ALT_A + ord("d") - ord("a"): Action.KILL_WORD,
        Key.ALT_BS: Action.BACKWARD_KILL_WORD,
        Key.UP: Action.UP,
        Key.DOWN: Action.DOWN,
        Key.LEFT: Action.BACKWARD_CHAR,
        Key.RIGHT: Action.FORWARD_CHAR,
        Key.HOME: Action.BEGINNING_OF_LINE,
        Key.END: Action.END_OF_LINE,
        Key.DEL: Action.DELETE_CHAR,
        Key.PGUP: Action.PAGE_UP,
        Key.PGDN: Action.PAGE_DOWN,
        Key.RUNE: Action.RUNE,
        Key.MOUSE: Action.MOUSE,
    }
    return keymap


# Named keys accepted in key specifications.
NAMED_KEYS: dict[str, int] = {
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
    "enter": Key.ENTER,
    "return": Key.ENTER,
    "space": Key.char_code(" "),
    "bspace": Key.BSPACE,
    "bs": Key.BSPACE,
    "backspace": Key.BSPACE,
    "alt-bs": Key.ALT_BS,
    "alt-bspace": Key.ALT_BS,
    "tab": Key.TAB,
    "btab": Key.BTAB,
    "shift-tab": Key.BTAB,
    "esc": Key.ESC,
    "escape": Key.ESC,
    "del": Key.DEL,
    "delete": Key.DEL,
    "home": Key.HOME,
    "end": Key.END,
    "pgup": Key.PGUP,
    "page-up": Key.PGUP,
    "pageup": Key.PGUP,
    "pgdn": Key.PGDN,
    "page-down": Key.PGDN,
    "pagedown": Key.PGDN,
    "shift-left": Key.SLEFT,
    "sleft": Key.SLEFT,
    "shift-right": Key.SRIGHT,
    "sright": Key.SRIGHT,
}

_KEY_NAMES: dict[int, str] = {
    Key.UP: "up",
    Key.DOWN: "down",
    Key.LEFT: "left",
    Key.RIGHT: "right",
    Key.BSPACE: "bspace",
    Key.ALT_BS: "alt-bs",
    Key.BTAB: "btab",
    Key.ESC: "esc",
    Key.DEL: "del",
    Key.HOME: "home",
    Key.END: "end",
    Key.PGUP: "pgup",
    Key.PGDN: "pgdn",
    Key.SLEFT: "shift-left",
    Key.SRIGHT: "shift-right",
}

_EXECUTE_RE = re.compile(r"^execute(?:\((.*)\)|\[(.*)\]|:(.*))$", re.DOTALL)


def decode_keystring(key_spec: str) -> int:
    """Decodes a key specification into a key code.

    Raises:
        ValueError: If the specification names no known key.
    """
    if not isinstance(key_spec, str) or not key_spec:
        raise ValueError(f"Invalid key specification: {key_spec!r}")
    if len(key_spec) == 1:
        return Key.char_code(key_spec)

    s = key_spec.strip().lower().replace("+", "-")
    if s in NAMED_KEYS:
        return NAMED_KEYS[s]

    m = re.fullmatch(r"(ctrl|alt)-([a-z])", s)
    if m:
        base = Key.CTRL_A if m.group(1) == "ctrl" else Key.ALT_A
        return base + ord(m.group(2)) - ord("a")

    m = re.fullmatch(r"f([1-4])", s)
    if m:
        return Key.F1 + int(m.group(1)) - 1

    raise ValueError(f"Unsupported key: {key_spec!r}")


def parse_expect(spec: str) -> list[int]:
    """Parses a comma separated list of accept keys."""
    keys: list[int] = []
    for part in spec.split(","):
        if part:
            keys.append(decode_keystring(part))
    return keys


def key_name(code: int) -> str:
    """Name of the key that accepted the session, as printed on output."""
    if code == 0:
        return ""
    if Key.ALT_A <= code <= Key.ALT_Z:
        return f"alt-{chr(code - Key.ALT_A + ord('a'))}"
    if Key.F1 <= code <= Key.F4:
        return f"f{code - Key.F1 + 1}"
    if Key.CTRL_A <= code <= Key.CTRL_Z:
        return f"ctrl-{chr(code - Key.CTRL_A + ord('a'))}"
    if code > Key.ALT_Z:
        return chr(code - Key.ALT_Z)
    return _KEY_NAMES.get(code, "")


def key_match(key: int, event: Event) -> bool:
    return event.type == key or (
        event.type == Key.RUNE and bool(event.char) and key == Key.char_code(event.char)
    )


def parse_bindings(
    bindings: Mapping[str, Any], strict: bool = False
) -> tuple[dict[int, Action], dict[int, str]]:
    """Parses user bindings into a keymap overlay and an execute map.

    Args:
        bindings: key specification -> action name, or ``execute(cmd {})``
            (``execute[cmd]`` and ``execute:cmd`` are accepted as well).
        strict: raise on the first invalid binding instead of logging and
            skipping it.

    Returns:
        tuple: (keymap, execmap) holding only the keys named in *bindings*.
    """
    keymap: dict[int, Action] = {}
    execmap: dict[int, str] = {}
    for key_spec, action_spec in bindings.items():
        try:
            key_code = decode_keystring(str(key_spec))
            action_str = str(action_spec).strip()
            m = _EXECUTE_RE.match(action_str)
            if m:
                keymap[key_code] = Action.EXECUTE
                execmap[key_code] = next(g for g in m.groups() if g is not None)
            else:
                keymap[key_code] = Action.from_name(action_str)
                execmap.pop(key_code, None)
        except ValueError as e:
            if strict:
                raise
            logger.error(
                "Error parsing keybinding %r = %r: %s. This binding will be ignored.",
                key_spec, action_spec, e,
            )
    return keymap, execmap


def resolve_action(keymap: Mapping[int, Action], event: Event) -> tuple[Action, int]:
    """Returns the action for *event* and the key it was looked up by.

    A character event is looked up by its own binding key first and falls
    back to the generic ``Key.RUNE`` entry.
    """
    action = keymap.get(event.type, Action.IGNORE)
    map_key = event.type
    if event.type == Key.RUNE and event.char:
        map_key = Key.char_code(event.char)
        action = keymap.get(map_key, action)
    return action, map_key


# ==================== KeyBinder Class ====================
class KeyBinder:
    """Key table of one finder session.

    Attributes:
        keymap (dict[int, Action]): key code -> action, defaults overlaid with
            the user's bindings.
        execmap (dict[int, str]): key code -> command template for keys bound
            to ``execute``.
    """

    def __init__(
        self,
        bindings: Optional[Mapping[str, Any]] = None,
        history_enabled: bool = False,
        toggle_sort_key: Optional[int] = None,
    ) -> None:
        self.keymap = default_keymap()
        if history_enabled:
            self.keymap[Key.CTRL_P] = Action.PREVIOUS_HISTORY
            self.keymap[Key.CTRL_N] = Action.NEXT_HISTORY
        if toggle_sort_key is not None:
            self.keymap[toggle_sort_key] = Action.TOGGLE_SORT

        overlay, self.execmap = parse_bindings(bindings or {})
        self.keymap.update(overlay)
        logger.debug(
            "KeyBinder ready: %d keys, %d execute bindings", len(self.keymap), len(self.execmap)
        )

    def resolve(self, event: Event) -> tuple[Action, int]:
        return resolve_action(self.keymap, event)
