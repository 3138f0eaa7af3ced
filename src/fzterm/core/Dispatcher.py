# fzterm/core/Dispatcher.py
"""Dispatcher Module
==================
Turns one input event into state changes and a list of repaint requests.

`Dispatcher.dispatch()` runs on the input thread while the terminal's state
lock is held. It never paints and never posts: it returns a `Dispatch`
describing what must be repainted, whether the query or the sort order
changed, and whether the input loop should keep reading. The terminal releases
the lock before acting on that result.

Action handling:
- Query editing actions are forwarded to the `QueryLine` methods of the same
  name.
- Other actions go through `action_map`, one handler per action; a handler
  returns the extra request kinds it needs.
- Every handled action requests a prompt repaint. `ignore` and `invalid`
  change nothing and request nothing; `toggle-sort` only flips the sort flag.
"""

import logging
from typing import TYPE_CHECKING, Callable, NamedTuple, Optional

from fzterm.core.EventBox import Request
from fzterm.core.Viewport import constrain
from fzterm.ui.KeyBinder import Action, Event, key_match
from fzterm.utils.logging_config import KEY_LOGGER
from fzterm.utils.utils import execute_command


if TYPE_CHECKING:
    from fzterm.core.Terminal import Terminal


logger = logging.getLogger(__name__)

Handler = Callable[[Event, int], Optional[list[Request]]]

# Actions that are plain edits or motions of the query line.
QUERY_EDITS: dict[Action, str] = {
    Action.BEGINNING_OF_LINE: "beginning_of_line",
    Action.END_OF_LINE: "end_of_line",
    Action.BACKWARD_CHAR: "backward_char",
    Action.FORWARD_CHAR: "forward_char",
    Action.BACKWARD_WORD: "backward_word",
    Action.FORWARD_WORD: "forward_word",
    Action.BACKWARD_DELETE_CHAR: "backward_delete_char",
    Action.UNIX_LINE_DISCARD: "unix_line_discard",
    Action.UNIX_WORD_RUBOUT: "unix_word_rubout",
    Action.BACKWARD_KILL_WORD: "backward_kill_word",
    Action.KILL_WORD: "kill_word",
    Action.KILL_LINE: "kill_line",
    Action.YANK: "yank",
}


class Dispatch(NamedTuple):
    requests: tuple[Request, ...]
    query_changed: bool = False
    sort_changed: bool = False
    looping: bool = True


class Dispatcher:
    """Input state machine of a `Terminal`.

    Attributes:
        terminal (Terminal): Owner of the mutated state.
        execute (Callable[[str, str], int]): Runs an ``execute`` binding.
        action_map (dict[Action, Handler]): Handlers of the non-editing actions.
    """

    def __init__(
        self,
        terminal: "Terminal",
        execute: Callable[[str, str], int] = execute_command,
    ) -> None:
        self.terminal = terminal
        self.execute = execute
        self.action_map: dict[Action, Handler] = {
            Action.RUNE: self._insert_rune,
            Action.DELETE_CHAR: self._delete_char,
            Action.ABORT: lambda event, key: [Request.QUIT],
            Action.ACCEPT: lambda event, key: [Request.CLOSE],
            Action.CLEAR_SCREEN: lambda event, key: [Request.REDRAW],
            Action.SELECT_ALL: self._select_all,
            Action.DESELECT_ALL: self._deselect_all,
            Action.TOGGLE: self._toggle,
            Action.TOGGLE_ALL: self._toggle_all,
            Action.TOGGLE_DOWN: self._toggle_down,
            Action.TOGGLE_UP: self._toggle_up,
            Action.DOWN: lambda event, key: self._vmove(-1),
            Action.UP: lambda event, key: self._vmove(1),
            Action.PAGE_UP: lambda event, key: self._vmove(self.terminal.screen.max_items() - 1),
            Action.PAGE_DOWN: lambda event, key: self._vmove(-(self.terminal.screen.max_items() - 1)),
            Action.PREVIOUS_HISTORY: self._previous_history,
            Action.NEXT_HISTORY: self._next_history,
            Action.EXECUTE: self._execute,
            Action.MOUSE: self._mouse,
        }

    def dispatch(self, event: Event) -> Dispatch:
        """Applies *event*. The caller must hold the terminal's state lock."""
        term = self.terminal
        before = term.query.text

        accepted = False
        for key in term.options.expect:
            if key_match(key, event):
                term.pressed = key
                accepted = True
                break

        action, map_key = term.keybinder.resolve(event)
        KEY_LOGGER.debug("event=%r action=%s map_key=%d", event, action.binding_name, map_key)

        requests: list[Request] = []
        sort_changed = False
        if action == Action.TOGGLE_SORT:
            term.sort = not term.sort
            sort_changed = True
        elif action not in (Action.IGNORE, Action.INVALID):
            requests.append(Request.PROMPT)
            if action in QUERY_EDITS:
                getattr(term.query, QUERY_EDITS[action])()
            else:
                handler = self.action_map.get(action)
                if handler is None:
                    logger.warning("No handler for action %s", action.binding_name)
                else:
                    requests.extend(handler(event, map_key) or ())
        if accepted:
            requests.append(Request.CLOSE)

        looping = Request.CLOSE not in requests and Request.QUIT not in requests
        return Dispatch(tuple(requests), term.query.text != before, sort_changed, looping)

    # --- editing ---

    def _insert_rune(self, event: Event, map_key: int) -> None:
        if event.char:
            self.terminal.query.insert(event.char)

    def _delete_char(self, event: Event, map_key: int) -> Optional[list[Request]]:
        query = self.terminal.query
        if not query.delete_char() and query.cx == 0:
            return self._delete_at_empty_line()
        return None

    def _delete_at_empty_line(self) -> list[Request]:
        """delete-char with nothing to delete at column 0 ends the session like EOF."""
        logger.info("delete-char on an empty query; quitting.")
        return [Request.QUIT]

    # --- history ---

    def _previous_history(self, event: Event, map_key: int) -> None:
        history = self.terminal.history
        if history is not None:
            history.override(self.terminal.query.text)
            self.terminal.query.set_text(history.previous())

    def _next_history(self, event: Event, map_key: int) -> None:
        history = self.terminal.history
        if history is not None:
            history.override(self.terminal.query.text)
            self.terminal.query.set_text(history.next())

    # --- selection ---

    def _toggle_current(self) -> list[Request]:
        term = self.terminal
        view = term.view
        if term.viewport.cy < len(view):
            item = view[term.viewport.cy]
            term.selected.toggle(item.index, item.text)
            return [Request.INFO]
        return []

    def _select_all(self, event: Event, map_key: int) -> Optional[list[Request]]:
        term = self.terminal
        if not term.options.multi:
            return None
        for item in term.view:
            term.selected.select(item.index, item.text)
        return [Request.LIST, Request.INFO]

    def _deselect_all(self, event: Event, map_key: int) -> Optional[list[Request]]:
        term = self.terminal
        if not term.options.multi:
            return None
        for item in term.view:
            term.selected.deselect(item.index)
        return [Request.LIST, Request.INFO]

    def _toggle(self, event: Event, map_key: int) -> Optional[list[Request]]:
        term = self.terminal
        if not term.options.multi or len(term.view) == 0:
            return None
        return self._toggle_current() + [Request.LIST]

    def _toggle_all(self, event: Event, map_key: int) -> Optional[list[Request]]:
        term = self.terminal
        if not term.options.multi:
            return None
        for item in term.view:
            term.selected.toggle(item.index, item.text)
        return [Request.LIST, Request.INFO]

    def _toggle_down(self, event: Event, map_key: int) -> Optional[list[Request]]:
        term = self.terminal
        if not term.options.multi or len(term.view) == 0:
            return None
        return self._toggle_current() + self._vmove(-1)

    def _toggle_up(self, event: Event, map_key: int) -> Optional[list[Request]]:
        term = self.terminal
        if not term.options.multi or len(term.view) == 0:
            return None
        return self._toggle_current() + self._vmove(1)

    # --- navigation ---

    def _vmove(self, delta: int) -> list[Request]:
        self.terminal.viewport.vmove(delta, len(self.terminal.view))
        return [Request.LIST]

    # --- external command ---

    def _execute(self, event: Event, map_key: int) -> Optional[list[Request]]:
        """Runs the bound command on the current item with the UI suspended."""
        term = self.terminal
        template = term.keybinder.execmap.get(map_key)
        if template is None or not 0 <= term.viewport.cy < len(term.view):
            return None
        current = term.view[term.viewport.cy].text
        term.driver.leave_managed_mode()
        try:
            self.execute(template, current)
        finally:
            term.driver.enter_managed_mode()
        return [Request.REDRAW]

    # --- mouse ---

    def _mouse(self, event: Event, map_key: int) -> Optional[list[Request]]:
        me = event.mouse
        if me is None:
            return None
        term = self.terminal
        vp = term.viewport
        length = len(term.view)

        mx = constrain(me.x - len(term.options.prompt), 0, len(term.query))
        my = me.y
        if not term.options.reverse:
            my = term.driver.max_y() - my - 1
        first_row = 1 if term.options.inline_info else 2

        if me.scroll != 0:
            if length > 0:
                requests = []
                if term.options.multi and me.mod:
                    requests = self._toggle_current()
                return requests + self._vmove(me.scroll)
        elif me.double:
            if my >= first_row and vp.vset(vp.offset + my - first_row, length) and vp.cy < length:
                return [Request.CLOSE]
        elif me.down:
            if my == 0:
                term.query.move_to(mx)
            elif my >= first_row:
                requests = []
                if vp.vset(vp.offset + my - first_row, length) and term.options.multi and me.mod:
                    requests = self._toggle_current()
                return requests + [Request.LIST]
        return None
