# fzterm/core/EventBox.py
"""EventBox: the coalescing request mailbox between producers and the painter.

Any number of threads may `post()` request kinds; a single consumer calls
`wait()`, which blocks until at least one kind is pending and then captures and
clears the whole pending set in one step. Posting a kind that is already
pending changes nothing, so a burst of identical requests costs one repaint.
"""

import enum
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class Request(enum.IntEnum):
    """Request kinds, in the order the consumer applies them."""

    PROMPT = 0
    INFO = 1
    LIST = 2
    REFRESH = 3
    REDRAW = 4
    CLOSE = 5
    QUIT = 6


class EventBox:
    """Multi-producer, single-consumer set of pending requests."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._pending: set[Request] = set()

    def post(self, kind: Request) -> None:
        with self._cond:
            if kind in self._pending:
                return
            self._pending.add(kind)
            self._cond.notify()

    def wait(self, timeout: Optional[float] = None) -> frozenset[Request]:
        """Blocks until a request is pending, then returns and clears them all.

        Returns an empty set only when `timeout` expires first.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._pending), timeout):
                return frozenset()
            captured = frozenset(self._pending)
            self._pending.clear()
        logger.debug("EventBox: captured %s", sorted(r.name for r in captured))
        return captured

    def peek(self) -> frozenset[Request]:
        with self._cond:
            return frozenset(self._pending)
