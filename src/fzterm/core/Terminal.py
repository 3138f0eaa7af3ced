# fzterm/core/Terminal.py
"""Terminal Module
==================
The interactive session: shared state, the input loop and the painter.

Threads of a running session:

- the calling thread reads events from the driver and dispatches them;
- the consumer ("PainterThread") drains the `EventBox` and paints;
- a one-shot timer lifts the initial refresh suppression after 100 ms;
- a ticker posts info repaints every 200 ms while input is still being read;
- a listener turns ``SIGWINCH`` into full redraws;
- the search backend calls `update_count`, `update_progress` and
  `update_list` from its own threads.

One lock guards all shared state. Every path that mutates it releases the lock
before posting to the mailbox or notifying the backend.
"""

import logging
import signal
import sys
import threading
from typing import IO, TYPE_CHECKING, Callable, Iterable, Optional, Protocol

from fzterm.core.Dispatcher import Dispatcher
from fzterm.core.errors import HistoryError
from fzterm.core.EventBox import EventBox, Request
from fzterm.core.Matcher import ResultView
from fzterm.core.QueryLine import QueryLine
from fzterm.core.Viewport import SelectionSet, Viewport
from fzterm.ui.DrawScreen import DrawScreen, WidthCache
from fzterm.ui.KeyBinder import Event, KeyBinder, key_name
from fzterm.utils.utils import execute_command


if TYPE_CHECKING:
    from fzterm.core.History import QueryHistory
    from fzterm.core.Options import Options
    from fzterm.ui.CursesDriver import CursesDriver


logger = logging.getLogger(__name__)

INITIAL_DELAY = 0.1  # seconds before the first refresh is allowed
SPINNER_INTERVAL = 0.2


class SearchBackend(Protocol):
    def restart_search(self, sort: bool) -> None: ...


def block_resize_signal() -> None:
    """Blocks SIGWINCH in the calling thread and every thread started after.

    Must run on the main thread before any other thread exists, so the
    listener thread's ``sigwait`` is the only consumer of the signal.
    """
    signal.pthread_sigmask(signal.SIG_BLOCK, {signal.SIGWINCH})


class Terminal:
    """Class Terminal
    ===================
    Owns the state of one finder session and runs its threads.

    Attributes:
        options (Options): Session settings.
        driver (CursesDriver): Terminal driver.
        history (QueryHistory | None): Query history, when configured.
        lock (threading.Lock): Guards every attribute below.
        query (QueryLine): The query being edited.
        viewport (Viewport): Cursor, scroll offset, count and progress.
        selected (SelectionSet): Selected items (multi-select).
        view (ResultView): Latest result snapshot.
        sort (bool): Whether the backend ranks results.
        pressed (int): Accept key that ended the session, 0 for none.
        suppress (bool): Whether flushing to the screen is still held back.
        events (EventBox): Repaint requests for the painter.
        exit_code (int | None): Set once the session has ended.
    """

    def __init__(
        self,
        options: "Options",
        driver: "CursesDriver",
        history: Optional["QueryHistory"] = None,
        output: Optional[IO[str]] = None,
        execute: Callable[[str, str], int] = execute_command,
        widths: Optional[WidthCache] = None,
    ) -> None:
        self.options = options
        self.driver = driver
        self.history = history
        self.output_stream = output if output is not None else sys.stdout

        self.lock = threading.Lock()
        self.query = QueryLine(options.query)
        self.viewport = Viewport(reverse=options.reverse, cycle=options.cycle)
        self.selected = SelectionSet()
        self.view = ResultView.EMPTY
        self.sort = options.sort
        self.pressed = 0
        self.suppress = True

        self.events = EventBox()
        self.backend: Optional[SearchBackend] = None
        self.exit_code: Optional[int] = None
        self._finished = threading.Event()

        self.keybinder = KeyBinder(
            options.bindings,
            history_enabled=history is not None,
            toggle_sort_key=options.toggle_sort_key,
        )
        self.screen = DrawScreen(self, driver, widths if widths is not None else WidthCache())
        self.dispatcher = Dispatcher(self, execute)

    def set_backend(self, backend: SearchBackend) -> None:
        self.backend = backend

    # --- backend callbacks ---

    def input(self) -> str:
        """Snapshot of the query text."""
        with self.lock:
            return self.query.text

    def update_count(self, count: int, final: bool) -> None:
        with self.lock:
            self.viewport.count = count
            self.viewport.reading = not final
        self.events.post(Request.INFO)
        if final:
            self.events.post(Request.REFRESH)

    def update_progress(self, fraction: float) -> None:
        progress = int(fraction * 100)
        with self.lock:
            changed = self.viewport.progress != progress
            self.viewport.progress = progress
        if changed:
            self.events.post(Request.INFO)

    def update_list(self, view: ResultView) -> None:
        with self.lock:
            self.viewport.progress = 100
            self.view = view
        self.events.post(Request.INFO)
        self.events.post(Request.LIST)

    # --- output ---

    def output(self) -> None:
        """Writes the session result to the output stream."""
        lines = []
        if self.options.print_query:
            lines.append(self.query.text)
        if self.options.expect:
            lines.append(key_name(self.pressed))
        if len(self.selected) == 0:
            if self.viewport.cy < len(self.view):
                lines.append(self.view[self.viewport.cy].text)
        else:
            lines.extend(self.selected.texts())

        for line in lines:
            self.output_stream.write(line + "\n")
        self.output_stream.flush()

    # --- input side ---

    def handle_event(self, event: Event) -> bool:
        """Dispatches one event; returns False once the session is ending."""
        with self.lock:
            result = self.dispatcher.dispatch(event)
            sort = self.sort
        if (result.query_changed or result.sort_changed) and self.backend is not None:
            self.backend.restart_search(sort)
        for kind in result.requests:
            self.events.post(kind)
        return result.looping

    # --- painter side ---

    def process_requests(self, kinds: Iterable[Request]) -> None:
        """Applies captured request kinds in their fixed order, then flushes."""
        with self.lock:
            for kind in sorted(kinds):
                if kind == Request.PROMPT:
                    self.screen.print_prompt()
                    if self.options.inline_info:
                        self.screen.print_info()
                elif kind == Request.INFO:
                    self.screen.print_info()
                elif kind == Request.LIST:
                    self.screen.print_list()
                elif kind == Request.REFRESH:
                    self.suppress = False
                elif kind == Request.REDRAW:
                    self.driver.clear()
                    self.screen.print_all()
                elif kind == Request.CLOSE:
                    self.driver.close()
                    self.output()
                    self._finish(0)
                    return
                elif kind == Request.QUIT:
                    self.driver.close()
                    self._finish(1)
                    return
            self.screen.place_cursor()
        self.refresh()

    def refresh(self) -> None:
        if not self.suppress:
            self.driver.refresh()

    def _finish(self, code: int) -> None:
        if code == 0 and self.history is not None:
            try:
                self.history.append(self.query.text)
            except HistoryError as e:
                logger.error("Failed to save query history: %s", e)
        self.exit_code = code
        self._finished.set()
        logger.info("Session finished with exit status %d", code)

    def _consume(self) -> None:
        while not self._finished.is_set():
            kinds = self.events.wait()
            try:
                self.process_requests(kinds)
            except Exception as e:
                logger.critical(f"Painter failed: {e}", exc_info=True)
                self.driver.close()
                self._finish(2)

    # --- helper threads ---

    def _tick_spinner(self) -> None:
        while True:
            with self.lock:
                reading = self.viewport.reading
            if not reading or self._finished.wait(SPINNER_INTERVAL):
                break
            self.events.post(Request.INFO)

    def _listen_resize(self) -> None:
        while not self._finished.is_set():
            signal.sigwait({signal.SIGWINCH})
            logger.debug("Terminal resized")
            self.events.post(Request.REDRAW)

    def _schedule_refresh(self) -> threading.Timer:
        timer = threading.Timer(INITIAL_DELAY, self.events.post, args=(Request.REFRESH,))
        timer.daemon = True
        timer.start()
        return timer

    def _start_thread(self, target: Callable[[], None], name: str) -> threading.Thread:
        thread = threading.Thread(target=target, daemon=True, name=name)
        thread.start()
        return thread

    def loop(self, listen_resize: bool = True) -> int:
        """Runs the session on the calling thread and returns its exit status.

        Args:
            listen_resize: Start the SIGWINCH listener; `block_resize_signal`
                must have been called first.
        """
        with self.lock:
            self.driver.init(self.options.theme, self.options.black, self.options.mouse)
            self.screen.print_prompt()
            self.screen.place_cursor()
            self.driver.refresh()
            self.screen.print_info()

        self._schedule_refresh()
        if listen_resize:
            self._start_thread(self._listen_resize, "ResizeThread")
        self._start_thread(self._tick_spinner, "SpinnerThread")
        painter = self._start_thread(self._consume, "PainterThread")

        looping = True
        while looping and not self._finished.is_set():
            looping = self.handle_event(self.driver.read_event())

        self._finished.wait()
        painter.join(timeout=1.0)
        return self.exit_code if self.exit_code is not None else 1
