# fzterm/core/Matcher.py
"""Matcher Module
==================
The streaming search backend of the finder.

Two background threads feed the terminal:

- `Reader` consumes the candidate stream line by line, appends `Item`s to a
  shared `ItemList` and reports the running count.
- `Matcher` re-runs the current query whenever the query, the sort flag or the
  candidate list changes, reports progress between chunks, abandons a pass as
  soon as a newer request arrives and publishes the result as an immutable
  `ResultView`.

Matching is deliberately simple. The query is split on spaces; every term must
match as a fuzzy subsequence (case-insensitive unless the term contains an
uppercase letter in smart-case mode). The highlighted range of a term is the
shortest span ending at the first complete match. Results are ranked by total
span, then text length, then input order.
"""

import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING, Iterator, NamedTuple, Optional, Sequence

if TYPE_CHECKING:
    from fzterm.core.Terminal import Terminal


logger = logging.getLogger(__name__)

CHUNK_SIZE = 1000
REPORT_INTERVAL = 0.05  # seconds between count reports while reading


@dataclass(frozen=True)
class Item:
    """One candidate line.

    Attributes:
        index (int): Ordinal of the line in the input; the item's identity.
        text (str): The line without its trailing newline.
        offsets (tuple): Ascending, non-overlapping ``(start, end)`` match ranges.
    """

    index: int
    text: str
    offsets: tuple[tuple[int, int], ...] = ()


class ResultView:
    """Immutable ordered snapshot of matched items."""

    EMPTY: "ResultView"

    __slots__ = ("_items",)

    def __init__(self, items: Sequence[Item] = ()) -> None:
        self._items = tuple(items)

    def length(self) -> int:
        return len(self._items)

    def get(self, i: int) -> Item:
        return self._items[i]

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, i: int) -> Item:
        return self._items[i]

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"ResultView({len(self._items)} items)"


ResultView.EMPTY = ResultView()


# --- matching ---


class Term(NamedTuple):
    text: str
    case_sensitive: bool


def parse_query(query: str, case: str = "smart") -> list[Term]:
    """Splits *query* into terms.

    Args:
        case: ``"smart"``, ``"ignore"`` or ``"respect"``.
    """
    terms = []
    for word in query.split(" "):
        if not word:
            continue
        if case == "respect":
            sensitive = True
        elif case == "ignore":
            sensitive = False
        else:
            sensitive = word != word.lower()
        terms.append(Term(word if sensitive else word.lower(), sensitive))
    return terms


def match_term(term: Term, text: str) -> Optional[tuple[int, int]]:
    """Finds *term* as a subsequence of *text*; returns the tightened span."""
    haystack = text if term.case_sensitive else text.lower()
    needle = term.text

    # Forward pass: where does the first complete match end?
    pos = 0
    start = -1
    for ch in needle:
        pos = haystack.find(ch, pos)
        if pos < 0:
            return None
        if start < 0:
            start = pos
        pos += 1
    end = pos

    # Backward pass: the shortest span ending there.
    pidx = len(needle) - 1
    for i in range(end - 1, start - 1, -1):
        if haystack[i] == needle[pidx]:
            pidx -= 1
            if pidx < 0:
                return i, end
    return start, end


def merge_offsets(spans: Sequence[tuple[int, int]]) -> tuple[tuple[int, int], ...]:
    """Sorts spans and merges the ones that overlap or touch."""
    merged: list[tuple[int, int]] = []
    for b, e in sorted(spans):
        if merged and b <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], e))
        else:
            merged.append((b, e))
    return tuple(merged)


def match_item(terms: Sequence[Term], item: Item) -> Optional[tuple[Item, tuple[int, int, int]]]:
    """Matches all *terms* against *item*.

    Returns:
        The item carrying its offsets and its sort key, or None if any term
        fails to match.
    """
    spans = []
    for term in terms:
        span = match_term(term, item.text)
        if span is None:
            return None
        spans.append(span)
    total = sum(e - b for b, e in spans)
    matched = Item(item.index, item.text, merge_offsets(spans))
    return matched, (total, len(item.text), item.index)


# --- candidate list ---


class ItemList:
    """Append-only list of items shared by the reader and the matcher."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[Item] = []

    def extend(self, texts: Sequence[str]) -> int:
        with self._lock:
            base = len(self._items)
            self._items.extend(Item(base + i, text) for i, text in enumerate(texts))
            return len(self._items)

    def snapshot(self) -> list[Item]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


# ==================== Reader Class ====================
class Reader:
    """Reads candidates from a text stream on a daemon thread.

    Lines are collected into a batch; a companion ticker thread hands the
    batch to the item list every `REPORT_INTERVAL` seconds, so a producer
    that stalls mid-stream still has its lines shown. End of input flushes
    once more and reports the count as final.
    """

    def __init__(
        self,
        items: ItemList,
        terminal: "Terminal",
        matcher: Optional["Matcher"] = None,
    ) -> None:
        self.items = items
        self.terminal = terminal
        self.matcher = matcher
        self.thread: Optional[threading.Thread] = None
        self._proc: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._batch: list[str] = []
        self._eof = threading.Event()

    def start(self, stream: IO[str]) -> None:
        if self.thread is not None:
            logger.warning("Reader already started.")
            return
        self.thread = threading.Thread(
            target=self._run, args=(stream,), daemon=True, name="ReaderThread"
        )
        self.thread.start()
        threading.Thread(target=self._tick, daemon=True, name="ReaderFlushThread").start()

    def start_command(self, command: str) -> None:
        """Runs *command* with ``sh -c`` and reads its standard output."""
        logger.info("Reading candidates from command: %s", command)
        try:
            self._proc = subprocess.Popen(
                ["sh", "-c", command],
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.error("Failed to start candidate command %r: %s", command, e)
            self.terminal.update_count(0, True)
            return
        self.start(self._proc.stdout)

    def _flush(self, final: bool) -> None:
        # Caller holds self._lock.
        count = self.items.extend(self._batch) if self._batch else len(self.items)
        self._batch.clear()
        self.terminal.update_count(count, final)
        if self.matcher is not None:
            self.matcher.input_changed()

    def _tick(self) -> None:
        while not self._eof.wait(REPORT_INTERVAL):
            with self._lock:
                if self._batch and not self._eof.is_set():
                    self._flush(False)

    def _run(self, stream: IO[str]) -> None:
        try:
            for line in stream:
                with self._lock:
                    self._batch.append(line[:-1] if line.endswith("\n") else line)
        except (OSError, ValueError) as e:
            logger.error("Error while reading candidates: %s", e)
        finally:
            with self._lock:
                self._eof.set()
                self._flush(True)
            if self._proc is not None:
                self._proc.wait()
            logger.info("Reader finished with %d items.", len(self.items))


# ==================== Matcher Class ====================
class Matcher:
    """Background worker that matches the current query against the items.

    `restart_search()` and `input_changed()` only bump a revision counter and
    wake the worker; the worker reads the query itself through
    ``terminal.input()``, so a burst of keystrokes costs at most one pass
    after the one in flight is abandoned.
    """

    def __init__(
        self,
        items: ItemList,
        terminal: "Terminal",
        sort: bool = True,
        case: str = "smart",
    ) -> None:
        self.items = items
        self.terminal = terminal
        self.sort = sort
        self.case = case
        self.thread: Optional[threading.Thread] = None
        self._cond = threading.Condition()
        self._revision = 0
        self._stopped = False

    def start(self) -> None:
        if self.thread is not None:
            logger.warning("Matcher already started.")
            return
        self.thread = threading.Thread(target=self._run, daemon=True, name="MatcherThread")
        self.thread.start()

    def stop(self) -> None:
        with self._cond:
            self._stopped = True
            self._cond.notify()
        if self.thread is not None:
            self.thread.join(timeout=1.0)

    def restart_search(self, sort: bool) -> None:
        with self._cond:
            self.sort = sort
            self._revision += 1
            self._cond.notify()

    def input_changed(self) -> None:
        with self._cond:
            self._revision += 1
            self._cond.notify()

    def _superseded(self, revision: int) -> bool:
        with self._cond:
            return self._stopped or self._revision != revision

    def _run(self) -> None:
        seen = 0
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._stopped or self._revision != seen)
                if self._stopped:
                    break
                seen = self._revision
                sort = self.sort
            try:
                view = self.search(self.terminal.input(), sort, seen)
            except Exception as e:
                logger.error(f"Matcher pass failed: {e}", exc_info=True)
                continue
            if view is not None:
                self.terminal.update_list(view)
        logger.info("Matcher thread stopped.")

    def search(self, query: str, sort: bool, revision: Optional[int] = None) -> Optional[ResultView]:
        """Runs one pass; returns None when a newer request superseded it."""
        items = self.items.snapshot()
        terms = parse_query(query, self.case)
        if not terms:
            return ResultView(items)

        matched: list[tuple[tuple[int, int, int], Item]] = []
        total = len(items)
        for start in range(0, total, CHUNK_SIZE):
            if revision is not None and self._superseded(revision):
                logger.debug("Matcher pass for %r abandoned.", query)
                return None
            for item in items[start:start + CHUNK_SIZE]:
                result = match_item(terms, item)
                if result is not None:
                    matched.append((result[1], result[0]))
            done = min(total, start + CHUNK_SIZE)
            if done < total:
                self.terminal.update_progress(done / total)

        if sort:
            matched.sort(key=lambda pair: pair[0])
        return ResultView([item for _, item in matched])
