# fzterm/core/History.py
"""History Module
===============================
This module provides `QueryHistory`, the persistent list of accepted queries
that the previous-history and next-history actions walk through.

The file holds one query per line. In memory the list always ends with an
empty slot standing for the query being typed, and the cursor starts on that
slot. Editing a recalled older entry changes only the in-memory copy; the file
is rewritten only when a query is accepted.
"""

import logging
import os

from fzterm.core.errors import HistoryError


## ==================== QueryHistory Class ====================
class QueryHistory:
    """Class QueryHistory
    ===================
    Attributes:
        path (str): History file location.
        max_size (int): Maximum number of stored queries.
        lines (list[str]): Stored queries followed by the current slot.
        modified (dict[int, str]): Unsaved edits of older entries.
        cursor (int): Index of the entry shown in the query line.
    """

    def __init__(self, path: str, max_size: int = 1000) -> None:
        self.path = os.path.expanduser(path)
        self.max_size = max(1, max_size)
        self.modified: dict[int, str] = {}

        try:
            with open(self.path, encoding="utf-8", errors="replace") as f:
                data = f.read()
        except FileNotFoundError:
            data = ""
            self._write(data)
        except PermissionError:
            raise HistoryError(f"permission denied: {self.path}") from None
        except OSError as e:
            raise HistoryError(f"invalid history file: {e}") from e

        self.lines = data.strip("\n").split("\n")
        if self.lines[-1]:
            self.lines.append("")
        self.cursor = len(self.lines) - 1
        logging.debug("Loaded %d history entries from %s", len(self.lines) - 1, self.path)

    def _write(self, data: str) -> None:
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
        except PermissionError:
            raise HistoryError(f"permission denied: {self.path}") from None
        except OSError as e:
            raise HistoryError(f"invalid history file: {e}") from e

    def append(self, line: str) -> None:
        """Stores an accepted query and rewrites the file; empty lines are skipped."""
        if not line:
            return
        lines = self.lines[:-1] + [line]
        if len(lines) > self.max_size:
            lines = lines[len(lines) - self.max_size:]
        self.lines = lines + [""]
        self.modified.clear()
        self.cursor = len(self.lines) - 1
        self._write("\n".join(self.lines))

    def override(self, line: str) -> None:
        """Replaces the entry under the cursor in memory."""
        if self.cursor == len(self.lines) - 1:
            self.lines[self.cursor] = line
        elif self.cursor < len(self.lines) - 1:
            self.modified[self.cursor] = line

    def current(self) -> str:
        return self.modified.get(self.cursor, self.lines[self.cursor])

    def previous(self) -> str:
        if self.cursor > 0:
            self.cursor -= 1
        return self.current()

    def next(self) -> str:
        if self.cursor < len(self.lines) - 1:
            self.cursor += 1
        return self.current()
