# src/fzterm/core/__init__.py
"""Public facade for fzterm.core: re-export main classes from CamelCase modules.

Keeps the CamelCase file names (Terminal.py, EventBox.py, ...),
but provides flat imports for convenience and stability.
"""

# Re-export classes/symbols from CamelCase modules
from .Dispatcher import Dispatch, Dispatcher  # noqa: F401
from .errors import FztermError, HistoryError, OptionsError  # noqa: F401
from .EventBox import EventBox, Request  # noqa: F401
from .History import QueryHistory  # noqa: F401
from .Matcher import Item, ItemList, Matcher, Reader, ResultView  # noqa: F401
from .Options import Options  # noqa: F401
from .QueryLine import QueryLine  # noqa: F401
from .Terminal import Terminal  # noqa: F401
from .Viewport import SelectionSet, Viewport  # noqa: F401


__all__ = [
    "Dispatch",
    "Dispatcher",
    "EventBox",
    "FztermError",
    "HistoryError",
    "Item",
    "ItemList",
    "Matcher",
    "Options",
    "OptionsError",
    "QueryHistory",
    "QueryLine",
    "Reader",
    "Request",
    "ResultView",
    "SelectionSet",
    "Terminal",
    "Viewport",
]
