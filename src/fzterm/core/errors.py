# fzterm/core/errors.py
"""Exceptions raised while setting up a finder session."""


class FztermError(Exception):
    """Base class for start-up failures reported with exit status 2."""


class OptionsError(FztermError):
    """Invalid command line or configuration value."""


class HistoryError(FztermError):
    """The history file cannot be read or created."""
