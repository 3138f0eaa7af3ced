# fzterm/utils/logging_config.py
"""fzterm.utils.logging_config
=============================

Logging configuration for fzterm.

The finder owns the terminal while it runs, so log records go to rotating
files by default; console output to stderr is available but disabled unless
the configuration asks for it.

Features:
    - Rotating file logging for general events (fzterm.log).
    - Optional console logging to stderr with configurable log level.
    - Optional separate error log file (error.log) for ERROR and CRITICAL events.
    - Optional key event tracing (keytrace.log) enabled via the FZTERM_KEYTRACE
      environment variable.
    - Automatic creation of log directories, with fallback to the system temp
      directory on failure.
    - Safe reconfiguration: clears existing handlers to avoid duplicate logs.
    - Never raises; errors are reported to stderr and logging continues with
      best effort.

Globals:
    logger: Main application logger ("fzterm").
    KEY_LOGGER: Logger for raw key-event trace records ("fzterm.keyevents").
"""

import logging
import logging.handlers
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional


# ======================== Global loggers ========================
logger = logging.getLogger("fzterm")  # main application logger
KEY_LOGGER = logging.getLogger("fzterm.keyevents")  # raw key-event trace

DEFAULT_LOG_DIR = Path.home() / ".cache" / "fzterm"


def _ensure_log_dir(log_filename: str) -> str:
    """Creates the directory of *log_filename*; returns a temp-dir path on failure."""
    log_dir = os.path.dirname(log_filename)
    if log_dir and not os.path.exists(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError as e_mkdir:
            print(
                f"Error creating log directory '{log_dir}': {e_mkdir}", file=sys.stderr
            )
            log_filename = os.path.join(tempfile.gettempdir(), os.path.basename(log_filename))
            print(f"Logging to temporary file: '{log_filename}'", file=sys.stderr)
    return log_filename


def setup_logging(config: Optional[dict[str, Any]] = None) -> None:
    """Configures application-wide logging handlers and log levels.

    Up to four independent handlers are installed:

    1. File handler - rotating fzterm.log capturing everything from the
       configured `file_level` (default INFO) upward.
    2. Console handler - optional `stderr` output whose threshold is
       `console_level` (default WARNING). Off by default.
    3. Error-file handler - optional rotating error.log that stores only
       ERROR and CRITICAL events.
    4. Key-event handler - optional rotating keytrace.log enabled when the
       environment variable ``FZTERM_KEYTRACE`` is ``1/true/yes``; attached
       to the ``fzterm.keyevents`` logger.

    Existing handlers on the root logger are cleared so repeated calls (for
    example in tests) never duplicate records.

    Args:
        config (dict | None): Application configuration. Only the
            ``["logging"]`` section is consulted; recognised keys are
            ``file``, ``file_level``, ``console_level``, ``log_to_console``
            and ``separate_error_log``.
    """
    if config is None:
        config = {}
    logging_config = config.get("logging", {})

    log_filename = os.path.expanduser(str(logging_config.get("file") or DEFAULT_LOG_DIR / "fzterm.log"))
    log_filename = _ensure_log_dir(log_filename)
    log_file_level_str = str(logging_config.get("file_level", "INFO")).upper()
    log_file_level = getattr(logging, log_file_level_str, logging.INFO)

    file_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)-8s - %(threadName)-10s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"
    )
    file_handler = None
    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_filename, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(log_file_level)
    except Exception as e_fh:
        print(
            f"Error setting up file logger for '{log_filename}': {e_fh}. File logging may be impaired.",
            file=sys.stderr,
        )

    # Console Handler
    console_handler = None
    if logging_config.get("log_to_console", False):
        console_level_str = str(logging_config.get("console_level", "WARNING")).upper()
        console_log_level = getattr(logging, console_level_str, logging.WARNING)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(levelname)-8s - %(name)-12s - %(message)s")
        )
        console_handler.setLevel(console_log_level)

    # Optional Separate Error Log File
    error_file_handler = None
    if logging_config.get("separate_error_log", False):
        error_log_filename = os.path.join(os.path.dirname(log_filename), "error.log")
        try:
            error_file_handler = logging.handlers.RotatingFileHandler(
                error_log_filename,
                maxBytes=1 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            error_file_handler.setFormatter(file_formatter)
            error_file_handler.setLevel(logging.ERROR)
        except Exception as e_efh:
            print(
                f"Error setting up separate error log '{error_log_filename}': {e_efh}.",
                file=sys.stderr,
            )

    # Configure the root logger
    root_logger = logging.getLogger()
    root_logger.handlers = []  # Clear existing root handlers to avoid duplicates

    if file_handler:
        root_logger.addHandler(file_handler)
    if console_handler:
        root_logger.addHandler(console_handler)
    if error_file_handler:
        root_logger.addHandler(error_file_handler)

    root_logger.setLevel(log_file_level)

    # Key Event Logger
    key_event_logger = logging.getLogger("fzterm.keyevents")
    key_event_logger.propagate = False
    key_event_logger.setLevel(logging.DEBUG)
    key_event_logger.handlers = []

    if os.environ.get("FZTERM_KEYTRACE", "").lower() in {"1", "true", "yes"}:
        key_trace_filename = os.path.join(os.path.dirname(log_filename), "keytrace.log")
        try:
            key_trace_handler = logging.handlers.RotatingFileHandler(
                key_trace_filename,
                maxBytes=1 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            key_trace_handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
            key_event_logger.addHandler(key_trace_handler)
            key_event_logger.disabled = False
            logging.info("Key event tracing enabled, logging to '%s'.", key_trace_filename)
        except Exception as e_keytrace:
            logging.error(
                f"Failed to set up key trace logging: {e_keytrace}", exc_info=True
            )
            key_event_logger.disabled = True
    else:
        key_event_logger.addHandler(logging.NullHandler())
        key_event_logger.disabled = True
        logging.debug("Key event tracing is disabled.")

    logging.info(
        "Logging setup complete. Root logger level: %s.",
        logging.getLevelName(root_logger.level),
    )
    if file_handler:
        logging.info(
            f"File logging to '{log_filename}' at level: {logging.getLevelName(file_handler.level)}."
        )
    if console_handler:
        logging.info(
            f"Console logging to stderr at level: {logging.getLevelName(console_handler.level)}."
        )
