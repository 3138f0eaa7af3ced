# fzterm/main.py
"""
fzterm Main Entry Point
=======================

Start-up sequence of the finder:
1) Environment Loading: reads ~/.config/fzterm/.env early.
2) Configuration & Logging: loads config.toml over the defaults and
   initializes logging before anything else runs.
3) Command Line: parses options (``FZTERM_DEFAULT_OPTS`` first, then argv)
   and lays them over the configuration.
4) Streams: keeps the original standard input (candidates) and standard output
   (results), then points file descriptors 0 and 1 at the controlling
   terminal for curses.
5) Session: starts the reader and matcher threads and runs the terminal loop.

Exit status: 0 when an item was accepted, 1 on abort, 2 on a configuration
error, 130 when interrupted before the interface is up.
"""

import argparse
import io
import locale
import logging
import os
import shlex
import sys
from pathlib import Path
from typing import IO, Optional

from dotenv import load_dotenv

from fzterm.core.errors import FztermError
from fzterm.core.History import QueryHistory
from fzterm.core.Matcher import ItemList, Matcher, Reader
from fzterm.core.Options import THEMES, Options
from fzterm.core.Terminal import Terminal, block_resize_signal
from fzterm.ui.CursesDriver import CursesDriver
from fzterm.utils.logging_config import setup_logging
from fzterm.utils.utils import CONFIG_DIR, load_config


logger = logging.getLogger("fzterm")

EXIT_INTERRUPTED = 130
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fzterm",
        description="Interactive fuzzy finder for the terminal.",
        prefix_chars="-+",
    )
    parser.add_argument("-q", "--query", default=None, help="Start the finder with the given query.")
    parser.add_argument("-m", "--multi", action="store_true", default=None, help="Enable multi-select with tab/shift-tab.")
    parser.add_argument("+s", "--no-sort", dest="sort", action="store_false", default=None, help="Do not sort the result.")
    parser.add_argument("--reverse", action="store_true", default=None, help="Draw the prompt at the top.")
    parser.add_argument("--inline-info", dest="inline_info", action="store_true", default=None,
                        help="Display the finder info inline with the query.")
    parser.add_argument("--no-hscroll", dest="hscroll", action="store_false", default=None,
                        help="Disable horizontal scroll.")
    parser.add_argument("--cycle", action="store_true", default=None, help="Enable cyclic scroll.")
    parser.add_argument("--no-mouse", dest="mouse", action="store_false", default=None, help="Disable mouse.")
    parser.add_argument("--print-query", dest="print_query", action="store_true", default=None,
                        help="Print query as the first line.")
    parser.add_argument("--expect", metavar="KEYS", default=None,
                        help="Comma-separated list of keys to complete the finder.")
    parser.add_argument("--bind", metavar="KEY:ACTION,...", action="append", default=None,
                        help="Custom key bindings.")
    parser.add_argument("--prompt", default=None, help="Input prompt.")
    parser.add_argument("--history", metavar="FILE", default=None, help="History file.")
    parser.add_argument("--toggle-sort", dest="toggle_sort", metavar="KEY", default=None,
                        help="Key to toggle sort.")
    parser.add_argument("--color", choices=THEMES, default=None, help="Base color scheme.")
    return parser


def _open_tty_streams(redirect_input: bool) -> tuple[Optional[IO[str]], IO[str]]:
    """Re-points fds 0 and 1 at the controlling terminal.

    Returns:
        tuple: (original standard input as a text stream, or None when it was
        not redirected; original standard output as a text stream)
    """
    tty_fd = os.open("/dev/tty", os.O_RDWR)
    try:
        source = None
        if redirect_input:
            source_fd = os.dup(0)
            source = io.TextIOWrapper(
                io.FileIO(source_fd, "rb", closefd=True), encoding="utf-8", errors="replace"
            )
            os.dup2(tty_fd, 0)

        sys.stdout.flush()
        out_fd = os.dup(1)
        output = io.TextIOWrapper(io.FileIO(out_fd, "wb", closefd=True), encoding="utf-8", errors="replace")
        os.dup2(tty_fd, 1)
    finally:
        os.close(tty_fd)
    return source, output


def run(argv: Optional[list[str]] = None) -> int:
    """Runs one finder session and returns the process exit status."""
    try:
        load_dotenv(dotenv_path=Path(CONFIG_DIR) / ".env")
    except OSError:
        pass

    config = load_config()
    setup_logging(config)

    args_list = shlex.split(os.environ.get("FZTERM_DEFAULT_OPTS", ""))
    args_list += sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(args_list)

    try:
        options = Options.from_config(config).apply_args(args)
        history = QueryHistory(options.history, options.history_size) if options.history else None
    except FztermError as e:
        logger.error("Configuration error: %s", e)
        print(f"fzterm: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        logger.warning("Could not set system locale. Character rendering may be affected.")

    try:
        source, output = _open_tty_streams(redirect_input=not sys.stdin.isatty())
    except OSError as e:
        logger.error("Cannot open the controlling terminal: %s", e)
        print(f"fzterm: cannot open /dev/tty: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    block_resize_signal()

    driver = CursesDriver(colors=options.colors)
    terminal = Terminal(options, driver, history=history, output=output)
    items = ItemList()
    matcher = Matcher(items, terminal, sort=options.sort, case=options.case)
    reader = Reader(items, terminal, matcher)
    terminal.set_backend(matcher)

    matcher.start()
    if source is not None:
        reader.start(source)
    else:
        reader.start_command(os.environ.get("FZTERM_DEFAULT_COMMAND") or options.default_command)

    logger.info("fzterm session starting")
    try:
        return terminal.loop()
    finally:
        matcher.stop()
        driver.close()


def start() -> None:
    try:
        code = run()
    except KeyboardInterrupt:
        code = EXIT_INTERRUPTED
    except Exception:
        logger.critical("Unhandled exception at the top level.", exc_info=True)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    start()
