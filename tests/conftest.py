# tests/conftest.py
"""Pytest configuration with shared fixtures for the fzterm tests."""

from __future__ import annotations

import logging
from typing import Generator

import pytest

from fzterm.ui.DrawScreen import WidthCache
from tests.stubs import FakeDriver


@pytest.fixture
def widths() -> WidthCache:
    """Returns:
    WidthCache: A fresh width memo.
    """
    return WidthCache()


@pytest.fixture
def fake_driver() -> FakeDriver:
    """Returns:
    FakeDriver: A 10x40 recording driver with no scripted events.
    """
    return FakeDriver(height=10, width=40)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Keeps `setup_logging` calls in one test from leaking handlers into others."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
