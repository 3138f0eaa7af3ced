# tests/test_core/test_event_box.py
"""EventBox Tests
========================

Unit tests for the coalescing request mailbox.
"""

import threading

from fzterm.core.EventBox import EventBox, Request


def test_request_order() -> None:
    assert sorted(Request) == [
        Request.PROMPT,
        Request.INFO,
        Request.LIST,
        Request.REFRESH,
        Request.REDRAW,
        Request.CLOSE,
        Request.QUIT,
    ]


def test_posting_pending_kind_coalesces() -> None:
    box = EventBox()
    for _ in range(5):
        box.post(Request.INFO)
    box.post(Request.LIST)
    assert box.wait() == frozenset({Request.INFO, Request.LIST})
    assert box.peek() == frozenset()


def test_wait_times_out_with_empty_set() -> None:
    box = EventBox()
    assert box.wait(timeout=0.01) == frozenset()


def test_wait_blocks_until_post() -> None:
    box = EventBox()
    captured: list[frozenset] = []

    consumer = threading.Thread(target=lambda: captured.append(box.wait(timeout=5)))
    consumer.start()
    box.post(Request.REDRAW)
    consumer.join(timeout=5)

    assert captured == [frozenset({Request.REDRAW})]


def test_concurrent_producers_lose_nothing() -> None:
    """Every posted kind is observed by the consumer at least once."""
    box = EventBox()
    kinds = list(Request)
    seen: set[Request] = set()
    done = threading.Event()

    def consume() -> None:
        while not done.is_set() or box.peek():
            seen.update(box.wait(timeout=0.05))

    def produce(kind: Request) -> None:
        for _ in range(200):
            box.post(kind)

    consumer = threading.Thread(target=consume)
    consumer.start()
    producers = [threading.Thread(target=produce, args=(kind,)) for kind in kinds]
    for t in producers:
        t.start()
    for t in producers:
        t.join()
    done.set()
    consumer.join(timeout=5)

    assert seen == set(kinds)
