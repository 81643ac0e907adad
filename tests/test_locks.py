"""Keyed lock specs."""

from __future__ import annotations

import threading
import time

import pytest

from htlc_spec.locks import KeyedLocks


def test_table_is_emptied_when_idle() -> None:
    locks = KeyedLocks()
    with locks.hold(b"a"):
        assert len(locks) == 1
        with locks.hold(b"b"):
            assert len(locks) == 2
    assert len(locks) == 0


def test_released_on_exception() -> None:
    locks = KeyedLocks()
    with pytest.raises(ValueError):
        with locks.hold("k"):
            raise ValueError("boom")
    assert len(locks) == 0
    with locks.hold("k"):
        pass


def test_same_key_is_serialized() -> None:
    locks = KeyedLocks()
    inside = 0
    peak = 0
    guard = threading.Lock()

    def worker() -> None:
        nonlocal inside, peak
        with locks.hold("same"):
            with guard:
                inside += 1
                peak = max(peak, inside)
            time.sleep(0.005)
            with guard:
                inside -= 1

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert peak == 1
    assert len(locks) == 0


def test_distinct_keys_do_not_block() -> None:
    locks = KeyedLocks()
    entered = threading.Event()

    def other() -> None:
        with locks.hold("b"):
            entered.set()

    with locks.hold("a"):
        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(timeout=2)
        t.join()
