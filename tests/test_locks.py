"""Tests for the keyed in-process lock."""

import threading
import time

from rentaly.infra.locks import KeyedLock


def test_same_key_serializes():
    locks = KeyedLock()
    active = 0
    peak = 0
    guard = threading.Lock()

    def worker():
        nonlocal active, peak
        with locks.hold("car-x"):
            with guard:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with guard:
                active -= 1

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert peak == 1


def test_different_keys_do_not_block():
    locks = KeyedLock()
    entered = threading.Event()

    with locks.hold("car-x"):
        def other():
            with locks.hold("car-y"):
                entered.set()

        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(timeout=2)
        t.join(timeout=2)


def test_entries_dropped_after_release():
    locks = KeyedLock()
    with locks.hold("car-x"):
        assert len(locks) == 1
    assert len(locks) == 0


def test_released_on_exception():
    locks = KeyedLock()
    try:
        with locks.hold("car-x"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    acquired = threading.Event()

    def again():
        with locks.hold("car-x"):
            acquired.set()

    t = threading.Thread(target=again)
    t.start()
    assert acquired.wait(timeout=2)
    t.join(timeout=2)
    assert len(locks) == 0
