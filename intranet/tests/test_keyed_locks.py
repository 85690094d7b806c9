"""In-process keyed locks."""

import threading
import time

import pytest

from intranet.core.utils.keyed_locks import KeyBusyError, KeyedLocks

pytestmark = pytest.mark.unit


def test_try_hold_rejects_second_holder():
    locks = KeyedLocks()
    with locks.try_hold("room-1"):
        assert locks.is_held("room-1")
        with pytest.raises(KeyBusyError) as excinfo:
            with locks.try_hold("room-1"):
                pass
        assert excinfo.value.key == "room-1"
    assert not locks.is_held("room-1")


def test_different_keys_do_not_block():
    locks = KeyedLocks()
    with locks.try_hold("a"):
        with locks.try_hold("b"):
            assert locks.is_held("a") and locks.is_held("b")


def test_hold_releases_on_error():
    locks = KeyedLocks()
    with pytest.raises(RuntimeError):
        with locks.hold("x", "y"):
            raise RuntimeError("boom")
    assert not locks.is_held("x")
    assert not locks.is_held("y")


def test_hold_accepts_duplicate_keys():
    locks = KeyedLocks()
    with locks.hold("grande", "grande"):
        assert locks.is_held("grande")
    assert not locks.is_held("grande")


def test_hold_serializes_critical_section():
    locks = KeyedLocks()
    inside = []
    overlaps = []

    def worker():
        with locks.hold("aquario"):
            inside.append(1)
            if len(inside) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []


def test_opposite_order_multi_key_holds_do_not_deadlock():
    locks = KeyedLocks()
    done = []

    def worker(keys):
        for _ in range(50):
            with locks.hold(*keys):
                pass
        done.append(keys)

    a = threading.Thread(target=worker, args=(("aquario", "grande"),))
    b = threading.Thread(target=worker, args=(("grande", "aquario"),))
    a.start()
    b.start()
    a.join(timeout=5)
    b.join(timeout=5)
    assert len(done) == 2
