"""In-process locks keyed by an arbitrary hashable (room id, user id, booking id)."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyBusyError(RuntimeError):
    """Raised by ``try_hold`` when the key is already held."""

    def __init__(self, key: Hashable) -> None:
        super().__init__(f"key {key!r} is busy")
        self.key = key


class KeyedLocks:
    """Lazily created lock per key.

    ``hold`` blocks and acquires several keys in sorted order so two callers
    locking overlapping sets cannot deadlock. ``try_hold`` never waits.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        ordered = sorted(set(keys), key=repr)
        acquired = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    @contextmanager
    def try_hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        if not lock.acquire(blocking=False):
            raise KeyBusyError(key)
        try:
            yield
        finally:
            lock.release()

    def is_held(self, key: Hashable) -> bool:
        return self._lock_for(key).locked()
