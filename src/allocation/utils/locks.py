"""Keyed lock registry — serialises work on one order or one split.

Commands run synchronously, so holding the lock around
``current_domain.process(...)`` covers the whole read-modify-write and the
commit of the unit of work.
"""

from contextlib import contextmanager
from threading import Lock, RLock


class KeyedLocks:
    """A lazily populated map of key -> re-entrant lock."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        self._guard = Lock()
        self._locks: dict[str, RLock] = {}

    def lock_for(self, key: str) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str):
        lock = self.lock_for(str(key))
        with lock:
            yield

    def reset(self) -> None:
        with self._guard:
            self._locks.clear()


_order_locks = KeyedLocks("order")
_split_locks = KeyedLocks("split")


def order_lock(order_id: str):
    """Serialise planning runs for a single order."""
    return _order_locks.hold(order_id)


def split_lock(split_id: str):
    """Serialise lifecycle transitions for a single split order."""
    return _split_locks.hold(split_id)


def reset_locks() -> None:
    """Drop all registered locks (useful for testing)."""
    _order_locks.reset()
    _split_locks.reset()
