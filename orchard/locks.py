"""
locks.py - Keyed mutual exclusion for orchard operations

Every mutating Orchard operation declares the keys it touches (one per SKU
name, one per holder identity, one for custody) and runs inside
KeyedLocks.exclusive(). Locks are acquired in sorted key order so two
operations touching overlapping keys can never deadlock.

A per-thread reentrancy guard rejects a mutating call made while another
mutating call is still running on the same thread, e.g. from inside a
custodian's pay() callback. Read-only calls only use hold() and may be made
from such callbacks.
"""

from __future__ import annotations
from contextlib import contextmanager, ExitStack
from typing import Dict, Iterator, Tuple
import threading

from .core import ReentrantCall

LockKey = Tuple[str, str]

CUSTODY_KEY: LockKey = ("custody", "")


def sku_key(name: str) -> LockKey:
    return ("sku", name)


def holder_key(identity: str) -> LockKey:
    return ("holder", identity)


class KeyedLocks:
    """Lazily created re-entrant lock per key, plus a reentrancy guard."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[LockKey, threading.RLock] = {}
        self._local = threading.local()

    def _lock_for(self, key: LockKey):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @property
    def active_operation(self):
        """Name of the mutating operation running on this thread, if any."""
        return getattr(self._local, "operation", None)

    @contextmanager
    def hold(self, *keys: LockKey) -> Iterator[None]:
        """Acquire the locks for `keys` in sorted order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._lock_for(key))
            yield

    @contextmanager
    def exclusive(self, operation: str, *keys: LockKey) -> Iterator[None]:
        """
        Run a mutating operation holding the locks for `keys`.

        Raises:
            ReentrantCall: If this thread is already inside a mutating operation.
        """
        active = self.active_operation
        if active is not None:
            raise ReentrantCall(operation, active)
        self._local.operation = operation
        try:
            with self.hold(*keys):
                yield
        finally:
            self._local.operation = None

    def __len__(self) -> int:
        return len(self._locks)
