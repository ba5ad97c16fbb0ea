"""Per-host mutexes for mutating operations."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class HostLocks:
    """Registry of re-entrant locks keyed by hostname.

    Locks are created on first use and kept for the life of the process.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def get(self, host: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(host)
            if lock is None:
                lock = self._locks[host] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, host: str) -> Iterator[None]:
        lock = self.get(host)
        with lock:
            yield

    @contextmanager
    def try_hold(self, host: str) -> Iterator[bool]:
        """Take the lock for ``host`` only if it is free.

        Yields whether the lock was taken; the body must not touch the host
        when it yields False.
        """
        lock = self.get(host)
        acquired = lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
