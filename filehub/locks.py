"""In-process keyed locks for per-file and per-user mutual exclusion."""

import threading
from contextlib import contextmanager
from typing import Dict, Generator


class KeyedLock:
    """
    A registry of re-entrant mutexes, one per key, created on demand.

    Entries are reference counted and dropped once no thread holds or waits
    on them, so the registry does not grow with every file id ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._waiters: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Generator[None, None, None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
                self._waiters[key] = 0
            self._waiters[key] += 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


file_locks = KeyedLock()

user_locks = KeyedLock()
