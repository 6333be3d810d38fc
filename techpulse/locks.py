"""
Per-key asyncio locks.

Callers for the same key queue behind each other in arrival order; callers
for different keys never contend. A key's lock is discarded as soon as no
caller holds or waits on it, so the registry only grows with concurrency,
not with the number of keys ever seen.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Hashable


class KeyedLocks:
    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        """Hold the lock for key for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
