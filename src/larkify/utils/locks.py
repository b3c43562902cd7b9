"""Per-document async locks.

The insert engine assumes a single writer per document: interleaved
``write_doc``/``append_doc`` calls against the same document would mix
their batches.  :class:`KeyedLock` serialises callers that share a key
while letting different documents proceed concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """A lazily populated map of ``key -> asyncio.Lock``.

    Entries are dropped once no coroutine holds or waits on them, so the
    map does not grow with the number of documents ever written.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for *key* for the duration of the ``async with`` block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def locked(self, key: str) -> bool:
        """Return ``True`` if some coroutine currently holds *key*."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
