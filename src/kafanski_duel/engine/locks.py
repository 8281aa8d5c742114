"""Per-duel mutual exclusion for the current process.

Writers on the same duel (accept, decline, submit, surrender) run one at a
time. Across processes the row lock taken by ``SELECT ... FOR UPDATE`` and
the unique live pair key do the same job.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class DuelLockRegistry:
    """Hands out one asyncio.Lock per key.

    Locks are held weakly, so a key's lock disappears once nobody is using it.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[Hashable, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self.get(key)
        async with lock:
            yield


duel_locks = DuelLockRegistry()


def duel_key(duel_id: int) -> tuple[str, int]:
    return ("duel", duel_id)


def pair_key(player_a_id: int, player_b_id: int) -> tuple[str, int, int]:
    low, high = sorted((player_a_id, player_b_id))
    return ("pair", low, high)
