"""
Player Locks
Per-player mutual exclusion for ladder mutations
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, AsyncIterator


class PlayerLocks:
    """
    Hands out one asyncio.Lock per player ID

    Multi-player sections take their locks in ascending player ID order, so two
    operations over overlapping pairs cannot deadlock.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}

    def _lock_for(self, player_id: int) -> asyncio.Lock:
        lock = self._locks.get(player_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[player_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *player_ids: int) -> AsyncIterator[None]:
        """Hold the locks of every given player for the duration of the block"""
        acquired = []
        try:
            for player_id in sorted(set(player_ids)):
                lock = self._lock_for(player_id)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
