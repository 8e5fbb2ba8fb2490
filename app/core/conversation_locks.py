"""Per-key async mutual exclusion for conversation writers.

Two messages from the same customer arriving together must not interleave
their read-history → model → append sequences. Locks live in-process and are
dropped once no task holds or waits on them.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from app.core.logging import get_logger

logger = get_logger(__name__)


class KeyedLocks:
    """Registry of asyncio locks keyed by string."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock

        self._waiters[key] += 1
        try:
            if lock.locked():
                logger.debug(f"Waiting for lock {key}")
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] <= 0:
                self._waiters.pop(key, None)
                self._locks.pop(key, None)

    def active_keys(self) -> list[str]:
        return list(self._locks)


def identity_key(project_id: str, platform: str, platform_user_id: str) -> str:
    """Lock key for first-contact customer/conversation resolution."""
    return f"identity:{project_id}:{platform}:{platform_user_id}"


def conversation_key(conversation_id: str) -> str:
    """Lock key for one conversation's turn sequence."""
    return f"conversation:{conversation_id}"


conversation_locks = KeyedLocks()
