"""Per-user asyncio locks.

A user's XP total, task progress, achievement set and day pointer form one
consistency unit, so every mutating operation for a user runs under that
user's lock. Locks vanish once no coroutine holds or awaits them.
"""

from __future__ import annotations

import asyncio
import weakref


class UserLockRegistry:
    """Hands out one lock per user id within this process."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


user_locks = UserLockRegistry()
