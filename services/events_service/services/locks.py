"""Per-event mutual exclusion for registration writes.

One ``asyncio.Lock`` per event id serializes register/cancel/promote within a
process; the ledger row's ``SELECT ... FOR UPDATE`` does the same across
processes. Events never contend with each other.
"""

import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class EventLockRegistry:
    """Hands out one lock per event id.

    Locks are held weakly: once no coroutine holds or waits on an event's
    lock it is dropped, so the registry does not grow with every event ever
    touched.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, event_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[event_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, event_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self.lock_for(event_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


event_locks = EventLockRegistry()
