"""
Cafeteria Queue — Per-slot serialization

Every operation that touches a slot's active-booking set (create, cancel,
call-next, mark-serving, mark-served) or its currentBookings counter runs
inside that slot's lock, from its first read to its commit:

  - READ:  max(queue_position), today's booking count, current_bookings
  - WRITE: new booking / renumbered positions / counter
  - Two requests for the same slot can never observe each other's
    half-finished state, so positions and token numbers stay unique and
    capacity is never overshot.

Operations on different slots never wait on each other. The registry is
process-local: the service runs as a single instance against one store.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class SlotLockRegistry:
    """Lazily creates one asyncio.Lock per slot id."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, slot_id: str) -> asyncio.Lock:
        lock = self._locks.get(slot_id)
        if lock is None:
            lock = self._locks[slot_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, slot_id: str) -> AsyncIterator[None]:
        lock = self.lock_for(slot_id)
        if lock.locked():
            logger.debug("Slot %s busy, waiting for lock", slot_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


_registry: SlotLockRegistry | None = None


def get_slot_locks() -> SlotLockRegistry:
    global _registry
    if _registry is None:
        _registry = SlotLockRegistry()
    return _registry
