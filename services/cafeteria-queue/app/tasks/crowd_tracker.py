"""
Cafeteria Queue — Crowd tracker (background snapshot task)

Owned by the FastAPI lifespan, not a module-level timer:
  start()  → capture immediately, then every interval; no-op if already running
  stop()   → cancel and await the loop; no-op if not running

The tracker only reads booking state and appends CrowdSnapshot rows, so it
never takes the per-slot locks. A snapshot may observe a slot mid-mutation;
snapshots are advisory.
"""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import utcnow
from app.db.crowd_ops import active_slot_ids, record_snapshot
from app.models.catalog import Slot
from app.models.crowd import CrowdSnapshot

logger = logging.getLogger(__name__)


class CrowdTracker:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._sleep = sleep
        self._clock = clock
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.info("Crowd tracking already started")
            return
        logger.info("Starting crowd tracking every %.0f seconds", self.interval_seconds)
        self._task = asyncio.create_task(self._run(), name="crowd-tracker")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Crowd tracking stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.capture_snapshots()
            except Exception:
                # Listing slots failed; the next tick retries.
                logger.exception("Crowd snapshot tick failed")
            await self._sleep(self.interval_seconds)

    async def capture_snapshots(self) -> list[CrowdSnapshot]:
        """One tick: a snapshot per active slot, each in its own session."""
        now = self._clock()
        async with self.session_factory() as db:
            slot_ids = await active_slot_ids(db)

        snapshots: list[CrowdSnapshot] = []
        for slot_id in slot_ids:
            try:
                async with self.session_factory() as db:
                    slot = await db.get(Slot, slot_id)
                    if slot is None:
                        continue
                    snapshots.append(await record_snapshot(db, slot, now))
            except Exception:
                logger.exception("Error capturing crowd snapshot for slot %s", slot_id)

        self.ticks += 1
        if snapshots:
            logger.info("Captured %d occupancy snapshots at %s", len(snapshots), now.isoformat(timespec="seconds"))
        return snapshots
