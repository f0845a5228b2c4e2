"""
Cafeteria Queue — Crowd occupancy

Shared formulas for the snapshot tick and the read path:
  occupancy_rate = round(100 × active / capacity)   (0 when capacity is 0)
  crowd_level    = low (< 40) · medium (40–69) · high (≥ 70)
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import round_half_up
from app.core.config import get_settings
from app.core.errors import NotFoundError
from app.db.wait_time_ops import estimate_from_history
from app.models.booking import Booking, ACTIVE_STATUSES
from app.models.catalog import Slot
from app.models.crowd import CrowdSnapshot
from app.schemas.crowd import CrowdLevelResponse

settings = get_settings()


def occupancy_rate(active: int, capacity: int) -> int:
    if capacity <= 0:
        return 0
    return round_half_up(100 * active / capacity)


def crowd_level(rate: int) -> str:
    if rate < settings.CROWD_LOW_THRESHOLD:
        return "low"
    if rate < settings.CROWD_MEDIUM_THRESHOLD:
        return "medium"
    return "high"


@dataclass
class Occupancy:
    slot_id: str
    active_bookings: int
    total_capacity: int
    occupancy_rate: int
    crowd_level: str
    avg_wait_time: int


async def count_active(db: AsyncSession, slot_id: str) -> int:
    return await db.scalar(
        select(func.count(Booking.id)).where(
            Booking.slot_id == slot_id,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    ) or 0


async def measure(db: AsyncSession, slot: Slot, now: datetime) -> Occupancy:
    active = await count_active(db, slot.id)
    rate = occupancy_rate(active, slot.capacity)
    return Occupancy(
        slot_id=slot.id,
        active_bookings=active,
        total_capacity=slot.capacity,
        occupancy_rate=rate,
        crowd_level=crowd_level(rate),
        avg_wait_time=await estimate_from_history(db, slot.id, now),
    )


async def record_snapshot(db: AsyncSession, slot: Slot, now: datetime) -> CrowdSnapshot:
    occupancy = await measure(db, slot, now)
    snapshot = CrowdSnapshot(
        slot_id=slot.id,
        active_bookings=occupancy.active_bookings,
        total_capacity=occupancy.total_capacity,
        occupancy_rate=occupancy.occupancy_rate,
        crowd_level=occupancy.crowd_level,
        avg_wait_time=occupancy.avg_wait_time,
        captured_at=now,
    )
    db.add(snapshot)
    await db.commit()
    return snapshot


async def active_slot_ids(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Slot.id).where(Slot.is_active.is_(True)).order_by(Slot.start_time))
    return list(result.scalars().all())


async def _latest_snapshot(db: AsyncSession, slot_id: str) -> CrowdSnapshot | None:
    result = await db.execute(
        select(CrowdSnapshot)
        .where(CrowdSnapshot.slot_id == slot_id)
        .order_by(CrowdSnapshot.captured_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _level_for(db: AsyncSession, slot: Slot, now: datetime) -> CrowdLevelResponse:
    snapshot = await _latest_snapshot(db, slot.id)
    if snapshot is not None:
        return CrowdLevelResponse(
            slot_id=slot.id,
            slot_name=slot.name.value,
            start_time=slot.start_time,
            end_time=slot.end_time,
            active_bookings=snapshot.active_bookings,
            total_capacity=snapshot.total_capacity,
            occupancy_rate=snapshot.occupancy_rate,
            crowd_level=snapshot.crowd_level,
            avg_wait_time=snapshot.avg_wait_time,
            timestamp=snapshot.captured_at,
            persisted=True,
        )

    # No tick has run for this slot yet: same formulas, not persisted.
    occupancy = await measure(db, slot, now)
    return CrowdLevelResponse(
        slot_id=slot.id,
        slot_name=slot.name.value,
        start_time=slot.start_time,
        end_time=slot.end_time,
        active_bookings=occupancy.active_bookings,
        total_capacity=occupancy.total_capacity,
        occupancy_rate=occupancy.occupancy_rate,
        crowd_level=occupancy.crowd_level,
        avg_wait_time=occupancy.avg_wait_time,
        timestamp=now,
        persisted=False,
    )


async def latest(db: AsyncSession, slot_id: str, now: datetime) -> CrowdLevelResponse:
    slot = await db.get(Slot, slot_id)
    if slot is None:
        raise NotFoundError(f"Slot '{slot_id}' not found.")
    return await _level_for(db, slot, now)


async def latest_all(db: AsyncSession, now: datetime) -> list[CrowdLevelResponse]:
    result = await db.execute(select(Slot).where(Slot.is_active.is_(True)).order_by(Slot.start_time))
    return [await _level_for(db, slot, now) for slot in result.scalars().all()]


async def history(db: AsyncSession, slot_id: str, now: datetime, hours: int = 24) -> list[CrowdSnapshot]:
    """Persisted snapshots of the slot within the last `hours`, oldest first."""
    if await db.get(Slot, slot_id) is None:
        raise NotFoundError(f"Slot '{slot_id}' not found.")
    result = await db.execute(
        select(CrowdSnapshot)
        .where(CrowdSnapshot.slot_id == slot_id, CrowdSnapshot.captured_at >= now - timedelta(hours=hours))
        .order_by(CrowdSnapshot.captured_at.asc())
    )
    return list(result.scalars().all())
