"""
Cafeteria Queue — Crowd level routes
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Caller, get_caller
from app.core.clock import utcnow
from app.db import crowd_ops
from app.db.database import get_db
from app.schemas.crowd import CrowdLevelResponse

router = APIRouter(prefix="/crowd", tags=["crowd"])


@router.get("/current", response_model=CrowdLevelResponse | list[CrowdLevelResponse])
async def current_crowd_level(
    slot_id: str | None = Query(None, description="Single slot; omit for every active slot"),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    if slot_id:
        return await crowd_ops.latest(db, slot_id, utcnow())
    return await crowd_ops.latest_all(db, utcnow())


@router.get("/history/{slot_id}")
async def crowd_history(
    slot_id: str,
    hours: int = Query(24, ge=1, le=24 * 14),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Persisted snapshots of a slot, oldest first (crowd-pattern charts)."""
    snapshots = await crowd_ops.history(db, slot_id, utcnow(), hours=hours)
    return [
        {
            "slot_id": s.slot_id,
            "active_bookings": s.active_bookings,
            "total_capacity": s.total_capacity,
            "occupancy_rate": s.occupancy_rate,
            "crowd_level": s.crowd_level,
            "avg_wait_time": s.avg_wait_time,
            "timestamp": s.captured_at.isoformat(),
        }
        for s in snapshots
    ]
