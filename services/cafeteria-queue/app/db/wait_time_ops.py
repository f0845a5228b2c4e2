"""
Cafeteria Queue — Wait-time estimation

Two distinct estimates:
  - estimate_at_booking:   static quote stored on the booking, never refreshed
  - estimate_from_history: live per-slot average used on crowd dashboards
"""
from datetime import datetime, timedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import round_half_up
from app.core.config import get_settings
from app.models.booking import Booking, BookingStatus

settings = get_settings()


def estimate_at_booking(queue_position: int) -> int:
    return queue_position * settings.AVERAGE_SERVICE_MINUTES


async def estimate_from_history(
    db: AsyncSession,
    slot_id: str,
    now: datetime,
    lookback_minutes: int | None = None,
) -> int:
    """Average booked→served minutes over bookings served within the lookback window."""
    lookback = lookback_minutes if lookback_minutes is not None else settings.WAIT_LOOKBACK_MINUTES
    since = now - timedelta(minutes=lookback)
    result = await db.execute(
        select(Booking.booked_at, Booking.served_at).where(
            Booking.slot_id == slot_id,
            Booking.status == BookingStatus.SERVED,
            Booking.served_at >= since,
        )
    )
    rows = result.all()
    if not rows:
        return settings.DEFAULT_WAIT_MINUTES

    total = sum((served_at - booked_at).total_seconds() / 60 for booked_at, served_at in rows)
    return round_half_up(total / len(rows))
