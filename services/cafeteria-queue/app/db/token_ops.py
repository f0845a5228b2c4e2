"""
Cafeteria Queue — Token number allocation

Token = first letter of the slot name + 3-digit sequence within the slot's
calendar day, e.g. the 4th Lunch booking today → "L004".

The count-then-format sequence is only unique when callers hold the slot's
lock (app.core.slot_locks); booking_ops always does.
"""
import logging
from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import start_of_local_day
from app.core.config import get_settings
from app.models.booking import Booking

settings = get_settings()
logger = logging.getLogger(__name__)

TOKEN_SEQUENCE_WIDTH = 3


def format_token(slot_name: str, sequence: int) -> str:
    return f"{slot_name[:1].upper()}{sequence:0{TOKEN_SEQUENCE_WIDTH}d}"


async def allocate_token(db: AsyncSession, slot_id: str, slot_name: str, as_of: datetime) -> str:
    """
    Count every booking of the slot made since local midnight of as_of
    (cancelled ones included, so numbers are never reused) and return the next token.
    """
    day_start = start_of_local_day(as_of, settings.CAFETERIA_TIMEZONE)
    count = await db.scalar(
        select(func.count(Booking.id)).where(
            Booking.slot_id == slot_id,
            Booking.booked_at >= day_start,
        )
    )
    token = format_token(slot_name, (count or 0) + 1)
    logger.debug("Allocated token %s for slot %s (%d earlier today)", token, slot_id, count or 0)
    return token
