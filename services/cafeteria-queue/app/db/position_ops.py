"""
Cafeteria Queue — Queue position management

Keeps the positions of a slot's active (pending/serving) bookings gap-free:
exactly 1..N, no duplicates. Callers must hold the slot's lock.

Two repair strategies, kept distinct:
  - close_gap:            O(affected) decrement after a cancellation anywhere in the queue
  - renumber_after_serve: full reload-and-reassign after a serving booking leaves the set

Both are instances of "compact positions above a threshold" and could be
folded into one primitive.
"""
import logging
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, ACTIVE_STATUSES

logger = logging.getLogger(__name__)


async def next_position(db: AsyncSession, slot_id: str) -> int:
    """1 + highest active position in the slot, or 1 for an empty queue."""
    highest = await db.scalar(
        select(func.max(Booking.queue_position)).where(
            Booking.slot_id == slot_id,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    )
    return (highest or 0) + 1


async def close_gap(db: AsyncSession, slot_id: str, removed_position: int) -> int:
    """
    Shift every active booking above removed_position down by one.
    Bookings at or below it are untouched. Returns the number of rows moved.
    """
    result = await db.execute(
        update(Booking)
        .where(
            Booking.slot_id == slot_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.queue_position > removed_position,
        )
        .values(queue_position=Booking.queue_position - 1)
        .execution_options(synchronize_session="fetch")
    )
    logger.debug("Closed gap at position %d in slot %s (%d moved)", removed_position, slot_id, result.rowcount)
    return result.rowcount


async def renumber_after_serve(db: AsyncSession, slot_id: str) -> list[Booking]:
    """
    Reload the slot's remaining active bookings by current position and
    reassign 1, 2, 3, ... in that order.

    Serving bookings are included so that a second counter still serving
    someone keeps a distinct position; with a single serving booking at a
    time this is exactly the pending queue compacted from 1.
    """
    result = await db.execute(
        select(Booking)
        .where(Booking.slot_id == slot_id, Booking.status.in_(ACTIVE_STATUSES))
        .order_by(Booking.queue_position.asc(), Booking.booked_at.asc())
    )
    remaining = list(result.scalars().all())
    for position, booking in enumerate(remaining, start=1):
        if booking.queue_position != position:
            booking.queue_position = position
    await db.flush()
    return remaining
