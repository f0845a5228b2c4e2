"""
Cafeteria Queue — Booking lifecycle

State machine:
    (none) → PENDING → SERVING → SERVED
                     ↘ CANCELLED

Every mutation of a slot's active set runs inside BookingLifecycle._mutating():
the slot lock is held from the first read to the commit, and any failure rolls
the session back before the lock is released.
"""
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Iterable, Protocol

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.errors import NotFoundError, ForbiddenError, InvalidStateError, CapacityExceededError
from app.core.slot_locks import SlotLockRegistry, get_slot_locks
from app.db.position_ops import next_position, close_gap, renumber_after_serve
from app.db.token_ops import allocate_token
from app.db.wait_time_ops import estimate_at_booking
from app.models.booking import Booking, BookingItem, BookingModification, BookingStatus, ACTIVE_STATUSES
from app.models.catalog import Slot, MenuItem
from app.schemas.booking import BookingResponse, BookingItemOut, ModificationOut

logger = logging.getLogger(__name__)


class ItemLine(Protocol):
    menu_item_id: str
    quantity: int


class BookingLifecycle:
    """Entry point for every student and staff action on bookings."""

    def __init__(self, locks: SlotLockRegistry | None = None, clock: Callable[[], datetime] = utcnow):
        self.locks = locks or get_slot_locks()
        self.clock = clock

    @asynccontextmanager
    async def _mutating(self, db: AsyncSession, slot_id: str) -> AsyncIterator[None]:
        async with self.locks.hold(slot_id):
            try:
                yield
                await db.commit()
            except BaseException:
                await db.rollback()
                raise

    # ── Student actions ───────────────────────────────────────────────────────

    async def create_booking(
        self, db: AsyncSession, student_id: str, slot_id: str, items: Iterable[ItemLine]
    ) -> Booking:
        items = list(items)
        async with self._mutating(db, slot_id):
            slot = await db.get(Slot, slot_id, populate_existing=True)
            if slot is None or not slot.is_active:
                raise NotFoundError(f"Slot '{slot_id}' not found.")
            if slot.current_bookings >= slot.capacity:
                raise CapacityExceededError(
                    f"Slot {slot.name.value} is full ({slot.current_bookings}/{slot.capacity})."
                )
            await _ensure_menu_items(db, items)

            now = self.clock()
            token = await allocate_token(db, slot.id, slot.name.value, now)
            position = await next_position(db, slot.id)
            booking = Booking(
                student_id=student_id,
                slot_id=slot.id,
                token_number=token,
                queue_position=position,
                status=BookingStatus.PENDING,
                estimated_wait_time=estimate_at_booking(position),
                booked_at=now,
            )
            db.add(booking)
            await db.flush()
            _add_item_lines(db, booking.id, items)
            slot.current_bookings += 1

        logger.info(
            "Booking %s created: token=%s slot=%s position=%d wait=%dmin",
            booking.id, booking.token_number, slot_id, booking.queue_position, booking.estimated_wait_time,
        )
        return booking

    async def modify_booking(
        self, db: AsyncSession, booking_id: str, student_id: str, items: Iterable[ItemLine]
    ) -> Booking:
        items = list(items)
        booking = await self._owned_booking(db, booking_id, student_id)
        async with self._mutating(db, booking.slot_id):
            booking = await self._owned_booking(db, booking_id, student_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidStateError(
                    f"Cannot modify booking. Status: {booking.status.value}", status=booking.status.value
                )
            await _ensure_menu_items(db, items)

            changes = f"Items changed from {_dump_lines(await _item_lines(db, booking.id))} to {_dump_lines(items)}"
            await db.execute(delete(BookingItem).where(BookingItem.booking_id == booking.id))
            _add_item_lines(db, booking.id, items)
            db.add(BookingModification(booking_id=booking.id, modified_at=self.clock(), changes=changes))

        logger.info("Booking %s items modified (%d lines)", booking.id, len(items))
        return booking

    async def cancel_booking(self, db: AsyncSession, booking_id: str, student_id: str) -> Booking:
        booking = await self._owned_booking(db, booking_id, student_id)
        async with self._mutating(db, booking.slot_id):
            booking = await self._owned_booking(db, booking_id, student_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidStateError(
                    f"Cannot cancel booking. Status: {booking.status.value}", status=booking.status.value
                )
            removed_position = booking.queue_position
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = self.clock()
            await db.flush()

            slot = await db.get(Slot, booking.slot_id, populate_existing=True)
            if slot is not None:
                slot.current_bookings = max(0, slot.current_bookings - 1)
            await close_gap(db, booking.slot_id, removed_position)

        logger.info("Booking %s cancelled (was position %d in slot %s)", booking.id, removed_position, booking.slot_id)
        return booking

    async def get_booking(self, db: AsyncSession, booking_id: str, student_id: str) -> Booking:
        return await self._owned_booking(db, booking_id, student_id)

    async def list_my_active_bookings(self, db: AsyncSession, student_id: str) -> list[Booking]:
        return await self._student_bookings(db, student_id, active_only=True)

    async def list_my_bookings(self, db: AsyncSession, student_id: str) -> list[Booking]:
        return await self._student_bookings(db, student_id, active_only=False)

    # ── Staff actions ─────────────────────────────────────────────────────────

    async def list_queue(self, db: AsyncSession, slot_id: str) -> list[Booking]:
        result = await db.execute(
            select(Booking)
            .where(Booking.slot_id == slot_id, Booking.status.in_(ACTIVE_STATUSES))
            .order_by(Booking.queue_position.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def call_next(self, db: AsyncSession, slot_id: str) -> Booking:
        async with self._mutating(db, slot_id):
            result = await db.execute(
                select(Booking)
                .where(Booking.slot_id == slot_id, Booking.status == BookingStatus.PENDING)
                .order_by(Booking.queue_position.asc())
                .limit(1)
                .execution_options(populate_existing=True)
            )
            booking = result.scalar_one_or_none()
            if booking is None:
                raise NotFoundError("No pending tokens in queue.")
            booking.status = BookingStatus.SERVING

        logger.info("Called token %s (position %d) in slot %s", booking.token_number, booking.queue_position, slot_id)
        return booking

    async def mark_serving(self, db: AsyncSession, booking_id: str) -> Booking:
        booking = await self._booking(db, booking_id)
        async with self._mutating(db, booking.slot_id):
            booking = await self._booking(db, booking_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidStateError(
                    f"Can only mark pending bookings as serving. Status: {booking.status.value}",
                    status=booking.status.value,
                )
            booking.status = BookingStatus.SERVING

        logger.info("Booking %s now serving", booking.id)
        return booking

    async def mark_served(self, db: AsyncSession, booking_id: str) -> Booking:
        booking = await self._booking(db, booking_id)
        async with self._mutating(db, booking.slot_id):
            booking = await self._booking(db, booking_id)
            if booking.status != BookingStatus.SERVING:
                raise InvalidStateError(
                    f"Can only mark serving bookings as served. Status: {booking.status.value}",
                    status=booking.status.value,
                )
            booking.status = BookingStatus.SERVED
            booking.served_at = self.clock()
            await db.flush()
            remaining = await renumber_after_serve(db, booking.slot_id)

        logger.info("Booking %s served; %d still queued in slot %s", booking.id, len(remaining), booking.slot_id)
        return booking

    # ── Lookups ───────────────────────────────────────────────────────────────

    async def _booking(self, db: AsyncSession, booking_id: str) -> Booking:
        booking = await db.get(Booking, booking_id, populate_existing=True)
        if booking is None:
            raise NotFoundError(f"Booking '{booking_id}' not found.")
        return booking

    async def _owned_booking(self, db: AsyncSession, booking_id: str, student_id: str) -> Booking:
        booking = await self._booking(db, booking_id)
        if booking.student_id != student_id:
            raise ForbiddenError("Not authorized to access this booking.")
        return booking

    async def _student_bookings(self, db: AsyncSession, student_id: str, active_only: bool) -> list[Booking]:
        query = select(Booking).where(Booking.student_id == student_id)
        if active_only:
            query = query.where(Booking.status.in_(ACTIVE_STATUSES))
        result = await db.execute(
            query.order_by(Booking.booked_at.desc()).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


_lifecycle: BookingLifecycle | None = None


def get_booking_lifecycle() -> BookingLifecycle:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = BookingLifecycle()
    return _lifecycle


# ── Item lines ────────────────────────────────────────────────────────────────

async def _ensure_menu_items(db: AsyncSession, items: list[ItemLine]) -> None:
    wanted = {item.menu_item_id for item in items}
    result = await db.execute(
        select(MenuItem.id).where(MenuItem.id.in_(wanted), MenuItem.is_available.is_(True))
    )
    missing = sorted(wanted - set(result.scalars().all()))
    if missing:
        raise NotFoundError(f"Menu item(s) not found or unavailable: {', '.join(missing)}")


def _add_item_lines(db: AsyncSession, booking_id: str, items: list[ItemLine]) -> None:
    for line_no, item in enumerate(items, start=1):
        db.add(BookingItem(
            booking_id=booking_id,
            line_no=line_no,
            menu_item_id=item.menu_item_id,
            quantity=item.quantity,
        ))


async def _item_lines(db: AsyncSession, booking_id: str) -> list[BookingItem]:
    result = await db.execute(
        select(BookingItem).where(BookingItem.booking_id == booking_id).order_by(BookingItem.line_no)
    )
    return list(result.scalars().all())


def _dump_lines(lines: Iterable[ItemLine]) -> str:
    return json.dumps([{"menu_item_id": line.menu_item_id, "quantity": line.quantity} for line in lines])


async def to_responses(db: AsyncSession, bookings: list[Booking]) -> list[BookingResponse]:
    """Attach item lines, modification history and slot names in three queries."""
    if not bookings:
        return []
    ids = [b.id for b in bookings]

    lines: dict[str, list[BookingItemOut]] = {}
    result = await db.execute(
        select(BookingItem).where(BookingItem.booking_id.in_(ids)).order_by(BookingItem.line_no)
    )
    for line in result.scalars().all():
        lines.setdefault(line.booking_id, []).append(
            BookingItemOut(menu_item_id=line.menu_item_id, quantity=line.quantity)
        )

    history: dict[str, list[ModificationOut]] = {}
    result = await db.execute(
        select(BookingModification)
        .where(BookingModification.booking_id.in_(ids))
        .order_by(BookingModification.modified_at)
    )
    for entry in result.scalars().all():
        history.setdefault(entry.booking_id, []).append(
            ModificationOut(modified_at=entry.modified_at, changes=entry.changes)
        )

    result = await db.execute(select(Slot.id, Slot.name).where(Slot.id.in_({b.slot_id for b in bookings})))
    slot_names = {slot_id: name.value for slot_id, name in result.all()}

    return [
        BookingResponse(
            id=b.id,
            student_id=b.student_id,
            slot_id=b.slot_id,
            slot_name=slot_names.get(b.slot_id),
            token_number=b.token_number,
            queue_position=b.queue_position,
            status=b.status,
            estimated_wait_time=b.estimated_wait_time,
            booked_at=b.booked_at,
            served_at=b.served_at,
            cancelled_at=b.cancelled_at,
            items=lines.get(b.id, []),
            modification_history=history.get(b.id, []),
        )
        for b in bookings
    ]


async def to_response(db: AsyncSession, booking: Booking) -> BookingResponse:
    return (await to_responses(db, [booking]))[0]
