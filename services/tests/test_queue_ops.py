"""
Cafeteria Queue — token, position and wait-time primitives

Tests:
  1. Token format and per-day sequence (cancelled bookings still count)
  2. Local-day boundary in a non-UTC cafeteria timezone
  3. next_position / close_gap / renumber_after_serve keep positions 1..N
  4. Static wait quote and the served-history average
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.core.clock import start_of_local_day, round_half_up
from app.db.position_ops import next_position, close_gap, renumber_after_serve
from app.db.token_ops import format_token, allocate_token
from app.db.wait_time_ops import estimate_at_booking, estimate_from_history
from app.models.booking import Booking, BookingStatus, ACTIVE_STATUSES
from app.models.catalog import SlotName

NOON = datetime(2026, 3, 2, 12, 0, 0)


async def active_positions(db, slot_id):
    result = await db.execute(
        select(Booking.queue_position)
        .where(Booking.slot_id == slot_id, Booking.status.in_(ACTIVE_STATUSES))
        .order_by(Booking.queue_position)
    )
    return list(result.scalars().all())


# ─── Tokens ────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "slot_name,sequence,expected",
    [("Lunch", 1, "L001"), ("Breakfast", 42, "B042"), ("Dinner", 999, "D999"), ("Snacks", 1000, "S1000")],
)
def test_format_token(slot_name, sequence, expected):
    assert format_token(slot_name, sequence) == expected


@pytest.mark.asyncio
async def test_token_sequence_counts_todays_bookings_only(db_session, make_slot, add_booking):
    """Yesterday's bookings do not count; today's do, whatever their status."""
    slot = await make_slot()
    slot_id = slot.id
    await add_booking(slot_id, 1, booked_at=NOON - timedelta(days=1))
    await add_booking(slot_id, 1, status=BookingStatus.CANCELLED, booked_at=NOON - timedelta(hours=2))
    await add_booking(slot_id, 1, booked_at=NOON - timedelta(hours=1))

    token = await allocate_token(db_session, slot_id, SlotName.LUNCH.value, NOON)

    assert token == "L003"


@pytest.mark.asyncio
async def test_first_token_of_the_day(db_session, make_slot):
    slot = await make_slot(name=SlotName.DINNER)
    assert await allocate_token(db_session, slot.id, SlotName.DINNER.value, NOON) == "D001"


def test_start_of_local_day_utc():
    assert start_of_local_day(datetime(2026, 3, 2, 23, 59), "UTC") == datetime(2026, 3, 2, 0, 0)


def test_start_of_local_day_follows_cafeteria_timezone():
    """19:00 UTC is already the next day in Dhaka (UTC+6); that day began at 18:00 UTC."""
    assert start_of_local_day(datetime(2026, 3, 2, 19, 0), "Asia/Dhaka") == datetime(2026, 3, 2, 18, 0)
    assert start_of_local_day(datetime(2026, 3, 2, 17, 0), "Asia/Dhaka") == datetime(2026, 3, 1, 18, 0)


# ─── Positions ─────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_next_position_empty_queue_is_one(db_session, make_slot):
    slot = await make_slot()
    assert await next_position(db_session, slot.id) == 1


@pytest.mark.asyncio
async def test_next_position_ignores_finished_bookings(db_session, make_slot, add_booking):
    slot = await make_slot()
    slot_id = slot.id
    await add_booking(slot_id, 1)
    await add_booking(slot_id, 2, status=BookingStatus.SERVING)
    await add_booking(slot_id, 7, status=BookingStatus.SERVED)
    await add_booking(slot_id, 9, status=BookingStatus.CANCELLED)

    assert await next_position(db_session, slot_id) == 3


@pytest.mark.asyncio
async def test_close_gap_shifts_only_bookings_above(db_session, make_slot, add_booking):
    slot = await make_slot()
    slot_id = slot.id
    for position in (1, 2, 4, 5):
        await add_booking(slot_id, position)

    moved = await close_gap(db_session, slot_id, removed_position=3)
    await db_session.commit()

    assert moved == 2
    assert await active_positions(db_session, slot_id) == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_close_gap_leaves_other_slots_alone(db_session, make_slot, add_booking):
    lunch = await make_slot()
    dinner = await make_slot(name=SlotName.DINNER)
    lunch_id, dinner_id = lunch.id, dinner.id
    await add_booking(lunch_id, 2)
    await add_booking(dinner_id, 2)

    await close_gap(db_session, lunch_id, removed_position=1)
    await db_session.commit()

    assert await active_positions(db_session, lunch_id) == [1]
    assert await active_positions(db_session, dinner_id) == [2]


@pytest.mark.asyncio
async def test_renumber_after_serve_compacts_from_one(db_session, make_slot, add_booking):
    slot = await make_slot()
    slot_id = slot.id
    await add_booking(slot_id, 1, status=BookingStatus.SERVED)
    await add_booking(slot_id, 2, token="L002")
    await add_booking(slot_id, 3, token="L003")

    remaining = await renumber_after_serve(db_session, slot_id)
    await db_session.commit()

    assert [b.token_number for b in remaining] == ["L002", "L003"]
    assert await active_positions(db_session, slot_id) == [1, 2]


# ─── Wait time ─────────────────────────────────────────────────────────────────
@pytest.mark.parametrize("position,minutes", [(1, 5), (3, 15), (10, 50)])
def test_estimate_at_booking(position, minutes):
    assert estimate_at_booking(position) == minutes


@pytest.mark.parametrize("value,expected", [(2.5, 3), (2.49, 2), (12.5, 13), (0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.asyncio
async def test_history_estimate_defaults_without_served_bookings(db_session, make_slot, add_booking):
    slot = await make_slot()
    await add_booking(slot.id, 1)
    assert await estimate_from_history(db_session, slot.id, NOON) == 5


@pytest.mark.asyncio
async def test_history_estimate_averages_recent_service(db_session, make_slot, add_booking):
    """10 and 15 minutes served recently → 12.5 → 13; the one served 2h ago is outside the window."""
    slot = await make_slot()
    slot_id = slot.id
    await add_booking(slot_id, 1, status=BookingStatus.SERVED,
                      booked_at=NOON - timedelta(minutes=30), served_at=NOON - timedelta(minutes=20))
    await add_booking(slot_id, 2, status=BookingStatus.SERVED,
                      booked_at=NOON - timedelta(minutes=25), served_at=NOON - timedelta(minutes=10))
    await add_booking(slot_id, 3, status=BookingStatus.SERVED,
                      booked_at=NOON - timedelta(hours=3), served_at=NOON - timedelta(hours=2))

    assert await estimate_from_history(db_session, slot_id, NOON) == 13
    assert await estimate_from_history(db_session, slot_id, NOON, lookback_minutes=180) == 28
