"""
Cafeteria Queue — Staff queue routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Caller, require_roles
from app.db.database import get_db
from app.db.booking_ops import BookingLifecycle, get_booking_lifecycle, to_response, to_responses
from app.schemas.booking import BookingResponse

router = APIRouter(prefix="/staff", tags=["staff"])
staff_only = require_roles("staff")


@router.get("/queue/{slot_id}", response_model=list[BookingResponse])
async def queue_for_slot(
    slot_id: str,
    caller: Caller = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Active bookings of the slot in queue order."""
    bookings = await lifecycle.list_queue(db, slot_id)
    return await to_responses(db, bookings)


@router.post("/call-next/{slot_id}", response_model=BookingResponse)
async def call_next(
    slot_id: str,
    caller: Caller = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Move the lowest-positioned pending booking to serving."""
    booking = await lifecycle.call_next(db, slot_id)
    return await to_response(db, booking)


@router.put("/mark-serving/{booking_id}", response_model=BookingResponse)
async def mark_serving(
    booking_id: str,
    caller: Caller = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    booking = await lifecycle.mark_serving(db, booking_id)
    return await to_response(db, booking)


@router.put("/mark-served/{booking_id}", response_model=BookingResponse)
async def mark_served(
    booking_id: str,
    caller: Caller = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Complete a serving booking and compact the remaining queue."""
    booking = await lifecycle.mark_served(db, booking_id)
    return await to_response(db, booking)
