"""
Cafeteria Queue — Student booking routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Caller, require_roles
from app.db.database import get_db
from app.db.booking_ops import BookingLifecycle, get_booking_lifecycle, to_response, to_responses
from app.schemas.booking import BookingCreateRequest, BookingModifyRequest, BookingResponse, CancelResponse

router = APIRouter(prefix="/bookings", tags=["bookings"])
student_only = require_roles("student")


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreateRequest,
    caller: Caller = Depends(student_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Book a slot: returns the token number, queue position and wait quote."""
    booking = await lifecycle.create_booking(db, caller.user_id, payload.slot_id, payload.items)
    return await to_response(db, booking)


@router.get("/my-tokens", response_model=list[BookingResponse])
async def my_active_bookings(
    caller: Caller = Depends(student_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Pending and serving bookings of the caller, newest first."""
    bookings = await lifecycle.list_my_active_bookings(db, caller.user_id)
    return await to_responses(db, bookings)


@router.get("/all", response_model=list[BookingResponse])
async def my_bookings(
    caller: Caller = Depends(student_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Every booking of the caller, past ones included, newest first."""
    bookings = await lifecycle.list_my_bookings(db, caller.user_id)
    return await to_responses(db, bookings)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    caller: Caller = Depends(student_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    booking = await lifecycle.get_booking(db, booking_id, caller.user_id)
    return await to_response(db, booking)


@router.put("/{booking_id}", response_model=BookingResponse)
async def modify_booking(
    booking_id: str,
    payload: BookingModifyRequest,
    caller: Caller = Depends(student_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Replace the items of a pending booking; the change is recorded in its history."""
    booking = await lifecycle.modify_booking(db, booking_id, caller.user_id, payload.items)
    return await to_response(db, booking)


@router.delete("/{booking_id}", response_model=CancelResponse)
async def cancel_booking(
    booking_id: str,
    caller: Caller = Depends(student_only),
    db: AsyncSession = Depends(get_db),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    booking = await lifecycle.cancel_booking(db, booking_id, caller.user_id)
    return CancelResponse(booking_id=booking.id, status=booking.status, message="Booking cancelled successfully.")
