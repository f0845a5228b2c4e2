"""
Cafeteria Queue — Booking schemas
"""
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.booking import BookingStatus


class BookingItemIn(BaseModel):
    menu_item_id: str = Field(..., examples=["item-001"])
    quantity: int = Field(..., ge=1, le=10)


class BookingCreateRequest(BaseModel):
    slot_id: str
    items: list[BookingItemIn] = Field(..., min_length=1, max_length=20)


class BookingModifyRequest(BaseModel):
    items: list[BookingItemIn] = Field(..., min_length=1, max_length=20)


class BookingItemOut(BaseModel):
    menu_item_id: str
    quantity: int


class ModificationOut(BaseModel):
    modified_at: datetime
    changes: str


class BookingResponse(BaseModel):
    id: str
    student_id: str
    slot_id: str
    slot_name: str | None = None
    token_number: str
    queue_position: int
    status: BookingStatus
    estimated_wait_time: int
    booked_at: datetime
    served_at: datetime | None = None
    cancelled_at: datetime | None = None
    items: list[BookingItemOut]
    modification_history: list[ModificationOut] = []


class CancelResponse(BaseModel):
    booking_id: str
    status: BookingStatus
    message: str
