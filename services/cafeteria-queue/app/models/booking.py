"""
Cafeteria Queue — Booking models

[TRANSACTIONAL DATA] — bookings, their item lines and modification history.
"""
import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, DateTime, Text, Enum, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base
from app.models.catalog import enum_values


class BookingStatus(str, PyEnum):
    PENDING = "pending"
    SERVING = "serving"
    SERVED = "served"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.SERVING)


class Booking(Base):
    """
    One student's reservation for a slot.

    Among bookings of one slot whose status is pending or serving,
    queue_position values are exactly 1..N.
    """
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("slots.id"), nullable=False)
    token_number: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    queue_position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=enum_values),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    estimated_wait_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # minutes
    booked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    served_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_bookings_slot_status_position", "slot_id", "status", "queue_position"),
        Index("ix_bookings_student_status", "student_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return f"<Booking {self.token_number} #{self.queue_position} {self.status.value}>"


class BookingItem(Base):
    __tablename__ = "booking_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id: Mapped[str] = mapped_column(String(36), ForeignKey("bookings.id"), index=True, nullable=False)
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    menu_item_id: Mapped[str] = mapped_column(String(36), ForeignKey("menu_items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)


class BookingModification(Base):
    """Append-only audit trail of item edits."""
    __tablename__ = "booking_modifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id: Mapped[str] = mapped_column(String(36), ForeignKey("bookings.id"), index=True, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    changes: Mapped[str] = mapped_column(Text, nullable=False)
