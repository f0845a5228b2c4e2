"""
Cafeteria Queue — Catalog models

[CONFIG DATA] — slots and menu items are admin-owned and preserved across resets.
"""
import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Boolean, DateTime, Text, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base


class SlotName(str, PyEnum):
    # First letters double as token prefixes and must stay distinct.
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    SNACKS = "Snacks"
    DINNER = "Dinner"


class MenuCategory(str, PyEnum):
    VEG = "veg"
    NON_VEG = "non-veg"
    BEVERAGE = "beverage"
    DESSERT = "dessert"


def enum_values(enum_cls) -> list[str]:
    """Store enum values, not member names, in the database."""
    return [member.value for member in enum_cls]


class Slot(Base):
    """
    A named serving window. current_bookings tracks admission against the
    physical capacity and is independent of queue positions.
    """
    __tablename__ = "slots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[SlotName] = mapped_column(
        Enum(SlotName, name="slot_name", values_callable=enum_values), nullable=False
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # "HH:MM"
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    current_bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Slot {self.name.value} {self.current_bookings}/{self.capacity}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[MenuCategory] = mapped_column(
        Enum(MenuCategory, name="menu_category", values_callable=enum_values), nullable=False
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False)  # in paisa (integer cents)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
