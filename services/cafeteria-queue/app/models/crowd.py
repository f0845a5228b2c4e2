"""
Cafeteria Queue — Crowd snapshot model

[HISTORY DATA] — append-only, written only by the crowd tracker.
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base


class CrowdSnapshot(Base):
    __tablename__ = "crowd_snapshots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("slots.id"), index=True, nullable=False)
    active_bookings: Mapped[int] = mapped_column(Integer, nullable=False)
    total_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    occupancy_rate: Mapped[int] = mapped_column(Integer, nullable=False)  # 0–100
    crowd_level: Mapped[str] = mapped_column(String(10), nullable=False)  # low / medium / high
    avg_wait_time: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    captured_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
