"""
Cafeteria Queue — Crowd schemas
"""
from datetime import datetime
from pydantic import BaseModel


class CrowdLevelResponse(BaseModel):
    slot_id: str
    slot_name: str
    start_time: str | None = None
    end_time: str | None = None
    active_bookings: int
    total_capacity: int
    occupancy_rate: int
    crowd_level: str
    avg_wait_time: int
    timestamp: datetime
    persisted: bool  # False when computed on the fly (no snapshot yet)
