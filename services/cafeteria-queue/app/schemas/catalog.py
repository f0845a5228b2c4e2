"""
Cafeteria Queue — Catalog schemas
"""
from pydantic import BaseModel, Field

from app.models.catalog import SlotName, MenuCategory

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class SlotCreateRequest(BaseModel):
    name: SlotName
    start_time: str = Field(..., pattern=HHMM, examples=["12:00"])
    end_time: str = Field(..., pattern=HHMM, examples=["14:00"])
    capacity: int = Field(50, ge=0)
    is_active: bool = True


class SlotUpdateRequest(BaseModel):
    start_time: str | None = Field(None, pattern=HHMM)
    end_time: str | None = Field(None, pattern=HHMM)
    capacity: int | None = Field(None, ge=0)
    is_active: bool | None = None


class SlotResponse(BaseModel):
    id: str
    name: SlotName
    start_time: str
    end_time: str
    capacity: int
    current_bookings: int
    is_active: bool

    model_config = {"from_attributes": True}


class MenuItemCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    category: MenuCategory
    price: int = Field(..., ge=0)
    is_available: bool = True


class MenuItemResponse(BaseModel):
    id: str
    name: str
    description: str | None
    category: MenuCategory
    price: int
    is_available: bool

    model_config = {"from_attributes": True}
