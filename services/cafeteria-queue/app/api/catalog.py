"""
Cafeteria Queue — Slot and menu catalog routes

Reads are public; writes are admin-only. Slot capacity edits never touch
current_bookings, which only the booking lifecycle moves.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Caller, require_roles
from app.db.database import get_db
from app.models.catalog import Slot, MenuItem
from app.schemas.catalog import (
    SlotCreateRequest,
    SlotUpdateRequest,
    SlotResponse,
    MenuItemCreateRequest,
    MenuItemResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/catalog", tags=["catalog"])
admin_only = require_roles("admin")


@router.get("/slots", response_model=list[SlotResponse])
async def list_slots(
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    query = select(Slot).order_by(Slot.start_time)
    if not include_inactive:
        query = query.where(Slot.is_active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/slots", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
async def create_slot(
    payload: SlotCreateRequest,
    caller: Caller = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    if payload.end_time <= payload.start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    slot = Slot(**payload.model_dump())
    db.add(slot)
    await db.commit()
    await db.refresh(slot)
    logger.info("Slot %s (%s) created by %s", slot.id, slot.name.value, caller.user_id)
    return slot


@router.put("/slots/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: str,
    payload: SlotUpdateRequest,
    caller: Caller = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    slot = await db.get(Slot, slot_id)
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found.")

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(slot, field, value)
    if slot.end_time <= slot.start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    await db.commit()
    await db.refresh(slot)
    return slot


@router.get("/menu-items", response_model=list[MenuItemResponse])
async def list_menu_items(
    available_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    query = select(MenuItem).order_by(MenuItem.name)
    if available_only:
        query = query.where(MenuItem.is_available.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/menu-items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    payload: MenuItemCreateRequest,
    caller: Caller = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    item = MenuItem(**payload.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item
