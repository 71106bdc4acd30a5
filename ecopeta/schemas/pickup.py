"""
Request bodies for pickup endpoints.

Fields are Optional: presence checks happen in
services/pickups.py so each missing field gets its own message.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import field_validator
from sqlmodel import SQLModel

from ecopeta.db.models.pickup import PickupStatus, TimeSlot
from ecopeta.db.models.pickup_waste_item import WasteUnit


class PickupAddress(SQLModel):
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None


class WasteItemIn(SQLModel):
    category_id: Optional[int] = None
    estimated_weight: Optional[float] = None
    unit: WasteUnit = WasteUnit.kg


class PickupCreate(SQLModel):
    location_id: Optional[int] = None
    waste_items: Optional[List[WasteItemIn]] = None
    pickup_address: Optional[PickupAddress] = None
    scheduled_date: Optional[date] = None
    time_slot: Optional[TimeSlot] = None
    user_notes: Optional[str] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _date_only(cls, value: Any) -> Any:
        """Accept full ISO timestamps too; only the calendar day matters."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value


class ActualWeightItem(SQLModel):
    category_id: int
    actual_weight: float


class PickupStatusUpdate(SQLModel):
    status: Optional[PickupStatus] = None
    driver_notes: Optional[str] = None
    actual_weight_items: Optional[List[ActualWeightItem]] = None


class PickupCancel(SQLModel):
    reason: Optional[str] = None
