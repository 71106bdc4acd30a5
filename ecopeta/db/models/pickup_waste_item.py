from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow

# ecopeta/db/models/pickup_waste_item.py


class WasteUnit(str, Enum):
    kg = "kg"
    pcs = "pcs"
    liter = "liter"


class PickupWasteItem(SQLModel, table=True):
    """
    One waste-category line of a pickup request.

    - Written in the same transaction as its parent request.
    - `actual_weight` is the only column changed after creation
      (filled in when the pickup is completed).
    """

    __tablename__ = "pickup_waste_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    pickup_id: str = Field(index=True, foreign_key="pickup_requests.id")
    category_id: int = Field(index=True, foreign_key="waste_categories.id")

    unit: WasteUnit = Field(default=WasteUnit.kg)
    estimated_weight: float
    actual_weight: Optional[float] = None

    created_at: datetime = Field(default_factory=utcnow)
