# ecopeta/db/models/waste_category.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


class WasteCategory(SQLModel, table=True):
    """
    Recycling classification with a fixed point rate.

    Deleting a category only flips `is_active`; inactive categories are
    never offered to requesters and never used for point calculations.
    """

    __tablename__ = "waste_categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: Optional[str] = None
    icon_url: Optional[str] = None
    points_per_kg: int = Field(default=0)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
