from __future__ import annotations

from typing import Optional

from sqlmodel import SQLModel


class WasteCategoryCreate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon_url: Optional[str] = None
    points_per_kg: Optional[int] = None


class WasteCategoryUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon_url: Optional[str] = None
    points_per_kg: Optional[int] = None
    is_active: Optional[bool] = None
