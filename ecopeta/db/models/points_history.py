from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


class PointsHistory(SQLModel, table=True):
    """
    Append-only ledger of point awards.

    Rows are never updated or deleted; summing `points` per user must equal
    `users.points` (see services/points.reconcile_points).
    """

    __tablename__ = "points_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, foreign_key="users.id")
    points: int
    type: str = Field(default="earned", max_length=20)
    source: str = Field(default="pickup", max_length=20)
    source_id: Optional[str] = Field(default=None, index=True)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
