from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


class Notification(SQLModel, table=True):
    """In-app message for a single recipient (best-effort, never required)."""

    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, foreign_key="users.id")
    title: str
    message: str
    type: str = Field(default="pickup", max_length=20)
    related_id: Optional[str] = None
    is_read: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
    )
