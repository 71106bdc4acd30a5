from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


class UserRole(str, Enum):
    """Closed set of caller identity classes."""

    public = "public"  # households requesting pickups
    mitra = "mitra"  # recycling partners owning locations
    admin = "admin"


class User(SQLModel, table=True):
    """
    Application users.

    Notes:
    - `email` is stored lower-cased and is unique at DB level.
    - `points` is the running loyalty total. It is only ever increased by
      the pickup-completion award (see services/points.py); the
      `points_history` ledger holds one row per award.
    - `badge` is a tier label maintained elsewhere; new users start at bronze.
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    phone: Optional[str] = None
    role: UserRole = Field(default=UserRole.public, index=True)

    points: int = Field(default=0, nullable=False)
    badge: str = Field(default="bronze", max_length=20)

    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
