# ecopeta/db/models/pickup.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


def generate_public_id() -> str:
    """Generate a non-guessable identifier for pickup URLs."""
    return uuid4().hex


class PickupStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class TimeSlot(str, Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


class PickupRequest(SQLModel, table=True):
    """
    A household's request to have waste collected by one partner location.

    Notes:
    - `status` only moves along the graph in services/pickups.py
      (VALID_TRANSITIONS); `completed` and `cancelled` are terminal.
    - `actual_*` columns stay NULL until completion.
    - `points_awarded` flips to True exactly once, in the same transaction
      that sets `actual_points` and writes the points_history row.
    """

    __tablename__ = "pickup_requests"

    id: str = Field(default_factory=generate_public_id, primary_key=True)

    user_id: int = Field(index=True, foreign_key="users.id")
    location_id: int = Field(index=True, foreign_key="locations.id")

    status: PickupStatus = Field(default=PickupStatus.pending, index=True)
    scheduled_date: date = Field(index=True)
    time_slot: TimeSlot

    # Pickup address
    pickup_street: str
    pickup_city: str
    pickup_province: Optional[str] = None
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    pickup_notes: Optional[str] = None

    # Weight & points
    estimated_total_weight: float = Field(default=0.0)
    estimated_points: int = Field(default=0)
    actual_total_weight: Optional[float] = None
    actual_points: Optional[int] = None
    points_awarded: bool = Field(default=False)

    user_notes: Optional[str] = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    driver_notes: Optional[str] = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )

    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
    )
    updated_at: datetime = Field(default_factory=utcnow)
