# ecopeta/db/models/review.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


class ReviewStatus(str, Enum):
    active = "active"
    flagged = "flagged"  # reached the report threshold, waits for an admin
    hidden = "hidden"


class Review(SQLModel, table=True):
    """
    A public user's review of a location, optionally tied to a pickup.

    Only `active` reviews accept edits, helpful-marks, responses or reports.
    The location owner's answer lives in `response` (one per review).
    """

    __tablename__ = "reviews"

    id: Optional[int] = Field(default=None, primary_key=True)
    location_id: int = Field(index=True, foreign_key="locations.id")
    user_id: int = Field(index=True, foreign_key="users.id")
    pickup_id: Optional[str] = Field(
        default=None, index=True, foreign_key="pickup_requests.id"
    )

    rating: int
    title: Optional[str] = None
    comment: str = Field(sa_column=Column(Text, nullable=False))

    status: ReviewStatus = Field(default=ReviewStatus.active, index=True)
    helpful_count: int = Field(default=0)
    flagged_count: int = Field(default=0)

    response: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    response_date: Optional[datetime] = None

    moderation_note: Optional[str] = None
    moderated_by: Optional[int] = Field(default=None, foreign_key="users.id")
    moderated_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
