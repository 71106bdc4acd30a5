from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from ecopeta.core.timeutils import utcnow


class LocationType(str, Enum):
    bank_sampah = "bank_sampah"  # waste bank
    jasa_angkut = "jasa_angkut"  # hauler
    both = "both"


class LocationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    suspended = "suspended"


class Location(SQLModel, table=True):
    """
    A partner's physical site shown on the map.

    Notes:
    - Only `approved` locations are listed publicly and accept pickups.
    - `pickup_service` must be True for a location to receive pickup requests.
    - `rating` / `total_reviews` are recomputed from active reviews whenever
      a review for this location changes.
    """

    __tablename__ = "locations"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True, foreign_key="users.id")

    name: str = Field(index=True)
    description: Optional[str] = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    type: LocationType = Field(default=LocationType.bank_sampah, index=True)
    status: LocationStatus = Field(default=LocationStatus.pending, index=True)

    phone: Optional[str] = None
    street: str
    city: str = Field(index=True)
    province: Optional[str] = None

    latitude: Optional[float] = None
    longitude: Optional[float] = None

    pickup_service: bool = Field(default=False)
    dropoff_service: bool = Field(default=True)

    rating: float = Field(default=0.0)
    total_reviews: int = Field(default=0)

    rejection_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
