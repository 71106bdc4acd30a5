from __future__ import annotations

from typing import Optional

from sqlmodel import SQLModel

from ecopeta.db.models.location import LocationType


class LocationCreate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[LocationType] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    pickup_service: bool = False
    dropoff_service: bool = True


class LocationUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[LocationType] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    pickup_service: Optional[bool] = None
    dropoff_service: Optional[bool] = None


class LocationReject(SQLModel):
    reason: Optional[str] = None
