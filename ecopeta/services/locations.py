"""
Partner locations: registration, editing and admin approval.

A location is created `pending` and only becomes visible on the public
map (and able to receive pickups) once an admin approves it. When the
owner edits an approved location it goes back to `pending`.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from ecopeta.core import policy
from ecopeta.core.errors import AuthorizationError, NotFoundError, ValidationError
from ecopeta.core.timeutils import utcnow
from ecopeta.db.models.location import Location, LocationStatus, LocationType
from ecopeta.db.models.user import User
from ecopeta.schemas.location import LocationCreate, LocationReject, LocationUpdate
from ecopeta.services.notifications import send_notification

log = logging.getLogger(__name__)


def list_locations(
    session: Session,
    type_: Optional[str] = None,
    city: Optional[str] = None,
    pickup_service: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Location], int]:
    page = max(1, page)
    limit = max(1, limit)
    conditions = [Location.status == LocationStatus.approved]

    if type_:
        try:
            wanted = LocationType(type_)
        except ValueError as exc:
            raise ValidationError(f"Invalid location type: {type_}") from exc
        # "both" locations show up under either single type
        if wanted == LocationType.both:
            conditions.append(Location.type == LocationType.both)
        else:
            conditions.append(Location.type.in_([wanted, LocationType.both]))
    if city:
        conditions.append(func.lower(Location.city) == city.strip().lower())
    if pickup_service is not None:
        conditions.append(Location.pickup_service == pickup_service)

    total = session.exec(
        select(func.count()).select_from(Location).where(*conditions)
    ).one()
    items = session.exec(
        select(Location)
        .where(*conditions)
        .order_by(Location.rating.desc(), Location.name)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(items), int(total)


def list_my_locations(session: Session, user: User) -> List[Location]:
    return list(
        session.exec(
            select(Location)
            .where(Location.owner_id == user.id)
            .order_by(Location.created_at.desc())
        ).all()
    )


def list_pending(session: Session, user: User) -> List[Location]:
    policy.require(user, policy.Capability.moderate_locations, "Admin privileges required")
    return list(
        session.exec(
            select(Location)
            .where(Location.status == LocationStatus.pending)
            .order_by(Location.created_at)
        ).all()
    )


def get_location(session: Session, location_id: int, viewer: Optional[User] = None) -> Location:
    """Unapproved locations exist only for their owner and admins."""
    location = session.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found")
    if location.status != LocationStatus.approved and not (
        policy.owns_location(viewer, location) or policy.is_admin(viewer)
    ):
        raise NotFoundError("Location not found")
    return location


def create_location(session: Session, user: User, payload: LocationCreate) -> Location:
    policy.require(
        user,
        policy.Capability.manage_locations,
        f"User role {user.role.value} is not authorized to access this route",
    )

    if not (payload.name and payload.type and payload.street and payload.city):
        raise ValidationError("Please provide name, type, street and city")
    if payload.latitude is None or payload.longitude is None:
        raise ValidationError("Please provide latitude and longitude")

    location = Location(
        owner_id=user.id,
        status=LocationStatus.pending,
        **payload.model_dump(),
    )
    session.add(location)
    session.commit()
    session.refresh(location)
    log.info("Location %s registered by user %s", location.id, user.id)
    return location


def update_location(
    session: Session,
    user: User,
    location_id: int,
    payload: LocationUpdate,
) -> Location:
    location = session.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found")
    if not policy.can_manage_location(user, location):
        raise AuthorizationError("Not authorized to update this location")

    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None and key in ("name", "type", "street", "city"):
            continue
        setattr(location, key, value)

    if not policy.is_admin(user) and location.status == LocationStatus.approved:
        location.status = LocationStatus.pending
    location.updated_at = utcnow()

    session.add(location)
    session.commit()
    session.refresh(location)
    return location


def approve_location(session: Session, admin: User, location_id: int) -> Location:
    policy.require(admin, policy.Capability.moderate_locations, "Admin privileges required")
    location = session.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found")

    location.status = LocationStatus.approved
    location.rejection_reason = None
    location.updated_at = utcnow()
    session.add(location)
    session.commit()
    session.refresh(location)

    send_notification(
        session,
        location.owner_id,
        "Location approved",
        f"Your location {location.name} has been approved",
        related_id=str(location.id),
        type_="location",
    )
    session.refresh(location)
    return location


def reject_location(
    session: Session,
    admin: User,
    location_id: int,
    payload: LocationReject,
) -> Location:
    policy.require(admin, policy.Capability.moderate_locations, "Admin privileges required")
    reason = (payload.reason or "").strip()
    if not reason:
        raise ValidationError("Please provide rejection reason")

    location = session.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found")

    location.status = LocationStatus.rejected
    location.rejection_reason = reason
    location.updated_at = utcnow()
    session.add(location)
    session.commit()
    session.refresh(location)

    send_notification(
        session,
        location.owner_id,
        "Location rejected",
        f"Your location {location.name} was rejected: {reason}",
        related_id=str(location.id),
        type_="location",
    )
    session.refresh(location)
    return location
