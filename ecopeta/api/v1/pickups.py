"""
Pickup request routes.

Thin HTTP layer over ecopeta.services.pickups:
- requesters create, list and cancel their own pickups,
- partners (mitra) drive the status of pickups at their locations,
- admins see and drive everything.

Fixed paths (/my-pickups, /schedule, /stats) are declared before
/{pickup_id} so they are not captured as ids.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ecopeta.core.deps import get_current_user, get_session, require_roles
from ecopeta.core.responses import listing, ok, pagination
from ecopeta.db.models.user import User, UserRole
from ecopeta.schemas.pickup import PickupCancel, PickupCreate, PickupStatusUpdate
from ecopeta.services import pickups as pickup_service

router = APIRouter(prefix="/pickups", tags=["pickups"])


# ---------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------
@router.post("", status_code=201)
def create_pickup(
    payload: PickupCreate,
    user: User = Depends(require_roles(UserRole.public)),
    session: Session = Depends(get_session),
):
    pickup = pickup_service.create_pickup(session, user, payload)
    return ok(pickup_service.pickup_payload(session, pickup))


# ---------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------
@router.get("")
def list_pickups(
    status: Optional[str] = Query(None, description="Comma separated statuses"),
    scheduled_date: Optional[date] = Query(None, alias="date"),
    location_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    items = pickup_service.list_pickups(
        session,
        user,
        status=status,
        scheduled_date=scheduled_date,
        location_id=location_id,
    )
    return listing([pickup_service.pickup_payload(session, p) for p in items])


@router.get("/my-pickups")
def my_pickups(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(require_roles(UserRole.public)),
    session: Session = Depends(get_session),
):
    items, total = pickup_service.list_my_pickups(
        session, user, status=status, page=page, limit=limit
    )
    return listing(
        [pickup_service.pickup_payload(session, p) for p in items],
        total=total,
        pagination=pagination(page, limit, total),
    )


@router.get("/schedule")
def schedule(
    scheduled_date: Optional[date] = Query(None, alias="date"),
    status: Optional[str] = Query(None),
    user: User = Depends(require_roles(UserRole.mitra, UserRole.admin)),
    session: Session = Depends(get_session),
):
    items = pickup_service.partner_schedule(
        session, user, scheduled_date=scheduled_date, status=status
    )
    return listing([pickup_service.pickup_payload(session, p) for p in items])


@router.get("/stats")
def stats(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return ok(pickup_service.pickup_stats(session, user))


# ---------------------------------------------------------------------
# Single pickup
# ---------------------------------------------------------------------
@router.get("/{pickup_id}")
def get_pickup(
    pickup_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    pickup = pickup_service.get_pickup(session, user, pickup_id)
    return ok(pickup_service.pickup_payload(session, pickup))


@router.put("/{pickup_id}/status")
def update_status(
    pickup_id: str,
    payload: PickupStatusUpdate,
    user: User = Depends(require_roles(UserRole.mitra, UserRole.admin)),
    session: Session = Depends(get_session),
):
    pickup = pickup_service.update_status(session, user, pickup_id, payload)
    return ok(pickup_service.pickup_payload(session, pickup))


@router.put("/{pickup_id}/cancel")
def cancel_pickup(
    pickup_id: str,
    payload: Optional[PickupCancel] = None,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    reason = payload.reason if payload else None
    pickup = pickup_service.cancel_pickup(session, user, pickup_id, reason=reason)
    return ok(pickup_service.pickup_payload(session, pickup))
