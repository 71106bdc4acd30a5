"""
Location routes, including the per-location review listing / creation
(`/locations/{id}/reviews`).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ecopeta.core.deps import (
    get_current_user,
    get_current_user_optional,
    get_session,
    require_admin,
    require_roles,
)
from ecopeta.core.responses import listing, ok, pagination
from ecopeta.db.models.user import User, UserRole
from ecopeta.schemas.location import LocationCreate, LocationReject, LocationUpdate
from ecopeta.schemas.review import ReviewCreate
from ecopeta.services import locations as location_service
from ecopeta.services import reviews as review_service

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("")
def list_locations(
    type: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    pickup_service: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    items, total = location_service.list_locations(
        session,
        type_=type,
        city=city,
        pickup_service=pickup_service,
        page=page,
        limit=limit,
    )
    return listing(items, total=total, pagination=pagination(page, limit, total))


@router.post("", status_code=201)
def create_location(
    payload: LocationCreate,
    user: User = Depends(require_roles(UserRole.mitra, UserRole.admin)),
    session: Session = Depends(get_session),
):
    return ok(location_service.create_location(session, user, payload))


@router.get("/mine")
def my_locations(
    user: User = Depends(require_roles(UserRole.mitra, UserRole.admin)),
    session: Session = Depends(get_session),
):
    return listing(location_service.list_my_locations(session, user))


@router.get("/pending")
def pending_locations(
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return listing(location_service.list_pending(session, user))


@router.get("/{location_id}")
def get_location(
    location_id: int,
    viewer: Optional[User] = Depends(get_current_user_optional),
    session: Session = Depends(get_session),
):
    return ok(location_service.get_location(session, location_id, viewer))


@router.put("/{location_id}")
def update_location(
    location_id: int,
    payload: LocationUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return ok(location_service.update_location(session, user, location_id, payload))


@router.put("/{location_id}/approve")
def approve_location(
    location_id: int,
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return ok(location_service.approve_location(session, user, location_id))


@router.put("/{location_id}/reject")
def reject_location(
    location_id: int,
    payload: LocationReject,
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return ok(location_service.reject_location(session, user, location_id, payload))


# ---------------------------------------------------------------------
# Reviews of one location
# ---------------------------------------------------------------------
@router.get("/{location_id}/reviews")
def location_reviews(
    location_id: int,
    sort: str = Query("-created_at"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    viewer: Optional[User] = Depends(get_current_user_optional),
    session: Session = Depends(get_session),
):
    location_service.get_location(session, location_id, viewer)
    items, total = review_service.list_reviews(
        session,
        viewer,
        location_id=location_id,
        sort=sort,
        page=page,
        limit=limit,
    )
    return listing(
        [review_service.review_payload(session, r, viewer) for r in items],
        total=total,
        pagination=pagination(page, limit, total),
    )


@router.post("/{location_id}/reviews", status_code=201)
def add_review(
    location_id: int,
    payload: ReviewCreate,
    user: User = Depends(require_roles(UserRole.public)),
    session: Session = Depends(get_session),
):
    review = review_service.add_review(session, user, location_id, payload)
    return ok(review_service.review_payload(session, review, user))
