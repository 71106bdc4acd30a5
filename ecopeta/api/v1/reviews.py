from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ecopeta.core.deps import get_current_user, get_session, require_admin
from ecopeta.core.responses import listing, ok, pagination
from ecopeta.db.models.user import User
from ecopeta.schemas.review import ReviewModeration, ReviewResponseIn, ReviewUpdate
from ecopeta.services import reviews as review_service

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("")
def list_reviews(
    status: Optional[str] = Query(None),
    sort: str = Query("-created_at"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Dashboard listing: own reviews, own locations' reviews, or all (admin)."""
    items, total = review_service.list_reviews(
        session, user, status=status, sort=sort, page=page, limit=limit
    )
    return listing(
        [review_service.review_payload(session, r, user) for r in items],
        total=total,
        pagination=pagination(page, limit, total),
    )


@router.get("/moderate/pending")
def pending_moderation(
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    items = review_service.pending_moderation(session)
    return listing([review_service.review_payload(session, r) for r in items])


@router.get("/{review_id}")
def get_review(
    review_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    review = review_service.get_review(session, review_id)
    return ok(review_service.review_payload(session, review, user))


@router.put("/{review_id}")
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    review = review_service.update_review(session, user, review_id, payload)
    return ok(review_service.review_payload(session, review, user))


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    review_service.delete_review(session, user, review_id)
    return ok({}, message="Review deleted")


@router.put("/{review_id}/helpful")
def toggle_helpful(
    review_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    review, marked = review_service.toggle_helpful(session, user, review_id)
    return ok(
        {"helpful_count": review.helpful_count, "is_helpful_by_me": marked},
        message="Marked as helpful" if marked else "Removed helpful mark",
    )


@router.put("/{review_id}/flag")
def flag_review(
    review_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    review = review_service.flag_review(session, user, review_id)
    return ok(
        {"flagged_count": review.flagged_count, "status": review.status},
        message="Review reported",
    )


@router.put("/{review_id}/response")
def add_response(
    review_id: int,
    payload: ReviewResponseIn,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    review = review_service.add_response(session, user, review_id, payload)
    return ok(review_service.review_payload(session, review, user))


@router.put("/{review_id}/moderate")
def moderate_review(
    review_id: int,
    payload: ReviewModeration,
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    review = review_service.moderate_review(session, user, review_id, payload)
    return ok(review_service.review_payload(session, review))
