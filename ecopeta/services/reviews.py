"""
Location reviews and their moderation.

- Only public users write reviews, never for their own location.
- Each report increments `flagged_count`; at the threshold
  (Settings.REVIEW_FLAG_THRESHOLD, 3 by default) the review becomes
  `flagged` and leaves the public listing until an admin decides.
- An admin sets the status to `active` or `hidden`, which resets the count.
- Only `active` reviews accept edits, helpful-marks, responses or reports.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ecopeta.core import policy
from ecopeta.core.config import get_settings
from ecopeta.core.errors import (
    AuthorizationError,
    DownstreamError,
    NotFoundError,
    ValidationError,
)
from ecopeta.core.timeutils import utcnow
from ecopeta.db.models.location import Location, LocationStatus
from ecopeta.db.models.pickup import PickupRequest, PickupStatus
from ecopeta.db.models.review import Review, ReviewStatus
from ecopeta.db.models.review_helpful import ReviewHelpful
from ecopeta.db.models.user import User, UserRole
from ecopeta.schemas.review import (
    ReviewCreate,
    ReviewModeration,
    ReviewResponseIn,
    ReviewUpdate,
)

log = logging.getLogger(__name__)

MIN_COMMENT_LENGTH = 10
MIN_RESPONSE_LENGTH = 10

SORT_FIELDS = {
    "recent": (Review.created_at, True),
    "-created_at": (Review.created_at, True),
    "created_at": (Review.created_at, False),
    "rating": (Review.rating, True),
    "-rating": (Review.rating, True),
    "helpful": (Review.helpful_count, True),
    "-helpful_count": (Review.helpful_count, True),
}


def _get_review(session: Session, review_id: int) -> Review:
    review = session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    return review


def _validate_rating(rating: int) -> None:
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")


def _validate_comment(comment: str) -> None:
    if len(comment.strip()) < MIN_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment must be at least {MIN_COMMENT_LENGTH} characters"
        )


def _refresh_location_rating(session: Session, location_id: int) -> None:
    """Recompute average rating and count over active reviews. No commit."""
    avg, count = session.exec(
        select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.location_id == location_id,
            Review.status == ReviewStatus.active,
        )
    ).one()
    location = session.get(Location, location_id)
    if location is None:
        return
    location.rating = round(float(avg), 2) if avg is not None else 0.0
    location.total_reviews = int(count or 0)
    session.add(location)


def _commit(session: Session, what: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.exception("Error %s", what)
        raise DownstreamError(f"Error {what}") from exc


def review_payload(
    session: Session,
    review: Review,
    viewer: Optional[User] = None,
) -> Dict[str, Any]:
    data = review.model_dump()
    author = session.get(User, review.user_id)
    location = session.get(Location, review.location_id)
    data["user"] = (
        {"id": author.id, "name": author.name, "badge": author.badge} if author else None
    )
    data["location"] = (
        {"id": location.id, "name": location.name, "type": location.type}
        if location
        else None
    )
    if viewer is not None:
        data["is_helpful_by_me"] = (
            session.get(ReviewHelpful, (review.id, viewer.id)) is not None
        )
    return data


# ---------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------
def list_reviews(
    session: Session,
    viewer: Optional[User],
    location_id: Optional[int] = None,
    status: Optional[str] = None,
    sort: str = "-created_at",
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Review], int]:
    """
    Visibility:
      - location page: everyone sees `active` reviews of that location.
      - dashboard (no location): public → own, mitra → own locations',
        admin → all; non-admins never see `hidden`.
      - an explicit `status` filter is honoured, except that only admins
        may ask for `hidden`.
    """
    page = max(1, page)
    limit = max(1, limit)
    conditions = []

    if location_id is not None:
        conditions.append(Review.location_id == location_id)
    elif viewer is not None and viewer.role == UserRole.public:
        conditions.append(Review.user_id == viewer.id)
    elif viewer is not None and viewer.role == UserRole.mitra:
        location_ids = list(
            session.exec(select(Location.id).where(Location.owner_id == viewer.id)).all()
        )
        if not location_ids:
            return [], 0
        conditions.append(Review.location_id.in_(location_ids))

    requested: Optional[ReviewStatus] = None
    if status and status != "all":
        try:
            requested = ReviewStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Invalid status filter: {status}") from exc

    if policy.is_admin(viewer):
        if requested is not None:
            conditions.append(Review.status == requested)
    elif viewer is not None:
        if requested is not None and requested != ReviewStatus.hidden:
            conditions.append(Review.status == requested)
        elif requested == ReviewStatus.hidden:
            raise AuthorizationError("Not authorized to view hidden reviews")
        elif location_id is None:
            conditions.append(Review.status != ReviewStatus.hidden)
        else:
            conditions.append(Review.status == ReviewStatus.active)
    else:
        conditions.append(Review.status == ReviewStatus.active)

    column, descending = SORT_FIELDS.get(sort, (Review.created_at, True))
    order = column.desc() if descending else column.asc()

    total = session.exec(select(func.count()).select_from(Review).where(*conditions)).one()
    reviews = session.exec(
        select(Review)
        .where(*conditions)
        .order_by(order, Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(reviews), int(total)


def get_review(session: Session, review_id: int) -> Review:
    return _get_review(session, review_id)


def pending_moderation(session: Session) -> List[Review]:
    return list(
        session.exec(
            select(Review)
            .where(Review.status == ReviewStatus.flagged)
            .order_by(Review.flagged_count.desc(), Review.id)
        ).all()
    )


# ---------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------
def add_review(
    session: Session,
    user: User,
    location_id: int,
    payload: ReviewCreate,
) -> Review:
    policy.require(user, policy.Capability.write_review, "Only public users can create reviews")

    if payload.rating is None or not payload.comment:
        raise ValidationError("Please provide rating and comment")
    _validate_rating(payload.rating)
    _validate_comment(payload.comment)

    location = session.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found")
    if location.status != LocationStatus.approved:
        raise ValidationError("Cannot review unapproved location")
    if policy.owns_location(user, location):
        raise ValidationError("You cannot review your own location")

    if payload.pickup_id:
        pickup = session.get(PickupRequest, payload.pickup_id)
        if pickup is None:
            raise NotFoundError("Pickup not found")
        if pickup.user_id != user.id:
            raise AuthorizationError("Not authorized to review this pickup")
        if pickup.location_id != location_id:
            raise ValidationError("Pickup does not belong to this location")
        if pickup.status != PickupStatus.completed:
            raise ValidationError("Can only review completed pickups")
        existing = session.exec(
            select(Review.id).where(
                Review.location_id == location_id,
                Review.user_id == user.id,
                Review.pickup_id == payload.pickup_id,
            )
        ).first()
        if existing is not None:
            raise ValidationError("You have already reviewed this pickup")

    review = Review(
        location_id=location_id,
        user_id=user.id,
        pickup_id=payload.pickup_id or None,
        rating=payload.rating,
        title=payload.title or None,
        comment=payload.comment.strip(),
        status=ReviewStatus.active,
    )
    session.add(review)
    session.flush()
    _refresh_location_rating(session, location_id)
    _commit(session, "creating review")
    session.refresh(review)
    return review


def update_review(
    session: Session,
    user: User,
    review_id: int,
    payload: ReviewUpdate,
) -> Review:
    review = _get_review(session, review_id)

    if review.user_id != user.id:
        raise AuthorizationError("Not authorized to update this review")
    if review.status != ReviewStatus.active:
        raise ValidationError("Cannot edit flagged or hidden reviews")

    if payload.rating is not None:
        _validate_rating(payload.rating)
        review.rating = payload.rating
    if payload.comment is not None:
        _validate_comment(payload.comment)
        review.comment = payload.comment.strip()
    if payload.title is not None:
        review.title = payload.title

    review.updated_at = utcnow()
    session.add(review)
    _refresh_location_rating(session, review.location_id)
    _commit(session, "updating review")
    session.refresh(review)
    return review


def delete_review(session: Session, user: User, review_id: int) -> None:
    review = _get_review(session, review_id)

    if review.user_id != user.id and not policy.is_admin(user):
        raise AuthorizationError("Not authorized to delete this review")

    location_id = review.location_id
    for mark in session.exec(
        select(ReviewHelpful).where(ReviewHelpful.review_id == review.id)
    ).all():
        session.delete(mark)
    session.delete(review)
    session.flush()
    _refresh_location_rating(session, location_id)
    _commit(session, "deleting review")


def toggle_helpful(session: Session, user: User, review_id: int) -> Tuple[Review, bool]:
    """
    Mark or unmark a review as helpful.

    Returns (review, marked) where `marked` is the state after the call.
    """
    review = _get_review(session, review_id)

    if review.user_id == user.id:
        raise ValidationError("You cannot mark your own review as helpful")
    if review.status != ReviewStatus.active:
        raise ValidationError("Cannot mark this review as helpful")

    existing = session.get(ReviewHelpful, (review.id, user.id))
    if existing is not None:
        session.delete(existing)
        review.helpful_count = max(0, review.helpful_count - 1)
        marked = False
    else:
        session.add(ReviewHelpful(review_id=review.id, user_id=user.id))
        review.helpful_count += 1
        marked = True

    session.add(review)
    _commit(session, "marking review as helpful")
    session.refresh(review)
    return review, marked


def add_response(
    session: Session,
    user: User,
    review_id: int,
    payload: ReviewResponseIn,
) -> Review:
    """Location owner's (or admin's) single answer; a new one replaces the old."""
    text = (payload.response or "").strip()
    if len(text) < MIN_RESPONSE_LENGTH:
        raise ValidationError(
            f"Response must be at least {MIN_RESPONSE_LENGTH} characters"
        )

    review = _get_review(session, review_id)
    location = session.get(Location, review.location_id)

    if not (policy.owns_location(user, location) or policy.is_admin(user)):
        raise AuthorizationError("Not authorized to respond to this review")
    if review.status != ReviewStatus.active:
        raise ValidationError("Cannot respond to this review")

    review.response = text
    review.response_date = utcnow()
    session.add(review)
    _commit(session, "adding response")
    session.refresh(review)
    return review


def flag_review(session: Session, user: User, review_id: int) -> Review:
    review = _get_review(session, review_id)

    if review.user_id == user.id:
        raise ValidationError("You cannot flag your own review")
    if review.status != ReviewStatus.active:
        raise ValidationError("This review is already flagged or hidden")

    threshold = get_settings().REVIEW_FLAG_THRESHOLD
    # Increment in SQL so concurrent reports are all counted
    session.exec(
        update(Review)
        .where(Review.id == review.id)
        .values(flagged_count=Review.flagged_count + 1)
        .execution_options(synchronize_session="fetch")
    )
    session.refresh(review, attribute_names=["flagged_count"])
    if review.flagged_count >= threshold:
        review.status = ReviewStatus.flagged
        log.info("Review %s flagged for moderation (%s reports)", review.id, review.flagged_count)
        session.add(review)
        session.flush()
        _refresh_location_rating(session, review.location_id)

    _commit(session, "flagging review")
    session.refresh(review)
    return review


def moderate_review(
    session: Session,
    admin: User,
    review_id: int,
    payload: ReviewModeration,
) -> Review:
    policy.require(admin, policy.Capability.moderate_reviews, "Admin privileges required")

    if payload.status not in (ReviewStatus.active, ReviewStatus.hidden):
        raise ValidationError("Please provide valid status (active/hidden)")

    review = _get_review(session, review_id)
    review.status = payload.status
    review.moderation_note = payload.moderation_note or None
    review.moderated_by = admin.id
    review.moderated_at = utcnow()
    review.flagged_count = 0
    session.add(review)
    session.flush()
    _refresh_location_rating(session, review.location_id)
    _commit(session, "moderating review")
    session.refresh(review)
    log.info("Review %s set to %s by admin %s", review.id, review.status.value, admin.id)
    return review
