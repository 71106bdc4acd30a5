"""
Pickup lifecycle: creation, status state machine, requester cancellation,
role-filtered listings and statistics.

Key rules:
- A pickup is created against an approved, pickup-enabled location, for a
  date strictly after today, with at least one item of an active category.
  The request row and its item rows are written in one transaction.
- Status moves only along VALID_TRANSITIONS; `completed` and `cancelled`
  are terminal.
- Completing a pickup records actual weights, computes actual points and
  awards them to the requester in the same transaction.
- Notifications are sent after commit and never fail the call.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ecopeta.core import policy
from ecopeta.core.errors import (
    AuthorizationError,
    DownstreamError,
    NotFoundError,
    ValidationError,
)
from ecopeta.core.timeutils import utcnow
from ecopeta.db.models.location import Location, LocationStatus
from ecopeta.db.models.pickup import PickupRequest, PickupStatus, TimeSlot
from ecopeta.db.models.pickup_waste_item import PickupWasteItem
from ecopeta.db.models.user import User, UserRole
from ecopeta.db.models.waste_category import WasteCategory
from ecopeta.schemas.pickup import (
    ActualWeightItem,
    PickupCreate,
    PickupStatusUpdate,
    WasteItemIn,
)
from ecopeta.services.notifications import send_notification
from ecopeta.services.points import award_points, calculate_points

log = logging.getLogger(__name__)

VALID_TRANSITIONS: Dict[PickupStatus, frozenset] = {
    PickupStatus.pending: frozenset({PickupStatus.accepted, PickupStatus.cancelled}),
    PickupStatus.accepted: frozenset({PickupStatus.scheduled, PickupStatus.cancelled}),
    PickupStatus.scheduled: frozenset({PickupStatus.in_progress, PickupStatus.cancelled}),
    PickupStatus.in_progress: frozenset({PickupStatus.completed, PickupStatus.cancelled}),
    PickupStatus.completed: frozenset(),
    PickupStatus.cancelled: frozenset(),
}

TERMINAL_STATUSES = frozenset({PickupStatus.completed, PickupStatus.cancelled})

# Statuses shown on a partner's schedule by default
ACTIVE_STATUSES = (
    PickupStatus.pending,
    PickupStatus.accepted,
    PickupStatus.scheduled,
    PickupStatus.in_progress,
)

SLOT_ORDER = {TimeSlot.morning: 0, TimeSlot.afternoon: 1, TimeSlot.evening: 2}

DEFAULT_USER_CANCEL_REASON = "Cancelled by user"
DEFAULT_PARTNER_CANCEL_REASON = "Cancelled by mitra"


def is_valid_transition(current: PickupStatus, target: PickupStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, frozenset())


# ---------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------
def _user_brief(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "phone": user.phone, "email": user.email}


def _location_brief(location: Optional[Location]) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return {
        "id": location.id,
        "name": location.name,
        "type": location.type,
        "phone": location.phone,
        "street": location.street,
        "city": location.city,
        "owner_id": location.owner_id,
    }


def pickup_payload(session: Session, pickup: PickupRequest) -> Dict[str, Any]:
    """Pickup row plus requester, location and waste items (with categories)."""
    data = pickup.model_dump()

    items = session.exec(
        select(PickupWasteItem)
        .where(PickupWasteItem.pickup_id == pickup.id)
        .order_by(PickupWasteItem.id)
    ).all()
    category_ids = {item.category_id for item in items}
    categories = {}
    if category_ids:
        categories = {
            c.id: c
            for c in session.exec(
                select(WasteCategory).where(WasteCategory.id.in_(category_ids))
            ).all()
        }

    waste_items = []
    for item in items:
        row = item.model_dump()
        category = categories.get(item.category_id)
        row["category"] = (
            {
                "id": category.id,
                "name": category.name,
                "icon_url": category.icon_url,
                "points_per_kg": category.points_per_kg,
            }
            if category
            else None
        )
        waste_items.append(row)

    data["user"] = _user_brief(session.get(User, pickup.user_id))
    data["location"] = _location_brief(session.get(Location, pickup.location_id))
    data["waste_items"] = waste_items
    return data


# ---------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------
def _get_pickup(session: Session, pickup_id: str) -> PickupRequest:
    pickup = session.get(PickupRequest, pickup_id)
    if pickup is None:
        raise NotFoundError("Pickup request not found")
    return pickup


def _owned_location_ids(session: Session, user: User) -> List[int]:
    return list(
        session.exec(select(Location.id).where(Location.owner_id == user.id)).all()
    )


def _active_category_rates(session: Session, category_ids: Iterable[int]) -> Dict[int, int]:
    ids = {cid for cid in category_ids if cid is not None}
    if not ids:
        return {}
    rows = session.exec(
        select(WasteCategory).where(
            WasteCategory.id.in_(ids),
            WasteCategory.is_active == True,  # noqa: E712
        )
    ).all()
    return {c.id: c.points_per_kg for c in rows}


# ---------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------
def _validate_required(payload: PickupCreate) -> None:
    if (
        payload.location_id is None
        or payload.waste_items is None
        or payload.pickup_address is None
        or payload.scheduled_date is None
        or payload.time_slot is None
    ):
        raise ValidationError("Please provide all required fields")

    if len(payload.waste_items) == 0:
        raise ValidationError("At least one waste item is required")

    address = payload.pickup_address
    if not (address.street and address.street.strip()) or not (
        address.city and address.city.strip()
    ):
        raise ValidationError("Pickup address must include street and city")


def _validate_schedule(scheduled_date: date, today: date) -> None:
    """The earliest legal pickup day is tomorrow."""
    if scheduled_date <= today:
        raise ValidationError("Scheduled date must be at least tomorrow")


def _load_pickup_location(session: Session, location_id: int) -> Location:
    location = session.exec(
        select(Location).where(
            Location.id == location_id,
            Location.status == LocationStatus.approved,
        )
    ).first()
    if location is None:
        raise NotFoundError("Location not found or not available")
    if not location.pickup_service:
        raise ValidationError("This location does not offer pickup service")
    return location


def _is_positive_weight(weight: Optional[float]) -> bool:
    return weight is not None and math.isfinite(weight) and weight > 0


def _price_items(session: Session, items: Sequence[WasteItemIn]) -> Dict[int, int]:
    """Check every item and return {category_id: points_per_kg}."""
    rates = _active_category_rates(session, (item.category_id for item in items))
    if not rates:
        raise ValidationError("Invalid waste category selection")

    seen = set()
    for item in items:
        if item.category_id is None or not _is_positive_weight(item.estimated_weight):
            raise ValidationError(
                "All waste items must have valid category and weight > 0"
            )
        if item.category_id not in rates:
            raise ValidationError(f"Invalid category: {item.category_id}")
        if item.category_id in seen:
            raise ValidationError("Each waste category may appear only once")
        seen.add(item.category_id)
    return rates


def _persist_waste_items(
    session: Session,
    pickup: PickupRequest,
    items: Sequence[WasteItemIn],
) -> None:
    for item in items:
        session.add(
            PickupWasteItem(
                pickup_id=pickup.id,
                category_id=item.category_id,
                estimated_weight=item.estimated_weight,
                unit=item.unit,
            )
        )
    session.flush()


def create_pickup(
    session: Session,
    requester: User,
    payload: PickupCreate,
    today: Optional[date] = None,
) -> PickupRequest:
    """
    Validate and persist a pickup request with its waste items.

    Validation short-circuits on the first failure. The request and its
    items are committed together; if anything fails while writing, the
    transaction is rolled back and no request row remains.
    """
    policy.require(
        requester,
        policy.Capability.request_pickup,
        "Only public users can request pickups",
    )

    _validate_required(payload)
    _validate_schedule(payload.scheduled_date, today or date.today())
    location = _load_pickup_location(session, payload.location_id)
    rates = _price_items(session, payload.waste_items)

    total_weight, estimated_points = calculate_points(
        (item.estimated_weight, rates[item.category_id]) for item in payload.waste_items
    )

    address = payload.pickup_address
    pickup = PickupRequest(
        user_id=requester.id,
        location_id=location.id,
        status=PickupStatus.pending,
        scheduled_date=payload.scheduled_date,
        time_slot=payload.time_slot,
        pickup_street=address.street.strip(),
        pickup_city=address.city.strip(),
        pickup_province=address.province or None,
        pickup_latitude=address.latitude,
        pickup_longitude=address.longitude,
        pickup_notes=address.notes or None,
        estimated_total_weight=total_weight,
        estimated_points=estimated_points,
        user_notes=payload.user_notes,
        points_awarded=False,
    )

    try:
        session.add(pickup)
        session.flush()  # pickup row written, items reference it
        _persist_waste_items(session, pickup, payload.waste_items)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.exception("Error creating pickup request for user %s", requester.id)
        raise DownstreamError("Error creating pickup request") from exc

    session.refresh(pickup)
    log.info(
        "Pickup %s created by user %s at location %s (%s points estimated)",
        pickup.id,
        requester.id,
        location.id,
        estimated_points,
    )

    send_notification(
        session,
        location.owner_id,
        "New pickup request",
        f"New pickup request from {requester.name} "
        f"on {pickup.scheduled_date.strftime('%d/%m/%Y')}",
        pickup.id,
    )
    send_notification(
        session,
        requester.id,
        "Pickup request created",
        f"Your pickup request has been created and is waiting for "
        f"confirmation from {location.name}",
        pickup.id,
    )
    # notification commits expire the instance
    session.refresh(pickup)
    return pickup


# ---------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------
def _apply_completion(
    session: Session,
    pickup: PickupRequest,
    actual_items: Optional[List[ActualWeightItem]],
) -> None:
    """Record actual weights and points; does not commit."""
    if not actual_items:
        raise ValidationError("Please provide actual weight for completion")

    rows = session.exec(
        select(PickupWasteItem).where(PickupWasteItem.pickup_id == pickup.id)
    ).all()
    rows_by_category: Dict[int, List[PickupWasteItem]] = {}
    for row in rows:
        rows_by_category.setdefault(row.category_id, []).append(row)

    reported = set()
    for item in actual_items:
        if not _is_positive_weight(item.actual_weight):
            raise ValidationError("Actual weight must be greater than 0")
        if item.category_id not in rows_by_category:
            raise ValidationError(
                f"Category {item.category_id} is not part of this pickup"
            )
        if item.category_id in reported:
            raise ValidationError("Duplicate category in actual weight items")
        reported.add(item.category_id)

    missing = set(rows_by_category) - {item.category_id for item in actual_items}
    if missing:
        raise ValidationError(
            "Please provide actual weight for every waste item "
            f"(missing categories: {', '.join(str(c) for c in sorted(missing))})"
        )

    # Rates of categories deactivated after creation still apply here
    rates = {
        c.id: c.points_per_kg
        for c in session.exec(
            select(WasteCategory).where(WasteCategory.id.in_(list(rows_by_category)))
        ).all()
    }

    total_weight, actual_points = calculate_points(
        (item.actual_weight, rates.get(item.category_id, 0)) for item in actual_items
    )

    for item in actual_items:
        for row in rows_by_category[item.category_id]:
            row.actual_weight = item.actual_weight
            session.add(row)

    pickup.actual_total_weight = total_weight
    pickup.actual_points = actual_points
    pickup.completed_at = utcnow()
    pickup.points_awarded = True

    award_points(session, pickup.user_id, actual_points, pickup.id)


def update_status(
    session: Session,
    actor: User,
    pickup_id: str,
    payload: PickupStatusUpdate,
) -> PickupRequest:
    """
    Move a pickup along the state machine (partner owner or admin only).

    Illegal transitions raise ValidationError before anything is written.
    """
    pickup = _get_pickup(session, pickup_id)
    location = session.get(Location, pickup.location_id)

    if not policy.can_drive_pickup(actor, location):
        raise AuthorizationError("Not authorized to update this pickup")

    target = payload.status
    if target is None:
        raise ValidationError("Please provide a status")

    current = pickup.status
    if not is_valid_transition(current, target):
        raise ValidationError(
            f"Cannot change status from {current.value} to {target.value}"
        )

    if target == PickupStatus.completed:
        # A deleted requester cannot receive points; refuse before writing
        if session.get(User, pickup.user_id) is None:
            raise ValidationError("Requester account no longer exists")

    try:
        pickup.status = target
        if payload.driver_notes is not None:
            pickup.driver_notes = payload.driver_notes

        if target == PickupStatus.completed:
            _apply_completion(session, pickup, payload.actual_weight_items)
        elif target == PickupStatus.cancelled:
            pickup.cancelled_at = utcnow()
            pickup.cancellation_reason = (
                payload.driver_notes or DEFAULT_PARTNER_CANCEL_REASON
            )

        pickup.updated_at = utcnow()
        session.add(pickup)
        session.commit()
    except ValidationError:
        session.rollback()
        raise
    except (SQLAlchemyError, DownstreamError) as exc:
        session.rollback()
        log.exception("Error updating pickup %s to %s", pickup_id, target.value)
        raise DownstreamError("Error updating pickup status") from exc

    session.refresh(pickup)
    log.info(
        "Pickup %s: %s -> %s by user %s",
        pickup.id,
        current.value,
        target.value,
        actor.id,
    )

    if target == PickupStatus.completed:
        message = f"Pickup completed! You earned {pickup.actual_points} points"
    else:
        message = f"Your pickup status has been changed to: {target.value}"
    send_notification(session, pickup.user_id, "Pickup status updated", message, pickup.id)
    session.refresh(pickup)
    return pickup


def cancel_pickup(
    session: Session,
    requester: User,
    pickup_id: str,
    reason: Optional[str] = None,
) -> PickupRequest:
    """Requester-initiated cancellation, allowed until the pickup is in progress."""
    pickup = _get_pickup(session, pickup_id)

    if not policy.can_requester_cancel(requester, pickup):
        raise AuthorizationError("Not authorized to cancel this pickup")

    if pickup.status not in policy.REQUESTER_CANCELLABLE:
        raise ValidationError("Cannot cancel pickup at this stage")

    now = utcnow()
    pickup.status = PickupStatus.cancelled
    pickup.cancelled_at = now
    pickup.cancellation_reason = reason or DEFAULT_USER_CANCEL_REASON
    pickup.updated_at = now

    try:
        session.add(pickup)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.exception("Error cancelling pickup %s", pickup_id)
        raise DownstreamError("Error cancelling pickup") from exc

    session.refresh(pickup)
    log.info("Pickup %s cancelled by requester %s", pickup.id, requester.id)

    location = session.get(Location, pickup.location_id)
    if location is not None:
        send_notification(
            session,
            location.owner_id,
            "Pickup cancelled",
            f"{requester.name} cancelled the pickup scheduled on "
            f"{pickup.scheduled_date.strftime('%d/%m/%Y')}",
            pickup.id,
        )
    session.refresh(pickup)
    return pickup


# ---------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------
def get_pickup(session: Session, user: User, pickup_id: str) -> PickupRequest:
    pickup = _get_pickup(session, pickup_id)
    location = session.get(Location, pickup.location_id)
    if not policy.can_view_pickup(user, pickup, location):
        raise AuthorizationError("Not authorized to view this pickup")
    return pickup


def _parse_statuses(raw: Optional[str]) -> List[PickupStatus]:
    if not raw:
        return []
    try:
        return [PickupStatus(s.strip()) for s in raw.split(",") if s.strip()]
    except ValueError as exc:
        raise ValidationError(f"Invalid status filter: {raw}") from exc


def list_pickups(
    session: Session,
    user: User,
    status: Optional[str] = None,
    scheduled_date: Optional[date] = None,
    location_id: Optional[int] = None,
) -> List[PickupRequest]:
    """Requesters see their own, partners their locations', admins all."""
    statuses = _parse_statuses(status)
    stmt = select(PickupRequest)

    if user.role == UserRole.public:
        stmt = stmt.where(PickupRequest.user_id == user.id)
    elif not policy.can(user, policy.Capability.view_all):
        location_ids = _owned_location_ids(session, user)
        if not location_ids:
            return []
        stmt = stmt.where(PickupRequest.location_id.in_(location_ids))

    if statuses:
        stmt = stmt.where(PickupRequest.status.in_(statuses))
    if scheduled_date is not None:
        stmt = stmt.where(PickupRequest.scheduled_date == scheduled_date)
    if location_id is not None:
        stmt = stmt.where(PickupRequest.location_id == location_id)

    stmt = stmt.order_by(PickupRequest.created_at.desc())
    return list(session.exec(stmt).all())


def list_my_pickups(
    session: Session,
    user: User,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 100,
) -> tuple[List[PickupRequest], int]:
    """Requester's own pickups, newest first. Returns (page_items, total)."""
    page = max(1, page)
    limit = max(1, limit)

    conditions = [PickupRequest.user_id == user.id]
    if status and status != "all":
        conditions.append(PickupRequest.status.in_(_parse_statuses(status)))

    total = session.exec(
        select(func.count()).select_from(PickupRequest).where(*conditions)
    ).one()

    items = session.exec(
        select(PickupRequest)
        .where(*conditions)
        .order_by(PickupRequest.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(items), int(total)


def partner_schedule(
    session: Session,
    user: User,
    scheduled_date: Optional[date] = None,
    status: Optional[str] = None,
) -> List[PickupRequest]:
    """
    Active pickups for the partner's locations ordered by date and slot.

    Admins see every location's schedule.
    """
    policy.require(
        user,
        policy.Capability.view_schedule,
        "Not authorized to view pickup schedule",
    )

    statuses = _parse_statuses(status) or list(ACTIVE_STATUSES)
    stmt = select(PickupRequest).where(PickupRequest.status.in_(statuses))

    if not policy.can(user, policy.Capability.view_all):
        location_ids = _owned_location_ids(session, user)
        if not location_ids:
            return []
        stmt = stmt.where(PickupRequest.location_id.in_(location_ids))

    if scheduled_date is not None:
        stmt = stmt.where(PickupRequest.scheduled_date == scheduled_date)

    pickups = list(session.exec(stmt).all())
    pickups.sort(key=lambda p: (p.scheduled_date, SLOT_ORDER.get(p.time_slot, 99)))
    return pickups


def pickup_stats(session: Session, user: User) -> Dict[str, Any]:
    """Counts by status, collected weight and awarded points, scoped by role."""
    stats: Dict[str, Any] = {"total": 0}
    for status in PickupStatus:
        stats[status.value] = 0
    stats["total_weight"] = 0.0
    stats["total_points_earned"] = 0

    stmt = select(PickupRequest)
    if user.role == UserRole.public:
        stmt = stmt.where(PickupRequest.user_id == user.id)
    elif not policy.can(user, policy.Capability.view_all):
        location_ids = _owned_location_ids(session, user)
        if not location_ids:
            return stats
        stmt = stmt.where(PickupRequest.location_id.in_(location_ids))

    for pickup in session.exec(stmt).all():
        stats["total"] += 1
        stats[pickup.status.value] += 1
        if pickup.actual_total_weight:
            stats["total_weight"] += pickup.actual_total_weight
        if pickup.actual_points and pickup.points_awarded:
            stats["total_points_earned"] += pickup.actual_points

    return stats
