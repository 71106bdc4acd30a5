"""
Role/capability policy.

Every endpoint that behaves differently per caller identity asks this
module instead of branching on `user.role` inline:

- `can(user, capability)` answers role-level questions.
- `require(user, capability, message)` raises AuthorizationError (403).
- `owns_location` / `can_drive_pickup` / `can_view_pickup` answer
  ownership questions that also depend on the resource.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional

from ecopeta.core.errors import AuthorizationError
from ecopeta.db.models.location import Location
from ecopeta.db.models.pickup import PickupRequest, PickupStatus
from ecopeta.db.models.user import User, UserRole


class Capability(str, Enum):
    request_pickup = "request_pickup"
    cancel_own_pickup = "cancel_own_pickup"
    drive_pickup_status = "drive_pickup_status"
    view_schedule = "view_schedule"
    manage_locations = "manage_locations"
    moderate_locations = "moderate_locations"
    manage_categories = "manage_categories"
    write_review = "write_review"
    respond_review = "respond_review"
    moderate_reviews = "moderate_reviews"
    view_all = "view_all"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.public: frozenset(
        {
            Capability.request_pickup,
            Capability.cancel_own_pickup,
            Capability.write_review,
        }
    ),
    UserRole.mitra: frozenset(
        {
            Capability.drive_pickup_status,
            Capability.view_schedule,
            Capability.manage_locations,
            Capability.respond_review,
        }
    ),
    UserRole.admin: frozenset(
        {
            Capability.drive_pickup_status,
            Capability.view_schedule,
            Capability.manage_locations,
            Capability.moderate_locations,
            Capability.manage_categories,
            Capability.respond_review,
            Capability.moderate_reviews,
            Capability.view_all,
        }
    ),
}

# Statuses from which the requester may still cancel on their own
REQUESTER_CANCELLABLE = frozenset(
    {PickupStatus.pending, PickupStatus.accepted, PickupStatus.scheduled}
)


def can(user: Optional[User], capability: Capability) -> bool:
    if user is None:
        return False
    return capability in ROLE_CAPABILITIES.get(user.role, frozenset())


def require(user: User, capability: Capability, message: str) -> None:
    if not can(user, capability):
        raise AuthorizationError(message)


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == UserRole.admin


def owns_location(user: Optional[User], location: Optional[Location]) -> bool:
    return user is not None and location is not None and location.owner_id == user.id


def can_manage_location(user: User, location: Location) -> bool:
    """Owner or admin may edit a location."""
    return is_admin(user) or owns_location(user, location)


def can_drive_pickup(user: User, location: Optional[Location]) -> bool:
    """Only the partner owning the pickup's location, or an admin."""
    if not can(user, Capability.drive_pickup_status):
        return False
    return is_admin(user) or owns_location(user, location)


def can_view_pickup(
    user: User,
    pickup: PickupRequest,
    location: Optional[Location],
) -> bool:
    """Requester, owning partner or admin."""
    return (
        pickup.user_id == user.id
        or owns_location(user, location)
        or is_admin(user)
    )


def can_requester_cancel(user: User, pickup: PickupRequest) -> bool:
    """Ownership part only; the status window is checked by the caller."""
    return pickup.user_id == user.id
