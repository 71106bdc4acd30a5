# ecopeta/db/models/__init__.py
"""
Import all model modules so SQLModel registers their tables
when init_db() calls SQLModel.metadata.create_all(engine).
"""

from .location import Location, LocationStatus, LocationType  # noqa: F401
from .notification import Notification  # noqa: F401
from .pickup import PickupRequest, PickupStatus, TimeSlot  # noqa: F401
from .pickup_waste_item import PickupWasteItem, WasteUnit  # noqa: F401
from .points_history import PointsHistory  # noqa: F401
from .review import Review, ReviewStatus  # noqa: F401
from .review_helpful import ReviewHelpful  # noqa: F401
from .user import User, UserRole  # noqa: F401
from .waste_category import WasteCategory  # noqa: F401

__all__ = [
    "User",
    "UserRole",
    "Location",
    "LocationStatus",
    "LocationType",
    "WasteCategory",
    "PickupRequest",
    "PickupStatus",
    "TimeSlot",
    "PickupWasteItem",
    "WasteUnit",
    "PointsHistory",
    "Notification",
    "Review",
    "ReviewStatus",
    "ReviewHelpful",
]
