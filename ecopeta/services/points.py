"""
Point award procedure.

The running total on `users.points` is changed with a single
`UPDATE users SET points = points + :delta` so concurrent completions for
the same user cannot overwrite each other. Each award also appends one
immutable `points_history` row; the ledger sum per user is the reference
used by `reconcile_points` to detect drift.

`award_points` does not commit: it runs inside the caller's transaction
(the pickup completion), so the status change, the counter increment and
the ledger row become visible together or not at all.
"""

from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Tuple

from sqlalchemy import func, update
from sqlmodel import Session, select

from ecopeta.core.errors import DownstreamError, NotFoundError
from ecopeta.db.models.points_history import PointsHistory
from ecopeta.db.models.user import User

log = logging.getLogger(__name__)

AWARD_DESCRIPTION = "Pickup completed"


def round_points(value: float) -> int:
    """Round half away from zero (2.5 → 3), matching the points shown in the UI."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_points(weighted_items: Iterable[Tuple[float, int]]) -> Tuple[float, int]:
    """
    Sum (weight, points_per_kg) pairs.

    Returns (total_weight, rounded_points); rounding happens once, on the sum.
    Raises ValueError for a weight that is not a finite number.
    """
    total_weight = 0.0
    raw_points = 0.0
    for weight, rate in weighted_items:
        if not math.isfinite(weight):
            raise ValueError(f"weight must be finite, got {weight!r}")
        total_weight += float(weight)
        raw_points += float(weight) * rate
    return total_weight, round_points(raw_points)


def award_points(
    session: Session,
    user_id: int,
    points: int,
    pickup_id: str,
) -> PointsHistory:
    """
    Atomically add `points` to the user's total and append one ledger row.

    Raises:
        ValueError: negative amount.
        DownstreamError: the user row no longer exists.
    """
    if points < 0:
        raise ValueError("points must be non-negative")

    result = session.exec(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + points)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise DownstreamError(f"Could not award points: user {user_id} not found")

    entry = PointsHistory(
        user_id=user_id,
        points=points,
        type="earned",
        source="pickup",
        source_id=pickup_id,
        description=AWARD_DESCRIPTION,
    )
    session.add(entry)
    session.flush()

    log.info("Awarded %s points to user %s for pickup %s", points, user_id, pickup_id)
    return entry


def reconcile_points(session: Session, user_id: int) -> Dict[str, int]:
    """
    Compare the stored running total with the ledger sum.

    Returns {"stored": ..., "ledger": ..., "drift": stored - ledger}.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    ledger = session.exec(
        select(func.coalesce(func.sum(PointsHistory.points), 0)).where(
            PointsHistory.user_id == user_id
        )
    ).one()
    ledger_total = int(ledger)
    return {
        "stored": user.points,
        "ledger": ledger_total,
        "drift": user.points - ledger_total,
    }
