from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ecopeta.core import policy
from ecopeta.core.errors import NotFoundError, ValidationError
from ecopeta.db.models.user import User
from ecopeta.db.models.waste_category import WasteCategory
from ecopeta.schemas.waste_category import WasteCategoryCreate, WasteCategoryUpdate

log = logging.getLogger(__name__)


def _require_manager(user: User) -> None:
    policy.require(user, policy.Capability.manage_categories, "Admin privileges required")


def _name_taken(session: Session, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(WasteCategory.id).where(WasteCategory.name == name)
    if exclude_id is not None:
        stmt = stmt.where(WasteCategory.id != exclude_id)
    return session.exec(stmt).first() is not None


def list_categories(session: Session) -> List[WasteCategory]:
    """Active categories, alphabetical."""
    return list(
        session.exec(
            select(WasteCategory)
            .where(WasteCategory.is_active == True)  # noqa: E712
            .order_by(WasteCategory.name)
        ).all()
    )


def get_category(session: Session, category_id: int) -> WasteCategory:
    category = session.get(WasteCategory, category_id)
    if category is None:
        raise NotFoundError("Waste category not found")
    return category


def create_category(
    session: Session, user: User, payload: WasteCategoryCreate
) -> WasteCategory:
    _require_manager(user)

    name = (payload.name or "").strip()
    if not name or payload.points_per_kg is None:
        raise ValidationError("Please provide name and points_per_kg")
    if payload.points_per_kg < 0:
        raise ValidationError("points_per_kg must not be negative")
    if _name_taken(session, name):
        raise ValidationError("Category name already exists")

    category = WasteCategory(
        name=name,
        description=payload.description,
        icon_url=payload.icon_url,
        points_per_kg=payload.points_per_kg,
    )
    session.add(category)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ValidationError("Category name already exists") from exc
    session.refresh(category)
    log.info("Waste category %s created (%s pts/kg)", category.name, category.points_per_kg)
    return category


def update_category(
    session: Session,
    user: User,
    category_id: int,
    payload: WasteCategoryUpdate,
) -> WasteCategory:
    """
    Rate changes apply to future pickups only: an existing pickup keeps
    its estimated_points, and completion reads the rate at that moment.
    """
    _require_manager(user)
    category = get_category(session, category_id)

    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("Category name cannot be empty")
        if _name_taken(session, name, exclude_id=category.id):
            raise ValidationError("Category name already exists")
        changes["name"] = name
    if changes.get("points_per_kg") is not None and changes["points_per_kg"] < 0:
        raise ValidationError("points_per_kg must not be negative")

    for key, value in changes.items():
        if value is None and key in ("points_per_kg", "is_active"):
            continue
        setattr(category, key, value)

    session.add(category)
    session.commit()
    session.refresh(category)
    return category


def delete_category(session: Session, user: User, category_id: int) -> WasteCategory:
    """Soft delete: the row stays so existing pickup items keep their category."""
    _require_manager(user)
    category = get_category(session, category_id)
    category.is_active = False
    session.add(category)
    session.commit()
    session.refresh(category)
    log.info("Waste category %s deactivated", category.name)
    return category
