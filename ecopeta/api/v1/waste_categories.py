from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ecopeta.core.deps import get_session, require_admin
from ecopeta.core.responses import listing, ok
from ecopeta.db.models.user import User
from ecopeta.schemas.waste_category import WasteCategoryCreate, WasteCategoryUpdate
from ecopeta.services import waste_categories as category_service

router = APIRouter(prefix="/waste-categories", tags=["waste-categories"])


@router.get("")
def list_categories(session: Session = Depends(get_session)):
    return listing(category_service.list_categories(session))


@router.post("", status_code=201)
def create_category(
    payload: WasteCategoryCreate,
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return ok(category_service.create_category(session, user, payload))


@router.get("/{category_id}")
def get_category(category_id: int, session: Session = Depends(get_session)):
    return ok(category_service.get_category(session, category_id))


@router.put("/{category_id}")
def update_category(
    category_id: int,
    payload: WasteCategoryUpdate,
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return ok(category_service.update_category(session, user, category_id, payload))


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    user: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    category_service.delete_category(session, user, category_id)
    return ok({}, message="Waste category deactivated")
