from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ecopeta.core.deps import get_current_user, get_session
from ecopeta.core.responses import listing, ok
from ecopeta.db.models.user import User
from ecopeta.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    items = notification_service.list_notifications(session, user, limit=limit)
    unread = sum(1 for n in items if not n.is_read)
    return listing(items, unread=unread)


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return ok(notification_service.mark_read(session, user, notification_id))
