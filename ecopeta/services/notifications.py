"""
Best-effort in-app notifications.

`send_notification` is called *after* the triggering change has been
committed and commits on its own, so a failure here can never undo the
primary write. Failures are logged and swallowed.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlmodel import Session, select

from ecopeta.core.errors import AuthorizationError, NotFoundError
from ecopeta.db.models.notification import Notification
from ecopeta.db.models.user import User

log = logging.getLogger(__name__)


def _insert_notification(session: Session, notification: Notification) -> None:
    session.add(notification)
    session.commit()


def send_notification(
    session: Session,
    user_id: int,
    title: str,
    message: str,
    related_id: Optional[str] = None,
    type_: str = "pickup",
) -> bool:
    """
    Create one notification row. Returns False (never raises) on failure.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type_,
        related_id=related_id,
    )
    try:
        _insert_notification(session, notification)
    except Exception:  # noqa: BLE001 - delivery is best-effort
        session.rollback()
        log.warning(
            "Failed to send notification to user %s (related_id=%s)",
            user_id,
            related_id,
            exc_info=True,
        )
        return False
    return True


def list_notifications(session: Session, user: User, limit: int = 50) -> List[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(session.exec(stmt).all())


def mark_read(session: Session, user: User, notification_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.user_id != user.id:
        raise AuthorizationError("Not authorized to update this notification")

    notification.is_read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification
