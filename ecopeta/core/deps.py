# ecopeta/core/deps.py
"""
Common FastAPI dependencies:

- DB session (`get_session`)
- Current user (`get_current_user`)
- Optional current user (`get_current_user_optional`)
- Role guard factory (`require_roles`)
- Admin guard (`require_admin`)
"""

from __future__ import annotations

from typing import Callable, Generator, Optional

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from ecopeta.db.models.user import User, UserRole
from ecopeta.db.session import get_engine

AUTH_COOKIE = "user_id"


def get_session() -> Generator[Session, None, None]:
    """
    Provide a SQLModel session for each request.

    This is a thin wrapper around the shared engine from ecopeta.db.session.
    """
    engine = get_engine()
    with Session(engine) as session:
        yield session


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_user_from_cookie(request: Request, session: Session) -> Optional[User]:
    """
    Try to read the current user from the `user_id` cookie.

    Returns:
        - User instance if cookie is valid and user is active.
        - None otherwise.
    """
    user_id = request.cookies.get(AUTH_COOKIE)
    if not user_id:
        return None

    try:
        uid = int(user_id)
    except ValueError:
        return None

    user = session.get(User, uid)
    if user and user.is_active:
        return user

    return None


# ---------------------------------------------------------------------------
# Public dependencies
# ---------------------------------------------------------------------------


def get_current_user(
    request: Request,
    session: Session = Depends(get_session),
) -> User:
    """Strict current user dependency: 401 when no valid cookie."""
    user = _get_user_from_cookie(request, session)
    if user:
        return user
    raise HTTPException(status_code=401, detail="Not authorized to access this route")


def get_current_user_optional(
    request: Request,
    session: Session = Depends(get_session),
) -> Optional[User]:
    """
    Soft / optional user dependency.

    Used by public listings (location reviews) that show more to logged-in
    users but must not reject guests.
    """
    return _get_user_from_cookie(request, session)


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """
    Build a guard that only lets the given roles through (403 otherwise).

    Usage:
        user: User = Depends(require_roles(UserRole.mitra, UserRole.admin))
    """
    allowed = frozenset(roles)

    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"User role {user.role.value} is not authorized to access this route",
            )
        return user

    return _guard


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Guard: only admins are allowed."""
    if user.role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return user
