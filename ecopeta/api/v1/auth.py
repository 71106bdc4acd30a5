from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ecopeta.core.config import get_settings
from ecopeta.core.deps import AUTH_COOKIE, get_current_user, get_session
from ecopeta.core.errors import ValidationError
from ecopeta.core.responses import error_body, ok
from ecopeta.core.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from ecopeta.db.models.user import User, UserRole
from ecopeta.schemas.auth import LoginIn, RegisterIn

router = APIRouter(prefix="/auth", tags=["auth"])
log = logging.getLogger(__name__)


def _user_public(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role.value,
        "points": user.points,
        "badge": user.badge,
    }


def _with_auth_cookie(body: dict, user: User, status_code: int = 200) -> JSONResponse:
    """
    Build a JSON response carrying the auth cookie.

    IMPORTANT:
      - secure=False is fine for local development.
      - In production (HTTPS), set COOKIE_SECURE=1.
    """
    settings = get_settings()
    resp = JSONResponse(content=body, status_code=status_code)
    resp.set_cookie(
        key=AUTH_COOKIE,
        value=str(user.id),
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
        path="/",
        max_age=settings.COOKIE_MAX_AGE,
    )
    return resp


# ---------------------- REGISTER ----------------------
@router.post("/register", status_code=201)
def register(payload: RegisterIn, session: Session = Depends(get_session)):
    """
    Create a household (`public`) or partner (`mitra`) account and log it in.

    Admin accounts are never self-registered.
    """
    name = (payload.name or "").strip()
    email = (payload.email or "").strip().lower()
    if not name or not email or not payload.password:
        raise ValidationError("Please provide name, email and password")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if payload.role == UserRole.admin:
        raise ValidationError("Invalid role")

    if session.exec(select(User.id).where(User.email == email)).first() is not None:
        raise ValidationError("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        role=payload.role,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ValidationError("Email already registered") from exc
    session.refresh(user)
    log.info("Registered user %s (%s)", user.id, user.role.value)

    return _with_auth_cookie(ok(_user_public(user)), user, 201)


# ---------------------- LOGIN ----------------------
@router.post("/login")
def login(payload: LoginIn, session: Session = Depends(get_session)):
    email = (payload.email or "").strip().lower()
    if not email or not payload.password:
        raise ValidationError("Please provide email and password")

    user = session.exec(select(User).where(User.email == email)).first()

    # Same message for unknown email and wrong password
    if not user or not verify_password(payload.password, user.password_hash):
        return JSONResponse(
            content=error_body("Invalid credentials"), status_code=401
        )
    if not user.is_active:
        return JSONResponse(
            content=error_body("Account is deactivated"), status_code=401
        )

    return _with_auth_cookie(ok(_user_public(user)), user)


# ---------------------- LOGOUT ----------------------
@router.get("/logout")
def logout():
    """Remove the auth cookie."""
    resp = JSONResponse(content=ok({}))
    resp.delete_cookie(AUTH_COOKIE, path="/")
    return resp


# ---------------------- WHO AM I ----------------------
@router.get("/me")
def whoami(user: User = Depends(get_current_user)):
    """Current user as seen through the auth cookie, with points and badge."""
    return ok(_user_public(user))
