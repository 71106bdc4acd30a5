from __future__ import annotations

from typing import Optional

from sqlmodel import SQLModel

from ecopeta.db.models.user import UserRole


class RegisterIn(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.public


class LoginIn(SQLModel):
    email: Optional[str] = None
    password: Optional[str] = None
