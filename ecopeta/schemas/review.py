from __future__ import annotations

from typing import Optional

from sqlmodel import SQLModel

from ecopeta.db.models.review import ReviewStatus


class ReviewCreate(SQLModel):
    rating: Optional[int] = None
    title: Optional[str] = None
    comment: Optional[str] = None
    pickup_id: Optional[str] = None


class ReviewUpdate(SQLModel):
    rating: Optional[int] = None
    title: Optional[str] = None
    comment: Optional[str] = None


class ReviewResponseIn(SQLModel):
    response: Optional[str] = None


class ReviewModeration(SQLModel):
    status: Optional[ReviewStatus] = None
    moderation_note: Optional[str] = None
