from __future__ import annotations

from sqlmodel import Field, SQLModel

# ecopeta/db/models/review_helpful.py


class ReviewHelpful(SQLModel, table=True):
    """
    "Helpful" marks given by users to reviews.

    - Plain link table, no ORM relationships.
    - Composite primary key: (review_id, user_id), so a user marks a review at most once.
    """

    __tablename__ = "review_helpful"

    review_id: int = Field(primary_key=True, foreign_key="reviews.id")
    user_id: int = Field(primary_key=True, foreign_key="users.id")
