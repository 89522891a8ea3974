"""Helpers for working with users."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.user import User


def ensure_user(db: Session, user_id: UUID) -> User:
    """
    Return the user row, creating it on first use.

    Identity lives with the auth provider; this table only anchors foreign keys,
    so a goal created for an unseen id registers the user implicitly.
    """
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # Another request registered the same id first
        db.rollback()
        existing = db.get(User, user_id)
        if existing is None:
            raise
        return existing
    return user
