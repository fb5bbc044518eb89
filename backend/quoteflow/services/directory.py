"""Identity store lookups used by the approval engine.

Roles are read fresh on every call: a promotion between two approval steps
must take effect on the next decision.
"""
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from quoteflow.core.exceptions import ForbiddenError
from quoteflow.models.user import User, UserRole


def get_user(db: Session, user_id: uuid.UUID) -> User:
    """Return the active user or raise ForbiddenError."""
    user = db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    ).scalars().first()
    if user is None or not user.is_active:
        raise ForbiddenError(f"User {user_id} is unknown or inactive.")
    return user


def get_user_role(db: Session, user_id: uuid.UUID) -> UserRole:
    return get_user(db, user_id).role
