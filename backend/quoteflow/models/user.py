import enum

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from quoteflow.db.base import Base, TimestampMixin, UUIDMixin, str_enum


class UserRole(str, enum.Enum):
    sales = "sales"
    back_office = "back_office"
    manager = "manager"
    director = "director"
    admin = "admin"


# Roles allowed to act on documents they do not own.
BACK_OFFICE_ROLES = frozenset({UserRole.back_office, UserRole.admin})


class User(Base, UUIDMixin, TimestampMixin):
    """Identity-store projection; accounts are managed by the external auth service."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(str_enum(UserRole), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
