"""Approval route templates: which approver roles must sign, in which order."""
import uuid
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quoteflow.db.base import Base, TimestampMixin, UUIDMixin, str_enum
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole


class ApprovalRoute(Base, UUIDMixin, TimestampMixin):
    """Reusable approval chain applicable to one document type, requester role and amount band."""

    __tablename__ = "approval_routes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_entity: Mapped[DocumentType] = mapped_column(str_enum(DocumentType), nullable=False, index=True)
    requester_role: Mapped[UserRole | None] = mapped_column(str_enum(UserRole), nullable=True)  # null = any role
    min_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    max_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )

    steps: Mapped[list["ApprovalRouteStep"]] = relationship(
        "ApprovalRouteStep",
        back_populates="route",
        cascade="all, delete-orphan",
        order_by="ApprovalRouteStep.step_order",
    )


class ApprovalRouteStep(Base, UUIDMixin, TimestampMixin):
    """One approver-role slot within a route. Step orders run 1..n without gaps."""

    __tablename__ = "approval_route_steps"
    __table_args__ = (UniqueConstraint("route_id", "step_order", name="uq_route_step_order"),)

    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("approval_routes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_role: Mapped[UserRole] = mapped_column(str_enum(UserRole), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    route: Mapped["ApprovalRoute"] = relationship("ApprovalRoute", back_populates="steps")
