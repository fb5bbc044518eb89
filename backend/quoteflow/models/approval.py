import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quoteflow.db.base import Base, TimestampMixin, UUIDMixin, str_enum, utcnow
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole


class InstanceStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


TERMINAL_INSTANCE_STATUSES = frozenset(
    {InstanceStatus.approved, InstanceStatus.rejected, InstanceStatus.cancelled}
)


class StepStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    skipped = "skipped"
    cancelled = "cancelled"


class ApprovalInstance(Base, UUIDMixin, TimestampMixin):
    """One run of a route against one document; the row is reused on resubmission."""

    __tablename__ = "approval_instances"
    __table_args__ = (
        UniqueConstraint("document_type", "document_id", name="uq_approval_instance_document"),
    )

    document_type: Mapped[DocumentType] = mapped_column(str_enum(DocumentType), nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("approval_routes.id"), nullable=False
    )
    status: Mapped[InstanceStatus] = mapped_column(
        str_enum(InstanceStatus), nullable=False, default=InstanceStatus.pending, index=True
    )
    current_step: Mapped[int | None] = mapped_column(Integer, nullable=True)  # step_order awaiting action
    requested_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    route: Mapped["ApprovalRoute"] = relationship("ApprovalRoute")
    steps: Mapped[list["ApprovalInstanceStep"]] = relationship(
        "ApprovalInstanceStep",
        back_populates="instance",
        cascade="all, delete-orphan",
        order_by="ApprovalInstanceStep.step_order",
    )


class ApprovalInstanceStep(Base, UUIDMixin, TimestampMixin):
    """Outcome of one chain position within an instance.

    approver_role is copied from the route step at submit time so later edits
    to the route template never change an approval already in flight.
    """

    __tablename__ = "approval_instance_steps"
    __table_args__ = (
        UniqueConstraint("instance_id", "step_order", name="uq_instance_step_order"),
    )

    instance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("approval_instances.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_role: Mapped[UserRole] = mapped_column(str_enum(UserRole), nullable=False, index=True)
    status: Mapped[StepStatus] = mapped_column(
        str_enum(StepStatus), nullable=False, default=StepStatus.pending
    )
    approver_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    instance: Mapped["ApprovalInstance"] = relationship("ApprovalInstance", back_populates="steps")
