"""Quote and purchase-order projections read and written by the approval engine.

Only the approval-relevant columns are mapped here; line items, costing and
layout belong to the document subsystems that own these tables.
"""
import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from quoteflow.db.base import Base, TimestampMixin, UUIDMixin, str_enum


class DocumentType(str, enum.Enum):
    quote = "quote"
    purchase_order = "purchase_order"


class DocumentApprovalStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ApprovableDocumentMixin:
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    approval_status: Mapped[DocumentApprovalStatus] = mapped_column(
        str_enum(DocumentApprovalStatus),
        nullable=False,
        default=DocumentApprovalStatus.draft,
        index=True,
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Quote(Base, UUIDMixin, TimestampMixin, ApprovableDocumentMixin):
    __tablename__ = "quotes"

    quote_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)


class PurchaseOrder(Base, UUIDMixin, TimestampMixin, ApprovableDocumentMixin):
    __tablename__ = "purchase_orders"

    purchase_order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
