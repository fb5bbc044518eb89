"""Document store: the engine's read/write contract with quotes and purchase orders.

The engine reads amount, owner and approval_status, and writes
approval_status (plus approved_by/approved_at) only through a
compare-and-set keyed on the status it expects the document to still have.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from quoteflow.core.exceptions import DocumentNotFoundError
from quoteflow.db.cas import compare_and_set
from quoteflow.models.document import DocumentApprovalStatus, DocumentType, PurchaseOrder, Quote

logger = logging.getLogger(__name__)

# document type -> (model, amount column)
_DOCUMENT_MODELS: dict[DocumentType, tuple[type, str]] = {
    DocumentType.quote: (Quote, "total_amount"),
    DocumentType.purchase_order: (PurchaseOrder, "total_cost"),
}


@dataclass(frozen=True)
class DocumentSnapshot:
    document_type: DocumentType
    id: uuid.UUID
    amount: Decimal
    requester_id: uuid.UUID
    approval_status: DocumentApprovalStatus


def model_for(document_type: DocumentType) -> type:
    return _DOCUMENT_MODELS[DocumentType(document_type)][0]


def get_document(db: Session, document_type: DocumentType, document_id: uuid.UUID) -> DocumentSnapshot:
    """Load the approval-relevant fields of a document.

    Raises:
        DocumentNotFoundError: no document of that type with that id.
    """
    document_type = DocumentType(document_type)
    model, amount_attr = _DOCUMENT_MODELS[document_type]
    doc = db.execute(
        select(model).where(model.id == document_id).execution_options(populate_existing=True)
    ).scalars().first()
    if doc is None:
        raise DocumentNotFoundError(f"{document_type.value} {document_id} not found.")

    amount = getattr(doc, amount_attr)
    return DocumentSnapshot(
        document_type=document_type,
        id=doc.id,
        amount=Decimal(str(amount)) if amount is not None else Decimal("0"),
        requester_id=doc.created_by,
        approval_status=DocumentApprovalStatus(doc.approval_status),
    )


def compare_and_set_approval_status(
    db: Session,
    document_type: DocumentType,
    document_id: uuid.UUID,
    expected: DocumentApprovalStatus,
    new: DocumentApprovalStatus,
    **extra: Any,
) -> None:
    """Move a document from ``expected`` to ``new`` approval status.

    ``extra`` carries approved_by / approved_at. Raises
    ConcurrentModificationError if the document is no longer in ``expected``.
    """
    document_type = DocumentType(document_type)
    compare_and_set(
        db,
        model_for(document_type),
        document_id,
        expected,
        entity_type=document_type.value,
        status_column="approval_status",
        approval_status=new,
        **extra,
    )
    logger.debug(
        "Document %s/%s approval_status %s -> %s",
        document_type.value, document_id, expected.value, new.value,
    )
