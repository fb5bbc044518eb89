"""Best-effort dispatch of approval outcome notifications.

Called only after the approval transaction has committed. Queueing
failures (broker down, serialization errors) are logged and swallowed:
a notification must never undo or fail an approval decision.
"""
import logging
import uuid

from quoteflow.models.document import DocumentType

logger = logging.getLogger(__name__)


def notify_rejected(
    document_type: DocumentType,
    document_id: uuid.UUID,
    rejected_by_name: str,
    reason: str | None,
) -> None:
    from quoteflow.workers.notification_tasks import send_rejection_notice

    try:
        send_rejection_notice.delay(
            DocumentType(document_type).value, str(document_id), rejected_by_name, reason
        )
    except Exception as exc:
        logger.warning(
            "Could not queue rejection notice for %s/%s: %s",
            document_type, document_id, exc,
        )


def notify_approved(
    document_type: DocumentType,
    document_id: uuid.UUID,
    approved_by_name: str,
) -> None:
    from quoteflow.workers.notification_tasks import send_approval_notice

    try:
        send_approval_notice.delay(
            DocumentType(document_type).value, str(document_id), approved_by_name
        )
    except Exception as exc:
        logger.warning(
            "Could not queue approval notice for %s/%s: %s",
            document_type, document_id, exc,
        )
