"""Email notification service, console mock while MAIL_ENABLED is False.

When MAIL_ENABLED is False, email content is written to the log instead of
being sent via SMTP. Set MAIL_ENABLED=True to wire a real transport.
"""
import logging

from quoteflow.core.config import settings

logger = logging.getLogger(__name__)

_DOCUMENT_LABELS = {
    "quote": ("Quote", "quote_number", "total_amount"),
    "purchase_order": ("Purchase order", "purchase_order_number", "total_cost"),
}


# ─── Approval result email ───

def send_approval_result_email(
    recipient,
    document_type: str,
    document,
    outcome: str,
    decided_by_name: str,
    reason: str | None = None,
) -> None:
    """Send (or mock-log) the final outcome of an approval to the document owner.

    Args:
        recipient: User ORM object (email, display_name).
        document_type: "quote" or "purchase_order".
        document: Quote or PurchaseOrder ORM object.
        outcome: "approved" or "rejected".
        decided_by_name: Display name of the approver who made the decision.
        reason: Rejection reason, if any.
    """
    label, number_attr, amount_attr = _DOCUMENT_LABELS[document_type]
    number = getattr(document, number_attr, None) or str(document.id)
    amount = getattr(document, amount_attr, None)
    amount_str = f"{float(amount):,.2f}" if amount is not None else "N/A"
    link = f"{settings.FRONTEND_URL.rstrip('/')}/{document_type.replace('_', '-')}s/{document.id}"

    subject = f"{label} {number} was {outcome} by {decided_by_name}"

    if not settings.MAIL_ENABLED:
        logger.info(
            "\n"
            "=== APPROVAL RESULT EMAIL ===\n"
            "To: %s <%s>\n"
            "Subject: %s\n"
            "Amount: %s\n"
            "Reason: %s\n"
            "Open: %s\n"
            "=============================",
            recipient.display_name,
            recipient.email,
            subject,
            amount_str,
            reason or "-",
            link,
        )
        return

    # SMTP transport is not wired yet
    logger.warning(
        "MAIL_ENABLED=True but SMTP transport is not configured. "
        "Falling back to console log for %s %s.",
        label.lower(), number,
    )
    logger.info(
        "APPROVAL RESULT EMAIL (unsent): from=%s <%s> to=%s subject=%s reason=%s link=%s",
        settings.MAIL_FROM_NAME, settings.MAIL_FROM, recipient.email, subject, reason or "-", link,
    )
