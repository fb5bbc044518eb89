"""Audit log helper: append-only writes to the audit_logs table."""
import json
import logging
import uuid
from typing import Any

from sqlalchemy.orm import Session

from quoteflow.models.audit import AuditLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None = None,
    actor_id: uuid.UUID | str | None = None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
) -> AuditLog:
    """Write a single audit log entry inside the caller's transaction.

    Args:
        db: Sync SQLAlchemy session; the caller commits or rolls back.
        action: Short verb, e.g. 'approval.submitted', 'approval.step_approved'.
        entity_type: Document type the action applies to ('quote', 'purchase_order').
        entity_id: PK of the affected document.
        actor_id: User who performed the action (None for system actions).
        before: Dict snapshot of state before the action (JSON-serialisable).
        after: Dict snapshot of state after the action.
        notes: Free-text annotation.
    """
    entry = AuditLog(
        actor_id=uuid.UUID(str(actor_id)) if actor_id else None,
        action=action,
        entity_type=entity_type,
        entity_id=uuid.UUID(str(entity_id)) if entity_id else None,
        before_state=json.dumps(before, default=str) if before is not None else None,
        after_state=json.dumps(after, default=str) if after is not None else None,
        notes=notes,
    )
    db.add(entry)
    db.flush()
    logger.debug("Audit: %s %s/%s", action, entity_type, entity_id)
    return entry
