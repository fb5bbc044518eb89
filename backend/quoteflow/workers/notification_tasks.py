"""Celery tasks that email approval outcomes to the document owner."""
import logging
import uuid

from quoteflow.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


# ─── Sync DB session (Celery workers are synchronous) ───

def _get_sync_session():
    """Return a sync SQLAlchemy session. Caller must close it."""
    from quoteflow.db.session import SyncSessionLocal

    return SyncSessionLocal()


def _load_recipient(db, document_type: str, document_id: str):
    """Return (document, owner) or (None, None) when either is gone."""
    from quoteflow.models.user import User
    from quoteflow.services.documents import model_for

    model = model_for(document_type)
    doc = db.get(model, uuid.UUID(document_id))
    if doc is None:
        return None, None
    return doc, db.get(User, doc.created_by)


# ─── Tasks ───

@celery_app.task(bind=True, name="notifications.send_rejection_notice", max_retries=3)
def send_rejection_notice(
    self,
    document_type: str,
    document_id: str,
    rejected_by_name: str,
    reason: str | None = None,
) -> dict:
    """Tell the document owner their document was rejected, with the reason."""
    from quoteflow.services import email as email_svc

    db = _get_sync_session()
    try:
        doc, owner = _load_recipient(db, document_type, document_id)
        if owner is None:
            logger.warning(
                "send_rejection_notice: %s/%s or its owner no longer exists, skipping",
                document_type, document_id,
            )
            return {"sent": False}

        email_svc.send_approval_result_email(
            recipient=owner,
            document_type=document_type,
            document=doc,
            outcome="rejected",
            decided_by_name=rejected_by_name,
            reason=reason,
        )
        return {"sent": True}
    except Exception as exc:
        logger.exception("send_rejection_notice failed for %s/%s: %s", document_type, document_id, exc)
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()


@celery_app.task(bind=True, name="notifications.send_approval_notice", max_retries=3)
def send_approval_notice(
    self,
    document_type: str,
    document_id: str,
    approved_by_name: str,
) -> dict:
    """Tell the document owner their document passed its final approval step."""
    from quoteflow.services import email as email_svc

    db = _get_sync_session()
    try:
        doc, owner = _load_recipient(db, document_type, document_id)
        if owner is None:
            logger.warning(
                "send_approval_notice: %s/%s or its owner no longer exists, skipping",
                document_type, document_id,
            )
            return {"sent": False}

        email_svc.send_approval_result_email(
            recipient=owner,
            document_type=document_type,
            document=doc,
            outcome="approved",
            decided_by_name=approved_by_name,
        )
        return {"sent": True}
    except Exception as exc:
        logger.exception("send_approval_notice failed for %s/%s: %s", document_type, document_id, exc)
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
