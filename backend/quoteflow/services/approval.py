"""Approval workflow engine: submission, step decisions and reset to draft.

All functions accept a sync SQLAlchemy Session and run as one transaction:
every write is flushed in the session and committed once at the end, and
any error rolls the whole operation back.

Concurrency is optimistic. Each status change is a compare-and-set on the
status the row was read with; a write that matches no row raises
ConcurrentModificationError (two approvers clicking the same step, an
approval racing a reset, a submission racing a decision).

Instance lifecycle:

    pending --approve last step--> approved
    pending --reject--> rejected --return_to_draft--> cancelled
    approved/rejected/cancelled --submit--> pending (same row, fresh steps)
"""
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quoteflow.core.exceptions import (
    AlreadyInProgressError,
    ConcurrentModificationError,
    ForbiddenError,
    InvalidStateError,
    MisconfiguredRouteError,
    NoActiveApprovalError,
    WrongApproverRoleError,
)
from quoteflow.db.base import utcnow
from quoteflow.db.cas import compare_and_set
from quoteflow.models.approval import (
    TERMINAL_INSTANCE_STATUSES,
    ApprovalInstance,
    ApprovalInstanceStep,
    InstanceStatus,
    StepStatus,
)
from quoteflow.models.document import DocumentApprovalStatus, DocumentType
from quoteflow.models.user import BACK_OFFICE_ROLES, User
from quoteflow.services import audit as audit_svc
from quoteflow.services import directory
from quoteflow.services import documents as document_store
from quoteflow.services import notifications
from quoteflow.services import routes as route_svc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepDecision:
    """Outcome of approve_step / reject_step.

    next_approver_role is None when the decision ended the workflow.
    """

    instance_id: uuid.UUID
    next_approver_role: str | None = None


@contextmanager
def _transaction(db: Session) -> Iterator[None]:
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


# ─── Helpers ───

# Reads that feed a compare-and-set must see the committed row, not whatever
# the session's identity map holds from an earlier operation.

def _load_instance(db: Session, document_type: DocumentType, document_id: uuid.UUID) -> ApprovalInstance | None:
    return db.execute(
        select(ApprovalInstance)
        .where(
            ApprovalInstance.document_type == document_type,
            ApprovalInstance.document_id == document_id,
        )
        .execution_options(populate_existing=True)
    ).scalars().first()


def _load_steps(db: Session, instance_id: uuid.UUID) -> list[ApprovalInstanceStep]:
    return list(
        db.execute(
            select(ApprovalInstanceStep)
            .where(ApprovalInstanceStep.instance_id == instance_id)
            .order_by(ApprovalInstanceStep.step_order)
            .execution_options(populate_existing=True)
        ).scalars().all()
    )


def _require_owner_or_back_office(user: User, owner_id: uuid.UUID, message: str) -> None:
    if user.id != owner_id and user.role not in BACK_OFFICE_ROLES:
        raise ForbiddenError(message, required_roles=sorted(r.value for r in BACK_OFFICE_ROLES))


def _current_step(instance: ApprovalInstance, steps: list[ApprovalInstanceStep]) -> ApprovalInstanceStep | None:
    """The pending step at instance.current_step.

    Falls back to the lowest pending step when current_step is unset, which
    only happens if the row was written outside this engine.
    """
    pending = [s for s in steps if s.status == StepStatus.pending]
    if instance.current_step is None:
        return pending[0] if pending else None
    return next((s for s in pending if s.step_order == instance.current_step), None)


def _resolve_decision(
    db: Session,
    document_type: DocumentType,
    document_id: uuid.UUID,
    approver_id: uuid.UUID,
) -> tuple[ApprovalInstance, list[ApprovalInstanceStep], ApprovalInstanceStep, User]:
    """Shared preconditions for approve and reject."""
    approver = directory.get_user(db, approver_id)

    instance = _load_instance(db, document_type, document_id)
    if instance is None or instance.status != InstanceStatus.pending:
        raise NoActiveApprovalError(
            f"No approval is waiting for a decision on {document_type.value} {document_id}."
        )

    steps = _load_steps(db, instance.id)
    step = _current_step(instance, steps)
    if step is None:
        raise NoActiveApprovalError(
            f"Approval {instance.id} has no actionable step.",
            instance_id=str(instance.id),
        )

    # The approver's role is read on every call; only the expected role is snapshotted.
    if approver.role != step.approver_role:
        raise WrongApproverRoleError(
            expected_role=step.approver_role.value,
            actual_role=approver.role.value if approver.role else None,
        )
    return instance, steps, step, approver


# ─── Instance manager: submit ───

def submit_for_approval(
    db: Session,
    document_type: DocumentType,
    document_id: uuid.UUID,
    requester_id: uuid.UUID,
) -> ApprovalInstance:
    """Start an approval run for a draft document.

    Selects the route for the requester's role and the document amount,
    creates (or resets in place) the document's instance with one pending
    step per route step, and moves the document from draft to pending.

    Raises:
        DocumentNotFoundError, InvalidStateError, ForbiddenError,
        RouteNotFoundError, MisconfiguredRouteError, AlreadyInProgressError,
        ConcurrentModificationError.
    """
    document_type = DocumentType(document_type)

    with _transaction(db):
        requester = directory.get_user(db, requester_id)
        doc = document_store.get_document(db, document_type, document_id)

        instance = _load_instance(db, document_type, document_id)
        if instance is not None and instance.status == InstanceStatus.pending:
            raise AlreadyInProgressError(
                "An approval is already in progress for this document.",
                instance_id=str(instance.id),
            )

        if doc.approval_status != DocumentApprovalStatus.draft:
            raise InvalidStateError(
                f"Only draft documents can be submitted (current status: {doc.approval_status.value}).",
                approval_status=doc.approval_status.value,
            )
        _require_owner_or_back_office(
            requester, doc.requester_id,
            "Only the document owner or back-office staff can request approval.",
        )

        route = route_svc.match_route(
            route_svc.list_active_routes(db, document_type), requester.role, doc.amount
        )
        route_steps = sorted(route.steps, key=lambda s: s.step_order)
        if not route_steps:
            raise MisconfiguredRouteError(
                f"Approval route '{route.name}' has no steps. Please contact an administrator.",
                route_id=str(route.id),
            )

        now = utcnow()
        first_order = route_steps[0].step_order

        if instance is not None and instance.status in TERMINAL_INSTANCE_STATUSES:
            before = {"instance_status": instance.status.value, "route_id": instance.route_id}
            db.execute(
                delete(ApprovalInstanceStep).where(ApprovalInstanceStep.instance_id == instance.id)
            )
            compare_and_set(
                db, ApprovalInstance, instance.id, instance.status,
                entity_type="approval_instance",
                route_id=route.id,
                status=InstanceStatus.pending,
                current_step=first_order,
                requested_by=requester.id,
                requested_at=now,
                rejection_reason=None,
            )
        else:
            before = None
            instance = ApprovalInstance(
                id=uuid.uuid4(),
                document_type=document_type,
                document_id=document_id,
                route_id=route.id,
                status=InstanceStatus.pending,
                current_step=first_order,
                requested_by=requester.id,
                requested_at=now,
            )
            db.add(instance)
            try:
                db.flush()
            except IntegrityError:
                # another submission created the row between our read and insert
                raise ConcurrentModificationError("approval_instance", document_id, "absent")

        for route_step in route_steps:
            db.add(ApprovalInstanceStep(
                instance_id=instance.id,
                step_order=route_step.step_order,
                approver_role=route_step.approver_role,
                status=StepStatus.pending,
            ))
        db.flush()

        document_store.compare_and_set_approval_status(
            db, document_type, document_id,
            DocumentApprovalStatus.draft, DocumentApprovalStatus.pending,
            approved_by=None, approved_at=None,
        )

        audit_svc.log(
            db=db,
            action="approval.submitted",
            entity_type=document_type.value,
            entity_id=document_id,
            actor_id=requester.id,
            before=before,
            after={
                "instance_id": str(instance.id),
                "route_id": str(route.id),
                "route_name": route.name,
                "current_step": first_order,
                "step_roles": [s.approver_role.value for s in route_steps],
            },
            notes=f"Submitted to approval route '{route.name}'",
        )

    db.expire(instance, ["steps"])
    logger.info(
        "Approval submitted: %s/%s instance=%s route=%s requester=%s",
        document_type.value, document_id, instance.id, route.id, requester.id,
    )
    return instance


# ─── Step executor: approve ───

def approve_step(
    db: Session,
    document_type: DocumentType,
    document_id: uuid.UUID,
    approver_id: uuid.UUID,
) -> StepDecision:
    """Approve the current step; completes the workflow on the last step.

    Raises:
        NoActiveApprovalError, WrongApproverRoleError, ForbiddenError,
        ConcurrentModificationError.
    """
    document_type = DocumentType(document_type)

    with _transaction(db):
        instance, steps, step, approver = _resolve_decision(db, document_type, document_id, approver_id)
        now = utcnow()

        compare_and_set(
            db, ApprovalInstanceStep, step.id, StepStatus.pending,
            entity_type="approval_instance_step",
            status=StepStatus.approved,
            approver_user_id=approver.id,
            decided_at=now,
        )

        next_step = next(
            (s for s in steps if s.step_order > step.step_order and s.status == StepStatus.pending),
            None,
        )

        if next_step is not None:
            compare_and_set(
                db, ApprovalInstance, instance.id, InstanceStatus.pending,
                ApprovalInstance.current_step == step.step_order,
                entity_type="approval_instance",
                current_step=next_step.step_order,
            )
            decision = StepDecision(instance.id, next_step.approver_role.value)
            action = "approval.step_approved"
        else:
            compare_and_set(
                db, ApprovalInstance, instance.id, InstanceStatus.pending,
                entity_type="approval_instance",
                status=InstanceStatus.approved,
                current_step=None,
            )
            document_store.compare_and_set_approval_status(
                db, document_type, document_id,
                DocumentApprovalStatus.pending, DocumentApprovalStatus.approved,
                approved_by=approver.id, approved_at=now,
            )
            decision = StepDecision(instance.id, None)
            action = "approval.completed"

        audit_svc.log(
            db=db,
            action=action,
            entity_type=document_type.value,
            entity_id=document_id,
            actor_id=approver.id,
            before={"current_step": step.step_order},
            after={
                "instance_id": str(instance.id),
                "approved_step": step.step_order,
                "next_step": next_step.step_order if next_step else None,
                "next_approver_role": decision.next_approver_role,
            },
        )

    logger.info(
        "Approval step approved: %s/%s instance=%s step=%s approver=%s next_role=%s",
        document_type.value, document_id, instance.id, step.step_order,
        approver.id, decision.next_approver_role,
    )
    if decision.next_approver_role is None:
        notifications.notify_approved(document_type, document_id, approver.display_name)
    return decision


# ─── Step executor: reject ───

def reject_step(
    db: Session,
    document_type: DocumentType,
    document_id: uuid.UUID,
    approver_id: uuid.UUID,
    reason: str | None = None,
) -> StepDecision:
    """Reject the current step, ending the workflow.

    A rejected instance is never resumed; the document has to go back to
    draft and be submitted again.
    """
    document_type = DocumentType(document_type)
    reason = reason.strip() if reason and reason.strip() else None

    with _transaction(db):
        instance, _steps, step, approver = _resolve_decision(db, document_type, document_id, approver_id)
        now = utcnow()

        compare_and_set(
            db, ApprovalInstanceStep, step.id, StepStatus.pending,
            entity_type="approval_instance_step",
            status=StepStatus.rejected,
            approver_user_id=approver.id,
            decided_at=now,
            notes=reason,
        )
        compare_and_set(
            db, ApprovalInstance, instance.id, InstanceStatus.pending,
            entity_type="approval_instance",
            status=InstanceStatus.rejected,
            current_step=None,
            rejection_reason=reason,
        )
        document_store.compare_and_set_approval_status(
            db, document_type, document_id,
            DocumentApprovalStatus.pending, DocumentApprovalStatus.rejected,
            approved_by=approver.id, approved_at=now,
        )

        audit_svc.log(
            db=db,
            action="approval.rejected",
            entity_type=document_type.value,
            entity_id=document_id,
            actor_id=approver.id,
            before={"current_step": step.step_order},
            after={"instance_id": str(instance.id), "rejected_step": step.step_order},
            notes=reason,
        )

    logger.info(
        "Approval rejected: %s/%s instance=%s step=%s approver=%s",
        document_type.value, document_id, instance.id, step.step_order, approver.id,
    )
    notifications.notify_rejected(document_type, document_id, approver.display_name, reason)
    return StepDecision(instance.id, None)


# ─── Step executor: return to draft ───

def return_to_draft(
    db: Session,
    document_type: DocumentType,
    document_id: uuid.UUID,
    actor_id: uuid.UUID | None = None,
) -> None:
    """Reset a rejected document to draft and cancel its approval instance.

    The instance's steps are deleted; approval history of the cancelled run
    survives only in the audit log. When ``actor_id`` is given, the actor
    must own the document or hold a back-office role.
    """
    document_type = DocumentType(document_type)

    with _transaction(db):
        doc = document_store.get_document(db, document_type, document_id)
        if actor_id is not None:
            actor = directory.get_user(db, actor_id)
            _require_owner_or_back_office(
                actor, doc.requester_id,
                "Only the document owner or back-office staff can return it to draft.",
            )

        if doc.approval_status != DocumentApprovalStatus.rejected:
            raise InvalidStateError(
                f"Only rejected documents can be returned to draft (current status: {doc.approval_status.value}).",
                approval_status=doc.approval_status.value,
            )

        instance = _load_instance(db, document_type, document_id)
        if instance is not None:
            db.execute(
                delete(ApprovalInstanceStep).where(ApprovalInstanceStep.instance_id == instance.id)
            )
            compare_and_set(
                db, ApprovalInstance, instance.id, instance.status,
                entity_type="approval_instance",
                status=InstanceStatus.cancelled,
                current_step=None,
                rejection_reason=None,
            )

        document_store.compare_and_set_approval_status(
            db, document_type, document_id,
            DocumentApprovalStatus.rejected, DocumentApprovalStatus.draft,
            approved_by=None, approved_at=None,
        )

        audit_svc.log(
            db=db,
            action="approval.returned_to_draft",
            entity_type=document_type.value,
            entity_id=document_id,
            actor_id=actor_id,
            before={"approval_status": DocumentApprovalStatus.rejected.value},
            after={
                "approval_status": DocumentApprovalStatus.draft.value,
                "instance_id": str(instance.id) if instance else None,
            },
        )

    if instance is not None:
        db.expire(instance, ["steps"])
    logger.info("Returned to draft: %s/%s actor=%s", document_type.value, document_id, actor_id)
