"""Read models for the approval inbox and the document approval panel.

Async queries only; nothing here mutates state.
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quoteflow.models.approval import ApprovalInstance, ApprovalInstanceStep, InstanceStatus, StepStatus
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole


async def get_instance(
    db: AsyncSession,
    document_type: DocumentType,
    document_id: uuid.UUID,
) -> ApprovalInstance | None:
    """Return the document's approval instance with steps and route loaded."""
    result = await db.execute(
        select(ApprovalInstance)
        .options(selectinload(ApprovalInstance.steps), selectinload(ApprovalInstance.route))
        .where(
            ApprovalInstance.document_type == DocumentType(document_type),
            ApprovalInstance.document_id == document_id,
        )
    )
    return result.scalars().first()


def _pending_steps_stmt(role: UserRole):
    return (
        select(ApprovalInstanceStep)
        .join(ApprovalInstance, ApprovalInstanceStep.instance_id == ApprovalInstance.id)
        .where(
            ApprovalInstanceStep.status == StepStatus.pending,
            ApprovalInstanceStep.approver_role == UserRole(role),
            ApprovalInstance.status == InstanceStatus.pending,
            ApprovalInstance.current_step == ApprovalInstanceStep.step_order,
        )
    )


async def get_pending_steps_for_role(
    db: AsyncSession,
    role: UserRole,
    limit: int = 100,
    offset: int = 0,
) -> list[ApprovalInstanceStep]:
    """Steps waiting on ``role``: pending, and the current step of a pending instance.

    Later steps of a chain are pending too but not actionable yet, so they
    are filtered out by the current_step join condition.
    """
    result = await db.execute(
        _pending_steps_stmt(role)
        .options(selectinload(ApprovalInstanceStep.instance))
        .order_by(ApprovalInstance.requested_at, ApprovalInstance.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def count_pending_steps_for_role(db: AsyncSession, role: UserRole) -> int:
    count_stmt = select(func.count()).select_from(_pending_steps_stmt(role).subquery())
    return (await db.execute(count_stmt)).scalar_one()
