"""Approval workflow API endpoints.

Engine actions (JWT required, one transaction each):
  POST /approvals/{document_type}/{document_id}/submit
  POST /approvals/{document_type}/{document_id}/approve
  POST /approvals/{document_type}/{document_id}/reject
  POST /approvals/{document_type}/{document_id}/return-to-draft

Read models:
  GET  /approvals/inbox                               steps waiting on my role
  GET  /approvals/{document_type}/{document_id}       instance with steps
"""
import logging
import uuid
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from quoteflow.core.deps import get_current_user
from quoteflow.core.exceptions import ApprovalError
from quoteflow.db.session import get_session, get_sync_session
from quoteflow.models.approval import ApprovalInstance
from quoteflow.models.document import DocumentType
from quoteflow.models.user import User
from quoteflow.schemas.approval import (
    ApprovalInstanceOut,
    InboxItemOut,
    InboxResponse,
    RejectRequest,
    StepDecisionOut,
)
from quoteflow.services import approval as approval_svc
from quoteflow.services import inbox as inbox_svc

logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_http(exc: ApprovalError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_dict()) from exc


def _instance_out(instance: ApprovalInstance) -> ApprovalInstanceOut:
    out = ApprovalInstanceOut.model_validate(instance)
    out.route_name = instance.route.name if instance.route else None
    return out


# ─── Inbox ───

@router.get(
    "/inbox",
    response_model=InboxResponse,
    summary="List approval steps currently waiting on the caller's role",
)
async def list_inbox(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    steps = await inbox_svc.get_pending_steps_for_role(db, current_user.role, limit=limit, offset=offset)
    items = [
        InboxItemOut(
            step_id=step.id,
            instance_id=step.instance_id,
            document_type=step.instance.document_type,
            document_id=step.instance.document_id,
            step_order=step.step_order,
            approver_role=step.approver_role,
            requested_by=step.instance.requested_by,
            requested_at=step.instance.requested_at,
        )
        for step in steps
    ]
    total = await inbox_svc.count_pending_steps_for_role(db, current_user.role)
    return InboxResponse(items=items, total=total)


# ─── Instance detail ───

@router.get(
    "/{document_type}/{document_id}",
    response_model=ApprovalInstanceOut,
    summary="Get the approval instance of a document",
)
async def get_approval(
    document_type: DocumentType,
    document_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    instance = await inbox_svc.get_instance(db, document_type, document_id)
    if instance is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No approval for this document.")
    return _instance_out(instance)


# ─── Submit ───

@router.post(
    "/{document_type}/{document_id}/submit",
    response_model=ApprovalInstanceOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a draft document for approval",
)
def submit(
    document_type: DocumentType,
    document_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        instance = approval_svc.submit_for_approval(db, document_type, document_id, current_user.id)
    except ApprovalError as exc:
        _raise_http(exc)
    db.refresh(instance)
    return _instance_out(instance)


# ─── Approve / reject ───

@router.post(
    "/{document_type}/{document_id}/approve",
    response_model=StepDecisionOut,
    summary="Approve the current step",
)
def approve(
    document_type: DocumentType,
    document_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        decision = approval_svc.approve_step(db, document_type, document_id, current_user.id)
    except ApprovalError as exc:
        _raise_http(exc)
    return StepDecisionOut(
        instance_id=decision.instance_id,
        next_approver_role=decision.next_approver_role,
        completed=decision.next_approver_role is None,
    )


@router.post(
    "/{document_type}/{document_id}/reject",
    response_model=StepDecisionOut,
    summary="Reject the current step, ending the approval",
)
def reject(
    document_type: DocumentType,
    document_id: uuid.UUID,
    body: RejectRequest,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        decision = approval_svc.reject_step(
            db, document_type, document_id, current_user.id, reason=body.reason
        )
    except ApprovalError as exc:
        _raise_http(exc)
    return StepDecisionOut(instance_id=decision.instance_id, completed=True)


# ─── Return to draft ───

@router.post(
    "/{document_type}/{document_id}/return-to-draft",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Return a rejected document to draft",
)
def return_to_draft(
    document_type: DocumentType,
    document_id: uuid.UUID,
    db: Annotated[Session, Depends(get_sync_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    try:
        approval_svc.return_to_draft(db, document_type, document_id, actor_id=current_user.id)
    except ApprovalError as exc:
        _raise_http(exc)
