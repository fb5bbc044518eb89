"""Pydantic schemas for approval workflow API endpoints."""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from quoteflow.models.approval import InstanceStatus, StepStatus
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole


# ─── Instance output ───

class ApprovalStepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_order: int
    approver_role: UserRole
    status: StepStatus
    approver_user_id: uuid.UUID | None
    decided_at: datetime | None
    notes: str | None


class ApprovalInstanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_type: DocumentType
    document_id: uuid.UUID
    route_id: uuid.UUID
    status: InstanceStatus
    current_step: int | None
    requested_by: uuid.UUID
    requested_at: datetime
    rejection_reason: str | None
    updated_at: datetime
    steps: list[ApprovalStepOut] = []

    # Route summary (populated by the endpoint)
    route_name: str | None = None


# ─── Inbox ───

class InboxItemOut(BaseModel):
    step_id: uuid.UUID
    instance_id: uuid.UUID
    document_type: DocumentType
    document_id: uuid.UUID
    step_order: int
    approver_role: UserRole
    requested_by: uuid.UUID
    requested_at: datetime


class InboxResponse(BaseModel):
    items: list[InboxItemOut]
    total: int


# ─── Decision request / response ───

class RejectRequest(BaseModel):
    reason: str | None = None


class StepDecisionOut(BaseModel):
    instance_id: uuid.UUID
    next_approver_role: UserRole | None = None
    completed: bool
