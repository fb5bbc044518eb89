"""Pydantic schemas for approval route administration."""
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole


# ─── Route step schemas ───

class ApprovalRouteStepIn(BaseModel):
    step_order: int = Field(ge=1)
    approver_role: UserRole
    notes: str | None = None


class ApprovalRouteStepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_order: int
    approver_role: UserRole
    notes: str | None


# ─── Route schemas ───

class ApprovalRouteIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    target_entity: DocumentType
    requester_role: UserRole | None = None
    min_amount: Decimal | None = Field(default=None, ge=0)
    max_amount: Decimal | None = Field(default=None, ge=0)
    is_active: bool = True
    steps: list[ApprovalRouteStepIn] = Field(min_length=1)


class ApprovalRouteUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    requester_role: UserRole | None = None
    min_amount: Decimal | None = Field(default=None, ge=0)
    max_amount: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None
    steps: list[ApprovalRouteStepIn] | None = None

    @field_validator("name", "is_active")
    @classmethod
    def reject_null(cls, v, info):
        # omitted means unchanged; an explicit null would clear a NOT NULL column
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class ApprovalRouteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None
    target_entity: DocumentType
    requester_role: UserRole | None
    min_amount: Decimal | None
    max_amount: Decimal | None
    is_active: bool
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
    steps: list[ApprovalRouteStepOut]


class ApprovalRouteListResponse(BaseModel):
    items: list[ApprovalRouteOut]
    total: int
