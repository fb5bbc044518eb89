from quoteflow.models.user import User, UserRole, BACK_OFFICE_ROLES
from quoteflow.models.document import (
    ApprovableDocumentMixin,
    DocumentApprovalStatus,
    DocumentType,
    PurchaseOrder,
    Quote,
)
from quoteflow.models.approval_route import ApprovalRoute, ApprovalRouteStep
from quoteflow.models.approval import (
    ApprovalInstance,
    ApprovalInstanceStep,
    InstanceStatus,
    StepStatus,
    TERMINAL_INSTANCE_STATUSES,
)
from quoteflow.models.audit import AuditLog

__all__ = [
    "User", "UserRole", "BACK_OFFICE_ROLES",
    "ApprovableDocumentMixin", "DocumentApprovalStatus", "DocumentType", "PurchaseOrder", "Quote",
    "ApprovalRoute", "ApprovalRouteStep",
    "ApprovalInstance", "ApprovalInstanceStep", "InstanceStatus", "StepStatus",
    "TERMINAL_INSTANCE_STATUSES",
    "AuditLog",
]
