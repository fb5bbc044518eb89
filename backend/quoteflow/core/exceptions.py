"""Typed exceptions raised by the approval workflow engine.

Every error carries a machine-readable ``code`` and the HTTP status the
API layer answers with, so callers catch by type and never parse messages.

    ApprovalError
    +-- RouteNotFoundError          ROUTE_NOT_FOUND          (configuration)
    +-- MisconfiguredRouteError     MISCONFIGURED_ROUTE      (configuration)
    +-- RouteOverlapError           ROUTE_OVERLAP            (configuration)
    +-- DocumentNotFoundError       DOCUMENT_NOT_FOUND       (state)
    +-- InvalidStateError           INVALID_STATE            (state)
    +-- NoActiveApprovalError       NO_ACTIVE_APPROVAL       (state)
    +-- AlreadyInProgressError      ALREADY_IN_PROGRESS      (state)
    +-- ForbiddenError              FORBIDDEN                (authorization)
    +-- WrongApproverRoleError      WRONG_APPROVER_ROLE      (authorization)
    +-- ConcurrentModificationError CONCURRENT_MODIFICATION  (concurrency)

None of these are ever retried automatically. A ConcurrentModificationError
in particular means a stale decision; the caller must reload and decide again.
"""
from typing import Any


class ApprovalError(Exception):
    """Base class for all approval workflow errors."""

    code: str = "APPROVAL_ERROR"
    status_code: int = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


# ─── Configuration errors ───

class RouteNotFoundError(ApprovalError):
    """No active route applies to the requester role and amount."""

    code = "ROUTE_NOT_FOUND"
    status_code = 422


class MisconfiguredRouteError(ApprovalError):
    code = "MISCONFIGURED_ROUTE"
    status_code = 422


class RouteOverlapError(ApprovalError):
    """An active route with the same scope already covers part of the amount range."""

    code = "ROUTE_OVERLAP"
    status_code = 409

    def __init__(self, message: str, conflicting_route_id: Any) -> None:
        super().__init__(message, conflicting_route_id=str(conflicting_route_id))
        self.conflicting_route_id = conflicting_route_id


# ─── State errors ───

class DocumentNotFoundError(ApprovalError):
    code = "DOCUMENT_NOT_FOUND"
    status_code = 404


class InvalidStateError(ApprovalError):
    code = "INVALID_STATE"
    status_code = 409


class NoActiveApprovalError(ApprovalError):
    code = "NO_ACTIVE_APPROVAL"
    status_code = 409


class AlreadyInProgressError(ApprovalError):
    code = "ALREADY_IN_PROGRESS"
    status_code = 409


# ─── Authorization errors ───

class ForbiddenError(ApprovalError):
    code = "FORBIDDEN"
    status_code = 403


class WrongApproverRoleError(ApprovalError):
    """The acting user does not hold the role the current step expects."""

    code = "WRONG_APPROVER_ROLE"
    status_code = 403

    def __init__(self, expected_role: str, actual_role: str | None) -> None:
        super().__init__(
            f"This step must be decided by a user with role '{expected_role}'.",
            expected_role=expected_role,
            actual_role=actual_role,
        )
        self.expected_role = expected_role
        self.actual_role = actual_role


# ─── Concurrency errors ───

class ConcurrentModificationError(ApprovalError):
    """A compare-and-set write matched zero rows."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409

    def __init__(self, entity_type: str, entity_id: Any, expected_status: str) -> None:
        super().__init__(
            "This record was already updated by someone else. Please refresh and try again.",
            entity_type=entity_type,
            entity_id=str(entity_id),
            expected_status=expected_status,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_status = expected_status
