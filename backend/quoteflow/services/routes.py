"""Route catalog, route matcher and route administration.

Matching is sort-then-first-match: active routes are ordered by min_amount
(null = 0) and the first whose role scope and amount band admit the
document wins. Overlapping routes with the same scope are refused when they
are configured, so in a valid catalog at most one route can match.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from quoteflow.core.exceptions import (
    ApprovalError,
    MisconfiguredRouteError,
    RouteNotFoundError,
    RouteOverlapError,
)
from quoteflow.models.approval_route import ApprovalRoute, ApprovalRouteStep
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole

logger = logging.getLogger(__name__)


# ─── Amount band value type ───

@dataclass(frozen=True)
class AmountRange:
    """Closed interval [min_amount, max_amount]; None bounds mean 0 and +infinity."""

    min_amount: Decimal | None = None
    max_amount: Decimal | None = None

    @classmethod
    def of(cls, route: ApprovalRoute) -> "AmountRange":
        return cls(route.min_amount, route.max_amount)

    @property
    def lower(self) -> Decimal:
        return Decimal(str(self.min_amount)) if self.min_amount is not None else Decimal("0")

    @property
    def upper(self) -> Decimal | None:
        return Decimal(str(self.max_amount)) if self.max_amount is not None else None

    def contains(self, amount: Decimal) -> bool:
        amount = Decimal(str(amount))
        if amount < self.lower:
            return False
        return self.upper is None or amount <= self.upper

    def overlaps(self, other: "AmountRange") -> bool:
        self_below_other = self.upper is not None and self.upper < other.lower
        other_below_self = other.upper is not None and other.upper < self.lower
        return not (self_below_other or other_below_self)


# ─── Route catalog ───

def list_active_routes(db: Session, document_type: DocumentType | None = None) -> list[ApprovalRoute]:
    """Return active routes with their steps attached (ordered by step_order)."""
    stmt = (
        select(ApprovalRoute)
        .options(selectinload(ApprovalRoute.steps))
        .where(ApprovalRoute.is_active.is_(True))
        .order_by(ApprovalRoute.min_amount, ApprovalRoute.name)
    )
    if document_type is not None:
        stmt = stmt.where(ApprovalRoute.target_entity == DocumentType(document_type))
    return list(db.execute(stmt).scalars().all())


def get_route(db: Session, route_id: uuid.UUID) -> ApprovalRoute | None:
    return db.execute(
        select(ApprovalRoute)
        .options(selectinload(ApprovalRoute.steps))
        .where(ApprovalRoute.id == route_id)
    ).scalars().first()


# ─── Route matcher ───

def _match_order(route: ApprovalRoute) -> tuple:
    # name and id only break ties between equal min_amounts so the order is total
    return (AmountRange.of(route).lower, route.name or "", str(route.id))


def match_route(
    routes: Iterable[ApprovalRoute],
    requester_role: UserRole,
    amount: Decimal,
) -> ApprovalRoute:
    """Pick the route for a requester role and document amount.

    Raises:
        RouteNotFoundError: no active route applies. This is an
            administrative misconfiguration, not a user error.
    """
    candidates = sorted((r for r in routes if r.is_active), key=_match_order)
    for route in candidates:
        if route.requester_role is not None and route.requester_role != requester_role:
            continue
        if AmountRange.of(route).contains(amount):
            return route

    raise RouteNotFoundError(
        "No applicable approval flow was found. Please contact an administrator.",
        requester_role=UserRole(requester_role).value,
        amount=str(amount),
    )


# ─── Route administration ───

def validate_steps(steps: list[dict[str, Any]]) -> None:
    """Step orders must be exactly 1..n."""
    orders = sorted(int(s["step_order"]) for s in steps)
    if not orders:
        raise MisconfiguredRouteError("An approval route needs at least one step.")
    if orders != list(range(1, len(orders) + 1)):
        raise MisconfiguredRouteError(
            "Step orders must be contiguous and start at 1.",
            step_orders=orders,
        )


def _validate_bounds(amount_range: AmountRange) -> None:
    if amount_range.upper is not None and amount_range.upper < amount_range.lower:
        raise MisconfiguredRouteError(
            "min_amount must not exceed max_amount.",
            min_amount=str(amount_range.min_amount),
            max_amount=str(amount_range.max_amount),
        )


def find_overlapping_route(
    db: Session,
    target_entity: DocumentType,
    requester_role: UserRole | None,
    amount_range: AmountRange,
    exclude_id: uuid.UUID | None = None,
) -> ApprovalRoute | None:
    """Return an active route with the same scope whose amount band intersects ``amount_range``."""
    stmt = select(ApprovalRoute).where(
        ApprovalRoute.is_active.is_(True),
        ApprovalRoute.target_entity == DocumentType(target_entity),
    )
    if requester_role is None:
        stmt = stmt.where(ApprovalRoute.requester_role.is_(None))
    else:
        stmt = stmt.where(ApprovalRoute.requester_role == UserRole(requester_role))
    if exclude_id is not None:
        stmt = stmt.where(ApprovalRoute.id != exclude_id)

    for route in db.execute(stmt).scalars().all():
        if AmountRange.of(route).overlaps(amount_range):
            return route
    return None


def _check_overlap(db: Session, route: ApprovalRoute) -> None:
    if not route.is_active:
        return
    conflict = find_overlapping_route(
        db, route.target_entity, route.requester_role, AmountRange.of(route), exclude_id=route.id
    )
    if conflict is not None:
        raise RouteOverlapError(
            f"Route '{conflict.name}' already covers part of this amount range for the same requester role.",
            conflicting_route_id=conflict.id,
        )


def create_route(
    db: Session,
    *,
    name: str,
    target_entity: DocumentType,
    steps: list[dict[str, Any]],
    requester_role: UserRole | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    description: str | None = None,
    is_active: bool = True,
    created_by: uuid.UUID | None = None,
) -> ApprovalRoute:
    """Create a route with its steps after configuration-time validation."""
    validate_steps(steps)
    _validate_bounds(AmountRange(min_amount, max_amount))

    route = ApprovalRoute(
        id=uuid.uuid4(),
        name=name,
        description=description,
        target_entity=DocumentType(target_entity),
        requester_role=UserRole(requester_role) if requester_role else None,
        min_amount=min_amount,
        max_amount=max_amount,
        is_active=is_active,
        created_by=created_by,
    )
    _check_overlap(db, route)

    route.steps = [
        ApprovalRouteStep(
            step_order=int(s["step_order"]),
            approver_role=UserRole(s["approver_role"]),
            notes=s.get("notes"),
        )
        for s in sorted(steps, key=lambda s: int(s["step_order"]))
    ]
    db.add(route)
    db.commit()
    logger.info("Approval route created: %s (%s) steps=%d", route.name, route.id, len(steps))
    return get_route(db, route.id)


def update_route(db: Session, route: ApprovalRoute, changes: dict[str, Any]) -> ApprovalRoute:
    """Apply partial changes; ``steps`` in ``changes`` replaces the whole chain.

    In-flight instances are unaffected: they hold copies of the step roles.
    """
    new_steps = changes.pop("steps", None)
    for field, value in changes.items():
        setattr(route, field, value)

    try:
        _validate_bounds(AmountRange.of(route))
        _check_overlap(db, route)
        if new_steps is not None:
            validate_steps(new_steps)
    except ApprovalError:
        db.rollback()
        raise

    if new_steps is not None:
        db.execute(delete(ApprovalRouteStep).where(ApprovalRouteStep.route_id == route.id))
        db.expire(route, ["steps"])
        for s in new_steps:
            db.add(ApprovalRouteStep(
                route_id=route.id,
                step_order=int(s["step_order"]),
                approver_role=UserRole(s["approver_role"]),
                notes=s.get("notes"),
            ))

    db.commit()
    db.expire(route)
    logger.info("Approval route updated: %s (%s)", route.name, route.id)
    return get_route(db, route.id)


def deactivate_route(db: Session, route: ApprovalRoute) -> None:
    """Soft-disable a route. Instances already running on it continue."""
    route.is_active = False
    db.commit()
    logger.info("Approval route deactivated: %s (%s)", route.name, route.id)
