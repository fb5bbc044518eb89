"""Tests for route matching, amount bands and route administration.

Matching runs on transient ApprovalRoute objects; administration tests use
the SQLite fixture database.
"""
import uuid
from decimal import Decimal

import pytest

from quoteflow.core.exceptions import MisconfiguredRouteError, RouteNotFoundError, RouteOverlapError
from quoteflow.models.approval_route import ApprovalRoute
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole
from quoteflow.services import routes as route_svc
from quoteflow.services.routes import AmountRange, match_route


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _route(name, min_amount=None, max_amount=None, requester_role=None, is_active=True):
    return ApprovalRoute(
        id=uuid.uuid4(),
        name=name,
        target_entity=DocumentType.quote,
        requester_role=requester_role,
        min_amount=Decimal(min_amount) if min_amount is not None else None,
        max_amount=Decimal(max_amount) if max_amount is not None else None,
        is_active=is_active,
    )


R1 = _route("R1", "0", "500000")
R2 = _route("R2", "500001")


# ─── AmountRange ──────────────────────────────────────────────────────────────

def test_amount_range_bounds_are_inclusive():
    band = AmountRange(Decimal("100"), Decimal("200"))
    assert band.contains(Decimal("100"))
    assert band.contains(Decimal("200"))
    assert not band.contains(Decimal("99.99"))
    assert not band.contains(Decimal("200.01"))


def test_amount_range_open_bounds():
    band = AmountRange()
    assert band.lower == Decimal("0")
    assert band.upper is None
    assert band.contains(Decimal("0"))
    assert band.contains(Decimal("1000000000"))
    assert not band.contains(Decimal("-1"))


def test_amount_range_overlap():
    assert AmountRange(Decimal("0"), Decimal("100")).overlaps(AmountRange(Decimal("100"), None))
    assert not AmountRange(Decimal("0"), Decimal("500000")).overlaps(AmountRange(Decimal("500001"), None))
    assert AmountRange(None, None).overlaps(AmountRange(Decimal("5"), Decimal("6")))


# ─── match_route ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "amount, expected",
    [("0", "R1"), ("300000", "R1"), ("500000", "R1"), ("500001", "R2"), ("900000", "R2")],
)
def test_match_route_by_amount(amount, expected):
    assert match_route([R2, R1], UserRole.sales, Decimal(amount)).name == expected


def test_match_route_is_deterministic_regardless_of_input_order():
    a = _route("alpha", "0", "1000")
    b = _route("beta", "0", "1000")
    first = match_route([a, b], UserRole.sales, Decimal("10"))
    second = match_route([b, a], UserRole.sales, Decimal("10"))
    assert first is second is a


def test_lowest_min_amount_wins_on_overlap():
    broad = _route("broad", "0")
    narrow = _route("narrow", "100", "200")
    assert match_route([narrow, broad], UserRole.sales, Decimal("150")) is broad


def test_role_scoped_route_only_matches_its_role():
    sales_only = _route("sales only", "0", "1000", requester_role=UserRole.sales)
    assert match_route([sales_only], UserRole.sales, Decimal("10")) is sales_only
    with pytest.raises(RouteNotFoundError):
        match_route([sales_only], UserRole.back_office, Decimal("10"))


def test_inactive_routes_are_ignored():
    inactive = _route("old", "0", "1000", is_active=False)
    with pytest.raises(RouteNotFoundError) as exc_info:
        match_route([inactive], UserRole.sales, Decimal("10"))
    assert exc_info.value.code == "ROUTE_NOT_FOUND"
    assert exc_info.value.status_code == 422


def test_no_route_for_amount_above_every_band():
    with pytest.raises(RouteNotFoundError):
        match_route([R1], UserRole.sales, Decimal("500000.01"))


# ─── Route administration ─────────────────────────────────────────────────────

def test_create_route_persists_ordered_steps(db):
    route = route_svc.create_route(
        db,
        name="Two step",
        target_entity=DocumentType.purchase_order,
        min_amount=Decimal("0"),
        steps=[
            {"step_order": 2, "approver_role": UserRole.director},
            {"step_order": 1, "approver_role": UserRole.manager},
        ],
    )
    assert [s.step_order for s in route.steps] == [1, 2]
    assert [s.approver_role for s in route.steps] == [UserRole.manager, UserRole.director]
    assert route_svc.list_active_routes(db, DocumentType.purchase_order)[0].id == route.id


@pytest.mark.parametrize("orders", [[], [2], [1, 3], [1, 1]])
def test_step_orders_must_be_contiguous_from_one(db, orders):
    steps = [{"step_order": o, "approver_role": UserRole.manager} for o in orders]
    with pytest.raises(MisconfiguredRouteError):
        route_svc.create_route(db, name="bad", target_entity=DocumentType.quote, steps=steps)


def test_min_amount_above_max_amount_is_rejected(db):
    with pytest.raises(MisconfiguredRouteError):
        route_svc.create_route(
            db, name="bad", target_entity=DocumentType.quote,
            min_amount=Decimal("10"), max_amount=Decimal("5"),
            steps=[{"step_order": 1, "approver_role": UserRole.manager}],
        )


def test_overlapping_route_with_same_scope_is_rejected(db, standard_routes):
    with pytest.raises(RouteOverlapError) as exc_info:
        route_svc.create_route(
            db, name="overlap", target_entity=DocumentType.quote,
            min_amount=Decimal("400000"), max_amount=Decimal("600000"),
            steps=[{"step_order": 1, "approver_role": UserRole.director}],
        )
    assert exc_info.value.conflicting_route_id in {
        standard_routes[("quote", "R1")].id, standard_routes[("quote", "R2")].id,
    }


def test_overlap_allowed_for_a_different_requester_role(db, standard_routes):
    route = route_svc.create_route(
        db, name="back office fast lane", target_entity=DocumentType.quote,
        requester_role=UserRole.back_office, min_amount=Decimal("0"),
        steps=[{"step_order": 1, "approver_role": UserRole.manager}],
    )
    assert route.requester_role == UserRole.back_office


def test_update_route_replaces_step_chain(db, standard_routes):
    r1 = standard_routes[("quote", "R1")]
    updated = route_svc.update_route(db, r1, {
        "name": "R1 (two step)",
        "steps": [
            {"step_order": 1, "approver_role": UserRole.manager},
            {"step_order": 2, "approver_role": UserRole.director},
        ],
    })
    assert updated.name == "R1 (two step)"
    assert [s.approver_role for s in updated.steps] == [UserRole.manager, UserRole.director]


def test_update_route_rejects_overlap_and_keeps_old_values(db, standard_routes):
    r1 = standard_routes[("quote", "R1")]
    with pytest.raises(RouteOverlapError):
        route_svc.update_route(db, r1, {"max_amount": Decimal("600000")})
    assert route_svc.get_route(db, r1.id).max_amount == Decimal("500000")


def test_deactivated_route_drops_out_of_catalog(db, standard_routes):
    r2 = standard_routes[("quote", "R2")]
    route_svc.deactivate_route(db, r2)
    names = [r.name for r in route_svc.list_active_routes(db, DocumentType.quote)]
    assert names == ["R1"]


# ─── Default routes seed ──────────────────────────────────────────────────────

def test_seed_default_routes_is_idempotent(db):
    from quoteflow.core.seed import seed_default_routes

    assert seed_default_routes(db) == 4
    assert seed_default_routes(db) == 0

    routes = route_svc.list_active_routes(db, DocumentType.quote)
    assert [[s.approver_role for s in r.steps] for r in routes] == [
        [UserRole.manager],
        [UserRole.manager, UserRole.director],
    ]
    assert match_route(routes, UserRole.sales, Decimal("500001")).name.startswith("Large amount")
