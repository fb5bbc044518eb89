"""API tests for approval actions, inbox, instance detail and route administration.

Sessions are overridden to point at the per-test SQLite file; the current
user is overridden with a stub except in the JWT tests.
"""
import uuid

import pytest
from httpx import AsyncClient, ASGITransport

from quoteflow.core.deps import get_current_user
from quoteflow.core.security import create_access_token
from quoteflow.db.session import get_session, get_sync_session
from quoteflow.main import app
from quoteflow.models.user import UserRole


# ─── Fixtures ─────────────────────────────────────────────────────────────────

class FakeUser:
    """Minimal user stub for dependency overrides."""

    def __init__(self, user):
        self.id = user.id
        self.email = user.email
        self.display_name = user.display_name
        self.role = user.role
        self.is_active = True


@pytest.fixture
def client_for(session_factory, async_session_factory):
    """Return a factory that builds an AsyncClient acting as the given user."""

    def _sync_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def _async_session():
        async with async_session_factory() as session:
            yield session

    app.dependency_overrides[get_sync_session] = _sync_session
    app.dependency_overrides[get_session] = _async_session

    def _client(user=None):
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            fake = FakeUser(user)
            app.dependency_overrides[get_current_user] = lambda: fake
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    yield _client
    app.dependency_overrides.clear()


# ─── Approval flow ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_two_step_flow_over_http(client_for, standard_routes, people, make_quote):
    quote = make_quote(people["sales"], "1000000")
    base = f"/api/v1/approvals/quote/{quote.id}"

    async with client_for(people["sales"]) as client:
        response = await client.post(f"{base}/submit")
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["current_step"] == 1
    assert body["route_name"] == "R2"
    assert [s["approver_role"] for s in body["steps"]] == ["manager", "director"]

    async with client_for(people["manager"]) as client:
        inbox = await client.get("/api/v1/approvals/inbox")
        response = await client.post(f"{base}/approve")
    assert inbox.status_code == 200
    assert [item["document_id"] for item in inbox.json()["items"]] == [str(quote.id)]
    assert response.status_code == 200
    assert response.json() == {
        "instance_id": body["id"],
        "next_approver_role": "director",
        "completed": False,
    }

    async with client_for(people["director"]) as client:
        inbox = await client.get("/api/v1/approvals/inbox")
        response = await client.post(f"{base}/approve")
        detail = await client.get(base)
    assert inbox.json()["total"] == 1
    assert response.json()["completed"] is True
    assert detail.status_code == 200
    assert detail.json()["status"] == "approved"
    assert [s["status"] for s in detail.json()["steps"]] == ["approved", "approved"]


@pytest.mark.asyncio
async def test_manager_inbox_excludes_steps_not_yet_reached(client_for, standard_routes, people, make_quote):
    quote = make_quote(people["sales"], "1000000")
    async with client_for(people["sales"]) as client:
        await client.post(f"/api/v1/approvals/quote/{quote.id}/submit")

    async with client_for(people["director"]) as client:
        response = await client.get("/api/v1/approvals/inbox")
    assert response.status_code == 200
    assert response.json() == {"items": [], "total": 0}


@pytest.mark.asyncio
async def test_wrong_role_maps_to_403_with_code(client_for, standard_routes, people, make_quote):
    quote = make_quote(people["sales"], "100")
    async with client_for(people["sales"]) as client:
        await client.post(f"/api/v1/approvals/quote/{quote.id}/submit")

    async with client_for(people["director"]) as client:
        response = await client.post(f"/api/v1/approvals/quote/{quote.id}/approve")

    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["code"] == "WRONG_APPROVER_ROLE"
    assert detail["expected_role"] == "manager"


@pytest.mark.asyncio
async def test_reject_and_return_to_draft(client_for, standard_routes, people, make_quote, sent_notifications):
    quote = make_quote(people["sales"], "100")
    base = f"/api/v1/approvals/quote/{quote.id}"
    async with client_for(people["sales"]) as client:
        await client.post(f"{base}/submit")

    async with client_for(people["manager"]) as client:
        response = await client.post(f"{base}/reject", json={"reason": "missing discount approval"})
    assert response.status_code == 200
    assert response.json()["completed"] is True
    sent_notifications["rejected"].delay.assert_called_once()

    async with client_for(people["sales"]) as client:
        response = await client.post(f"{base}/return-to-draft")
        detail = await client.get(base)
        again = await client.post(f"{base}/return-to-draft")
    assert response.status_code == 204
    assert detail.json()["status"] == "cancelled"
    assert detail.json()["steps"] == []
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_submit_without_route_is_422(client_for, people, make_quote):
    quote = make_quote(people["sales"], "100")
    async with client_for(people["sales"]) as client:
        response = await client.post(f"/api/v1/approvals/quote/{quote.id}/submit")
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "ROUTE_NOT_FOUND"


@pytest.mark.asyncio
async def test_unknown_document_is_404(client_for, standard_routes, people):
    async with client_for(people["sales"]) as client:
        submit = await client.post(f"/api/v1/approvals/purchase_order/{uuid.uuid4()}/submit")
        detail = await client.get(f"/api/v1/approvals/purchase_order/{uuid.uuid4()}")
    assert submit.status_code == 404
    assert submit.json()["detail"]["code"] == "DOCUMENT_NOT_FOUND"
    assert detail.status_code == 404


@pytest.mark.asyncio
async def test_unknown_document_type_is_rejected(client_for, people):
    async with client_for(people["sales"]) as client:
        response = await client.post(f"/api/v1/approvals/invoice/{uuid.uuid4()}/submit")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_inbox_total_counts_beyond_the_page(client_for, standard_routes, people, make_quote):
    quotes = [make_quote(people["sales"], "100") for _ in range(3)]
    async with client_for(people["sales"]) as client:
        for quote in quotes:
            await client.post(f"/api/v1/approvals/quote/{quote.id}/submit")

    async with client_for(people["manager"]) as client:
        response = await client.get("/api/v1/approvals/inbox", params={"limit": 2})
        last_page = await client.get("/api/v1/approvals/inbox", params={"limit": 2, "offset": 2})
    assert len(response.json()["items"]) == 2
    assert response.json()["total"] == 3
    assert len(last_page.json()["items"]) == 1
    assert last_page.json()["total"] == 3


# ─── Authentication ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_bearer_token_resolves_user(client_for, people):
    manager = people["manager"]
    token = create_access_token(str(manager.id), manager.role.value)
    async with client_for() as client:
        response = await client.get(
            "/api/v1/approvals/inbox", headers={"Authorization": f"Bearer {token}"}
        )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_missing_or_bad_token_is_401(client_for):
    async with client_for() as client:
        missing = await client.get("/api/v1/approvals/inbox")
        bad = await client.get("/api/v1/approvals/inbox", headers={"Authorization": "Bearer not-a-jwt"})
    assert missing.status_code == 401
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_token_for_inactive_user_is_401(client_for, make_user):
    ghost = make_user(UserRole.manager, is_active=False)
    token = create_access_token(str(ghost.id), ghost.role.value)
    async with client_for() as client:
        response = await client.get(
            "/api/v1/approvals/inbox", headers={"Authorization": f"Bearer {token}"}
        )
    assert response.status_code == 401


# ─── Route administration ─────────────────────────────────────────────────────

ROUTE_BODY = {
    "name": "Director sign-off",
    "target_entity": "purchase_order",
    "min_amount": "0",
    "max_amount": "250000",
    "steps": [
        {"step_order": 1, "approver_role": "manager"},
        {"step_order": 2, "approver_role": "director"},
    ],
}


@pytest.mark.asyncio
async def test_admin_route_crud(client_for, people):
    async with client_for(people["admin"]) as client:
        created = await client.post("/api/v1/approval-routes", json=ROUTE_BODY)
        route_id = created.json()["id"]
        updated = await client.put(
            f"/api/v1/approval-routes/{route_id}",
            json={"steps": [{"step_order": 1, "approver_role": "director"}]},
        )
        listed = await client.get("/api/v1/approval-routes", params={"target_entity": "purchase_order"})
        deleted = await client.delete(f"/api/v1/approval-routes/{route_id}")
        after = await client.get("/api/v1/approval-routes")

    assert created.status_code == 201
    assert created.json()["created_by"] == str(people["admin"].id)
    assert [s["approver_role"] for s in created.json()["steps"]] == ["manager", "director"]
    assert updated.status_code == 200
    assert [s["approver_role"] for s in updated.json()["steps"]] == ["director"]
    assert listed.json()["total"] == 1
    assert deleted.status_code == 204
    assert after.json()["total"] == 0


@pytest.mark.asyncio
async def test_overlapping_route_is_409(client_for, people):
    async with client_for(people["admin"]) as client:
        await client.post("/api/v1/approval-routes", json=ROUTE_BODY)
        response = await client.post(
            "/api/v1/approval-routes",
            json={**ROUTE_BODY, "name": "Overlap", "min_amount": "100000", "max_amount": None},
        )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ROUTE_OVERLAP"


@pytest.mark.asyncio
async def test_gapped_step_orders_are_422(client_for, people):
    body = {**ROUTE_BODY, "steps": [{"step_order": 1, "approver_role": "manager"}, {"step_order": 3, "approver_role": "director"}]}
    async with client_for(people["admin"]) as client:
        response = await client.post("/api/v1/approval-routes", json=body)
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "MISCONFIGURED_ROUTE"


@pytest.mark.asyncio
async def test_route_admin_requires_admin_role(client_for, people):
    async with client_for(people["manager"]) as client:
        response = await client.post("/api/v1/approval-routes", json=ROUTE_BODY)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_unknown_route_is_404(client_for, people):
    async with client_for(people["admin"]) as client:
        response = await client.put(f"/api/v1/approval-routes/{uuid.uuid4()}", json={"name": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["is_active", "name"])
async def test_null_for_required_route_field_is_422(client_for, people, field):
    async with client_for(people["admin"]) as client:
        created = await client.post("/api/v1/approval-routes", json=ROUTE_BODY)
        route_id = created.json()["id"]
        response = await client.put(f"/api/v1/approval-routes/{route_id}", json={field: None})
        listed = await client.get("/api/v1/approval-routes")
    assert response.status_code == 422
    assert listed.json()["items"][0]["name"] == ROUTE_BODY["name"]
    assert listed.json()["items"][0]["is_active"] is True
