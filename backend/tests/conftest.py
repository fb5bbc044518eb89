"""Shared fixtures: a throwaway SQLite database file per test.

Engine tests need real row counts from UPDATE ... WHERE status = :expected,
so they run against an actual database instead of mocked sessions. The same
file is opened through a sync engine (approval services) and an aiosqlite
engine (async read endpoints).
"""
import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker

import quoteflow.models  # noqa: F401
from quoteflow.db.base import Base
from quoteflow.models.document import DocumentApprovalStatus, PurchaseOrder, Quote
from quoteflow.models.user import User, UserRole
from quoteflow.services import routes as route_svc
from quoteflow.workers import notification_tasks


# ─── Database ─────────────────────────────────────────────────────────────────

@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "approvals.db"


@pytest.fixture
def sync_engine(db_path):
    # FastAPI runs sync dependencies and endpoints on different threadpool threads.
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine):
    return sessionmaker(bind=sync_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest_asyncio.fixture
async def async_session_factory(sync_engine, db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    await engine.dispose()


# ─── Notifications ────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch):
    """Replace the Celery tasks so nothing tries to reach a broker.

    Returns the mocks; ``.delay.call_args_list`` shows what would have been queued.
    """
    rejection = MagicMock(name="send_rejection_notice")
    approval = MagicMock(name="send_approval_notice")
    monkeypatch.setattr(notification_tasks, "send_rejection_notice", rejection)
    monkeypatch.setattr(notification_tasks, "send_approval_notice", approval)
    return {"rejected": rejection, "approved": approval}


# ─── Factories ────────────────────────────────────────────────────────────────

@pytest.fixture
def make_user(db):
    def _make(role: UserRole, name: str | None = None, is_active: bool = True) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"{uuid.uuid4().hex[:8]}@example.com",
            display_name=name or f"{role.value.title()} User",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_quote(db):
    def _make(owner: User, amount: str, status: DocumentApprovalStatus = DocumentApprovalStatus.draft) -> Quote:
        quote = Quote(
            id=uuid.uuid4(),
            quote_number=f"Q-{uuid.uuid4().hex[:8]}",
            created_by=owner.id,
            total_amount=Decimal(amount),
            approval_status=status,
        )
        db.add(quote)
        db.commit()
        return quote
    return _make


@pytest.fixture
def make_purchase_order(db):
    def _make(owner: User, amount: str) -> PurchaseOrder:
        po = PurchaseOrder(
            id=uuid.uuid4(),
            purchase_order_number=f"PO-{uuid.uuid4().hex[:8]}",
            created_by=owner.id,
            total_cost=Decimal(amount),
        )
        db.add(po)
        db.commit()
        return po
    return _make


@pytest.fixture
def standard_routes(db):
    """R1: any role, 0-500000, Manager. R2: any role, 500001+, Manager then Director.

    Created for both quotes and purchase orders.
    """
    created = {}
    for target in ("quote", "purchase_order"):
        created[(target, "R1")] = route_svc.create_route(
            db,
            name="R1",
            target_entity=target,
            min_amount=Decimal("0"),
            max_amount=Decimal("500000"),
            steps=[{"step_order": 1, "approver_role": UserRole.manager}],
        )
        created[(target, "R2")] = route_svc.create_route(
            db,
            name="R2",
            target_entity=target,
            min_amount=Decimal("500001"),
            steps=[
                {"step_order": 1, "approver_role": UserRole.manager},
                {"step_order": 2, "approver_role": UserRole.director},
            ],
        )
    return created


@pytest.fixture
def people(make_user):
    """One user per role used across the approval scenarios."""
    return {
        "sales": make_user(UserRole.sales, "Sam Sales"),
        "sales_other": make_user(UserRole.sales, "Sasha Sales"),
        "back_office": make_user(UserRole.back_office, "Bo Office"),
        "manager": make_user(UserRole.manager, "Morgan Manager"),
        "manager_2": make_user(UserRole.manager, "Max Manager"),
        "director": make_user(UserRole.director, "Dana Director"),
        "admin": make_user(UserRole.admin, "Ada Admin"),
    }
