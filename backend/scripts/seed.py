"""Seed script: creates dev users, sample quotes/purchase orders and the default routes.

Idempotent: checks for existing records before inserting.
Run: docker exec quoteflow-backend-1 python scripts/seed.py
"""
import asyncio
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from quoteflow.core.config import settings
from quoteflow.core.security import create_access_token
from quoteflow.core.seed import run_seed as seed_routes
from quoteflow.models.document import PurchaseOrder, Quote
from quoteflow.models.user import User, UserRole


# ─── Upsert helpers ───────────────────────────────────────────────────────────

async def _upsert_user(db: AsyncSession, email: str, name: str, role: UserRole) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user:
        print(f"  [skip] User {email}")
        return user
    user = User(email=email, display_name=name, role=role, is_active=True)
    db.add(user)
    await db.flush()
    print(f"  [new]  User {email} ({role.value})")
    return user


async def _upsert_quote(db: AsyncSession, number: str, owner: User, amount: str) -> None:
    result = await db.execute(select(Quote).where(Quote.quote_number == number))
    if result.scalars().first():
        print(f"  [skip] Quote {number}")
        return
    db.add(Quote(quote_number=number, created_by=owner.id, total_amount=Decimal(amount)))
    print(f"  [new]  Quote {number} ({amount})")


async def _upsert_purchase_order(db: AsyncSession, number: str, owner: User, amount: str) -> None:
    result = await db.execute(
        select(PurchaseOrder).where(PurchaseOrder.purchase_order_number == number)
    )
    if result.scalars().first():
        print(f"  [skip] PurchaseOrder {number}")
        return
    db.add(PurchaseOrder(purchase_order_number=number, created_by=owner.id, total_cost=Decimal(amount)))
    print(f"  [new]  PurchaseOrder {number} ({amount})")


# ─── Main ─────────────────────────────────────────────────────────────────────

async def seed():
    engine = create_async_engine(settings.DATABASE_URL)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async with SessionLocal() as db:
        print("── Users ──")
        users = [
            await _upsert_user(db, "admin@example.com", "Admin User", UserRole.admin),
            await _upsert_user(db, "sales@example.com", "Sam Sales", UserRole.sales),
            await _upsert_user(db, "backoffice@example.com", "Bo Office", UserRole.back_office),
            await _upsert_user(db, "manager@example.com", "Morgan Manager", UserRole.manager),
            await _upsert_user(db, "director@example.com", "Dana Director", UserRole.director),
        ]
        await db.commit()
        sales = users[1]

        print("\n── Documents ──")
        await _upsert_quote(db, "Q-2026-001", sales, "12500.00")
        await _upsert_quote(db, "Q-2026-002", sales, "750000.00")
        await _upsert_purchase_order(db, "PO-2026-001", sales, "48000.00")
        await db.commit()

    await engine.dispose()

    print("\n── Approval routes ──")
    seed_routes()

    print("\n✓ Seed complete. Dev access tokens:")
    for user in users:
        print(f"  {user.email:<24} {create_access_token(str(user.id), user.role.value)}")


if __name__ == "__main__":
    asyncio.run(seed())
