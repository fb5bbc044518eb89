"""Seed the default approval routes into the database."""
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from quoteflow.db.session import SyncSessionLocal
from quoteflow.models.approval_route import ApprovalRoute
from quoteflow.models.document import DocumentType
from quoteflow.models.user import UserRole
from quoteflow.services import routes as route_svc

logger = logging.getLogger(__name__)

# Default routes per document type: (name, min_amount, max_amount, approver roles in order)
DEFAULT_ROUTES = [
    ("Standard approval", Decimal("0"), Decimal("500000"), [UserRole.manager]),
    ("Large amount approval", Decimal("500001"), None, [UserRole.manager, UserRole.director]),
]


def seed_default_routes(db: Session) -> int:
    """Create the default routes for every document type that has no route yet.

    Returns the number of routes created.
    """
    created = 0
    for document_type in DocumentType:
        existing = db.execute(
            select(ApprovalRoute.id).where(ApprovalRoute.target_entity == document_type)
        ).first()
        if existing is not None:
            logger.info("Approval routes for %s already exist, skipping", document_type.value)
            continue

        for name, min_amount, max_amount, roles in DEFAULT_ROUTES:
            route_svc.create_route(
                db,
                name=f"{name} ({document_type.value})",
                target_entity=document_type,
                min_amount=min_amount,
                max_amount=max_amount,
                steps=[{"step_order": i, "approver_role": role} for i, role in enumerate(roles, start=1)],
            )
            created += 1
            logger.info("Seeded approval route: %s / %s", document_type.value, name)
    return created


def run_seed() -> None:
    with SyncSessionLocal() as db:
        seed_default_routes(db)
    logger.info("Seeding complete.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
