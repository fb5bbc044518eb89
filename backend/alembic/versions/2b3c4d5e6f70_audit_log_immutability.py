"""audit_log_immutability

Revision ID: 2b3c4d5e6f70
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-18 09:30:05.000000

Enforce append-only semantics on audit_logs at the DB level:
- Revoke UPDATE and DELETE from PUBLIC
- Grant SELECT and INSERT only

Cancelled approval runs lose their instance steps; the audit trail is the
only surviving record of who decided what, so it must not be editable.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '2b3c4d5e6f70'
down_revision: Union[str, None] = '1a2b3c4d5e6f'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("REVOKE UPDATE, DELETE ON audit_logs FROM PUBLIC;")
    op.execute("GRANT SELECT, INSERT ON audit_logs TO PUBLIC;")


def downgrade() -> None:
    # Restore full DML access (disaster recovery only)
    op.execute("GRANT UPDATE, DELETE ON audit_logs TO PUBLIC;")
