"""create_approval_tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 09:12:40.118204

Collaborator projections (users, quotes, purchase_orders, audit_logs) plus
the approval route and approval instance tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _approval_columns() -> list[sa.Column]:
    return [
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('approval_status', sa.String(50), server_default='draft', nullable=False),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        _id_column(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    for table, number_col, amount_col in (
        ('quotes', 'quote_number', 'total_amount'),
        ('purchase_orders', 'purchase_order_number', 'total_cost'),
    ):
        op.create_table(
            table,
            _id_column(),
            sa.Column(number_col, sa.String(50), nullable=False),
            sa.Column(amount_col, sa.Numeric(18, 2), server_default='0', nullable=False),
            *_approval_columns(),
            *_timestamps(),
            sa.ForeignKeyConstraint(['created_by'], ['users.id']),
            sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint(number_col),
        )
        op.create_index(f'ix_{table}_created_by', table, ['created_by'])
        op.create_index(f'ix_{table}_approval_status', table, ['approval_status'])

    op.create_table(
        'approval_routes',
        _id_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target_entity', sa.String(50), nullable=False),
        sa.Column('requester_role', sa.String(50), nullable=True),
        sa.Column('min_amount', sa.Numeric(18, 2), nullable=True),
        sa.Column('max_amount', sa.Numeric(18, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_approval_routes_target_entity', 'approval_routes', ['target_entity'])

    op.create_table(
        'approval_route_steps',
        _id_column(),
        sa.Column('route_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('approver_role', sa.String(50), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['route_id'], ['approval_routes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('route_id', 'step_order', name='uq_route_step_order'),
    )
    op.create_index('ix_approval_route_steps_route_id', 'approval_route_steps', ['route_id'])

    op.create_table(
        'approval_instances',
        _id_column(),
        sa.Column('document_type', sa.String(50), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('route_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(50), server_default='pending', nullable=False),
        sa.Column('current_step', sa.Integer(), nullable=True),
        sa.Column('requested_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['route_id'], ['approval_routes.id']),
        sa.ForeignKeyConstraint(['requested_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'document_id', name='uq_approval_instance_document'),
    )
    op.create_index('ix_approval_instances_document_id', 'approval_instances', ['document_id'])
    op.create_index('ix_approval_instances_status', 'approval_instances', ['status'])

    op.create_table(
        'approval_instance_steps',
        _id_column(),
        sa.Column('instance_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('approver_role', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), server_default='pending', nullable=False),
        sa.Column('approver_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['instance_id'], ['approval_instances.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approver_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('instance_id', 'step_order', name='uq_instance_step_order'),
    )
    op.create_index('ix_approval_instance_steps_instance_id', 'approval_instance_steps', ['instance_id'])
    op.create_index('ix_approval_instance_steps_approver_role', 'approval_instance_steps', ['approver_role'])

    op.create_table(
        'audit_logs',
        _id_column(),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(100), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('before_state', sa.Text(), nullable=True),
        sa.Column('after_state', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('approval_instance_steps')
    op.drop_table('approval_instances')
    op.drop_table('approval_route_steps')
    op.drop_table('approval_routes')
    op.drop_table('purchase_orders')
    op.drop_table('quotes')
    op.drop_table('users')
