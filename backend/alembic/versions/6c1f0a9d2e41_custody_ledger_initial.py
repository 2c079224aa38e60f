"""custody_ledger_initial

Revision ID: 6c1f0a9d2e41
Revises:
Create Date: 2026-10-19 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '6c1f0a9d2e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    op.create_table(
        'tools',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('number', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.String(), nullable=True),
        sa.Column('current_owner', sa.String(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('number', 'tenant_id', name='_tools_number_tenant_uc'),
    )
    op.create_index('ix_tools_id', 'tools', ['id'])
    op.create_index('ix_tools_tenant_id', 'tools', ['tenant_id'])
    op.create_index('ix_tools_current_owner', 'tools', ['current_owner'])

    op.create_table(
        'transfer_batches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('to_user_id', sa.String(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('stored_at', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_transfer_batches_id', 'transfer_batches', ['id'])
    op.create_index('ix_transfer_batches_tenant_id', 'transfer_batches', ['tenant_id'])

    op.create_table(
        'custody_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('tool_id', sa.Integer(), sa.ForeignKey('tools.id', ondelete='CASCADE'), nullable=False),
        sa.Column('batch_id', sa.Integer(), sa.ForeignKey('transfer_batches.id', ondelete='SET NULL'), nullable=True),
        sa.Column('from_user_id', sa.String(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('to_user_id', sa.String(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('from_user_name', sa.String(), nullable=True),
        sa.Column('to_user_name', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('stored_at', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.CheckConstraint("stored_at IN ('on-truck', 'on-site', 'n/a')", name='ck_custody_events_stored_at'),
    )
    op.create_index('ix_custody_events_id', 'custody_events', ['id'])
    op.create_index('ix_custody_events_tenant_id', 'custody_events', ['tenant_id'])
    op.create_index('ix_custody_events_batch_id', 'custody_events', ['batch_id'])
    op.create_index('ix_custody_events_tool_latest', 'custody_events', ['tenant_id', 'tool_id', 'timestamp', 'id'])
    op.create_index('ix_custody_events_to_user', 'custody_events', ['tenant_id', 'to_user_id'])

    op.create_table(
        'checklist_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('tool_id', sa.Integer(), sa.ForeignKey('tools.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_name', sa.String(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_checklist_items_id', 'checklist_items', ['id'])
    op.create_index('ix_checklist_items_tenant_id', 'checklist_items', ['tenant_id'])
    op.create_index('ix_checklist_items_tool_id', 'checklist_items', ['tool_id'])

    op.create_table(
        'inspection_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('custody_event_id', sa.Integer(), sa.ForeignKey('custody_events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('checklist_item_id', sa.Integer(), sa.ForeignKey('checklist_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('damaged', 'needs-replacement')", name='ck_inspection_reports_status'),
    )
    op.create_index('ix_inspection_reports_id', 'inspection_reports', ['id'])
    op.create_index('ix_inspection_reports_tenant_id', 'inspection_reports', ['tenant_id'])
    op.create_index('ix_inspection_reports_custody_event_id', 'inspection_reports', ['custody_event_id'])
    op.create_index('ix_inspection_reports_checklist_item_id', 'inspection_reports', ['checklist_item_id'])

    op.create_table(
        'tool_groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('name', 'tenant_id', name='_tool_groups_name_tenant_uc'),
    )
    op.create_index('ix_tool_groups_id', 'tool_groups', ['id'])
    op.create_index('ix_tool_groups_tenant_id', 'tool_groups', ['tenant_id'])

    op.create_table(
        'tool_group_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('tool_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tool_id', sa.Integer(), sa.ForeignKey('tools.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('group_id', 'tool_id', name='_tool_group_members_uc'),
    )
    op.create_index('ix_tool_group_members_id', 'tool_group_members', ['id'])
    op.create_index('ix_tool_group_members_tenant_id', 'tool_group_members', ['tenant_id'])
    op.create_index('ix_tool_group_members_group_id', 'tool_group_members', ['group_id'])
    op.create_index('ix_tool_group_members_tool_id', 'tool_group_members', ['tool_id'])

    op.create_table(
        'location_aliases',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('alias', sa.String(), nullable=False),
        sa.Column('alias_key', sa.String(), nullable=False),
        sa.Column('normalized_location', sa.String(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('alias_key', 'tenant_id', name='_location_aliases_alias_tenant_uc'),
    )
    op.create_index('ix_location_aliases_id', 'location_aliases', ['id'])
    op.create_index('ix_location_aliases_tenant_id', 'location_aliases', ['tenant_id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_tenant_id', 'audit_log', ['tenant_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_log')
    op.drop_table('location_aliases')
    op.drop_table('tool_group_members')
    op.drop_table('tool_groups')
    op.drop_table('inspection_reports')
    op.drop_table('checklist_items')
    op.drop_table('custody_events')
    op.drop_table('transfer_batches')
    op.drop_table('tools')
    op.drop_table('users')
