"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-12-10 09:00:00.000000

Creates the seven Shenv tables:

1. users                 accounts and subscription tier
2. platform_credentials  encrypted service-account keys (one per platform)
3. oauth_credentials     encrypted Drive / Gmail tokens (one per provider)
4. workspace_users       the workspace roster used for risk scoring
5. sheets                discovered spreadsheets with risk score and flags
6. permissions           permission snapshot per sheet
7. email_senders         Gmail sender aggregates
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _user_fk() -> sa.Column:
    return sa.Column(
        'user_id',
        sa.Integer(),
        sa.ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('tier', sa.String(length=50), nullable=False, server_default='individual_free'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'platform_credentials',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _user_fk(),
        sa.Column('platform', sa.String(length=50), nullable=False),
        sa.Column('credential_type', sa.String(length=50), nullable=False),
        # "ivHex:cipherHex" of the credential JSON
        sa.Column('credentials', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'platform', name='uq_platform_credentials_user_platform'),
    )
    op.create_index(
        op.f('ix_platform_credentials_user_id'), 'platform_credentials', ['user_id'], unique=False
    )

    op.create_table(
        'oauth_credentials',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _user_fk(),
        sa.Column('provider', sa.String(length=50), nullable=False),
        # Both tokens encrypted
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('scope', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'provider', name='uq_oauth_credentials_user_provider'),
    )
    op.create_index(
        op.f('ix_oauth_credentials_user_id'), 'oauth_credentials', ['user_id'], unique=False
    )
    op.create_index(
        op.f('ix_oauth_credentials_provider'), 'oauth_credentials', ['provider'], unique=False
    )

    op.create_table(
        'workspace_users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _user_fk(),
        sa.Column('platform', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'email', name='uq_workspace_users_user_email'),
    )
    op.create_index(
        op.f('ix_workspace_users_user_id'), 'workspace_users', ['user_id'], unique=False
    )

    op.create_table(
        'sheets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _user_fk(),
        sa.Column('external_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('owner_email', sa.String(length=255), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_modified_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('permission_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_orphaned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_inactive', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('risk_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'external_id', name='uq_sheets_user_external_id'),
        sa.CheckConstraint(
            'risk_score >= 0 AND risk_score <= 100', name='ck_sheets_risk_score_range'
        ),
    )
    op.create_index(op.f('ix_sheets_user_id'), 'sheets', ['user_id'], unique=False)

    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            'sheet_id',
            sa.Integer(),
            sa.ForeignKey('sheets.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('external_permission_id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('snapshot_date', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'sheet_id', 'external_permission_id', name='uq_permissions_sheet_external_id'
        ),
    )
    op.create_index(op.f('ix_permissions_sheet_id'), 'permissions', ['sheet_id'], unique=False)
    op.create_index(op.f('ix_permissions_email'), 'permissions', ['email'], unique=False)

    op.create_table(
        'email_senders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _user_fk(),
        sa.Column('sender_email', sa.String(length=255), nullable=False),
        sa.Column('sender_name', sa.String(length=255), nullable=True),
        sa.Column('email_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attachment_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('first_email_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_email_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unsubscribe_link', sa.Text(), nullable=True),
        sa.Column('has_unsubscribe', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_unsubscribed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('unsubscribed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'sender_email', name='uq_email_senders_user_sender'),
    )
    op.create_index(
        op.f('ix_email_senders_user_id'), 'email_senders', ['user_id'], unique=False
    )


def downgrade() -> None:
    """Drop all tables (children first)."""
    op.drop_index(op.f('ix_email_senders_user_id'), table_name='email_senders')
    op.drop_table('email_senders')

    op.drop_index(op.f('ix_permissions_email'), table_name='permissions')
    op.drop_index(op.f('ix_permissions_sheet_id'), table_name='permissions')
    op.drop_table('permissions')

    op.drop_index(op.f('ix_sheets_user_id'), table_name='sheets')
    op.drop_table('sheets')

    op.drop_index(op.f('ix_workspace_users_user_id'), table_name='workspace_users')
    op.drop_table('workspace_users')

    op.drop_index(op.f('ix_oauth_credentials_provider'), table_name='oauth_credentials')
    op.drop_index(op.f('ix_oauth_credentials_user_id'), table_name='oauth_credentials')
    op.drop_table('oauth_credentials')

    op.drop_index(op.f('ix_platform_credentials_user_id'), table_name='platform_credentials')
    op.drop_table('platform_credentials')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
