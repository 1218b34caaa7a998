"""initial schema

Revision ID: at0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the asset tracker schema:
- plants: sites that receive, dispatch and maintain assets
- users / session_tokens: operator and admin accounts, hashed bearer tokens
- assets: asset ledger with duty cycle and the stored current_location
- scan_sessions: document-bound batches of scans
- scans: immutable movement records (audit trail)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'at0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # plants
    # ============================================================================
    op.create_table(
        'plants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('address', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_plants_code', 'plants', ['code'], unique=True)

    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='operator'),
        sa.Column('plant_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('force_password_change', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_plant_id', 'users', ['plant_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # assets: current_location is written with every accepted scan
    # ============================================================================
    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('asset_code', sa.String(length=64), nullable=False),
        sa.Column('asset_type', sa.String(length=64), nullable=False),
        sa.Column('customer', sa.String(length=120), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('pm_cycle', sa.Integer(), nullable=True),  # NULL = not PM tracked
        sa.Column('duty_cycle', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_ok_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_location', sa.String(length=16), nullable=False, server_default='NO_MOVEMENT'),
        sa.Column('last_moved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='AVAILABLE'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_assets_asset_code', 'assets', ['asset_code'], unique=True)
    op.create_index('ix_assets_asset_type', 'assets', ['asset_type'])
    op.create_index('ix_assets_plant_id', 'assets', ['plant_id'])
    op.create_index('ix_assets_current_location', 'assets', ['current_location'])
    op.create_index('ix_assets_plant_active', 'assets', ['plant_id', 'is_active'])

    # ============================================================================
    # scan_sessions: document_key is NULL for MAINT/OK so only IN/OUT documents are unique
    # ============================================================================
    op.create_table(
        'scan_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=False),
        sa.Column('mode', sa.String(length=8), nullable=False),
        sa.Column('document_no', sa.String(length=64), nullable=True),
        sa.Column('document_key', sa.String(length=64), nullable=True),
        sa.Column('target_qty', sa.Integer(), nullable=True),
        sa.Column('scanned_qty', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('ship_to_address', sa.Text(), nullable=True),
        sa.Column('transporter', sa.String(length=120), nullable=True),
        sa.Column('transport_mode', sa.String(length=64), nullable=True),
        sa.Column('vehicle_no', sa.String(length=64), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plant_id', 'document_key', name='uq_scan_sessions_plant_document'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_scan_sessions_plant_id', 'scan_sessions', ['plant_id'])
    op.create_index('ix_scan_sessions_mode', 'scan_sessions', ['mode'])
    op.create_index('ix_scan_sessions_status', 'scan_sessions', ['status'])
    op.create_index('ix_scan_sessions_plant_status', 'scan_sessions', ['plant_id', 'status'])
    op.create_index('ix_scan_sessions_document_no', 'scan_sessions', ['document_no'])

    # ============================================================================
    # scans: append-only movement records
    # ============================================================================
    op.create_table(
        'scans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=False),
        sa.Column('mode', sa.String(length=8), nullable=False),
        sa.Column('actor', sa.String(length=64), nullable=False),
        sa.Column('movement_time', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['scan_sessions.id'], ),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id'], ),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'asset_id', name='uq_scans_session_asset'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_scans_session_id', 'scans', ['session_id'])
    op.create_index('ix_scans_asset_id', 'scans', ['asset_id'])
    op.create_index('ix_scans_asset_plant_time', 'scans', ['asset_id', 'plant_id', 'movement_time'])
    op.create_index('ix_scans_plant_time', 'scans', ['plant_id', 'movement_time'])


def downgrade():
    op.drop_table('scans')
    op.drop_table('scan_sessions')
    op.drop_table('assets')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('plants')
