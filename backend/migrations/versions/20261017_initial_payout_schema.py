"""Initial payout console schema

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17

Creates:
1. users / session_tokens (console accounts, bearer sessions)
2. brands (partners with commission rate in basis points)
3. inventory_items (SKUs with QR token and commission snapshot)
4. sale_records (one row per sold line, PENDING -> SETTLED)
5. ledger_clock (commit-ordered tick for change polling)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. USERS AND SESSIONS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=120), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)

    # ==========================================================================
    # 2. BRANDS
    # ==========================================================================
    op.create_table('brands',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('partnership_type', sa.String(length=16), nullable=False, server_default='NON_EXCLUSIVE'),
        sa.Column('commission_rate_bps', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('brands', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_brands_name'), ['name'], unique=True)

    # ==========================================================================
    # 3. INVENTORY ITEMS
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('qr_token', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('brand_name', sa.String(length=120), nullable=False),
        sa.Column('size', sa.String(length=32), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('stock_count', sa.Integer(), nullable=True),
        sa.Column('commission_rate_bps', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('store_label', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_items_qr_token'), ['qr_token'], unique=True)
        batch_op.create_index(batch_op.f('ix_inventory_items_brand_id'), ['brand_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_items_status'), ['status'], unique=False)
        batch_op.create_index('ix_inventory_items_brand_status', ['brand_id', 'status'], unique=False)

    # ==========================================================================
    # 4. SALE RECORDS
    # ==========================================================================
    op.create_table('sale_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('submission_ref', sa.String(length=32), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('size_label', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('commission_rate_bps', sa.Integer(), nullable=False),
        sa.Column('gross_cents', sa.Integer(), nullable=False),
        sa.Column('commission_cents', sa.Integer(), nullable=False),
        sa.Column('payout_cents', sa.Integer(), nullable=False),
        sa.Column('payout_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('customer_address', sa.String(length=255), nullable=True),
        sa.Column('store_label', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('change_seq', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('settled_by_user_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['settled_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_records', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_records_submission_ref'), ['submission_ref'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_records_item_id'), ['item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_records_store_label'), ['store_label'], unique=False)
        batch_op.create_index('ix_sale_records_brand_status', ['brand_id', 'payout_status'], unique=False)
        batch_op.create_index('ix_sale_records_created', ['created_at'], unique=False)
        batch_op.create_index('ix_sale_records_updated', ['updated_at'], unique=False)
        batch_op.create_index('ix_sale_records_change_seq', ['change_seq'], unique=False)

    # Single-row commit-order counter for polling
    ledger_clock = op.create_table('ledger_clock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    op.bulk_insert(ledger_clock, [{'id': 1, 'seq': 0}])


def downgrade():
    op.drop_table('ledger_clock')
    op.drop_table('sale_records')
    op.drop_table('inventory_items')
    op.drop_table('brands')
    op.drop_table('session_tokens')
    op.drop_table('users')
