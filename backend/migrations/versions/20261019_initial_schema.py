"""Initial schema: businesses, users, sessions, products, customers, invoices, sales, activity

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. businesses + sequences (tenant root and the bid counter)
2. users + session_tokens (auth, capability context captured per session)
3. products (stock on hand, low-stock flag, optimistic version column)
4. customers (email unique per business)
5. invoices + invoice_items + sales (1:1 sale per invoice)
6. activity_logs (append-only audit trail)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, nullable: bool = False):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=nullable)


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('businesses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bid', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id', name='pk_businesses'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_businesses_bid', 'businesses', ['bid'], unique=True)
    op.create_index('ix_businesses_name', 'businesses', ['name'], unique=False)

    op.create_table('sequences',
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('name', name='pk_sequences'),
    )

    # ==========================================================================
    # 2. AUTH
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], name='fk_users_business_id_businesses'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_business_id', 'users', ['business_id'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id_users'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], name='fk_session_tokens_business_id_businesses'),
        sa.PrimaryKeyConstraint('id', name='pk_session_tokens'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'], unique=False)
    op.create_index('ix_session_tokens_business_id', 'session_tokens', ['business_id'], unique=False)
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'], unique=False)
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'], unique=False)
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'], unique=False)

    # ==========================================================================
    # 3. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('low_stock_amount', sa.Integer(), nullable=False),
        sa.Column('low_stock_alert', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], name='fk_products_business_id_businesses'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('business_id', 'sku', name='uq_products_business_sku'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_business_id', 'products', ['business_id'], unique=False)
    op.create_index('ix_products_business_name', 'products', ['business_id', 'name'], unique=False)
    op.create_index('ix_products_business_low_stock', 'products', ['business_id', 'low_stock_alert'], unique=False)

    # ==========================================================================
    # 4. CUSTOMERS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], name='fk_customers_business_id_businesses'),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
        sa.UniqueConstraint('business_id', 'email', name='uq_customers_business_email'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customers_business_id', 'customers', ['business_id'], unique=False)
    op.create_index('ix_customers_business_name', 'customers', ['business_id', 'name'], unique=False)

    # ==========================================================================
    # 5. INVOICES / SALES
    # ==========================================================================
    op.create_table('invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], name='fk_invoices_business_id_businesses'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_invoices_customer_id_customers'),
        sa.PrimaryKeyConstraint('id', name='pk_invoices'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_invoices_business_id', 'invoices', ['business_id'], unique=False)
    op.create_index('ix_invoices_customer_id', 'invoices', ['customer_id'], unique=False)
    op.create_index('ix_invoices_status', 'invoices', ['status'], unique=False)
    op.create_index('ix_invoices_business_created', 'invoices', ['business_id', 'created_at'], unique=False)
    op.create_index('ix_invoices_business_status', 'invoices', ['business_id', 'status'], unique=False)

    op.create_table('invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_invoice_items_quantity_positive'),
        sa.CheckConstraint('price_cents >= 0', name='ck_invoice_items_price_non_negative'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], name='fk_invoice_items_invoice_id_invoices'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_invoice_items_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_invoice_items'),
        sa.UniqueConstraint('invoice_id', 'position', name='uq_invoice_items_invoice_position'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'], unique=False)
    op.create_index('ix_invoice_items_product_id', 'invoice_items', ['product_id'], unique=False)

    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], name='fk_sales_invoice_id_invoices'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_sales_customer_id_customers'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], name='fk_sales_business_id_businesses'),
        sa.PrimaryKeyConstraint('id', name='pk_sales'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sales_invoice_id', 'sales', ['invoice_id'], unique=True)
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'], unique=False)
    op.create_index('ix_sales_business_id', 'sales', ['business_id'], unique=False)
    op.create_index('ix_sales_business_created', 'sales', ['business_id', 'created_at'], unique=False)

    # ==========================================================================
    # 6. ACTIVITY LOG
    # ==========================================================================
    op.create_table('activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('business_id', sa.Integer(), nullable=True),
        sa.Column('entity_name', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        _timestamp('occurred_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_activity_logs_user_id_users', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_activity_logs'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_activity_logs_user_id', 'activity_logs', ['user_id'], unique=False)
    op.create_index('ix_activity_logs_business_id', 'activity_logs', ['business_id'], unique=False)
    op.create_index('ix_activity_logs_action', 'activity_logs', ['action'], unique=False)
    op.create_index('ix_activity_logs_occurred_at', 'activity_logs', ['occurred_at'], unique=False)
    op.create_index('ix_activity_logs_user_occurred', 'activity_logs', ['user_id', 'occurred_at'], unique=False)
    op.create_index('ix_activity_logs_entity', 'activity_logs', ['entity_name', 'entity_id'], unique=False)


def downgrade():
    op.drop_table('activity_logs')
    op.drop_table('sales')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('customers')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('sequences')
    op.drop_table('businesses')
