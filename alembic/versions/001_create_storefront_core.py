"""Create storefront core schema

Revision ID: 001_storefront_core
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers
revision = '001_storefront_core'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create stores, products, customers, identity index, orders and returns"""

    # ====================
    # STORES TABLE
    # ====================
    op.create_table(
        'stores',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('default_currency', sa.String(3), server_default='PKR', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    # ====================
    # PRODUCTS TABLE
    # ====================
    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('store_id', UUID(as_uuid=True), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('stock_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('status', sa.String(20), server_default='ACTIVE', nullable=False, comment='ACTIVE, INACTIVE'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
    )
    op.create_index('ix_products_store_id', 'products', ['store_id'])
    op.create_index('ix_products_store_name', 'products', ['store_id', 'name'])

    # ====================
    # CUSTOMERS TABLE
    # ====================
    op.create_table(
        'customers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('store_id', UUID(as_uuid=True), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('alternative_names', JSONB, server_default='[]', nullable=False),
        sa.Column('alternative_emails', JSONB, server_default='[]', nullable=False),
        sa.Column('alternative_phones', JSONB, server_default='[]', nullable=False),
        sa.Column('alternative_addresses', JSONB, server_default='[]', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_customers_store_id', 'customers', ['store_id'])

    # ====================
    # CUSTOMER IDENTITY INDEX
    # ====================
    op.create_table(
        'customer_identities',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('store_id', UUID(as_uuid=True), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('channel', sa.String(20), nullable=False, comment='EMAIL, PHONE, ADDRESS'),
        sa.Column('value', sa.String(500), nullable=False),
        sa.Column('is_primary', sa.Boolean, server_default='false', nullable=False),
    )
    op.create_index('ix_customer_identities_customer_id', 'customer_identities', ['customer_id'])
    op.create_index('ix_customer_identities_lookup', 'customer_identities', ['store_id', 'channel', 'value'])

    # ====================
    # ORDERS TABLE
    # ====================
    op.create_table(
        'orders',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('order_number', sa.String(30), unique=True, nullable=False),
        sa.Column('store_id', UUID(as_uuid=True), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('quantity', sa.Integer, server_default='1', nullable=False),
        sa.Column('status', sa.String(50), server_default='PENDING', nullable=False,
                  comment='PENDING, ACCEPTED, SHIPPED, COMPLETED, CANCELLED, REFUNDED'),
        sa.Column('is_paid', sa.Boolean, server_default='false', nullable=False),
        sa.Column('total', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('timeline', JSONB, server_default='[]', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity_positive'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'])
    op.create_index('ix_orders_store_id', 'orders', ['store_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_product_id', 'orders', ['product_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    # ====================
    # RETURN REQUESTS TABLE
    # ====================
    op.create_table(
        'return_requests',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('rma_number', sa.String(50), unique=True, nullable=False,
                  comment='Return Merchandise Authorization number'),
        sa.Column('store_id', UUID(as_uuid=True), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reason', sa.Text, nullable=False),
        sa.Column('returned_quantity', sa.Integer, server_default='1', nullable=False),
        sa.Column('status', sa.String(50), server_default='SUBMITTED', nullable=False,
                  comment='SUBMITTED, APPROVED, REJECTED, REFUNDED'),
        sa.Column('refund_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('restocked', sa.Boolean, server_default='false', nullable=False),
        sa.Column('history', JSONB, server_default='[]', nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('returned_quantity > 0', name='ck_return_requests_quantity_positive'),
    )
    op.create_index('ix_return_requests_rma_number', 'return_requests', ['rma_number'])
    op.create_index('ix_return_requests_store_id', 'return_requests', ['store_id'])
    op.create_index('ix_return_requests_order_id', 'return_requests', ['order_id'])
    op.create_index('ix_return_requests_customer_id', 'return_requests', ['customer_id'])
    op.create_index('ix_return_requests_status', 'return_requests', ['status'])
    op.create_index('ix_return_requests_requested_at', 'return_requests', ['requested_at'])


def downgrade():
    """Drop storefront core tables"""
    op.drop_table('return_requests')
    op.drop_table('orders')
    op.drop_table('customer_identities')
    op.drop_table('customers')
    op.drop_table('products')
    op.drop_table('stores')
