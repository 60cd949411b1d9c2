"""create_store_tables

Revision ID: 5c1e2f7a9b30
Revises:
Create Date: 2026-10-19 09:12:31.482210

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e2f7a9b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'store_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('stock >= 0', name=op.f('ck_store_products_product_stock_non_negative')),
        sa.CheckConstraint('price >= 0', name=op.f('ck_store_products_product_price_non_negative')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_store_products')),
        sa.UniqueConstraint('slug', name=op.f('uq_store_products_slug')),
    )

    op.create_table(
        'store_product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('stock >= 0', name=op.f('ck_store_product_variants_variant_stock_non_negative')),
        sa.ForeignKeyConstraint(
            ['product_id'], ['store_products.id'],
            name=op.f('fk_store_product_variants_product_id_store_products'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_store_product_variants')),
        sa.UniqueConstraint('sku', name=op.f('uq_store_product_variants_sku')),
    )
    op.create_index(op.f('ix_store_product_variants_product_id'), 'store_product_variants', ['product_id'], unique=False)

    op.create_table(
        'store_coupons',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('kind', sa.Enum('percentage', 'fixed', name='store_coupon_kind_enum'), nullable=False),
        sa.Column('value', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('min_purchase', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('max_discount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=False),
        sa.Column('valid_to', sa.DateTime(timezone=True), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('valid_from <= valid_to', name=op.f('ck_store_coupons_coupon_valid_window')),
        sa.CheckConstraint('usage_count >= 0', name=op.f('ck_store_coupons_coupon_usage_non_negative')),
        sa.CheckConstraint(
            'usage_limit IS NULL OR usage_count <= usage_limit',
            name=op.f('ck_store_coupons_coupon_usage_within_limit'),
        ),
        sa.CheckConstraint('value >= 0', name=op.f('ck_store_coupons_coupon_value_non_negative')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_store_coupons')),
        sa.UniqueConstraint('code', name=op.f('uq_store_coupons_code')),
    )

    op.create_table(
        'store_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=20), nullable=False),
        sa.Column('customer_address', sa.Text(), nullable=False),
        sa.Column('payment_method', sa.Enum('cod', 'bkash', name='store_payment_method_enum'), server_default='cod', nullable=False),
        sa.Column('bkash_number', sa.String(length=20), nullable=True),
        sa.Column('bkash_trx_id', sa.String(length=64), nullable=True),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('discount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('coupon_code', sa.String(length=50), nullable=True),
        sa.Column(
            'order_status',
            sa.Enum('pending', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled', name='store_order_status_enum'),
            server_default='pending',
            nullable=False,
        ),
        sa.Column(
            'payment_status',
            sa.Enum('pending', 'paid', 'failed', name='store_payment_status_enum'),
            server_default='pending',
            nullable=False,
        ),
        sa.Column('idempotency_key', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('total = subtotal - discount', name=op.f('ck_store_orders_order_total_balanced')),
        sa.CheckConstraint('total >= 0', name=op.f('ck_store_orders_order_total_non_negative')),
        sa.CheckConstraint('discount >= 0', name=op.f('ck_store_orders_order_discount_non_negative')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_store_orders')),
        sa.UniqueConstraint('idempotency_key', name=op.f('uq_store_orders_idempotency_key')),
    )
    op.create_index(op.f('ix_store_orders_order_number'), 'store_orders', ['order_number'], unique=True)
    op.create_index(op.f('ix_store_orders_user_id'), 'store_orders', ['user_id'], unique=False)
    op.create_index(op.f('ix_store_orders_customer_phone'), 'store_orders', ['customer_phone'], unique=False)
    op.create_index(op.f('ix_store_orders_created_at'), 'store_orders', ['created_at'], unique=False)
    op.create_index('ix_store_orders_phone_created', 'store_orders', ['customer_phone', 'created_at'], unique=False)

    op.create_table(
        'store_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('variant_id', sa.Uuid(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('variant_name', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('line_total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name=op.f('ck_store_order_items_order_item_positive_quantity')),
        sa.ForeignKeyConstraint(
            ['order_id'], ['store_orders.id'],
            name=op.f('fk_store_order_items_order_id_store_orders'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_store_order_items')),
    )
    op.create_index(op.f('ix_store_order_items_order_id'), 'store_order_items', ['order_id'], unique=False)

    op.create_table(
        'store_audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('entity_type', sa.Enum('order', name='store_audit_entity_type_enum'), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('old_value', sa.JSON(), nullable=True),
        sa.Column('new_value', sa.JSON(), nullable=True),
        sa.Column('performed_by', sa.String(length=255), nullable=False),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_store_audit_logs')),
    )
    op.create_index('ix_store_audit_logs_entity', 'store_audit_logs', ['entity_type', 'entity_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_store_audit_logs_entity', table_name='store_audit_logs')
    op.drop_table('store_audit_logs')
    op.drop_index(op.f('ix_store_order_items_order_id'), table_name='store_order_items')
    op.drop_table('store_order_items')
    op.drop_index('ix_store_orders_phone_created', table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_created_at'), table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_customer_phone'), table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_user_id'), table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_order_number'), table_name='store_orders')
    op.drop_table('store_orders')
    op.drop_table('store_coupons')
    op.drop_index(op.f('ix_store_product_variants_product_id'), table_name='store_product_variants')
    op.drop_table('store_product_variants')
    op.drop_table('store_products')

    sa.Enum(name='store_audit_entity_type_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='store_payment_status_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='store_order_status_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='store_payment_method_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='store_coupon_kind_enum').drop(op.get_bind(), checkfirst=True)
