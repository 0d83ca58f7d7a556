"""create_faire_tables

Revision ID: 0001_create_faire_tables
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '0001_create_faire_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(synced: bool = True) -> list[sa.Column]:
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]
    if synced:
        cols.insert(0, sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True))
    return cols


def upgrade() -> None:
    op.create_table(
        'faire_stores',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('api_token', sa.Text(), nullable=True),
        sa.Column('app_credentials', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'faire_products',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('faire_product_id', sa.Text(), nullable=False),
        sa.Column('store_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_stores.id'), nullable=False),
        sa.Column('faire_brand_id', sa.Text(), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('short_description', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sale_state', sa.Text(), nullable=False),
        sa.Column('lifecycle_state', sa.Text(), nullable=False),
        sa.Column('unit_multiplier', sa.Integer(), nullable=False),
        sa.Column('minimum_order_quantity', sa.Integer(), nullable=False),
        sa.Column('taxonomy_type', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('made_in_country', sa.Text(), nullable=True),
        sa.Column('preorderable', sa.Boolean(), nullable=False),
        sa.Column('preorder_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('images', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('faire_product_id', 'store_id', name='uq_faire_products_faire_id_store'),
    )
    op.create_index('ix_faire_products_store_id', 'faire_products', ['store_id'])

    op.create_table(
        'faire_product_variants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('faire_variant_id', sa.Text(), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_products.id'), nullable=False),
        sa.Column('store_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_stores.id'), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('sku', sa.Text(), nullable=True),
        sa.Column('gtin', sa.Text(), nullable=True),
        sa.Column('sale_state', sa.Text(), nullable=False),
        sa.Column('lifecycle_state', sa.Text(), nullable=False),
        sa.Column('prices', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('available_quantity', sa.Integer(), nullable=False),
        sa.Column('reserved_quantity', sa.Integer(), nullable=False),
        sa.Column('backordered_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('options', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('measurements', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('faire_variant_id', 'product_id', name='uq_faire_variants_faire_id_product'),
    )
    op.create_index('ix_faire_product_variants_store_id', 'faire_product_variants', ['store_id'])

    op.create_table(
        'faire_orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('faire_order_id', sa.Text(), nullable=False),
        sa.Column('store_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_stores.id'), nullable=False),
        sa.Column('display_id', sa.Text(), nullable=True),
        sa.Column('state', sa.Text(), nullable=False),
        sa.Column('faire_created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('faire_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ship_after', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payout_costs', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('retailer_id', sa.Text(), nullable=True),
        sa.Column('retailer_name', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('faire_order_id', 'store_id', name='uq_faire_orders_faire_id_store'),
    )
    op.create_index('ix_faire_orders_store_id', 'faire_orders', ['store_id'])

    op.create_table(
        'faire_order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('faire_order_item_id', sa.Text(), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_orders.id'), nullable=False),
        sa.Column('store_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_stores.id'), nullable=False),
        sa.Column('faire_product_id', sa.Text(), nullable=True),
        sa.Column('faire_variant_id', sa.Text(), nullable=True),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_products.id'), nullable=True),
        sa.Column('variant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_product_variants.id'), nullable=True),
        sa.Column('product_name', sa.Text(), nullable=True),
        sa.Column('variant_name', sa.Text(), nullable=True),
        sa.Column('sku', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('includes_tester', sa.Boolean(), nullable=False),
        sa.Column('tester_price_cents', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('faire_order_item_id', 'order_id', name='uq_faire_order_items_faire_id_order'),
    )
    op.create_index('ix_faire_order_items_store_id', 'faire_order_items', ['store_id'])

    op.create_table(
        'faire_shipments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('faire_shipment_id', sa.Text(), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_orders.id'), nullable=False),
        sa.Column('store_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_stores.id'), nullable=False),
        sa.Column('carrier', sa.Text(), nullable=True),
        sa.Column('tracking_number', sa.Text(), nullable=True),
        sa.Column('tracking_url', sa.Text(), nullable=True),
        sa.Column('ship_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expected_delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('faire_shipment_id', 'order_id', name='uq_faire_shipments_faire_id_order'),
    )
    op.create_index('ix_faire_shipments_store_id', 'faire_shipments', ['store_id'])

    op.create_table(
        'faire_sync_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('store_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('faire_stores.id'), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_records', sa.Integer(), nullable=True),
        sa.Column('processed_records', sa.Integer(), nullable=True),
        sa.Column('failed_records', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('error_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_faire_sync_logs_store_id', 'faire_sync_logs', ['store_id'])


def downgrade() -> None:
    op.drop_index('ix_faire_sync_logs_store_id', table_name='faire_sync_logs')
    op.drop_table('faire_sync_logs')
    op.drop_index('ix_faire_shipments_store_id', table_name='faire_shipments')
    op.drop_table('faire_shipments')
    op.drop_index('ix_faire_order_items_store_id', table_name='faire_order_items')
    op.drop_table('faire_order_items')
    op.drop_index('ix_faire_orders_store_id', table_name='faire_orders')
    op.drop_table('faire_orders')
    op.drop_index('ix_faire_product_variants_store_id', table_name='faire_product_variants')
    op.drop_table('faire_product_variants')
    op.drop_index('ix_faire_products_store_id', table_name='faire_products')
    op.drop_table('faire_products')
    op.drop_table('faire_stores')
