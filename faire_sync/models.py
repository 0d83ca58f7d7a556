from datetime import datetime
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class FaireBase(DeclarativeBase):
    pass


# --------------------------------------------------------------------------
# Store accounts (tenants)
# --------------------------------------------------------------------------

class FaireStore(FaireBase):
    __tablename__ = "faire_stores"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    api_token: Mapped[str | None] = mapped_column(Text, nullable=True)  # X-FAIRE-OAUTH-ACCESS-TOKEN
    app_credentials: Mapped[str | None] = mapped_column(Text, nullable=True)  # X-FAIRE-APP-CREDENTIALS
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# --------------------------------------------------------------------------
# Catalog
# --------------------------------------------------------------------------

class FaireProduct(FaireBase):
    __tablename__ = "faire_products"
    __table_args__ = (
        UniqueConstraint("faire_product_id", "store_id", name="uq_faire_products_faire_id_store"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    faire_product_id: Mapped[str] = mapped_column(Text, nullable=False)
    store_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_stores.id"), nullable=False, index=True)
    faire_brand_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    sale_state: Mapped[str] = mapped_column(Text, nullable=False, default="FOR_SALE")
    lifecycle_state: Mapped[str] = mapped_column(Text, nullable=False, default="PUBLISHED")

    unit_multiplier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    minimum_order_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    taxonomy_type: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    made_in_country: Mapped[str | None] = mapped_column(Text, nullable=True)
    preorderable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    preorder_details: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    images: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variants: Mapped[list["FaireProductVariant"]] = relationship(back_populates="product")


class FaireProductVariant(FaireBase):
    __tablename__ = "faire_product_variants"
    __table_args__ = (
        UniqueConstraint("faire_variant_id", "product_id", name="uq_faire_variants_faire_id_product"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    faire_variant_id: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_products.id"), nullable=False)
    store_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_stores.id"), nullable=False, index=True)

    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    sku: Mapped[str | None] = mapped_column(Text, nullable=True)
    gtin: Mapped[str | None] = mapped_column(Text, nullable=True)

    sale_state: Mapped[str] = mapped_column(Text, nullable=False, default="FOR_SALE")
    lifecycle_state: Mapped[str] = mapped_column(Text, nullable=False, default="PUBLISHED")

    # [{"geo_constraint": {...}, "wholesale_price": {"amount_minor", "currency"}, "retail_price": {...}}]
    prices: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    backordered_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    options: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    measurements: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product: Mapped[FaireProduct] = relationship(back_populates="variants")


# --------------------------------------------------------------------------
# Orders
# --------------------------------------------------------------------------

class FaireOrder(FaireBase):
    __tablename__ = "faire_orders"
    __table_args__ = (
        UniqueConstraint("faire_order_id", "store_id", name="uq_faire_orders_faire_id_store"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    faire_order_id: Mapped[str] = mapped_column(Text, nullable=False)
    store_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_stores.id"), nullable=False, index=True)
    display_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    state: Mapped[str] = mapped_column(Text, nullable=False, default="NEW")

    # Upstream timestamps, not local sync time
    faire_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    faire_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ship_after: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payout_costs: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    address: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    retailer_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    retailer_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items: Mapped[list["FaireOrderItem"]] = relationship(back_populates="order")
    shipments: Mapped[list["FaireShipment"]] = relationship(back_populates="order")


class FaireOrderItem(FaireBase):
    __tablename__ = "faire_order_items"
    __table_args__ = (
        UniqueConstraint("faire_order_item_id", "order_id", name="uq_faire_order_items_faire_id_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    faire_order_item_id: Mapped[str] = mapped_column(Text, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_orders.id"), nullable=False)
    store_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_stores.id"), nullable=False, index=True)

    # Upstream references, always present
    faire_product_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    faire_variant_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Resolved local references, filled in by the linkage pass
    product_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_products.id"), nullable=True)
    variant_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_product_variants.id"), nullable=True)

    product_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    variant_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    sku: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    includes_tester: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tester_price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order: Mapped[FaireOrder] = relationship(back_populates="items")


class FaireShipment(FaireBase):
    __tablename__ = "faire_shipments"
    __table_args__ = (
        UniqueConstraint("faire_shipment_id", "order_id", name="uq_faire_shipments_faire_id_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    faire_shipment_id: Mapped[str] = mapped_column(Text, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_orders.id"), nullable=False)
    store_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_stores.id"), nullable=False, index=True)

    carrier: Mapped[str | None] = mapped_column(Text, nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    tracking_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    ship_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expected_delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order: Mapped[FaireOrder] = relationship(back_populates="shipments")


# --------------------------------------------------------------------------
# Audit trail
# --------------------------------------------------------------------------

class FaireSyncLog(FaireBase):
    __tablename__ = "faire_sync_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("faire_stores.id"), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False)  # full_sync, products, orders
    status: Mapped[str] = mapped_column(Text, nullable=False)  # completed, failed

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    total_records: Mapped[int] = mapped_column(Integer, default=0)
    processed_records: Mapped[int] = mapped_column(Integer, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, default=0)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_details: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    meta: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
