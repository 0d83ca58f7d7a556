"""Faire external API v2 payload shapes (only the fields the sync engine maps)."""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class FaireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Money(FaireModel):
    amount_minor: int
    currency: str


class VariantPrice(FaireModel):
    geo_constraint: Optional[dict[str, Any]] = None
    wholesale_price: Money
    retail_price: Optional[Money] = None


class ProductImage(FaireModel):
    id: Optional[str] = None
    url: str


class VariantPayload(FaireModel):
    id: str
    product_id: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    gtin: Optional[str] = None
    sale_state: Optional[str] = None
    lifecycle_state: Optional[str] = None
    prices: List[VariantPrice] = []
    available_quantity: Optional[int] = None
    reserved_quantity: Optional[int] = None
    backordered_until: Optional[datetime] = None
    options: Optional[List[dict[str, Any]]] = None
    measurements: Optional[dict[str, Any]] = None


class ProductPayload(FaireModel):
    id: str
    brand_id: Optional[str] = None
    name: str
    short_description: Optional[str] = None
    description: Optional[str] = None
    unit_multiplier: Optional[int] = None
    minimum_order_quantity: Optional[int] = None
    sale_state: Optional[str] = None
    lifecycle_state: Optional[str] = None
    taxonomy_type: Optional[dict[str, Any]] = None
    made_in_country: Optional[str] = None
    preorderable: Optional[bool] = None
    preorder_details: Optional[dict[str, Any]] = None
    images: List[ProductImage] = []
    variants: List[dict[str, Any]] = []  # validated one by one

    @field_validator("images", "variants", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class OrderItemPayload(FaireModel):
    id: str
    order_id: Optional[str] = None
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    product_name: Optional[str] = None
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = 1
    price_cents: int = 0
    includes_tester: Optional[bool] = None
    tester_price_cents: Optional[int] = None


class ShipmentPayload(FaireModel):
    id: str
    order_id: Optional[str] = None
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    ship_date: Optional[datetime] = None
    expected_delivery_date: Optional[datetime] = None
    status: Optional[str] = None


class Retailer(FaireModel):
    id: Optional[str] = None
    brand_id: Optional[str] = None
    name: Optional[str] = None


class OrderPayload(FaireModel):
    id: str
    display_id: Optional[str] = None
    state: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    ship_after: Optional[datetime] = None
    payout_costs: Optional[dict[str, Any]] = None
    address: Optional[dict[str, Any]] = None
    retailer: Optional[Retailer] = None
    items: List[dict[str, Any]] = []
    shipments: List[dict[str, Any]] = []
    source: Optional[str] = None

    @field_validator("items", "shipments", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []
