from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from faire_sync.errors import Err, RecordError
from faire_sync.models import FaireOrder, FaireOrderItem, FaireShipment
from faire_sync.normalization import normalize_order_state
from faire_sync.schemas.faire import OrderItemPayload, OrderPayload, ShipmentPayload
from faire_sync.services.reconciler import reconcile
from faire_sync.sync.base import StoreSyncPhase, parse_record

logger = logging.getLogger(__name__)


@dataclass
class OrderSyncResult:
    orders: int = 0
    items: int = 0
    shipments: int = 0
    fetched: int = 0
    errors: list[RecordError] = field(default_factory=list)


def order_fields(order: OrderPayload) -> dict:
    retailer = order.retailer
    return {
        "display_id": order.display_id,
        "state": normalize_order_state(order.state).value,
        "faire_created_at": order.created_at,
        "faire_updated_at": order.updated_at,
        "ship_after": order.ship_after,
        "payout_costs": order.payout_costs,
        "address": order.address,
        "retailer_id": retailer.id if retailer else None,
        "retailer_name": retailer.name if retailer else None,
        "source": order.source,
    }


def item_fields(item: OrderItemPayload, store_id: uuid.UUID) -> dict:
    # product_id/variant_id are left alone here; the linkage pass owns them
    return {
        "store_id": store_id,
        "faire_product_id": item.product_id,
        "faire_variant_id": item.variant_id,
        "product_name": item.product_name,
        "variant_name": item.variant_name,
        "sku": item.sku,
        "quantity": item.quantity,
        "price_cents": item.price_cents,
        "includes_tester": bool(item.includes_tester),
        "tester_price_cents": item.tester_price_cents,
    }


def shipment_fields(shipment: ShipmentPayload, store_id: uuid.UUID) -> dict:
    return {
        "store_id": store_id,
        "carrier": shipment.carrier,
        "tracking_number": shipment.tracking_number,
        "tracking_url": shipment.tracking_url,
        "ship_date": shipment.ship_date,
        "expected_delivery_date": shipment.expected_delivery_date,
        "status": shipment.status,
    }


class OrderSync(StoreSyncPhase):
    """
    Drains every order page for one store and reconciles orders, line items
    and shipments.

    Line items keep the upstream product/variant ids only; they are resolved
    against the local catalog later by the linkage pass, so orders may be
    synced before the products they reference.
    """

    entity_type = "orders"
    result_type = OrderSyncResult

    def run(self) -> OrderSyncResult:
        logger.info(f"[SYNC:FAIRE] Syncing orders for '{self.store.name}'")
        raw_orders = self.drain()
        result = self.result
        result.fetched = len(raw_orders)
        synced_at = self.clock()

        for raw in raw_orders:
            self.deadline.check("next order")
            self._sync_order(raw, result, synced_at)
            self.record_done()
        self.flush_batch()

        logger.info(
            f"[SYNC:FAIRE] '{self.store.name}' orders: {result.orders}, items: {result.items}, "
            f"shipments: {result.shipments}, errors: {len(result.errors)}"
        )
        return result

    def _sync_order(self, raw: dict, result: OrderSyncResult, synced_at: datetime) -> None:
        parsed = parse_record(OrderPayload, raw, "order")
        if isinstance(parsed, Err):
            result.errors.append(parsed.error)
            return
        order = parsed.value

        outcome = reconcile(
            self.session,
            FaireOrder,
            {"faire_order_id": order.id, "store_id": self.store.id},
            order_fields(order),
            synced_at,
            entity_type="order",
        )
        if isinstance(outcome, Err):
            result.errors.append(outcome.error)
            return
        result.orders += 1
        order_id = outcome.value

        for raw_item in order.items:
            parsed_item = parse_record(OrderItemPayload, raw_item, "order_item")
            if isinstance(parsed_item, Err):
                result.errors.append(parsed_item.error)
                continue
            item = parsed_item.value
            item_outcome = reconcile(
                self.session,
                FaireOrderItem,
                {"faire_order_item_id": item.id, "order_id": order_id},
                item_fields(item, self.store.id),
                synced_at,
                entity_type="order_item",
            )
            if isinstance(item_outcome, Err):
                result.errors.append(item_outcome.error)
                continue
            result.items += 1

        for raw_shipment in order.shipments:
            parsed_shipment = parse_record(ShipmentPayload, raw_shipment, "shipment")
            if isinstance(parsed_shipment, Err):
                result.errors.append(parsed_shipment.error)
                continue
            shipment = parsed_shipment.value
            shipment_outcome = reconcile(
                self.session,
                FaireShipment,
                {"faire_shipment_id": shipment.id, "order_id": order_id},
                shipment_fields(shipment, self.store.id),
                synced_at,
                entity_type="shipment",
            )
            if isinstance(shipment_outcome, Err):
                result.errors.append(shipment_outcome.error)
                continue
            result.shipments += 1
