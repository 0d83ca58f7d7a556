from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from faire_sync.errors import Err, RecordError
from faire_sync.models import FaireProduct, FaireProductVariant
from faire_sync.normalization import normalize_lifecycle_state, normalize_sale_state
from faire_sync.schemas.faire import ProductPayload, VariantPayload
from faire_sync.services.reconciler import reconcile
from faire_sync.sync.base import StoreSyncPhase, parse_record

logger = logging.getLogger(__name__)


@dataclass
class CatalogSyncResult:
    products: int = 0
    variants: int = 0
    fetched: int = 0
    errors: list[RecordError] = field(default_factory=list)


def product_fields(product: ProductPayload) -> dict:
    return {
        "faire_brand_id": product.brand_id,
        "name": product.name,
        "short_description": product.short_description,
        "description": product.description,
        "sale_state": normalize_sale_state(product.sale_state).value,
        "lifecycle_state": normalize_lifecycle_state(product.lifecycle_state).value,
        "unit_multiplier": product.unit_multiplier or 1,
        "minimum_order_quantity": product.minimum_order_quantity or 1,
        "taxonomy_type": product.taxonomy_type,
        "made_in_country": product.made_in_country,
        "preorderable": bool(product.preorderable),
        "preorder_details": product.preorder_details,
        "images": [image.url for image in product.images],
    }


def variant_fields(variant: VariantPayload, store_id: uuid.UUID) -> dict:
    return {
        "store_id": store_id,
        "name": variant.name,
        "sku": variant.sku,
        "gtin": variant.gtin,
        "sale_state": normalize_sale_state(variant.sale_state).value,
        "lifecycle_state": normalize_lifecycle_state(variant.lifecycle_state).value,
        "prices": [price.model_dump(mode="json", exclude_none=True) for price in variant.prices],
        "available_quantity": variant.available_quantity or 0,
        "reserved_quantity": variant.reserved_quantity or 0,
        "backordered_until": variant.backordered_until,
        "options": variant.options,
        "measurements": variant.measurements,
    }


class CatalogSync(StoreSyncPhase):
    """Drains every product page for one store and reconciles products and their variants."""

    entity_type = "products"
    result_type = CatalogSyncResult

    def run(self) -> CatalogSyncResult:
        logger.info(f"[SYNC:FAIRE] Syncing products for '{self.store.name}'")
        raw_products = self.drain()
        result = self.result
        result.fetched = len(raw_products)
        synced_at = self.clock()

        for raw in raw_products:
            self.deadline.check("next product")
            self._sync_product(raw, result, synced_at)
            self.record_done()
        self.flush_batch()

        logger.info(
            f"[SYNC:FAIRE] '{self.store.name}' products: {result.products}, "
            f"variants: {result.variants}, errors: {len(result.errors)}"
        )
        return result

    def _sync_product(self, raw: dict, result: CatalogSyncResult, synced_at: datetime) -> None:
        parsed = parse_record(ProductPayload, raw, "product")
        if isinstance(parsed, Err):
            result.errors.append(parsed.error)
            return
        product = parsed.value

        outcome = reconcile(
            self.session,
            FaireProduct,
            {"faire_product_id": product.id, "store_id": self.store.id},
            product_fields(product),
            synced_at,
            entity_type="product",
        )
        if isinstance(outcome, Err):
            # Variants are skipped, not failed, when the parent did not land
            result.errors.append(outcome.error)
            return
        result.products += 1
        product_id = outcome.value

        for raw_variant in product.variants:
            parsed_variant = parse_record(VariantPayload, raw_variant, "variant")
            if isinstance(parsed_variant, Err):
                result.errors.append(parsed_variant.error)
                continue
            variant = parsed_variant.value
            variant_outcome = reconcile(
                self.session,
                FaireProductVariant,
                {"faire_variant_id": variant.id, "product_id": product_id},
                variant_fields(variant, self.store.id),
                synced_at,
                entity_type="variant",
            )
            if isinstance(variant_outcome, Err):
                result.errors.append(variant_outcome.error)
                continue
            result.variants += 1
