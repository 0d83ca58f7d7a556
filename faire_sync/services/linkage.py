import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from faire_sync.models import FaireOrderItem, FaireProduct, FaireProductVariant

logger = logging.getLogger(__name__)


def link_order_items(session: Session, store_id: uuid.UUID) -> int:
    """
    Backfill local product/variant references on a store's unresolved order items.

    Catalog ids are read once per store into in-memory maps. Items whose
    upstream product is not in the local catalog yet stay unresolved for a
    later run. Resolved items are never touched again.
    """
    items = session.scalars(
        select(FaireOrderItem)
        .where(FaireOrderItem.store_id == store_id)
        .where(FaireOrderItem.product_id.is_(None))
    ).all()
    if not items:
        logger.info(f"[LINK] store {store_id}: no items to link")
        return 0

    product_map = dict(
        session.execute(
            select(FaireProduct.faire_product_id, FaireProduct.id).where(FaireProduct.store_id == store_id)
        ).all()
    )
    # Variant ids are only unique within their product
    variant_map = {
        (product_id, faire_variant_id): variant_id
        for product_id, faire_variant_id, variant_id in session.execute(
            select(FaireProductVariant.product_id, FaireProductVariant.faire_variant_id, FaireProductVariant.id)
            .where(FaireProductVariant.store_id == store_id)
        ).all()
    }

    linked = 0
    for item in items:
        product_id = product_map.get(item.faire_product_id)
        if product_id is None:
            continue
        item.product_id = product_id
        if item.variant_id is None:
            item.variant_id = variant_map.get((product_id, item.faire_variant_id))
        linked += 1

    session.commit()
    logger.info(f"[LINK] store {store_id}: linked {linked} of {len(items)} unresolved items")
    return linked
