"""
Upstream state normalization.

Every function here is total: missing, empty or unknown values map to a fixed
default instead of failing. A non-empty value that is not in the table is
logged and counted so upstream vocabulary drift stays visible.
"""
import logging
from enum import Enum

from faire_sync.metrics import faire_state_fallbacks_total

logger = logging.getLogger(__name__)


class SaleState(str, Enum):
    FOR_SALE = "FOR_SALE"
    SALES_PAUSED = "SALES_PAUSED"
    DISCONTINUED = "DISCONTINUED"


class LifecycleState(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class OrderState(str, Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    PRE_TRANSIT = "PRE_TRANSIT"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELED = "CANCELED"
    BACKORDERED = "BACKORDERED"


# Upstream value (upper-cased) -> canonical state. New upstream values go here.
_SALE_STATES: dict[str, SaleState] = {
    "FOR_SALE": SaleState.FOR_SALE,
    "SALES_PAUSED": SaleState.SALES_PAUSED,
    "DISCONTINUED": SaleState.DISCONTINUED,
}

_LIFECYCLE_STATES: dict[str, LifecycleState] = {
    "DRAFT": LifecycleState.DRAFT,
    "PUBLISHED": LifecycleState.PUBLISHED,
    "ARCHIVED": LifecycleState.ARCHIVED,
}

_ORDER_STATES: dict[str, OrderState] = {
    "NEW": OrderState.NEW,
    "PROCESSING": OrderState.PROCESSING,
    "PRE_TRANSIT": OrderState.PRE_TRANSIT,
    "IN_TRANSIT": OrderState.IN_TRANSIT,
    "DELIVERED": OrderState.DELIVERED,
    "CANCELED": OrderState.CANCELED,
    "BACKORDERED": OrderState.BACKORDERED,
}


def _lookup(field: str, raw: object, table: dict, default):
    if raw is None:
        return default
    key = str(raw).strip().upper()
    if not key:
        return default
    state = table.get(key)
    if state is None:
        logger.warning(f"[NORMALIZE] Unrecognized {field} {raw!r}; defaulting to {default.value}")
        faire_state_fallbacks_total.labels(field=field).inc()
        return default
    return state


def normalize_sale_state(raw: object = None) -> SaleState:
    return _lookup("sale_state", raw, _SALE_STATES, SaleState.FOR_SALE)


def normalize_lifecycle_state(raw: object = None) -> LifecycleState:
    return _lookup("lifecycle_state", raw, _LIFECYCLE_STATES, LifecycleState.PUBLISHED)


def normalize_order_state(raw: object = None) -> OrderState:
    return _lookup("order_state", raw, _ORDER_STATES, OrderState.NEW)
