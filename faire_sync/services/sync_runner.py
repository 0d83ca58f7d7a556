import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional, Sequence

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from faire_sync.faire_client import FaireClient, FaireCredentials
from faire_sync.metrics import faire_store_failures_total
from faire_sync.models import FaireStore, FaireSyncLog
from faire_sync.services.linkage import link_order_items
from faire_sync.settings import Settings
from faire_sync.sync.base import StoreSyncPhase
from faire_sync.sync.catalog_sync import CatalogSync
from faire_sync.sync.order_sync import OrderSync
from faire_sync.sync.pagination import PagingPolicy, RunDeadline

logger = logging.getLogger(__name__)

ENTITY_CHOICES = ("all", "products", "orders")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreRef(NamedTuple):
    id: uuid.UUID
    name: str
    code: str


@dataclass
class StoreSyncResult:
    store_id: uuid.UUID
    store_name: str
    store_code: str
    products: int = 0
    variants: int = 0
    orders: int = 0
    items: int = 0
    shipments: int = 0
    linked: int = 0
    products_fetched: int = 0
    orders_fetched: int = 0
    errors: list[str] = field(default_factory=list)
    failed_phases: list[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def failed(self) -> bool:
        return bool(self.failed_phases)

    def counts(self) -> dict[str, int]:
        return {
            "products": self.products,
            "variants": self.variants,
            "orders": self.orders,
            "items": self.items,
            "shipments": self.shipments,
            "linked": self.linked,
            "errors": len(self.errors),
        }


@dataclass
class RunSummary:
    stores: list[StoreSyncResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def totals(self) -> dict[str, int]:
        totals = {"products": 0, "variants": 0, "orders": 0, "items": 0, "shipments": 0, "linked": 0, "errors": 0}
        for store in self.stores:
            for key, value in store.counts().items():
                totals[key] += value
        return totals

    @property
    def has_failures(self) -> bool:
        return any(store.failed for store in self.stores)


def default_client_factory(settings: Settings) -> Callable[[FaireStore], FaireClient]:
    def _build(store: FaireStore) -> FaireClient:
        return FaireClient(
            base_url=settings.faire_api_base_url,
            credentials=FaireCredentials(
                app_credentials=store.app_credentials or "",
                access_token=store.api_token or "",
            ),
            page_size=settings.faire_page_size,
            timeout=httpx.Timeout(settings.faire_request_timeout, connect=settings.faire_connect_timeout),
        )
    return _build


class FaireSyncRunner:
    """
    Runs a full Faire sync for every active store.

    Per store: catalog sync -> order sync -> linkage pass, then the store's
    last_synced_at is stamped and one FaireSyncLog row is appended. A phase
    failure is recorded against that store only; other phases and stores still run.
    Stores may run in parallel (``store_concurrency``), each on its own session.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker,
        client_factory: Callable[[FaireStore], FaireClient] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.client_factory = client_factory or default_client_factory(settings)
        self.policy = PagingPolicy.from_settings(settings, sleep=sleep)
        self.clock = clock

    def run_sync(self, store_codes: Sequence[str] | None = None, entity: str = "all") -> RunSummary:
        if entity not in ENTITY_CHOICES:
            raise ValueError(f"Unsupported entity selection: {entity}")

        summary = RunSummary(started_at=self.clock())
        stores = self._load_stores(store_codes)
        logger.info(f"[SYNC:FAIRE] Found {len(stores)} active stores to sync (entity={entity})")

        deadline = RunDeadline(self.settings.run_timeout_seconds)
        concurrency = self.settings.store_concurrency
        if concurrency <= 1 or len(stores) <= 1:
            summary.stores = [self._sync_store_isolated(store, entity, deadline) for store in stores]
        else:
            summary.stores = asyncio.run(self._run_parallel(stores, entity, deadline, concurrency))

        summary.completed_at = self.clock()
        totals = summary.totals()
        logger.info(f"[SYNC:FAIRE] Run completed. Totals: {totals}")
        return summary

    async def _run_parallel(
        self,
        stores: list[StoreRef],
        entity: str,
        deadline: RunDeadline,
        concurrency: int,
    ) -> list[StoreSyncResult]:
        sem = asyncio.Semaphore(concurrency)

        async def _store_task(store: StoreRef) -> StoreSyncResult:
            async with sem:
                return await asyncio.to_thread(self._sync_store_isolated, store, entity, deadline)

        return list(await asyncio.gather(*[_store_task(store) for store in stores]))

    def _load_stores(self, store_codes: Sequence[str] | None) -> list[StoreRef]:
        stmt = (
            select(FaireStore.id, FaireStore.name, FaireStore.code)
            .where(FaireStore.is_active.is_(True))
            .order_by(FaireStore.name)
        )
        if store_codes:
            stmt = stmt.where(FaireStore.code.in_(list(store_codes)))
        with self.session_factory() as session:
            return [StoreRef(*row) for row in session.execute(stmt).all()]

    def _sync_store_isolated(self, store: StoreRef, entity: str, deadline: RunDeadline) -> StoreSyncResult:
        try:
            return self.sync_store(store.id, entity, deadline)
        except Exception as e:
            logger.exception(f"[SYNC:FAIRE] Store sync failed for '{store.name}': {e}")
            faire_store_failures_total.labels(phase="store").inc()
            return StoreSyncResult(
                store_id=store.id,
                store_name=store.name,
                store_code=store.code,
                errors=[f"Store sync failed: {e}"],
                failed_phases=["store"],
            )

    def sync_store(self, store_id: uuid.UUID, entity: str = "all", deadline: RunDeadline | None = None) -> StoreSyncResult:
        deadline = deadline or RunDeadline.none()
        with self.session_factory() as session:
            store = session.get(FaireStore, store_id)
            result = StoreSyncResult(
                store_id=store.id,
                store_name=store.name,
                store_code=store.code,
                started_at=self.clock(),
            )
            logger.info(f"[SYNC:FAIRE] SYNCING: {store.name} ({store.code})")

            if not (store.api_token and store.app_credentials):
                result.errors.append("Store is missing API credentials")
                result.failed_phases.append("credentials")
                faire_store_failures_total.labels(phase="credentials").inc()
            else:
                self._run_phases(session, store, entity, deadline, result)

            self._finish(session, store, entity, result)
            return result

    def _run_phases(
        self,
        session: Session,
        store: FaireStore,
        entity: str,
        deadline: RunDeadline,
        result: StoreSyncResult,
    ) -> None:
        phase_args = dict(
            policy=self.policy,
            deadline=deadline,
            batch_commit_size=self.settings.batch_commit_size,
            clock=self.clock,
        )
        client = self._run_phase(session, result, "client", lambda: self.client_factory(store))
        if client is not None:
            with client:
                if entity in ("all", "products"):
                    catalog = self._run_sync_phase(session, result, CatalogSync(session, store, client, **phase_args))
                    result.products = catalog.products
                    result.variants = catalog.variants
                    result.products_fetched = catalog.fetched
                    result.errors.extend(str(e) for e in catalog.errors)

                if entity in ("all", "orders"):
                    orders = self._run_sync_phase(session, result, OrderSync(session, store, client, **phase_args))
                    result.orders = orders.orders
                    result.items = orders.items
                    result.shipments = orders.shipments
                    result.orders_fetched = orders.fetched
                    result.errors.extend(str(e) for e in orders.errors)

        linked = self._run_phase(session, result, "linkage", lambda: link_order_items(session, store.id))
        if linked is not None:
            result.linked = linked

    def _run_sync_phase(self, session: Session, result: StoreSyncResult, phase: StoreSyncPhase):
        outcome = self._run_phase(session, result, phase.entity_type, phase.run)
        # an aborted phase still reports what it committed and the record errors it saw
        return outcome if outcome is not None else phase.committed_result()

    def _run_phase(self, session: Session, result: StoreSyncResult, phase: str, fn: Callable):
        try:
            return fn()
        except Exception as e:
            logger.exception(f"[SYNC:FAIRE] {phase} sync failed for '{result.store_name}': {e}")
            session.rollback()
            result.errors.append(f"{phase} sync failed: {e}")
            result.failed_phases.append(phase)
            faire_store_failures_total.labels(phase=phase).inc()
            return None

    def _finish(self, session: Session, store: FaireStore, entity: str, result: StoreSyncResult) -> None:
        result.completed_at = self.clock()
        limit = self.settings.sync_log_error_limit
        try:
            store.last_synced_at = result.completed_at
            session.add(
                FaireSyncLog(
                    store_id=store.id,
                    entity_type="full_sync" if entity == "all" else entity,
                    status="failed" if result.failed else "completed",
                    started_at=result.started_at,
                    completed_at=result.completed_at,
                    total_records=result.products_fetched + result.orders_fetched,
                    processed_records=result.products + result.orders,
                    failed_records=len(result.errors),
                    error_message="; ".join(result.errors[:limit]) or None,
                    error_details={"errors": result.errors[:100], "failed_phases": result.failed_phases} if result.errors else None,
                    meta=result.counts(),
                )
            )
            session.commit()
        except SQLAlchemyError as e:
            logger.exception(f"[SYNC:FAIRE] Failed to write sync log for '{result.store_name}': {e}")
            session.rollback()
            result.errors.append(f"sync log write failed: {e}")
            result.failed_phases.append("audit")

        logger.info(
            f"[SYNC:FAIRE] '{result.store_name}' done. Status: {'failed' if result.failed else 'completed'}, "
            f"counts: {result.counts()}"
        )
