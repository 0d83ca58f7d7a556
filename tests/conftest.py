"""Pytest configuration and fixtures."""

import uuid

import pytest
from sqlalchemy import create_engine, event, JSON
from sqlalchemy.orm import sessionmaker, Session

from faire_sync.faire_client import FairePage
from faire_sync.models import FaireBase, FaireStore
from faire_sync.settings import Settings


# In-memory SQLite; one connection per thread
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    echo=False
)


# pysqlite defers BEGIN until the first DML, so an outermost SAVEPOINT
# would commit on RELEASE. Take over transaction control so SAVEPOINT and
# ROLLBACK behave as they do on PostgreSQL.
@event.listens_for(test_engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(test_engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestSessionLocal = sessionmaker(
    bind=test_engine,
    autoflush=False,
    expire_on_commit=False,
)


def _patch_jsonb_to_json(base):
    """
    Swap JSONB for JSON so the schema compiles on SQLite.
    Test-only.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()


@pytest.fixture(scope="function")
def test_session() -> Session:
    """
    Fresh in-memory schema per test.
    """
    _patch_jsonb_to_json(FaireBase)
    FaireBase.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        FaireBase.metadata.drop_all(bind=test_engine)


@pytest.fixture
def session_factory(test_session: Session):
    """Session factory bound to the same in-memory database as test_session."""
    return TestSessionLocal


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        faire_api_base_url="https://faire.test/external-api/v2",
        faire_page_delay=0,
        faire_retry_count=3,
        faire_retry_max_wait=1,
    )


@pytest.fixture
def make_store(test_session: Session):
    def _make(name: str = "Toyarina", code: str | None = None, api_token: str | None = "token", **kwargs) -> FaireStore:
        store = FaireStore(
            name=name,
            code=code or f"S{uuid.uuid4().hex[:6].upper()}",
            api_token=api_token,
            app_credentials=kwargs.pop("app_credentials", "app-creds"),
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        test_session.add(store)
        test_session.commit()
        return store
    return _make


class FakeFaireClient:
    """
    Stands in for FaireClient. ``pages`` maps entity type to the responses
    returned in order: a FairePage, or an exception to raise.
    """

    def __init__(self, pages: dict | None = None):
        self.pages = {k: list(v) for k, v in (pages or {}).items()}
        self.calls: list[tuple[str, str | None]] = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def fetch_page(self, entity_type, cursor=None):
        self.calls.append((entity_type, cursor))
        queue = self.pages.get(entity_type) or [FairePage(records=[], cursor=None)]
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_client():
    return FakeFaireClient


def product_payload(product_id="p_1", name="Wooden Train", variants=None, **extra) -> dict:
    payload = {
        "id": product_id,
        "brand_id": "b_1",
        "name": name,
        "sale_state": "FOR_SALE",
        "lifecycle_state": "PUBLISHED",
        "images": [{"id": "img_1", "url": f"https://cdn.faire.test/{product_id}.jpg"}],
        "variants": variants if variants is not None else [variant_payload(f"{product_id}_v1")],
    }
    payload.update(extra)
    return payload


def variant_payload(variant_id="v_1", wholesale=1000, **extra) -> dict:
    payload = {
        "id": variant_id,
        "name": "Default",
        "sku": f"SKU-{variant_id}",
        "prices": [
            {
                "geo_constraint": {"country": "USA"},
                "wholesale_price": {"amount_minor": wholesale, "currency": "USD"},
                "retail_price": {"amount_minor": wholesale * 2, "currency": "USD"},
            }
        ],
        "available_quantity": 10,
    }
    payload.update(extra)
    return payload


def order_payload(order_id="o_1", items=None, shipments=None, **extra) -> dict:
    payload = {
        "id": order_id,
        "display_id": order_id.upper(),
        "state": "NEW",
        "created_at": "2026-01-05T10:00:00Z",
        "updated_at": "2026-01-05T10:00:00Z",
        "retailer": {"id": "r_1", "name": "Corner Shop"},
        "items": items if items is not None else [item_payload(f"{order_id}_i1")],
        "shipments": shipments or [],
    }
    payload.update(extra)
    return payload


def item_payload(item_id="i_1", product_id="p_1", variant_id="p_1_v1", **extra) -> dict:
    payload = {
        "id": item_id,
        "product_id": product_id,
        "variant_id": variant_id,
        "product_name": "Wooden Train",
        "quantity": 2,
        "price_cents": 1000,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def payloads():
    """Builders for upstream payload dicts."""
    return {
        "product": product_payload,
        "variant": variant_payload,
        "order": order_payload,
        "item": item_payload,
    }


def pytest_configure(config):
    """Register test markers."""
    config.addinivalue_line("markers", "unit: unit tests (no DB)")
    config.addinivalue_line("markers", "integration: tests against the in-memory DB")
    config.addinivalue_line("markers", "slow: slow tests (> 1 min)")
