import uuid
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select

from faire_sync.errors import FaireTransportError
from faire_sync.faire_client import FairePage
from faire_sync.models import FaireOrderItem, FaireProduct, FaireStore, FaireSyncLog
from faire_sync.services.sync_runner import FaireSyncRunner, StoreRef, StoreSyncResult
from faire_sync.settings import Settings

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _runner(settings, session_factory, clients, **kwargs):
    """``clients`` maps store code to the fake client that store should get."""
    return FaireSyncRunner(
        settings,
        session_factory,
        client_factory=lambda store: clients[store.code],
        sleep=lambda s: None,
        clock=kwargs.pop("clock", lambda: T0),
        **kwargs,
    )


@pytest.mark.integration
class TestRunSync:
    def test_full_sync_single_store(self, test_session, session_factory, test_settings, make_store, fake_client, payloads):
        make_store(name="Toyarina", code="TOY")
        client = fake_client({
            "products": [FairePage([payloads["product"]("P1", variants=[payloads["variant"]("V1")])], None)],
            "orders": [FairePage([payloads["order"]("o_1", items=[payloads["item"]("i_1", product_id="P1", variant_id="V1")])], None)],
        })

        summary = _runner(test_settings, session_factory, {"TOY": client}).run_sync()

        assert not summary.has_failures
        store_result = summary.stores[0]
        assert store_result.counts() == {
            "products": 1, "variants": 1, "orders": 1, "items": 1, "shipments": 0, "linked": 1, "errors": 0,
        }
        assert client.closed

        test_session.expire_all()
        store = test_session.scalars(select(FaireStore)).one()
        assert store.last_synced_at is not None
        log = test_session.scalars(select(FaireSyncLog)).one()
        assert log.entity_type == "full_sync"
        assert log.status == "completed"
        assert log.processed_records == 2
        assert log.total_records == 2
        assert log.error_message is None
        assert log.meta["linked"] == 1
        item = test_session.scalars(select(FaireOrderItem)).one()
        assert item.product_id is not None

    def test_failing_store_does_not_stop_others(self, test_session, session_factory, test_settings, make_store, fake_client, payloads):
        make_store(name="A store", code="A")
        make_store(name="B store", code="B")
        make_store(name="C store", code="C")
        clients = {
            "A": fake_client({"products": [FairePage([payloads["product"]("pa")], None)]}),
            "B": fake_client({
                "products": [FaireTransportError(503, "down")],
                "orders": [FaireTransportError(503, "down")],
            }),
            "C": fake_client({"products": [FairePage([payloads["product"]("pc")], None)]}),
        }

        summary = _runner(test_settings, session_factory, clients).run_sync()

        by_code = {s.store_code: s for s in summary.stores}
        assert summary.has_failures
        assert not by_code["A"].failed
        assert not by_code["C"].failed
        assert by_code["B"].failed_phases == ["products", "orders"]
        assert by_code["B"].errors[0].startswith("products sync failed:")
        assert by_code["C"].products == 1

        test_session.expire_all()
        logs = {log.store_id: log for log in test_session.scalars(select(FaireSyncLog)).all()}
        assert len(logs) == 3
        b_store = test_session.scalars(select(FaireStore).filter_by(code="B")).one()
        assert logs[b_store.id].status == "failed"
        assert "products sync failed" in logs[b_store.id].error_message
        assert b_store.last_synced_at is not None
        assert test_session.scalars(select(FaireProduct.faire_product_id)).all().count("pc") == 1

    def test_orders_still_run_when_catalog_fails(self, test_session, session_factory, test_settings, make_store, fake_client, payloads):
        make_store(code="TOY")
        client = fake_client({
            "products": [FaireTransportError(401, "unauthorized")],
            "orders": [FairePage([payloads["order"]("o_1")], None)],
        })

        summary = _runner(test_settings, session_factory, {"TOY": client}).run_sync()

        result = summary.stores[0]
        assert result.failed_phases == ["products"]
        assert result.orders == 1
        assert ("products", None) in client.calls
        # 401 is not retried
        assert client.calls.count(("products", None)) == 1

    def test_missing_credentials(self, test_session, session_factory, test_settings, make_store, fake_client):
        make_store(code="NOCRED", api_token=None)
        client = fake_client()

        summary = _runner(test_settings, session_factory, {"NOCRED": client}).run_sync()

        result = summary.stores[0]
        assert result.failed
        assert result.errors == ["Store is missing API credentials"]
        assert client.calls == []
        test_session.expire_all()
        assert test_session.scalars(select(FaireSyncLog.status)).one() == "failed"

    def test_entity_selection(self, test_session, session_factory, test_settings, make_store, fake_client, payloads):
        make_store(code="TOY")
        client = fake_client({"orders": [FairePage([payloads["order"]("o_1")], None)]})

        summary = _runner(test_settings, session_factory, {"TOY": client}).run_sync(entity="orders")

        assert {entity for entity, _ in client.calls} == {"orders"}
        assert summary.stores[0].orders == 1
        test_session.expire_all()
        assert test_session.scalars(select(FaireSyncLog.entity_type)).one() == "orders"

    def test_store_filter_and_inactive_stores(self, test_session, session_factory, test_settings, make_store, fake_client):
        make_store(name="One", code="ONE")
        make_store(name="Two", code="TWO")
        make_store(name="Off", code="OFF", is_active=False)
        clients = {code: fake_client() for code in ("ONE", "TWO", "OFF")}
        runner = _runner(test_settings, session_factory, clients)

        assert [s.store_code for s in runner.run_sync().stores] == ["ONE", "TWO"]
        assert [s.store_code for s in runner.run_sync(store_codes=["TWO"]).stores] == ["TWO"]
        assert runner.run_sync(store_codes=["OFF"]).stores == []

    def test_invalid_entity(self, test_settings, session_factory):
        with pytest.raises(ValueError):
            FaireSyncRunner(test_settings, session_factory).run_sync(entity="retailers")

    def test_sync_log_error_message_is_capped(self, test_session, session_factory, test_settings, make_store, fake_client):
        make_store(code="TOY")
        bad_products = [{"id": f"bad_{i}"} for i in range(15)]
        client = fake_client({"products": [FairePage(bad_products, None)]})

        summary = _runner(test_settings, session_factory, {"TOY": client}).run_sync(entity="products")

        assert len(summary.stores[0].errors) == 15
        # record errors alone do not fail the store
        assert not summary.stores[0].failed
        test_session.expire_all()
        log = test_session.scalars(select(FaireSyncLog)).one()
        assert log.failed_records == 15
        assert log.error_message.count("; ") == test_settings.sync_log_error_limit - 1

    def test_deadline_aborts_phase(self, test_session, session_factory, make_store, fake_client, payloads):
        settings = Settings(_env_file=None, database_url="sqlite:///:memory:", faire_page_delay=0, run_timeout_seconds=1)
        make_store(code="TOY")
        client = fake_client({"products": [FairePage([payloads["product"]("P1")], None)]})

        with patch("faire_sync.sync.pagination.RunDeadline.expired", return_value=True):
            summary = _runner(settings, session_factory, {"TOY": client}).run_sync()

        result = summary.stores[0]
        assert result.failed_phases == ["products", "orders"]
        assert "deadline" in result.errors[0]
        assert client.calls == []

    def test_unexpected_store_error_is_isolated(self, test_session, session_factory, test_settings, make_store, fake_client):
        store_a = make_store(name="A", code="A")
        make_store(name="B", code="B")
        runner = _runner(test_settings, session_factory, {"A": fake_client(), "B": fake_client()})
        original = runner.sync_store

        def flaky(store_id, entity, deadline):
            if store_id == store_a.id:
                raise RuntimeError("boom")
            return original(store_id, entity, deadline)

        runner.sync_store = flaky
        summary = runner.run_sync()

        by_code = {s.store_code: s for s in summary.stores}
        assert by_code["A"].failed_phases == ["store"]
        assert "boom" in by_code["A"].errors[0]
        assert not by_code["B"].failed


@pytest.mark.unit
class TestParallelRun:
    def test_runs_every_store_through_worker_threads(self, test_settings):
        settings = test_settings.model_copy(update={"store_concurrency": 3})
        runner = FaireSyncRunner(settings, session_factory=None, sleep=lambda s: None)
        stores = [StoreRef(uuid.uuid4(), f"Store {i}", f"S{i}") for i in range(5)]

        def fake_sync(store_id, entity, deadline):
            store = next(s for s in stores if s.id == store_id)
            if store.code == "S2":
                raise RuntimeError("boom")
            return StoreSyncResult(store_id=store.id, store_name=store.name, store_code=store.code, products=1)

        with patch.object(runner, "_load_stores", return_value=stores), \
                patch.object(runner, "sync_store", side_effect=fake_sync):
            summary = runner.run_sync()

        assert [s.store_code for s in summary.stores] == ["S0", "S1", "S2", "S3", "S4"]
        assert summary.totals()["products"] == 4
        assert summary.stores[2].failed_phases == ["store"]
        assert summary.has_failures


def _expire_after(checks: int):
    """A RunDeadline.expired stand-in that trips once ``checks`` checks have passed."""
    calls = []

    def expired():
        calls.append(1)
        return len(calls) > checks
    return expired


@pytest.mark.integration
class TestAbortedPhase:
    def test_keeps_committed_counts_and_record_errors(self, test_session, session_factory, test_settings, make_store, fake_client, payloads):
        settings = test_settings.model_copy(update={"batch_commit_size": 1})
        make_store(code="TOY")
        records = [{"id": "bad"}] + [payloads["product"](f"p_{i}") for i in range(3)]
        client = fake_client({"products": [FairePage(records, None)]})

        # page check, then bad, p_0, p_1 pass; expires before p_2
        with patch("faire_sync.sync.pagination.RunDeadline.expired", side_effect=_expire_after(4)):
            summary = _runner(settings, session_factory, {"TOY": client}).run_sync(entity="products")

        result = summary.stores[0]
        assert result.failed_phases == ["products"]
        assert result.products == 2
        assert result.variants == 2
        assert result.products_fetched == 4
        assert any("deadline" in e for e in result.errors)
        assert any("bad" in e for e in result.errors)

        test_session.expire_all()
        assert len(test_session.scalars(select(FaireProduct)).all()) == 2
        log = test_session.scalars(select(FaireSyncLog)).one()
        assert log.status == "failed"
        assert log.processed_records == 2
        assert log.failed_records == 2

    def test_uncommitted_tail_is_not_counted(self, test_session, session_factory, test_settings, make_store, fake_client, payloads):
        settings = test_settings.model_copy(update={"batch_commit_size": 2})
        make_store(code="TOY")
        records = [payloads["product"](f"p_{i}") for i in range(3)]
        client = fake_client({"products": [FairePage(records, None)]})

        # page check and p_0 pass; expires before p_1, leaving p_0 uncommitted
        with patch("faire_sync.sync.pagination.RunDeadline.expired", side_effect=_expire_after(2)):
            summary = _runner(settings, session_factory, {"TOY": client}).run_sync(entity="products")

        result = summary.stores[0]
        assert result.products == 0
        assert result.products_fetched == 3
        test_session.expire_all()
        assert test_session.scalars(select(FaireProduct)).all() == []


@pytest.mark.integration
class TestStoreGuards:
    def test_client_construction_failure_still_audited(self, test_session, session_factory, test_settings, make_store):
        make_store(code="TOY")

        def broken_factory(store):
            raise RuntimeError("cannot build client")

        runner = FaireSyncRunner(test_settings, session_factory, client_factory=broken_factory, sleep=lambda s: None)
        summary = runner.run_sync()

        result = summary.stores[0]
        assert result.failed_phases == ["client"]
        assert "cannot build client" in result.errors[0]
        test_session.expire_all()
        assert test_session.scalars(select(FaireSyncLog.status)).one() == "failed"
        assert test_session.scalars(select(FaireStore)).one().last_synced_at is not None

    def test_missing_app_credentials(self, test_session, session_factory, test_settings, make_store, fake_client):
        make_store(code="NOAPP", api_token="token", app_credentials=None)
        client = fake_client()

        summary = _runner(test_settings, session_factory, {"NOAPP": client}).run_sync()

        assert summary.stores[0].errors == ["Store is missing API credentials"]
        assert client.calls == []
