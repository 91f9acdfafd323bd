"""Tests for feed-to-catalog reconciliation."""

import pytest

from feedsync.catalog import CatalogWriter
from feedsync.errors import FetchError, PersistenceError, XmlValidationError
from feedsync.parsers import AdamHomeParser, HomelineParser
from feedsync.reconciler import DEACTIVATION_FAILED_MESSAGE, Reconciler, sync_supplier

from .helpers import ADAM_HOME_FEED, HOMELINE_FEED, FakeSession, make_product


class FailingUpdateWriter(CatalogWriter):
    """Raises on update for one model; behaves normally otherwise."""

    def __init__(self, store, failing_model):
        super().__init__(store)
        self.failing_model = failing_model

    def update(self, product_id, record):
        if record.model == self.failing_model:
            raise PersistenceError("database is locked")
        return super().update(product_id, record)


class RejectingUpdateWriter(CatalogWriter):
    def update(self, product_id, record):
        return False


class RejectingInsertWriter(CatalogWriter):
    def insert(self, record, supplier):
        return None


class FailingDeactivationWriter(CatalogWriter):
    def deactivate_missing(self, present_models, supplier_id):
        raise PersistenceError("disk I/O error")


def _active_models(reader, supplier_id, models):
    status = reader.check_existence(models, supplier_id)
    return sorted(m for m, s in status.items() if s.is_active)


@pytest.fixture
def reconciler(reader, writer):
    return Reconciler(reader, writer)


class TestReconcile:
    """Tests for applying a parsed feed to one supplier partition."""

    def test_update_insert_and_deactivate(self, reconciler, reader, writer, adam_supplier):
        writer.insert(make_product("M1"), adam_supplier)
        writer.insert(make_product("M2"), adam_supplier)

        report = reconciler.reconcile([make_product("M1"), make_product("M3")], adam_supplier)

        assert report.total_products == 2
        assert report.updated_count == 1
        assert report.inserted_count == 1
        assert report.disabled_count == 1
        assert report.error_count == 0
        assert report.errors == []
        assert _active_models(reader, 7, ["M1", "M2", "M3"]) == ["M1", "M3"]

    def test_already_inactive_absent_model_is_not_recounted(
        self, store, reconciler, reader, writer, adam_supplier
    ):
        m2_id = writer.insert(make_product("M2"), adam_supplier)
        with store.connection() as conn:
            conn.execute("UPDATE product SET status = 0 WHERE product_id = ?", (m2_id,))

        report = reconciler.reconcile([make_product("M1")], adam_supplier)

        assert report.inserted_count == 1
        assert report.updated_count == 0
        assert report.disabled_count == 0
        assert _active_models(reader, 7, ["M1", "M2"]) == ["M1"]
        assert reader.count_by_status(7) == {"active": 1, "inactive": 1}

    def test_empty_feed_deactivates_everything(self, reconciler, reader, writer, adam_supplier):
        for model in ("A", "B", "C"):
            writer.insert(make_product(model), adam_supplier)

        report = reconciler.reconcile([], adam_supplier)

        assert report.total_products == 0
        assert report.disabled_count == 3
        assert reader.count_by_status(7) == {"active": 0, "inactive": 3}

    def test_second_run_only_updates(self, reconciler, adam_supplier):
        feed = [make_product("A"), make_product("B")]
        reconciler.reconcile(feed, adam_supplier)

        report = reconciler.reconcile(feed, adam_supplier)

        assert report.updated_count == 2
        assert report.inserted_count == 0
        assert report.disabled_count == 0
        assert report.error_count == 0

    def test_reappearing_model_is_revived(self, reconciler, reader, adam_supplier):
        reconciler.reconcile([make_product("A"), make_product("B")], adam_supplier)
        reconciler.reconcile([make_product("A")], adam_supplier)
        assert _active_models(reader, 7, ["A", "B"]) == ["A"]

        report = reconciler.reconcile([make_product("A"), make_product("B")], adam_supplier)

        assert report.updated_count == 2
        assert report.inserted_count == 0
        assert _active_models(reader, 7, ["A", "B"]) == ["A", "B"]

    def test_other_supplier_partition_is_untouched(
        self, reconciler, reader, writer, adam_supplier, homeline_supplier
    ):
        writer.insert(make_product("H1"), homeline_supplier)

        reconciler.reconcile([], adam_supplier)

        assert reader.count_by_status(9) == {"active": 1, "inactive": 0}

    def test_update_exception_mid_batch(self, store, reader, writer, adam_supplier):
        for model in ("A", "BAD", "C"):
            writer.insert(make_product(model), adam_supplier)
        writer.insert(make_product("GONE"), adam_supplier)
        reconciler = Reconciler(reader, FailingUpdateWriter(store, "BAD"))

        feed = [make_product("A"), make_product("BAD"), make_product("C"), make_product("NEW")]
        report = reconciler.reconcile(feed, adam_supplier)

        assert report.updated_count == 2
        assert report.inserted_count == 1
        assert report.error_count == 1
        assert report.errors == ["Error processing BAD: database is locked"]
        assert report.disabled_count == 1

    def test_update_without_match_is_reported(self, store, reader, writer, adam_supplier):
        writer.insert(make_product("A"), adam_supplier)
        reconciler = Reconciler(reader, RejectingUpdateWriter(store))

        report = reconciler.reconcile([make_product("A")], adam_supplier)

        assert report.updated_count == 0
        assert report.error_count == 1
        assert report.errors == ["Failed to update product A"]

    def test_errors_are_truncated_but_counted(self, store, reader, adam_supplier):
        reconciler = Reconciler(reader, RejectingInsertWriter(store))
        feed = [make_product(f"P{i:02d}") for i in range(20)]

        report = reconciler.reconcile(feed, adam_supplier)

        assert report.error_count == 20
        assert report.inserted_count == 0
        assert len(report.errors) == 15
        assert report.errors[0] == "Failed to insert new product P00"
        assert report.errors[-1] == "Failed to insert new product P14"

    def test_custom_error_limit(self, store, reader, adam_supplier):
        reconciler = Reconciler(reader, RejectingInsertWriter(store), max_reported_errors=3)

        report = reconciler.reconcile([make_product(f"P{i}") for i in range(5)], adam_supplier)

        assert report.error_count == 5
        assert len(report.errors) == 3

    def test_deactivation_failure_is_isolated(self, store, reader, writer, adam_supplier):
        writer.insert(make_product("A"), adam_supplier)
        reconciler = Reconciler(reader, FailingDeactivationWriter(store))

        report = reconciler.reconcile([make_product("A"), make_product("B")], adam_supplier)

        assert report.updated_count == 1
        assert report.inserted_count == 1
        assert report.disabled_count == 0
        assert report.error_count == 0
        assert report.errors == [DEACTIVATION_FAILED_MESSAGE]

    def test_report_serialization(self, reconciler, adam_supplier):
        report = reconciler.reconcile([make_product("A")], adam_supplier)

        assert report.supplier == "Adam Home"
        assert report.to_dict() == {
            "totalProducts": 1,
            "updatedCount": 0,
            "insertedCount": 1,
            "disabledCount": 0,
            "errorCount": 0,
            "errors": [],
        }


class TestSync:
    """Tests for full runs that fetch the feed first."""

    def test_sync_adam_home_feed(self, reconciler, reader, adam_supplier):
        session = FakeSession()
        session.set_feed(adam_supplier.xml_url, ADAM_HOME_FEED)

        report = reconciler.sync(adam_supplier, AdamHomeParser(session=session))

        assert report.total_products == 2
        assert report.inserted_count == 2
        entry = reader.find_by_model("AH-100", 7)
        assert entry.title == "Bath Towel Set"
        assert entry.size_attribute_text == "50x90"
        assert reader.find_by_model("AH-300", 7) is None

    def test_sync_homeline_feed_twice(self, reconciler, homeline_supplier):
        session = FakeSession()
        session.set_feed(homeline_supplier.xml_url, HOMELINE_FEED)
        parser = HomelineParser(session=session)

        first = reconciler.sync(homeline_supplier, parser)
        second = reconciler.sync(homeline_supplier, parser)

        assert (first.inserted_count, first.updated_count) == (2, 0)
        assert (second.inserted_count, second.updated_count, second.disabled_count) == (0, 2, 0)

    def test_fetch_failure_leaves_catalog_alone(self, reconciler, reader, writer, adam_supplier):
        writer.insert(make_product("A"), adam_supplier)
        session = FakeSession()
        session.set_feed(adam_supplier.xml_url, "", status_code=500)

        with pytest.raises(FetchError):
            reconciler.sync(adam_supplier, AdamHomeParser(session=session))

        assert reader.count_by_status(7) == {"active": 1, "inactive": 0}

    def test_invalid_feed_leaves_catalog_alone(self, reconciler, reader, writer, adam_supplier):
        writer.insert(make_product("A"), adam_supplier)
        session = FakeSession()
        session.set_feed(adam_supplier.xml_url, "<rss><channel>")

        with pytest.raises(XmlValidationError):
            reconciler.sync(adam_supplier, AdamHomeParser(session=session))

        assert reader.count_by_status(7) == {"active": 1, "inactive": 0}

    def test_sync_supplier_selects_parser_by_type(self, monkeypatch, store, reader, homeline_supplier):
        session = FakeSession()
        session.set_feed(homeline_supplier.xml_url, HOMELINE_FEED)
        monkeypatch.setattr("feedsync.parsers.requests.get", session.get)

        report = sync_supplier(homeline_supplier, store)

        assert report.inserted_count == 2
        assert _active_models(reader, 9, ["HL-1", "HL-2", "HL-3"]) == ["HL-1", "HL-3"]
