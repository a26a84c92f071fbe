"""
Persisted State Tests

Validates:
1. Artifact writes are atomic and hash-verified
2. The sent-log survives restarts and is pruned to the retention window
3. Unreadable state files load as empty state
4. The per-day order archive refreshes today and keeps processed past days
5. The reconciliation report log and timestamps share the local clock
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest


def _order(order_id, code, status=1):
    from core.models.canonical import LineItem, Order
    return Order(
        id=order_id, code=code, status=status,
        order_details=[LineItem(product_id=1, quantity=2, product_name="Cà phê")],
    )


class TestArtifacts:
    """Test JSON artifact storage."""

    def test_put_and_get_with_hash(self, tmp_path):
        """Stored content reads back and verifies its hash."""
        from core.storage import ArtifactStore
        store = ArtifactStore(tmp_path)

        ref = store.put_json({"name": "Cà phê", "qty": 2}, "nested/state.json")

        assert ref.size_bytes > 0
        assert store.get_json(ref) == {"name": "Cà phê", "qty": 2}
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_hash_mismatch(self, tmp_path):
        """Tampered content fails verification."""
        from core.storage import ArtifactStore
        store = ArtifactStore(tmp_path)
        ref = store.put_json({"a": 1}, "state.json")
        (tmp_path / "state.json").write_text('{"a": 2}', encoding="utf-8")

        with pytest.raises(ValueError, match="Hash mismatch"):
            store.get_json(ref)

    def test_pydantic_models_use_aliases(self, tmp_path):
        """Models are written with their KiotViet field names."""
        from core.storage import ArtifactStore
        store = ArtifactStore(tmp_path)
        store.put_json([_order(1, "DH001")], "orders.json")

        data = json.loads((tmp_path / "orders.json").read_text(encoding="utf-8"))
        assert data[0]["orderDetails"][0]["productId"] == 1


class TestChangeTrackingStore:
    """Test sent-log and status snapshot persistence."""

    def test_sent_log_round_trip(self, tmp_path):
        """A recorded id is still there after reloading."""
        from core.models.refs import SentLog
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path)
        now = datetime(2024, 5, 1, 12, 0)

        sent_log = SentLog()
        sent_log.record(42, "HD001.01", now)
        store.save_sent_log(sent_log)

        reloaded = ChangeTrackingStore(tmp_path).load_sent_log(now)
        assert reloaded.contains(42)
        data = json.loads((tmp_path / "sentInvoices.json").read_text(encoding="utf-8"))
        assert data["invoiceIds"][0]["code"] == "HD001.01"

    def test_sent_log_retention(self, tmp_path):
        """Entries older than the retention window are dropped on load."""
        from core.models.refs import SentLog
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path, retention_days=60)
        now = datetime(2024, 5, 1, 12, 0)

        sent_log = SentLog()
        sent_log.record(1, "OLD.01", now - timedelta(days=61))
        sent_log.record(2, "NEW.01", now - timedelta(days=59))
        store.save_sent_log(sent_log)

        reloaded = store.load_sent_log(now)
        assert reloaded.sent_ids() == {2}

    @pytest.mark.parametrize("content", ["", "not json", '{"invoiceIds": "oops"}'])
    def test_unreadable_sent_log_loads_empty(self, tmp_path, content):
        """Empty, corrupt or invalid files give an empty sent-log."""
        from core.storage import ChangeTrackingStore
        (tmp_path / "sentInvoices.json").write_text(content, encoding="utf-8")
        assert ChangeTrackingStore(tmp_path).load_sent_log().invoice_ids == []

    def test_status_snapshot_round_trip(self, tmp_path):
        """Snapshot entries persist by code; invalid entries are skipped."""
        from core.models.refs import InvoiceStatusEntry
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path)
        store.save_status_snapshot({"HD001": InvoiceStatusEntry(id=1, status=2)})

        data = json.loads((tmp_path / "invoiceStatus.json").read_text(encoding="utf-8"))
        data["BROKEN"] = {"status": "not-a-number"}
        (tmp_path / "invoiceStatus.json").write_text(json.dumps(data), encoding="utf-8")

        snapshot = store.load_status_snapshot()
        assert set(snapshot) == {"HD001"}
        assert snapshot["HD001"].status == 2

    def test_missing_files(self, tmp_path):
        """A fresh directory means empty state."""
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path)
        assert store.load_status_snapshot() == {}
        status = store.status()
        assert status["files"]["sentInvoices.json"]["exists"] is False
        assert status["sent_log_entries"] == 0
        assert status["report_log_entries"] == 0
        assert status["files"]["sentReports.json"]["exists"] is False

    def test_report_log_round_trip_and_retention(self, tmp_path):
        """Report keys persist under "reports" and expire like the sent-log."""
        from core.models.refs import ReportLog
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path, retention_days=60)
        now = datetime(2024, 5, 1, 12, 0)

        report_log = ReportLog()
        report_log.record("order_invoice:1:11:abc", "order_invoice", now - timedelta(days=61))
        report_log.record("invoice_version:11:12:def", "invoice_version", now)
        store.save_report_log(report_log)

        data = json.loads((tmp_path / "sentReports.json").read_text(encoding="utf-8"))
        assert data["reports"][1]["sentAt"] == "2024-05-01T12:00:00"
        assert store.load_report_log(now).keys() == {"invoice_version:11:12:def"}

    def test_aware_timestamps_prune_on_local_clock(self, tmp_path):
        """Entries written with an offset are compared in local time, like ctx.now()."""
        from core.models.refs import SentLog
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path, retention_days=60)
        now = datetime(2024, 5, 1, 12, 0)
        recent = (now - timedelta(days=59)).astimezone(timezone.utc)
        expired = (now - timedelta(days=61)).astimezone(timezone.utc)

        sent_log = SentLog()
        sent_log.record(1, "OLD.01", expired)
        sent_log.record(2, "NEW.01", recent)
        sent_log.record(3, "NOW.01")
        store.save_sent_log(sent_log)

        assert store.load_sent_log(now).sent_ids() == {2, 3}

    def test_status_uses_given_clock(self, tmp_path):
        """status(now) counts entries against the caller's clock."""
        from core.models.refs import SentLog
        from core.storage import ChangeTrackingStore
        store = ChangeTrackingStore(tmp_path, retention_days=60)
        sent_at = datetime(2024, 5, 1, 12, 0)

        sent_log = SentLog()
        sent_log.record(1, "HD001.01", sent_at)
        store.save_sent_log(sent_log)

        assert store.status(sent_at + timedelta(days=1))["sent_log_entries"] == 1
        assert store.status(sent_at + timedelta(days=61))["sent_log_entries"] == 0


class TestOrderArchive:
    """Test the rolling per-day order archive."""

    def test_window_starts_today(self, tmp_path):
        """The window lists today first and covers window_days days."""
        from core.storage import OrderArchive
        archive = OrderArchive(tmp_path, window_days=3)
        today = date(2024, 5, 10)
        assert archive.window_days(today) == [date(2024, 5, 10), date(2024, 5, 9), date(2024, 5, 8)]

    def test_refresh_policy(self, tmp_path):
        """Today always refreshes; processed past days do not unless their file is gone."""
        from core.storage import OrderArchive
        archive = OrderArchive(tmp_path, window_days=14)
        today = date(2024, 5, 10)
        yesterday = today - timedelta(days=1)

        assert archive.needs_refresh(yesterday, today) is True

        archive.store_day(yesterday, [_order(1, "DH001")], original_count=3)
        archive.store_day(today, [_order(2, "DH002")])

        assert archive.needs_refresh(today, today) is True
        assert archive.needs_refresh(yesterday, today) is False

        (tmp_path / "orders_2024-05-09.json").unlink()
        assert archive.needs_refresh(yesterday, today) is True

    def test_summary_counts(self, tmp_path):
        """The summary records kept and fetched counts per day."""
        from core.storage import OrderArchive
        archive = OrderArchive(tmp_path)
        archive.store_day(date(2024, 5, 9), [_order(1, "DH001")], original_count=3)

        entry = archive.load_summary()["lastProcessedDays"]["2024-05-09"]
        assert entry["processed"] is True
        assert entry["count"] == 1
        assert entry["originalCount"] == 3

    def test_load_all_deduplicates(self, tmp_path):
        """An order archived on two days is loaded once."""
        from core.storage import OrderArchive
        archive = OrderArchive(tmp_path, window_days=2)
        today = date(2024, 5, 10)
        archive.store_day(today, [_order(1, "DH001"), _order(2, "DH002")])
        archive.store_day(today - timedelta(days=1), [_order(1, "DH001")])

        orders = archive.load_all(today)
        assert sorted(o.id for o in orders) == [1, 2]
        assert orders[0].order_details[0].product_name == "Cà phê"

    def test_days_outside_window_are_ignored(self, tmp_path):
        """Only days inside the window are loaded."""
        from core.storage import OrderArchive
        archive = OrderArchive(tmp_path, window_days=2)
        today = date(2024, 5, 10)
        archive.store_day(today - timedelta(days=5), [_order(9, "DH009")])
        assert archive.load_all(today) == []

    def test_latest_orders(self, tmp_path):
        """The previous tick's order set round-trips."""
        from core.storage import OrderArchive
        archive = OrderArchive(tmp_path)
        assert archive.load_latest() == []

        archive.save_latest([_order(1, "DH001")])

        assert [o.code for o in archive.load_latest()] == ["DH001"]
        data = json.loads((tmp_path / "lastOrders.json").read_text(encoding="utf-8"))
        assert data["totalOrders"] == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
