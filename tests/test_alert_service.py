# tests/test_alert_service.py

"""Tests for price alert lifecycle and evaluation."""

import unittest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

from snapshot_samples import make_discount, make_snapshot

from price_comparator.errors import InvalidInputError, NotFoundError
from price_comparator.services.alert_service import AlertService
from price_comparator.storage.record_store import RecordStore

TODAY = date(2025, 5, 8)


class _AlertMixin:
    """Provide an in-memory store and an alert service."""

    store: RecordStore
    service: AlertService

    def _setup_service(self) -> None:
        self.store = RecordStore(db_path=Path(":memory:"))
        self.service = AlertService(self.store)


class TestAlertLifecycle(_AlertMixin, unittest.TestCase):
    """create / activate / deactivate / list."""

    def setUp(self) -> None:
        self._setup_service()

    def tearDown(self) -> None:
        self.store.close()

    def test_create_is_active(self) -> None:
        alert = self.service.create(
            "lapte zuzu", "lidl", Decimal("8.50"), today=TODAY,
        )
        self.assertIsNotNone(alert.id)
        self.assertTrue(alert.active)
        self.assertEqual(alert.creation_date, TODAY)

    def test_create_rejects_non_positive_target(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.service.create("lapte zuzu", "lidl", Decimal("0"))

    def test_create_rejects_blank_store(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.service.create("lapte zuzu", " ", Decimal("1"))

    def test_deactivate_then_activate(self) -> None:
        alert = self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        assert alert.id is not None
        self.service.deactivate(alert.id)
        self.assertEqual(self.service.list_alerts(active_only=True), [])
        self.service.activate(alert.id)
        self.assertEqual(len(self.service.list_alerts(active_only=True)), 1)

    def test_toggle_unknown_id(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.service.activate(999)
        self.assertIn("999", str(ctx.exception))
        with self.assertRaises(NotFoundError):
            self.service.deactivate(999)

    def test_list_all_includes_inactive(self) -> None:
        a = self.service.create("a", "lidl", Decimal("1"))
        self.service.create("b", "lidl", Decimal("1"))
        assert a.id is not None
        self.service.deactivate(a.id)
        self.assertEqual(len(self.service.list_alerts()), 2)


class TestAlertEvaluation(_AlertMixin, unittest.TestCase):
    """evaluate_all() semantics."""

    def setUp(self) -> None:
        self._setup_service()

    def tearDown(self) -> None:
        self.store.close()

    def test_triggers_once_and_deactivates(self) -> None:
        alert = self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([make_snapshot(price="8.00")])

        triggered = self.service.evaluate_all(today=TODAY)

        [hit] = triggered
        self.assertEqual(hit.alert_id, alert.id)
        self.assertEqual(hit.current_price, Decimal("8.00"))
        self.assertEqual(hit.message, "Price dropped to 8.00 RON")
        self.assertEqual(self.service.list_alerts(active_only=True), [])
        self.assertEqual(self.service.evaluate_all(today=TODAY), [])

    def test_above_target_stays_active(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([make_snapshot(price="9.80")])

        self.assertEqual(self.service.evaluate_all(today=TODAY), [])
        self.assertEqual(len(self.service.list_alerts(active_only=True)), 1)

    def test_equal_to_target_triggers(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("9.80"))
        self.store.upsert_snapshots([make_snapshot(price="9.80")])
        self.assertEqual(len(self.service.evaluate_all(today=TODAY)), 1)

    def test_discount_brings_price_under_target(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.70"))
        self.store.upsert_snapshots([make_snapshot(price="9.80")])
        self.store.upsert_discounts([make_discount(percentage="12")])

        [hit] = self.service.evaluate_all(today=TODAY)

        self.assertEqual(hit.current_price, Decimal("8.62"))
        self.assertEqual(
            hit.message,
            "Price dropped to 8.62 RON (Original: 9.80 RON, Discount: 12%)",
        )

    def test_latest_snapshot_in_window_is_used(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([
            make_snapshot(price="8.00", day=date(2025, 5, 1)),
            make_snapshot(price="9.00", day=date(2025, 5, 7)),
        ])
        self.assertEqual(self.service.evaluate_all(today=TODAY), [])

    def test_snapshot_older_than_lookback_ignored(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([
            make_snapshot(price="8.00", day=date(2025, 4, 7)),
        ])
        self.assertEqual(self.service.evaluate_all(today=TODAY), [])

    def test_lookback_start_is_inclusive(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([
            make_snapshot(price="8.00", day=date(2025, 4, 8)),
        ])
        self.assertEqual(len(self.service.evaluate_all(today=TODAY)), 1)

    def test_future_snapshot_ignored(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([
            make_snapshot(price="8.00", day=date(2025, 5, 9)),
        ])
        self.assertEqual(self.service.evaluate_all(today=TODAY), [])

    def test_other_store_does_not_trigger(self) -> None:
        self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        self.store.upsert_snapshots([
            make_snapshot(price="8.00", store="kaufland"),
        ])
        self.assertEqual(self.service.evaluate_all(today=TODAY), [])

    def test_no_active_alerts(self) -> None:
        self.assertEqual(self.service.evaluate_all(today=TODAY), [])

    def test_alert_deactivated_meanwhile_is_skipped(self) -> None:
        """The per-alert check re-reads state before deciding."""
        alert = self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        assert alert.id is not None
        self.store.upsert_snapshots([make_snapshot(price="8.00")])
        stale = replace(alert)
        self.service.deactivate(alert.id)

        with patch.object(self.store, "find_alerts", return_value=[stale]):
            triggered = self.service.evaluate_all(today=TODAY)

        self.assertEqual(triggered, [])

    def test_reactivated_alert_can_fire_again(self) -> None:
        alert = self.service.create("lapte zuzu", "lidl", Decimal("8.50"))
        assert alert.id is not None
        self.store.upsert_snapshots([make_snapshot(price="8.00")])
        self.service.evaluate_all(today=TODAY)

        self.service.activate(alert.id)

        self.assertEqual(len(self.service.evaluate_all(today=TODAY)), 1)


if __name__ == "__main__":
    unittest.main()
