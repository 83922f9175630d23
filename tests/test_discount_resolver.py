# tests/test_discount_resolver.py

"""Tests for discount selection and discount queries."""

import unittest
from datetime import date
from decimal import Decimal
from pathlib import Path

from snapshot_samples import make_discount

from price_comparator.errors import InvalidInputError
from price_comparator.services.discount_resolver import (
    DiscountResolver,
    build_discount_map,
    lookup_discount,
    select_best_discounts,
)
from price_comparator.storage.record_store import RecordStore

DAY = date(2025, 5, 8)


class TestSelectBestDiscounts(unittest.TestCase):
    """Pure reduction over discounts."""

    def test_higher_percentage_wins(self) -> None:
        best = select_best_discounts(
            [
                make_discount(percentage="10", product_id="A"),
                make_discount(percentage="20", product_id="B"),
            ],
            key=lambda d: (d.product_name, d.store),
        )
        [winner] = best.values()
        self.assertEqual(winner.percentage, Decimal("20"))

    def test_tie_keeps_first_encountered(self) -> None:
        best = select_best_discounts(
            [
                make_discount(percentage="15", product_id="FIRST"),
                make_discount(percentage="15", product_id="SECOND"),
            ],
            key=lambda d: (d.product_name, d.store),
        )
        [winner] = best.values()
        self.assertEqual(winner.product_id, "FIRST")

    def test_empty_input(self) -> None:
        self.assertEqual(
            select_best_discounts([], key=lambda d: d.store), {},
        )


class TestDiscountMap(unittest.TestCase):
    """build_discount_map() and lookup_discount()."""

    def test_one_entry_per_name_and_store(self) -> None:
        discount_map = build_discount_map([
            make_discount(store="lidl", percentage="10", product_id="A"),
            make_discount(store="lidl", percentage="20", product_id="B"),
            make_discount(store="kaufland", percentage="5"),
        ])
        lidl = lookup_discount(discount_map, "lapte zuzu", "lidl")
        kaufland = lookup_discount(discount_map, "lapte zuzu", "kaufland")
        assert lidl is not None and kaufland is not None
        self.assertEqual(lidl.percentage, Decimal("20"))
        self.assertEqual(kaufland.percentage, Decimal("5"))

    def test_lookup_missing(self) -> None:
        self.assertIsNone(lookup_discount({}, "paine", "lidl"))


class TestDiscountResolver(unittest.TestCase):
    """Resolver queries backed by an in-memory store."""

    def setUp(self) -> None:
        self.store = RecordStore(db_path=Path(":memory:"))
        self.resolver = DiscountResolver(self.store)

    def tearDown(self) -> None:
        self.store.close()

    def test_best_map_picks_twenty_over_ten(self) -> None:
        self.store.upsert_discounts([
            make_discount(percentage="10", discount_date=date(2025, 5, 1)),
            make_discount(percentage="20", discount_date=date(2025, 5, 2)),
        ])
        discount_map = self.resolver.best_discount_map(DAY)
        chosen = lookup_discount(discount_map, "lapte zuzu", "lidl")
        assert chosen is not None
        self.assertEqual(chosen.percentage, Decimal("20"))

    def test_best_map_ignores_inactive(self) -> None:
        self.store.upsert_discounts([
            make_discount(
                percentage="50",
                from_date=date(2025, 4, 1),
                to_date=date(2025, 4, 30),
            ),
        ])
        self.assertEqual(self.resolver.best_discount_map(DAY), {})

    def test_all_and_active(self) -> None:
        self.store.upsert_discounts([
            make_discount(product_id="A", name="a"),
            make_discount(
                product_id="B", name="b",
                from_date=date(2025, 6, 1), to_date=date(2025, 6, 7),
            ),
        ])
        self.assertEqual(len(self.resolver.all_discounts()), 2)
        self.assertEqual(
            [d.product_id for d in self.resolver.active_discounts(DAY)],
            ["A"],
        )

    def test_best_across_stores_one_row_per_product_and_brand(self) -> None:
        self.store.upsert_discounts([
            make_discount(store="lidl", percentage="10"),
            make_discount(store="kaufland", percentage="25"),
            make_discount(
                store="lidl", percentage="30", name="iaurt",
                product_id="P002",
            ),
            make_discount(
                store="profi", percentage="15", brand="Olympus",
                product_id="P003",
            ),
        ])
        best = self.resolver.best_discounts_across_stores(DAY)

        self.assertEqual(
            [(b.product_name, b.brand, b.store, b.percentage) for b in best],
            [
                ("iaurt", "Zuzu", "lidl", Decimal("30")),
                ("lapte zuzu", "Zuzu", "kaufland", Decimal("25")),
                ("lapte zuzu", "Olympus", "profi", Decimal("15")),
            ],
        )

    def test_best_across_stores_limit(self) -> None:
        self.store.upsert_discounts([
            make_discount(name=f"p{i}", product_id=f"P{i}",
                          percentage=str(10 + i))
            for i in range(5)
        ])
        best = self.resolver.best_discounts_across_stores(DAY, limit=2)
        self.assertEqual(
            [b.percentage for b in best], [Decimal("14"), Decimal("13")],
        )

    def test_limit_zero_returns_empty(self) -> None:
        self.store.upsert_discounts([make_discount()])
        self.assertEqual(
            self.resolver.best_discounts_across_stores(DAY, limit=0), [],
        )

    def test_negative_limit_rejected(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.resolver.best_discounts_across_stores(DAY, limit=-1)

    def test_recently_added(self) -> None:
        self.store.upsert_discounts([
            make_discount(product_id="OLD", discount_date=date(2025, 5, 1)),
            make_discount(product_id="NEW", discount_date=date(2025, 5, 7)),
        ])
        recent = self.resolver.recently_added(days_back=1, today=DAY)
        self.assertEqual([d.product_id for d in recent], ["NEW"])

    def test_recently_added_zero_days_means_today(self) -> None:
        self.store.upsert_discounts([
            make_discount(product_id="TODAY", discount_date=DAY),
            make_discount(product_id="YDAY", discount_date=date(2025, 5, 7)),
        ])
        recent = self.resolver.recently_added(days_back=0, today=DAY)
        self.assertEqual([d.product_id for d in recent], ["TODAY"])

    def test_recently_added_negative_rejected(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.resolver.recently_added(days_back=-1, today=DAY)


if __name__ == "__main__":
    unittest.main()
