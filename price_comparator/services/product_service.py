# price_comparator/services/product_service.py

"""Read-only product queries: lookups, value per unit, price history."""

import logging
from datetime import date

from price_comparator.config.settings import Settings
from price_comparator.errors import InvalidInputError, NotFoundError
from price_comparator.models.price_history import (
    PriceHistory,
    PricePoint,
    ValuePerUnit,
)
from price_comparator.models.priced_product import round_half_up
from price_comparator.models.product_snapshot import ProductSnapshot
from price_comparator.services.date_math import shift_months
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.products")


def group_history(snapshots: list[ProductSnapshot]) -> list[PriceHistory]:
    """Group date-ordered snapshots into one history per (name, store)."""
    grouped: dict[tuple[str, str], PriceHistory] = {}
    for s in snapshots:
        history = grouped.setdefault(
            (s.name, s.store),
            PriceHistory(product_name=s.name, store=s.store),
        )
        history.price_history.append(
            PricePoint(date=s.price_date, price=s.price)
        )
    return list(grouped.values())


class ProductService:
    """Queries over stored product snapshots."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def all_products(self) -> list[ProductSnapshot]:
        """Return every stored snapshot, oldest first."""
        return self._store.find_snapshots()

    def get_by_id(self, snapshot_id: int) -> ProductSnapshot:
        """Return one snapshot or raise NotFoundError."""
        snapshot = self._store.get_snapshot(snapshot_id)
        if snapshot is None:
            msg = f"Product not found with id: {snapshot_id}"
            raise NotFoundError(msg)
        return snapshot

    def by_name_and_date(
        self, name: str, day: date,
    ) -> list[ProductSnapshot]:
        """Return a product's snapshots across stores on *day*."""
        return self._store.find_snapshots(name=name, date_exact=day)

    def by_store_and_date(
        self, store: str, day: date,
    ) -> list[ProductSnapshot]:
        """Return every snapshot of one store on *day*."""
        return self._store.find_snapshots(store=store, date_exact=day)

    def value_per_unit(self, day: date) -> list[ValuePerUnit]:
        """Price per package unit for every snapshot on *day*.

        Snapshots with a non-positive package quantity are left out.
        Results are sorted by product name, then by value per unit.
        """
        values: list[ValuePerUnit] = []
        for s in self._store.find_snapshots(date_exact=day):
            if s.package_quantity <= 0:
                logger.warning(
                    "Product %s in store %s has invalid package "
                    "quantity %s, cannot compute value per unit",
                    s.name,
                    s.store,
                    s.package_quantity,
                )
                continue
            values.append(ValuePerUnit(
                product_name=s.name,
                brand=s.brand,
                store=s.store,
                price=s.price,
                package_quantity=s.package_quantity,
                package_unit=s.package_unit,
                value_per_unit=round_half_up(
                    s.price / s.package_quantity,
                    Settings.VALUE_PER_UNIT_PLACES,
                ),
                currency=s.currency,
            ))
        values.sort(key=lambda v: (v.product_name, v.value_per_unit))
        return values

    def price_history(
        self,
        filter_type: str,
        value: str,
        store: str | None = None,
        start: date | None = None,
        end: date | None = None,
        today: date | None = None,
    ) -> list[PriceHistory]:
        """Price history for products matching name, category or brand.

        Missing bounds default to one year either side of today.
        """
        normalized = filter_type.strip().lower()
        if normalized not in Settings.HISTORY_FILTERS:
            logger.warning("Invalid price history filter: %s", filter_type)
            msg = (
                "Invalid identifier type. Must be 'name', 'category', "
                "or 'brand'."
            )
            raise InvalidInputError(msg)

        today = today or date.today()
        span = Settings.HISTORY_WINDOW_MONTHS
        window = (
            start or shift_months(today, -span),
            end or shift_months(today, span),
        )
        if window[0] > window[1]:
            msg = f"start {window[0]} is after end {window[1]}"
            raise InvalidInputError(msg)

        snapshots = self._store.find_snapshots(
            store=store, date_range=window, **{normalized: value},
        )
        return group_history(snapshots)
