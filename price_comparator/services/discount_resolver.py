# price_comparator/services/discount_resolver.py

"""Select the single applicable discount per product and store."""

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from price_comparator.config.settings import Settings
from price_comparator.errors import InvalidInputError
from price_comparator.models.discount_snapshot import DiscountSnapshot
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.discounts")

DiscountMap = dict[str, dict[str, DiscountSnapshot]]


@dataclass
class BestDiscount:
    """The strongest active discount for one product and brand."""

    product_name: str
    brand: str
    store: str
    from_date: date
    to_date: date
    percentage: Decimal


def better_discount(
    current: DiscountSnapshot, candidate: DiscountSnapshot,
) -> DiscountSnapshot:
    """Keep *candidate* only if it is strictly higher than *current*.

    Equal percentages keep the discount seen first.
    """
    return candidate if candidate.percentage > current.percentage else current


def select_best_discounts(
    discounts: Iterable[DiscountSnapshot],
    key: Callable[[DiscountSnapshot], Hashable],
) -> dict[Hashable, DiscountSnapshot]:
    """Reduce *discounts* to the best one per *key*, in first-seen order."""
    best: dict[Hashable, DiscountSnapshot] = {}
    for discount in discounts:
        k = key(discount)
        best[k] = (
            better_discount(best[k], discount) if k in best else discount
        )
    return best


def build_discount_map(discounts: Iterable[DiscountSnapshot]) -> DiscountMap:
    """Group discounts as product name -> store -> best discount."""
    best = select_best_discounts(
        discounts, key=lambda d: (d.product_name, d.store),
    )
    result: DiscountMap = {}
    for discount in best.values():
        result.setdefault(discount.product_name, {})[discount.store] = discount
    return result


def lookup_discount(
    discount_map: DiscountMap, product_name: str, store: str,
) -> DiscountSnapshot | None:
    """Return the mapped discount for a product at a store, if any."""
    return discount_map.get(product_name, {}).get(store)


class DiscountResolver:
    """Discount queries over the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def all_discounts(self) -> list[DiscountSnapshot]:
        """Return every stored discount."""
        return self._store.find_discounts()

    def active_discounts(self, day: date) -> list[DiscountSnapshot]:
        """Return discounts whose validity window contains *day*."""
        return self._store.find_discounts(active_on=day)

    def best_discount_map(self, day: date) -> DiscountMap:
        """Build product name -> store -> highest active discount."""
        discount_map = build_discount_map(self.active_discounts(day))
        logger.debug(
            "Built discount map for %s covering %d products",
            day,
            len(discount_map),
        )
        return discount_map

    def best_discounts_across_stores(
        self,
        day: date,
        limit: int = Settings.DEFAULT_BEST_DISCOUNTS_LIMIT,
    ) -> list[BestDiscount]:
        """Return the top discount per (product, brand), highest first.

        ``limit`` of 0 yields an empty list; a negative limit is
        rejected.
        """
        if limit < 0:
            msg = f"limit must be >= 0, got {limit}"
            raise InvalidInputError(msg)

        best = select_best_discounts(
            self.active_discounts(day),
            key=lambda d: (d.product_name, d.brand),
        )
        ranked = sorted(
            best.values(), key=lambda d: d.percentage, reverse=True,
        )
        return [
            BestDiscount(
                product_name=d.product_name,
                brand=d.brand,
                store=d.store,
                from_date=d.from_date,
                to_date=d.to_date,
                percentage=d.percentage,
            )
            for d in ranked[:limit]
        ]

    def recently_added(
        self,
        days_back: int = Settings.DEFAULT_NEW_DISCOUNTS_DAYS,
        today: date | None = None,
    ) -> list[DiscountSnapshot]:
        """Return discounts whose file date is within *days_back* days."""
        if days_back < 0:
            msg = f"days_back must be >= 0, got {days_back}"
            raise InvalidInputError(msg)
        threshold = (today or date.today()) - timedelta(days=days_back)
        return self._store.find_discounts(discount_date_ge=threshold)
