# price_comparator/services/basket_optimizer.py

"""Greedy least-cost assignment of basket items to stores."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from price_comparator.config.settings import Settings
from price_comparator.errors import InvalidInputError
from price_comparator.models.basket import (
    BasketItem,
    OptimizedBasket,
    ShoppingList,
)
from price_comparator.models.priced_product import PricedProduct
from price_comparator.models.product_snapshot import ProductSnapshot
from price_comparator.services.discount_resolver import (
    DiscountMap,
    DiscountResolver,
    lookup_discount,
)
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.basket")


@dataclass
class _Selection:
    """The cheapest candidate chosen for one basket item."""

    priced: PricedProduct
    quantity: int

    @property
    def original_cost(self) -> Decimal:
        return self.priced.snapshot.price * self.quantity

    @property
    def effective_cost(self) -> Decimal:
        return self.priced.effective_price * self.quantity


def validate_items(items: list[BasketItem]) -> None:
    """Reject blank product names and quantities below one."""
    for item in items:
        if not item.product_name or not item.product_name.strip():
            msg = "Product name cannot be blank"
            raise InvalidInputError(msg)
        if item.quantity < 1:
            msg = (
                f"Quantity for '{item.product_name}' must be at least 1, "
                f"got {item.quantity}"
            )
            raise InvalidInputError(msg)


def cheapest(candidates: list[PricedProduct]) -> PricedProduct:
    """Return the lowest effective price; ties keep the first candidate."""
    return min(candidates, key=lambda p: p.effective_price)


class BasketOptimizer:
    """Picks the cheapest store for every basket item independently.

    There is no attempt to reduce the number of stores visited; each
    item simply goes to whichever store sells it cheapest after
    discounts on the requested date.
    """

    def __init__(
        self,
        store: RecordStore,
        resolver: DiscountResolver | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver or DiscountResolver(store)

    def optimize(
        self, items: list[BasketItem], day: date,
    ) -> OptimizedBasket:
        """Compute per-store shopping lists and grand totals for *day*."""
        validate_items(items)
        logger.info(
            "Optimizing basket with %d items for %s", len(items), day,
        )
        if not items:
            return OptimizedBasket()

        discount_map = self._resolver.best_discount_map(day)
        candidates = self._priced_candidates(items, day, discount_map)

        by_store: dict[str, list[_Selection]] = {}
        for item in items:
            available = candidates.get(item.product_name)
            if not available:
                continue
            choice = cheapest(available)
            store = choice.snapshot.store
            by_store.setdefault(store, []).append(
                _Selection(priced=choice, quantity=item.quantity)
            )
            logger.debug(
                "Selected %s from %s at %s (quantity %d)",
                item.product_name,
                store,
                choice.effective_price,
                item.quantity,
            )

        shopping_lists = sorted(
            (
                self._shopping_list(store, selections)
                for store, selections in by_store.items()
            ),
            key=lambda s: s.store_name,
        )
        total_original = sum(
            (s.original_cost for s in shopping_lists), Decimal("0"),
        )
        total_effective = sum(
            (s.cost_after_discounts for s in shopping_lists), Decimal("0"),
        )
        result = OptimizedBasket(
            total_original_cost=total_original,
            total_cost_after_discounts=total_effective,
            total_savings=total_original - total_effective,
            store_shopping_lists=shopping_lists,
        )
        logger.info(
            "Optimization complete: original %s, after discounts %s, "
            "savings %s",
            result.total_original_cost,
            result.total_cost_after_discounts,
            result.total_savings,
        )
        return result

    # ── Private helpers ──────────────────────────────────

    def _snapshots_for(
        self, product_name: str, day: date,
    ) -> list[ProductSnapshot]:
        """Fetch candidate snapshots for one product name."""
        window = Settings.BASKET_DATE_WINDOW_DAYS
        if window <= 0:
            return self._store.find_snapshots(
                name=product_name, date_exact=day,
            )

        # Oldest first, so later dates overwrite earlier ones per store
        latest: dict[str, ProductSnapshot] = {}
        for snapshot in self._store.find_snapshots(
            name=product_name,
            date_range=(day - timedelta(days=window), day),
        ):
            latest[snapshot.store] = snapshot
        return list(latest.values())

    def _priced_candidates(
        self,
        items: list[BasketItem],
        day: date,
        discount_map: DiscountMap,
    ) -> dict[str, list[PricedProduct]]:
        """Price every candidate snapshot for each distinct item name."""
        priced: dict[str, list[PricedProduct]] = {}
        for name in dict.fromkeys(i.product_name for i in items):
            snapshots = self._snapshots_for(name, day)
            if not snapshots:
                logger.warning(
                    "Product '%s' not found for %s, skipping this item",
                    name,
                    day,
                )
                continue
            priced[name] = [
                PricedProduct(
                    snapshot=s,
                    discount=lookup_discount(discount_map, s.name, s.store),
                )
                for s in snapshots
            ]
        return priced

    @staticmethod
    def _shopping_list(
        store: str, selections: list[_Selection],
    ) -> ShoppingList:
        """Roll selections for one store into a ShoppingList."""
        original = sum(
            (s.original_cost for s in selections), Decimal("0"),
        )
        effective = sum(
            (s.effective_cost for s in selections), Decimal("0"),
        )
        products = [s.priced.as_discounted_snapshot() for s in selections]
        return ShoppingList(
            store_name=store,
            products=products,
            item_count=len(products),
            original_cost=original,
            cost_after_discounts=effective,
            savings=original - effective,
        )
