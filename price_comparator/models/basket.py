# price_comparator/models/basket.py

"""Basket input and optimized-basket result models."""

from dataclasses import dataclass, field
from decimal import Decimal

from price_comparator.models.product_snapshot import ProductSnapshot


@dataclass
class BasketItem:
    """One requested product and how many units of it."""

    product_name: str
    quantity: int = 1


@dataclass
class ShoppingList:
    """Items to buy at one store with the cost breakdown."""

    store_name: str
    products: list[ProductSnapshot] = field(
        default_factory=lambda: list[ProductSnapshot]()
    )
    item_count: int = 0
    original_cost: Decimal = Decimal("0")
    cost_after_discounts: Decimal = Decimal("0")
    savings: Decimal = Decimal("0")


@dataclass
class OptimizedBasket:
    """Least-cost assignment of basket items to stores."""

    total_original_cost: Decimal = Decimal("0")
    total_cost_after_discounts: Decimal = Decimal("0")
    total_savings: Decimal = Decimal("0")
    store_shopping_lists: list[ShoppingList] = field(
        default_factory=lambda: list[ShoppingList]()
    )
