# price_comparator/models/price_history.py

"""Read-only projections over product snapshots."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass
class PricePoint:
    """A product's price at one store on one date."""

    date: date
    price: Decimal


@dataclass
class PriceHistory:
    """Chronological prices for one product at one store."""

    product_name: str
    store: str
    price_history: list[PricePoint] = field(
        default_factory=lambda: list[PricePoint]()
    )


@dataclass
class ValuePerUnit:
    """Price normalised by package quantity."""

    product_name: str
    brand: str
    store: str
    price: Decimal
    package_quantity: Decimal
    package_unit: str
    value_per_unit: Decimal
    currency: str
