# price_comparator/models/product_snapshot.py

"""Per-store, per-day product price snapshot."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass
class ProductSnapshot:
    """One store's price for one product on one calendar date.

    Identity is ``(product_id, store, price_date)``; the importer sets
    those once and only ever rewrites the remaining fields.
    """

    product_id: str
    store: str
    price_date: date
    name: str
    category: str
    brand: str
    price: Decimal
    currency: str
    package_quantity: Decimal
    package_unit: str
    id: int | None = None

    @property
    def key(self) -> tuple[str, str, date]:
        """Return the natural identity of this snapshot."""
        return (self.product_id, self.store, self.price_date)
