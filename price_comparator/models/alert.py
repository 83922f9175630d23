# price_comparator/models/alert.py

"""User-defined target-price alert."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass
class Alert:
    """Fires once when a product's effective price reaches the target."""

    product_name: str
    store: str
    target_price: Decimal
    creation_date: date
    active: bool = True
    id: int | None = None
