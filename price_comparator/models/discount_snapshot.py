# price_comparator/models/discount_snapshot.py

"""Per-store discount snapshot read from a ``*_discounts_*`` file."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass
class DiscountSnapshot:
    """A percentage discount valid over an inclusive date window.

    ``discount_date`` comes from the file name and is part of the
    identity ``(product_id, store, discount_date)``.
    """

    product_id: str
    store: str
    discount_date: date
    product_name: str
    category: str
    brand: str
    package_quantity: Decimal
    package_unit: str
    from_date: date
    to_date: date
    percentage: Decimal
    id: int | None = None
