# price_comparator/models/priced_product.py

"""Effective (discount-adjusted) pricing for a product snapshot."""

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

from price_comparator.config.settings import Settings
from price_comparator.models.discount_snapshot import DiscountSnapshot
from price_comparator.models.product_snapshot import ProductSnapshot

_HUNDRED = Decimal(100)


def round_half_up(value: Decimal, places: int) -> Decimal:
    """Round *value* to *places* fraction digits, halves away from zero."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def effective_price(
    price: Decimal, discount: DiscountSnapshot | None,
) -> Decimal:
    """Apply an optional percentage discount to *price*.

    The discount amount is rounded to currency precision before it is
    subtracted, so 9.80 at 12% gives 9.80 - 1.18 = 8.62.
    """
    if discount is None:
        return price
    amount = round_half_up(
        price * discount.percentage / _HUNDRED,
        Settings.CURRENCY_PLACES,
    )
    return price - amount


@dataclass
class PricedProduct:
    """A snapshot paired with the discount that applies to it, if any."""

    snapshot: ProductSnapshot
    discount: DiscountSnapshot | None = None
    effective_price: Decimal = field(init=False)

    def __post_init__(self) -> None:
        self.effective_price = effective_price(
            self.snapshot.price, self.discount,
        )

    def as_discounted_snapshot(self) -> ProductSnapshot:
        """Return a copy of the snapshot carrying the effective price."""
        return replace(self.snapshot, price=self.effective_price)
