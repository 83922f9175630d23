# price_comparator/services/alert_service.py

"""Target-price alert lifecycle and one-shot evaluation."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from price_comparator.config.settings import Settings
from price_comparator.errors import InvalidInputError, NotFoundError
from price_comparator.models.alert import Alert
from price_comparator.models.discount_snapshot import DiscountSnapshot
from price_comparator.models.priced_product import PricedProduct
from price_comparator.services.date_math import shift_months
from price_comparator.services.discount_resolver import (
    DiscountMap,
    DiscountResolver,
    lookup_discount,
)
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.alerts")


@dataclass
class TriggeredAlert:
    """Notification produced when an alert's target price is reached."""

    alert_id: int | None
    product_name: str
    store: str
    target_price: Decimal
    current_price: Decimal
    currency: str
    message: str


def build_alert_message(
    priced: PricedProduct, discount: DiscountSnapshot | None,
) -> str:
    """Describe the price drop, mentioning the discount if one applied."""
    currency = priced.snapshot.currency
    if discount is not None:
        return (
            f"Price dropped to {priced.effective_price} {currency} "
            f"(Original: {priced.snapshot.price} {currency}, "
            f"Discount: {discount.percentage}%)"
        )
    return f"Price dropped to {priced.effective_price} {currency}"


class AlertService:
    """Creates, toggles and evaluates price alerts.

    Alerts are one-shot: the first evaluation that sees an effective
    price at or below the target deactivates the alert, and nothing
    re-arms it except :meth:`activate`.
    """

    def __init__(
        self,
        store: RecordStore,
        resolver: DiscountResolver | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver or DiscountResolver(store)

    # ── Lifecycle ────────────────────────────────────────

    def create(
        self,
        product_name: str,
        store: str,
        target_price: Decimal,
        today: date | None = None,
    ) -> Alert:
        """Persist a new active alert."""
        if not product_name or not product_name.strip():
            msg = "Product name cannot be blank"
            raise InvalidInputError(msg)
        if not store or not store.strip():
            msg = "Store cannot be blank"
            raise InvalidInputError(msg)
        if not target_price.is_finite() or target_price <= 0:
            msg = f"Target price must be greater than 0, got {target_price}"
            raise InvalidInputError(msg)

        alert = self._store.save_alert(
            Alert(
                product_name=product_name.strip(),
                store=store.strip(),
                target_price=target_price,
                creation_date=today or date.today(),
            )
        )
        logger.info(
            "Created price alert %s for '%s' at %s, target %s",
            alert.id,
            alert.product_name,
            alert.store,
            alert.target_price,
        )
        return alert

    def activate(self, alert_id: int) -> Alert:
        """Re-arm an alert. Raises NotFoundError for unknown ids."""
        return self._set_active(alert_id, True)

    def deactivate(self, alert_id: int) -> Alert:
        """Disarm an alert. Raises NotFoundError for unknown ids."""
        return self._set_active(alert_id, False)

    def list_alerts(self, active_only: bool = False) -> list[Alert]:
        """Return stored alerts."""
        return self._store.find_alerts(active_only=active_only)

    def _set_active(self, alert_id: int, active: bool) -> Alert:
        with self._store.transaction():
            alert = self._store.get_alert(alert_id)
            if alert is None:
                msg = f"Price alert not found with ID: {alert_id}"
                raise NotFoundError(msg)
            alert.active = active
            self._store.save_alert(alert)
        logger.info(
            "%s price alert %d",
            "Activated" if active else "Deactivated",
            alert_id,
        )
        return alert

    # ── Evaluation ───────────────────────────────────────

    def evaluate_all(self, today: date | None = None) -> list[TriggeredAlert]:
        """Check every active alert against its latest effective price."""
        today = today or date.today()
        active = self._store.find_alerts(active_only=True)
        if not active:
            logger.info("No active alerts found")
            return []

        logger.info(
            "Checking %d active alerts with discounts for %s",
            len(active),
            today,
        )
        discount_map = self._resolver.best_discount_map(today)
        window_start = shift_months(today, -Settings.ALERT_LOOKBACK_MONTHS)

        triggered: list[TriggeredAlert] = []
        for alert in active:
            if alert.id is None:
                continue
            hit = self._evaluate_one(
                alert.id, discount_map, (window_start, today),
            )
            if hit is not None:
                triggered.append(hit)

        logger.info(
            "Price alert check completed, %d triggered", len(triggered),
        )
        return triggered

    def _evaluate_one(
        self,
        alert_id: int,
        discount_map: DiscountMap,
        window: tuple[date, date],
    ) -> TriggeredAlert | None:
        """Read, decide and persist one alert as a single transaction."""
        with self._store.transaction():
            # Re-read so a concurrent deactivation is honoured
            alert = self._store.get_alert(alert_id)
            if alert is None or not alert.active:
                return None

            versions = self._store.find_snapshots(
                name=alert.product_name,
                store=alert.store,
                date_range=window,
            )
            if not versions:
                logger.debug(
                    "No products found for alert %d: %s - %s",
                    alert_id,
                    alert.product_name,
                    alert.store,
                )
                return None

            snapshot = versions[-1]
            discount = lookup_discount(
                discount_map, snapshot.name, snapshot.store,
            )
            priced = PricedProduct(snapshot=snapshot, discount=discount)
            if priced.effective_price > alert.target_price:
                return None

            alert.active = False
            self._store.save_alert(alert)

        logger.info(
            "ALERT TRIGGERED for %s at %s: current %s (original %s), "
            "target %s, price date %s",
            snapshot.name,
            snapshot.store,
            priced.effective_price,
            snapshot.price,
            alert.target_price,
            snapshot.price_date,
        )
        return TriggeredAlert(
            alert_id=alert.id,
            product_name=snapshot.name,
            store=snapshot.store,
            target_price=alert.target_price,
            current_price=priced.effective_price,
            currency=snapshot.currency,
            message=build_alert_message(priced, discount),
        )
