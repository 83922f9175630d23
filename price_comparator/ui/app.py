# price_comparator/ui/app.py

"""Terminal UI for the price_comparator engine."""

import asyncio
import logging
from datetime import date
from typing import cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Static,
)

from price_comparator.cli.runner import parse_basket_items
from price_comparator.errors import PriceComparatorError
from price_comparator.models.basket import OptimizedBasket
from price_comparator.services.alert_service import AlertService
from price_comparator.services.basket_optimizer import BasketOptimizer
from price_comparator.services.discount_resolver import DiscountResolver
from price_comparator.storage.file_manager import FileManager
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.ui")

_BASKET_COLUMNS = ("Store", "Product", "Package", "Price")
_DISCOUNT_COLUMNS = ("Product", "Brand", "Store", "Valid", "Discount")
_ALERT_COLUMNS = ("Product", "Store", "Target", "Current", "Message")


class PriceComparatorApp(App[object]):
    """Terminal UI for basket optimization, discounts and alerts."""

    CSS = """
    #title { text-style: bold; padding: 0 1; }
    #basket_bar { height: auto; }
    #basket_input { width: 3fr; }
    #date_input { width: 1fr; }
    #status { padding: 0 1; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("d", "best_discounts", "Best Discounts"),
        Binding("a", "check_alerts", "Check Alerts"),
        Binding("s", "save", "Save"),
        Binding("e", "export", "Export CSV"),
    ]

    def __init__(self, store: RecordStore | None = None) -> None:
        super().__init__()
        self._owns_store = store is None
        self.store = store or RecordStore()
        self.optimizer = BasketOptimizer(self.store)
        self.resolver = DiscountResolver(self.store)
        self.alerts = AlertService(self.store, self.resolver)
        self.basket: OptimizedBasket | None = None
        self.basket_date: date = date.today()

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        yield Header()
        yield Container(
            Static("🛒 Price Comparator", id="title"),
            Horizontal(
                Input(
                    placeholder="Basket, e.g. lapte zuzu:2, paine:1",
                    id="basket_input",
                ),
                Input(placeholder="YYYY-MM-DD (today)", id="date_input"),
                Button("Optimize", variant="primary", id="optimize_btn"),
                id="basket_bar",
            ),
            Static("Ready", id="status"),
            cast(
                DataTable[str | Text],
                DataTable(
                    id="results_table",
                    zebra_stripes=True,
                    cursor_type="row",
                ),
            ),
            id="main_container",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Configure the results table columns on startup."""
        self._reset_table(_BASKET_COLUMNS)

    def on_unmount(self) -> None:
        """Release the database connection if the app opened it."""
        if self._owns_store:
            self.store.close()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button click events."""
        if event.button.id == "optimize_btn":
            await self.perform_optimize()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle Enter in either input."""
        if event.input.id in ("basket_input", "date_input"):
            await self.perform_optimize()

    def _table(self) -> DataTable[str | Text]:
        return cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )

    def _reset_table(self, columns: tuple[str, ...]) -> None:
        table = self._table()
        table.clear(columns=True)
        table.add_columns(*columns)

    def _selected_date(self) -> date | None:
        """Parse the date input; ``None`` (and a warning) if invalid."""
        raw = self.query_one("#date_input", Input).value.strip()
        if not raw:
            return date.today()
        try:
            return date.fromisoformat(raw)
        except ValueError:
            self.notify(f"Invalid date '{raw}'", severity="error")
            return None

    async def perform_optimize(self) -> None:
        """Optimize the basket typed into the input."""
        raw = self.query_one("#basket_input", Input).value.strip()
        if not raw:
            self.notify("Please enter at least one item", severity="warning")
            return
        day = self._selected_date()
        if day is None:
            return

        status = self.query_one("#status", Static)
        status.update(f"🔍 Optimizing basket for {day}...")
        try:
            items = parse_basket_items(
                [part for part in raw.split(",") if part.strip()]
            )
            self.basket = await asyncio.to_thread(
                self.optimizer.optimize, items, day,
            )
        except PriceComparatorError as exc:
            logger.warning("Basket rejected: %s", exc)
            self.notify(str(exc), severity="error")
            status.update("❌ Basket rejected")
            return

        self.basket_date = day
        self.populate_basket()
        if not self.basket.store_shopping_lists:
            status.update("❌ No products found for that date")
        else:
            status.update(
                f"✅ {self.basket.total_cost_after_discounts} after discounts "
                f"(saved {self.basket.total_savings}, "
                f"{len(self.basket.store_shopping_lists)} stores)"
            )

    def populate_basket(self) -> None:
        """Fill the table with the current basket's shopping lists."""
        self._reset_table(_BASKET_COLUMNS)
        if self.basket is None:
            return
        table = self._table()
        for shopping_list in self.basket.store_shopping_lists:
            for p in shopping_list.products:
                table.add_row(
                    shopping_list.store_name.upper(),
                    p.name[:60],
                    f"{p.package_quantity} {p.package_unit}",
                    Text(f"{p.price} {p.currency}", style="bold green"),
                )

    def action_best_discounts(self) -> None:
        """Show the best discount per product for the selected date."""
        day = self._selected_date()
        if day is None:
            return
        best = self.resolver.best_discounts_across_stores(day)
        self._reset_table(_DISCOUNT_COLUMNS)
        table = self._table()
        for b in best:
            table.add_row(
                b.product_name[:60],
                b.brand,
                b.store.upper(),
                f"{b.from_date} → {b.to_date}",
                Text(f"{b.percentage}%", style="bold green"),
            )
        self.query_one("#status", Static).update(
            f"🏷️ {len(best)} best discounts on {day}"
        )

    def action_check_alerts(self) -> None:
        """Evaluate active alerts and list the ones that fired."""
        triggered = self.alerts.evaluate_all()
        self._reset_table(_ALERT_COLUMNS)
        table = self._table()
        for t in triggered:
            table.add_row(
                t.product_name[:60],
                t.store.upper(),
                f"{t.target_price} {t.currency}",
                Text(f"{t.current_price} {t.currency}", style="bold green"),
                t.message,
            )
        self.query_one("#status", Static).update(
            f"🔔 {len(triggered)} alerts triggered"
        )

    def action_save(self) -> None:
        """Save the current basket to a JSON file."""
        if self.basket is None:
            self.notify("No basket to save", severity="warning")
            return
        try:
            path = FileManager().save_basket(self.basket, self.basket_date)
            self.notify(f"Saved to {path}")
        except OSError as e:
            logger.error("Failed to save basket", exc_info=True)
            self.notify(f"Save failed: {e}", severity="error")

    def action_export(self) -> None:
        """Export the current basket to a CSV file."""
        if self.basket is None:
            self.notify("No basket to export", severity="warning")
            return
        try:
            path = FileManager().export_basket_csv(
                self.basket, self.basket_date,
            )
            self.notify(f"Exported to {path}")
        except OSError as e:
            logger.error("Failed to export basket", exc_info=True)
            self.notify(f"Export failed: {e}", severity="error")
