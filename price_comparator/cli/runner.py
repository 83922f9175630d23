# price_comparator/cli/runner.py

"""Headless CLI commands over the record store."""

import argparse
import json
import logging
import re
import sys
from datetime import date
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.table import Table

from price_comparator.errors import PriceComparatorError
from price_comparator.models.basket import BasketItem, OptimizedBasket
from price_comparator.services.alert_service import (
    AlertService,
    TriggeredAlert,
)
from price_comparator.services.basket_optimizer import BasketOptimizer
from price_comparator.services.discount_resolver import DiscountResolver
from price_comparator.services.ingestion import IngestionService
from price_comparator.services.product_service import ProductService
from price_comparator.storage.chart_exporter import export_price_history_chart
from price_comparator.storage.file_manager import FileManager
from price_comparator.storage.record_store import RecordStore
from price_comparator.storage.serialization import to_jsonable

logger = logging.getLogger("price_comparator.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

_QUANTITY_RE = re.compile(r"^\s*[+-]?\d+\s*$", re.ASCII)


def parse_basket_items(entries: list[str]) -> list[BasketItem]:
    """Parse ``name[:quantity]`` strings into basket items.

    Only an integer after the last colon is read as the quantity, so
    names such as ``cafea: boabe`` keep their colon and default to 1.
    Range checks on the quantity are left to the optimizer.
    """
    items: list[BasketItem] = []
    for entry in entries:
        name, sep, qty = entry.rpartition(":")
        if sep and _QUANTITY_RE.match(qty):
            quantity = int(qty)
        else:
            name, quantity = entry, 1
        items.append(BasketItem(product_name=name.strip(), quantity=quantity))
    return items


def _money(value: Decimal, currency: str = "") -> str:
    return f"{value:,.2f} {currency}".strip()


def _emit_json(payload: Any) -> None:
    json.dump(to_jsonable(payload), sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _print_rows(
    title: str, columns: list[str], rows: list[list[str]],
) -> None:
    """Render a Rich table of string rows to stdout."""
    table = Table(title=title, show_lines=False, title_style="bold cyan")
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*row)
    Console().print(table)


def _print_basket(basket: OptimizedBasket) -> None:
    for shopping_list in basket.store_shopping_lists:
        _print_rows(
            f"{shopping_list.store_name} ({shopping_list.item_count} items)",
            ["Product", "Brand", "Package", "Price"],
            [
                [
                    p.name,
                    p.brand,
                    f"{p.package_quantity} {p.package_unit}",
                    _money(p.price, p.currency),
                ]
                for p in shopping_list.products
            ],
        )
    Console().print(
        f"[bold]Original:[/bold] {_money(basket.total_original_cost)}  "
        f"[bold]After discounts:[/bold] "
        f"[green]{_money(basket.total_cost_after_discounts)}[/green]  "
        f"[bold]Savings:[/bold] {_money(basket.total_savings)}"
    )


def _print_triggered(triggered: list[TriggeredAlert]) -> None:
    _print_rows(
        "Triggered Alerts",
        ["Product", "Store", "Target", "Current", "Message"],
        [
            [
                t.product_name,
                t.store,
                _money(t.target_price, t.currency),
                _money(t.current_price, t.currency),
                t.message,
            ]
            for t in triggered
        ],
    )


# ── Commands ─────────────────────────────────────────────


def run_import(store: RecordStore, args: argparse.Namespace) -> int:
    """Import a snapshot directory, then evaluate alerts."""
    result = IngestionService(store).run(args.directory)
    report = result.report
    if not report.directory_found:
        _err.print(f"[red]Directory not found: {args.directory}[/red]")
        return 1

    if args.output_format == "table":
        _print_rows(
            f"Import of {report.directory}",
            ["File", "Kind", "Status", "New", "Updated", "Dupes", "Bad"],
            [
                [
                    f.filename, f.kind, f.status, str(f.new_count),
                    str(f.updated_count), str(f.duplicates_skipped),
                    str(f.malformed_skipped),
                ]
                for f in report.files
            ],
        )
        if result.triggered_alerts:
            _print_triggered(result.triggered_alerts)
    else:
        _emit_json({
            "message": f"CSV data import completed for directory: "
                       f"{report.directory}",
            "new": report.new_count,
            "updated": report.updated_count,
            "duplicates_skipped": report.duplicates_skipped,
            "malformed_skipped": report.malformed_skipped,
            "files": report.files,
            "alerts_triggered": len(result.triggered_alerts),
            "triggered_alerts": result.triggered_alerts,
        })
    _err.print(
        f"[green]✓ {report.files_imported} files imported, "
        f"{len(result.triggered_alerts)} alerts triggered[/green]"
    )
    return 0


def run_discounts(store: RecordStore, args: argparse.Namespace) -> int:
    """List all, current, best or newly added discounts."""
    resolver = DiscountResolver(store)
    day = args.date or date.today()

    if args.best:
        best = resolver.best_discounts_across_stores(day, args.limit)
        if args.output_format == "table":
            _print_rows(
                f"Best discounts on {day}",
                ["Product", "Brand", "Store", "From", "To", "%"],
                [
                    [
                        b.product_name, b.brand, b.store,
                        b.from_date.isoformat(), b.to_date.isoformat(),
                        str(b.percentage),
                    ]
                    for b in best
                ],
            )
        else:
            _emit_json(best)
        return 0

    if args.new is not None:
        discounts = resolver.recently_added(args.new)
        title = f"Discounts added in the last {args.new} day(s)"
    elif args.current:
        discounts = resolver.active_discounts(day)
        title = f"Discounts active on {day}"
    else:
        discounts = resolver.all_discounts()
        title = "All discounts"

    if args.output_format == "table":
        _print_rows(
            title,
            ["Product", "Brand", "Store", "From", "To", "%"],
            [
                [
                    d.product_name, d.brand, d.store,
                    d.from_date.isoformat(), d.to_date.isoformat(),
                    str(d.percentage),
                ]
                for d in discounts
            ],
        )
    else:
        _emit_json(discounts)
    return 0


def run_basket(store: RecordStore, args: argparse.Namespace) -> int:
    """Optimize a basket given as ``name[:qty]`` arguments."""
    items = parse_basket_items(args.items)
    day = args.date or date.today()
    basket = BasketOptimizer(store).optimize(items, day)

    if args.save:
        file_manager = FileManager()
        path = file_manager.save_basket(basket, day)
        csv_path = file_manager.export_basket_csv(basket, day)
        _err.print(f"[dim]Saved basket → {path}, {csv_path}[/dim]")

    if args.output_format == "table":
        _print_basket(basket)
    else:
        _emit_json(basket)
    return 0


def run_alert_create(store: RecordStore, args: argparse.Namespace) -> int:
    """Create a new active alert."""
    alert = AlertService(store).create(args.product, args.store, args.target)
    _emit_json(alert)
    return 0


def run_alert_toggle(store: RecordStore, args: argparse.Namespace) -> int:
    """Activate or deactivate an alert by id."""
    service = AlertService(store)
    if args.command == "alert-activate":
        service.activate(args.alert_id)
        _err.print(f"[green]Price alert {args.alert_id} activated[/green]")
    else:
        service.deactivate(args.alert_id)
        _err.print(f"[green]Price alert {args.alert_id} deactivated[/green]")
    return 0


def run_list_alerts(store: RecordStore, args: argparse.Namespace) -> int:
    """List stored alerts."""
    alerts = AlertService(store).list_alerts(active_only=args.active_only)
    if args.output_format == "table":
        _print_rows(
            "Price Alerts",
            ["ID", "Product", "Store", "Target", "Active", "Created"],
            [
                [
                    str(a.id), a.product_name, a.store,
                    _money(a.target_price),
                    "yes" if a.active else "no",
                    a.creation_date.isoformat(),
                ]
                for a in alerts
            ],
        )
    else:
        _emit_json(alerts)
    return 0


def run_check_alerts(store: RecordStore, args: argparse.Namespace) -> int:
    """Evaluate all active alerts now."""
    triggered = AlertService(store).evaluate_all()
    if args.output_format == "table":
        _print_triggered(triggered)
    else:
        _emit_json(triggered)
    return 0


def run_history(store: RecordStore, args: argparse.Namespace) -> int:
    """Show price history for a name, category or brand."""
    histories = ProductService(store).price_history(
        args.filter, args.value, args.store, args.start, args.end,
    )
    if args.chart:
        path = export_price_history_chart(
            histories, args.value, open_browser=False,
        )
        if path is not None:
            _err.print(f"[dim]Chart saved → {path}[/dim]")

    if args.output_format == "table":
        _print_rows(
            f"Price history for {args.filter}={args.value}",
            ["Product", "Store", "Date", "Price"],
            [
                [h.product_name, h.store, p.date.isoformat(), str(p.price)]
                for h in histories
                for p in h.price_history
            ],
        )
    else:
        _emit_json(histories)
    return 0


def run_value(store: RecordStore, args: argparse.Namespace) -> int:
    """Show value per unit for every product on a date."""
    values = ProductService(store).value_per_unit(args.date or date.today())
    if args.output_format == "table":
        _print_rows(
            "Value per unit",
            ["Product", "Brand", "Store", "Package", "Price", "Per unit"],
            [
                [
                    v.product_name, v.brand, v.store,
                    f"{v.package_quantity} {v.package_unit}",
                    _money(v.price, v.currency),
                    f"{v.value_per_unit} {v.currency}/{v.package_unit}",
                ]
                for v in values
            ],
        )
    else:
        _emit_json(values)
    return 0


def run_product(store: RecordStore, args: argparse.Namespace) -> int:
    """Show one product snapshot by id."""
    _emit_json(ProductService(store).get_by_id(args.product_id))
    return 0


_COMMANDS = {
    "import": run_import,
    "discounts": run_discounts,
    "basket": run_basket,
    "alert-create": run_alert_create,
    "alert-activate": run_alert_toggle,
    "alert-deactivate": run_alert_toggle,
    "alerts": run_list_alerts,
    "check-alerts": run_check_alerts,
    "history": run_history,
    "value": run_value,
    "product": run_product,
}


def dispatch(
    args: argparse.Namespace, store: RecordStore | None = None,
) -> int:
    """Run the selected command and return an exit code (0=ok, 1=fail)."""
    owned = store is None
    db = store or RecordStore()
    try:
        return _COMMANDS[args.command](db, args)
    except PriceComparatorError as exc:
        logger.error("%s failed: %s", args.command, exc)
        _err.print(f"[red]Error: {exc}[/red]")
        return 1
    finally:
        if owned:
            db.close()
