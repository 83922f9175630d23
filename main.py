# main.py

"""Entry point for the price_comparator application (TUI or headless CLI)."""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation

from price_comparator.config.logging_config import setup_logging
from price_comparator.config.settings import Settings

logger = logging.getLogger("price_comparator.main")


def _iso_date(raw: str) -> date:
    """argparse type for ``YYYY-MM-DD`` dates."""
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        msg = f"invalid date '{raw}', expected YYYY-MM-DD"
        raise argparse.ArgumentTypeError(msg) from exc


def _decimal(raw: str) -> Decimal:
    """argparse type for money amounts."""
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        msg = f"invalid amount '{raw}'"
        raise argparse.ArgumentTypeError(msg) from exc


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price_comparator",
        description="Per-store grocery price and discount comparator.",
        epilog="Run without a command to launch the interactive TUI.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser(
        "import", help="Import snapshot CSVs, then check alerts.",
    )
    p.add_argument("directory", help="Directory holding snapshot files.")

    p = sub.add_parser("discounts", help="List discounts.")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        "--current", action="store_true",
        help="Only discounts active on --date.",
    )
    mode.add_argument(
        "--best", action="store_true",
        help="Best discount per product and brand on --date.",
    )
    mode.add_argument(
        "--new", type=int, default=None, metavar="DAYS",
        help="Discounts whose file date is within DAYS days.",
    )
    p.add_argument("--date", type=_iso_date, default=None)
    p.add_argument(
        "--limit", type=int,
        default=Settings.DEFAULT_BEST_DISCOUNTS_LIMIT,
    )

    p = sub.add_parser("basket", help="Optimize a shopping basket.")
    p.add_argument(
        "items", nargs="*",
        help="Items as NAME[:QTY], e.g. 'lapte zuzu:2'.",
    )
    p.add_argument("--date", type=_iso_date, default=None)
    p.add_argument(
        "--save", action="store_true",
        help="Also write the result to results/ as JSON and CSV.",
    )

    p = sub.add_parser("alert-create", help="Create a price alert.")
    p.add_argument("product")
    p.add_argument("store")
    p.add_argument("target", type=_decimal)

    for name in ("alert-activate", "alert-deactivate"):
        p = sub.add_parser(name, help=f"{name.split('-')[1].title()} an alert.")
        p.add_argument("alert_id", type=int)

    p = sub.add_parser("alerts", help="List price alerts.")
    p.add_argument("--active-only", action="store_true")

    sub.add_parser("check-alerts", help="Evaluate all active alerts now.")

    p = sub.add_parser("history", help="Price history of products.")
    p.add_argument("filter", help="One of: name, category, brand.")
    p.add_argument("value")
    p.add_argument("--store", default=None)
    p.add_argument("--start", type=_iso_date, default=None)
    p.add_argument("--end", type=_iso_date, default=None)
    p.add_argument(
        "--chart", action="store_true",
        help="Also export an HTML chart.",
    )

    p = sub.add_parser("value", help="Value per unit on a date.")
    p.add_argument("--date", type=_iso_date, default=None)

    p = sub.add_parser("product", help="Show one product snapshot.")
    p.add_argument("product_id", type=int)

    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from price_comparator.ui.app import PriceComparatorApp

    try:
        app = PriceComparatorApp()
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("price_comparator TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """Run a headless command and exit."""
    from price_comparator.cli.runner import dispatch

    try:
        code = dispatch(args)
    except Exception:
        logger.critical("Fatal error in command %s", args.command,
                        exc_info=True)
        raise
    sys.exit(code)


def main() -> None:
    """Route to TUI (no command) or headless CLI."""
    log_file = setup_logging()
    logger.info("price_comparator starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.command is None:
        _run_tui()
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
