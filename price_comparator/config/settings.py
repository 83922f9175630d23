# price_comparator/config/settings.py

"""Central configuration for the price_comparator engine."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_path(name: str, default: Path) -> Path:
    """Read a path override from the environment."""
    raw = os.getenv(name)
    return Path(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    """Read an integer override from the environment."""
    raw = os.getenv(name)
    return int(raw) if raw else default


class Settings:
    """Central configuration for the price_comparator engine."""

    # --- Snapshot files ---
    SNAPSHOT_EXTENSIONS: tuple[str, ...] = (".csv",)
    CSV_DELIMITER: str = ";"
    MIN_PRODUCT_FIELDS: int = 8         # product_id .. currency
    MIN_DISCOUNT_FIELDS: int = 9        # product_id .. percentage
    PACKAGE_UNIT_ALIASES: dict[str, str] = {
        "role": "piece",
    }

    # --- Pricing ---
    CURRENCY_PLACES: int = 2            # Fraction digits for money
    VALUE_PER_UNIT_PLACES: int = 4      # Fraction digits for price/unit

    # --- Discounts ---
    DEFAULT_BEST_DISCOUNTS_LIMIT: int = 1000
    DEFAULT_NEW_DISCOUNTS_DAYS: int = 1

    # --- Basket ---
    # 0 = snapshots must match the basket date exactly
    BASKET_DATE_WINDOW_DAYS: int = _env_int(
        "PRICE_COMPARATOR_BASKET_DATE_WINDOW_DAYS", 0
    )

    # --- Alerts ---
    ALERT_LOOKBACK_MONTHS: int = _env_int(
        "PRICE_COMPARATOR_ALERT_LOOKBACK_MONTHS", 1
    )

    # --- History ---
    HISTORY_WINDOW_MONTHS: int = 12     # Default +/- span for history
    HISTORY_FILTERS: frozenset[str] = frozenset(
        {"name", "category", "brand"}
    )

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = _env_path(
        "PRICE_COMPARATOR_DATA_DIR", BASE_DIR / "data"
    )
    DB_PATH: Path = _env_path(
        "PRICE_COMPARATOR_DB_PATH", DATA_DIR / "price_comparator.db"
    )
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
