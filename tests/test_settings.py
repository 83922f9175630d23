# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

from price_comparator.config.settings import Settings, _env_int, _env_path


class TestSettings(unittest.TestCase):
    """Verify Settings constants."""

    def test_snapshot_extensions_are_lowercase_with_dot(self) -> None:
        """Extensions are matched case-insensitively against '.xxx'."""
        for ext in Settings.SNAPSHOT_EXTENSIONS:
            with self.subTest(ext=ext):
                self.assertTrue(ext.startswith("."))
                self.assertEqual(ext, ext.lower())

    def test_csv_delimiter_is_semicolon(self) -> None:
        self.assertEqual(Settings.CSV_DELIMITER, ";")

    def test_minimum_field_counts(self) -> None:
        """Product rows carry 8 columns, discount rows 9."""
        self.assertEqual(Settings.MIN_PRODUCT_FIELDS, 8)
        self.assertEqual(Settings.MIN_DISCOUNT_FIELDS, 9)

    def test_role_unit_alias_maps_to_piece(self) -> None:
        self.assertEqual(Settings.PACKAGE_UNIT_ALIASES["role"], "piece")

    def test_currency_places_is_two(self) -> None:
        self.assertEqual(Settings.CURRENCY_PLACES, 2)

    def test_value_per_unit_places_is_four(self) -> None:
        self.assertEqual(Settings.VALUE_PER_UNIT_PLACES, 4)

    def test_best_discounts_limit_positive(self) -> None:
        self.assertGreater(Settings.DEFAULT_BEST_DISCOUNTS_LIMIT, 0)

    def test_alert_lookback_at_least_one_month(self) -> None:
        self.assertGreaterEqual(Settings.ALERT_LOOKBACK_MONTHS, 1)

    def test_basket_window_not_negative(self) -> None:
        self.assertGreaterEqual(Settings.BASKET_DATE_WINDOW_DAYS, 0)

    def test_history_filters(self) -> None:
        self.assertEqual(
            Settings.HISTORY_FILTERS, {"name", "category", "brand"},
        )

    def test_paths_are_path_objects(self) -> None:
        """All directory settings must be Path instances."""
        for attr in ("BASE_DIR", "DATA_DIR", "DB_PATH", "RESULTS_DIR",
                     "LOGS_DIR"):
            with self.subTest(attr=attr):
                self.assertIsInstance(getattr(Settings, attr), Path)

    def test_db_path_is_sqlite_file(self) -> None:
        self.assertEqual(Settings.DB_PATH.suffix, ".db")

    def test_decimal_friendly_types(self) -> None:
        """Precision settings feed Decimal.scaleb, so they are ints."""
        self.assertEqual(
            Decimal(1).scaleb(-Settings.CURRENCY_PLACES), Decimal("0.01"),
        )


class TestEnvOverrides(unittest.TestCase):
    """Environment helpers used to build Settings."""

    def test_env_int_reads_override(self) -> None:
        with patch.dict("os.environ", {"PC_TEST_INT": "7"}):
            self.assertEqual(_env_int("PC_TEST_INT", 1), 7)

    def test_env_int_default_when_unset(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(_env_int("PC_TEST_INT", 3), 3)

    def test_env_int_default_when_empty(self) -> None:
        with patch.dict("os.environ", {"PC_TEST_INT": ""}):
            self.assertEqual(_env_int("PC_TEST_INT", 3), 3)

    def test_env_path_reads_override(self) -> None:
        with patch.dict("os.environ", {"PC_TEST_PATH": "/tmp/x.db"}):
            self.assertEqual(
                _env_path("PC_TEST_PATH", Path("default.db")),
                Path("/tmp/x.db"),
            )

    def test_env_path_default_when_unset(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(
                _env_path("PC_TEST_PATH", Path("default.db")),
                Path("default.db"),
            )


if __name__ == "__main__":
    unittest.main()
