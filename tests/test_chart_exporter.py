# tests/test_chart_exporter.py

"""Tests for the Plotly price-history chart exporter."""

import tempfile
import unittest
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

from price_comparator.models.price_history import PriceHistory, PricePoint
from price_comparator.storage.chart_exporter import (
    build_history_figure,
    export_price_history_chart,
)


def _histories() -> list[PriceHistory]:
    """Two stores' history for the same product."""
    return [
        PriceHistory(
            product_name="lapte zuzu",
            store=store,
            price_history=[
                PricePoint(date(2025, 5, day), Decimal(base) + day)
                for day in (1, 4, 8)
            ],
        )
        for store, base in (("lidl", "9.80"), ("kaufland", "10.10"))
    ]


class TestBuildHistoryFigure(unittest.TestCase):
    """Figure construction."""

    def test_one_trace_per_history(self) -> None:
        fig = build_history_figure(_histories(), "lapte zuzu")
        self.assertEqual(len(fig.data), 2)
        self.assertEqual(fig.data[0].name, "lidl: lapte zuzu")

    def test_empty_history_has_no_trace(self) -> None:
        histories = [
            *_histories(), PriceHistory(product_name="x", store="profi"),
        ]
        fig = build_history_figure(histories, "mixed")
        self.assertEqual(len(fig.data), 2)


class TestExportPriceHistoryChart(unittest.TestCase):
    """HTML export."""

    @patch("price_comparator.storage.chart_exporter.webbrowser")
    def test_generates_html_file(self, mock_wb: MagicMock) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with patch(
                "price_comparator.storage.chart_exporter._CHARTS_DIR",
                Path(tmp),
            ):
                result = export_price_history_chart(
                    _histories(), "lapte zuzu", open_browser=False,
                )
                self.assertIsNotNone(result)
                assert result is not None
                self.assertTrue(result.exists())
                self.assertRegex(
                    result.name, r"^history_lapte_zuzu_\d{8}_\d{6}\.html$",
                )
                self.assertIn("plotly", result.read_text().lower())
        mock_wb.open.assert_not_called()

    @patch("price_comparator.storage.chart_exporter.webbrowser")
    def test_opens_browser_when_requested(self, mock_wb: MagicMock) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with patch(
                "price_comparator.storage.chart_exporter._CHARTS_DIR",
                Path(tmp),
            ):
                result = export_price_history_chart(
                    _histories(), "lapte zuzu",
                )
        assert result is not None
        mock_wb.open.assert_called_once_with(result.as_uri())

    def test_returns_none_without_points(self) -> None:
        result = export_price_history_chart(
            [PriceHistory(product_name="x", store="lidl")],
            "x",
            open_browser=False,
        )
        self.assertIsNone(result)

    def test_returns_none_for_no_histories(self) -> None:
        self.assertIsNone(
            export_price_history_chart([], "nothing", open_browser=False),
        )


if __name__ == "__main__":
    unittest.main()
