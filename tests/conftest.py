# tests/conftest.py

"""Shared pytest fixtures for all price_comparator tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from price_comparator.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_output_dirs(tmp_path: Path) -> Generator[None, None, None]:
    """Keep saved baskets and charts out of the project tree."""
    with patch.object(Settings, "RESULTS_DIR", tmp_path / "results"), \
            patch(
                "price_comparator.storage.chart_exporter._CHARTS_DIR",
                tmp_path / "charts",
            ):
        yield
