# price_comparator/storage/chart_exporter.py

"""Render per-store price history as an interactive Plotly HTML page."""

import importlib
import logging
import webbrowser
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from price_comparator.config.settings import Settings
from price_comparator.models.price_history import PriceHistory

logger = logging.getLogger("price_comparator.chart")

_CHARTS_DIR: Path = Settings.DATA_DIR / "charts"


def _get_plotly_go() -> ModuleType:
    """Import plotly.graph_objects lazily."""
    return importlib.import_module("plotly.graph_objects")


def _charts_dir() -> Path:
    _CHARTS_DIR.mkdir(parents=True, exist_ok=True)
    return _CHARTS_DIR


def _slug(title: str) -> str:
    """File-name-safe prefix of a chart title."""
    cleaned = "".join(c if c.isalnum() else "_" for c in title[:30])
    return cleaned.strip("_") or "chart"


def build_history_figure(histories: list[PriceHistory], title: str) -> Any:
    """One step-line trace per (product, store) history.

    Snapshot prices hold until the next snapshot, hence ``line_shape="hv"``.
    """
    go = _get_plotly_go()
    fig: Any = go.Figure()
    for history in histories:
        points = history.price_history
        if not points:
            continue
        fig.add_trace(go.Scatter(
            x=[p.date for p in points],
            y=[float(p.price) for p in points],
            name=f"{history.store}: {history.product_name[:40]}",
            mode="lines+markers",
            line_shape="hv",
            hovertemplate="%{x|%d %b %Y}  %{y:.2f}<extra>%{fullData.name}</extra>",
        ))

    fig.update_layout(
        title={"text": f"Price history · {title[:60]}", "x": 0.5},
        xaxis={"title": "Snapshot date", "type": "date"},
        yaxis={"title": "Price", "tickformat": ".2f"},
        hovermode="closest",
        template="simple_white",
        legend={"title": {"text": "Store: product"}},
    )
    return fig


def export_price_history_chart(
    histories: list[PriceHistory],
    title: str,
    open_browser: bool = True,
) -> Path | None:
    """Write a price-history chart to HTML; ``None`` if nothing to plot."""
    if not any(h.price_history for h in histories):
        logger.warning("No price points to chart for '%s'", title)
        return None

    fig = build_history_figure(histories, title)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    target = _charts_dir() / f"history_{_slug(title)}_{stamp}.html"
    fig.write_html(str(target), include_plotlyjs="cdn")
    logger.info(
        "Price history chart for '%s' (%d series) written to %s",
        title,
        len(fig.data),
        target,
    )

    if open_browser:
        webbrowser.open(target.as_uri())
    return target
