# ratewatch/storage/chart_exporter.py

"""Generate interactive Plotly HTML charts from rate time series."""

import importlib
import logging
import webbrowser
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from ratewatch.config.settings import Settings
from ratewatch.models.changes import TimeSeries

logger = logging.getLogger("ratewatch.chart")


def _get_plotly_go() -> ModuleType:
    """Import plotly.graph_objects lazily."""
    return importlib.import_module("plotly.graph_objects")


def _ensure_charts_dir(charts_dir: Path | None = None) -> Path:
    """Create the charts directory if it doesn't exist."""
    directory = charts_dir or Settings.CHARTS_DIR
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def build_series_chart(series: list[TimeSeries], title: str) -> Any:
    """Build a step-line chart with one trace per product."""
    go = _get_plotly_go()
    fig: Any = go.Figure()
    for s in series:
        fig.add_trace(go.Scatter(
            x=[p.timestamp for p in s.data_points],
            y=[p.rate for p in s.data_points],
            mode="lines+markers",
            line={"shape": "hv"},
            name=f"{s.product_name[:40]} ({s.lender_id})",
            hovertemplate=(
                "%{x|%Y-%m-%d}<br>"
                "Rate: %{y:.2f}%"
                "<extra></extra>"
            ),
        ))

    fig.update_layout(
        title=title,
        xaxis_title="Date",
        yaxis_title="Rate (%)",
        hovermode="x unified",
        template="plotly_white",
        legend={"orientation": "h", "y": -0.15},
    )
    return fig


def export_series_chart(
    series: list[TimeSeries],
    title: str = "Rate History",
    open_browser: bool = True,
    charts_dir: Path | None = None,
) -> Path | None:
    """Write the series chart as HTML; ``None`` when nothing to plot."""
    plottable = [s for s in series if s.data_points]
    if not plottable:
        logger.warning("No data points for chart '%s'", title)
        return None

    fig = build_series_chart(plottable, title)

    directory = _ensure_charts_dir(charts_dir)
    slug = (
        plottable[0].product_id[:30]
        if len(plottable) == 1
        else "comparison"
    ).replace("/", "_")
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = directory / f"{slug}_{stamp}.html"
    fig.write_html(str(filepath))
    logger.info("Chart saved to %s", filepath)

    if open_browser:
        webbrowser.open(filepath.as_uri())

    return filepath
