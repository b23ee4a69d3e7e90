# ratewatch/services/trends.py

"""Time series for a filtered set of catalogue products."""

import logging
from collections.abc import Iterable, Mapping

from ratewatch.filters.rate_filter import RateFilters
from ratewatch.history.time_series import time_series
from ratewatch.models.changes import TimeSeries
from ratewatch.models.history import HistoryLog
from ratewatch.models.product import Product

logger = logging.getLogger("ratewatch.trends")


def catalogue_series(
    logs: Mapping[str, HistoryLog],
    products: Iterable[Product],
    filters: RateFilters | None = None,
    min_points: int = 2,
) -> list[TimeSeries]:
    """Extract the series of each matching product with enough points.

    Products whose lender has no history are skipped.
    """
    filters = filters or RateFilters()
    result: list[TimeSeries] = []
    for product in filters.apply(products):
        log = logs.get(product.lender_id)
        if log is None:
            continue
        series = time_series(log, product.id)
        if series is not None and len(series.data_points) >= min_points:
            result.append(series)

    logger.debug("Built %d trend series", len(result))
    return result
