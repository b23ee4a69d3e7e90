# ratewatch/history/time_series.py

"""Per-product rate time series extracted from a history log."""

import logging

from ratewatch.models.changes import DataPoint, TimeSeries
from ratewatch.models.history import (
    AddOperation,
    HistoryLog,
    RemoveOperation,
    UpdateOperation,
)

logger = logging.getLogger("ratewatch.history")


def time_series(log: HistoryLog, product_id: str) -> TimeSeries | None:
    """Collect (timestamp, rate, apr) observations for one product.

    A point is recorded when the product first appears (baseline or
    ``Add``) and whenever an update moves its rate or apr while the
    product exists.  Updates to an absent product still refresh the
    remembered rate, apr and name.  Removal does not record a point; a
    later re-add continues the same series.
    Returns ``None`` when the product never existed.
    """
    points: list[DataPoint] = []
    name = ""
    lender_id = log.lender_id
    current_rate: float | None = None
    current_apr: float | None = None
    exists = False

    for product in log.baseline.products:
        if product.id == product_id:
            name = product.name
            lender_id = product.lender_id
            current_rate = product.rate
            current_apr = product.apr
            exists = True
            points.append(DataPoint(
                timestamp=log.baseline.timestamp,
                rate=product.rate,
                apr=product.apr,
            ))
            break

    for changeset in log.changesets:
        for op in changeset.operations:
            if op.product_id != product_id:
                continue
            if isinstance(op, AddOperation):
                name = op.product.name
                lender_id = op.product.lender_id
                current_rate = op.product.rate
                current_apr = op.product.apr
                exists = True
                points.append(DataPoint(
                    timestamp=changeset.timestamp,
                    rate=current_rate,
                    apr=current_apr,
                ))
            elif isinstance(op, RemoveOperation):
                exists = False
            elif isinstance(op, UpdateOperation):
                patch = op.patch
                rate_moved = (
                    "rate" in patch and patch["rate"] != current_rate
                )
                apr_moved = "apr" in patch and patch["apr"] != current_apr
                if "rate" in patch:
                    current_rate = patch["rate"]
                if "apr" in patch:
                    current_apr = patch["apr"]
                if patch.get("name"):
                    name = patch["name"]
                if exists and current_rate is not None and (
                    rate_moved or apr_moved
                ):
                    points.append(DataPoint(
                        timestamp=changeset.timestamp,
                        rate=current_rate,
                        apr=current_apr,
                    ))

    if not points:
        return None

    logger.debug(
        "Time series for %s/%s: %d points",
        lender_id,
        product_id,
        len(points),
    )
    return TimeSeries(
        product_id=product_id,
        product_name=name,
        lender_id=lender_id,
        data_points=points,
    )
