# ratewatch/services/snapshot_comparator.py

"""Compare reconstructed catalogues between two dates across lenders."""

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

from ratewatch.filters.field_diff import diff_fields
from ratewatch.filters.rate_filter import RateFilters
from ratewatch.history.reconstruction import reconstruct
from ratewatch.models.changes import (
    ComparisonEntry,
    ComparisonStatus,
    percent_change,
)
from ratewatch.models.history import HistoryLog, as_utc
from ratewatch.models.product import Product

logger = logging.getLogger("ratewatch.comparator")

# Decreases first, then modified, unchanged, increases, new, removed
STATUS_ORDER: dict[ComparisonStatus, int] = {
    ComparisonStatus.DECREASED: 0,
    ComparisonStatus.MODIFIED: 1,
    ComparisonStatus.UNCHANGED: 2,
    ComparisonStatus.INCREASED: 3,
    ComparisonStatus.NEW: 4,
    ComparisonStatus.REMOVED: 5,
}


def earliest_date(
    logs: Mapping[str, HistoryLog],
    default: datetime | None = None,
) -> datetime:
    """Earliest baseline across *logs* (never later than *default*/now)."""
    earliest = as_utc(default) if default else datetime.now(UTC)
    for log in logs.values():
        if log.baseline.timestamp < earliest:
            earliest = log.baseline.timestamp
    return earliest


def _classify(start: Product, end: Product) -> ComparisonEntry:
    """Build the entry for a product present in both snapshots."""
    field_changes = diff_fields(start, end)
    if end.rate != start.rate:
        amount = end.rate - start.rate
        return ComparisonEntry(
            product=end,
            status=(
                ComparisonStatus.INCREASED
                if amount > 0
                else ComparisonStatus.DECREASED
            ),
            previous_rate=start.rate,
            current_rate=end.rate,
            change_amount=amount,
            change_percent=percent_change(start.rate, amount),
            field_changes=field_changes or None,
        )
    if field_changes:
        return ComparisonEntry(
            product=end,
            status=ComparisonStatus.MODIFIED,
            previous_rate=start.rate,
            current_rate=end.rate,
            change_amount=0,
            change_percent=0,
            field_changes=field_changes,
        )
    return ComparisonEntry(
        product=end,
        status=ComparisonStatus.UNCHANGED,
        previous_rate=start.rate,
        current_rate=end.rate,
        change_amount=0,
        change_percent=0,
    )


def sort_comparisons(
    entries: Iterable[ComparisonEntry],
) -> list[ComparisonEntry]:
    """Order by status priority, then by change amount ascending."""
    return sorted(
        entries,
        key=lambda e: (STATUS_ORDER[e.status], e.change_amount or 0),
    )


def compare(
    logs: Mapping[str, HistoryLog],
    start: datetime,
    end: datetime | None = None,
    filters: RateFilters | None = None,
    current: Iterable[Product] | None = None,
) -> list[ComparisonEntry]:
    """Classify every in-scope product between *start* and *end*.

    When *end* is ``None`` the live catalogue *current* is used as the
    end snapshot if supplied; otherwise the logs are reconstructed at
    the present moment.
    """
    filters = filters or RateFilters()
    start = as_utc(start)
    in_scope = {
        lender_id: log
        for lender_id, log in logs.items()
        if filters.includes_lender(lender_id)
    }

    if end is None and current is not None:
        end_products = filters.apply(current)
    else:
        end_at = as_utc(end) if end is not None else datetime.now(UTC)
        end_products = [
            p
            for log in in_scope.values()
            for p in filters.apply(reconstruct(log, end_at))
        ]
    end_by_id = {p.id: p for p in end_products}

    entries: list[ComparisonEntry] = []
    seen: set[str] = set()
    for log in in_scope.values():
        for before in filters.apply(reconstruct(log, start)):
            seen.add(before.id)
            after = end_by_id.get(before.id)
            if after is None:
                entries.append(ComparisonEntry(
                    product=before,
                    status=ComparisonStatus.REMOVED,
                    previous_rate=before.rate,
                ))
            else:
                entries.append(_classify(before, after))

    for after in end_products:
        if after.id in seen:
            continue
        log = logs.get(after.lender_id)
        # No history before the window means novelty cannot be claimed
        if log is None or log.baseline.timestamp > start:
            continue
        entries.append(ComparisonEntry(
            product=after,
            status=ComparisonStatus.NEW,
            current_rate=after.rate,
        ))

    logger.info(
        "Compared %d lenders from %s: %d entries",
        len(in_scope),
        start.date().isoformat(),
        len(entries),
    )
    return sort_comparisons(entries)
