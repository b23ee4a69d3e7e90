# ratewatch/history/change_log.py

"""Timestamped added / removed / changed events for one lender."""

import logging
from datetime import datetime

from ratewatch.config.settings import Settings
from ratewatch.filters.field_diff import diff_fields
from ratewatch.history.reconstruction import apply_operation, baseline_snapshot
from ratewatch.models.changes import ChangeEntry, ChangeType, percent_change
from ratewatch.models.history import (
    AddOperation,
    HistoryLog,
    RemoveOperation,
    UpdateOperation,
    as_utc,
)

logger = logging.getLogger("ratewatch.history")

# Change-log diffs include the rate itself for a complete audit trail
CHANGE_LOG_FIELDS: tuple[str, ...] = ("rate", *Settings.COMPARABLE_FIELDS)


def changes(
    log: HistoryLog,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[ChangeEntry]:
    """List product events inside ``[start, end]`` (both optional).

    Changesets before *start* are replayed silently so that the first
    in-window change has the correct previous rate.  Changesets after
    *end* are not processed at all.
    """
    start = as_utc(start) if start is not None else None
    end = as_utc(end) if end is not None else None
    entries: list[ChangeEntry] = []
    tracked = baseline_snapshot(log)

    baseline_ts = log.baseline.timestamp
    baseline_in_window = (start is None or baseline_ts >= start) and (
        end is None or baseline_ts <= end
    )
    if baseline_in_window:
        for product in log.baseline.products:
            entries.append(ChangeEntry(
                product_id=product.id,
                product_name=product.name,
                lender_id=product.lender_id,
                timestamp=baseline_ts,
                change_type=ChangeType.ADDED,
                new_rate=product.rate,
            ))

    for changeset in log.changesets:
        ts = changeset.timestamp
        if end is not None and ts > end:
            break
        if start is not None and ts < start:
            for op in changeset.operations:
                apply_operation(tracked, op)
            continue

        for op in changeset.operations:
            if isinstance(op, AddOperation):
                entries.append(ChangeEntry(
                    product_id=op.product.id,
                    product_name=op.product.name,
                    lender_id=op.product.lender_id,
                    timestamp=ts,
                    change_type=ChangeType.ADDED,
                    new_rate=op.product.rate,
                ))
            elif isinstance(op, RemoveOperation):
                existing = tracked.get(op.product_id)
                # Untracked ids are a no-op, so no removed entry either
                if existing is not None:
                    entries.append(ChangeEntry(
                        product_id=existing.id,
                        product_name=existing.name,
                        lender_id=existing.lender_id,
                        timestamp=ts,
                        change_type=ChangeType.REMOVED,
                        previous_rate=existing.rate,
                    ))
            elif isinstance(op, UpdateOperation):
                existing = tracked.get(op.product_id)
                if existing is not None:
                    updated = op.patch.apply(existing)
                    field_changes = diff_fields(
                        existing, updated, CHANGE_LOG_FIELDS,
                    )
                    if field_changes:
                        amount = updated.rate - existing.rate
                        entries.append(ChangeEntry(
                            product_id=updated.id,
                            product_name=updated.name,
                            lender_id=updated.lender_id,
                            timestamp=ts,
                            change_type=ChangeType.CHANGED,
                            previous_rate=existing.rate,
                            new_rate=updated.rate,
                            change_amount=amount,
                            change_percent=percent_change(
                                existing.rate, amount,
                            ),
                            field_changes=field_changes,
                        ))
            apply_operation(tracked, op)

    logger.debug(
        "Change log for %s: %d entries", log.lender_id, len(entries),
    )
    return entries
