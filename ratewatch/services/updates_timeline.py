# ratewatch/services/updates_timeline.py

"""Cross-lender feed of rate updates, filterable by kind of change."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime

from ratewatch.history.change_log import changes
from ratewatch.models.changes import ChangeEntry, ChangeType
from ratewatch.models.history import HistoryLog

logger = logging.getLogger("ratewatch.timeline")

UPDATE_TYPES: tuple[str, ...] = (
    "all",
    "increase",
    "decrease",
    "modified",
    "added",
    "removed",
)


@dataclass(frozen=True)
class UpdatesFilter:
    """Which lenders, which window and which kind of change to show."""

    lender_ids: frozenset[str] = field(
        default_factory=lambda: frozenset[str]()
    )
    start: datetime | None = None
    end: datetime | None = None
    change_type: str = "all"

    def __post_init__(self) -> None:
        if self.change_type not in UPDATE_TYPES:
            msg = (
                f"Unknown change type '{self.change_type}' "
                f"(expected one of {', '.join(UPDATE_TYPES)})"
            )
            raise ValueError(msg)


@dataclass
class DayGroup:
    """All updates that happened on one calendar day."""

    day: date
    entries: list[ChangeEntry] = field(
        default_factory=lambda: list[ChangeEntry]()
    )


def matches_change_type(entry: ChangeEntry, change_type: str) -> bool:
    """True when *entry* belongs to the selected *change_type*."""
    if change_type == "all":
        return True
    if change_type == "added":
        return entry.change_type is ChangeType.ADDED
    if change_type == "removed":
        return entry.change_type is ChangeType.REMOVED
    if change_type == "modified":
        return entry.is_modified_only
    if entry.change_type is not ChangeType.CHANGED or not entry.change_amount:
        return False
    if change_type == "increase":
        return entry.change_amount > 0
    return entry.change_amount < 0


def collect_updates(
    logs: Mapping[str, HistoryLog],
    update_filter: UpdatesFilter | None = None,
) -> list[ChangeEntry]:
    """Run the change log for every lender in scope and merge the results."""
    update_filter = update_filter or UpdatesFilter()
    collected: list[ChangeEntry] = []
    for lender_id, log in logs.items():
        if update_filter.lender_ids and lender_id not in update_filter.lender_ids:
            continue
        for entry in changes(log, update_filter.start, update_filter.end):
            if matches_change_type(entry, update_filter.change_type):
                collected.append(entry)

    logger.info(
        "Collected %d updates (type=%s) from %d lenders",
        len(collected),
        update_filter.change_type,
        len(logs),
    )
    return collected


def group_updates_by_date(entries: list[ChangeEntry]) -> list[DayGroup]:
    """Group entries by UTC calendar day, newest day first."""
    groups: dict[date, DayGroup] = {}
    for entry in entries:
        day = entry.timestamp.date()
        groups.setdefault(day, DayGroup(day=day)).entries.append(entry)
    return [groups[d] for d in sorted(groups, reverse=True)]
