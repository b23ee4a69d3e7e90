# ratewatch/models/changes.py

"""Derived, query-time results: time series, change entries, comparisons."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ratewatch.models.product import Product


class ChangeType(str, Enum):
    """Kind of event in a lender's change log."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


class ComparisonStatus(str, Enum):
    """Classification of a product between two snapshots."""

    UNCHANGED = "unchanged"
    INCREASED = "increased"
    DECREASED = "decreased"
    NEW = "new"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class FieldChange:
    """One attribute that differs between two versions of a product."""

    field: str
    previous_value: Any
    new_value: Any


@dataclass(frozen=True)
class DataPoint:
    """A rate observation at a point in time."""

    timestamp: datetime
    rate: float
    apr: float | None = None


@dataclass
class TimeSeries:
    """Rate observations for one product across its lifetime."""

    product_id: str
    product_name: str
    lender_id: str
    data_points: list[DataPoint] = field(
        default_factory=lambda: list[DataPoint]()
    )


@dataclass
class ChangeEntry:
    """A single added / removed / changed event for a product."""

    product_id: str
    product_name: str
    lender_id: str
    timestamp: datetime
    change_type: ChangeType
    previous_rate: float | None = None
    new_rate: float | None = None
    change_amount: float | None = None
    change_percent: float | None = None
    field_changes: list[FieldChange] | None = None

    @property
    def is_modified_only(self) -> bool:
        """Changed entry where only non-rate fields moved."""
        return (
            self.change_type is ChangeType.CHANGED
            and not self.change_amount
            and bool(self.field_changes)
        )


@dataclass
class ComparisonEntry:
    """How one product moved between a start and an end snapshot."""

    product: Product
    status: ComparisonStatus
    previous_rate: float | None = None
    current_rate: float | None = None
    change_amount: float | None = None
    change_percent: float | None = None
    field_changes: list[FieldChange] | None = None


def percent_change(previous: float, amount: float) -> float | None:
    """Relative change in percent, or None when *previous* is zero."""
    if previous == 0:
        return None
    return amount / previous * 100
