# ratewatch/models/history.py

"""Append-only baseline-plus-changeset history for one lender."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from ratewatch.models.product import Product, ProductPatch


def as_utc(moment: datetime) -> datetime:
    """Return *moment* as an aware UTC datetime (naive means UTC)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


@dataclass(frozen=True)
class AddOperation:
    """Insert (or overwrite) a product."""

    product: Product

    @property
    def product_id(self) -> str:
        return self.product.id


@dataclass(frozen=True)
class RemoveOperation:
    """Delete a product by id."""

    product_id: str


@dataclass(frozen=True)
class UpdateOperation:
    """Merge a sparse patch onto an existing product."""

    product_id: str
    patch: ProductPatch


Operation = AddOperation | RemoveOperation | UpdateOperation


@dataclass(frozen=True)
class Baseline:
    """The earliest fully-known catalogue of a lender."""

    timestamp: datetime
    content_hash: str
    products: list[Product] = field(default_factory=lambda: list[Product]())

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))


@dataclass(frozen=True)
class Changeset:
    """All operations observed at a single point in time."""

    timestamp: datetime
    content_hash: str
    operations: list[Operation] = field(
        default_factory=lambda: list[Operation]()
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))


@dataclass(frozen=True)
class HistoryLog:
    """Baseline plus changesets, kept in chronological order.

    Changesets are stably sorted by timestamp on construction, whatever
    order the caller supplies them in.
    """

    lender_id: str
    baseline: Baseline
    changesets: tuple[Changeset, ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(
            sorted(self.changesets, key=lambda c: c.timestamp)
        )
        object.__setattr__(self, "changesets", ordered)

    @property
    def latest_timestamp(self) -> datetime:
        """Timestamp of the most recent known state."""
        if self.changesets:
            return self.changesets[-1].timestamp
        return self.baseline.timestamp
