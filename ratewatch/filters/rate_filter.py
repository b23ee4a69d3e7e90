# ratewatch/filters/rate_filter.py

"""Product filters shared by the comparison, timeline and trend views."""

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field

from ratewatch.config.settings import Settings
from ratewatch.models.changes import ComparisonEntry, ComparisonStatus
from ratewatch.models.product import Product, rate_type_key

logger = logging.getLogger("ratewatch.filters")

BUYER_CATEGORIES: tuple[str, ...] = ("all", "pdh", "btl")


@dataclass(frozen=True)
class RateFilters:
    """Filter state applied to both snapshots before matching.

    An empty ``lender_ids`` set means every lender.  ``rate_type`` is a
    key such as ``variable`` or ``fixed-3``; ``None`` means any.
    ``max_ltv`` keeps products whose maximum LTV does not exceed it.
    """

    lender_ids: frozenset[str] = field(
        default_factory=lambda: frozenset[str]()
    )
    rate_type: str | None = None
    buyer_category: str = "all"
    max_ltv: float | None = None

    def __post_init__(self) -> None:
        if self.buyer_category not in BUYER_CATEGORIES:
            msg = (
                f"Unknown buyer category '{self.buyer_category}' "
                f"(expected one of {', '.join(BUYER_CATEGORIES)})"
            )
            raise ValueError(msg)

    def includes_lender(self, lender_id: str) -> bool:
        """True when *lender_id* is in scope."""
        return not self.lender_ids or lender_id in self.lender_ids

    def matches(self, product: Product) -> bool:
        """True when *product* passes every active filter."""
        if not self.includes_lender(product.lender_id):
            return False
        if self.rate_type and rate_type_key(product) != self.rate_type:
            return False
        if self.buyer_category != "all":
            allowed = (
                Settings.PDH_BUYER_TYPES
                if self.buyer_category == "pdh"
                else Settings.BTL_BUYER_TYPES
            )
            if not any(bt in allowed for bt in product.buyer_types):
                return False
        if self.max_ltv is not None and product.max_ltv > self.max_ltv:
            return False
        return True

    def apply(self, products: Iterable[Product]) -> list[Product]:
        """Return the products that pass the filters."""
        return [p for p in products if self.matches(p)]


def search_comparisons(
    entries: list[ComparisonEntry],
    query: str,
    lender_names: Mapping[str, str] | None = None,
) -> list[ComparisonEntry]:
    """Keep entries whose product name or lender name contains *query*."""
    needle = query.strip().lower()
    if not needle:
        return entries
    names = lender_names or {}
    kept = [
        e
        for e in entries
        if needle in e.product.name.lower()
        or needle in names.get(
            e.product.lender_id, e.product.lender_id
        ).lower()
    ]
    logger.debug(
        "Search '%s' kept %d of %d entries", needle, len(kept), len(entries),
    )
    return kept


def filter_statuses(
    entries: list[ComparisonEntry],
    statuses: Collection[str] | None = None,
) -> list[ComparisonEntry]:
    """Keep entries whose status is toggled on.

    Defaults to every status except ``unchanged``.
    """
    visible = (
        Settings.DEFAULT_VISIBLE_STATUSES if statuses is None else statuses
    )
    return [e for e in entries if e.status.value in visible]


def summarize(entries: Iterable[ComparisonEntry]) -> dict[str, int]:
    """Count entries per status (every status present, zero included)."""
    counts = {status.value: 0 for status in ComparisonStatus}
    for entry in entries:
        counts[entry.status.value] += 1
    return counts
