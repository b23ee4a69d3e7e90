# ratewatch/services/history_validator.py

"""Consistency checks between history logs and the live catalogues."""

import logging
from dataclasses import dataclass

from ratewatch.config.settings import Settings
from ratewatch.filters.field_diff import diff_fields
from ratewatch.history.reconstruction import latest
from ratewatch.models.history import HistoryLog
from ratewatch.models.product import Lender, Product
from ratewatch.storage.history_repository import HistoryRepository

logger = logging.getLogger("ratewatch.validator")

_CHECKED_FIELDS: tuple[str, ...] = (
    "rate", "type", "lender_id", *Settings.COMPARABLE_FIELDS,
)


@dataclass
class ValidationResult:
    """Outcome of validating one lender."""

    lender_id: str
    success: bool
    details: str = ""
    error: str | None = None


def catalogue_mismatches(
    reconstructed: list[Product],
    current: list[Product],
) -> list[str]:
    """Describe every product that differs between the two catalogues."""
    rebuilt = {p.id: p for p in reconstructed}
    live = {p.id: p for p in current}
    problems: list[str] = []
    for product_id in sorted(rebuilt.keys() - live.keys()):
        problems.append(f"{product_id}: only in history")
    for product_id in sorted(live.keys() - rebuilt.keys()):
        problems.append(f"{product_id}: only in current rates")
    for product_id in sorted(rebuilt.keys() & live.keys()):
        diffs = diff_fields(
            rebuilt[product_id], live[product_id], _CHECKED_FIELDS,
        )
        if diffs:
            fields = ", ".join(d.field for d in diffs)
            problems.append(f"{product_id}: differs in {fields}")
    return problems


def validate_lender(
    lender: Lender,
    history: HistoryLog | None,
    current: list[Product] | None,
) -> ValidationResult:
    """Check presence rules and that replayed history matches live rates."""
    if lender.discontinued:
        if current is not None:
            return ValidationResult(
                lender_id=lender.id,
                success=False,
                error="Discontinued lender should not have a rates file",
            )
        if history is None:
            return ValidationResult(
                lender_id=lender.id,
                success=True,
                details="Discontinued lender with no history (OK)",
            )
        return ValidationResult(
            lender_id=lender.id,
            success=True,
            details=(
                "Discontinued lender with "
                f"{len(history.changesets)} changesets preserved"
            ),
        )

    if history is None:
        if current is None:
            return ValidationResult(
                lender_id=lender.id,
                success=True,
                details="No history or rates file (not yet scraped)",
            )
        return ValidationResult(
            lender_id=lender.id,
            success=False,
            error="Rates file exists but no history file",
        )

    if current is None:
        return ValidationResult(
            lender_id=lender.id,
            success=False,
            error="History file exists but no rates file",
        )

    problems = catalogue_mismatches(latest(history), current)
    if problems:
        return ValidationResult(
            lender_id=lender.id,
            success=False,
            error="Reconstructed rates do not match current rates",
            details="\n".join(problems),
        )
    return ValidationResult(
        lender_id=lender.id,
        success=True,
        details=f"Catalogue matches ({len(history.changesets)} changesets)",
    )


async def validate_all(repo: HistoryRepository) -> list[ValidationResult]:
    """Validate every registered lender (discontinued ones included)."""
    results: list[ValidationResult] = []
    for lender in await repo.get_lenders():
        result = validate_lender(
            lender,
            await repo.get(lender.id),
            await repo.get_current(lender.id),
        )
        if not result.success:
            logger.warning(
                "Validation failed for %s: %s", lender.id, result.error,
            )
        results.append(result)
    return results
