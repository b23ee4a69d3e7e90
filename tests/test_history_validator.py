# tests/test_history_validator.py

"""Tests for history-versus-current-rates validation."""

import tempfile
import unittest
from datetime import UTC, datetime
from pathlib import Path

from ratewatch.models.history import Baseline, HistoryLog
from ratewatch.models.product import Lender, Product
from ratewatch.services.history_validator import (
    catalogue_mismatches,
    validate_all,
    validate_lender,
)
from ratewatch.storage.history_repository import HistoryRepository
from history_fixtures import write_data_dir, write_json


def _make_product(product_id: str, rate: float) -> Product:
    return Product(
        id=product_id,
        name=f"Rate {product_id}",
        lender_id="aib",
        type="variable",
        rate=rate,
        max_ltv=90,
        buyer_types=["ftb"],
    )


def _log(*products: Product) -> HistoryLog:
    return HistoryLog(
        "aib",
        Baseline(datetime(2024, 6, 1, tzinfo=UTC), "h0", list(products)),
    )


class TestCatalogueMismatches(unittest.TestCase):
    """Structural catalogue comparison."""

    def test_identical(self) -> None:
        """Identical catalogues have no mismatches."""
        products = [_make_product("a", 3.0)]
        self.assertEqual(catalogue_mismatches(products, products), [])

    def test_reports_each_kind(self) -> None:
        """Missing, extra and differing products are each reported."""
        problems = catalogue_mismatches(
            [_make_product("a", 3.0), _make_product("b", 3.0)],
            [_make_product("a", 3.1), _make_product("c", 3.0)],
        )
        self.assertEqual(
            problems,
            [
                "b: only in history",
                "c: only in current rates",
                "a: differs in rate",
            ],
        )


class TestValidateLender(unittest.TestCase):
    """Presence rules and catalogue match."""

    def setUp(self) -> None:
        self.active = Lender("aib", "AIB")
        self.gone = Lender("aib", "AIB", discontinued=True)
        self.products = [_make_product("a", 3.0)]

    def test_match(self) -> None:
        """Matching history and rates pass."""
        result = validate_lender(
            self.active, _log(*self.products), self.products,
        )
        self.assertTrue(result.success)

    def test_mismatch(self) -> None:
        """Drifted rates fail with details."""
        result = validate_lender(
            self.active, _log(*self.products), [_make_product("a", 3.2)],
        )
        self.assertFalse(result.success)
        self.assertIn("differs in rate", result.details)

    def test_not_yet_scraped(self) -> None:
        """A lender with neither file passes."""
        self.assertTrue(validate_lender(self.active, None, None).success)

    def test_rates_without_history(self) -> None:
        """Rates without history fail."""
        result = validate_lender(self.active, None, self.products)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Rates file exists but no history file")

    def test_history_without_rates(self) -> None:
        """History without rates fails."""
        result = validate_lender(self.active, _log(*self.products), None)
        self.assertFalse(result.success)

    def test_discontinued_rules(self) -> None:
        """Discontinued lenders may keep history but not rates."""
        self.assertTrue(validate_lender(self.gone, None, None).success)
        self.assertTrue(
            validate_lender(self.gone, _log(*self.products), None).success,
        )
        self.assertFalse(
            validate_lender(self.gone, None, self.products).success,
        )


class TestValidateAll(unittest.IsolatedAsyncioTestCase):
    """End-to-end validation over a data directory."""

    async def test_results_per_lender(self) -> None:
        """One result per registered lender."""
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            write_data_dir(root)
            results = await validate_all(HistoryRepository(root))
        outcome = {r.lender_id: r.success for r in results}
        self.assertEqual(outcome, {"aib": True, "boi": False, "kbc": True})

    async def test_drifted_history(self) -> None:
        """A catalogue that no longer matches history fails."""
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            write_data_dir(root)
            write_json(root / "aib.json", {"lenderId": "aib", "rates": []})
            with self.assertLogs("ratewatch.validator", "WARNING"):
                results = await validate_all(HistoryRepository(root))
        aib = next(r for r in results if r.lender_id == "aib")
        self.assertFalse(aib.success)
        self.assertIn("rate-1: only in history", aib.details)


if __name__ == "__main__":
    unittest.main()
