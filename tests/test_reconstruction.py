# tests/test_reconstruction.py

"""Tests for point-in-time catalogue reconstruction."""

import random
import unittest
from datetime import UTC, datetime

from ratewatch.history.reconstruction import (
    apply_operation,
    latest,
    reconstruct,
    reconstruct_snapshot,
)
from ratewatch.models.history import (
    AddOperation,
    Baseline,
    Changeset,
    HistoryLog,
    RemoveOperation,
    UpdateOperation,
)
from ratewatch.models.product import Product, ProductPatch


def _make_product(product_id: str, rate: float, **overrides: object) -> Product:
    fields: dict[str, object] = {
        "id": product_id,
        "name": product_id.replace("-", " ").title(),
        "lender_id": "aib",
        "type": "variable",
        "rate": rate,
        "max_ltv": 90,
        "buyer_types": ["ftb"],
    }
    fields.update(overrides)
    return Product(**fields)  # type: ignore[arg-type]


def _rates(products: list[Product]) -> dict[str, float]:
    return {p.id: p.rate for p in products}


class TestReconstruct(unittest.TestCase):
    """reconstruct() behaviour."""

    def setUp(self) -> None:
        self.baseline = Baseline(
            timestamp=datetime(2024, 6, 1, tzinfo=UTC),
            content_hash="h0",
            products=[
                _make_product("rate-1", 3.5),
                _make_product("rate-2", 4.1),
            ],
        )
        self.changesets = (
            Changeset(
                datetime(2024, 7, 1, tzinfo=UTC),
                "h1",
                [UpdateOperation("rate-1", ProductPatch({"rate": 3.25}))],
            ),
            Changeset(
                datetime(2024, 8, 1, tzinfo=UTC),
                "h2",
                [
                    AddOperation(_make_product("rate-3", 3.9)),
                    RemoveOperation("rate-2"),
                ],
            ),
            Changeset(
                datetime(2024, 9, 1, tzinfo=UTC),
                "h3",
                [UpdateOperation(
                    "rate-3", ProductPatch({"rate": 3.8, "name": "Green"}),
                )],
            ),
        )
        self.log = HistoryLog("aib", self.baseline, self.changesets)

    def test_before_baseline_is_empty(self) -> None:
        """Targets before the baseline give no products."""
        self.assertEqual(reconstruct(self.log, datetime(2024, 5, 31)), [])
        self.assertEqual(reconstruct(self.log, datetime(1970, 1, 1)), [])

    def test_at_baseline_equals_baseline(self) -> None:
        """At the baseline instant the baseline is returned."""
        result = reconstruct(self.log, self.baseline.timestamp)
        self.assertCountEqual(result, self.baseline.products)

    def test_between_baseline_and_first_change(self) -> None:
        """Scenario: rate still at its baseline value mid-June."""
        result = _rates(reconstruct(self.log, datetime(2024, 6, 15)))
        self.assertEqual(result["rate-1"], 3.5)

    def test_after_update(self) -> None:
        """Updates apply once their changeset has passed."""
        result = _rates(reconstruct(self.log, datetime(2024, 7, 15)))
        self.assertEqual(result, {"rate-1": 3.25, "rate-2": 4.1})

    def test_changeset_timestamp_is_inclusive(self) -> None:
        """A changeset at the target instant is applied."""
        result = _rates(
            reconstruct(self.log, datetime(2024, 8, 1, tzinfo=UTC)),
        )
        self.assertEqual(result, {"rate-1": 3.25, "rate-3": 3.9})

    def test_latest_applies_everything(self) -> None:
        """latest replays every changeset."""
        products = {p.id: p for p in latest(self.log)}
        self.assertEqual(set(products), {"rate-1", "rate-3"})
        self.assertEqual(products["rate-3"].rate, 3.8)
        self.assertEqual(products["rate-3"].name, "Green")

    def test_input_order_does_not_matter(self) -> None:
        """Shuffled changesets give the same snapshot."""
        shuffled = list(self.changesets)
        random.Random(7).shuffle(shuffled)
        shuffled_log = HistoryLog("aib", self.baseline, tuple(shuffled))
        for target in (
            datetime(2024, 6, 15),
            datetime(2024, 8, 15),
            datetime(2025, 1, 1),
        ):
            with self.subTest(target=target):
                self.assertEqual(
                    reconstruct_snapshot(shuffled_log, target),
                    reconstruct_snapshot(self.log, target),
                )

    def test_repeated_calls_are_identical(self) -> None:
        """Repeated calls give equal results."""
        target = datetime(2024, 9, 30)
        self.assertEqual(
            reconstruct(self.log, target), reconstruct(self.log, target),
        )

    def test_log_is_not_mutated(self) -> None:
        """Mutating the output never touches the input log."""
        result = reconstruct(self.log, datetime(2024, 6, 2))
        for product in result:
            product.rate = 99.0
            product.buyer_types.append("btl")
        self.assertEqual(self.baseline.products[0].rate, 3.5)
        self.assertEqual(self.baseline.products[0].buyer_types, ["ftb"])

        final = latest(self.log)
        for product in final:
            product.name = "mutated"
        added = self.changesets[1].operations[0]
        assert isinstance(added, AddOperation)
        self.assertEqual(added.product.name, "Rate 3")

    def test_changesets_sorted_after_construction(self) -> None:
        """The log holds changesets in time order."""
        stamps = [c.timestamp for c in self.log.changesets]
        self.assertEqual(stamps, sorted(stamps))


class TestApplyOperation(unittest.TestCase):
    """Tolerance rules for individual operations."""

    def test_add_overwrites(self) -> None:
        """Adding an existing id replaces the product."""
        state = {"a": _make_product("a", 3.0)}
        apply_operation(state, AddOperation(_make_product("a", 4.0)))
        self.assertEqual(state["a"].rate, 4.0)

    def test_remove_unknown_is_noop(self) -> None:
        """Removing an unknown id changes nothing."""
        state = {"a": _make_product("a", 3.0)}
        apply_operation(state, RemoveOperation("zzz"))
        self.assertEqual(list(state), ["a"])

    def test_update_unknown_is_noop(self) -> None:
        """Updating an unknown id changes nothing."""
        state = {"a": _make_product("a", 3.0)}
        apply_operation(
            state, UpdateOperation("zzz", ProductPatch({"rate": 1.0})),
        )
        self.assertEqual(list(state), ["a"])
        self.assertEqual(state["a"].rate, 3.0)

    def test_update_merges_fields(self) -> None:
        """Updates merge only the present fields."""
        state = {"a": _make_product("a", 3.0, apr=3.2)}
        apply_operation(
            state, UpdateOperation("a", ProductPatch({"apr": 3.3})),
        )
        self.assertEqual(state["a"].rate, 3.0)
        self.assertEqual(state["a"].apr, 3.3)


if __name__ == "__main__":
    unittest.main()
