# tests/test_updates_timeline.py

"""Tests for the cross-lender updates timeline."""

import unittest
from datetime import UTC, date, datetime

from ratewatch.models.changes import ChangeEntry, ChangeType
from ratewatch.models.history import (
    AddOperation,
    Baseline,
    Changeset,
    HistoryLog,
    RemoveOperation,
    UpdateOperation,
)
from ratewatch.models.product import Product, ProductPatch
from ratewatch.services.updates_timeline import (
    UpdatesFilter,
    collect_updates,
    group_updates_by_date,
    matches_change_type,
)


def _ts(month: int, day: int = 1, hour: int = 0) -> datetime:
    return datetime(2024, month, day, hour, tzinfo=UTC)


def _make_product(
    product_id: str, rate: float, lender_id: str = "aib",
) -> Product:
    return Product(
        id=product_id,
        name=f"Name {product_id}",
        lender_id=lender_id,
        type="variable",
        rate=rate,
        max_ltv=90,
        buyer_types=["ftb"],
    )


def _update(product_id: str, **changes: object) -> UpdateOperation:
    return UpdateOperation(product_id, ProductPatch(changes))


def _build_logs() -> dict[str, HistoryLog]:
    aib = HistoryLog(
        "aib",
        Baseline(
            _ts(6), "a0",
            [_make_product("p1", 3.5), _make_product("p2", 4.0)],
        ),
        (
            Changeset(_ts(7), "a1", [_update("p1", rate=3.3)]),
            Changeset(_ts(8), "a2", [
                _update("p2", rate=4.2),
                _update("p1", max_ltv=80),
            ]),
            Changeset(_ts(9), "a3", [
                RemoveOperation("p2"),
                AddOperation(_make_product("p3", 3.9)),
            ]),
        ),
    )
    boi = HistoryLog(
        "boi",
        Baseline(_ts(6), "b0", [_make_product("b1", 4.0, "boi")]),
        (Changeset(_ts(8, 1, 9), "b1", [_update("b1", rate=3.9)]),),
    )
    return {"aib": aib, "boi": boi}


def _ids(entries: list[ChangeEntry]) -> list[str]:
    return [e.product_id for e in entries]


class TestCollectUpdates(unittest.TestCase):
    """Filtering the merged change logs."""

    def setUp(self) -> None:
        self.logs = _build_logs()

    def _collect(self, change_type: str = "all", **kw: object) -> list[ChangeEntry]:
        return collect_updates(
            self.logs,
            UpdatesFilter(start=_ts(6, 15), change_type=change_type, **kw),  # type: ignore[arg-type]
        )

    def test_all_updates_in_window(self) -> None:
        """Baseline additions before the window are not reported."""
        self.assertEqual(len(self._collect()), 6)

    def test_baseline_in_window_reported_as_added(self) -> None:
        """Without a window baseline products are added entries."""
        entries = collect_updates(self.logs)
        added = [e for e in entries if e.change_type is ChangeType.ADDED]
        self.assertEqual(sorted(_ids(added)), ["b1", "p1", "p2", "p3"])

    def test_decrease(self) -> None:
        """The decrease filter keeps rate cuts."""
        self.assertEqual(sorted(_ids(self._collect("decrease"))), ["b1", "p1"])

    def test_increase(self) -> None:
        """The increase filter keeps rate rises."""
        self.assertEqual(_ids(self._collect("increase")), ["p2"])

    def test_modified_excludes_rate_moves(self) -> None:
        """The modified filter keeps field-only changes."""
        entries = self._collect("modified")
        self.assertEqual(_ids(entries), ["p1"])
        self.assertEqual(entries[0].timestamp, _ts(8))

    def test_added_and_removed(self) -> None:
        """The added and removed filters keep those events."""
        self.assertEqual(_ids(self._collect("added")), ["p3"])
        self.assertEqual(_ids(self._collect("removed")), ["p2"])

    def test_lender_filter(self) -> None:
        """Only selected lenders are collected."""
        entries = self._collect(lender_ids=frozenset({"boi"}))
        self.assertEqual(_ids(entries), ["b1"])

    def test_end_bound(self) -> None:
        """The end bound drops later changes."""
        entries = collect_updates(
            self.logs, UpdatesFilter(start=_ts(6, 15), end=_ts(7, 15)),
        )
        self.assertEqual(_ids(entries), ["p1"])

    def test_unknown_change_type(self) -> None:
        """An unknown change type is rejected."""
        with self.assertRaises(ValueError):
            UpdatesFilter(change_type="sideways")


class TestMatchesChangeType(unittest.TestCase):
    """Classification of single entries."""

    def test_changed_without_amount_is_not_a_move(self) -> None:
        """A zero-amount change is neither increase nor decrease."""
        entry = ChangeEntry(
            "p", "P", "aib", _ts(7), ChangeType.CHANGED,
            previous_rate=3.0, new_rate=3.0, change_amount=0,
        )
        self.assertFalse(matches_change_type(entry, "increase"))
        self.assertFalse(matches_change_type(entry, "decrease"))
        self.assertTrue(matches_change_type(entry, "all"))

    def test_added_is_not_increase(self) -> None:
        """Added entries only match added."""
        entry = ChangeEntry(
            "p", "P", "aib", _ts(7), ChangeType.ADDED, new_rate=3.0,
        )
        self.assertFalse(matches_change_type(entry, "increase"))
        self.assertTrue(matches_change_type(entry, "added"))


class TestGroupUpdatesByDate(unittest.TestCase):
    """Day grouping for display."""

    def test_newest_day_first(self) -> None:
        """Days are grouped newest first."""
        entries = collect_updates(_build_logs(), UpdatesFilter(start=_ts(6, 15)))
        groups = group_updates_by_date(entries)
        self.assertEqual(
            [g.day for g in groups],
            [date(2024, 9, 1), date(2024, 8, 1), date(2024, 7, 1)],
        )
        self.assertEqual(
            sorted(_ids(groups[1].entries)), ["b1", "p1", "p2"],
        )

    def test_empty(self) -> None:
        """No entries give no groups."""
        self.assertEqual(group_updates_by_date([]), [])


if __name__ == "__main__":
    unittest.main()
