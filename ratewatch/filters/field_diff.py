# ratewatch/filters/field_diff.py

"""Field-level structural diff between two versions of a product."""

from collections.abc import Iterable
from typing import Any

from ratewatch.config.settings import Settings
from ratewatch.models.changes import FieldChange
from ratewatch.models.product import Product


def values_equal(a: Any, b: Any, unordered: bool = False) -> bool:
    """Compare two attribute values.

    With *unordered* set, two collections are equal when they hold the
    same items in any order.
    """
    if unordered and isinstance(a, (list, tuple, set, frozenset)) and (
        isinstance(b, (list, tuple, set, frozenset))
    ):
        if len(a) != len(b):
            return False
        return sorted(a) == sorted(b)
    return a == b


def diff_fields(
    before: Product,
    after: Product,
    fields: Iterable[str] | None = None,
) -> list[FieldChange]:
    """Return the attributes whose values differ, in *fields* order.

    Defaults to ``Settings.COMPARABLE_FIELDS`` (every attribute except
    ``rate``).  Attributes in ``Settings.UNORDERED_FIELDS`` ignore item
    order.  Unchanged attributes are omitted.
    """
    names = Settings.COMPARABLE_FIELDS if fields is None else fields
    changes: list[FieldChange] = []
    for name in names:
        previous = getattr(before, name, None)
        new = getattr(after, name, None)
        if not values_equal(
            previous, new, unordered=name in Settings.UNORDERED_FIELDS,
        ):
            changes.append(FieldChange(
                field=name,
                previous_value=previous,
                new_value=new,
            ))
    return changes
