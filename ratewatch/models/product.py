# ratewatch/models/product.py

"""Mortgage rate product and partial-update patch models."""

import copy
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any


@dataclass
class Product:
    """A single mortgage rate offering from one lender."""

    id: str
    name: str
    lender_id: str
    type: str  # fixed | variable
    rate: float
    max_ltv: float
    buyer_types: list[str] = field(default_factory=lambda: list[str]())
    apr: float | None = None
    fixed_term: int | None = None
    min_ltv: float = 0
    min_loan: float | None = None
    ber_eligible: list[str] | None = None
    new_business: bool | None = None
    perks: list[str] = field(default_factory=lambda: list[str]())
    warning: str | None = None


PRODUCT_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Product))


class ProductPatch(Mapping[str, Any]):
    """Sparse set of product fields changed by an update operation.

    Only fields that are present in the patch are applied; a field that
    is absent is left untouched.  Presence is explicit: ``"apr" in patch``
    distinguishes "apr not changed" from "apr changed to None".
    """

    def __init__(self, changes: Mapping[str, Any] | None = None) -> None:
        values = dict(changes or {})
        unknown = set(values) - PRODUCT_FIELDS
        if unknown:
            msg = f"Unknown product field(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        if "id" in values:
            msg = "A patch cannot change a product id"
            raise ValueError(msg)
        self._changes: dict[str, Any] = values

    def __getitem__(self, key: str) -> Any:
        return self._changes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def __repr__(self) -> str:
        return f"ProductPatch({self._changes!r})"

    def apply(self, product: Product) -> Product:
        """Return a new product with the present fields merged in."""
        return replace(product, **copy.deepcopy(self._changes))


@dataclass
class Lender:
    """A lender registry entry."""

    id: str
    name: str
    discontinued: bool = False


def rate_type_key(product: Product) -> str:
    """Derive the rate-type filter key (``variable`` / ``fixed-N``)."""
    if product.type == "variable":
        return "variable"
    if product.fixed_term:
        return f"fixed-{product.fixed_term}"
    return "other"
