# ratewatch/storage/history_codec.py

"""Parse history, catalogue and lender JSON documents into models."""

from datetime import datetime
from typing import Any, cast

from ratewatch.models.history import (
    AddOperation,
    Baseline,
    Changeset,
    HistoryLog,
    Operation,
    RemoveOperation,
    UpdateOperation,
    as_utc,
)
from ratewatch.models.product import Lender, Product, ProductPatch

# JSON key -> Product attribute
_FIELD_MAP: dict[str, str] = {
    "id": "id",
    "name": "name",
    "lenderId": "lender_id",
    "type": "type",
    "rate": "rate",
    "apr": "apr",
    "fixedTerm": "fixed_term",
    "minLtv": "min_ltv",
    "maxLtv": "max_ltv",
    "minLoan": "min_loan",
    "buyerTypes": "buyer_types",
    "berEligible": "ber_eligible",
    "newBusiness": "new_business",
    "perks": "perks",
    "warning": "warning",
}
_REVERSE_MAP: dict[str, str] = {v: k for k, v in _FIELD_MAP.items()}
_REQUIRED: tuple[str, ...] = (
    "id", "name", "lenderId", "type", "rate", "maxLtv", "buyerTypes",
)


class HistoryFormatError(ValueError):
    """Raised when a document does not match the expected shape."""


def _require_dict(value: object, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        msg = f"{what} must be an object"
        raise HistoryFormatError(msg)
    return cast(dict[str, Any], value)


def _require_list(value: object, what: str) -> list[Any]:
    if not isinstance(value, list):
        msg = f"{what} must be an array"
        raise HistoryFormatError(msg)
    return cast(list[Any], value)


def _require_str(value: object, what: str) -> str:
    if not isinstance(value, str):
        msg = f"{what} must be a string"
        raise HistoryFormatError(msg)
    return value


def parse_timestamp(raw: object) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) as aware UTC."""
    text = _require_str(raw, "timestamp")
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        msg = f"Invalid timestamp: {text!r}"
        raise HistoryFormatError(msg) from exc
    return as_utc(parsed)


def _convert(key: str, value: Any) -> Any:
    """Normalise one JSON value for a product attribute."""
    if key in ("buyerTypes", "berEligible", "perks"):
        return [str(v) for v in _require_list(value, key)]
    if key in ("rate", "apr", "minLtv", "maxLtv", "minLoan"):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            msg = f"{key} must be a number"
            raise HistoryFormatError(msg)
        return float(value)
    if key == "fixedTerm":
        if isinstance(value, bool) or not isinstance(value, int):
            msg = "fixedTerm must be an integer"
            raise HistoryFormatError(msg)
        return value
    if key == "newBusiness":
        if not isinstance(value, bool):
            msg = "newBusiness must be a boolean"
            raise HistoryFormatError(msg)
        return value
    return _require_str(value, key)


def parse_product(raw: object) -> Product:
    """Build a :class:`Product` from its camelCase JSON form."""
    data = _require_dict(raw, "rate")
    missing = [k for k in _REQUIRED if k not in data]
    if missing:
        msg = f"rate is missing field(s): {', '.join(missing)}"
        raise HistoryFormatError(msg)
    kwargs = {
        _FIELD_MAP[k]: _convert(k, v)
        for k, v in data.items()
        if k in _FIELD_MAP and v is not None
    }
    return Product(**kwargs)


def parse_patch(raw: object) -> ProductPatch:
    """Build a :class:`ProductPatch` from an update's ``changes`` object."""
    data = _require_dict(raw, "changes")
    return ProductPatch({
        _FIELD_MAP[k]: _convert(k, v)
        for k, v in data.items()
        if k in _FIELD_MAP and k != "id" and v is not None
    })


def parse_operation(raw: object) -> Operation:
    """Decode one tagged ``add`` / ``remove`` / ``update`` operation."""
    data = _require_dict(raw, "operation")
    kind = data.get("op")
    if kind == "add":
        return AddOperation(product=parse_product(data.get("rate")))
    if kind == "remove":
        return RemoveOperation(product_id=_require_str(data.get("id"), "id"))
    if kind == "update":
        product_id = _require_str(data.get("id"), "id")
        changes = _require_dict(data.get("changes"), "changes")
        if changes.get("id") != product_id:
            msg = f"update changes for {product_id!r} must repeat its id"
            raise HistoryFormatError(msg)
        return UpdateOperation(
            product_id=product_id, patch=parse_patch(changes),
        )
    msg = f"Unknown operation: {kind!r}"
    raise HistoryFormatError(msg)


def parse_history(raw: object) -> HistoryLog:
    """Decode a full per-lender history document."""
    data = _require_dict(raw, "history")
    lender_id = _require_str(data.get("lenderId"), "lenderId")
    baseline_raw = _require_dict(data.get("baseline"), "baseline")
    baseline = Baseline(
        timestamp=parse_timestamp(baseline_raw.get("timestamp")),
        content_hash=str(baseline_raw.get("ratesHash", "")),
        products=[
            parse_product(r)
            for r in _require_list(baseline_raw.get("rates"), "rates")
        ],
    )
    changesets = [
        Changeset(
            timestamp=parse_timestamp(c.get("timestamp")),
            content_hash=str(c.get("afterHash", "")),
            operations=[
                parse_operation(op)
                for op in _require_list(c.get("operations"), "operations")
            ],
        )
        for c in (
            _require_dict(item, "changeset")
            for item in _require_list(data.get("changesets"), "changesets")
        )
    ]
    return HistoryLog(
        lender_id=lender_id,
        baseline=baseline,
        changesets=tuple(changesets),
    )


def parse_catalogue(raw: object) -> list[Product]:
    """Decode a current-rates document (``{lenderId, rates: [...]}``)."""
    data = _require_dict(raw, "rates file")
    return [
        parse_product(r) for r in _require_list(data.get("rates"), "rates")
    ]


def parse_lenders(raw: object) -> list[Lender]:
    """Decode the lender registry (``[{id, name, discontinued?}]``)."""
    lenders: list[Lender] = []
    for item in _require_list(raw, "lenders"):
        entry = _require_dict(item, "lender")
        lender_id = _require_str(entry.get("id"), "id")
        lenders.append(Lender(
            id=lender_id,
            name=str(entry.get("name", lender_id)),
            discontinued=bool(entry.get("discontinued", False)),
        ))
    return lenders


def product_to_dict(product: Product) -> dict[str, object]:
    """Serialise a product back to camelCase JSON, omitting unset optionals."""
    result: dict[str, object] = {}
    for attr, key in _REVERSE_MAP.items():
        value = getattr(product, attr)
        if value is not None:
            result[key] = value
    return result


def field_json_name(attr: str) -> str:
    """camelCase JSON name of a product attribute."""
    return _REVERSE_MAP.get(attr, attr)
