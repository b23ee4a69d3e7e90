# ratewatch/history/reconstruction.py

"""Point-in-time reconstruction of a lender's catalogue."""

import copy
import logging
from datetime import datetime

from ratewatch.models.history import (
    AddOperation,
    HistoryLog,
    Operation,
    RemoveOperation,
    UpdateOperation,
    as_utc,
)
from ratewatch.models.product import Product

logger = logging.getLogger("ratewatch.history")

Snapshot = dict[str, Product]


def apply_operation(state: Snapshot, op: Operation) -> None:
    """Apply one operation to a working snapshot in place.

    ``Remove`` and ``Update`` of an id missing from *state* are no-ops.
    """
    match op:
        case AddOperation(product=product):
            state[product.id] = copy.deepcopy(product)
        case RemoveOperation(product_id=product_id):
            state.pop(product_id, None)
        case UpdateOperation(product_id=product_id, patch=patch):
            existing = state.get(product_id)
            if existing is not None:
                state[product_id] = patch.apply(existing)


def baseline_snapshot(log: HistoryLog) -> Snapshot:
    """Deep copy of the baseline keyed by product id."""
    return {
        p.id: copy.deepcopy(p) for p in log.baseline.products
    }


def reconstruct_snapshot(log: HistoryLog, target: datetime) -> Snapshot:
    """Rebuild the id -> product mapping as it stood at *target*."""
    target = as_utc(target)
    if target < log.baseline.timestamp:
        return {}

    state = baseline_snapshot(log)
    applied = 0
    for changeset in log.changesets:
        if changeset.timestamp > target:
            break
        for op in changeset.operations:
            apply_operation(state, op)
        applied += 1

    logger.debug(
        "Reconstructed %s at %s: %d products after %d/%d changesets",
        log.lender_id,
        target.isoformat(),
        len(state),
        applied,
        len(log.changesets),
    )
    return state


def reconstruct(log: HistoryLog, target: datetime) -> list[Product]:
    """Return every product that existed at *target*.

    Returns an empty list when *target* predates the baseline.  The
    order follows insertion order of the working map and is not part of
    the contract.
    """
    return list(reconstruct_snapshot(log, target).values())


def latest(log: HistoryLog) -> list[Product]:
    """Catalogue after the most recent changeset."""
    return reconstruct(log, log.latest_timestamp)
