"""Reconciliation add-back: force total_add_backs to a target without losing itemized entries."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from ..config import get_settings
from ..models import AddBack
from ..taxonomy import AddBackCategory
from ._utils import ZERO, to_amount, to_decimal

RECONCILIATION_DESCRIPTION = "Manual Adjustment"
RECONCILIATION_CATEGORY = AddBackCategory.OTHER


def is_reconciliation_entry(add_back: AddBack) -> bool:
    return (
        add_back.description == RECONCILIATION_DESCRIPTION
        and add_back.category == RECONCILIATION_CATEGORY
    )


def ebitda_add_back_total(add_backs: Sequence[AddBack]) -> Decimal:
    return sum((to_decimal(ab.amount) for ab in add_backs if ab.include_in_ebitda), ZERO)


def reconcile_add_backs(
    add_backs: Sequence[AddBack],
    desired_total: Decimal | float | int,
    tolerance: Decimal | None = None,
) -> list[AddBack]:
    """Return add-backs whose EBITDA total equals desired_total.

    The difference against every non-synthetic add-back is carried by a single
    "Manual Adjustment" entry, upserted in place. When the difference is
    within tolerance of zero the synthetic entry is removed instead.
    """
    if tolerance is None:
        tolerance = get_settings().reconciliation_tolerance

    existing_index = next(
        (i for i, ab in enumerate(add_backs) if is_reconciliation_entry(ab)), None
    )
    others = [ab for ab in add_backs if not is_reconciliation_entry(ab)]
    delta = to_amount(desired_total) - ebitda_add_back_total(others)

    if abs(delta) < tolerance:
        return others

    if existing_index is not None:
        synthetic = add_backs[existing_index].model_copy(
            update={"amount": delta, "include_in_ebitda": True}
        )
    else:
        synthetic = AddBack(
            category=RECONCILIATION_CATEGORY,
            description=RECONCILIATION_DESCRIPTION,
            amount=delta,
            include_in_ebitda=True,
            include_in_sde=True,
        )

    result = list(others)
    position = existing_index if existing_index is not None else len(result)
    result.insert(position, synthetic)
    return result
