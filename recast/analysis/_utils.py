"""Shared utilities for analysis modules."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

AMOUNT_QUANTUM = Decimal("0.01")
RATIO_QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Normalize numeric values to Decimal. None becomes zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_amount(value: Any) -> Decimal:
    """Normalize a monetary value to Decimal cents."""
    return to_decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def safe_ratio(numerator: Decimal, denominator: Decimal | None) -> Decimal | None:
    """numerator / denominator, or None when the denominator is missing or zero."""
    if denominator is None or denominator == 0:
        return None
    return (numerator / denominator).quantize(RATIO_QUANTUM, rounding=ROUND_HALF_UP)


def _cross_check(
    computed: Decimal | float | None,
    reported: Decimal | float | None,
    metric_name: str,
    tolerance: float = 0.01,
) -> str | None:
    """Compare a value derived from line items against a source-stated value.

    Returns a warning string if relative divergence exceeds tolerance.
    Returns None if they agree or if either value is None.
    """
    if computed is None or reported is None or reported == 0:
        return None
    rel_diff = abs(float(computed) - float(reported)) / abs(float(reported))
    if rel_diff > tolerance:
        return (
            f"{metric_name}: computed ({float(computed):,.0f}) differs from reported "
            f"({float(reported):,.0f}) by {rel_diff:.1%}"
        )
    return None
