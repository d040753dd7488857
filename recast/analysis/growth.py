"""Period-over-period growth rates and margin deltas between reporting periods."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from ..models import ComputedValue, PeriodSummary, ReportingPeriod
from ._utils import RATIO_QUANTUM

GROWTH_KEYS = ["total_revenue", "ebitda", "adjusted_ebitda", "sde", "net_income"]
MARGIN_KEYS = ["gross_margin", "ebitda_margin", "adjusted_ebitda_margin", "net_margin"]


def _summary(period: ReportingPeriod) -> PeriodSummary:
    if period.computed is None:
        raise ValueError(f"Period {period.label} has not been summarized")
    return period.computed


def _safe_growth(
    metric_name: str,
    current_val: Decimal | None,
    prior_val: Decimal | None,
    components: dict[str, Any],
) -> ComputedValue | None:
    """Compute growth from the current and prior period values."""
    if current_val is None or prior_val is None:
        return None

    formula = f"({metric_name}_current - {metric_name}_prior) / abs({metric_name}_prior)"
    warnings: list[str] = []

    if prior_val == 0:
        return ComputedValue(
            metric=f"{metric_name}_yoy",
            value=None,
            unit="pure",
            formula=formula,
            components=components,
            warnings=["Prior period value is zero; cannot compute growth"],
        )

    if prior_val < 0:
        warnings.append(f"Prior period value is negative ({prior_val}); using abs() for denominator")

    growth = ((current_val - prior_val) / abs(prior_val)).quantize(RATIO_QUANTUM)

    return ComputedValue(
        metric=f"{metric_name}_yoy",
        value=growth,
        unit="pure",
        formula=formula,
        components=components,
        warnings=warnings,
    )


def _margin_delta(
    metric_name: str,
    current_margin: Decimal | None,
    prior_margin: Decimal | None,
    components: dict[str, Any],
) -> ComputedValue | None:
    """Compute margin change as raw decimal delta (0.02 = +200bps)."""
    if current_margin is None or prior_margin is None:
        return None
    return ComputedValue(
        metric=f"{metric_name}_chg",
        value=current_margin - prior_margin,
        unit="pure",
        formula=f"{metric_name}_current - {metric_name}_prior",
        components=components,
    )


def compute_growth(current: ReportingPeriod, prior: ReportingPeriod) -> dict[str, ComputedValue]:
    """Compute growth and margin deltas of current against prior.

    Margin deltas are raw decimal change (0.02 = +200bps expansion).
    Both periods must already carry a computed summary.
    """
    cur, pri = _summary(current), _summary(prior)
    result: dict[str, ComputedValue] = {}

    for key in GROWTH_KEYS:
        cur_val, pri_val = getattr(cur, key), getattr(pri, key)
        components = {
            "current": {"period": current.label, key: cur_val},
            "prior": {"period": prior.label, key: pri_val},
        }
        cv = _safe_growth(key, cur_val, pri_val, components)
        if cv is not None:
            result[f"{key}_yoy"] = cv

    for key in MARGIN_KEYS:
        cur_val, pri_val = getattr(cur, key), getattr(pri, key)
        components = {
            "current": {"period": current.label, key: cur_val},
            "prior": {"period": prior.label, key: pri_val},
        }
        cv = _margin_delta(key, cur_val, pri_val, components)
        if cv is not None:
            result[f"{key}_chg"] = cv

    return result


def _sort_key(period: ReportingPeriod) -> tuple[int, int]:
    return (period.year, period.quarter or 0)


def compute_growth_series(periods: Sequence[ReportingPeriod]) -> dict[str, dict[str, ComputedValue]]:
    """Growth of each period against the preceding period of the same type.

    Keyed by the later period's label ("FY2024", "Q2 2024").
    """
    result: dict[str, dict[str, ComputedValue]] = {}
    by_type: dict[str, list[ReportingPeriod]] = {}
    for period in periods:
        by_type.setdefault(period.period_type, []).append(period)

    for series in by_type.values():
        ordered = sorted(series, key=_sort_key)
        for prior, current in zip(ordered, ordered[1:]):
            result[current.label] = compute_growth(current, prior)
    return result
