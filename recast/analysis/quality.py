"""Quality checks over computed reporting periods.

Flags figures a buyer would question: negative or thin EBITDA, heavy
add-backs, margins outside the trades benchmark bands, owner dependence,
revenue volatility, incomplete P&Ls and math that does not tie out.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from ..config import Settings, get_settings
from ..models import PeriodType, QualityCheck, ReportingPeriod
from ..taxonomy import LineItemCategory

SEVERITY_ORDER = {"error": 0, "warning": 1, "info": 2}
EXPECTED_CATEGORIES = (LineItemCategory.REVENUE, LineItemCategory.COGS, LineItemCategory.OPEX)


def _money(value: Decimal) -> str:
    return f"${round(value):,}"


def _check_latest(period: ReportingPeriod, settings: Settings) -> list[QualityCheck]:
    checks: list[QualityCheck] = []
    s = period.computed
    if s is None:
        return checks

    revenue = s.total_revenue

    if s.ebitda < 0:
        checks.append(
            QualityCheck(
                id="negative-ebitda",
                severity="error",
                title="Negative EBITDA",
                message=(
                    f"EBITDA is negative ({_money(s.ebitda)}). "
                    "This business is not profitable before adjustments."
                ),
            )
        )

    if 0 < s.adjusted_ebitda < settings.thesis_min_adjusted_ebitda:
        checks.append(
            QualityCheck(
                id="below-thesis-minimum",
                severity="warning",
                title="Below Thesis Minimum",
                message=(
                    f"Adj. EBITDA of {_money(s.adjusted_ebitda)} is below the "
                    f"{_money(settings.thesis_min_adjusted_ebitda)} thesis floor."
                ),
            )
        )

    if revenue > 0 and s.total_add_backs > 0:
        ratio = float(s.total_add_backs / revenue)
        if ratio > settings.addback_ratio_error:
            checks.append(
                QualityCheck(
                    id="high-addback-ratio",
                    severity="error",
                    title="Very High Add-Back Ratio",
                    message=(
                        f"Add-backs are {ratio:.1%} of revenue and may not survive "
                        "buyer due diligence."
                    ),
                )
            )
        elif ratio > settings.addback_ratio_warning:
            checks.append(
                QualityCheck(
                    id="elevated-addback-ratio",
                    severity="warning",
                    title="Elevated Add-Back Ratio",
                    message=(
                        f"Add-backs are {ratio:.1%} of revenue. "
                        "Buyers may scrutinize these adjustments."
                    ),
                )
            )

    low, high = settings.gross_margin_band
    if s.gross_margin is not None and s.gross_margin > 0:
        gm = float(s.gross_margin)
        if gm < low:
            checks.append(
                QualityCheck(
                    id="low-gross-margin",
                    severity="warning",
                    title="Low Gross Margin",
                    message=f"Gross margin of {gm:.1%} is below the typical range for trades businesses.",
                )
            )
        elif gm > high:
            checks.append(
                QualityCheck(
                    id="high-gross-margin",
                    severity="info",
                    title="High Gross Margin",
                    message=f"Gross margin of {gm:.1%} is unusually high. Verify COGS is complete.",
                )
            )

    low, high = settings.ebitda_margin_band
    if s.ebitda_margin is not None and s.ebitda_margin > 0:
        em = float(s.ebitda_margin)
        if em < low:
            checks.append(
                QualityCheck(
                    id="low-ebitda-margin",
                    severity="warning",
                    title="Low EBITDA Margin",
                    message=f"EBITDA margin of {em:.1%} is thin. Limited room for debt service.",
                )
            )
        elif em > high:
            checks.append(
                QualityCheck(
                    id="high-ebitda-margin",
                    severity="info",
                    title="High EBITDA Margin",
                    message=f"EBITDA margin of {em:.1%}. Verify operating expenses are complete.",
                )
            )

    if revenue > 0 and s.sde > 0 and s.adjusted_ebitda > 0:
        owner_share = float((s.sde - s.adjusted_ebitda) / revenue)
        if owner_share > settings.owner_comp_ratio_warning:
            checks.append(
                QualityCheck(
                    id="high-owner-comp",
                    severity="warning",
                    title="High Owner Compensation",
                    message=(
                        f"Imputed owner comp is {owner_share:.1%} of revenue. "
                        "May indicate an owner-dependent business."
                    ),
                )
            )

    present = {item.category for item in period.line_items}
    missing = [c.value for c in EXPECTED_CATEGORIES if c not in present]
    if period.line_items and missing:
        checks.append(
            QualityCheck(
                id="missing-line-items",
                severity="info",
                title="Incomplete P&L",
                message=f"Missing categories: {', '.join(missing)}.",
            )
        )

    if LineItemCategory.UNCATEGORIZED in present:
        count = sum(1 for i in period.line_items if i.category == LineItemCategory.UNCATEGORIZED)
        checks.append(
            QualityCheck(
                id="uncategorized-line-items",
                severity="warning",
                title="Uncategorized Rows",
                message=f"{count} line item(s) matched no category rule and are excluded from totals.",
            )
        )

    if revenue and s.total_cogs and s.gross_profit:
        expected_gp = revenue - s.total_cogs
        if abs(expected_gp - s.gross_profit) > 1:
            checks.append(
                QualityCheck(
                    id="math-inconsistency",
                    severity="error",
                    title="Math Inconsistency",
                    message=(
                        "Gross Profit doesn't match Revenue - COGS "
                        f"(expected {_money(expected_gp)}, got {_money(s.gross_profit)})."
                    ),
                )
            )

    return checks


def run_quality_checks(
    periods: Sequence[ReportingPeriod],
    settings: Settings | None = None,
) -> list[QualityCheck]:
    """Run all checks against the latest annual period and the annual revenue series."""
    if settings is None:
        settings = get_settings()

    annual = [p for p in periods if p.period_type == PeriodType.ANNUAL and p.computed is not None]
    if not annual:
        return []

    ordered = sorted(annual, key=lambda p: p.year, reverse=True)
    checks = _check_latest(ordered[0], settings)

    for curr, prev in zip(ordered, ordered[1:]):
        curr_rev, prev_rev = curr.computed.total_revenue, prev.computed.total_revenue
        if prev_rev > 0 and curr_rev > 0:
            change = float((curr_rev - prev_rev) / prev_rev)
            if abs(change) > settings.revenue_volatility_warning:
                checks.append(
                    QualityCheck(
                        id=f"yoy-volatility-{curr.year}",
                        severity="warning",
                        title=f"Revenue Volatility ({curr.year})",
                        message=f"{curr.year} revenue changed {change:+.1%} YoY.",
                    )
                )

    if len(ordered) == 1:
        checks.append(
            QualityCheck(
                id="single-period",
                severity="info",
                title="Limited Data",
                message="Only one financial period. Add more years to see trends.",
            )
        )

    checks.sort(key=lambda c: SEVERITY_ORDER[c.severity])
    return checks
