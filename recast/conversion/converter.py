"""Statement-to-Period Converter.

Takes already-parsed statements (one or more sheets), picks the sheet most
likely to be the full-company view, classifies its rows per period column,
and returns one fully summarized ReportingPeriod per period. Source-stated
totals become overrides so they are never recomputed away.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..analysis._utils import _cross_check
from ..analysis.summary import summarize
from ..config import get_settings
from ..errors import StructuralParseError
from ..models import (
    OVERRIDE_FIELDS,
    ConversionResult,
    ParsedStatement,
    PeriodOverrides,
    PeriodSummary,
    ReportingPeriod,
)
from ..taxonomy import RuleSet, get_rule_set
from .classify import PeriodDraft, classify_statement
from .columns import period_columns, pick_best_sheet, sheet_label

logger = logging.getLogger(__name__)


def _cross_check_overrides(
    period: ReportingPeriod,
    tolerance: float,
) -> list[str]:
    """Compare each source-stated override with the value the line items alone give."""
    if period.overrides.is_empty():
        return []
    baseline: PeriodSummary = summarize(period.line_items, period.add_backs)
    warnings: list[str] = []
    for name, stated in period.overrides.active().items():
        field_name = OVERRIDE_FIELDS[name]
        derived = getattr(baseline, field_name)
        if derived == 0:
            continue
        msg = _cross_check(derived, stated, field_name, tolerance)
        if msg is not None:
            warnings.append(f"{period.label}: {msg}")
    return warnings


def _build_period(draft: PeriodDraft, opportunity_id: str | None) -> ReportingPeriod:
    period = ReportingPeriod(
        opportunity_id=opportunity_id,
        period_type=draft.column.period_type,
        year=draft.column.year,
        quarter=draft.column.quarter,
        line_items=draft.line_items,
        add_backs=draft.add_backs,
        overrides=PeriodOverrides(**draft.overrides),
    )
    period.computed = summarize(period.line_items, period.add_backs, period.overrides)
    return period


def convert_statements(
    statements: Sequence[ParsedStatement],
    rules: RuleSet | None = None,
    sheet_name: str | None = None,
    opportunity_id: str | None = None,
) -> ConversionResult:
    """Convert parsed statements into computed reporting periods.

    sheet_name selects a sheet explicitly; otherwise the best-scoring sheet is used.
    Raises StructuralParseError when no sheet carries period columns.
    """
    if rules is None:
        rules = get_rule_set()
    settings = get_settings()

    sheet = pick_best_sheet(statements, sheet_name)
    label = sheet_label(sheet)
    columns, warnings = period_columns(sheet)
    if not columns:
        raise StructuralParseError(f"No period columns found in sheet {label!r}")

    classification = classify_statement(sheet, columns, rules)
    warnings.extend(classification.warnings)

    periods: list[ReportingPeriod] = []
    for draft in classification.drafts:
        if draft.is_empty():
            continue
        period = _build_period(draft, opportunity_id)
        warnings.extend(_cross_check_overrides(period, settings.cross_check_tolerance))
        periods.append(period)

    periods.sort(key=lambda p: (p.year, p.quarter or 0, p.period_type))
    add_back_count = sum(len(p.add_backs) for p in periods)
    logger.info("Converted sheet %r into %d period(s)", label, len(periods))

    return ConversionResult(
        periods=periods,
        sheet_used=label,
        uncategorized_rows=classification.uncategorized_rows,
        warnings=warnings,
        notes=(
            f"Deterministic extraction from {label!r}: {len(periods)} period(s), "
            f"{add_back_count} add-back(s), rule set {rules.version}."
        ),
    )
