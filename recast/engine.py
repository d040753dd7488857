"""Orchestrator: raw grids or workbooks in, computed reporting periods out."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .analysis.growth import compute_growth_series
from .analysis.quality import run_quality_checks
from .config import Settings
from .conversion.converter import convert_statements
from .models import ConversionResult, PeriodAnalysis, ReportingPeriod
from .parsing.cells import Grid
from .parsing.grid import parse_grid
from .parsing.workbook import parse_workbook
from .taxonomy import RuleSet

logger = logging.getLogger(__name__)


def reconstruct_grid(
    grid: Grid,
    sheet_name: str | None = None,
    rules: RuleSet | None = None,
    opportunity_id: str | None = None,
) -> ConversionResult:
    """Parse one grid and convert it into reporting periods.

    Raises StructuralParseError when the grid has no header row or no
    period columns.
    """
    statement = parse_grid(grid, sheet_name=sheet_name)
    return convert_statements([statement], rules=rules, opportunity_id=opportunity_id)


def reconstruct_workbook(
    sheets: Mapping[str, Grid] | Iterable[tuple[str, Grid]],
    source_name: str | None = None,
    sheet_name: str | None = None,
    rules: RuleSet | None = None,
    opportunity_id: str | None = None,
) -> ConversionResult:
    """Parse every tab of a workbook and convert the best (or selected) sheet.

    Tabs that fail to parse are skipped with a warning. sheet_name picks a tab
    explicitly and raises UnknownSheetError if the workbook has no such tab.
    """
    workbook = parse_workbook(sheets, source_name=source_name)
    logger.info(
        "Parsed %d sheet(s) from %s: %s",
        len(workbook.sheets),
        source_name or "workbook",
        ", ".join(workbook.sheet_names),
    )
    return convert_statements(
        workbook.sheets,
        rules=rules,
        sheet_name=sheet_name,
        opportunity_id=opportunity_id,
    )


def analyze_periods(
    periods: Sequence[ReportingPeriod],
    settings: Settings | None = None,
) -> PeriodAnalysis:
    """Growth series and quality checks across periods. Never raises.

    Failures in either step are recorded in the errors list.
    """
    errors: list[str] = []
    opportunity_ids = {p.opportunity_id for p in periods}
    opportunity_id = opportunity_ids.pop() if len(opportunity_ids) == 1 else None

    growth = {}
    try:
        growth = compute_growth_series(periods)
    except ValueError as e:
        errors.append(f"Growth computation failed: {e}")

    checks = []
    try:
        checks = run_quality_checks(periods, settings)
    except ValueError as e:
        errors.append(f"Quality checks failed: {e}")

    return PeriodAnalysis(
        opportunity_id=opportunity_id,
        periods=list(periods),
        growth=growth,
        quality_checks=checks,
        errors=errors,
    )
