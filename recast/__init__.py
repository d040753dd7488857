"""Recast: rebuild normalized P&L periods from spreadsheet grids, with provenance."""

from .analysis.summary import summarize
from .conversion.converter import convert_statements
from .engine import analyze_periods, reconstruct_grid, reconstruct_workbook
from .errors import (
    LockedPeriodError,
    PeriodConflictError,
    RecastError,
    StructuralParseError,
    UnknownSheetError,
)
from .models import (
    AddBack,
    ConversionResult,
    LineItem,
    ParsedStatement,
    PeriodOverrides,
    PeriodSummary,
    ReportingPeriod,
)
from .parsing.grid import parse_grid
from .parsing.workbook import parse_workbook
from .store import PeriodStore

__all__ = [
    "analyze_periods",
    "convert_statements",
    "parse_grid",
    "parse_workbook",
    "reconstruct_grid",
    "reconstruct_workbook",
    "summarize",
    "AddBack",
    "ConversionResult",
    "LineItem",
    "LockedPeriodError",
    "ParsedStatement",
    "PeriodConflictError",
    "PeriodOverrides",
    "PeriodStore",
    "PeriodSummary",
    "RecastError",
    "ReportingPeriod",
    "StructuralParseError",
    "UnknownSheetError",
]
