"""Period detection from column headers, and selection of the sheet to convert."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import NamedTuple

from ..errors import StructuralParseError, UnknownSheetError
from ..models import Column, ParsedStatement, PeriodType

logger = logging.getLogger(__name__)

_YEAR_4 = re.compile(r"\b(20\d{2})\b")
_YEAR_2 = re.compile(r"\b(\d{2})\b")
_MONTH = re.compile(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?", re.IGNORECASE)
_QUARTER = re.compile(r"\bQ([1-4])\b", re.IGNORECASE)
_FISCAL = re.compile(r"\bFY", re.IGNORECASE)
_RANGE = re.compile(r"\s[-–—]\s|\bthrough\b|\bto\b", re.IGNORECASE)
_EXCLUDED = ("change", "variance", "%", "ytd", "budget")


class PeriodColumn(NamedTuple):
    """A statement column that holds one reporting period."""

    index: int
    period_type: PeriodType
    year: int
    quarter: int | None = None

    @property
    def label(self) -> str:
        if self.period_type == PeriodType.QUARTERLY:
            return f"Q{self.quarter} {self.year}"
        return f"FY{self.year}"


def extract_year(header: str) -> int | None:
    """Year from "2024", "FY 2024", "Jan - Dec 2024" or "Jan - Dec 24"."""
    m = _YEAR_4.search(header)
    if m:
        return int(m.group(1))
    if _MONTH.search(header):
        m = _YEAR_2.search(header)
        if m:
            return 2000 + int(m.group(1))
    return None


def detect_period(column: Column) -> tuple[PeriodType, int, int | None] | None:
    """Classify a column as an annual or quarterly period, or None if it is neither.

    Change/variance/percent/YTD/budget and "Total" columns are not periods, and
    neither is a single-month column ("Mar 2024").
    """
    header = column.header.strip()
    lower = header.lower()
    if any(token in lower for token in _EXCLUDED) or lower in ("total", "totals"):
        return None

    year = extract_year(header)
    if year is None:
        return None

    quarter = _QUARTER.search(header)
    if quarter:
        return PeriodType.QUARTERLY, year, int(quarter.group(1))

    single_month = len(_MONTH.findall(header)) == 1
    if single_month and not (_RANGE.search(header) or _FISCAL.search(header)):
        return None

    return PeriodType.ANNUAL, year, None


def period_columns(statement: ParsedStatement) -> tuple[list[PeriodColumn], list[str]]:
    """Return the period columns of a statement, first occurrence wins per period."""
    found: list[PeriodColumn] = []
    seen: set[tuple[PeriodType, int, int | None]] = set()
    warnings: list[str] = []

    for idx, column in enumerate(statement.columns):
        period = detect_period(column)
        if period is None:
            continue
        if period in seen:
            msg = f"Duplicate period column {column.header!r} ignored"
            logger.warning(msg)
            warnings.append(msg)
            continue
        seen.add(period)
        found.append(PeriodColumn(idx, *period))

    return found, warnings


def sheet_label(statement: ParsedStatement) -> str:
    return getattr(statement, "sheet_name", None) or statement.title or "Unknown"


_ADD_BACK_HEADING = re.compile(r"addback|add-back|add back|adjustments", re.IGNORECASE)
_PREFERRED_TITLE = re.compile(r"year|annual|income\s*statement", re.IGNORECASE)
_PERIODIC_TITLE = re.compile(r"rolling|monthly|12.month", re.IGNORECASE)
_SUMMARY_TITLE = re.compile(r"summary|cim|cbr", re.IGNORECASE)


def score_sheet(statement: ParsedStatement) -> int | None:
    """Score how likely a sheet is the full-company annual P&L. None if it has no periods."""
    columns, _ = period_columns(statement)
    annual = sum(1 for c in columns if c.period_type == PeriodType.ANNUAL)
    if not columns:
        return None

    score = annual * 10 + (len(columns) - annual) * 2

    if any(_ADD_BACK_HEADING.search(r.label) for r in statement.rows):
        score += 50
    if any(r.is_summary and re.search(r"gross\s*profit", r.label, re.I) for r in statement.rows):
        score += 20
    if any(r.is_summary and re.search(r"net\s*income", r.label, re.I) for r in statement.rows):
        score += 20

    detail_rows = sum(1 for r in statement.rows if not (r.is_blank or r.is_total or r.is_summary))
    score += min(detail_rows, 30)

    title = sheet_label(statement)
    if _PREFERRED_TITLE.search(title):
        score += 25
    if _PERIODIC_TITLE.search(title):
        score -= 30
    if _SUMMARY_TITLE.search(title):
        score -= 10
    return score


def pick_best_sheet(
    statements: Sequence[ParsedStatement],
    sheet_name: str | None = None,
) -> ParsedStatement:
    """Choose the statement to convert: the caller's pick, else the best-scoring sheet."""
    if not statements:
        raise StructuralParseError("No statements to convert")

    if sheet_name is not None:
        for statement in statements:
            if sheet_label(statement) == sheet_name:
                return statement
        raise UnknownSheetError(sheet_name, [sheet_label(s) for s in statements])

    if len(statements) == 1:
        return statements[0]

    best: ParsedStatement | None = None
    best_score = None
    for statement in statements:
        score = score_sheet(statement)
        if score is None:
            continue
        if best_score is None or score > best_score:
            best, best_score = statement, score

    if best is None:
        raise StructuralParseError("No sheet has period columns")
    logger.info("Selected sheet %r (score %d)", sheet_label(best), best_score)
    return best
