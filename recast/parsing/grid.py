"""Single-sheet parser: raw 2-D cell grid -> ParsedStatement.

Three phases:
1. Detect metadata (company name, title, accounting basis) and the column
   header row in the first rows of the sheet.
2. Extract one Row per grid row below the header block.
3. Reconstruct hierarchy depths from "Total X" rows (see hierarchy.py).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..config import get_settings
from ..errors import StructuralParseError
from ..models import Column, ParsedStatement, Row
from .cells import Cell, cell_text, is_numeric_cell, parse_number
from .hierarchy import TOTAL_PREFIX, assign_depths

logger = logging.getLogger(__name__)

SUMMARY_LABELS = frozenset(
    {
        "gross profit",
        "net operating income",
        "net income",
        "net other income",
        "net ordinary income",
    }
)

BASIS_PATTERN = re.compile(r"^(cash|accrual)\s+basis$", re.IGNORECASE)
_YEAR = re.compile(r"\b20\d{2}\b")
_PERIOD_TOKEN = re.compile(r"\b(YTD|FY)\b", re.IGNORECASE)
_MONTH = re.compile(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)", re.IGNORECASE)

NOTE_SEPARATOR = " — "


@dataclass
class HeaderBlock:
    """Result of phase 1."""

    company_name: str | None = None
    title: str | None = None
    basis: str | None = None
    columns: list[Column] = field(default_factory=list)
    data_start: int = 0

    @property
    def last_data_col(self) -> int:
        # Data columns occupy grid indices 1..len(columns)
        return len(self.columns)


def is_header_cell(text: str) -> bool:
    """A column header looks like a year ("2024", "Jan - Dec 2024") or a YTD/FY label."""
    return bool(_YEAR.search(text) or _PERIOD_TOKEN.search(text))


def _row_cells(row: Sequence[Cell] | None) -> list[Cell]:
    return list(row) if row else []


def _build_columns(header_row: list[Cell], next_row: list[Cell]) -> tuple[list[Column], bool]:
    """Build columns from a header row; attach subheaders if the next row names months."""
    last = max(c for c in range(1, len(header_row)) if cell_text(header_row[c]))
    subheaders: list[str | None] = []
    has_months = False
    for c in range(1, last + 1):
        text = cell_text(next_row[c]) if c < len(next_row) else ""
        subheaders.append(text or None)
        if text and _MONTH.search(text):
            has_months = True

    columns = []
    for offset, c in enumerate(range(1, last + 1)):
        header = cell_text(header_row[c]) or f"Column {c}"
        columns.append(Column(header=header, subheader=subheaders[offset] if has_months else None))
    return columns, has_months


def detect_header(grid: Sequence[Sequence[Cell]], scan_rows: int | None = None) -> HeaderBlock:
    """Phase 1: find metadata and the column header row.

    Falls back to the first row carrying a native number beyond column 0,
    with generic "Column N" headers. Raises StructuralParseError if neither
    is found.
    """
    if scan_rows is None:
        scan_rows = get_settings().header_scan_rows
    block = HeaderBlock()

    for i, raw in enumerate(grid[:scan_rows]):
        row = _row_cells(raw)
        candidates = [cell_text(c) for c in row[1:] if cell_text(c)]
        if candidates and any(is_header_cell(text) for text in candidates):
            next_row = _row_cells(grid[i + 1]) if i + 1 < len(grid) else []
            block.columns, has_subheaders = _build_columns(row, next_row)
            block.data_start = i + (2 if has_subheaders else 1)
            return block

        # Preamble metadata; rows carrying numbers are data, not metadata
        if any(is_numeric_cell(c) for c in row[1:]):
            continue
        for cell in row:
            text = cell_text(cell)
            if text and BASIS_PATTERN.match(text):
                block.basis = text
        first = cell_text(row[0]) if row else ""
        if not first or BASIS_PATTERN.match(first):
            continue
        if block.company_name is None:
            block.company_name = first
        elif block.title is None:
            block.title = first

    for i, raw in enumerate(grid):
        row = _row_cells(raw)
        if any(is_numeric_cell(c) for c in row[1:]):
            block.columns = [Column(header=f"Column {c}") for c in range(1, len(row))]
            block.data_start = i
            logger.debug("No header row found; using %d generic columns", len(block.columns))
            return block

    raise StructuralParseError("No column header row and no numeric data found")


def extract_row(raw: Sequence[Cell] | None, width: int) -> Row:
    """Phase 2: turn one grid row into a Row with values aligned to width columns."""
    row = _row_cells(raw)
    label = cell_text(row[0]) if row else ""

    values: list[float | None] = []
    for c in range(1, width + 1):
        values.append(parse_number(row[c]) if c < len(row) else None)

    note_parts = [text for c in row[width + 1 :] if (text := cell_text(c))]
    notes = NOTE_SEPARATOR.join(note_parts) if note_parts else None

    return Row(
        label=label,
        values=values,
        is_total=bool(TOTAL_PREFIX.match(label)),
        is_summary=label.lower() in SUMMARY_LABELS,
        is_blank=not label and all(v is None for v in values),
        notes=notes,
    )


def parse_grid(grid: Sequence[Sequence[Cell]], sheet_name: str | None = None) -> ParsedStatement:
    """Parse one sheet. sheet_name, when given, replaces the detected title."""
    if len(grid) < get_settings().min_sheet_rows:
        raise StructuralParseError(f"Sheet has too few rows to parse ({len(grid)})")

    block = detect_header(grid)
    if not block.columns:
        raise StructuralParseError("No data columns detected")

    width = len(block.columns)
    rows = [extract_row(raw, width) for raw in grid[block.data_start :]]
    rows = assign_depths(rows)

    return ParsedStatement(
        company_name=block.company_name,
        title=sheet_name or block.title,
        basis=block.basis,
        columns=block.columns,
        rows=rows,
    )
