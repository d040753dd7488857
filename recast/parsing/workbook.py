"""Multi-sheet parsing: one ParsedStatement per parseable workbook tab."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from ..config import get_settings
from ..errors import StructuralParseError
from ..models import ParsedWorkbook, SheetStatement
from .cells import Cell
from .grid import parse_grid

logger = logging.getLogger(__name__)

SheetGrid = Sequence[Sequence[Cell]]


def parse_workbook(
    sheets: Mapping[str, SheetGrid] | Iterable[tuple[str, SheetGrid]],
    source_name: str | None = None,
) -> ParsedWorkbook:
    """Parse every tab independently, in workbook order.

    Tabs with fewer than min_sheet_rows rows are skipped; a tab that fails
    to parse is skipped with a warning. Raises StructuralParseError only
    when no tab survives.
    """
    items = sheets.items() if isinstance(sheets, Mapping) else sheets
    min_rows = get_settings().min_sheet_rows
    parsed: list[SheetStatement] = []

    for sheet_name, grid in items:
        if len(grid) < min_rows:
            logger.debug("Skipping sheet %r: %d rows", sheet_name, len(grid))
            continue
        try:
            statement = parse_grid(grid, sheet_name=sheet_name)
        except Exception as e:
            logger.warning(
                "Skipping sheet %r: failed to parse (%s)", sheet_name, e, exc_info=True
            )
            continue
        parsed.append(SheetStatement(sheet_name=sheet_name, **statement.model_dump()))

    if not parsed:
        raise StructuralParseError("No parseable sheets found in workbook")

    return ParsedWorkbook(sheets=parsed, source_name=source_name)
