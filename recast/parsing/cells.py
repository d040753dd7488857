"""Cell coercion for grids handed over by a tabular document decoder."""

from __future__ import annotations

import logging
import math
import re

logger = logging.getLogger(__name__)

Cell = str | int | float | None
Grid = list[list[Cell]]

_CURRENCY_PREFIX = re.compile(r"^[$€£¥]")
_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def cell_text(cell: Cell) -> str:
    """Return a cell rendered as stripped text ("" for empty cells)."""
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell).strip()


def is_numeric_cell(cell: Cell) -> bool:
    """True for native numbers only. Numeric-looking text does not count."""
    if isinstance(cell, bool):
        return False
    return isinstance(cell, (int, float)) and not (isinstance(cell, float) and math.isnan(cell))


def parse_number(cell: Cell) -> float | None:
    """Parse a cell into a number, or None if blank or unparseable.

    Accepts native numbers, thousands separators, a leading currency symbol
    (optionally after the sign) and accounting-style parentheses for negatives.
    """
    if cell is None or isinstance(cell, bool):
        return None
    if isinstance(cell, (int, float)):
        if isinstance(cell, float) and (math.isnan(cell) or math.isinf(cell)):
            return None
        return float(cell)

    text = str(cell).strip()
    if not text:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()
    if text[:1] in "+-":
        negative = negative != (text[0] == "-")
        text = text[1:].strip()
    text = _CURRENCY_PREFIX.sub("", text).replace(",", "").strip()

    if not _NUMBER.match(text):
        logger.debug("Unparseable numeric cell %r treated as null", cell)
        return None
    value = float(text)
    return -value if negative else value
