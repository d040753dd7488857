"""Hierarchy reconstruction from "Total X" rows.

Spreadsheet exports rarely encode indentation, but a "Total X" row closes a
group that opened at the nearest earlier row labelled "X". Groups are found
once per statement as a list of GroupRange values, then depths are derived
from those ranges without touching the rows themselves.

Known limitation: with repeated or nested section names ("Total Income"
twice, "Payroll" inside "Payroll Expenses") the nearest backward match wins,
which can pick the wrong opening row. This is preserved, not corrected.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import NamedTuple

from ..models import Row

logger = logging.getLogger(__name__)

TOTAL_PREFIX = re.compile(r"^total\s+", re.IGNORECASE)
_ACCOUNT_CODE = re.compile(r"^(\d{4}(?:\.\d+)?)\s")


class GroupRange(NamedTuple):
    """A group opened at open_index and closed by the Total row at close_index."""

    open_index: int
    close_index: int

    def contains(self, index: int) -> bool:
        """Strict interior membership: the boundary rows are not inside."""
        return self.open_index < index < self.close_index


def extract_account_code(label: str) -> str | None:
    m = _ACCOUNT_CODE.match(label)
    return m.group(1) if m else None


def _labels_match(candidate: str, base: str) -> bool:
    if candidate == base or base.startswith(candidate) or candidate.startswith(base):
        return True
    base_code = extract_account_code(base)
    return base_code is not None and base_code == extract_account_code(candidate)


def find_group_ranges(rows: Sequence[Row]) -> list[GroupRange]:
    """Match every Total row to the nearest earlier non-blank row it closes."""
    groups: list[GroupRange] = []
    for i, row in enumerate(rows):
        if not row.is_total:
            continue
        base = TOTAL_PREFIX.sub("", row.label.strip()).strip().lower()
        if not base:
            continue
        for j in range(i - 1, -1, -1):
            candidate = rows[j]
            if candidate.is_blank:
                continue
            label = candidate.label.strip().lower()
            if label and _labels_match(label, base):
                groups.append(GroupRange(j, i))
                break
    logger.debug("Found %d group ranges", len(groups))
    return groups


def depth_of(index: int, groups: Sequence[GroupRange]) -> int:
    return sum(1 for g in groups if g.contains(index))


def compute_depths(rows: Sequence[Row], groups: Sequence[GroupRange] | None = None) -> list[int]:
    """Return the nesting depth of each row.

    Interior rows count the ranges strictly enclosing them. A group's
    opening row and its Total row sit at the depth of the ranges enclosing
    the opening row. Blank and summary rows are always depth 0.
    """
    if groups is None:
        groups = find_group_ranges(rows)
    closers = {g.close_index: g for g in groups}

    depths: list[int] = []
    for i, row in enumerate(rows):
        if row.is_blank or row.is_summary:
            depths.append(0)
        elif i in closers:
            depths.append(depth_of(closers[i].open_index, groups))
        else:
            depths.append(depth_of(i, groups))
    return depths


def assign_depths(rows: Sequence[Row]) -> list[Row]:
    """Return copies of rows with depth filled in from the detected groups."""
    depths = compute_depths(rows)
    return [row.model_copy(update={"depth": d}) for row, d in zip(rows, depths)]


def closing_indices(groups: Sequence[GroupRange]) -> set[int]:
    return {g.close_index for g in groups}
