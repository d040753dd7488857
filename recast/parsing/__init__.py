"""Grid parsing: cell coercion, header detection, hierarchy, workbooks."""

from .grid import parse_grid
from .hierarchy import GroupRange, compute_depths, find_group_ranges
from .workbook import parse_workbook

__all__ = ["GroupRange", "compute_depths", "find_group_ranges", "parse_grid", "parse_workbook"]
