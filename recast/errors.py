"""Exception taxonomy for parsing, conversion and period mutation."""

from __future__ import annotations


class RecastError(Exception):
    """Base class for all recast failures."""


class StructuralParseError(RecastError):
    """A grid or workbook has no usable structure (header row, columns, sheets)."""


class UnknownSheetError(RecastError):
    """The caller selected a sheet that the workbook does not contain."""

    def __init__(self, sheet_name: str, available: list[str]):
        self.sheet_name = sheet_name
        self.available = available
        super().__init__(f"Sheet {sheet_name!r} not found; available: {', '.join(available)}")


class LockedPeriodError(RecastError):
    """A mutation was attempted on a locked reporting period."""

    def __init__(self, period_label: str):
        self.period_label = period_label
        super().__init__(f"Period {period_label} is locked")


class PeriodConflictError(RecastError):
    """A period with the same (opportunity, type, year, quarter) key already exists."""

    def __init__(self, key: tuple):
        self.key = key
        super().__init__(f"Reporting period already exists for key {key!r}")
