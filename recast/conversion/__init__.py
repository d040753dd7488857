"""Statement-to-period conversion."""

from .classify import ClassificationResult, PeriodDraft, classify_statement
from .columns import PeriodColumn, detect_period, period_columns, pick_best_sheet
from .converter import convert_statements

__all__ = [
    "ClassificationResult",
    "PeriodColumn",
    "PeriodDraft",
    "classify_statement",
    "convert_statements",
    "detect_period",
    "period_columns",
    "pick_best_sheet",
]
