"""Analysis modules: period summary, add-back reconciliation, growth, quality checks."""

from .growth import compute_growth, compute_growth_series
from .quality import run_quality_checks
from .reconcile import reconcile_add_backs
from .summary import summarize

__all__ = [
    "compute_growth",
    "compute_growth_series",
    "reconcile_add_backs",
    "run_quality_checks",
    "summarize",
]
