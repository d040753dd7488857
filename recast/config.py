"""Configuration from environment variables."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    header_scan_rows: int = Field(default=15, ge=1)
    min_sheet_rows: int = Field(default=3, ge=1)
    reconciliation_tolerance: Decimal = Field(default=Decimal("0.01"), ge=0)
    cross_check_tolerance: float = Field(default=0.01, ge=0)
    rules_path: Path | None = None

    # Quality check thresholds
    thesis_min_adjusted_ebitda: Decimal = Decimal("600000")
    addback_ratio_warning: float = 0.30
    addback_ratio_error: float = 0.50
    gross_margin_band: tuple[float, float] = (0.15, 0.65)
    ebitda_margin_band: tuple[float, float] = (0.08, 0.35)
    owner_comp_ratio_warning: float = 0.25
    revenue_volatility_warning: float = 0.20

    model_config = {
        "env_prefix": "RECAST_",
        "case_sensitive": False,
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings for the current process."""
    return Settings()
