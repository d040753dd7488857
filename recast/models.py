"""Core data records for parsed statements and reporting periods.

Every number in a ReportingPeriod traces back to either:
- a Row value in a ParsedStatement (sourced from the grid)
- a manual LineItem, AddBack or override entered by a user
- a PeriodSummary field derived by the summarizer
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from .taxonomy import AddBackCategory, LineItemCategory


class Column(BaseModel):
    """One reporting column of a source grid, e.g. "2024" / "Jan - Dec"."""

    header: str
    subheader: str | None = None


class Row(BaseModel):
    """A single statement row with values aligned to the statement columns."""

    label: str = ""
    values: list[float | None] = Field(default_factory=list)
    depth: int = Field(default=0, ge=0)
    is_total: bool = False
    is_summary: bool = False
    is_blank: bool = False
    notes: str | None = None


class ParsedStatement(BaseModel):
    """Detected metadata, column headers and depth-annotated rows of one sheet."""

    company_name: str | None = None
    title: str | None = None
    basis: str | None = None
    columns: list[Column] = Field(default_factory=list)
    rows: list[Row] = Field(default_factory=list)

    @model_validator(mode="after")
    def _values_align_with_columns(self) -> ParsedStatement:
        width = len(self.columns)
        for idx, row in enumerate(self.rows):
            if len(row.values) != width:
                raise ValueError(
                    f"row {idx} ({row.label!r}) has {len(row.values)} values for {width} columns"
                )
        return self


class SheetStatement(ParsedStatement):
    """A ParsedStatement tagged with the workbook tab it came from."""

    sheet_name: str


class ParsedWorkbook(BaseModel):
    sheets: list[SheetStatement] = Field(default_factory=list)
    source_name: str | None = None

    @property
    def sheet_names(self) -> list[str]:
        return [s.sheet_name for s in self.sheets]


class LineItem(BaseModel):
    """A categorized P&L amount. Direction lives in is_negative, never in amount."""

    category: LineItemCategory
    subcategory: str | None = None
    raw_label: str
    display_order: int = Field(default=0, ge=0)
    amount: Decimal = Field(ge=0)
    is_negative: bool = False
    notes: str | None = None

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.is_negative else self.amount


class AddBack(BaseModel):
    """A normalization adjustment. Amount is signed; reversals are negative."""

    category: AddBackCategory
    description: str
    amount: Decimal
    confidence: float | None = Field(default=None, ge=0, le=1)
    include_in_ebitda: bool = True
    include_in_sde: bool = True
    source_label: str | None = None


# Override field -> PeriodSummary field it replaces
OVERRIDE_FIELDS: dict[str, str] = {
    "override_total_revenue": "total_revenue",
    "override_total_cogs": "total_cogs",
    "override_gross_profit": "gross_profit",
    "override_total_opex": "total_opex",
    "override_ebitda": "ebitda",
    "override_adjusted_ebitda": "adjusted_ebitda",
    "override_ebit": "ebit",
    "override_net_income": "net_income",
}


class PeriodOverrides(BaseModel):
    """Manually supplied values. A non-null override always wins."""

    override_total_revenue: Decimal | None = None
    override_total_cogs: Decimal | None = None
    override_gross_profit: Decimal | None = None
    override_total_opex: Decimal | None = None
    override_ebitda: Decimal | None = None
    override_adjusted_ebitda: Decimal | None = None
    override_ebit: Decimal | None = None
    override_net_income: Decimal | None = None

    model_config = {"extra": "forbid"}

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in OVERRIDE_FIELDS)

    def active(self) -> dict[str, Decimal]:
        """Return the non-null overrides keyed by override field name."""
        return {
            name: value for name in OVERRIDE_FIELDS if (value := getattr(self, name)) is not None
        }


class PeriodSummary(BaseModel):
    """Derived metrics for one period. Recomputed in full, never patched."""

    total_revenue: Decimal = Decimal("0")
    total_cogs: Decimal = Decimal("0")
    gross_profit: Decimal = Decimal("0")
    gross_margin: Decimal | None = None
    total_opex: Decimal = Decimal("0")
    ebitda: Decimal = Decimal("0")
    ebitda_margin: Decimal | None = None
    depreciation_amort: Decimal = Decimal("0")
    ebit: Decimal = Decimal("0")
    interest_expense: Decimal = Decimal("0")
    tax_expense: Decimal = Decimal("0")
    total_add_backs: Decimal = Decimal("0")
    adjusted_ebitda: Decimal = Decimal("0")
    adjusted_ebitda_margin: Decimal | None = None
    sde: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
    net_margin: Decimal | None = None


class PeriodType(StrEnum):
    ANNUAL = "ANNUAL"
    QUARTERLY = "QUARTERLY"


class ReportingPeriod(BaseModel):
    """One fiscal year or quarter with its line items, add-backs and summary."""

    opportunity_id: str | None = None
    period_type: PeriodType = PeriodType.ANNUAL
    year: int
    quarter: int | None = Field(default=None, ge=1, le=4)
    line_items: list[LineItem] = Field(default_factory=list)
    add_backs: list[AddBack] = Field(default_factory=list)
    overrides: PeriodOverrides = Field(default_factory=PeriodOverrides)
    computed: PeriodSummary | None = None
    is_locked: bool = False

    @property
    def key(self) -> tuple[str | None, PeriodType, int, int | None]:
        return (self.opportunity_id, self.period_type, self.year, self.quarter)

    @property
    def label(self) -> str:
        if self.period_type == PeriodType.QUARTERLY:
            return f"Q{self.quarter} {self.year}"
        return f"FY{self.year}"


class ComputedValue(BaseModel):
    """A derived calculation with formula and full component provenance."""

    metric: str
    value: Decimal | None
    unit: str
    formula: str  # e.g. "(revenue_current - revenue_prior) / abs(revenue_prior)"
    components: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class AuditEvent(StrEnum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class AuditEntity(StrEnum):
    LINE_ITEM = "LINE_ITEM"
    ADD_BACK = "ADD_BACK"
    OVERRIDE = "OVERRIDE"
    PERIOD = "PERIOD"


class AuditEntry(BaseModel):
    """Human-readable record of one mutation, for the caller to persist."""

    event_type: AuditEvent
    entity_type: AuditEntity
    period_label: str
    category: str | None = None
    amount: Decimal | None = None
    summary: str


class ConversionResult(BaseModel):
    """Fully computed periods plus everything the converter could not place."""

    periods: list[ReportingPeriod] = Field(default_factory=list)
    sheet_used: str
    uncategorized_rows: list[Row] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    notes: str = ""


class QualityCheck(BaseModel):
    id: str
    severity: str  # "error", "warning", "info"
    title: str
    message: str


class PeriodAnalysis(BaseModel):
    """Cross-period view: growth between consecutive periods plus quality checks."""

    opportunity_id: str | None = None
    periods: list[ReportingPeriod] = Field(default_factory=list)
    growth: dict[str, dict[str, ComputedValue]] = Field(default_factory=dict)
    quality_checks: list[QualityCheck] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
