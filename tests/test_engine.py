"""Tests for the engine orchestrator (grid/workbook in, periods out)."""

from decimal import Decimal

import pytest

from recast.analysis.summary import summarize
from recast.engine import analyze_periods, reconstruct_grid, reconstruct_workbook
from recast.errors import StructuralParseError, UnknownSheetError
from recast.models import OVERRIDE_FIELDS, PeriodOverrides, ReportingPeriod
from recast.mutations import set_override

D = Decimal


def _grid():
    return [
        ["Acme HVAC"],
        ["Profit and Loss"],
        ["Cash Basis"],
        ["", "Jan - Dec 2023", "Jan - Dec 2024"],
        ["Ordinary Income/Expense"],
        ["Income"],
        ["4000 Installations", 800000, 950000],
        ["4100 Service Agreements", 200000, 250000],
        ["Total Income", 1000000, 1200000],
        ["Cost of Goods Sold"],
        ["5000 Equipment", 350000, 400000],
        ["5100 Subcontractors", 150000, 180000],
        ["Total COGS", 500000, 580000],
        ["Gross Profit", 500000, 620000],
        ["Expense"],
        ["6000 Payroll Expenses"],
        ["6010 Wages", 150000, 170000],
        ["6020 Payroll Taxes", 12000, 14000],
        ["Total 6000 Payroll Expenses", 162000, 184000],
        ["6100 Rent", 36000, 36000],
        ["6200 Vehicle Expense", 24000, 26000],
        ["Total Expense", 222000, 246000],
        ["Net Ordinary Income", 278000, 374000],
        ["Other Income/Expense"],
        ["Other Expense"],
        ["7000 Interest Expense", 8000, 6000],
        ["Total Other Expense", 8000, 6000],
        ["Net Income", 270000, 368000],
    ]


class TestReconstructGrid:
    def test_periods_and_summary(self):
        result = reconstruct_grid(_grid(), sheet_name="P&L", opportunity_id="hvac")
        assert [p.label for p in result.periods] == ["FY2023", "FY2024"]
        fy24 = result.periods[1].computed
        assert fy24.total_revenue == D("1200000")
        assert fy24.gross_profit == D("620000")
        assert fy24.total_opex == D("246000")
        assert fy24.ebitda == D("374000")
        assert fy24.interest_expense == D("6000")
        assert fy24.net_income == D("368000")
        assert result.warnings == []

    def test_payroll_subtotal_not_double_counted(self):
        result = reconstruct_grid(_grid(), sheet_name="P&L")
        labels = [i.raw_label for i in result.periods[0].line_items]
        assert "Total 6000 Payroll Expenses" not in labels
        assert "6010 Wages" in labels

    def test_interest_is_below_ebitda(self):
        period = reconstruct_grid(_grid(), sheet_name="P&L").periods[0]
        interest = next(i for i in period.line_items if i.raw_label == "7000 Interest Expense")
        assert interest.category == "INTEREST"
        assert period.computed.ebitda == D("278000")

    def test_overrides_survive_recompute(self):
        period = reconstruct_grid(_grid(), sheet_name="P&L").periods[1]
        edited, _ = set_override(period, "ebitda", D("380000"))
        assert edited.computed.total_revenue == D("1200000")
        assert edited.computed.gross_profit == D("620000")
        assert edited.computed.ebitda == D("380000")

    def test_unstructured_grid_raises(self):
        with pytest.raises(StructuralParseError):
            reconstruct_grid([["Notes"], ["Nothing here"], ["At all"]])


class TestReconstructWorkbook:
    def test_skips_unusable_tabs(self):
        result = reconstruct_workbook(
            {"Cover": [["Acme HVAC"]], "Notes": [["a"], ["b"], ["c"]], "P&L": _grid()},
            source_name="hvac.xlsx",
        )
        assert result.sheet_used == "P&L"
        assert len(result.periods) == 2

    def test_unknown_sheet(self):
        with pytest.raises(UnknownSheetError):
            reconstruct_workbook({"P&L": _grid()}, sheet_name="Detail")


class TestAnalyzePeriods:
    def test_growth_and_checks(self):
        periods = reconstruct_grid(_grid(), sheet_name="P&L", opportunity_id="hvac").periods
        analysis = analyze_periods(periods)
        assert analysis.opportunity_id == "hvac"
        assert analysis.growth["FY2024"]["total_revenue_yoy"].value == D("0.2")
        assert analysis.errors == []
        assert any(c.id == "below-thesis-minimum" for c in analysis.quality_checks)

    def test_unsummarized_period_recorded_as_error(self):
        periods = [ReportingPeriod(year=2023), ReportingPeriod(year=2024)]
        analysis = analyze_periods(periods)
        assert analysis.growth == {}
        assert analysis.errors
        assert "Growth computation failed" in analysis.errors[0]


class TestRoundTrip:
    def test_totals_fed_back_as_overrides_reproduce_summary(self):
        for period in reconstruct_grid(_grid(), sheet_name="P&L").periods:
            computed = period.computed
            overrides = PeriodOverrides(
                **{name: getattr(computed, field) for name, field in OVERRIDE_FIELDS.items()}
            )
            assert summarize(period.line_items, period.add_backs, overrides) == computed

    def test_cascade_consistency(self):
        for period in reconstruct_grid(_grid(), sheet_name="P&L").periods:
            s = period.computed
            assert s.gross_profit == s.total_revenue - s.total_cogs
            assert s.adjusted_ebitda == s.ebitda + s.total_add_backs
