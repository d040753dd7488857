"""Tests for quality checks over computed periods."""

from decimal import Decimal

from recast.analysis.quality import run_quality_checks
from recast.analysis.summary import summarize
from recast.config import Settings
from recast.models import AddBack, LineItem, PeriodOverrides, PeriodType, ReportingPeriod
from recast.taxonomy import AddBackCategory, LineItemCategory

D = Decimal


def _period(year, revenue, cogs, opex, add_backs=(), owner=0, extra_items=(), overrides=None):
    items = [
        LineItem(category=LineItemCategory.REVENUE, raw_label="Sales", amount=D(revenue)),
        LineItem(category=LineItemCategory.COGS, raw_label="Materials", amount=D(cogs)),
        LineItem(category=LineItemCategory.OPEX, raw_label="Rent", amount=D(opex)),
        *extra_items,
    ]
    abs_ = [
        AddBack(category=AddBackCategory.ONE_TIME_COSTS, description="Lawsuit", amount=D(a))
        for a in add_backs
    ]
    if owner:
        abs_.append(
            AddBack(
                category=AddBackCategory.OWNER_COMPENSATION,
                description="Owner salary",
                amount=D(owner),
                include_in_ebitda=False,
            )
        )
    overrides = overrides or PeriodOverrides()
    return ReportingPeriod(
        year=year,
        line_items=items,
        add_backs=abs_,
        overrides=overrides,
        computed=summarize(items, abs_, overrides),
    )


def _ids(checks):
    return {c.id for c in checks}


# 40% gross margin, 20% EBITDA margin, adj. EBITDA 1.0M
def _healthy(year=2024, revenue=5_000_000):
    return _period(year, revenue, revenue * 6 // 10, revenue // 5)


class TestProfitability:
    def test_healthy_period_has_no_warnings(self):
        checks = run_quality_checks([_healthy(2023), _healthy(2024)], Settings())
        assert checks == []

    def test_negative_ebitda(self):
        checks = run_quality_checks([_period(2024, 1000, 600, 500)], Settings())
        assert "negative-ebitda" in _ids(checks)
        assert checks[0].severity == "error"

    def test_below_thesis_minimum(self):
        checks = run_quality_checks([_healthy(revenue=1_000_000)], Settings())
        assert "below-thesis-minimum" in _ids(checks)

    def test_thesis_minimum_configurable(self):
        settings = Settings(thesis_min_adjusted_ebitda=D("100000"))
        checks = run_quality_checks([_healthy(revenue=1_000_000)], settings)
        assert "below-thesis-minimum" not in _ids(checks)


class TestAddBackRatio:
    def test_elevated(self):
        period = _period(2024, 1000, 600, 200, add_backs=[350])
        assert "elevated-addback-ratio" in _ids(run_quality_checks([period], Settings()))

    def test_high(self):
        period = _period(2024, 1000, 600, 200, add_backs=[600])
        ids = _ids(run_quality_checks([period], Settings()))
        assert "high-addback-ratio" in ids
        assert "elevated-addback-ratio" not in ids


class TestMargins:
    def test_low_gross_margin(self):
        period = _period(2024, 1000, 900, 10)
        assert "low-gross-margin" in _ids(run_quality_checks([period], Settings()))

    def test_high_ebitda_margin(self):
        period = _period(2024, 1000, 200, 100)
        ids = _ids(run_quality_checks([period], Settings()))
        assert "high-gross-margin" in ids
        assert "high-ebitda-margin" in ids

    def test_high_owner_comp(self):
        period = _period(2024, 1000, 600, 200, owner=300)
        assert "high-owner-comp" in _ids(run_quality_checks([period], Settings()))


class TestCompleteness:
    def test_uncategorized_rows_flagged(self):
        odd = LineItem(category=LineItemCategory.UNCATEGORIZED, raw_label="Misc", amount=D(5))
        period = _period(2024, 5_000_000, 3_000_000, 1_000_000, extra_items=[odd])
        checks = run_quality_checks([period], Settings())
        assert "uncategorized-line-items" in _ids(checks)

    def test_math_inconsistency(self):
        period = _period(
            2024, 1000, 600, 200, overrides=PeriodOverrides(override_gross_profit=D("500"))
        )
        assert "math-inconsistency" in _ids(run_quality_checks([period], Settings()))

    def test_single_period_info(self):
        checks = run_quality_checks([_healthy()], Settings())
        assert _ids(checks) == {"single-period"}


class TestTrends:
    def test_revenue_volatility(self):
        checks = run_quality_checks([_healthy(2023), _healthy(2024, 7_000_000)], Settings())
        assert "yoy-volatility-2024" in _ids(checks)

    def test_only_annual_periods_considered(self):
        quarter = _healthy(2024).model_copy(
            update={"period_type": PeriodType.QUARTERLY, "quarter": 1}
        )
        assert run_quality_checks([quarter], Settings()) == []

    def test_sorted_by_severity(self):
        checks = run_quality_checks([_period(2024, 1000, 600, 500)], Settings())
        severities = [c.severity for c in checks]
        order = {"error": 0, "warning": 1, "info": 2}
        assert severities == sorted(severities, key=order.__getitem__)
