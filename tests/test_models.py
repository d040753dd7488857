"""Tests for core data models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from recast.models import (
    AddBack,
    Column,
    LineItem,
    ParsedStatement,
    PeriodOverrides,
    PeriodType,
    ReportingPeriod,
    Row,
)
from recast.taxonomy import AddBackCategory, LineItemCategory

D = Decimal


class TestParsedStatement:
    def test_row_width_must_match_columns(self):
        with pytest.raises(ValidationError):
            ParsedStatement(
                columns=[Column(header="2024")],
                rows=[Row(label="Sales", values=[1.0, 2.0])],
            )

    def test_valid_statement(self):
        statement = ParsedStatement(
            columns=[Column(header="2024")],
            rows=[Row(label="Sales", values=[1.0])],
        )
        assert statement.rows[0].depth == 0


class TestLineItem:
    def test_signed_amount(self):
        item = LineItem(
            category=LineItemCategory.REVENUE, raw_label="Refunds", amount=D("50"), is_negative=True
        )
        assert item.signed_amount == D("-50")

    def test_amount_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            LineItem(category=LineItemCategory.OPEX, raw_label="Rent", amount=D("-5"))


class TestAddBack:
    def test_negative_amount_allowed(self):
        ab = AddBack(category=AddBackCategory.OTHER, description="Reversal", amount=D("-100"))
        assert ab.amount == D("-100")

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            AddBack(category=AddBackCategory.OTHER, description="x", amount=D("1"), confidence=1.5)


class TestPeriodOverrides:
    def test_empty(self):
        assert PeriodOverrides().is_empty()
        assert PeriodOverrides().active() == {}

    def test_active(self):
        overrides = PeriodOverrides(override_ebitda=D("10"))
        assert not overrides.is_empty()
        assert overrides.active() == {"override_ebitda": D("10")}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            PeriodOverrides(override_sde=D("1"))


class TestReportingPeriod:
    def test_annual_label_and_key(self):
        period = ReportingPeriod(opportunity_id="opp", year=2024)
        assert period.label == "FY2024"
        assert period.key == ("opp", PeriodType.ANNUAL, 2024, None)

    def test_quarterly_label(self):
        period = ReportingPeriod(period_type=PeriodType.QUARTERLY, year=2024, quarter=3)
        assert period.label == "Q3 2024"

    def test_quarter_range(self):
        with pytest.raises(ValidationError):
            ReportingPeriod(period_type=PeriodType.QUARTERLY, year=2024, quarter=5)

    def test_defaults(self):
        period = ReportingPeriod(year=2024)
        assert period.line_items == []
        assert period.computed is None
        assert not period.is_locked
