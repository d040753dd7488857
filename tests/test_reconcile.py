"""Tests for the reconciliation add-back."""

from decimal import Decimal

from recast.analysis.reconcile import (
    RECONCILIATION_DESCRIPTION,
    ebitda_add_back_total,
    is_reconciliation_entry,
    reconcile_add_backs,
)
from recast.models import AddBack
from recast.taxonomy import AddBackCategory

D = Decimal


def _add_back(amount, description="Owner travel", ebitda=True):
    return AddBack(
        category=AddBackCategory.PERSONAL_EXPENSES,
        description=description,
        amount=D(str(amount)),
        include_in_ebitda=ebitda,
    )


class TestReconcile:
    def test_adds_difference_entry(self):
        result = reconcile_add_backs([_add_back(1000), _add_back(500)], D("2000"))
        assert len(result) == 3
        synthetic = result[-1]
        assert is_reconciliation_entry(synthetic)
        assert synthetic.amount == D("500.00")
        assert synthetic.category == AddBackCategory.OTHER
        assert ebitda_add_back_total(result) == D("2000")

    def test_negative_difference(self):
        result = reconcile_add_backs([_add_back(1000)], D("800"))
        assert result[-1].amount == D("-200.00")
        assert ebitda_add_back_total(result) == D("800")

    def test_matching_total_removes_entry(self):
        first = reconcile_add_backs([_add_back(1000)], D("1500"))
        second = reconcile_add_backs(first, D("1000"))
        assert len(second) == 1
        assert not any(is_reconciliation_entry(ab) for ab in second)

    def test_no_entry_when_already_equal(self):
        result = reconcile_add_backs([_add_back(1000)], D("1000"))
        assert len(result) == 1

    def test_updates_existing_entry_in_place(self):
        first = reconcile_add_backs([_add_back(1000), _add_back(200, "Meals")], D("1500"))
        moved = [first[2], first[0], first[1]]
        second = reconcile_add_backs(moved, D("1700"))
        assert len(second) == 3
        assert is_reconciliation_entry(second[0])
        assert second[0].amount == D("500.00")

    def test_itemized_entries_untouched(self):
        items = [_add_back(1000), _add_back(200, "Meals")]
        result = reconcile_add_backs(items, D("5000"))
        assert result[:2] == items

    def test_ignores_entries_outside_ebitda(self):
        result = reconcile_add_backs([_add_back(1000), _add_back(300, ebitda=False)], D("1500"))
        assert result[-1].amount == D("500.00")

    def test_within_tolerance_removes(self):
        result = reconcile_add_backs([_add_back(1000)], D("1000.004"), tolerance=D("0.01"))
        assert len(result) == 1

    def test_description(self):
        result = reconcile_add_backs([], D("250"))
        assert result[0].description == RECONCILIATION_DESCRIPTION
        assert result[0].include_in_ebitda
