"""Tests for the in-memory period store."""

import pytest

from recast.errors import PeriodConflictError
from recast.models import PeriodType, ReportingPeriod
from recast.mutations import set_locked
from recast.store import PeriodStore


def _period(year, opportunity_id="opp", quarter=None):
    return ReportingPeriod(
        opportunity_id=opportunity_id,
        period_type=PeriodType.QUARTERLY if quarter else PeriodType.ANNUAL,
        year=year,
        quarter=quarter,
    )


class TestPeriodStore:
    def test_add_and_get(self):
        store = PeriodStore()
        period = store.add(_period(2024))
        assert store.get(period.key) is period
        assert period.key in store
        assert len(store) == 1

    def test_duplicate_key_conflicts(self):
        store = PeriodStore()
        store.add(_period(2024))
        with pytest.raises(PeriodConflictError):
            store.add(_period(2024))

    def test_same_year_different_type_or_opportunity(self):
        store = PeriodStore()
        store.add(_period(2024))
        store.add(_period(2024, quarter=1))
        store.add(_period(2024, opportunity_id="other"))
        assert len(store) == 3

    def test_add_all_is_atomic(self):
        store = PeriodStore()
        store.add(_period(2023))
        with pytest.raises(PeriodConflictError):
            store.add_all([_period(2024), _period(2023)])
        assert len(store) == 1

    def test_add_all_rejects_duplicates_within_batch(self):
        with pytest.raises(PeriodConflictError):
            PeriodStore().add_all([_period(2024), _period(2024)])

    def test_list_periods_sorted_and_filtered(self):
        store = PeriodStore()
        store.add_all([_period(2024), _period(2022), _period(2024, quarter=2), _period(2023, "x")])
        labels = [p.label for p in store.list_periods("opp")]
        assert labels == ["FY2022", "FY2024", "Q2 2024"]
        assert len(store.list_periods()) == 4

    def test_save_records_audit(self):
        store = PeriodStore()
        period = store.add(_period(2024))
        locked, audit = set_locked(period, True)
        store.save(locked, audit)
        assert store.get(period.key).is_locked
        assert store.audit_log("FY2024") == [audit]
        assert store.audit_log("FY2023") == []

    def test_delete(self):
        store = PeriodStore()
        period = store.add(_period(2024))
        assert store.delete(period.key) is period
        assert store.delete(period.key) is None
