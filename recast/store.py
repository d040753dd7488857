"""In-memory period store keyed by (opportunity, period type, year, quarter)."""

from __future__ import annotations

import logging

from .errors import PeriodConflictError
from .models import AuditEntry, PeriodType, ReportingPeriod

logger = logging.getLogger(__name__)

PeriodKey = tuple[str | None, PeriodType, int, int | None]


class PeriodStore:
    """Holds reporting periods and the audit trail of edits made to them.

    Keys are unique: adding a period whose key already exists raises
    PeriodConflictError. Use save() to replace an existing period.
    """

    def __init__(self) -> None:
        self._periods: dict[PeriodKey, ReportingPeriod] = {}
        self._audit: list[AuditEntry] = []

    def __len__(self) -> int:
        return len(self._periods)

    def __contains__(self, key: object) -> bool:
        return key in self._periods

    def add(self, period: ReportingPeriod) -> ReportingPeriod:
        if period.key in self._periods:
            raise PeriodConflictError(period.key)
        self._periods[period.key] = period
        logger.debug("Stored period %s for %s", period.label, period.opportunity_id)
        return period

    def add_all(self, periods: list[ReportingPeriod]) -> list[ReportingPeriod]:
        """Add several periods; nothing is stored if any key conflicts."""
        seen: set[PeriodKey] = set()
        for period in periods:
            if period.key in self._periods or period.key in seen:
                raise PeriodConflictError(period.key)
            seen.add(period.key)
        for period in periods:
            self._periods[period.key] = period
        return list(periods)

    def get(self, key: PeriodKey) -> ReportingPeriod | None:
        return self._periods.get(key)

    def save(self, period: ReportingPeriod, audit: AuditEntry | None = None) -> ReportingPeriod:
        self._periods[period.key] = period
        if audit is not None:
            self._audit.append(audit)
        return period

    def delete(self, key: PeriodKey) -> ReportingPeriod | None:
        return self._periods.pop(key, None)

    def list_periods(self, opportunity_id: str | None = None) -> list[ReportingPeriod]:
        """Periods for one opportunity (or all), annual first then by year and quarter."""
        periods = [
            p
            for p in self._periods.values()
            if opportunity_id is None or p.opportunity_id == opportunity_id
        ]
        return sorted(periods, key=lambda p: (p.period_type, p.year, p.quarter or 0))

    def audit_log(self, period_label: str | None = None) -> list[AuditEntry]:
        if period_label is None:
            return list(self._audit)
        return [entry for entry in self._audit if entry.period_label == period_label]
