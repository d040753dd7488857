"""Lock-guarded edits to a ReportingPeriod.

Every helper checks the lock first, builds a new period with fresh lists,
recomputes the whole summary and returns it with an AuditEntry the caller
should persist. The input period is never modified.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any, NamedTuple

from .analysis._utils import to_amount
from .analysis.reconcile import ebitda_add_back_total, reconcile_add_backs
from .analysis.summary import summarize
from .errors import LockedPeriodError
from .models import (
    OVERRIDE_FIELDS,
    AddBack,
    AuditEntity,
    AuditEntry,
    AuditEvent,
    LineItem,
    ReportingPeriod,
)
from .taxonomy import SummaryField


class Mutation(NamedTuple):
    period: ReportingPeriod
    audit: AuditEntry


def _money(value: Decimal | None) -> str:
    if value is None:
        return "cleared"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def ensure_unlocked(period: ReportingPeriod) -> None:
    if period.is_locked:
        raise LockedPeriodError(period.label)


def recompute(period: ReportingPeriod) -> ReportingPeriod:
    """Return a copy of period with its summary recomputed from scratch."""
    computed = summarize(period.line_items, period.add_backs, period.overrides)
    return period.model_copy(update={"computed": computed})


def _rebuild(period: ReportingPeriod, **update: Any) -> ReportingPeriod:
    return recompute(period.model_copy(update=update))


def _at(items: Sequence[Any], index: int, kind: str) -> Any:
    if not 0 <= index < len(items):
        raise IndexError(f"No {kind} at index {index}")
    return items[index]


# Line items


def add_line_item(period: ReportingPeriod, item: LineItem) -> Mutation:
    ensure_unlocked(period)
    new = _rebuild(period, line_items=[*period.line_items, item])
    audit = AuditEntry(
        event_type=AuditEvent.CREATED,
        entity_type=AuditEntity.LINE_ITEM,
        period_label=period.label,
        category=item.category.value,
        amount=item.signed_amount,
        summary=(
            f"Added line item {item.raw_label!r} ({item.category.value}) "
            f"{_money(item.signed_amount)} to {period.label}"
        ),
    )
    return Mutation(new, audit)


def add_line_items(period: ReportingPeriod, items: Sequence[LineItem]) -> Mutation:
    """Batch insert; items keep their order after the existing ones."""
    ensure_unlocked(period)
    start = len(period.line_items)
    placed = [
        item.model_copy(update={"display_order": start + i}) for i, item in enumerate(items)
    ]
    new = _rebuild(period, line_items=[*period.line_items, *placed])
    total = sum((i.signed_amount for i in placed), Decimal("0"))
    audit = AuditEntry(
        event_type=AuditEvent.CREATED,
        entity_type=AuditEntity.LINE_ITEM,
        period_label=period.label,
        amount=total,
        summary=f"Added {len(placed)} line items to {period.label}",
    )
    return Mutation(new, audit)


def update_line_item(period: ReportingPeriod, index: int, **changes: Any) -> Mutation:
    ensure_unlocked(period)
    old: LineItem = _at(period.line_items, index, "line item")
    updated = LineItem.model_validate({**old.model_dump(), **changes})
    items = list(period.line_items)
    items[index] = updated
    new = _rebuild(period, line_items=items)
    audit = AuditEntry(
        event_type=AuditEvent.UPDATED,
        entity_type=AuditEntity.LINE_ITEM,
        period_label=period.label,
        category=updated.category.value,
        amount=updated.signed_amount,
        summary=(
            f"Updated line item {updated.raw_label!r} ({updated.category.value}) "
            f"{_money(old.signed_amount)} -> {_money(updated.signed_amount)} in {period.label}"
        ),
    )
    return Mutation(new, audit)


def remove_line_item(period: ReportingPeriod, index: int) -> Mutation:
    ensure_unlocked(period)
    old: LineItem = _at(period.line_items, index, "line item")
    items = [item for i, item in enumerate(period.line_items) if i != index]
    new = _rebuild(period, line_items=items)
    audit = AuditEntry(
        event_type=AuditEvent.DELETED,
        entity_type=AuditEntity.LINE_ITEM,
        period_label=period.label,
        category=old.category.value,
        amount=old.signed_amount,
        summary=(
            f"Deleted line item {old.raw_label!r} ({old.category.value}) "
            f"{_money(old.signed_amount)} from {period.label}"
        ),
    )
    return Mutation(new, audit)


# Add-backs


def add_add_back(period: ReportingPeriod, add_back: AddBack) -> Mutation:
    ensure_unlocked(period)
    new = _rebuild(period, add_backs=[*period.add_backs, add_back])
    audit = AuditEntry(
        event_type=AuditEvent.CREATED,
        entity_type=AuditEntity.ADD_BACK,
        period_label=period.label,
        category=add_back.category.value,
        amount=add_back.amount,
        summary=(
            f"Added add-back {add_back.description!r} ({add_back.category.value}) "
            f"{_money(add_back.amount)} to {period.label}"
        ),
    )
    return Mutation(new, audit)


def update_add_back(period: ReportingPeriod, index: int, **changes: Any) -> Mutation:
    ensure_unlocked(period)
    old: AddBack = _at(period.add_backs, index, "add-back")
    updated = AddBack.model_validate({**old.model_dump(), **changes})
    add_backs = list(period.add_backs)
    add_backs[index] = updated
    new = _rebuild(period, add_backs=add_backs)
    audit = AuditEntry(
        event_type=AuditEvent.UPDATED,
        entity_type=AuditEntity.ADD_BACK,
        period_label=period.label,
        category=updated.category.value,
        amount=updated.amount,
        summary=(
            f"Updated add-back {updated.description!r} ({updated.category.value}) "
            f"{_money(old.amount)} -> {_money(updated.amount)} in {period.label}"
        ),
    )
    return Mutation(new, audit)


def remove_add_back(period: ReportingPeriod, index: int) -> Mutation:
    ensure_unlocked(period)
    old: AddBack = _at(period.add_backs, index, "add-back")
    add_backs = [ab for i, ab in enumerate(period.add_backs) if i != index]
    new = _rebuild(period, add_backs=add_backs)
    audit = AuditEntry(
        event_type=AuditEvent.DELETED,
        entity_type=AuditEntity.ADD_BACK,
        period_label=period.label,
        category=old.category.value,
        amount=old.amount,
        summary=(
            f"Deleted add-back {old.description!r} ({old.category.value}) "
            f"{_money(old.amount)} from {period.label}"
        ),
    )
    return Mutation(new, audit)


def set_total_add_backs(period: ReportingPeriod, desired_total: Decimal | float | int) -> Mutation:
    """Force total_add_backs to desired_total through the reconciliation entry."""
    ensure_unlocked(period)
    target = to_amount(desired_total)
    previous = ebitda_add_back_total(period.add_backs)
    new = _rebuild(period, add_backs=reconcile_add_backs(period.add_backs, target))
    audit = AuditEntry(
        event_type=AuditEvent.UPDATED,
        entity_type=AuditEntity.ADD_BACK,
        period_label=period.label,
        category="TOTAL_ADD_BACKS",
        amount=target,
        summary=(
            f"Set total add-backs for {period.label}: "
            f"{_money(previous)} -> {_money(target)}"
        ),
    )
    return Mutation(new, audit)


# Overrides


def _override_name(field: SummaryField | str) -> str:
    if isinstance(field, SummaryField):
        return field.override_name
    if field in OVERRIDE_FIELDS:
        return field
    if f"override_{field}" in OVERRIDE_FIELDS:
        return f"override_{field}"
    raise ValueError(f"Unknown override field {field!r}")


def set_override(
    period: ReportingPeriod,
    field: SummaryField | str,
    value: Decimal | float | int | None,
) -> Mutation:
    """Set (or clear, with None) a manual override and recompute."""
    ensure_unlocked(period)
    name = _override_name(field)
    amount = to_amount(value) if value is not None else None
    overrides = period.overrides.model_copy(update={name: amount})
    new = _rebuild(period, overrides=overrides)
    label = OVERRIDE_FIELDS[name]
    audit = AuditEntry(
        event_type=AuditEvent.UPDATED if amount is not None else AuditEvent.DELETED,
        entity_type=AuditEntity.OVERRIDE,
        period_label=period.label,
        category=label,
        amount=amount,
        summary=f"Override {label} for {period.label}: {_money(amount)}",
    )
    return Mutation(new, audit)


def set_locked(period: ReportingPeriod, locked: bool) -> Mutation:
    """Lock or unlock a period. Allowed on locked periods so they can be reopened."""
    new = period.model_copy(update={"is_locked": locked})
    audit = AuditEntry(
        event_type=AuditEvent.UPDATED,
        entity_type=AuditEntity.PERIOD,
        period_label=period.label,
        summary=f"{'Locked' if locked else 'Unlocked'} {period.label}",
    )
    return Mutation(new, audit)
