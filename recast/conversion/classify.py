"""Row classification: walk a statement and sort every row into line items,
add-backs or overrides for each period column.

Section header rows ("Income", "Expense", "Addbacks", ...) set the context
for the rows below them; a row with a header label that carries values is
classified as a line item of the section it names instead. The RuleSet
decides everything else. Rows that no rule and no section can place are
returned in uncategorized_rows and kept as UNCATEGORIZED line items, never
dropped.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from ..analysis._utils import ZERO, to_amount
from ..models import AddBack, LineItem, ParsedStatement, Row
from ..parsing.hierarchy import closing_indices, find_group_ranges
from ..taxonomy import (
    AddBackCategory,
    LineItemCategory,
    OverrideRule,
    RuleSet,
    Section,
)
from .columns import PeriodColumn

logger = logging.getLogger(__name__)

# Only expense-side rows are proposed as add-back candidates
CANDIDATE_CATEGORIES = frozenset(
    {
        LineItemCategory.COGS,
        LineItemCategory.OPEX,
        LineItemCategory.OTHER_EXPENSE,
    }
)


@dataclass
class PeriodDraft:
    """Everything classified into one period column, before summarizing."""

    column: PeriodColumn
    line_items: list[LineItem] = field(default_factory=list)
    add_backs: list[AddBack] = field(default_factory=list)
    overrides: dict[str, Decimal] = field(default_factory=dict)
    section_totals: dict[tuple[Section, LineItemCategory], Decimal] = field(
        default_factory=lambda: defaultdict(lambda: ZERO)
    )

    def is_empty(self) -> bool:
        return not (self.line_items or self.add_backs or self.overrides)


@dataclass
class ClassificationResult:
    drafts: list[PeriodDraft]
    uncategorized_rows: list[Row] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _value(row: Row, draft: PeriodDraft) -> float | None:
    return row.values[draft.column.index]


def _apply_override(
    row: Row,
    rule: OverrideRule,
    section: Section,
    drafts: Sequence[PeriodDraft],
    warnings: list[str],
) -> None:
    label = row.label.strip()
    for draft in drafts:
        value = _value(row, draft)
        if value is None:
            continue
        amount = to_amount(value)
        included = sum((draft.section_totals[(section, c)] for c in rule.net_of), ZERO)
        if included:
            warnings.append(
                f"{draft.column.label}: {label!r} includes {included:,.2f} of "
                f"{', '.join(c.value for c in rule.net_of)} lines; excluded from {rule.field.value}"
            )
            amount -= included
        draft.overrides[rule.field.override_name] = amount


def _add_back_rows(row: Row, rules: RuleSet, drafts: Sequence[PeriodDraft]) -> None:
    label = row.label.strip()
    rule, confidence = rules.match_add_back(label)
    for draft in drafts:
        value = _value(row, draft)
        if value is None or value == 0:
            continue
        draft.add_backs.append(
            AddBack(
                category=rule.category if rule else AddBackCategory.OTHER,
                description=label,
                amount=to_amount(value),
                confidence=confidence,
                include_in_ebitda=rule.include_in_ebitda if rule else True,
                include_in_sde=rule.include_in_sde if rule else True,
                source_label=label,
            )
        )


def _line_item_rows(
    row: Row,
    label: str,
    category: LineItemCategory,
    subcategory: str | None,
    section: Section,
    rules: RuleSet,
    drafts: Sequence[PeriodDraft],
    propose_add_backs: bool = True,
) -> None:
    candidate = None
    if propose_add_backs and category in CANDIDATE_CATEGORIES:
        candidate = rules.match_candidate(label)
    for draft in drafts:
        value = _value(row, draft)
        if value is None:
            continue
        item = LineItem(
            category=category,
            subcategory=subcategory,
            raw_label=label,
            display_order=len(draft.line_items),
            amount=to_amount(abs(value)),
            is_negative=value < 0,
            notes=row.notes,
        )
        draft.line_items.append(item)
        draft.section_totals[(section, category)] += item.signed_amount

        if candidate is not None and item.amount != 0:
            add_back_rule, confidence = candidate
            draft.add_backs.append(
                AddBack(
                    category=add_back_rule.category,
                    description=label,
                    amount=item.signed_amount,
                    confidence=confidence,
                    include_in_ebitda=add_back_rule.include_in_ebitda,
                    include_in_sde=add_back_rule.include_in_sde,
                    source_label=row.label,
                )
            )


def _is_heading(row: Row) -> bool:
    return all(v is None for v in row.values)


def _heading_row(
    row: Row,
    label: str,
    section: Section,
    rules: RuleSet,
    drafts: Sequence[PeriodDraft],
    result: ClassificationResult,
) -> None:
    """Classify a valued row whose label names a section, without entering that section."""
    if section == Section.ADD_BACKS:
        _add_back_rows(row, rules, drafts)
        return
    match = rules.classify(label, section)
    if match is None:
        _flag_uncategorized(row, label, result)
        category, subcategory = LineItemCategory.UNCATEGORIZED, None
    else:
        category, subcategory = match.category, match.subcategory
    _line_item_rows(
        row, label, category, subcategory, section, rules, drafts, propose_add_backs=False
    )


def classify_statement(
    statement: ParsedStatement,
    columns: Sequence[PeriodColumn],
    rules: RuleSet,
) -> ClassificationResult:
    """Classify every row of statement into one PeriodDraft per period column."""
    drafts = [PeriodDraft(column=c) for c in columns]
    result = ClassificationResult(drafts=drafts)
    subtotal_rows = closing_indices(find_group_ranges(statement.rows))
    # A sheet with its own add-back schedule already itemizes them
    propose_add_backs = not any(
        rules.match_section(r.label) == Section.ADD_BACKS
        for r in statement.rows
        if r.label and _is_heading(r)
    )
    section = Section.UNKNOWN

    for idx, row in enumerate(statement.rows):
        if row.is_blank:
            continue
        label = row.label.strip()

        if not label:
            placeholder = f"(unlabeled row {idx + 1})"
            _flag_uncategorized(row, placeholder, result)
            _line_item_rows(
                row, placeholder, LineItemCategory.UNCATEGORIZED, None, section, rules, drafts
            )
            continue

        new_section = rules.match_section(label)
        if new_section is not None and _is_heading(row):
            section = new_section
            continue
        if new_section is not None:
            # A heading label carrying values is a one-row section of its own
            _heading_row(row, label, new_section, rules, drafts, result)
            continue
        if rules.is_umbrella(label):
            continue

        if row.is_total or row.is_summary:
            rule = rules.match_override(label)
            if rule is not None and not (rule.skip_in_add_backs and section == Section.ADD_BACKS):
                _apply_override(row, rule, section, drafts, result.warnings)
                continue
            if row.is_summary or idx in subtotal_rows:
                continue

        if section == Section.ADD_BACKS:
            if not rules.is_add_back_skip(label):
                _add_back_rows(row, rules, drafts)
            continue

        if rules.is_derived(label):
            continue

        match = rules.classify(label, section)
        if match is None:
            _flag_uncategorized(row, label, result)
            category, subcategory = LineItemCategory.UNCATEGORIZED, None
        else:
            category, subcategory = match.category, match.subcategory
        _line_item_rows(
            row, label, category, subcategory, section, rules, drafts, propose_add_backs
        )

    return result


def _flag_uncategorized(row: Row, label: str, result: ClassificationResult) -> None:
    if all(v is None for v in row.values):
        return
    msg = f"Row {label!r} matched no category rule; kept as UNCATEGORIZED"
    logger.warning(msg)
    result.warnings.append(msg)
    result.uncategorized_rows.append(row)
