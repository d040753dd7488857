"""Period Summarizer: line items + add-backs + overrides -> PeriodSummary.

The cascade, each step taking its override when one is set:

    total_revenue    = sum(REVENUE)
    total_cogs       = sum(COGS)
    gross_profit     = total_revenue - total_cogs
    total_opex       = sum(OPEX)
    ebitda           = gross_profit - total_opex
    total_add_backs  = sum(add-backs included in EBITDA)
    adjusted_ebitda  = ebitda + total_add_backs
    sde              = adjusted_ebitda + sum(add-backs included in SDE only)
    ebit             = ebitda - D&A
    net_income       = sum(NET_INCOME) if any, else
                       ebit - interest - tax + other income - other expense

Downstream steps always consume the (possibly overridden) upstream value.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal

from ..models import AddBack, LineItem, PeriodOverrides, PeriodSummary
from ..taxonomy import OPEX_CATEGORIES, LineItemCategory
from ._utils import ZERO, safe_ratio, to_decimal


def sum_by_category(items: Iterable[LineItem], categories: Iterable[LineItemCategory]) -> Decimal:
    wanted = frozenset(categories)
    total = ZERO
    for item in items:
        if item.category in wanted:
            total += item.signed_amount
    return total


def _pick(override: Decimal | None, computed: Decimal) -> Decimal:
    return to_decimal(override) if override is not None else computed


def summarize(
    line_items: Sequence[LineItem],
    add_backs: Sequence[AddBack],
    overrides: PeriodOverrides | None = None,
) -> PeriodSummary:
    """Compute the full PeriodSummary. Pure: identical inputs give identical output."""
    if overrides is None:
        overrides = PeriodOverrides()

    # P&L waterfall
    total_revenue = _pick(
        overrides.override_total_revenue,
        sum_by_category(line_items, [LineItemCategory.REVENUE]),
    )
    total_cogs = _pick(
        overrides.override_total_cogs,
        sum_by_category(line_items, [LineItemCategory.COGS]),
    )
    gross_profit = _pick(overrides.override_gross_profit, total_revenue - total_cogs)
    total_opex = _pick(overrides.override_total_opex, sum_by_category(line_items, OPEX_CATEGORIES))
    ebitda = _pick(overrides.override_ebitda, gross_profit - total_opex)

    # Add-backs: EBITDA set, and the SDE-only remainder
    ebitda_add_backs = ZERO
    sde_only_add_backs = ZERO
    for ab in add_backs:
        if ab.include_in_ebitda:
            ebitda_add_backs += to_decimal(ab.amount)
        elif ab.include_in_sde:
            sde_only_add_backs += to_decimal(ab.amount)

    adjusted_ebitda = _pick(overrides.override_adjusted_ebitda, ebitda + ebitda_add_backs)
    sde = adjusted_ebitda + sde_only_add_backs

    # Below EBITDA
    depreciation_amort = sum_by_category(line_items, [LineItemCategory.D_AND_A])
    ebit = _pick(overrides.override_ebit, ebitda - depreciation_amort)
    interest_expense = sum_by_category(line_items, [LineItemCategory.INTEREST])
    tax_expense = sum_by_category(line_items, [LineItemCategory.TAX])
    other_income = sum_by_category(line_items, [LineItemCategory.OTHER_INCOME])
    other_expense = sum_by_category(line_items, [LineItemCategory.OTHER_EXPENSE])

    if any(item.category == LineItemCategory.NET_INCOME for item in line_items):
        derived_net_income = sum_by_category(line_items, [LineItemCategory.NET_INCOME])
    else:
        derived_net_income = ebit - interest_expense - tax_expense + other_income - other_expense
    net_income = _pick(overrides.override_net_income, derived_net_income)

    return PeriodSummary(
        total_revenue=total_revenue,
        total_cogs=total_cogs,
        gross_profit=gross_profit,
        gross_margin=safe_ratio(gross_profit, total_revenue),
        total_opex=total_opex,
        ebitda=ebitda,
        ebitda_margin=safe_ratio(ebitda, total_revenue),
        depreciation_amort=depreciation_amort,
        ebit=ebit,
        interest_expense=interest_expense,
        tax_expense=tax_expense,
        total_add_backs=ebitda_add_backs,
        adjusted_ebitda=adjusted_ebitda,
        adjusted_ebitda_margin=safe_ratio(adjusted_ebitda, total_revenue),
        sde=sde,
        net_income=net_income,
        net_margin=safe_ratio(net_income, total_revenue),
    )
