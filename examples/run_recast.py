"""Example: rebuild two fiscal years from a QuickBooks-style P&L grid."""

import logging
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from recast import PeriodStore, analyze_periods, reconstruct_workbook
from recast.mutations import set_locked, set_total_add_backs

GRID = [
    ["Acme Widgets LLC"],
    ["Profit and Loss"],
    ["Accrual Basis"],
    ["", "2023", "2024"],
    ["", "Jan - Dec", "Jan - Dec"],
    ["Income"],
    ["4000 Sales", 150000, 180000],
    ["4100 Service Revenue", 30000, 40000],
    ["Total Income", 180000, 220000],
    ["Cost of Goods Sold"],
    ["5000 Materials", 60000, 70000],
    ["Total COGS", 60000, 70000],
    ["Gross Profit", 120000, 150000],
    ["Expense"],
    ["6000 Rent", 24000, 24000],
    ["6100 Payroll", 40000, 45000],
    ["6200 Owner Salary", 20000, 22000],
    ["6300 Depreciation Expense", 5000, 6000],
    ["Total Expense", 89000, 97000],
    ["Net Income", 31000, 53000],
]

SUMMARY = [["Notes"], ["Prepared by bookkeeper"]]


def _dollar(val):
    if val is None:
        return "n/a"
    return f"${val:,.2f}"


def _pct(val):
    if val is None:
        return "n/a"
    return f"{float(val):.1%}"


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    result = reconstruct_workbook(
        {"Notes": SUMMARY, "P&L": GRID},
        source_name="acme_pl.xlsx",
        opportunity_id="acme",
    )
    print(f"Sheet used: {result.sheet_used}")
    print(result.notes)
    for warning in result.warnings:
        print(f"  warning: {warning}")

    store = PeriodStore()
    store.add_all(result.periods)

    latest = result.periods[-1]
    mutation = set_total_add_backs(latest, Decimal("30000"))
    store.save(mutation.period, mutation.audit)
    locked = set_locked(mutation.period, True)
    store.save(locked.period, locked.audit)

    for period in store.list_periods("acme"):
        s = period.computed
        print(f"\n{period.label}{' (locked)' if period.is_locked else ''}")
        print(f"  Revenue:         {_dollar(s.total_revenue)}")
        print(f"  Gross Profit:    {_dollar(s.gross_profit)}  ({_pct(s.gross_margin)})")
        print(f"  EBITDA:          {_dollar(s.ebitda)}  ({_pct(s.ebitda_margin)})")
        print(f"  Add-backs:       {_dollar(s.total_add_backs)}")
        print(f"  Adjusted EBITDA: {_dollar(s.adjusted_ebitda)}")
        print(f"  SDE:             {_dollar(s.sde)}")
        print(f"  Net Income:      {_dollar(s.net_income)}")
        for ab in period.add_backs:
            print(f"    + {ab.description} ({ab.category}) {_dollar(ab.amount)}")

    print("\nAudit trail:")
    for entry in store.audit_log():
        print(f"  [{entry.event_type}] {entry.summary}")

    analysis = analyze_periods(store.list_periods("acme"))
    print("\nGrowth:")
    for label, metrics in analysis.growth.items():
        for name, cv in metrics.items():
            if cv.value is not None:
                print(f"  {label} {name}: {float(cv.value):+.1%}  ({cv.formula})")
    print("\nQuality checks:")
    for check in analysis.quality_checks:
        print(f"  [{check.severity}] {check.title}: {check.message}")


if __name__ == "__main__":
    main()
