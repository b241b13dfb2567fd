"""
Period views that share the P&L's range filter and rounding: weekly cash
flow, daily summary, vendor spend and monthly budget vs actual.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from core_backend.utils.money import ZERO, quantize_money, safe_percent
from expenses.models import ExpenseCategory
from reports.services.period_service import ExpenseEntry, PeriodData, PeriodReportService
from reports.services.periods import DateRange, month_range, week_start

logger = logging.getLogger(__name__)


# ============================================================================
# CASH FLOW
# ============================================================================

@dataclass
class CashFlowWeek:
    week_start: date
    week_end: date
    inflow: Decimal
    expense_outflow: Decimal
    payroll_outflow: Decimal
    closing_balance: Decimal = ZERO

    @property
    def outflow(self) -> Decimal:
        return self.expense_outflow + self.payroll_outflow

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow


@dataclass
class CashFlowReport:
    date_range: DateRange
    opening_balance: Decimal
    weeks: List[CashFlowWeek] = field(default_factory=list)

    @property
    def closing_balance(self) -> Decimal:
        return self.weeks[-1].closing_balance if self.weeks else self.opening_balance

    @property
    def totals(self) -> dict:
        inflow = sum((w.inflow for w in self.weeks), ZERO)
        outflow = sum((w.outflow for w in self.weeks), ZERO)
        return {"inflow": inflow, "outflow": outflow, "net": inflow - outflow}


def cash_flow(data: PeriodData, date_range: DateRange, opening_balance=ZERO) -> CashFlowReport:
    """
    Weekly (Monday-start) cash in and out with a running balance.

    Inflow is sales revenue. Outflow is every expense entry on its expense
    date plus payroll net pay on the run's payment date. The first and last
    weeks are clipped to the range.
    """
    report = CashFlowReport(date_range=date_range, opening_balance=quantize_money(opening_balance))

    buckets: Dict[date, Dict[str, Decimal]] = {}

    def bucket(day: date) -> Dict[str, Decimal]:
        return buckets.setdefault(week_start(day), {"inflow": ZERO, "expenses": ZERO, "payroll": ZERO})

    for sale in data.sales:
        if date_range.contains(sale.date):
            bucket(sale.date)["inflow"] += sale.revenue
    for entry in data.expenses:
        if date_range.contains(entry.date):
            bucket(entry.date)["expenses"] += entry.amount
    for payroll in data.payroll:
        if date_range.contains(payroll.cash_date):
            bucket(payroll.cash_date)["payroll"] += payroll.net_pay

    balance = report.opening_balance
    monday = week_start(date_range.start)
    while monday <= date_range.end:
        totals = buckets.get(monday, {"inflow": ZERO, "expenses": ZERO, "payroll": ZERO})
        week = CashFlowWeek(
            week_start=max(monday, date_range.start),
            week_end=min(monday + timedelta(days=6), date_range.end),
            inflow=quantize_money(totals["inflow"]),
            expense_outflow=quantize_money(totals["expenses"]),
            payroll_outflow=quantize_money(totals["payroll"]),
        )
        balance += week.net
        week.closing_balance = balance
        report.weeks.append(week)
        monday += timedelta(days=7)

    return report


# ============================================================================
# DAILY SUMMARY
# ============================================================================

@dataclass
class DailySummaryRow:
    day: date
    revenue: Decimal
    food_sales: Decimal
    plates_sold: int
    expenses: Decimal

    @property
    def net(self) -> Decimal:
        return self.revenue - self.expenses


def daily_summary(data: PeriodData, date_range: DateRange) -> dict:
    """Per-day revenue and spending for days with any activity."""
    days: Dict[date, dict] = {}

    def row(day: date) -> dict:
        return days.setdefault(day, {"revenue": ZERO, "food": ZERO, "plates": 0, "expenses": ZERO})

    for sale in data.sales:
        if date_range.contains(sale.date):
            totals = row(sale.date)
            totals["revenue"] += sale.revenue
            totals["plates"] += sale.quantity
            if sale.revenue_category == "food":
                totals["food"] += sale.revenue
    for entry in data.expenses:
        if date_range.contains(entry.date):
            row(entry.date)["expenses"] += entry.amount

    rows = [
        DailySummaryRow(
            day=day,
            revenue=quantize_money(totals["revenue"]),
            food_sales=quantize_money(totals["food"]),
            plates_sold=totals["plates"],
            expenses=quantize_money(totals["expenses"]),
        )
        for day, totals in sorted(days.items())
    ]
    total_revenue = sum((r.revenue for r in rows), ZERO)
    total_expenses = sum((r.expenses for r in rows), ZERO)
    return {
        "period": date_range.as_dict(),
        "days": rows,
        "totals": {
            "revenue": total_revenue,
            "expenses": total_expenses,
            "net": total_revenue - total_expenses,
            "plates_sold": sum(r.plates_sold for r in rows),
        },
        "avg_daily_revenue": quantize_money(total_revenue / len(rows)) if rows else ZERO,
    }


# ============================================================================
# VENDOR ANALYSIS
# ============================================================================

@dataclass
class VendorSpend:
    vendor_id: Optional[int]
    vendor_name: str
    transaction_count: int
    total: Decimal
    average: Decimal
    first_date: date
    last_date: date
    expense_types: List[str]
    percent_of_total: Optional[Decimal] = None


def vendor_analysis(entries: Iterable[ExpenseEntry], date_range: DateRange) -> List[VendorSpend]:
    """
    Spend per vendor, largest first.

    A transaction is one expense; its line items are summed together.
    Expenses without a vendor are grouped under "Unassigned".
    """
    grouped: Dict[Optional[int], dict] = {}
    for entry in entries:
        if not date_range.contains(entry.date):
            continue
        group = grouped.setdefault(entry.vendor_id, {
            "name": entry.vendor_name or "Unassigned",
            "expenses": set(),
            "total": ZERO,
            "dates": [],
            "types": set(),
        })
        group["expenses"].add(entry.expense_id)
        group["total"] += entry.amount
        group["dates"].append(entry.date)
        if entry.expense_type:
            group["types"].add(entry.expense_type)

    vendors = []
    for vendor_id, group in grouped.items():
        total = quantize_money(group["total"])
        count = len(group["expenses"])
        vendors.append(VendorSpend(
            vendor_id=vendor_id,
            vendor_name=group["name"],
            transaction_count=count,
            total=total,
            average=quantize_money(total / count),
            first_date=min(group["dates"]),
            last_date=max(group["dates"]),
            expense_types=sorted(group["types"]),
        ))

    grand_total = sum((v.total for v in vendors), ZERO)
    for vendor in vendors:
        vendor.percent_of_total = safe_percent(vendor.total, grand_total)

    vendors.sort(key=lambda v: (-v.total, v.vendor_name))
    return vendors


# ============================================================================
# BUDGET VS ACTUAL
# ============================================================================

@dataclass(frozen=True)
class CategoryBudget:
    category_id: int
    name: str
    expense_type: str
    budget_monthly: Decimal


@dataclass
class BudgetLine:
    category_id: int
    name: str
    expense_type: str
    budget: Decimal
    actual: Decimal

    @property
    def variance(self) -> Decimal:
        return self.budget - self.actual

    @property
    def variance_percent(self) -> Optional[Decimal]:
        """Actual as a percent of budget; None without a budget."""
        return safe_percent(self.actual, self.budget)

    @property
    def over_budget(self) -> bool:
        return self.actual > self.budget


def budget_vs_actual(
    categories: Iterable[CategoryBudget],
    entries: Iterable[ExpenseEntry],
    date_range: DateRange,
) -> List[BudgetLine]:
    spent: Dict[int, Decimal] = {}
    for entry in entries:
        if entry.category_id is not None and date_range.contains(entry.date):
            spent[entry.category_id] = spent.get(entry.category_id, ZERO) + entry.amount

    return [
        BudgetLine(
            category_id=category.category_id,
            name=category.name,
            expense_type=category.expense_type,
            budget=quantize_money(category.budget_monthly),
            actual=quantize_money(spent.get(category.category_id, ZERO)),
        )
        for category in sorted(categories, key=lambda c: c.name)
    ]


class BreakdownService(PeriodReportService):
    """Loads period data once per call and hands it to the pure breakdowns."""

    def cash_flow(self, start: date, end: date, opening_balance=ZERO) -> CashFlowReport:
        date_range = DateRange(start, end)
        report = cash_flow(self.load_period_data(date_range), date_range, opening_balance)
        logger.info(f"Cash flow {start} to {end}: {len(report.weeks)} week(s), closing {report.closing_balance}")
        return report

    def daily_summary(self, start: date, end: date) -> dict:
        date_range = DateRange(start, end)
        data = PeriodData(sales=self.load_sales(date_range), expenses=self.load_expenses(date_range))
        return daily_summary(data, date_range)

    def vendor_analysis(self, start: date, end: date) -> List[VendorSpend]:
        date_range = DateRange(start, end)
        return vendor_analysis(self.load_expenses(date_range), date_range)

    def budget_vs_actual(self, year: int, month: int) -> List[BudgetLine]:
        date_range = month_range(year, month)
        categories = [
            CategoryBudget(
                category_id=category.id,
                name=category.name,
                expense_type=category.expense_type,
                budget_monthly=category.budget_monthly or ZERO,
            )
            for category in ExpenseCategory.objects.all()
        ]
        return budget_vs_actual(categories, self.load_expenses(date_range), date_range)

