"""
Tax Schedule Builder: Schedule C, 1099 vendor report, expense report by tax
category, and quarterly estimated tax.

These are planning figures for the owner and their accountant, built from the
same period data as the P&L. With every category deductible, Schedule C net
profit equals P&L net income for the same range.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from cogs.models import Vendor
from core_backend.config import EngineConfig
from core_backend.exceptions import ValidationError
from core_backend.utils.money import ZERO, quantize_money, sum_money
from expenses.models import TaxCategory
from payroll.calculators import QuarterFigures, QuarterlyEstimateSchedule, estimate_quarterly_taxes, quarter_periods
from reports.services.period_service import (
    ExpenseEntry,
    PeriodData,
    PeriodReportService,
    build_period_report,
)
from reports.services.periods import DateRange, month_key, months_in, year_range

logger = logging.getLogger(__name__)


SCHEDULE_C_LINES = {
    TaxCategory.ADVERTISING: "8",
    TaxCategory.CAR_AND_TRUCK: "9",
    TaxCategory.COMMISSIONS: "10",
    TaxCategory.CONTRACT_LABOR: "11",
    TaxCategory.DEPRECIATION: "13",
    TaxCategory.EMPLOYEE_BENEFITS: "14",
    TaxCategory.INSURANCE: "15",
    TaxCategory.MORTGAGE_INTEREST: "16a",
    TaxCategory.OTHER_INTEREST: "16b",
    TaxCategory.LEGAL_AND_PROFESSIONAL: "17",
    TaxCategory.OFFICE_EXPENSE: "18",
    TaxCategory.PENSION: "19",
    TaxCategory.RENT_VEHICLES: "20a",
    TaxCategory.RENT: "20b",
    TaxCategory.REPAIRS: "21",
    TaxCategory.SUPPLIES: "22",
    TaxCategory.TAXES_AND_LICENSES: "23",
    TaxCategory.TRAVEL: "24a",
    TaxCategory.MEALS: "24b",
    TaxCategory.UTILITIES: "25",
    TaxCategory.OTHER_EXPENSES: "27a",
}
WAGES_LINE = "26"


def _tax_category(entry: ExpenseEntry) -> str:
    return entry.tax_category or TaxCategory.OTHER_EXPENSES


# ============================================================================
# SCHEDULE C
# ============================================================================

@dataclass
class ScheduleCLine:
    line: str
    tax_category: str
    label: str
    amount: Decimal


@dataclass
class ScheduleC:
    date_range: DateRange
    gross_receipts: Decimal          # line 1
    returns_and_allowances: Decimal  # line 2
    cost_of_goods_sold: Decimal      # line 4
    part_ii: List[ScheduleCLine] = field(default_factory=list)
    wages: Decimal = ZERO            # line 26
    employer_payroll_taxes: Decimal = ZERO
    purchases: Decimal = ZERO        # Part III line 36
    non_deductible: Decimal = ZERO

    @property
    def net_receipts(self) -> Decimal:
        return self.gross_receipts - self.returns_and_allowances

    @property
    def gross_profit(self) -> Decimal:
        return self.net_receipts - self.cost_of_goods_sold

    @property
    def total_expenses(self) -> Decimal:
        return sum((line.amount for line in self.part_ii), ZERO)

    @property
    def net_profit(self) -> Decimal:
        return self.gross_profit - self.total_expenses

    def as_dict(self) -> dict:
        return {
            "period": self.date_range.as_dict(),
            "part_i": {
                "line_1_gross_receipts": self.gross_receipts,
                "line_2_returns_and_allowances": self.returns_and_allowances,
                "line_3_net_receipts": self.net_receipts,
                "line_4_cost_of_goods_sold": self.cost_of_goods_sold,
                "line_5_gross_profit": self.gross_profit,
                "line_7_gross_income": self.gross_profit,
            },
            "part_ii": [
                {"line": line.line, "tax_category": line.tax_category, "label": line.label, "amount": line.amount}
                for line in self.part_ii
            ],
            "part_iii": {
                "line_36_purchases": self.purchases,
                "line_42_cost_of_goods_sold": self.cost_of_goods_sold,
            },
            "line_28_total_expenses": self.total_expenses,
            "line_31_net_profit": self.net_profit,
            "non_deductible": self.non_deductible,
        }


def _line_sort_key(line: str):
    digits = "".join(ch for ch in line if ch.isdigit())
    return int(digits), line


def build_schedule_c(data: PeriodData, date_range: DateRange) -> ScheduleC:
    """
    Schedule C from period data.

    Part II holds deductible operating, marketing and other spending by tax
    category, plus wages (line 26) with employer payroll taxes added to
    taxes and licenses (line 23). Part III reports ingredient purchases and
    the recipe-based cost of goods sold used on line 4.
    """
    pnl = build_period_report(data, date_range)
    expenses = [e for e in data.expenses if date_range.contains(e.date)]
    payroll = [p for p in data.payroll if date_range.overlaps(p.period_start, p.period_end)]

    raw: Dict[str, Decimal] = {}
    non_deductible = []
    for entry in expenses:
        if not (entry.counts_as_operating_expense or entry.counts_as_marketing_expense):
            continue
        if not entry.is_tax_deductible:
            non_deductible.append(entry.amount)
            continue
        category = _tax_category(entry)
        raw[category] = raw.get(category, ZERO) + entry.amount

    amounts = {category: quantize_money(amount) for category, amount in raw.items()}
    wages = sum_money(p.gross_pay for p in payroll)
    employer_taxes = sum_money(p.employer_taxes for p in payroll)
    if employer_taxes:
        amounts[TaxCategory.TAXES_AND_LICENSES] = amounts.get(TaxCategory.TAXES_AND_LICENSES, ZERO) + employer_taxes

    part_ii = [
        ScheduleCLine(
            line=SCHEDULE_C_LINES[TaxCategory(category)],
            tax_category=category,
            label=str(TaxCategory(category).label),
            amount=amount,
        )
        for category, amount in amounts.items()
    ]
    if wages:
        part_ii.append(ScheduleCLine(line=WAGES_LINE, tax_category="wages", label="Wages (line 26)", amount=wages))
    part_ii.sort(key=lambda line: _line_sort_key(line.line))

    return ScheduleC(
        date_range=date_range,
        gross_receipts=pnl.gross_revenue,
        returns_and_allowances=ZERO,
        cost_of_goods_sold=pnl.cogs,
        part_ii=part_ii,
        wages=wages,
        employer_payroll_taxes=employer_taxes,
        purchases=sum_money(e.amount for e in expenses if e.is_ingredient_purchase),
        non_deductible=sum_money(non_deductible),
    )


# ============================================================================
# 1099 VENDOR REPORT
# ============================================================================

@dataclass
class VendorPayments:
    vendor_id: int
    vendor_name: str
    tax_id: str
    total_paid: Decimal
    payment_count: int
    requires_1099: bool
    near_threshold: bool

    @property
    def needs_tin(self) -> bool:
        return self.requires_1099 and not self.tax_id


def form_1099_report(
    entries: Iterable[ExpenseEntry],
    tax_ids: Dict[int, str],
    config: EngineConfig,
) -> List[VendorPayments]:
    """
    Vendors paid at least the near-threshold amount, largest first.

    ``requires_1099`` at or above ``form_1099_threshold``; ``near_threshold``
    from ``form_1099_near_threshold`` up to (not including) the threshold.
    """
    totals: Dict[int, dict] = {}
    for entry in entries:
        if entry.vendor_id is None:
            continue
        group = totals.setdefault(entry.vendor_id, {"name": entry.vendor_name, "total": ZERO, "expenses": set()})
        group["total"] += entry.amount
        group["expenses"].add(entry.expense_id)

    vendors = []
    for vendor_id, group in totals.items():
        total = quantize_money(group["total"])
        if total < config.form_1099_near_threshold:
            continue
        vendors.append(VendorPayments(
            vendor_id=vendor_id,
            vendor_name=group["name"],
            tax_id=tax_ids.get(vendor_id, ""),
            total_paid=total,
            payment_count=len(group["expenses"]),
            requires_1099=total >= config.form_1099_threshold,
            near_threshold=total < config.form_1099_threshold,
        ))
    vendors.sort(key=lambda v: (-v.total_paid, v.vendor_name))
    return vendors


# ============================================================================
# EXPENSE REPORT BY TAX CATEGORY
# ============================================================================

def expense_report(entries: Iterable[ExpenseEntry], date_range: DateRange) -> dict:
    """Categorized spending per tax category and month; unmapped lines listed apart."""
    months = months_in(date_range)
    rows: Dict[str, dict] = {}
    unmapped = []
    for entry in entries:
        if not date_range.contains(entry.date):
            continue
        if entry.category_id is None:
            if not entry.is_ingredient_purchase:
                unmapped.append(entry.amount)
            continue
        category = _tax_category(entry)
        row = rows.setdefault(category, {
            "tax_category": category,
            "label": str(TaxCategory(category).label),
            "by_month": {month: ZERO for month in months},
            "deductible": ZERO,
            "non_deductible": ZERO,
        })
        row["by_month"][month_key(entry.date)] += entry.amount
        row["deductible" if entry.is_tax_deductible else "non_deductible"] += entry.amount

    categories = []
    for category in sorted(rows):
        row = rows[category]
        row["by_month"] = {month: quantize_money(amount) for month, amount in row["by_month"].items()}
        row["deductible"] = quantize_money(row["deductible"])
        row["non_deductible"] = quantize_money(row["non_deductible"])
        row["total"] = row["deductible"] + row["non_deductible"]
        categories.append(row)

    return {
        "period": date_range.as_dict(),
        "months": months,
        "categories": categories,
        "total_deductible": sum((row["deductible"] for row in categories), ZERO),
        "total": sum((row["total"] for row in categories), ZERO),
        "unmapped": sum_money(unmapped),
    }


# ============================================================================
# QUARTERLY ESTIMATES
# ============================================================================

def quarterly_figures(data: PeriodData, year: int, through_quarter: int = 4) -> List[QuarterFigures]:
    """
    Per-quarter income and deductions, taken as differences of year-to-date P&Ls.

    A pay period that spans a quarter boundary overlaps both quarters; working
    from year-to-date windows counts it once, in the first quarter it touches.
    """
    figures = []
    previous_income = previous_deductions = ZERO
    for _, _, end, _ in quarter_periods(year)[:through_quarter]:
        report = build_period_report(data, DateRange(date(year, 1, 1), end))
        income = report.net_revenue
        deductions = report.cogs + report.operating_expenses + report.marketing_expenses + report.payroll
        figures.append(QuarterFigures(
            gross_income=income - previous_income,
            deductions=deductions - previous_deductions,
        ))
        previous_income, previous_deductions = income, deductions
    return figures


class TaxReportService(PeriodReportService):
    """Loads period data and builds the tax schedules."""

    def schedule_c(self, start: date, end: date) -> ScheduleC:
        date_range = DateRange(start, end)
        schedule = build_schedule_c(self.load_period_data(date_range), date_range)
        logger.info(f"Built Schedule C {start} to {end}: net profit {schedule.net_profit}")
        return schedule

    def form_1099_report(self, year: int) -> List[VendorPayments]:
        entries = self.load_expenses(year_range(year))
        tax_ids = dict(Vendor.objects.filter(
            pk__in={e.vendor_id for e in entries if e.vendor_id is not None}
        ).values_list('id', 'tax_id'))
        return form_1099_report(entries, tax_ids, self.config)

    def expense_report(self, start: date, end: date) -> dict:
        date_range = DateRange(start, end)
        return expense_report(self.load_expenses(date_range), date_range)

    def quarterly_estimates(self, year: int, through_quarter: int = 4) -> QuarterlyEstimateSchedule:
        """Estimated SE and income tax per quarter with year-to-date carry-forward."""
        if not 1 <= through_quarter <= 4:
            raise ValidationError(f"Invalid quarter: {through_quarter}", field="through_quarter")
        data = self.load_period_data(year_range(year))
        return estimate_quarterly_taxes(year, quarterly_figures(data, year, through_quarter), self.config)
