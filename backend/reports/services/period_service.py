"""
Period aggregation (P&L builder).

``build_period_report`` is pure: it takes snapshots of the sales, expense and
payroll rows for a window and returns a PeriodReport. ``PeriodReportService``
loads those snapshots from the database and handles comparison windows.

    revenue     Σ quantity_sold * selling_price, split by revenue category
    cogs        Σ quantity_sold * plate_cost (recipe cost incl. q_factor)
    operating   mapped expense lines in operating/other categories
    marketing   mapped expense lines in marketing categories
    payroll     Σ total_employer_cost of records whose pay period overlaps
    net_income  net_revenue - cogs - operating - marketing - payroll

Every component is rounded to cents before net income is derived, so the
identity above holds exactly on the rounded figures. Ingredient purchases and
cogs-type categories are left out of operating expense because COGS is
recognized from sales; payroll-type categories are left out because payroll
comes from payroll records.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db.models import Q

from cogs.models import MenuItem, RevenueCategory
from cogs.services.costing_service import CostingService
from core_backend.config import EngineConfig, get_engine_config
from core_backend.utils.money import ZERO, percent_change, quantize_money, safe_percent, sum_money
from expenses.models import Expense, ExpenseType
from payroll.models import PayrollRecord
from reports.services.periods import DateRange, comparison_range
from sales.models import SalesRecord

logger = logging.getLogger(__name__)


OPERATING_TYPES = (ExpenseType.OPERATING, ExpenseType.OTHER)
EXCLUDED_TYPES = (ExpenseType.COGS, ExpenseType.PAYROLL)


# ============================================================================
# SNAPSHOTS
# ============================================================================

@dataclass(frozen=True)
class SaleLine:
    date: date
    menu_item_id: int
    menu_item_name: str
    revenue_category: str
    quantity: int
    selling_price: Decimal
    plate_cost: Decimal

    @property
    def revenue(self) -> Decimal:
        return self.quantity * self.selling_price

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.plate_cost


@dataclass(frozen=True)
class ExpenseEntry:
    """
    One classified amount of spending.

    An expense with line items yields one entry per line (classified by the
    line's mapping); an expense without line items yields one entry in its
    header category.
    """
    date: date
    expense_id: int
    amount: Decimal
    vendor_id: Optional[int] = None
    vendor_name: str = ""
    category_id: Optional[int] = None
    category_name: str = ""
    expense_type: Optional[str] = None
    tax_category: str = ""
    is_tax_deductible: bool = True
    is_ingredient_purchase: bool = False
    payment_method: str = ""
    description: str = ""

    @property
    def is_mapped(self) -> bool:
        return self.is_ingredient_purchase or self.category_id is not None

    @property
    def counts_as_operating_expense(self) -> bool:
        return not self.is_ingredient_purchase and self.expense_type in OPERATING_TYPES

    @property
    def counts_as_marketing_expense(self) -> bool:
        return not self.is_ingredient_purchase and self.expense_type == ExpenseType.MARKETING


@dataclass(frozen=True)
class PayrollEntry:
    employee_id: int
    period_start: date
    period_end: date
    gross_pay: Decimal
    net_pay: Decimal
    employer_taxes: Decimal
    total_employer_cost: Decimal
    payment_date: Optional[date] = None

    @property
    def cash_date(self) -> date:
        """Day the money left the bank (payment date, else period end)."""
        return self.payment_date or self.period_end


@dataclass
class PeriodData:
    sales: List[SaleLine] = field(default_factory=list)
    expenses: List[ExpenseEntry] = field(default_factory=list)
    payroll: List[PayrollEntry] = field(default_factory=list)


# ============================================================================
# REPORT
# ============================================================================

@dataclass
class PeriodComparison:
    mode: str
    previous: "PeriodReport"
    changes: Dict[str, Optional[Decimal]] = field(default_factory=dict)

    @property
    def revenue_change_percent(self) -> Optional[Decimal]:
        return self.changes.get("net_revenue")


@dataclass
class PeriodReport:
    date_range: DateRange
    revenue_by_category: Dict[str, Decimal]
    gross_revenue: Decimal
    net_revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    operating_expenses: Decimal
    marketing_expenses: Decimal
    payroll: Decimal
    total_expenses: Decimal
    net_income: Decimal
    food_cost_percent: Optional[Decimal]
    labor_cost_percent: Optional[Decimal]
    prime_cost_percent: Optional[Decimal]
    operating_expense_percent: Optional[Decimal]
    net_margin_percent: Optional[Decimal]
    operating_by_category: Dict[str, Decimal] = field(default_factory=dict)
    marketing_by_category: Dict[str, Decimal] = field(default_factory=dict)
    excluded_purchases: Decimal = ZERO
    unmapped_expenses: Decimal = ZERO
    plates_sold: int = 0
    comparison: Optional[PeriodComparison] = None

    COMPARED_FIELDS = (
        "gross_revenue", "net_revenue", "cogs", "gross_profit", "operating_expenses",
        "marketing_expenses", "payroll", "total_expenses", "net_income",
    )

    def as_dict(self) -> dict:
        data = {
            "period": self.date_range.as_dict(),
            "revenue": {
                "by_category": dict(self.revenue_by_category),
                "gross_revenue": self.gross_revenue,
                "net_revenue": self.net_revenue,
            },
            "cogs": self.cogs,
            "gross_profit": self.gross_profit,
            "expenses": {
                "operating": self.operating_expenses,
                "operating_by_category": dict(self.operating_by_category),
                "marketing": self.marketing_expenses,
                "marketing_by_category": dict(self.marketing_by_category),
                "payroll": self.payroll,
                "total": self.total_expenses,
            },
            "net_income": self.net_income,
            "ratios": {
                "food_cost_percent": self.food_cost_percent,
                "labor_cost_percent": self.labor_cost_percent,
                "prime_cost_percent": self.prime_cost_percent,
                "operating_expense_percent": self.operating_expense_percent,
                "net_margin_percent": self.net_margin_percent,
            },
            "excluded_purchases": self.excluded_purchases,
            "unmapped_expenses": self.unmapped_expenses,
            "plates_sold": self.plates_sold,
        }
        if self.comparison is not None:
            data["comparison"] = {
                "mode": self.comparison.mode,
                "period": self.comparison.previous.date_range.as_dict(),
                "previous": {name: getattr(self.comparison.previous, name) for name in self.COMPARED_FIELDS},
                "change_percent": dict(self.comparison.changes),
            }
        return data


def _group_totals(entries, key) -> Dict[str, Decimal]:
    raw: Dict[str, Decimal] = {}
    for entry in entries:
        name = key(entry)
        raw[name] = raw.get(name, ZERO) + entry.amount
    return {name: quantize_money(amount) for name, amount in sorted(raw.items())}


def build_period_report(data: PeriodData, date_range: DateRange) -> PeriodReport:
    """
    Build the P&L for ``date_range`` from snapshot rows.

    Rows outside the range are ignored (payroll by pay-period overlap), so the
    caller may pass a superset.
    """
    sales = [s for s in data.sales if date_range.contains(s.date)]
    expenses = [e for e in data.expenses if date_range.contains(e.date)]
    payroll_rows = [p for p in data.payroll if date_range.overlaps(p.period_start, p.period_end)]

    revenue_by_category = {category: ZERO for category in RevenueCategory.values}
    raw_revenue: Dict[str, Decimal] = {}
    for sale in sales:
        raw_revenue[sale.revenue_category] = raw_revenue.get(sale.revenue_category, ZERO) + sale.revenue
    for category, amount in raw_revenue.items():
        revenue_by_category[category] = quantize_money(amount)

    gross_revenue = sum(revenue_by_category.values(), ZERO)
    net_revenue = gross_revenue
    cogs = sum_money(sale.cost for sale in sales)

    operating = [e for e in expenses if e.counts_as_operating_expense]
    marketing = [e for e in expenses if e.counts_as_marketing_expense]
    operating_by_category = _group_totals(operating, lambda e: e.category_name)
    marketing_by_category = _group_totals(marketing, lambda e: e.category_name)
    operating_total = sum(operating_by_category.values(), ZERO)
    marketing_total = sum(marketing_by_category.values(), ZERO)

    excluded = sum_money(
        e.amount for e in expenses if e.is_ingredient_purchase or e.expense_type in EXCLUDED_TYPES
    )
    unmapped = sum_money(e.amount for e in expenses if not e.is_mapped)

    payroll_total = sum_money(p.total_employer_cost for p in payroll_rows)

    gross_profit = net_revenue - cogs
    total_expenses = operating_total + marketing_total + payroll_total
    net_income = net_revenue - cogs - operating_total - marketing_total - payroll_total

    return PeriodReport(
        date_range=date_range,
        revenue_by_category=revenue_by_category,
        gross_revenue=gross_revenue,
        net_revenue=net_revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        operating_expenses=operating_total,
        marketing_expenses=marketing_total,
        payroll=payroll_total,
        total_expenses=total_expenses,
        net_income=net_income,
        food_cost_percent=safe_percent(cogs, net_revenue),
        labor_cost_percent=safe_percent(payroll_total, net_revenue),
        prime_cost_percent=safe_percent(cogs + payroll_total, net_revenue),
        operating_expense_percent=safe_percent(operating_total + marketing_total, net_revenue),
        net_margin_percent=safe_percent(net_income, net_revenue),
        operating_by_category=operating_by_category,
        marketing_by_category=marketing_by_category,
        excluded_purchases=excluded,
        unmapped_expenses=unmapped,
        plates_sold=sum(sale.quantity for sale in sales),
    )


def compare_reports(current: PeriodReport, previous: PeriodReport, mode: str) -> PeriodComparison:
    return PeriodComparison(
        mode=mode,
        previous=previous,
        changes={
            name: percent_change(getattr(current, name), getattr(previous, name))
            for name in PeriodReport.COMPARED_FIELDS
        },
    )


# ============================================================================
# LOADING
# ============================================================================

class PeriodReportService:
    """Loads period snapshots from the database and builds reports."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = get_engine_config(config)
        self._costing = CostingService(self.config)

    def load_sales(self, date_range: DateRange) -> List[SaleLine]:
        records = list(
            SalesRecord.objects.filter(date__gte=date_range.start, date__lte=date_range.end)
            .select_related('menu_item')
        )
        menu_item_ids = {record.menu_item_id for record in records}
        plate_costs = self._costing.compute_plate_costs(
            MenuItem.all_objects.filter(pk__in=menu_item_ids).prefetch_related('recipe_lines__ingredient')
        )
        return [
            SaleLine(
                date=record.date,
                menu_item_id=record.menu_item_id,
                menu_item_name=record.menu_item.name,
                revenue_category=record.menu_item.revenue_category,
                quantity=record.quantity_sold,
                selling_price=record.menu_item.selling_price,
                plate_cost=plate_costs[record.menu_item_id],
            )
            for record in records
        ]

    @staticmethod
    def load_expenses(date_range: DateRange) -> List[ExpenseEntry]:
        expenses = (
            Expense.objects.filter(expense_date__gte=date_range.start, expense_date__lte=date_range.end)
            .select_related('vendor', 'category')
            .prefetch_related('line_items__mapped_category')
            .order_by('expense_date', 'id')
        )
        entries = []
        for expense in expenses:
            common = {
                "date": expense.expense_date,
                "expense_id": expense.id,
                "vendor_id": expense.vendor_id,
                "vendor_name": expense.vendor.name if expense.vendor else "",
                "payment_method": expense.payment_method,
            }
            lines = list(expense.line_items.all())
            if not lines:
                entries.append(ExpenseEntry(
                    amount=expense.amount,
                    description=expense.description,
                    **common,
                    **_category_fields(expense.category),
                ))
                continue
            for line in lines:
                entries.append(ExpenseEntry(
                    amount=line.line_total,
                    description=line.raw_description,
                    is_ingredient_purchase=line.mapped_ingredient_id is not None,
                    **common,
                    **_category_fields(line.mapped_category),
                ))
        return entries

    @staticmethod
    def load_payroll(date_range: DateRange) -> List[PayrollEntry]:
        records = PayrollRecord.objects.filter(
            Q(period_start__lte=date_range.end, period_end__gte=date_range.start)
            | Q(run__payment_date__gte=date_range.start, run__payment_date__lte=date_range.end)
        ).select_related('run')
        return [
            PayrollEntry(
                employee_id=record.employee_id,
                period_start=record.period_start,
                period_end=record.period_end,
                gross_pay=record.gross_pay,
                net_pay=record.net_pay,
                employer_taxes=record.employer_taxes,
                total_employer_cost=record.total_employer_cost,
                payment_date=record.run.payment_date,
            )
            for record in records
        ]

    def load_period_data(self, date_range: DateRange) -> PeriodData:
        return PeriodData(
            sales=self.load_sales(date_range),
            expenses=self.load_expenses(date_range),
            payroll=self.load_payroll(date_range),
        )

    def build_period_report(self, start: date, end: date, compare_mode=None) -> PeriodReport:
        """
        P&L for [start, end], optionally compared with ``previous_period`` or
        ``previous_year``.
        """
        date_range = DateRange(start, end)
        previous_range = comparison_range(date_range, compare_mode)

        report = build_period_report(self.load_period_data(date_range), date_range)
        if previous_range is not None:
            previous = build_period_report(self.load_period_data(previous_range), previous_range)
            report.comparison = compare_reports(report, previous, str(getattr(compare_mode, "value", compare_mode)))

        logger.info(
            f"Built period report {start} to {end}: revenue {report.net_revenue}, "
            f"net income {report.net_income}"
        )
        return report


def _category_fields(category) -> dict:
    if category is None:
        return {}
    return {
        "category_id": category.id,
        "category_name": category.name,
        "expense_type": category.expense_type,
        "tax_category": category.tax_category,
        "is_tax_deductible": category.is_tax_deductible,
    }
