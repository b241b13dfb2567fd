"""
Tests for cash flow, daily summary, vendor analysis and budget vs actual.
"""
import pytest
from datetime import date
from decimal import Decimal

from expenses.models import Expense, ExpenseLineItem
from reports.services.breakdowns import (
    BreakdownService,
    CategoryBudget,
    budget_vs_actual,
    cash_flow,
    daily_summary,
    vendor_analysis,
)
from reports.services.period_service import ExpenseEntry
from reports.services.periods import DateRange

JUNE = DateRange(date(2024, 6, 1), date(2024, 6, 30))


class TestCashFlow:
    def test_weeks_are_clipped_to_range(self, june_data):
        report = cash_flow(june_data, JUNE)

        assert [(w.week_start, w.week_end) for w in report.weeks] == [
            (date(2024, 6, 1), date(2024, 6, 2)),
            (date(2024, 6, 3), date(2024, 6, 9)),
            (date(2024, 6, 10), date(2024, 6, 16)),
            (date(2024, 6, 17), date(2024, 6, 23)),
            (date(2024, 6, 24), date(2024, 6, 30)),
        ]

    def test_payroll_leaves_on_payment_date(self, june_data):
        """Net pay is an outflow in the week it was paid, whatever period it covers"""
        report = cash_flow(june_data, JUNE)

        assert report.weeks[1].payroll_outflow == Decimal('300.00')
        assert report.weeks[3].payroll_outflow == Decimal('734.66')

    def test_running_balance(self, june_data):
        report = cash_flow(june_data, JUNE, opening_balance=Decimal('5000'))

        assert [w.closing_balance for w in report.weeks] == [
            Decimal('3500.00'),
            Decimal('3207.50'),
            Decimal('3007.50'),
            Decimal('2272.84'),
            Decimal('2272.84'),
        ]
        assert report.closing_balance == Decimal('2272.84')
        assert report.totals == {
            'inflow': Decimal('240.00'),
            'outflow': Decimal('2967.16'),
            'net': Decimal('-2727.16'),
        }


class TestDailySummary:
    def test_only_active_days(self, june_data):
        summary = daily_summary(june_data, JUNE)

        assert [row.day for row in summary['days']] == [
            date(2024, 6, 1), date(2024, 6, 3), date(2024, 6, 5), date(2024, 6, 12),
        ]

    def test_totals(self, june_data):
        summary = daily_summary(june_data, JUNE)

        sales_day = summary['days'][2]
        assert sales_day.revenue == Decimal('240.00')
        assert sales_day.food_sales == Decimal('160.00')
        assert sales_day.plates_sold == 30
        assert summary['totals'] == {
            'revenue': Decimal('240.00'),
            'expenses': Decimal('1932.50'),
            'net': Decimal('-1692.50'),
            'plates_sold': 30,
        }
        assert summary['avg_daily_revenue'] == Decimal('60.00')


class TestVendorAnalysis:
    def test_largest_vendor_first(self, june_data):
        vendors = vendor_analysis(june_data.expenses, JUNE)

        assert [v.vendor_name for v in vendors] == ['Landlord LLC', 'Sysco', 'Corner Print Shop']
        assert [v.percent_of_total for v in vendors] == [Decimal('77.62'), Decimal('12.03'), Decimal('10.35')]

    def test_line_items_count_as_one_transaction(self, june_data):
        sysco = vendor_analysis(june_data.expenses, JUNE)[1]

        assert sysco.transaction_count == 1
        assert sysco.total == Decimal('232.50')
        assert sysco.average == Decimal('232.50')
        assert sysco.expense_types == ['cogs']

    def test_unassigned_vendor(self):
        entries = [
            ExpenseEntry(date=date(2024, 6, 2), expense_id=1, amount=Decimal('40.00')),
            ExpenseEntry(date=date(2024, 6, 9), expense_id=2, amount=Decimal('60.00')),
        ]

        [unassigned] = vendor_analysis(entries, JUNE)

        assert unassigned.vendor_name == 'Unassigned'
        assert unassigned.transaction_count == 2
        assert unassigned.average == Decimal('50.00')
        assert unassigned.first_date == date(2024, 6, 2)
        assert unassigned.last_date == date(2024, 6, 9)
        assert unassigned.percent_of_total == Decimal('100.00')


class TestBudgetVsActual:
    def test_variance(self):
        categories = [
            CategoryBudget(1, 'Rent', 'operating', Decimal('3000.00')),
            CategoryBudget(2, 'Paper Goods', 'operating', Decimal('200.00')),
        ]
        entries = [
            ExpenseEntry(date=date(2024, 6, 1), expense_id=1, amount=Decimal('1500.00'), category_id=1),
            ExpenseEntry(date=date(2024, 6, 3), expense_id=2, amount=Decimal('250.00'), category_id=2),
            ExpenseEntry(date=date(2024, 7, 1), expense_id=3, amount=Decimal('1500.00'), category_id=1),
        ]

        paper, rent = budget_vs_actual(categories, entries, JUNE)

        assert rent.variance == Decimal('1500.00')
        assert rent.variance_percent == Decimal('50.00')
        assert not rent.over_budget
        assert paper.variance == Decimal('-50.00')
        assert paper.variance_percent == Decimal('125.00')
        assert paper.over_budget


@pytest.mark.django_db
class TestBreakdownService:
    def test_budget_vs_actual_for_month(self, rent_category, supplies_category, marketing_category, engine_config):
        Expense.objects.create(
            expense_date=date(2024, 6, 1), category=rent_category,
            description='June rent', amount=Decimal('1500.00'),
        )
        receipt = Expense.objects.create(
            expense_date=date(2024, 6, 20), description='Paper run', amount=Decimal('250.00'),
        )
        ExpenseLineItem.objects.create(
            expense=receipt, raw_description='NAPKINS', line_total=Decimal('250.00'),
            mapped_category=supplies_category,
        )
        Expense.objects.create(
            expense_date=date(2024, 7, 1), category=rent_category,
            description='July rent', amount=Decimal('1500.00'),
        )

        lines = BreakdownService(engine_config).budget_vs_actual(2024, 6)

        assert [line.name for line in lines] == ['Flyers', 'Paper Goods', 'Rent']
        flyers, paper, rent = lines
        assert flyers.budget == Decimal('0.00')
        assert flyers.variance_percent is None
        assert not flyers.over_budget
        assert paper.over_budget
        assert rent.actual == Decimal('1500.00')

    def test_archived_category_left_out(self, rent_category, supplies_category, engine_config):
        supplies_category.archive()

        lines = BreakdownService(engine_config).budget_vs_actual(2024, 6)

        assert [line.name for line in lines] == ['Rent']

    def test_vendor_analysis_from_database(self, vendor, other_vendor, engine_config):
        Expense.objects.create(
            expense_date=date(2024, 6, 3), vendor=vendor, description='Produce', amount=Decimal('300.00'),
        )
        Expense.objects.create(
            expense_date=date(2024, 6, 17), vendor=vendor, description='Produce', amount=Decimal('100.00'),
        )
        Expense.objects.create(
            expense_date=date(2024, 6, 10), vendor=other_vendor, description='Menus', amount=Decimal('100.00'),
        )

        vendors = BreakdownService(engine_config).vendor_analysis(date(2024, 6, 1), date(2024, 6, 30))

        assert vendors[0].vendor_name == 'Sysco'
        assert vendors[0].transaction_count == 2
        assert vendors[0].average == Decimal('200.00')
        assert vendors[0].percent_of_total == Decimal('80.00')
