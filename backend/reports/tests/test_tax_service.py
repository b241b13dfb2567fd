"""
Tests for Schedule C, the 1099 vendor report, the expense report and
quarterly estimates.
"""
import pytest
from datetime import date
from decimal import Decimal

from core_backend.exceptions import ValidationError
from expenses.models import Expense
from payroll.calculators import QuarterFigures, estimate_quarterly_taxes
from reports.services.period_service import ExpenseEntry, PayrollEntry, PeriodData, SaleLine, build_period_report
from reports.services.periods import DateRange
from reports.services.tax_service import (
    TaxReportService,
    build_schedule_c,
    expense_report,
    form_1099_report,
    quarterly_figures,
)

JUNE = DateRange(date(2024, 6, 1), date(2024, 6, 30))


def with_expenses(data, *entries):
    return PeriodData(sales=data.sales, expenses=data.expenses + list(entries), payroll=data.payroll)


class TestScheduleC:
    def test_net_profit_matches_pnl(self, june_data):
        """With every category deductible the two reports agree to the cent"""
        schedule = build_schedule_c(june_data, JUNE)
        pnl = build_period_report(june_data, JUNE)

        assert schedule.net_profit == pnl.net_income
        assert schedule.total_expenses == pnl.total_expenses

    def test_part_i(self, june_data):
        schedule = build_schedule_c(june_data, JUNE)

        assert schedule.gross_receipts == Decimal('240.00')
        assert schedule.cost_of_goods_sold == Decimal('32.40')
        assert schedule.gross_profit == Decimal('207.60')
        assert schedule.purchases == Decimal('170.00')

    def test_part_ii_lines_in_form_order(self, june_data):
        schedule = build_schedule_c(june_data, JUNE)

        assert [(line.line, line.amount) for line in schedule.part_ii] == [
            ('8', Decimal('200.00')),
            ('20b', Decimal('1500.00')),
            ('23', Decimal('106.77')),
            ('26', Decimal('975.00')),
        ]

    def test_non_deductible_spending_kept_apart(self, june_data):
        data = with_expenses(june_data, ExpenseEntry(
            date=date(2024, 6, 20), expense_id=9, amount=Decimal('80.00'),
            category_id=20, category_name='Owner Meals', expense_type='operating',
            tax_category='meals', is_tax_deductible=False,
        ))

        schedule = build_schedule_c(data, JUNE)
        pnl = build_period_report(data, JUNE)

        assert schedule.non_deductible == Decimal('80.00')
        assert schedule.net_profit == pnl.net_income + Decimal('80.00')

    def test_missing_tax_category_goes_to_other_expenses(self):
        data = PeriodData(expenses=[ExpenseEntry(
            date=date(2024, 6, 2), expense_id=1, amount=Decimal('45.00'),
            category_id=1, category_name='Misc', expense_type='other',
        )])

        [line] = build_schedule_c(data, JUNE).part_ii

        assert line.line == '27a'
        assert line.amount == Decimal('45.00')

    def test_as_dict(self, june_data):
        data = build_schedule_c(june_data, JUNE).as_dict()

        assert data['part_i']['line_3_net_receipts'] == Decimal('240.00')
        assert data['line_31_net_profit'] == Decimal('-2574.17')
        assert data['part_iii']['line_36_purchases'] == Decimal('170.00')


class TestForm1099Report:
    @pytest.fixture
    def payments(self):
        def paid(expense_id, vendor_id, name, amount):
            return ExpenseEntry(
                date=date(2024, 3, 1), expense_id=expense_id, amount=Decimal(amount),
                vendor_id=vendor_id, vendor_name=name,
            )
        return [
            paid(1, 1, 'Sysco', '400.00'),
            paid(2, 1, 'Sysco', '250.00'),
            paid(3, 2, 'Corner Print Shop', '450.00'),
            paid(4, 3, 'Napkins Co', '350.00'),
            paid(5, 4, 'Pest Control', '700.00'),
            paid(6, None, '', '900.00'),
        ]

    def test_thresholds(self, payments, engine_config):
        vendors = form_1099_report(payments, {1: '12-3456789', 2: '', 4: ''}, engine_config)

        assert [(v.vendor_name, v.total_paid, v.requires_1099, v.near_threshold) for v in vendors] == [
            ('Pest Control', Decimal('700.00'), True, False),
            ('Sysco', Decimal('650.00'), True, False),
            ('Corner Print Shop', Decimal('450.00'), False, True),
        ]

    def test_missing_tin_flagged_only_when_required(self, payments, engine_config):
        pest, sysco, printer = form_1099_report(payments, {1: '12-3456789', 2: '', 4: ''}, engine_config)

        assert pest.needs_tin
        assert not sysco.needs_tin
        assert not printer.needs_tin
        assert sysco.payment_count == 2

    def test_exactly_at_threshold_requires_form(self, engine_config):
        entries = [ExpenseEntry(
            date=date(2024, 3, 1), expense_id=1, amount=Decimal('600.00'), vendor_id=1, vendor_name='Sysco',
        )]

        [vendor] = form_1099_report(entries, {}, engine_config)

        assert vendor.requires_1099
        assert not vendor.near_threshold


class TestExpenseReport:
    def test_by_tax_category(self, june_data):
        report = expense_report(june_data.expenses, DateRange(date(2024, 5, 1), date(2024, 6, 30)))

        assert report['months'] == ['2024-05', '2024-06']
        assert [row['tax_category'] for row in report['categories']] == ['advertising', 'rent', 'supplies']
        rent = report['categories'][1]
        assert rent['by_month'] == {'2024-05': Decimal('0.00'), '2024-06': Decimal('1500.00')}
        assert report['total'] == Decimal('1750.00')
        assert report['unmapped'] == Decimal('12.50')

    def test_non_deductible_split(self):
        entries = [
            ExpenseEntry(
                date=date(2024, 6, 2), expense_id=1, amount=Decimal('60.00'),
                category_id=1, category_name='Meals', expense_type='operating', tax_category='meals',
            ),
            ExpenseEntry(
                date=date(2024, 6, 3), expense_id=2, amount=Decimal('40.00'),
                category_id=2, category_name='Owner Meals', expense_type='operating', tax_category='meals',
                is_tax_deductible=False,
            ),
        ]

        report = expense_report(entries, JUNE)

        [meals] = report['categories']
        assert meals['deductible'] == Decimal('60.00')
        assert meals['non_deductible'] == Decimal('40.00')
        assert meals['total'] == Decimal('100.00')
        assert report['total_deductible'] == Decimal('60.00')


class TestQuarterlyFigures:
    def test_quarters_are_year_to_date_differences(self):
        data = PeriodData(
            sales=[SaleLine(date(2024, 2, 10), 1, 'Margherita Pizza', 'food', 100, Decimal('16.00'), Decimal('2.44'))],
            expenses=[
                ExpenseEntry(
                    date=date(2024, 3, 1), expense_id=1, amount=Decimal('1000.00'),
                    category_id=1, category_name='Rent', expense_type='operating', tax_category='rent',
                ),
                ExpenseEntry(
                    date=date(2024, 4, 1), expense_id=2, amount=Decimal('2000.00'),
                    category_id=1, category_name='Rent', expense_type='operating', tax_category='rent',
                ),
            ],
        )

        figures = quarterly_figures(data, 2024, through_quarter=2)

        assert figures == [
            QuarterFigures(gross_income=Decimal('1600.00'), deductions=Decimal('1244.00')),
            QuarterFigures(gross_income=Decimal('0.00'), deductions=Decimal('2000.00')),
        ]
        assert figures[1].net_income == Decimal('-2000.00')

    def test_pay_period_spanning_quarters_counted_once(self, engine_config):
        data = PeriodData(payroll=[PayrollEntry(
            employee_id=1, period_start=date(2025, 3, 24), period_end=date(2025, 4, 6),
            gross_pay=Decimal('1000.00'), net_pay=Decimal('780.00'), employer_taxes=Decimal('100.00'),
            total_employer_cost=Decimal('1100.00'), payment_date=date(2025, 4, 10),
        )])

        figures = quarterly_figures(data, 2025)
        schedule = estimate_quarterly_taxes(2025, figures, engine_config)

        assert [f.deductions for f in figures] == [
            Decimal('1100.00'), Decimal('0.00'), Decimal('0.00'), Decimal('0.00'),
        ]
        assert schedule.quarters[-1].ytd_net_income == Decimal('-1100.00')
        assert build_period_report(data, DateRange(date(2025, 1, 1), date(2025, 12, 31))).net_income == Decimal('-1100.00')


@pytest.mark.django_db
class TestTaxReportService:
    def test_form_1099_uses_vendor_tax_ids(self, vendor, other_vendor, engine_config):
        Expense.objects.create(
            expense_date=date(2024, 2, 1), vendor=vendor, description='Produce', amount=Decimal('650.00'),
        )
        Expense.objects.create(
            expense_date=date(2024, 5, 1), vendor=other_vendor, description='Menus', amount=Decimal('620.00'),
        )
        Expense.objects.create(
            expense_date=date(2023, 12, 31), vendor=other_vendor, description='Menus', amount=Decimal('900.00'),
        )

        vendors = TaxReportService(engine_config).form_1099_report(2024)

        assert [(v.vendor_name, v.needs_tin) for v in vendors] == [
            ('Sysco', False),
            ('Corner Print Shop', True),
        ]
        assert vendors[1].total_paid == Decimal('620.00')

    def test_quarterly_estimates_through_quarter(self, engine_config):
        schedule = TaxReportService(engine_config).quarterly_estimates(2024, through_quarter=2)

        assert [q.quarter for q in schedule.quarters] == [1, 2]

    def test_invalid_quarter(self, engine_config):
        with pytest.raises(ValidationError):
            TaxReportService(engine_config).quarterly_estimates(2024, through_quarter=5)
