"""
Tests for PayrollService runs.
"""
import pytest
from datetime import date
from decimal import Decimal

from core_backend.exceptions import ConflictError, NotFoundError, ValidationError
from payroll.models import PayrollRecord, PayrollRun
from payroll.services import EmployeeHours, PayrollService

START = date(2024, 6, 1)
END = date(2024, 6, 14)


@pytest.mark.django_db
class TestRunPayroll:
    """Tests for creating payroll runs."""

    def test_creates_one_record_per_employee(self, cook, server, engine_config):
        run = PayrollService.run_payroll(START, END, [
            EmployeeHours(cook.id, Decimal('40'), Decimal('5'), Decimal('120')),
            EmployeeHours(server.id, Decimal('30'), tips=Decimal('250')),
        ], payment_date=date(2024, 6, 18), config=engine_config)

        assert run.records.count() == 2
        cook_record = run.records.get(employee=cook)
        assert cook_record.gross_pay == Decimal('975.00')
        assert cook_record.total_employer_cost == Decimal('1081.77')
        assert cook_record.employer_taxes == Decimal('106.77')

    def test_rate_override(self, cook, engine_config):
        run = PayrollService.run_payroll(
            START, END, [EmployeeHours(cook.id, Decimal('10'), hourly_rate=Decimal('20.00'))], config=engine_config
        )

        assert run.records.get().gross_pay == Decimal('200.00')

    def test_inactive_employee_rolls_back_run(self, cook, inactive_employee, engine_config):
        with pytest.raises(NotFoundError):
            PayrollService.run_payroll(START, END, [
                EmployeeHours(cook.id, Decimal('40')),
                EmployeeHours(inactive_employee.id, Decimal('20')),
            ], config=engine_config)

        assert PayrollRun.objects.count() == 0
        assert PayrollRecord.objects.count() == 0

    def test_negative_hours_rolls_back_run(self, cook, server, engine_config):
        with pytest.raises(ValidationError):
            PayrollService.run_payroll(START, END, [
                EmployeeHours(cook.id, Decimal('40')),
                EmployeeHours(server.id, Decimal('-2')),
            ], config=engine_config)

        assert PayrollRecord.objects.count() == 0

    def test_duplicate_employee_rejected(self, cook):
        with pytest.raises(ValidationError):
            PayrollService.run_payroll(START, END, [EmployeeHours(cook.id, Decimal('1')), EmployeeHours(cook.id, Decimal('2'))])

    def test_period_must_be_ordered(self, cook):
        with pytest.raises(ValidationError):
            PayrollService.run_payroll(END, START, [EmployeeHours(cook.id, Decimal('1'))])

    def test_empty_run_rejected(self, db):
        with pytest.raises(ValidationError):
            PayrollService.run_payroll(START, END, [])


@pytest.mark.django_db
class TestPayrollRecords:

    def test_records_are_immutable(self, cook, engine_config):
        run = PayrollService.run_payroll(START, END, [EmployeeHours(cook.id, Decimal('40'))], config=engine_config)
        record = run.records.get()

        record.tips = Decimal('999')
        with pytest.raises(ConflictError):
            record.save()
        with pytest.raises(ConflictError):
            record.delete()

    def test_records_cannot_be_bulk_changed(self, cook, engine_config):
        run = PayrollService.run_payroll(START, END, [EmployeeHours(cook.id, Decimal('40'))], config=engine_config)

        with pytest.raises(ConflictError):
            PayrollRecord.objects.filter(run=run).update(tips=Decimal('999'))
        with pytest.raises(ConflictError):
            run.records.all().delete()

        assert run.records.get().tips == Decimal('0.00')

    def test_records_overlapping(self, cook, engine_config):
        PayrollService.run_payroll(START, END, [EmployeeHours(cook.id, Decimal('40'))], config=engine_config)

        assert PayrollService.records_overlapping(date(2024, 6, 14), date(2024, 6, 30)).count() == 1
        assert PayrollService.records_overlapping(date(2024, 6, 15), date(2024, 6, 30)).count() == 0

    def test_run_summary(self, cook, server, engine_config):
        run = PayrollService.run_payroll(START, END, [
            EmployeeHours(cook.id, Decimal('40'), Decimal('5'), Decimal('120')),
            EmployeeHours(server.id, Decimal('10')),
        ], config=engine_config)

        summary = PayrollService.run_summary(run)

        assert summary['employee_count'] == 2
        assert summary['total_gross'] == Decimal('1075.00')
