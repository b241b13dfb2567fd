import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from django.db import transaction
from django.db.models import Sum

from core_backend.config import EngineConfig, get_engine_config
from core_backend.exceptions import NotFoundError, ValidationError
from payroll.calculators import compute_paycheck
from payroll.models import Employee, PayrollRecord, PayrollRun

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeHours:
    """Hours submitted for one employee in a pay cycle."""
    employee_id: int
    regular_hours: Decimal
    overtime_hours: Decimal = Decimal("0")
    tips: Decimal = Decimal("0")
    hourly_rate: Optional[Decimal] = None  # defaults to the employee's pay_rate


class PayrollService:
    """
    Service layer for payroll runs.

    Figures come from payroll.calculators and are planning estimates only.
    """

    @staticmethod
    @transaction.atomic
    def run_payroll(
        period_start: date,
        period_end: date,
        employee_hours: Iterable[EmployeeHours],
        payment_date: Optional[date] = None,
        config: Optional[EngineConfig] = None,
    ) -> PayrollRun:
        """
        Create a payroll run with one record per employee.

        All or nothing: a single unknown employee or invalid entry rolls back
        the whole run.

        Raises:
            ValidationError: bad period, duplicate employee, negative hours/rate/tips
            NotFoundError: unknown or inactive employee
        """
        config = get_engine_config(config)
        entries = list(employee_hours)

        if period_end < period_start:
            raise ValidationError("period_end cannot be before period_start", field="period_end")
        if not entries:
            raise ValidationError("A payroll run needs at least one employee", field="employee_hours")

        seen = set()
        for entry in entries:
            if entry.employee_id in seen:
                raise ValidationError(
                    f"Employee {entry.employee_id} appears more than once", field="employee_hours"
                )
            seen.add(entry.employee_id)

        employees = Employee.objects.select_for_update().in_bulk(seen)

        run = PayrollRun.objects.create(
            period_start=period_start,
            period_end=period_end,
            payment_date=payment_date,
        )

        for entry in entries:
            employee = employees.get(entry.employee_id)
            if employee is None or not employee.is_active:
                raise NotFoundError("Employee", entry.employee_id)

            rate = employee.pay_rate if entry.hourly_rate is None else entry.hourly_rate
            paycheck = compute_paycheck(rate, entry.regular_hours, entry.overtime_hours, entry.tips, config)

            PayrollRecord.objects.create(
                run=run,
                employee=employee,
                period_start=period_start,
                period_end=period_end,
                regular_hours=paycheck.regular_hours,
                overtime_hours=paycheck.overtime_hours,
                hourly_rate=paycheck.hourly_rate,
                tips=paycheck.tips,
                gross_pay=paycheck.gross_pay,
                federal_withholding=paycheck.federal_withholding,
                state_withholding=paycheck.state_withholding,
                social_security=paycheck.social_security,
                medicare=paycheck.medicare,
                net_pay=paycheck.net_pay,
                employer_social_security=paycheck.employer_social_security,
                employer_medicare=paycheck.employer_medicare,
                employer_futa=paycheck.employer_futa,
                employer_suta=paycheck.employer_suta,
                total_employer_cost=paycheck.total_employer_cost,
            )

        logger.info(
            f"Payroll run {run.id} for {period_start} to {period_end}: {len(entries)} employee(s)"
        )
        return run

    @staticmethod
    def records_overlapping(start: date, end: date):
        """Records whose pay period shares at least one day with [start, end]."""
        return PayrollRecord.objects.filter(
            period_start__lte=end,
            period_end__gte=start,
        ).select_related('employee')

    @staticmethod
    def run_summary(run: PayrollRun) -> dict:
        totals = run.records.aggregate(
            gross=Sum('gross_pay'),
            net=Sum('net_pay'),
            employer_cost=Sum('total_employer_cost'),
        )
        return {
            "run_id": run.id,
            "period_start": run.period_start,
            "period_end": run.period_end,
            "employee_count": run.records.count(),
            "total_gross": totals['gross'] or Decimal("0.00"),
            "total_net": totals['net'] or Decimal("0.00"),
            "total_employer_cost": totals['employer_cost'] or Decimal("0.00"),
        }
