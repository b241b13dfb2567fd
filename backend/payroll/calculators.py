"""
Payroll tax and quarterly estimate calculators.

PLANNING ESTIMATES ONLY. Withholding and employer burden use flat,
configurable rates (EngineConfig.withholding_rates / employer_rates), not
jurisdiction tax tables, wage bases or filing status. Do not use these
figures to file returns or remit taxes.

Usage:
    from payroll.calculators import compute_paycheck
    paycheck = compute_paycheck(Decimal("18.00"), Decimal("40"), Decimal("5"), Decimal("120"), config)
    paycheck.net_pay, paycheck.total_employer_cost

    from payroll.calculators import estimate_quarterly_taxes
    estimates = estimate_quarterly_taxes(2025, [QuarterFigures(q1_income, q1_deductions), ...], config)
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Sequence, Tuple

from core_backend.config import EngineConfig
from core_backend.exceptions import ValidationError
from core_backend.utils.money import ZERO, quantize_money, to_decimal


@dataclass(frozen=True)
class Paycheck:
    regular_hours: Decimal
    overtime_hours: Decimal
    hourly_rate: Decimal
    tips: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    federal_withholding: Decimal
    state_withholding: Decimal
    social_security: Decimal
    medicare: Decimal
    total_withholding: Decimal
    net_pay: Decimal
    employer_social_security: Decimal
    employer_medicare: Decimal
    employer_futa: Decimal
    employer_suta: Decimal
    employer_taxes: Decimal
    total_employer_cost: Decimal


def compute_paycheck(
    hourly_rate,
    regular_hours,
    overtime_hours,
    tips,
    config: EngineConfig,
) -> Paycheck:
    """
    Compute one paycheck.

        gross = regular_hours * rate + overtime_hours * rate * overtime_multiplier + tips

    Each withholding and employer line is rounded to cents on its own; net
    pay and employer cost are built from the rounded lines so they add up.

    Raises:
        ValidationError: for negative hours, rate or tips.
    """
    hourly_rate = to_decimal(hourly_rate)
    regular_hours = to_decimal(regular_hours)
    overtime_hours = to_decimal(overtime_hours)
    tips = to_decimal(tips)

    for name, value in (("hourly_rate", hourly_rate), ("regular_hours", regular_hours),
                        ("overtime_hours", overtime_hours), ("tips", tips)):
        if value < 0:
            raise ValidationError(f"{name} cannot be negative, got {value}", field=name)

    regular_pay = quantize_money(regular_hours * hourly_rate)
    overtime_pay = quantize_money(overtime_hours * hourly_rate * config.overtime_multiplier)
    gross_pay = regular_pay + overtime_pay + quantize_money(tips)

    withholding = config.withholding_rates
    federal = quantize_money(gross_pay * withholding.federal)
    state = quantize_money(gross_pay * withholding.state)
    social_security = quantize_money(gross_pay * withholding.ss)
    medicare = quantize_money(gross_pay * withholding.medicare)
    total_withholding = federal + state + social_security + medicare

    employer = config.employer_rates
    employer_ss = quantize_money(gross_pay * employer.ss)
    employer_medicare = quantize_money(gross_pay * employer.medicare)
    employer_futa = quantize_money(gross_pay * employer.futa)
    employer_suta = quantize_money(gross_pay * employer.suta)
    employer_taxes = employer_ss + employer_medicare + employer_futa + employer_suta

    return Paycheck(
        regular_hours=regular_hours,
        overtime_hours=overtime_hours,
        hourly_rate=hourly_rate,
        tips=quantize_money(tips),
        regular_pay=regular_pay,
        overtime_pay=overtime_pay,
        gross_pay=gross_pay,
        federal_withholding=federal,
        state_withholding=state,
        social_security=social_security,
        medicare=medicare,
        total_withholding=total_withholding,
        net_pay=gross_pay - total_withholding,
        employer_social_security=employer_ss,
        employer_medicare=employer_medicare,
        employer_futa=employer_futa,
        employer_suta=employer_suta,
        employer_taxes=employer_taxes,
        total_employer_cost=gross_pay + employer_taxes,
    )


# ============================================================================
# QUARTERLY ESTIMATES
# ============================================================================

def quarter_periods(year: int) -> List[Tuple[int, date, date, date]]:
    """(quarter, start, end, due_date) for each quarter of ``year``."""
    return [
        (1, date(year, 1, 1), date(year, 3, 31), date(year, 4, 15)),
        (2, date(year, 4, 1), date(year, 6, 30), date(year, 6, 15)),
        (3, date(year, 7, 1), date(year, 9, 30), date(year, 9, 15)),
        (4, date(year, 10, 1), date(year, 12, 31), date(year + 1, 1, 15)),
    ]


@dataclass(frozen=True)
class QuarterFigures:
    gross_income: Decimal
    deductions: Decimal

    @property
    def net_income(self) -> Decimal:
        return to_decimal(self.gross_income) - to_decimal(self.deductions)


@dataclass
class QuarterEstimate:
    quarter: int
    start: date
    end: date
    due_date: date
    gross_income: Decimal
    deductions: Decimal
    net_income: Decimal
    ytd_net_income: Decimal
    self_employment_tax: Decimal
    estimated_income_tax: Decimal

    @property
    def total_due(self) -> Decimal:
        return self.self_employment_tax + self.estimated_income_tax


@dataclass
class QuarterlyEstimateSchedule:
    year: int
    quarters: List[QuarterEstimate] = field(default_factory=list)

    @property
    def totals(self) -> dict:
        return {
            "gross_income": sum((q.gross_income for q in self.quarters), ZERO),
            "deductions": sum((q.deductions for q in self.quarters), ZERO),
            "net_income": sum((q.net_income for q in self.quarters), ZERO),
            "self_employment_tax": sum((q.self_employment_tax for q in self.quarters), ZERO),
            "estimated_income_tax": sum((q.estimated_income_tax for q in self.quarters), ZERO),
        }


def estimate_quarterly_taxes(
    year: int,
    figures: Sequence[QuarterFigures],
    config: EngineConfig,
) -> QuarterlyEstimateSchedule:
    """
    Self-employment and income tax estimates per quarter, year-to-date.

        ytd_se_tax   = se_tax_rate * se_earnings_factor * max(ytd_net_income, 0)
        quarter_due  = max(0, ytd_se_tax - se_tax_already_estimated)

    A loss in an early quarter therefore offsets profit in a later one, and a
    quarter never shows a negative (refund) amount. Estimated income tax uses
    the same carry-forward at ``estimated_income_tax_rate``.
    """
    if len(figures) > 4:
        raise ValidationError("A tax year has at most four quarters")

    schedule = QuarterlyEstimateSchedule(year=year)
    ytd_net = Decimal("0")
    se_estimated = ZERO
    income_estimated = ZERO

    for (quarter, start, end, due_date), figure in zip(quarter_periods(year), figures):
        net_income = quantize_money(figure.net_income)
        ytd_net += net_income
        taxable = max(ytd_net, Decimal("0"))

        ytd_se = quantize_money(taxable * config.se_earnings_factor * config.se_tax_rate)
        quarter_se = max(ZERO, ytd_se - se_estimated)
        se_estimated += quarter_se

        ytd_income_tax = quantize_money(taxable * config.estimated_income_tax_rate)
        quarter_income_tax = max(ZERO, ytd_income_tax - income_estimated)
        income_estimated += quarter_income_tax

        schedule.quarters.append(QuarterEstimate(
            quarter=quarter,
            start=start,
            end=end,
            due_date=due_date,
            gross_income=quantize_money(figure.gross_income),
            deductions=quantize_money(figure.deductions),
            net_income=net_income,
            ytd_net_income=ytd_net,
            self_employment_tax=quarter_se,
            estimated_income_tax=quarter_income_tax,
        ))

    return schedule
