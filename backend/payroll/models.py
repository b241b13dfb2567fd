from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from core_backend.exceptions import ConflictError


class Employee(models.Model):
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    position = models.CharField(max_length=100, blank=True)
    pay_rate = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        help_text=_("Default hourly rate")
    )
    is_active = models.BooleanField(default=True)
    hire_date = models.DateField(null=True, blank=True)

    class Meta:
        verbose_name = _("Employee")
        verbose_name_plural = _("Employees")
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return f"{self.first_name} {self.last_name}"


class PayrollRun(models.Model):
    """One pay cycle. Its records are created together and never edited."""
    period_start = models.DateField()
    period_end = models.DateField()
    payment_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payroll Run")
        verbose_name_plural = _("Payroll Runs")
        ordering = ['-period_end', '-id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(period_end__gte=models.F('period_start')),
                name='payroll_run_period_order'
            ),
        ]

    def __str__(self):
        return f"Payroll {self.period_start} to {self.period_end}"


class PayrollRecordQuerySet(models.QuerySet):
    """Blocks the bulk paths that skip PayrollRecord.save() and delete()."""

    def update(self, **kwargs):
        raise ConflictError("Payroll records are posted and cannot be bulk-updated", current_status="posted")

    def delete(self):
        raise ConflictError("Payroll records are posted and cannot be bulk-deleted", current_status="posted")


class PayrollRecord(models.Model):
    """
    One employee's paycheck within a run.

    Immutable once written: saving an existing record, deleting one, or
    calling update() or delete() on a queryset raises ConflictError.
    Corrections go in a new run.
    """
    run = models.ForeignKey(
        PayrollRun,
        on_delete=models.PROTECT,
        related_name='records'
    )
    employee = models.ForeignKey(
        Employee,
        on_delete=models.PROTECT,
        related_name='payroll_records'
    )
    period_start = models.DateField()
    period_end = models.DateField()

    regular_hours = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal("0"))
    overtime_hours = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal("0"))
    hourly_rate = models.DecimalField(max_digits=8, decimal_places=2)
    tips = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    gross_pay = models.DecimalField(max_digits=12, decimal_places=2)

    federal_withholding = models.DecimalField(max_digits=10, decimal_places=2)
    state_withholding = models.DecimalField(max_digits=10, decimal_places=2)
    social_security = models.DecimalField(max_digits=10, decimal_places=2)
    medicare = models.DecimalField(max_digits=10, decimal_places=2)
    net_pay = models.DecimalField(max_digits=12, decimal_places=2)

    employer_social_security = models.DecimalField(max_digits=10, decimal_places=2)
    employer_medicare = models.DecimalField(max_digits=10, decimal_places=2)
    employer_futa = models.DecimalField(max_digits=10, decimal_places=2)
    employer_suta = models.DecimalField(max_digits=10, decimal_places=2)
    total_employer_cost = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = PayrollRecordQuerySet.as_manager()

    class Meta:
        verbose_name = _("Payroll Record")
        verbose_name_plural = _("Payroll Records")
        ordering = ['-period_end', 'employee']
        constraints = [
            models.UniqueConstraint(
                fields=['run', 'employee'],
                name='unique_employee_per_payroll_run'
            ),
        ]
        indexes = [
            models.Index(fields=['period_start', 'period_end']),
        ]

    def __str__(self):
        return f"{self.employee} {self.period_start} to {self.period_end}: {self.gross_pay}"

    @property
    def employer_taxes(self):
        return (
            self.employer_social_security + self.employer_medicare
            + self.employer_futa + self.employer_suta
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ConflictError(
                f"Payroll record {self.pk} is posted and cannot be modified",
                current_status="posted",
            )
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ConflictError(
            f"Payroll record {self.pk} is posted and cannot be deleted",
            current_status="posted",
        )
