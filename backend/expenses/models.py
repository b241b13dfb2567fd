from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from core_backend.utils.archiving import SoftDeleteMixin


class ExpenseType(models.TextChoices):
    """How an expense category rolls into the P&L."""
    COGS = "cogs", _("Cost of Goods Sold")
    OPERATING = "operating", _("Operating")
    MARKETING = "marketing", _("Marketing")
    PAYROLL = "payroll", _("Payroll")
    OTHER = "other", _("Other")


class TaxCategory(models.TextChoices):
    """Schedule C Part II expense lines."""
    ADVERTISING = "advertising", _("Advertising (line 8)")
    CAR_AND_TRUCK = "car_and_truck", _("Car and truck (line 9)")
    COMMISSIONS = "commissions", _("Commissions and fees (line 10)")
    CONTRACT_LABOR = "contract_labor", _("Contract labor (line 11)")
    DEPRECIATION = "depreciation", _("Depreciation (line 13)")
    EMPLOYEE_BENEFITS = "employee_benefits", _("Employee benefit programs (line 14)")
    INSURANCE = "insurance", _("Insurance (line 15)")
    MORTGAGE_INTEREST = "mortgage_interest", _("Mortgage interest (line 16a)")
    OTHER_INTEREST = "other_interest", _("Other interest (line 16b)")
    LEGAL_AND_PROFESSIONAL = "legal_and_professional", _("Legal and professional (line 17)")
    OFFICE_EXPENSE = "office_expense", _("Office expense (line 18)")
    PENSION = "pension", _("Pension and profit-sharing (line 19)")
    RENT_VEHICLES = "rent_vehicles", _("Rent - vehicles and equipment (line 20a)")
    RENT = "rent", _("Rent - other business property (line 20b)")
    REPAIRS = "repairs", _("Repairs and maintenance (line 21)")
    SUPPLIES = "supplies", _("Supplies (line 22)")
    TAXES_AND_LICENSES = "taxes_and_licenses", _("Taxes and licenses (line 23)")
    TRAVEL = "travel", _("Travel (line 24a)")
    MEALS = "meals", _("Meals (line 24b)")
    UTILITIES = "utilities", _("Utilities (line 25)")
    OTHER_EXPENSES = "other_expenses", _("Other expenses (line 27a)")


class PaymentMethod(models.TextChoices):
    CASH = "cash", _("Cash")
    CHECK = "check", _("Check")
    CREDIT_CARD = "credit_card", _("Credit Card")
    DEBIT_CARD = "debit_card", _("Debit Card")
    BANK_TRANSFER = "bank_transfer", _("Bank Transfer")
    VENDOR_CREDIT = "vendor_credit", _("Vendor Credit")


class MatchType(models.TextChoices):
    """Mapping rule kinds, listed from most to least specific."""
    EXACT_CODE = "exact_code", _("Exact vendor code")
    EXACT_DESC = "exact_desc", _("Exact description")
    CONTAINS = "contains", _("Description contains")
    REGEX = "regex", _("Regular expression")


class MappingSource(models.TextChoices):
    AUTO = "auto", _("Auto-mapped by rule")
    MANUAL = "manual", _("Set manually")


class ExpenseCategory(SoftDeleteMixin):
    """
    A bucket for spending. ``expense_type`` decides where it lands on the
    P&L, ``tax_category`` decides the Schedule C line.
    """
    name = models.CharField(max_length=200, unique=True)
    expense_type = models.CharField(
        max_length=20,
        choices=ExpenseType.choices,
        default=ExpenseType.OPERATING
    )
    tax_category = models.CharField(
        max_length=40,
        choices=TaxCategory.choices,
        default=TaxCategory.OTHER_EXPENSES
    )
    is_tax_deductible = models.BooleanField(default=True)
    budget_monthly = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Monthly budget used by budget-vs-actual")
    )
    account_code = models.CharField(
        max_length=20,
        blank=True,
        help_text=_("Ledger account debited when invoices in this category are posted")
    )
    description = models.TextField(blank=True)

    class Meta:
        verbose_name = _("Expense Category")
        verbose_name_plural = _("Expense Categories")
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.get_expense_type_display()})"


class Expense(models.Model):
    """
    A vendor bill or receipt. Line items carry the detail; an expense with
    no line items counts as a single line in its header category.
    """
    expense_date = models.DateField(db_index=True)
    vendor = models.ForeignKey(
        'cogs.Vendor',
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='expenses'
    )
    category = models.ForeignKey(
        ExpenseCategory,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='expenses'
    )
    description = models.CharField(max_length=500)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True
    )
    reference_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Expense")
        verbose_name_plural = _("Expenses")
        ordering = ['-expense_date', '-id']
        indexes = [
            models.Index(fields=['vendor', 'expense_date']),
            models.Index(fields=['category', 'expense_date']),
        ]

    def __str__(self):
        return f"{self.expense_date} {self.description}: {self.amount}"


class MappableLine(models.Model):
    """
    Raw invoice line plus its classification.

    Shared by expense line items and AP invoice lines so both run through the
    same mapping engine. ``is_locked`` is set only by a manual mapping; the
    auto-mapper never touches a locked line.
    """
    line_number = models.PositiveIntegerField(null=True, blank=True)
    raw_vendor_code = models.CharField(max_length=100, blank=True)
    raw_description = models.CharField(max_length=500)
    quantity = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("1"))
    unit = models.CharField(max_length=20, blank=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("0"))
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    mapped_ingredient = models.ForeignKey(
        'cogs.Ingredient',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='%(app_label)s_%(class)s_lines'
    )
    mapped_category = models.ForeignKey(
        ExpenseCategory,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='%(app_label)s_%(class)s_lines'
    )
    mapping_confidence = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal("0"),
        help_text=_("0 until mapped; 1.0 for manual mappings")
    )
    mapping_source = models.CharField(max_length=10, choices=MappingSource.choices, blank=True)
    mapping_rule = models.ForeignKey(
        'expenses.MappingRule',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='%(app_label)s_%(class)s_lines'
    )
    is_locked = models.BooleanField(default=False)
    mapped_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True
        constraints = [
            models.CheckConstraint(
                condition=models.Q(mapped_ingredient__isnull=True) | models.Q(mapped_category__isnull=True),
                name='%(app_label)s_%(class)s_single_target'
            ),
            models.CheckConstraint(
                condition=models.Q(mapping_confidence__gte=0) & models.Q(mapping_confidence__lte=1),
                name='%(app_label)s_%(class)s_confidence_range'
            ),
        ]

    @property
    def is_mapped(self):
        return self.mapped_ingredient_id is not None or self.mapped_category_id is not None

    def clear_mapping(self):
        self.mapped_ingredient = None
        self.mapped_category = None
        self.mapping_confidence = Decimal("0")
        self.mapping_source = ""
        self.mapping_rule = None
        self.mapped_at = None


class ExpenseLineItem(MappableLine):
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name='line_items'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta(MappableLine.Meta):
        verbose_name = _("Expense Line Item")
        verbose_name_plural = _("Expense Line Items")
        ordering = ['expense', 'line_number', 'id']

    def __str__(self):
        return f"{self.raw_vendor_code or '-'} {self.raw_description}: {self.line_total}"


class MappingRule(models.Model):
    """
    A vendor-scoped pattern that classifies invoice lines.

    Exactly one of ``ingredient`` / ``category`` is set. Rules are evaluated by
    match type precedence (exact_code, exact_desc, contains, regex), then id.
    """
    vendor = models.ForeignKey(
        'cogs.Vendor',
        on_delete=models.CASCADE,
        related_name='mapping_rules'
    )
    match_type = models.CharField(max_length=20, choices=MatchType.choices)
    match_value = models.CharField(max_length=500)
    normalized_label = models.CharField(
        max_length=200,
        blank=True,
        help_text=_("Clean name for the item, e.g. 'Chicken breast'")
    )
    ingredient = models.ForeignKey(
        'cogs.Ingredient',
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='mapping_rules'
    )
    category = models.ForeignKey(
        ExpenseCategory,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='mapping_rules'
    )
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Mapping Rule")
        verbose_name_plural = _("Mapping Rules")
        ordering = ['vendor', 'id']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(ingredient__isnull=False, category__isnull=True)
                    | models.Q(ingredient__isnull=True, category__isnull=False)
                ),
                name='mapping_rule_single_target'
            ),
        ]
        indexes = [
            models.Index(fields=['vendor', 'active']),
        ]

    def __str__(self):
        target = self.ingredient or self.category
        return f"[{self.vendor}] {self.match_type} '{self.match_value}' → {target}"
