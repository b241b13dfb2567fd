from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core_backend.exceptions import ConflictError
from core_backend.utils.archiving import SoftDeleteMixin


class RevenueCategory(models.TextChoices):
    """Revenue buckets used to split period revenue."""
    FOOD = "food", _("Food")
    BEVERAGE = "beverage", _("Beverage")
    ALCOHOL = "alcohol", _("Alcohol")
    CATERING = "catering", _("Catering")
    OTHER = "other", _("Other")


class Vendor(models.Model):
    """
    A supplier. Ingredients, expenses, mapping rules and AP invoices all
    point here; ``tax_id`` is what the 1099 report prints.
    """
    name = models.CharField(max_length=200, unique=True)
    contact_email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    tax_id = models.CharField(
        max_length=40,
        blank=True,
        help_text=_("EIN/SSN used for 1099 reporting")
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Vendor")
        verbose_name_plural = _("Vendors")
        ordering = ['name']

    def __str__(self):
        return self.name


class Ingredient(SoftDeleteMixin):
    """
    A purchased ingredient.

    Formula: cost_per_usage_unit = purchase_price / (unit_conversion_factor * yield_percent)

    Example: 8.50 per lb, used in oz (16 oz/lb), no trim loss → 0.53125 per oz

    Cannot be archived or deleted while any recipe line uses it.
    """
    name = models.CharField(max_length=200)
    vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='ingredients'
    )
    purchase_price = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text=_("Price paid per purchase unit")
    )
    purchase_unit = models.CharField(
        max_length=20,
        help_text=_("Unit the ingredient is bought in, e.g. 'lb', 'case'")
    )
    usage_unit = models.CharField(
        max_length=20,
        help_text=_("Unit recipes measure in, e.g. 'oz', 'each'")
    )
    unit_conversion_factor = models.DecimalField(
        max_digits=14,
        decimal_places=6,
        default=Decimal("1"),
        help_text=_("Usage units per purchase unit, e.g. 16 for lb → oz")
    )
    yield_percent = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal("1.0"),
        help_text=_("Usable fraction after trim/prep loss (0 < v ≤ 1)")
    )
    last_price_update = models.DateField(
        default=timezone.localdate,
        help_text=_("Date the purchase price was last confirmed")
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Ingredient")
        verbose_name_plural = _("Ingredients")
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(purchase_price__gte=0),
                name='ingredient_price_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(unit_conversion_factor__gt=0),
                name='ingredient_conversion_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(yield_percent__gt=0) & models.Q(yield_percent__lte=1),
                name='ingredient_yield_in_range'
            ),
        ]
        indexes = [
            models.Index(fields=['vendor']),
            models.Index(fields=['last_price_update']),
        ]

    def __str__(self):
        return f"{self.name} ({self.purchase_unit} → {self.usage_unit})"

    def can_archive(self):
        used_by = self.recipe_lines.count()
        if used_by:
            raise ConflictError(
                f"Ingredient '{self.name}' is used by {used_by} recipe line(s) "
                f"and cannot be removed"
            )


class MenuItem(SoftDeleteMixin):
    """A sellable plate. Its cost is derived from recipe lines, never stored."""
    name = models.CharField(max_length=200)
    selling_price = models.DecimalField(max_digits=10, decimal_places=2)
    q_factor = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        default=Decimal("0"),
        help_text=_("Flat per-plate cost for untracked condiments and packaging")
    )
    target_cost_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("35.00"),
        help_text=_("Food cost percent above which the item is flagged")
    )
    estimated_prep_time_minutes = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal("0"),
        help_text=_("Hands-on minutes per plate, drives the labor estimate")
    )
    revenue_category = models.CharField(
        max_length=20,
        choices=RevenueCategory.choices,
        default=RevenueCategory.FOOD
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Menu Item")
        verbose_name_plural = _("Menu Items")
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(selling_price__gte=0),
                name='menu_item_price_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(q_factor__gte=0),
                name='menu_item_q_factor_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(estimated_prep_time_minutes__gte=0),
                name='menu_item_prep_time_non_negative'
            ),
        ]

    def __str__(self):
        return self.name


class RecipeLine(models.Model):
    """
    How much of one ingredient goes into one plate, in usage units.

    One row per (menu_item, ingredient); re-adding an ingredient updates the
    quantity instead of adding a second line.
    """
    menu_item = models.ForeignKey(
        MenuItem,
        on_delete=models.CASCADE,
        related_name='recipe_lines'
    )
    ingredient = models.ForeignKey(
        Ingredient,
        on_delete=models.PROTECT,
        related_name='recipe_lines'
    )
    quantity_used = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text=_("Usage units per plate")
    )

    class Meta:
        verbose_name = _("Recipe Line")
        verbose_name_plural = _("Recipe Lines")
        constraints = [
            models.UniqueConstraint(
                fields=['menu_item', 'ingredient'],
                name='unique_ingredient_per_menu_item'
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_used__gt=0),
                name='recipe_line_quantity_positive'
            ),
        ]

    def __str__(self):
        return f"{self.menu_item.name}: {self.quantity_used} {self.ingredient.usage_unit} {self.ingredient.name}"
