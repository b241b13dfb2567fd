from django.db import models
from django.utils.translation import gettext_lazy as _


class SalesRecord(models.Model):
    """
    Plates of one menu item sold on one day.

    Sparse: a zero quantity is never stored, the row is deleted instead, so
    period sums only ever see real sales.
    """
    date = models.DateField(db_index=True)
    menu_item = models.ForeignKey(
        'cogs.MenuItem',
        on_delete=models.PROTECT,
        related_name='sales_records'
    )
    quantity_sold = models.PositiveIntegerField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Sales Record")
        verbose_name_plural = _("Sales Records")
        ordering = ['-date', 'menu_item']
        constraints = [
            models.UniqueConstraint(
                fields=['date', 'menu_item'],
                name='unique_sales_per_day_menu_item'
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_sold__gt=0),
                name='sales_quantity_positive'
            ),
        ]

    def __str__(self):
        return f"{self.date} {self.menu_item.name}: {self.quantity_sold}"
