"""
Daily sales entry.

Upserts are keyed on (date, menu_item). A quantity of 0 deletes the row, so
"no sales" and "row absent" are the same state.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import F

from cogs.models import MenuItem
from core_backend.exceptions import NotFoundError, ValidationError
from sales.models import SalesRecord

logger = logging.getLogger(__name__)


def _validate_quantity(quantity) -> int:
    try:
        whole = int(quantity)
    except (TypeError, ValueError):
        whole = None
    if isinstance(quantity, bool) or whole is None or whole != quantity:
        raise ValidationError(f"quantity_sold must be a whole number, got {quantity!r}", field="quantity_sold")
    quantity = whole
    if quantity < 0:
        raise ValidationError(f"quantity_sold cannot be negative, got {quantity}", field="quantity_sold")
    return quantity


class SalesService:
    """Service layer for recording daily sales."""

    @staticmethod
    @transaction.atomic
    def upsert_sale(sale_date: date, menu_item_id: int, quantity_sold) -> Optional[SalesRecord]:
        """
        Set the quantity sold for one menu item on one day.

        Returns:
            The stored SalesRecord, or None when quantity 0 removed the row.

        Raises:
            ValidationError: if quantity is negative or fractional
            NotFoundError: if the menu item does not exist
        """
        quantity = _validate_quantity(quantity_sold)

        if quantity == 0:
            deleted, _ = SalesRecord.objects.filter(date=sale_date, menu_item_id=menu_item_id).delete()
            if deleted:
                logger.info(f"Cleared sales for menu item {menu_item_id} on {sale_date}")
            return None

        if not MenuItem.all_objects.filter(pk=menu_item_id).exists():
            raise NotFoundError("MenuItem", menu_item_id)

        record, _ = SalesRecord.objects.update_or_create(
            date=sale_date,
            menu_item_id=menu_item_id,
            defaults={'quantity_sold': quantity},
        )
        return record

    @staticmethod
    @transaction.atomic
    def save_daily_sales(sale_date: date, quantities: Dict[int, int]) -> List[SalesRecord]:
        """
        Save a whole day's sales sheet ({menu_item_id: quantity}) in one transaction.

        Any invalid entry rolls back the entire sheet.
        """
        saved = []
        for menu_item_id, quantity in quantities.items():
            record = SalesService.upsert_sale(sale_date, menu_item_id, quantity)
            if record is not None:
                saved.append(record)
        logger.info(f"Saved daily sales for {sale_date}: {len(saved)} item(s) with sales")
        return saved

    @staticmethod
    @transaction.atomic
    def add_sale(sale_date: date, menu_item_id: int, quantity: int = 1) -> SalesRecord:
        """Increment the day's count for a menu item, creating the row if needed."""
        quantity = _validate_quantity(quantity)
        if quantity == 0:
            raise ValidationError("Increment must be at least 1", field="quantity_sold")
        if not MenuItem.all_objects.filter(pk=menu_item_id).exists():
            raise NotFoundError("MenuItem", menu_item_id)

        record, created = SalesRecord.objects.select_for_update().get_or_create(
            date=sale_date,
            menu_item_id=menu_item_id,
            defaults={'quantity_sold': quantity},
        )
        if not created:
            SalesRecord.objects.filter(pk=record.pk).update(quantity_sold=F('quantity_sold') + quantity)
            record.refresh_from_db()
        return record

    @staticmethod
    def sales_for_range(start: date, end: date) -> Iterable[SalesRecord]:
        return SalesRecord.objects.filter(date__gte=start, date__lte=end).select_related('menu_item')
