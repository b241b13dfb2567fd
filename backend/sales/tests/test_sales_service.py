"""
Tests for SalesService.
"""
import pytest
from datetime import date

from core_backend.exceptions import NotFoundError, ValidationError
from sales.models import SalesRecord
from sales.services import SalesService

DAY = date(2024, 6, 3)


@pytest.mark.django_db
class TestUpsertSale:
    """Tests for the sparse (date, menu item) upsert."""

    def test_creates_then_updates_single_row(self, pizza):
        SalesService.upsert_sale(DAY, pizza.id, 12)
        record = SalesService.upsert_sale(DAY, pizza.id, 15)

        assert record.quantity_sold == 15
        assert SalesRecord.objects.filter(date=DAY, menu_item=pizza).count() == 1

    def test_zero_quantity_removes_row(self, pizza):
        SalesService.upsert_sale(DAY, pizza.id, 12)

        result = SalesService.upsert_sale(DAY, pizza.id, 0)

        assert result is None
        assert not SalesRecord.objects.filter(date=DAY, menu_item=pizza).exists()

    def test_zero_quantity_without_row_is_noop(self, pizza):
        assert SalesService.upsert_sale(DAY, pizza.id, 0) is None
        assert SalesRecord.objects.count() == 0

    @pytest.mark.parametrize('quantity', [-1, 2.5, '3.5', 'many', None, True])
    def test_invalid_quantity_raises(self, pizza, quantity):
        with pytest.raises(ValidationError):
            SalesService.upsert_sale(DAY, pizza.id, quantity)

    def test_unknown_menu_item(self, db):
        with pytest.raises(NotFoundError):
            SalesService.upsert_sale(DAY, 99999, 3)

    def test_archived_menu_item_still_accepts_sales(self, salad):
        """History can be corrected after an item comes off the menu."""
        salad.archive()

        record = SalesService.upsert_sale(DAY, salad.id, 2)

        assert record.quantity_sold == 2


@pytest.mark.django_db
class TestDailySales:

    def test_save_daily_sheet(self, pizza, salad, lemonade):
        SalesService.upsert_sale(DAY, lemonade.id, 4)

        saved = SalesService.save_daily_sales(DAY, {pizza.id: 10, salad.id: 3, lemonade.id: 0})

        assert len(saved) == 2
        assert set(SalesRecord.objects.filter(date=DAY).values_list('menu_item_id', flat=True)) == {
            pizza.id, salad.id,
        }

    def test_invalid_entry_rolls_back_sheet(self, pizza, salad):
        with pytest.raises(ValidationError):
            SalesService.save_daily_sales(DAY, {pizza.id: 10, salad.id: -2})

        assert SalesRecord.objects.count() == 0

    def test_add_sale_increments(self, pizza):
        SalesService.add_sale(DAY, pizza.id)
        record = SalesService.add_sale(DAY, pizza.id, 2)

        assert record.quantity_sold == 3

    def test_add_sale_rejects_zero(self, pizza):
        with pytest.raises(ValidationError):
            SalesService.add_sale(DAY, pizza.id, 0)

    def test_sales_for_range(self, pizza):
        SalesService.upsert_sale(date(2024, 6, 1), pizza.id, 1)
        SalesService.upsert_sale(date(2024, 6, 5), pizza.id, 1)
        SalesService.upsert_sale(date(2024, 6, 9), pizza.id, 1)

        assert SalesService.sales_for_range(date(2024, 6, 1), date(2024, 6, 5)).count() == 2
