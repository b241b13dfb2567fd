"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like vendors, ingredients, menu items, expense categories and employees.
"""
import pytest
from datetime import date
from decimal import Decimal

from cogs.models import Ingredient, MenuItem, RecipeLine, RevenueCategory, Vendor
from core_backend.config import EngineConfig
from expenses.models import ExpenseCategory, ExpenseType, TaxCategory
from payroll.models import Employee
from reports.services.period_service import ExpenseEntry, PayrollEntry, PeriodData, SaleLine


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def engine_config():
    """Default engine configuration (labor $15/h, 50ms regex budget)."""
    return EngineConfig()


# ============================================================================
# VENDOR FIXTURES
# ============================================================================

@pytest.fixture
def vendor(db):
    """Create a food distributor with a tax id on file"""
    return Vendor.objects.create(
        name='Sysco',
        contact_email='orders@sysco.example',
        tax_id='12-3456789',
    )


@pytest.fixture
def other_vendor(db):
    """Create a vendor without a tax id"""
    return Vendor.objects.create(name='Corner Print Shop')


# ============================================================================
# INGREDIENT & MENU FIXTURES
# ============================================================================

@pytest.fixture
def mozzarella(vendor):
    """$8.50 per lb, used in oz: 8.50 / 16 = 0.53125 per oz"""
    return Ingredient.objects.create(
        name='Mozzarella',
        vendor=vendor,
        purchase_price=Decimal('8.50'),
        purchase_unit='lb',
        usage_unit='oz',
        unit_conversion_factor=Decimal('16'),
        yield_percent=Decimal('1.0'),
    )


@pytest.fixture
def basil(vendor):
    """$12.00 per lb with 80% usable yield"""
    return Ingredient.objects.create(
        name='Fresh Basil',
        vendor=vendor,
        purchase_price=Decimal('12.00'),
        purchase_unit='lb',
        usage_unit='oz',
        unit_conversion_factor=Decimal('16'),
        yield_percent=Decimal('0.80'),
    )


@pytest.fixture
def pizza(db):
    """Margherita at $16.00 with a 5 cent q-factor and 6 minutes of prep"""
    return MenuItem.objects.create(
        name='Margherita Pizza',
        selling_price=Decimal('16.00'),
        q_factor=Decimal('0.05'),
        target_cost_percent=Decimal('35.00'),
        estimated_prep_time_minutes=Decimal('6'),
        revenue_category=RevenueCategory.FOOD,
    )


@pytest.fixture
def pizza_recipe(pizza, mozzarella):
    """4.5 oz of mozzarella: 4.5 * 0.53125 = 2.390625"""
    return RecipeLine.objects.create(menu_item=pizza, ingredient=mozzarella, quantity_used=Decimal('4.5'))


@pytest.fixture
def salad(db):
    """Menu item with no recipe lines (cost not configured)"""
    return MenuItem.objects.create(
        name='House Salad',
        selling_price=Decimal('9.00'),
        revenue_category=RevenueCategory.FOOD,
    )


@pytest.fixture
def lemonade(db):
    return MenuItem.objects.create(
        name='Lemonade',
        selling_price=Decimal('4.00'),
        q_factor=Decimal('0.40'),
        revenue_category=RevenueCategory.BEVERAGE,
    )


# ============================================================================
# EXPENSE CATEGORY FIXTURES
# ============================================================================

@pytest.fixture
def rent_category(db):
    return ExpenseCategory.objects.create(
        name='Rent',
        expense_type=ExpenseType.OPERATING,
        tax_category=TaxCategory.RENT,
        budget_monthly=Decimal('3000.00'),
        account_code='6100',
    )


@pytest.fixture
def supplies_category(db):
    return ExpenseCategory.objects.create(
        name='Paper Goods',
        expense_type=ExpenseType.OPERATING,
        tax_category=TaxCategory.SUPPLIES,
        budget_monthly=Decimal('200.00'),
        account_code='6300',
    )


@pytest.fixture
def marketing_category(db):
    return ExpenseCategory.objects.create(
        name='Flyers',
        expense_type=ExpenseType.MARKETING,
        tax_category=TaxCategory.ADVERTISING,
        account_code='6500',
    )


@pytest.fixture
def food_purchases_category(db):
    """A cogs-type category; spending here never counts as operating expense"""
    return ExpenseCategory.objects.create(
        name='Food Purchases',
        expense_type=ExpenseType.COGS,
        tax_category=TaxCategory.SUPPLIES,
    )


# ============================================================================
# PAYROLL FIXTURES
# ============================================================================

@pytest.fixture
def cook(db):
    return Employee.objects.create(
        first_name='Ana',
        last_name='Lopez',
        position='Line Cook',
        pay_rate=Decimal('18.00'),
        hire_date=date(2023, 3, 1),
    )


@pytest.fixture
def server(db):
    return Employee.objects.create(
        first_name='Sam',
        last_name='Park',
        position='Server',
        pay_rate=Decimal('10.00'),
        hire_date=date(2024, 1, 15),
    )


@pytest.fixture
def inactive_employee(db):
    return Employee.objects.create(
        first_name='Lee',
        last_name='Former',
        position='Dishwasher',
        pay_rate=Decimal('14.00'),
        is_active=False,
    )


# ============================================================================
# REPORT FIXTURES (plain snapshots, no database)
# ============================================================================

@pytest.fixture
def june_data():
    """
    June 2024 snapshot data:

    - revenue 240.00 (food 160.00, beverage 80.00), COGS 32.40
    - rent 1500.00 (operating), flyers 200.00 (marketing)
    - 170.00 ingredient purchase and 50.00 cogs-category spend (excluded)
    - 12.50 unmapped
    - one overlapping payroll record costing 1081.77, one from May
    """
    sysco = {'vendor_id': 1, 'vendor_name': 'Sysco'}
    return PeriodData(
        sales=[
            SaleLine(date(2024, 6, 5), 1, 'Margherita Pizza', 'food', 10, Decimal('16.00'), Decimal('2.44')),
            SaleLine(date(2024, 6, 5), 2, 'Lemonade', 'beverage', 20, Decimal('4.00'), Decimal('0.40')),
            SaleLine(date(2024, 5, 31), 1, 'Margherita Pizza', 'food', 99, Decimal('16.00'), Decimal('2.44')),
        ],
        expenses=[
            ExpenseEntry(
                date=date(2024, 6, 1), expense_id=1, amount=Decimal('1500.00'),
                vendor_id=2, vendor_name='Landlord LLC',
                category_id=10, category_name='Rent', expense_type='operating', tax_category='rent',
            ),
            ExpenseEntry(
                date=date(2024, 6, 12), expense_id=2, amount=Decimal('200.00'),
                vendor_id=3, vendor_name='Corner Print Shop',
                category_id=11, category_name='Flyers', expense_type='marketing', tax_category='advertising',
            ),
            ExpenseEntry(
                date=date(2024, 6, 3), expense_id=3, amount=Decimal('170.00'),
                is_ingredient_purchase=True, **sysco
            ),
            ExpenseEntry(
                date=date(2024, 6, 3), expense_id=3, amount=Decimal('50.00'),
                category_id=12, category_name='Food Purchases', expense_type='cogs', tax_category='supplies',
                **sysco
            ),
            ExpenseEntry(date=date(2024, 6, 3), expense_id=3, amount=Decimal('12.50'), **sysco),
        ],
        payroll=[
            PayrollEntry(
                employee_id=1, period_start=date(2024, 6, 1), period_end=date(2024, 6, 14),
                gross_pay=Decimal('975.00'), net_pay=Decimal('734.66'),
                employer_taxes=Decimal('106.77'), total_employer_cost=Decimal('1081.77'),
                payment_date=date(2024, 6, 18),
            ),
            PayrollEntry(
                employee_id=1, period_start=date(2024, 5, 18), period_end=date(2024, 5, 31),
                gross_pay=Decimal('400.00'), net_pay=Decimal('300.00'),
                employer_taxes=Decimal('43.80'), total_employer_cost=Decimal('443.80'),
                payment_date=date(2024, 6, 4),
            ),
        ],
    )
