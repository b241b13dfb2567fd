"""
Tests for MappingService against stored expenses and rules.
"""
import pytest
from datetime import date
from decimal import Decimal

from core_backend.exceptions import NotFoundError, ValidationError
from expenses.models import Expense, ExpenseLineItem, MappingRule, MappingSource, MatchType
from expenses.services import MappingService


@pytest.fixture
def invoice(vendor):
    """A Sysco receipt with three lines"""
    expense = Expense.objects.create(
        expense_date=date(2024, 6, 3),
        vendor=vendor,
        description='Sysco delivery',
        amount=Decimal('212.50'),
    )
    ExpenseLineItem.objects.create(
        expense=expense, line_number=1, raw_vendor_code='SYS-1001',
        raw_description='MOZZ WHL MLK SHRED 4/5LB', line_total=Decimal('170.00'),
    )
    ExpenseLineItem.objects.create(
        expense=expense, line_number=2, raw_vendor_code='SYS-2040',
        raw_description='NAPKIN DINNER WHT 1PLY', line_total=Decimal('30.00'),
    )
    ExpenseLineItem.objects.create(
        expense=expense, line_number=3, raw_vendor_code='SYS-9999',
        raw_description='FUEL SURCHARGE', line_total=Decimal('12.50'),
    )
    return expense


@pytest.fixture
def rules(vendor, mozzarella, supplies_category):
    return [
        MappingRule.objects.create(
            vendor=vendor, match_type=MatchType.EXACT_CODE, match_value='SYS-1001', ingredient=mozzarella,
        ),
        MappingRule.objects.create(
            vendor=vendor, match_type=MatchType.CONTAINS, match_value='napkin', category=supplies_category,
        ),
    ]


def line_state(expense):
    return [
        (line.mapped_ingredient_id, line.mapped_category_id, line.mapping_confidence, line.mapping_rule_id)
        for line in expense.line_items.order_by('line_number')
    ]


@pytest.mark.django_db
class TestApplyMappings:
    """Tests for batch auto-mapping."""

    def test_maps_matching_lines(self, invoice, rules, mozzarella, supplies_category):
        result = MappingService.apply_mappings(expense_id=invoice.id)

        assert result.total == 3
        assert result.applied == 2
        lines = list(invoice.line_items.order_by('line_number'))
        assert lines[0].mapped_ingredient_id == mozzarella.id
        assert lines[0].mapping_confidence == Decimal('1.00')
        assert lines[0].mapping_source == MappingSource.AUTO
        assert lines[1].mapped_category_id == supplies_category.id
        assert lines[1].mapping_confidence == Decimal('0.60')
        assert not lines[2].is_mapped

    def test_idempotent(self, invoice, rules):
        first = MappingService.apply_mappings(expense_id=invoice.id)
        state = line_state(invoice)

        second = MappingService.apply_mappings(expense_id=invoice.id)

        assert line_state(invoice) == state
        assert second.applied == first.applied
        assert second.total == first.total

    def test_locked_lines_untouched(self, invoice, rules, rent_category):
        napkins = invoice.line_items.get(line_number=2)
        MappingService.set_manual_mapping(napkins.id, category_id=rent_category.id)

        result = MappingService.apply_mappings(expense_id=invoice.id)

        napkins.refresh_from_db()
        assert result.skipped_locked == 1
        assert napkins.mapped_category_id == rent_category.id
        assert napkins.mapping_source == MappingSource.MANUAL
        assert napkins.mapping_confidence == Decimal('1.00')

    def test_stale_auto_mapping_cleared(self, invoice, rules):
        MappingService.apply_mappings(expense_id=invoice.id)
        MappingRule.objects.filter(match_type=MatchType.CONTAINS).update(active=False)

        result = MappingService.apply_mappings(expense_id=invoice.id)

        assert result.cleared == 1
        assert not invoice.line_items.get(line_number=2).is_mapped

    def test_archived_target_is_skipped(self, invoice, rules, supplies_category):
        supplies_category.archive()

        result = MappingService.apply_mappings(expense_id=invoice.id)

        assert result.applied == 1
        assert not invoice.line_items.get(line_number=2).is_mapped

    def test_other_vendors_rules_do_not_apply(self, invoice, other_vendor, rent_category):
        MappingRule.objects.create(
            vendor=other_vendor, match_type=MatchType.CONTAINS, match_value='fuel', category=rent_category,
        )

        assert MappingService.apply_mappings(expense_id=invoice.id).applied == 0

    def test_by_line_ids(self, invoice, rules):
        first_line = invoice.line_items.get(line_number=1)

        result = MappingService.apply_mappings(line_item_ids=[first_line.id])

        assert result.total == 1
        assert result.applied == 1

    def test_requires_exactly_one_selector(self, invoice):
        with pytest.raises(ValidationError):
            MappingService.apply_mappings()
        with pytest.raises(ValidationError):
            MappingService.apply_mappings(expense_id=invoice.id, line_item_ids=[1])

    def test_missing_expense(self, db):
        with pytest.raises(NotFoundError):
            MappingService.apply_mappings(expense_id=99999)

    def test_missing_line_ids(self, invoice):
        with pytest.raises(NotFoundError):
            MappingService.apply_mappings(line_item_ids=[99999])

    def test_result_as_dict(self, invoice, rules):
        data = MappingService.apply_mappings(expense_id=invoice.id).as_dict()

        assert data['applied'] == 2
        assert data['results'][0]['confidence'] == '1.00'


@pytest.mark.django_db
class TestManualMapping:

    def test_unlock_allows_remap(self, invoice, rules, rent_category, mozzarella):
        first_line = invoice.line_items.get(line_number=1)
        MappingService.set_manual_mapping(first_line.id, category_id=rent_category.id)
        MappingService.unlock_line(first_line.id)

        MappingService.apply_mappings(expense_id=invoice.id)

        first_line.refresh_from_db()
        assert first_line.mapped_ingredient_id == mozzarella.id
        assert first_line.mapped_category_id is None

    def test_both_targets_rejected(self, invoice, mozzarella, rent_category):
        line = invoice.line_items.first()
        with pytest.raises(ValidationError):
            MappingService.set_manual_mapping(line.id, ingredient_id=mozzarella.id, category_id=rent_category.id)

    def test_unmatched_line_items(self, invoice, rules):
        MappingService.apply_mappings(expense_id=invoice.id)

        unmatched = list(MappingService.unmatched_line_items(invoice.id))

        assert [line.raw_vendor_code for line in unmatched] == ['SYS-9999']


@pytest.mark.django_db
class TestCreateRule:

    def test_create_rule(self, vendor, mozzarella):
        rule = MappingService.create_rule(vendor.id, MatchType.REGEX, r'mozz.*shred', ingredient_id=mozzarella.id)

        assert rule.active is True
        assert rule.ingredient_id == mozzarella.id

    def test_invalid_regex_rejected(self, vendor, mozzarella):
        with pytest.raises(ValidationError):
            MappingService.create_rule(vendor.id, MatchType.REGEX, '(unclosed', ingredient_id=mozzarella.id)

    def test_unknown_match_type_rejected(self, vendor, mozzarella):
        with pytest.raises(ValidationError):
            MappingService.create_rule(vendor.id, 'fuzzy', 'x', ingredient_id=mozzarella.id)

    def test_unknown_vendor(self, mozzarella):
        with pytest.raises(NotFoundError):
            MappingService.create_rule(99999, MatchType.CONTAINS, 'x', ingredient_id=mozzarella.id)
