"""
Applies the mapping engine to stored invoice lines.

A batch (one expense's lines, or an explicit set of line ids) is mapped inside
a single transaction. Every unlocked line is re-evaluated on each run, so
re-running on unchanged data gives the same result, and an auto mapping whose
rule no longer matches is cleared. Locked lines are never touched.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

import regex
from django.db import transaction
from django.utils import timezone

from cogs.models import Ingredient, Vendor
from core_backend.config import EngineConfig, get_engine_config
from core_backend.exceptions import NotFoundError, ValidationError
from expenses.models import (
    Expense,
    ExpenseCategory,
    ExpenseLineItem,
    MappableLine,
    MappingRule,
    MappingSource,
    MatchType,
)
from expenses.services.mapping_engine import (
    MANUAL_CONFIDENCE,
    LineSnapshot,
    RuleSnapshot,
    compile_pattern,
    evaluate_rules,
)

logger = logging.getLogger(__name__)


@dataclass
class LineMappingOutcome:
    line_item_id: int
    matched: bool
    locked: bool = False
    mapping_id: Optional[int] = None
    ingredient_id: Optional[int] = None
    category_id: Optional[int] = None
    confidence: Optional[str] = None


@dataclass
class MappingBatchResult:
    """``applied`` of ``total`` lines were auto-categorized in this run."""
    applied: int = 0
    total: int = 0
    skipped_locked: int = 0
    cleared: int = 0
    results: List[LineMappingOutcome] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "applied": self.applied,
            "total": self.total,
            "skipped_locked": self.skipped_locked,
            "cleared": self.cleared,
            "results": [outcome.__dict__ for outcome in self.results],
        }


def rule_snapshot(rule: MappingRule) -> RuleSnapshot:
    if rule.ingredient_id is not None:
        target = rule.ingredient
    else:
        target = rule.category
    return RuleSnapshot(
        id=rule.id,
        match_type=rule.match_type,
        match_value=rule.match_value,
        ingredient_id=rule.ingredient_id,
        category_id=rule.category_id,
        active=rule.active,
        target_available=target is not None and target.is_active,
    )


def line_snapshot(line: MappableLine) -> LineSnapshot:
    return LineSnapshot(
        id=line.id,
        raw_vendor_code=line.raw_vendor_code,
        raw_description=line.raw_description,
        is_locked=line.is_locked,
    )


def mapping_status(lines: Iterable[MappableLine]) -> str:
    """'complete' when every line is mapped, 'partial' when some are, else 'pending'."""
    lines = list(lines)
    mapped = sum(1 for line in lines if line.is_mapped)
    if lines and mapped == len(lines):
        return "complete"
    if mapped:
        return "partial"
    return "pending"


class MappingService:
    """Service layer for mapping rules and invoice line classification."""

    @staticmethod
    def rules_by_vendor(vendor_ids: Iterable[int]) -> Dict[int, List[RuleSnapshot]]:
        rules: Dict[int, List[RuleSnapshot]] = {}
        queryset = MappingRule.objects.filter(
            vendor_id__in=set(vendor_ids),
            active=True,
        ).select_related('ingredient', 'category')
        for rule in queryset:
            rules.setdefault(rule.vendor_id, []).append(rule_snapshot(rule))
        return rules

    @staticmethod
    def apply_to_lines(
        lines: List[MappableLine],
        vendor_for: Callable[[MappableLine], Optional[int]],
        config: Optional[EngineConfig] = None,
    ) -> MappingBatchResult:
        """
        Map already-locked-for-update lines. Callers own the transaction.

        Args:
            lines: Line rows (expense or AP invoice lines).
            vendor_for: Returns the vendor id whose rules apply to a line.
        """
        config = get_engine_config(config)
        rules = MappingService.rules_by_vendor(
            vendor_id for vendor_id in (vendor_for(line) for line in lines) if vendor_id is not None
        )
        result = MappingBatchResult(total=len(lines))
        now = timezone.now()

        for line in lines:
            if line.is_locked:
                result.skipped_locked += 1
                result.results.append(LineMappingOutcome(
                    line_item_id=line.id,
                    matched=line.is_mapped,
                    locked=True,
                    ingredient_id=line.mapped_ingredient_id,
                    category_id=line.mapped_category_id,
                    confidence=str(line.mapping_confidence),
                ))
                continue

            vendor_id = vendor_for(line)
            match = evaluate_rules(
                line_snapshot(line),
                rules.get(vendor_id, []),
                config.regex_timeout_ms,
            )

            if match is None:
                if line.is_mapped and line.mapping_source == MappingSource.AUTO:
                    line.clear_mapping()
                    line.save()
                    result.cleared += 1
                result.results.append(LineMappingOutcome(line_item_id=line.id, matched=False))
                continue

            unchanged = (
                line.mapping_rule_id == match.rule_id
                and line.mapped_ingredient_id == match.ingredient_id
                and line.mapped_category_id == match.category_id
                and line.mapping_confidence == match.confidence
                and line.mapping_source == MappingSource.AUTO
            )
            if not unchanged:
                line.mapped_ingredient_id = match.ingredient_id
                line.mapped_category_id = match.category_id
                line.mapping_confidence = match.confidence
                line.mapping_source = MappingSource.AUTO
                line.mapping_rule_id = match.rule_id
                line.mapped_at = now
                line.save()

            result.applied += 1
            result.results.append(LineMappingOutcome(
                line_item_id=line.id,
                matched=True,
                mapping_id=match.rule_id,
                ingredient_id=match.ingredient_id,
                category_id=match.category_id,
                confidence=str(match.confidence),
            ))

        return result

    @staticmethod
    @transaction.atomic
    def apply_mappings(
        expense_id: Optional[int] = None,
        line_item_ids: Optional[Iterable[int]] = None,
        config: Optional[EngineConfig] = None,
    ) -> MappingBatchResult:
        """
        Auto-map one expense's line items, or an explicit set of line items.

        Exactly one of ``expense_id`` / ``line_item_ids`` must be given.

        Raises:
            ValidationError: if neither or both selectors are given
            NotFoundError: if the expense or any requested line does not exist
        """
        if (expense_id is None) == (line_item_ids is None):
            raise ValidationError("Provide exactly one of expense_id or line_item_ids")

        queryset = ExpenseLineItem.objects.select_for_update().select_related('expense')
        if expense_id is not None:
            if not Expense.objects.filter(pk=expense_id).exists():
                raise NotFoundError("Expense", expense_id)
            lines = list(queryset.filter(expense_id=expense_id).order_by('line_number', 'id'))
        else:
            wanted = set(line_item_ids)
            lines = list(queryset.filter(pk__in=wanted).order_by('id'))
            missing = wanted - {line.id for line in lines}
            if missing:
                raise NotFoundError("ExpenseLineItem", sorted(missing))

        result = MappingService.apply_to_lines(lines, lambda line: line.expense.vendor_id, config)
        logger.info(
            f"Applied mappings: {result.applied} of {result.total} line(s) auto-categorized, "
            f"{result.skipped_locked} locked, {result.cleared} cleared"
        )
        return result

    @staticmethod
    def _resolve_target(ingredient_id: Optional[int], category_id: Optional[int]):
        if (ingredient_id is None) == (category_id is None):
            raise ValidationError("Map to exactly one of an ingredient or a category")
        if ingredient_id is not None:
            if not Ingredient.objects.filter(pk=ingredient_id).exists():
                raise NotFoundError("Ingredient", ingredient_id)
        elif not ExpenseCategory.objects.filter(pk=category_id).exists():
            raise NotFoundError("ExpenseCategory", category_id)

    @staticmethod
    @transaction.atomic
    def set_manual_mapping(
        line_item_id: int,
        ingredient_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> ExpenseLineItem:
        """Map a line by hand and lock it against the auto-mapper."""
        MappingService._resolve_target(ingredient_id, category_id)
        try:
            line = ExpenseLineItem.objects.select_for_update().get(pk=line_item_id)
        except ExpenseLineItem.DoesNotExist:
            raise NotFoundError("ExpenseLineItem", line_item_id)

        line.mapped_ingredient_id = ingredient_id
        line.mapped_category_id = category_id
        line.mapping_confidence = MANUAL_CONFIDENCE
        line.mapping_source = MappingSource.MANUAL
        line.mapping_rule = None
        line.is_locked = True
        line.mapped_at = timezone.now()
        line.save()

        logger.info(
            f"Manually mapped line {line.id} to "
            f"{'ingredient ' + str(ingredient_id) if ingredient_id else 'category ' + str(category_id)}"
        )
        return line

    @staticmethod
    @transaction.atomic
    def unlock_line(line_item_id: int) -> ExpenseLineItem:
        """Release a manual lock; the next apply_mappings run may remap the line."""
        try:
            line = ExpenseLineItem.objects.select_for_update().get(pk=line_item_id)
        except ExpenseLineItem.DoesNotExist:
            raise NotFoundError("ExpenseLineItem", line_item_id)
        line.is_locked = False
        line.save(update_fields=['is_locked'])
        return line

    @staticmethod
    def create_rule(
        vendor_id: int,
        match_type: str,
        match_value: str,
        ingredient_id: Optional[int] = None,
        category_id: Optional[int] = None,
        normalized_label: str = "",
    ) -> MappingRule:
        """
        Teach a vendor code/description.

        Raises:
            ValidationError: on an unknown match type, empty value, bad regex or ambiguous target
            NotFoundError: if the vendor or target does not exist
        """
        if match_type not in MatchType.values:
            raise ValidationError(f"Unknown match type: {match_type}", field="match_type")
        if not (match_value or "").strip():
            raise ValidationError("match_value cannot be empty", field="match_value")
        if match_type == MatchType.REGEX:
            try:
                compile_pattern(match_value)
            except regex.error as e:
                raise ValidationError(f"Invalid pattern: {e}", field="match_value")
        if not Vendor.objects.filter(pk=vendor_id).exists():
            raise NotFoundError("Vendor", vendor_id)
        MappingService._resolve_target(ingredient_id, category_id)

        rule = MappingRule.objects.create(
            vendor_id=vendor_id,
            match_type=match_type,
            match_value=match_value.strip(),
            normalized_label=normalized_label,
            ingredient_id=ingredient_id,
            category_id=category_id,
        )
        logger.info(f"Created mapping rule {rule.id} for vendor {vendor_id}: {match_type} {match_value!r}")
        return rule

    @staticmethod
    def unmatched_line_items(expense_id: Optional[int] = None):
        """Lines with neither an ingredient nor a category, for manual review."""
        queryset = ExpenseLineItem.objects.filter(
            mapped_ingredient__isnull=True,
            mapped_category__isnull=True,
        ).select_related('expense', 'expense__vendor')
        if expense_id is not None:
            queryset = queryset.filter(expense_id=expense_id)
        return queryset.order_by('-expense__expense_date', 'id')
