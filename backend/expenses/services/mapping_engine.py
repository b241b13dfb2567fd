"""
Vendor-item mapping engine.

Classifies a raw invoice line into an ingredient or expense category using the
vendor's active mapping rules. Pure: it receives snapshots and returns a match,
the caller persists it.

Rule kinds are tried in a fixed order, first match wins:

    exact_code  trimmed, case-insensitive equality with raw_vendor_code   1.0
    exact_desc  trimmed, case-insensitive equality with raw_description   0.9
    contains    case-insensitive substring of raw_description             0.6
    regex       case-insensitive search in raw_description (time-boxed)   0.7

Within one kind, lower rule ids win. The confidence values are a policy
default ordered by specificity, not a learned score.

Usage:
    match = evaluate_rules(line, rules, regex_timeout_ms=50)
    if match:
        line.mapped_ingredient_id = match.ingredient_id
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional

import regex

from expenses.models import MatchType

logger = logging.getLogger(__name__)


PRECEDENCE = (
    MatchType.EXACT_CODE,
    MatchType.EXACT_DESC,
    MatchType.CONTAINS,
    MatchType.REGEX,
)

CONFIDENCE: Dict[str, Decimal] = {
    MatchType.EXACT_CODE: Decimal("1.00"),
    MatchType.EXACT_DESC: Decimal("0.90"),
    MatchType.CONTAINS: Decimal("0.60"),
    MatchType.REGEX: Decimal("0.70"),
}

MANUAL_CONFIDENCE = Decimal("1.00")


@dataclass(frozen=True)
class LineSnapshot:
    id: Optional[int]
    raw_vendor_code: str
    raw_description: str
    is_locked: bool = False


@dataclass(frozen=True)
class RuleSnapshot:
    """
    A mapping rule as the engine sees it.

    ``target_available`` is False when the rule's ingredient or category has
    been archived or removed.
    """
    id: int
    match_type: str
    match_value: str
    ingredient_id: Optional[int] = None
    category_id: Optional[int] = None
    active: bool = True
    target_available: bool = True


@dataclass(frozen=True)
class MappingMatch:
    rule_id: int
    match_type: str
    ingredient_id: Optional[int]
    category_id: Optional[int]
    confidence: Decimal


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


@lru_cache(maxsize=512)
def compile_pattern(pattern: str):
    """Compile (and cache) a case-insensitive pattern. Raises regex.error if invalid."""
    return regex.compile(pattern, regex.IGNORECASE)


def _match_exact_code(rule: RuleSnapshot, line: LineSnapshot, timeout: float) -> bool:
    code = _normalize(line.raw_vendor_code)
    return bool(code) and code == _normalize(rule.match_value)


def _match_exact_desc(rule: RuleSnapshot, line: LineSnapshot, timeout: float) -> bool:
    description = _normalize(line.raw_description)
    return bool(description) and description == _normalize(rule.match_value)


def _match_contains(rule: RuleSnapshot, line: LineSnapshot, timeout: float) -> bool:
    needle = _normalize(rule.match_value)
    return bool(needle) and needle in (line.raw_description or "").casefold()


def _match_regex(rule: RuleSnapshot, line: LineSnapshot, timeout: float) -> bool:
    try:
        pattern = compile_pattern(rule.match_value)
    except regex.error as e:
        logger.warning(f"Mapping rule {rule.id} has an invalid pattern {rule.match_value!r}: {e}")
        return False

    try:
        return pattern.search(line.raw_description or "", timeout=timeout) is not None
    except TimeoutError:
        logger.warning(
            f"Mapping rule {rule.id} pattern {rule.match_value!r} timed out after "
            f"{timeout * 1000:.0f}ms on line {line.id}; treating as no match"
        )
        return False


PREDICATES: Dict[str, Callable[[RuleSnapshot, LineSnapshot, float], bool]] = {
    MatchType.EXACT_CODE: _match_exact_code,
    MatchType.EXACT_DESC: _match_exact_desc,
    MatchType.CONTAINS: _match_contains,
    MatchType.REGEX: _match_regex,
}


def order_rules(rules: Iterable[RuleSnapshot]) -> List[RuleSnapshot]:
    """Sort rules into evaluation order: match type precedence, then id."""
    rank = {match_type: index for index, match_type in enumerate(PRECEDENCE)}
    known = []
    for rule in rules:
        if rule.match_type not in rank:
            logger.warning(f"Mapping rule {rule.id} has unknown match type {rule.match_type!r}; ignored")
            continue
        known.append(rule)
    return sorted(known, key=lambda r: (rank[r.match_type], r.id))


def rule_matches(rule: RuleSnapshot, line: LineSnapshot, regex_timeout_ms: int) -> bool:
    return PREDICATES[rule.match_type](rule, line, regex_timeout_ms / 1000)


def evaluate_rules(
    line: LineSnapshot,
    rules: Iterable[RuleSnapshot],
    regex_timeout_ms: int,
) -> Optional[MappingMatch]:
    """
    Find the winning rule for a line.

    Inactive rules are ignored. A matching rule whose target is gone is
    skipped (logged) and evaluation moves on to the next rule.

    Returns:
        MappingMatch, or None if nothing usable matched.
    """
    for rule in order_rules(rules):
        if not rule.active:
            continue
        if not rule_matches(rule, line, regex_timeout_ms):
            continue
        if not rule.target_available:
            logger.warning(
                f"Mapping rule {rule.id} matched line {line.id} but its target "
                f"(ingredient={rule.ingredient_id}, category={rule.category_id}) "
                f"no longer exists; skipping"
            )
            continue
        return MappingMatch(
            rule_id=rule.id,
            match_type=rule.match_type,
            ingredient_id=rule.ingredient_id,
            category_id=rule.category_id,
            confidence=CONFIDENCE[rule.match_type],
        )
    return None


@dataclass(frozen=True)
class RulePreview:
    matched: bool
    confidence: Optional[Decimal]
    error: Optional[str] = None


def preview_rule(
    match_type: str,
    match_value: str,
    raw_vendor_code: str = "",
    raw_description: str = "",
    regex_timeout_ms: int = 50,
) -> RulePreview:
    """
    Try a candidate rule against sample text before saving it.

    Unlike batch evaluation, an invalid regex is reported back as ``error``.
    """
    if match_type not in PREDICATES:
        return RulePreview(matched=False, confidence=None, error=f"Unknown match type: {match_type}")
    if match_type == MatchType.REGEX:
        try:
            compile_pattern(match_value)
        except regex.error as e:
            return RulePreview(matched=False, confidence=None, error=f"Invalid pattern: {e}")

    rule = RuleSnapshot(id=0, match_type=match_type, match_value=match_value)
    line = LineSnapshot(id=None, raw_vendor_code=raw_vendor_code, raw_description=raw_description)
    matched = rule_matches(rule, line, regex_timeout_ms)
    return RulePreview(matched=matched, confidence=CONFIDENCE[match_type] if matched else None)
