"""
Expense services.

- mapping_engine: pure rule evaluation (precedence, confidence, bounded regex)
- mapping_service: applying rules to stored lines, manual mapping, rule creation
"""
from expenses.services.mapping_engine import (
    CONFIDENCE,
    PRECEDENCE,
    LineSnapshot,
    MappingMatch,
    RuleSnapshot,
    evaluate_rules,
    preview_rule,
)
from expenses.services.mapping_service import MappingBatchResult, MappingService, mapping_status

__all__ = [
    'CONFIDENCE',
    'PRECEDENCE',
    'LineSnapshot',
    'MappingBatchResult',
    'MappingMatch',
    'MappingService',
    'RuleSnapshot',
    'evaluate_rules',
    'mapping_status',
    'preview_rule',
]
