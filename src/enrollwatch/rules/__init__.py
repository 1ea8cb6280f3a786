# Rules package

from enrollwatch.rules.models import (
    ConditionOperator,
    ConditionSource,
    ConfidenceFactor,
    RuleCategory,
    RuleCondition,
    RuleDefinition,
    RuleResult,
    RuleSeverity,
    RuleTrigger,
)

__all__ = [
    "ConditionOperator",
    "ConditionSource",
    "ConfidenceFactor",
    "RuleCategory",
    "RuleCondition",
    "RuleDefinition",
    "RuleResult",
    "RuleSeverity",
    "RuleTrigger",
]
