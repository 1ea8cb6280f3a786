"""
Rule validation utilities.

Functions for validating custom rule YAML before it is added to a tenant.
"""

import logging
from typing import Any

import yaml

from enrollwatch.rules.models import ConditionOperator, ConditionSource, FactorKind, RuleDefinition
from enrollwatch.rules.registry import ConditionRegistry

logger = logging.getLogger(__name__)

# Operators that compare against the condition's `value`
VALUE_OPERATORS = {
    ConditionOperator.EQUALS,
    ConditionOperator.CONTAINS,
    ConditionOperator.REGEX,
    ConditionOperator.GT,
    ConditionOperator.LT,
    ConditionOperator.GTE,
    ConditionOperator.LTE,
    ConditionOperator.COUNT_GTE,
}

RULES_EXAMPLE = (
    "```yaml\n"
    "rules:\n"
    "  - rule_id: CUSTOM-001\n"
    "    title: Proxy authentication required\n"
    "    severity: high\n"
    "    category: network\n"
    "    conditions:\n"
    "      - signal: http_407_error\n"
    "        source: event_type\n"
    "        event_type: error_detected\n"
    "        data_field: errorCode\n"
    "        operator: contains\n"
    '        value: "407"\n'
    "        required: true\n"
    "```\n"
)


def validate_rules_yaml(content: str) -> dict[str, Any]:
    """
    Validate a rules YAML document.

    Returns:
        dict with `success` (bool) and a markdown `message` describing the
        first problem found, or a confirmation with the rule count
    """
    try:
        rules_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return {
            "success": False,
            "message": (
                "❌ **Failed to parse rules YAML**\n\n"
                f"Error details: `{e}`\n\n"
                "**How to fix:**\n"
                "- Ensure your YAML is valid.\n"
                "- Check for indentation, missing colons, or invalid syntax."
            ),
        }

    if not isinstance(rules_data, dict) or "rules" not in rules_data:
        return {
            "success": False,
            "message": (
                "❌ **Invalid rules YAML: missing top-level `rules:` key**\n\n"
                f"Your file must start with a `rules:` key, like:\n{RULES_EXAMPLE}"
            ),
        }

    if not isinstance(rules_data["rules"], list):
        return {
            "success": False,
            "message": f"❌ **Invalid rules YAML: `rules` must be a list**\n\nExample:\n{RULES_EXAMPLE}",
        }

    if not rules_data["rules"]:
        return {
            "success": True,
            "message": "✅ **Rules YAML is valid but contains no rules.**",
        }

    seen_ids: set[str] = set()
    for i, rule_data in enumerate(rules_data["rules"]):
        try:
            rule = RuleDefinition.model_validate(rule_data)
        except Exception as e:
            return {
                "success": False,
                "message": (
                    f"❌ **Rule #{i + 1} failed validation**\n\n"
                    f"Error: `{e}`\n\n"
                    "Please check your rule definition and fix the error above."
                ),
            }

        if rule.rule_id in seen_ids:
            return {
                "success": False,
                "message": f"❌ **Rule #{i + 1} reuses rule id `{rule.rule_id}`**\n\nRule ids must be unique.",
            }
        seen_ids.add(rule.rule_id)

        problems = _rule_problems(rule)
        if problems:
            details = "\n".join(f"- {problem}" for problem in problems)
            return {
                "success": False,
                "message": f"❌ **Rule `{rule.rule_id}` failed validation**\n\n{details}",
            }

    logger.info(f"Validated {len(rules_data['rules'])} rules")
    return {
        "success": True,
        "message": f"✅ **Rules YAML is valid and contains {len(rules_data['rules'])} rules.**",
    }


def _rule_problems(rule: RuleDefinition) -> list[str]:
    """Find definitions that parse but can never evaluate as intended."""
    problems = []

    if not rule.conditions:
        problems.append("Rule has no conditions")

    for condition in rule.conditions:
        if condition.source == ConditionSource.UNKNOWN:
            problems.append(
                f"Condition `{condition.signal}` has an unknown source, expected one of: {_known_sources()}"
            )
        if condition.operator == ConditionOperator.UNKNOWN:
            problems.append(f"Condition `{condition.signal}` has an unknown operator")
        if condition.operator in VALUE_OPERATORS and condition.value is None:
            problems.append(f"Condition `{condition.signal}` uses `{condition.operator.value}` without a `value`")
        if condition.event_a_filter_operator in VALUE_OPERATORS and condition.event_a_filter_value is None:
            problems.append(f"Correlation condition `{condition.signal}` filters event A without a value")
        if condition.source == ConditionSource.EVENT_CORRELATION and not condition.join_field:
            problems.append(f"Correlation condition `{condition.signal}` needs a `join_field`")

    for factor in rule.confidence_factors:
        if factor.expression.kind == FactorKind.INVALID:
            problems.append(f"Confidence factor `{factor.signal}` has an unsupported condition `{factor.condition}`")

    return problems


def _known_sources() -> str:
    return ", ".join(f"`{source['name']}`" for source in ConditionRegistry.describe_sources())
