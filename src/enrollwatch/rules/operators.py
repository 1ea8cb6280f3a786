"""
Comparison operators shared by all condition sources.

Every comparison is string based: payload values are rendered to strings
before they reach matches_operator, and numeric operators parse both sides.
"""

import math

import regex
import structlog

from enrollwatch.core.config import config
from enrollwatch.rules.models import ConditionOperator

logger = structlog.get_logger(__name__)

_NUMERIC_OPERATORS = {
    ConditionOperator.GT: lambda a, b: a > b,
    ConditionOperator.LT: lambda a, b: a < b,
    ConditionOperator.GTE: lambda a, b: a >= b,
    ConditionOperator.LTE: lambda a, b: a <= b,
}


def parse_number(value: str | None) -> float | None:
    """Parse a finite number, or return None for anything non-numeric."""
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def regex_search(pattern: str, text: str, timeout: float | None = None) -> bool:
    """
    Case-insensitive regex search bounded by a wall-clock timeout.

    A pattern that times out or fails to compile is treated as no match.
    """
    timeout = config.engine.regex_timeout_seconds if timeout is None else timeout
    try:
        return regex.search(pattern, text, flags=regex.IGNORECASE, timeout=timeout) is not None
    except TimeoutError:
        logger.warning("Regex evaluation timed out", pattern=pattern, timeout_seconds=timeout)
        return False
    except regex.error as e:
        logger.warning("Invalid regex pattern", pattern=pattern, error=str(e))
        return False


def matches_operator(
    field_value: str | None,
    operator: ConditionOperator | str | None,
    compare_value: str | None,
    regex_timeout: float | None = None,
) -> bool:
    """
    Apply a condition operator to a payload value.

    Args:
        field_value: The value extracted from the event (None if absent)
        operator: One of the ConditionOperator values
        compare_value: The literal from the rule definition
        regex_timeout: Override for the regex wall-clock bound

    Returns:
        True if the comparison holds; False for absent values, missing compare
        values, unknown operators, non-numeric operands of numeric operators and regex timeouts.
    """
    if field_value is None or operator is None:
        return False

    if not isinstance(operator, ConditionOperator):
        try:
            operator = ConditionOperator(str(operator).strip().lower())
        except ValueError:
            return False

    if operator == ConditionOperator.EXISTS:
        return field_value != ""

    # Other operators need a value to compare against
    if compare_value is None:
        return False

    if operator == ConditionOperator.EQUALS:
        return field_value.casefold() == compare_value.casefold()

    if operator == ConditionOperator.CONTAINS:
        return compare_value.casefold() in field_value.casefold()

    if operator == ConditionOperator.REGEX:
        return regex_search(compare_value, field_value, timeout=regex_timeout)

    if operator in _NUMERIC_OPERATORS:
        left = parse_number(field_value)
        right = parse_number(compare_value)
        if left is None or right is None:
            return False
        return _NUMERIC_OPERATORS[operator](left, right)

    # count_gte only has meaning for event_count conditions
    return False
