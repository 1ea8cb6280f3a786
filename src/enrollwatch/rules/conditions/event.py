"""Event conditions for rule evaluation.

This module contains conditions that look at individual events: whether an
event type occurred, whether a payload field holds a given value, and how
often an event type occurred.
"""

import structlog

from enrollwatch.core.models import Event
from enrollwatch.rules.conditions.base import BaseCondition, ConditionOutcome, events_of_type
from enrollwatch.rules.models import ConditionOperator, ConditionSource, RuleCondition

logger = structlog.get_logger(__name__)


class EventTypeCondition(BaseCondition):
    """Matches when an event of the given type occurred, optionally with a payload check."""

    name = "event_type"
    source = ConditionSource.EVENT_TYPE
    description = "Matches when an event of the given type occurred (optionally with a matching payload field)"
    examples = [
        {"signal": "app_failed", "source": "event_type", "event_type": "app_install_failed"},
        {
            "signal": "http_407_error",
            "source": "event_type",
            "event_type": "error_detected",
            "data_field": "errorCode",
            "operator": "contains",
            "value": "407",
        },
    ]

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        matching = events_of_type(events, condition.event_type)
        if not matching:
            return False, "no matching events"

        if condition.data_field:
            for event in matching:
                field_value = event.get_field(condition.data_field)
                if self.matches(field_value, condition.operator, condition.value):
                    return True, {
                        **event.reference(),
                        "field": condition.data_field,
                        "value": field_value,
                    }
            return False, "data field not matched"

        # Existence is enough; the first occurrence is the evidence
        first = matching[0]
        return True, {**first.reference(), "count": len(matching)}


class EventDataCondition(BaseCondition):
    """Matches when a payload field of an event of the given type satisfies the operator."""

    name = "event_data"
    source = ConditionSource.EVENT_DATA
    description = "Matches when a payload field of an event of the given type satisfies the operator"
    examples = [
        {
            "signal": "disk_ok",
            "source": "event_data",
            "event_type": "performance_snapshot",
            "data_field": "disk_free_gb",
            "operator": "gt",
            "value": "10",
        }
    ]

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        for event in events_of_type(events, condition.event_type):
            field_value = event.get_field(condition.data_field)
            if self.matches(field_value, condition.operator, condition.value):
                return True, {
                    **event.reference(),
                    "field": condition.data_field,
                    "value": field_value,
                }

        return False, "no matching data"


class EventCountCondition(BaseCondition):
    """Matches when an event type occurred at least N times."""

    name = "event_count"
    source = ConditionSource.EVENT_COUNT
    description = "Matches when an event type occurred at least N times (operator count_gte)"
    examples = [
        {
            "signal": "repeated_reboots",
            "source": "event_count",
            "event_type": "reboot_detected",
            "operator": "count_gte",
            "value": "3",
        }
    ]

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        matching = events_of_type(events, condition.event_type)
        count = len(matching)

        if condition.operator != ConditionOperator.COUNT_GTE:
            logger.debug("EventCountCondition: unsupported operator", signal=condition.signal, operator=condition.operator)
            return False, {"count": count}

        try:
            threshold = int((condition.value or "").strip())
        except ValueError:
            logger.debug("EventCountCondition: non-integer threshold", signal=condition.signal, value=condition.value)
            return False, {"count": count}

        if count < threshold:
            return False, {"count": count}

        evidence = {"count": count, "threshold": threshold}
        if matching:
            evidence = {**matching[0].reference(), **evidence}
        return True, evidence
