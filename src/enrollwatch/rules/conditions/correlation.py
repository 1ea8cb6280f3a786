"""Correlation conditions for rule evaluation.

This module contains the condition that joins two event types on a shared
payload field, optionally within a time window.
"""

from typing import Any

import structlog

from enrollwatch.core.models import Event
from enrollwatch.rules.conditions.base import BaseCondition, ConditionOutcome, events_of_type
from enrollwatch.rules.models import ConditionSource, RuleCondition

logger = structlog.get_logger(__name__)


class EventCorrelationCondition(BaseCondition):
    """Matches when an event A and an event B share a join field value within a time window.

    Event A candidates are events of `event_type`, optionally filtered by the
    event_a_filter_* fields. Event B candidates are events of
    `correlate_event_type`, optionally filtered by data_field/operator/value.
    The first (A, B) pair in document order wins.
    """

    name = "event_correlation"
    source = ConditionSource.EVENT_CORRELATION
    description = "Joins two event types on a shared payload field, optionally within a time window"
    examples = [
        {
            "signal": "low_disk_at_failure",
            "source": "event_correlation",
            "event_type": "app_install_failed",
            "correlate_event_type": "performance_snapshot",
            "join_field": "appId",
            "time_window_seconds": 300,
            "data_field": "disk_free_gb",
            "operator": "lt",
            "value": "5",
        }
    ]

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        if not condition.event_type or not condition.correlate_event_type or not condition.join_field:
            logger.debug("EventCorrelationCondition: incomplete definition", signal=condition.signal)
            return False, "incomplete correlation condition"

        candidates_a = [e for e in events_of_type(events, condition.event_type) if self._passes_filter_a(condition, e)]
        if not candidates_a:
            return False, "no event A candidates"

        candidates_b = [e for e in events_of_type(events, condition.correlate_event_type) if self._passes_filter_b(condition, e)]
        if not candidates_b:
            return False, "no event B candidates"

        window = condition.time_window_seconds or 0

        for event_a in candidates_a:
            join_value = event_a.get_field(condition.join_field)
            if not join_value:
                continue

            for event_b in candidates_b:
                if event_b.event_id == event_a.event_id:
                    continue

                b_value = event_b.get_field(condition.join_field)
                if b_value is None or b_value.casefold() != join_value.casefold():
                    continue

                delta_seconds = (event_b.timestamp - event_a.timestamp).total_seconds()
                if window > 0 and abs(delta_seconds) > window:
                    continue

                return True, {
                    "eventA": self._describe(event_a),
                    "eventB": self._describe(event_b),
                    "joinField": condition.join_field,
                    "joinValue": join_value,
                    "timeDeltaSeconds": delta_seconds,
                }

        return False, "no correlated event pair"

    def _passes_filter_a(self, condition: RuleCondition, event: Event) -> bool:
        if not condition.event_a_filter_field:
            return True
        return self.matches(
            event.get_field(condition.event_a_filter_field),
            condition.event_a_filter_operator,
            condition.event_a_filter_value,
        )

    def _passes_filter_b(self, condition: RuleCondition, event: Event) -> bool:
        if not condition.data_field:
            return True
        return self.matches(event.get_field(condition.data_field), condition.operator, condition.value)

    @staticmethod
    def _describe(event: Event) -> dict[str, Any]:
        return {**event.reference(), "message": event.message}
