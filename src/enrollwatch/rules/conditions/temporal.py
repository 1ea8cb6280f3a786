"""Temporal conditions for rule evaluation.

This module contains conditions that derive durations from the event
stream: how long an enrollment phase lasted and how long an app took to
install.
"""

import structlog

from enrollwatch.core.constants import (
    APP_INSTALL_COMPLETION_EVENTS,
    APP_INSTALL_STARTED_EVENTS,
    APP_KEY_FIELDS,
    DEFAULT_PHASE_FIELD,
)
from enrollwatch.core.models import Event, sort_events
from enrollwatch.rules.conditions.base import (
    BaseCondition,
    ConditionOutcome,
    event_type_matches,
    format_duration,
)
from enrollwatch.rules.models import ConditionSource, RuleCondition

logger = structlog.get_logger(__name__)

STILL_ACTIVE = "(still active)"


class PhaseDurationCondition(BaseCondition):
    """Matches when the target enrollment phase was observed, and measures how long it lasted.

    The duration itself is not compared here; thresholds are expressed with
    "phase_duration > N" confidence factors that read durationSeconds from
    the evidence.
    """

    name = "phase_duration"
    source = ConditionSource.PHASE_DURATION
    description = "Matches when the target phase was entered, measuring its duration until the next phase change"
    examples = [
        {"signal": "device_setup", "source": "phase_duration", "data_field": "espPhase", "value": "DeviceSetup"},
    ]

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        phase_event_type = self.engine_config.phase_change_event_type
        phase_events = sort_events([e for e in events if event_type_matches(e, phase_event_type)])
        if not phase_events:
            return False, "no phase events"

        target_phase = condition.value
        if not target_phase:
            return False, "no target phase"

        lookup_field = condition.data_field or DEFAULT_PHASE_FIELD

        for index, event in enumerate(phase_events):
            current_phase = event.get_field(lookup_field)
            if current_phase is None or current_phase.casefold() != target_phase.casefold():
                continue

            if index + 1 < len(phase_events):
                next_event = phase_events[index + 1]
                phase_end = next_event.timestamp
                phase_end_event_id = next_event.event_id
            else:
                phase_end = self.clock()
                phase_end_event_id = STILL_ACTIVE

            duration_seconds = max((phase_end - event.timestamp).total_seconds(), 0.0)

            logger.debug(
                "PhaseDurationCondition: phase measured",
                phase=target_phase,
                duration_seconds=round(duration_seconds, 2),
                still_active=phase_end_event_id == STILL_ACTIVE,
            )

            return True, {
                "eventId": event.event_id,
                "sequence": event.sequence,
                "phaseStartTimestamp": event.timestamp,
                "phaseEndEventId": phase_end_event_id,
                "phase": target_phase,
                "durationSeconds": duration_seconds,
                "durationFormatted": format_duration(duration_seconds),
            }

        return False, "phase not found"


def resolve_app_key(event: Event) -> str | None:
    """Identify the app an install lifecycle event refers to (appId, then appName, then name)."""
    for field in APP_KEY_FIELDS:
        value = event.get_field(field)
        if value and value.strip():
            return value
    return None


class AppInstallDurationCondition(BaseCondition):
    """Matches when an app install took a duration satisfying the operator."""

    name = "app_install_duration"
    source = ConditionSource.APP_INSTALL_DURATION
    description = "Pairs app install completions with their latest preceding start and compares the duration"
    examples = [
        {"signal": "slow_install", "source": "app_install_duration", "operator": "gt", "value": "1800"},
        {
            "signal": "slow_failed_install",
            "source": "app_install_duration",
            "event_type": "app_install_failed",
            "operator": "gte",
            "value": "600",
        },
    ]

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        ordered = sort_events(events)

        completion_types = (condition.event_type,) if condition.event_type else APP_INSTALL_COMPLETION_EVENTS
        completions = [e for e in ordered if any(event_type_matches(e, t) for t in completion_types)]
        starts = [e for e in ordered if any(event_type_matches(e, t) for t in APP_INSTALL_STARTED_EVENTS)]

        for completion in completions:
            app_key = resolve_app_key(completion)
            if not app_key:
                continue

            start = self._latest_start(starts, completion, app_key)
            if start is None:
                continue

            duration_seconds = max((completion.timestamp - start.timestamp).total_seconds(), 0.0)
            if not self.matches(str(duration_seconds), condition.operator, condition.value):
                continue

            app_id = completion.get_field("appId")
            app_name = completion.get_field("appName") or completion.get_field("name")

            return True, {
                "eventId": completion.event_id,
                "sequence": completion.sequence,
                "startEventId": start.event_id,
                "startTimestamp": start.timestamp,
                "endTimestamp": completion.timestamp,
                "eventType": completion.event_type,
                "appId": app_id or "",
                "appName": app_name or app_key,
                "durationSeconds": duration_seconds,
                "durationFormatted": format_duration(duration_seconds),
            }

        return False, "no app install duration matched"

    @staticmethod
    def _latest_start(starts: list[Event], completion: Event, app_key: str) -> Event | None:
        latest = None
        for start in starts:
            if start.timestamp > completion.timestamp:
                break
            start_key = resolve_app_key(start)
            if start_key is not None and start_key.casefold() == app_key.casefold():
                latest = start
        return latest
