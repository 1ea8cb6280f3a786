"""
Session analysis trigger.

Centralized logic deciding when a session's rule analysis should run:
once the session reaches a terminal state, or on explicit request. Running
on every event batch would repeat the full evaluation needlessly.
"""

from dataclasses import dataclass

import structlog

from enrollwatch.core.constants import ENROLLMENT_FAILED_EVENT, TERMINAL_EVENT_TYPES
from enrollwatch.core.models import EnrollmentPhase, Event

logger = structlog.get_logger(__name__)

TERMINAL_PHASES = frozenset({EnrollmentPhase.COMPLETE, EnrollmentPhase.FAILED})


@dataclass
class TriggerResult:
    """Result of the session trigger check."""

    should_analyze: bool
    reason: str = ""


def should_analyze_session(events: list[Event], on_demand: bool = False) -> TriggerResult:
    """
    Determine if a session is ready for rule analysis.

    Returns TriggerResult with should_analyze=True to run the engine.
    Logs skipped sessions for observability.
    """
    result = _apply_checks(events, on_demand)
    if not result.should_analyze:
        session_id = events[0].session_id if events else ""
        logger.info("session_analysis_skipped", session=session_id, reason=result.reason)
    return result


def _apply_checks(events: list[Event], on_demand: bool) -> TriggerResult:
    if not events:
        return TriggerResult(should_analyze=False, reason="Session has no events")

    if on_demand:
        return TriggerResult(should_analyze=True, reason="Analysis requested on demand")

    terminal = _find_terminal_event(events)
    if terminal is None:
        return TriggerResult(should_analyze=False, reason="Session has not reached a terminal state")

    if terminal.event_type.casefold() == ENROLLMENT_FAILED_EVENT or terminal.phase == EnrollmentPhase.FAILED:
        return TriggerResult(should_analyze=True, reason="Enrollment failed")
    return TriggerResult(should_analyze=True, reason="Enrollment completed")


def _find_terminal_event(events: list[Event]) -> Event | None:
    for event in events:
        if event.event_type.casefold() in TERMINAL_EVENT_TYPES or event.phase in TERMINAL_PHASES:
            return event
    return None
