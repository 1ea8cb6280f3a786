"""Base condition interface for rule evaluation.

This module defines the abstract base class that every condition source
implements, plus the small helpers they share.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from enrollwatch.core.config import EngineConfig, config
from enrollwatch.core.models import Event
from enrollwatch.rules.models import ConditionSource, RuleCondition
from enrollwatch.rules.operators import matches_operator

# A dict describing the matched event(s) on success, or a short reason on failure
Evidence = dict[str, Any] | str
ConditionOutcome = tuple[bool, Evidence]


class BaseCondition(ABC):
    """Abstract base class for all condition sources.

    Each subclass evaluates one ConditionSource against the full, ordered
    event list of a session.

    Attributes:
        name: Source identifier, matching ConditionSource values.
        source: The ConditionSource this class handles.
        description: Human-readable description of what the source checks.
        examples: Example condition definitions for documentation.
    """

    name: str = ""
    source: ConditionSource = ConditionSource.UNKNOWN
    description: str = ""
    examples: list[dict[str, Any]] = []

    def __init__(
        self,
        engine_config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.engine_config = engine_config or config.engine
        self.clock = clock or (lambda: datetime.now(UTC))

    @abstractmethod
    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        """Evaluate the condition against the session's events.

        Args:
            condition: The rule condition to evaluate.
            events: All events of the session in canonical order.

        Returns:
            (matched, evidence). Evidence is a dict on match, and a short
            reason string (or a dict with diagnostics) otherwise.
        """
        pass

    def matches(self, field_value: str | None, operator: Any, compare_value: str | None) -> bool:
        return matches_operator(
            field_value,
            operator,
            compare_value,
            regex_timeout=self.engine_config.regex_timeout_seconds,
        )

    def get_description(self) -> dict[str, Any]:
        """Get condition source description for documentation and rule validation."""
        return {
            "name": self.name,
            "description": self.description,
            "examples": self.examples,
        }


def event_type_matches(event: Event, event_type: str | None) -> bool:
    """Case-insensitive exact match on event type. An empty type never matches."""
    if not event_type:
        return False
    return event.event_type.casefold() == event_type.casefold()


def events_of_type(events: list[Event], event_type: str | None) -> list[Event]:
    return [e for e in events if event_type_matches(e, event_type)]


def format_duration(total_seconds: float) -> str:
    """Render seconds as "1h 2m 3s", "2m 3s" or "3s"."""
    total = int(max(total_seconds, 0))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
