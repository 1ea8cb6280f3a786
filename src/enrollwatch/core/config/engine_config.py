"""
Rule engine configuration.

Defines the tunables of condition evaluation and scoring.
"""

from dataclasses import dataclass

from enrollwatch.core.constants import PHASE_CHANGED_EVENT


@dataclass
class EngineConfig:
    """Rule engine configuration."""

    # Wall-clock bound for a single regex search, in seconds
    regex_timeout_seconds: float = 1.0
    phase_change_event_type: str = PHASE_CHANGED_EVENT
    default_confidence_threshold: int = 40
    # Sessions stay in the low thousands of events; larger ones are logged but still evaluated in full
    max_events_per_session: int = 10000
