"""Conditions package for rule evaluation.

This package contains one condition class per ConditionSource.
Each module focuses on a specific kind of signal.
"""

from enrollwatch.rules.conditions.base import BaseCondition
from enrollwatch.rules.conditions.correlation import EventCorrelationCondition
from enrollwatch.rules.conditions.event import (
    EventCountCondition,
    EventDataCondition,
    EventTypeCondition,
)
from enrollwatch.rules.conditions.temporal import (
    AppInstallDurationCondition,
    PhaseDurationCondition,
)

__all__ = [
    # Base
    "BaseCondition",
    # Event
    "EventTypeCondition",
    "EventDataCondition",
    "EventCountCondition",
    # Temporal
    "PhaseDurationCondition",
    "AppInstallDurationCondition",
    # Correlation
    "EventCorrelationCondition",
]
