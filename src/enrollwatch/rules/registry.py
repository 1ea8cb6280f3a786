"""
Registry for condition sources.

This module maps every ConditionSource to the class that evaluates it.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from enrollwatch.core.config import EngineConfig
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
from enrollwatch.rules.models import ConditionSource

logger = logging.getLogger(__name__)

# Map ConditionSource to Condition classes
SOURCE_TO_CONDITION: dict[ConditionSource, type[BaseCondition]] = {
    ConditionSource.EVENT_TYPE: EventTypeCondition,
    ConditionSource.EVENT_DATA: EventDataCondition,
    ConditionSource.EVENT_COUNT: EventCountCondition,
    ConditionSource.PHASE_DURATION: PhaseDurationCondition,
    ConditionSource.APP_INSTALL_DURATION: AppInstallDurationCondition,
    ConditionSource.EVENT_CORRELATION: EventCorrelationCondition,
}

# List of all available condition classes
AVAILABLE_CONDITIONS: list[type[BaseCondition]] = list(SOURCE_TO_CONDITION.values())


class ConditionRegistry:
    """Registry for looking up and instantiating condition sources."""

    @staticmethod
    def get_condition_class(source: ConditionSource) -> type[BaseCondition] | None:
        """Get condition class by ConditionSource."""
        return SOURCE_TO_CONDITION.get(source)

    @staticmethod
    def build_conditions(
        engine_config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> dict[ConditionSource, BaseCondition]:
        """
        Instantiate one evaluator per known source.

        Args:
            engine_config: Engine tunables shared by every condition.
            clock: Source of "now" for still-open phases.

        Returns:
            Mapping of ConditionSource to a ready condition instance.
        """
        conditions: dict[ConditionSource, BaseCondition] = {}
        for source, condition_cls in SOURCE_TO_CONDITION.items():
            conditions[source] = condition_cls(engine_config=engine_config, clock=clock)
            logger.debug(f"Registered condition source: {condition_cls.name}")
        return conditions

    @staticmethod
    def describe_sources() -> list[dict]:
        """Describe every condition source for documentation and validation messages."""
        return [condition_cls().get_description() for condition_cls in AVAILABLE_CONDITIONS]
