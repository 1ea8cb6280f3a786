"""
Condition evaluator.

Dispatches each rule condition to the condition class registered for its
source.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from enrollwatch.core.config import EngineConfig
from enrollwatch.core.models import Event
from enrollwatch.rules.conditions.base import ConditionOutcome
from enrollwatch.rules.models import RuleCondition
from enrollwatch.rules.registry import ConditionRegistry

logger = logging.getLogger(__name__)


class ConditionEvaluator:
    """
    Evaluates single rule conditions against a session's events.

    Handles:
    - Dispatch by condition source through the registry
    - Unknown sources (treated as no match, never raised)
    """

    def __init__(
        self,
        engine_config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the condition evaluator.

        Args:
            engine_config: Engine tunables (regex timeout, phase event type).
            clock: Source of "now" used for phases that are still open.
        """
        self.conditions = ConditionRegistry.build_conditions(engine_config=engine_config, clock=clock)

    def evaluate(self, condition: RuleCondition, events: list[Event]) -> ConditionOutcome:
        """
        Evaluate one condition against event data.

        Args:
            condition: Rule condition to evaluate
            events: All events of the session in canonical order

        Returns:
            Tuple of (matched: bool, evidence) where evidence describes the
            matched event(s) or why nothing matched
        """
        handler = self.conditions.get(condition.source)
        if handler is None:
            logger.warning(f"Unknown condition source for signal '{condition.signal}': {condition.source}")
            return False, "unknown source"

        matched, evidence = handler.evaluate(condition, events)
        logger.debug(f"Condition {condition.signal} ({condition.source.value}) evaluated: {matched}")
        return matched, evidence
