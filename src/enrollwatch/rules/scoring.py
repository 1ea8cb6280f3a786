"""
Confidence scoring for fired rules.

A rule's score starts at its base confidence; every satisfied confidence
factor adds its weight. The final score is clamped to [0, 100].
"""

import logging
from typing import Any

from enrollwatch.core.constants import MAX_CONFIDENCE, MIN_CONFIDENCE
from enrollwatch.core.models import Event
from enrollwatch.rules.conditions.base import event_type_matches
from enrollwatch.rules.models import ConfidenceFactor, FactorKind, RuleDefinition

logger = logging.getLogger(__name__)

FACTOR_EVIDENCE_PREFIX = "factor_"


def clamp_confidence(score: int) -> int:
    return max(MIN_CONFIDENCE, min(score, MAX_CONFIDENCE))


class ConfidenceScorer:
    """Combines base confidence with weighted confidence factors."""

    def score(self, rule: RuleDefinition, matched_evidence: dict[str, Any], events: list[Event]) -> int:
        """
        Compute the confidence score of a rule whose required conditions matched.

        Satisfied factors are recorded in matched_evidence as
        "factor_<signal>": True.

        Args:
            rule: The rule being scored
            matched_evidence: Evidence of matched conditions, keyed by signal
            events: All events of the session

        Returns:
            Score in [0, 100]
        """
        confidence = rule.base_confidence

        for factor in rule.confidence_factors:
            if self.factor_applies(factor, matched_evidence, events):
                confidence += factor.weight
                matched_evidence[f"{FACTOR_EVIDENCE_PREFIX}{factor.signal}"] = True
                logger.debug(f"Factor {factor.signal} applied to {rule.rule_id} (+{factor.weight})")

        return clamp_confidence(confidence)

    def factor_applies(self, factor: ConfidenceFactor, matched_evidence: dict[str, Any], events: list[Event]) -> bool:
        """Evaluate one parsed factor expression. Invalid expressions never apply."""
        expression = factor.expression

        if expression.kind == FactorKind.EXISTS:
            return factor.signal in matched_evidence

        if expression.kind == FactorKind.COUNT_GTE:
            count = sum(1 for e in events if event_type_matches(e, factor.signal))
            return count >= expression.threshold

        if expression.kind == FactorKind.PHASE_DURATION_GT:
            duration = self._first_duration(matched_evidence)
            return duration is not None and duration > expression.threshold

        logger.debug(f"Unparseable confidence factor for signal '{factor.signal}': {expression.source!r}")
        return False

    @staticmethod
    def _first_duration(matched_evidence: dict[str, Any]) -> float | None:
        for evidence in matched_evidence.values():
            if isinstance(evidence, dict) and "durationSeconds" in evidence:
                try:
                    return float(evidence["durationSeconds"])
                except (TypeError, ValueError):
                    return None
        return None
