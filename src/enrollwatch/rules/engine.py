"""
Rule engine: evaluates a tenant's rule set against one session's events.

Runs once per session, when the session reaches a terminal state or when an
analysis is requested on demand. Single-rule and correlation rules are
evaluated in the same pass over the full event history.
"""

import logging
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

from enrollwatch.core.config import EngineConfig, config
from enrollwatch.core.errors import RepositoryFetchError
from enrollwatch.core.models import Event, sort_events
from enrollwatch.core.utils.logging import log_operation
from enrollwatch.rules.condition_evaluator import ConditionEvaluator
from enrollwatch.rules.interface import EventRepository, RuleLoader, RuleResultStore
from enrollwatch.rules.models import RuleDefinition, RuleResult
from enrollwatch.rules.scoring import ConfidenceScorer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RuleEngine:
    """
    Evaluates rules against a session's events and produces diagnoses.

    The engine keeps no state across invocations. Idempotency comes from the
    result store: rules that already have a stored result for the session are
    skipped, and the store is queried fresh on every call.
    """

    def __init__(
        self,
        rule_loader: RuleLoader | None = None,
        event_repository: EventRepository | None = None,
        result_store: RuleResultStore | None = None,
        evaluator: ConditionEvaluator | None = None,
        scorer: ConfidenceScorer | None = None,
        engine_config: EngineConfig | None = None,
    ):
        self.rule_loader = rule_loader
        self.event_repository = event_repository
        self.result_store = result_store
        self.engine_config = engine_config or config.engine
        self.evaluator = evaluator or ConditionEvaluator(engine_config=self.engine_config)
        self.scorer = scorer or ConfidenceScorer()

    async def analyze_session(self, tenant_id: str, session_id: str, persist: bool = True) -> list[RuleResult]:
        """
        Analyze a stored session end to end.

        Args:
            tenant_id: Tenant owning the session
            session_id: The enrollment session to analyze
            persist: Hand new results to the result store

        Returns:
            The results produced by this invocation (never ones already stored)

        Raises:
            RepositoryFetchError: If rules, events or existing results cannot be fetched
        """
        if self.rule_loader is None or self.event_repository is None or self.result_store is None:
            raise RuntimeError("RuleEngine needs a rule loader, event repository and result store to analyze sessions")

        async with log_operation("session_analysis", subject_ids={"tenant": tenant_id, "session": session_id}):
            rules = await self._fetch("rules", tenant_id, session_id, self.rule_loader.get_active_rules(tenant_id))
            events = await self._fetch(
                "events", tenant_id, session_id, self.event_repository.get_session_events(tenant_id, session_id)
            )

            if not events:
                logger.info(f"No events found for session {session_id}, skipping analysis")
                return []

            existing = await self._fetch(
                "rule results", tenant_id, session_id, self.result_store.get_results(tenant_id, session_id)
            )
            evaluated_rule_ids = {result.rule_id for result in existing}

            logger.info(
                f"Analyzing session {session_id}: {len(events)} events, {len(rules)} rules "
                f"({len(evaluated_rule_ids)} already evaluated)"
            )

            results = [
                result.model_copy(update={"tenant_id": tenant_id, "session_id": session_id})
                for result in self.analyze(rules, events, evaluated_rule_ids)
            ]

            if not persist:
                return results

            stored = []
            for result in results:
                if await self.result_store.store_result(result):
                    stored.append(result)
                else:
                    logger.info(f"Result for rule {result.rule_id} already stored for session {session_id}")
            return stored

    def analyze(
        self,
        rules: list[RuleDefinition],
        events: list[Event],
        evaluated_rule_ids: Iterable[str] = frozenset(),
    ) -> list[RuleResult]:
        """
        Evaluate every active rule once against a fixed event snapshot.

        Args:
            rules: The tenant's rule set, in evaluation order
            events: All events of the session
            evaluated_rule_ids: Rules that already have a result for this session

        Returns:
            Results of the rules that fired, in rule order
        """
        if not events:
            return []

        ordered = sort_events(events)
        max_events = self.engine_config.max_events_per_session
        if len(ordered) > max_events:
            logger.warning(f"Session has {len(ordered)} events, more than the expected maximum of {max_events}")

        skip = set(evaluated_rule_ids)
        results: list[RuleResult] = []

        for rule in rules:
            if not rule.enabled or rule.rule_id in skip:
                continue
            skip.add(rule.rule_id)

            try:
                result = self.evaluate_rule(rule, ordered)
            except Exception as e:
                logger.warning(f"Error evaluating rule {rule.rule_id}: {e}", exc_info=True)
                continue

            if result is not None:
                results.append(result)
                logger.info(f"Rule {rule.rule_id} ({rule.trigger.value}) fired with confidence {result.confidence_score}%")

        return results

    def evaluate_rule(self, rule: RuleDefinition, events: list[Event]) -> RuleResult | None:
        """
        Evaluate a single rule against the full event stream.

        Returns:
            A RuleResult if every required condition matched and the score
            reaches the rule's threshold, otherwise None
        """
        matched_conditions: dict[str, Any] = {}

        for condition in rule.conditions:
            matched, evidence = self.evaluator.evaluate(condition, events)

            if condition.required and not matched:
                logger.debug(f"Rule {rule.rule_id}: required condition '{condition.signal}' not met")
                return None

            if matched:
                matched_conditions[condition.signal] = evidence

        confidence = self.scorer.score(rule, matched_conditions, events)

        if confidence < rule.confidence_threshold:
            logger.debug(f"Rule {rule.rule_id}: confidence {confidence} below threshold {rule.confidence_threshold}")
            return None

        return RuleResult(
            rule_id=rule.rule_id,
            rule_title=rule.title,
            severity=rule.severity,
            category=rule.category,
            confidence_score=confidence,
            explanation=rule.explanation,
            remediation_steps=rule.remediation_steps,
            related_docs=rule.related_docs,
            matched_conditions=matched_conditions,
        )

    @staticmethod
    async def _fetch(source: str, tenant_id: str, session_id: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except RepositoryFetchError:
            raise
        except Exception as e:
            raise RepositoryFetchError(source, tenant_id, session_id, reason=str(e)) from e
