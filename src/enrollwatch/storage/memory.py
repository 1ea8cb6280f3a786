"""
In-memory repositories.

Dictionary-backed implementations of the rule engine's repository
interfaces, used by tests and local runs.
"""

import asyncio
import logging
from collections import defaultdict

from enrollwatch.core.models import Event, sort_events
from enrollwatch.rules.interface import EventRepository, RuleLoader, RuleResultStore
from enrollwatch.rules.models import RuleDefinition, RuleResult

logger = logging.getLogger(__name__)


class InMemoryRuleLoader(RuleLoader):
    """Serves a fixed rule list per tenant, with an optional shared global list."""

    def __init__(self, global_rules: list[RuleDefinition] | None = None):
        self.global_rules = list(global_rules or [])
        self._tenant_rules: dict[str, list[RuleDefinition]] = defaultdict(list)

    def add_tenant_rule(self, tenant_id: str, rule: RuleDefinition) -> None:
        self._tenant_rules[tenant_id].append(rule)

    async def get_active_rules(self, tenant_id: str) -> list[RuleDefinition]:
        rules = self.global_rules + self._tenant_rules.get(tenant_id, [])
        return [rule for rule in rules if rule.enabled]


class InMemoryEventRepository(EventRepository):
    """Stores events per (tenant, session) and returns them in canonical order."""

    def __init__(self) -> None:
        self._events: dict[tuple[str, str], list[Event]] = defaultdict(list)

    def add_events(self, events: list[Event]) -> None:
        for event in events:
            self._events[(event.tenant_id, event.session_id)].append(event)

    async def get_session_events(self, tenant_id: str, session_id: str) -> list[Event]:
        return sort_events(self._events.get((tenant_id, session_id), []))


class InMemoryRuleResultStore(RuleResultStore):
    """
    Stores at most one result per (tenant, session, rule_id).

    A second result for the same key is rejected, so concurrent analyses of
    one session can never produce duplicate diagnoses.
    """

    def __init__(self) -> None:
        self._results: dict[tuple[str, str, str], RuleResult] = {}
        self._lock = asyncio.Lock()

    async def get_results(self, tenant_id: str, session_id: str) -> list[RuleResult]:
        return [
            result
            for (tenant, session, _), result in self._results.items()
            if tenant == tenant_id and session == session_id
        ]

    async def store_result(self, result: RuleResult) -> bool:
        key = (result.tenant_id, result.session_id, result.rule_id)
        async with self._lock:
            if key in self._results:
                logger.debug(f"Result for rule {result.rule_id} already stored for session {result.session_id}")
                return False
            self._results[key] = result
        return True

    def all_results(self) -> list[RuleResult]:
        return list(self._results.values())
