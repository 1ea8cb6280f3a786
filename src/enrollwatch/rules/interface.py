from abc import ABC, abstractmethod

from enrollwatch.core.models import Event
from enrollwatch.rules.models import RuleDefinition, RuleResult


class RuleLoader(ABC):
    """
    Abstract interface for fetching a tenant's effective rule set.

    This interface allows us to swap out different rule sources
    (YAML files, database, etc.) without changing the engine.
    """

    @abstractmethod
    async def get_active_rules(self, tenant_id: str) -> list[RuleDefinition]:
        """
        Fetch the enabled rules for a tenant.

        Args:
            tenant_id: The tenant whose effective rules to load

        Returns:
            list of RuleDefinition objects (global rules with tenant
            overrides applied, then tenant custom rules)
        """
        pass


class EventRepository(ABC):
    """Abstract interface for reading a session's event history."""

    @abstractmethod
    async def get_session_events(self, tenant_id: str, session_id: str) -> list[Event]:
        """
        Fetch all events of a session ordered by (timestamp, sequence).

        Args:
            tenant_id: Tenant owning the session
            session_id: The enrollment session

        Returns:
            list of Event objects in canonical order
        """
        pass


class RuleResultStore(ABC):
    """
    Abstract interface for persisting diagnoses.

    The store is keyed by (tenant, session, rule_id) and answers the
    "already evaluated" query the engine uses for idempotency.
    """

    @abstractmethod
    async def get_results(self, tenant_id: str, session_id: str) -> list[RuleResult]:
        """Fetch the results already recorded for a session."""
        pass

    @abstractmethod
    async def store_result(self, result: RuleResult) -> bool:
        """
        Persist a result.

        Returns:
            True if stored, False if a result for the same
            (tenant, session, rule_id) already exists
        """
        pass
