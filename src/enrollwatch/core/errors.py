"""
Core error classes for the enrollwatch application.
"""


class EnrollwatchError(Exception):
    """Base class for all enrollwatch errors."""

    pass


class RepositoryFetchError(EnrollwatchError):
    """Raised when rules, events or stored results cannot be fetched for a session."""

    def __init__(self, source: str, tenant_id: str, session_id: str | None = None, reason: str = "") -> None:
        self.source = source
        self.tenant_id = tenant_id
        self.session_id = session_id
        self.reason = reason
        target = f"tenant {tenant_id}" if session_id is None else f"session {session_id} (tenant {tenant_id})"
        message = f"Failed to fetch {source} for {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RuleDefinitionError(EnrollwatchError):
    """Raised when a rule definition cannot be parsed into a RuleDefinition."""

    pass


class RulesFileNotFoundError(EnrollwatchError):
    """Raised when a rules file does not exist at the configured path."""

    pass
