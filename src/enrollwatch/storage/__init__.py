from enrollwatch.storage.memory import (
    InMemoryEventRepository,
    InMemoryRuleLoader,
    InMemoryRuleResultStore,
)

__all__ = [
    "InMemoryEventRepository",
    "InMemoryRuleLoader",
    "InMemoryRuleResultStore",
]
