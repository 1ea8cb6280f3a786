"""
Rule library configuration.
"""

from dataclasses import dataclass


@dataclass
class RulesConfig:
    """Rule library configuration."""

    builtin_rules_enabled: bool = True
    custom_rules_path: str | None = None
    # Parsed rule files are re-read after this many seconds
    cache_ttl_seconds: int = 300
