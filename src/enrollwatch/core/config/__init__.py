"""
Configuration package - unified access point.

This package provides all configuration classes and the global config instance.
"""

from enrollwatch.core.config.engine_config import EngineConfig
from enrollwatch.core.config.logging_config import LoggingConfig
from enrollwatch.core.config.rules_config import RulesConfig
from enrollwatch.core.config.settings import Config, config

__all__ = [
    "Config",
    "EngineConfig",
    "LoggingConfig",
    "RulesConfig",
    "config",
]
