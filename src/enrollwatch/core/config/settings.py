"""
Main configuration class that composes all configs.
"""

import os

from dotenv import load_dotenv

from enrollwatch.core.config.engine_config import EngineConfig
from enrollwatch.core.config.logging_config import LoggingConfig
from enrollwatch.core.config.rules_config import RulesConfig

# Load environment variables from a .env file
load_dotenv()

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Config:
    """Main configuration class."""

    def __init__(self) -> None:
        self.engine = EngineConfig(
            regex_timeout_seconds=float(os.getenv("ENGINE_REGEX_TIMEOUT_SECONDS", "1.0")),
            phase_change_event_type=os.getenv("ENGINE_PHASE_EVENT_TYPE", "esp_phase_changed"),
            default_confidence_threshold=int(os.getenv("ENGINE_DEFAULT_THRESHOLD", "40")),
            max_events_per_session=int(os.getenv("ENGINE_MAX_EVENTS", "10000")),
        )

        self.rules = RulesConfig(
            builtin_rules_enabled=os.getenv("RULES_BUILTIN_ENABLED", "true").lower() == "true",
            custom_rules_path=os.getenv("RULES_CUSTOM_PATH") or None,
            cache_ttl_seconds=int(os.getenv("RULES_CACHE_TTL", "300")),
        )

        self.logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            file_path=os.getenv("LOG_FILE_PATH"),
        )

    def validate(self) -> bool:
        """Validate configuration."""
        errors = []

        if self.engine.regex_timeout_seconds <= 0:
            errors.append("ENGINE_REGEX_TIMEOUT_SECONDS must be positive")

        if not self.engine.phase_change_event_type:
            errors.append("ENGINE_PHASE_EVENT_TYPE is required")

        if not 0 <= self.engine.default_confidence_threshold <= 100:
            errors.append("ENGINE_DEFAULT_THRESHOLD must be between 0 and 100")

        if self.engine.max_events_per_session <= 0:
            errors.append("ENGINE_MAX_EVENTS must be positive")

        if self.rules.cache_ttl_seconds < 0:
            errors.append("RULES_CACHE_TTL must not be negative")

        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

        return True


# Global config instance
config = Config()
