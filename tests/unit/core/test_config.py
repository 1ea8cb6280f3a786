"""
Unit tests for enrollwatch/core/config.
"""

import pytest

from enrollwatch.core.config import Config


class TestConfigFromEnvironment:
    """Config reads its sections from environment variables."""

    def test_defaults(self, monkeypatch):
        for name in (
            "ENGINE_REGEX_TIMEOUT_SECONDS",
            "ENGINE_PHASE_EVENT_TYPE",
            "ENGINE_DEFAULT_THRESHOLD",
            "ENGINE_MAX_EVENTS",
            "RULES_BUILTIN_ENABLED",
            "RULES_CUSTOM_PATH",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)

        cfg = Config()

        assert cfg.engine.regex_timeout_seconds == 1.0
        assert cfg.engine.phase_change_event_type == "esp_phase_changed"
        assert cfg.engine.default_confidence_threshold == 40
        assert cfg.engine.max_events_per_session == 10000
        assert cfg.rules.builtin_rules_enabled is True
        assert cfg.rules.custom_rules_path is None
        assert cfg.validate() is True

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("ENGINE_REGEX_TIMEOUT_SECONDS", "0.25")
        monkeypatch.setenv("ENGINE_PHASE_EVENT_TYPE", "phase_changed")
        monkeypatch.setenv("ENGINE_MAX_EVENTS", "500")
        monkeypatch.setenv("RULES_BUILTIN_ENABLED", "false")
        monkeypatch.setenv("RULES_CUSTOM_PATH", "/etc/enrollwatch/rules.yaml")

        cfg = Config()

        assert cfg.engine.regex_timeout_seconds == 0.25
        assert cfg.engine.phase_change_event_type == "phase_changed"
        assert cfg.engine.max_events_per_session == 500
        assert cfg.rules.builtin_rules_enabled is False
        assert cfg.rules.custom_rules_path == "/etc/enrollwatch/rules.yaml"

    def test_only_declared_sections(self, monkeypatch) -> None:
        """Unused environment flags do not leak onto the config object."""
        monkeypatch.setenv("DEBUG", "true")

        cfg = Config()

        assert not hasattr(cfg, "debug")
        assert not hasattr(cfg, "environment")


class TestConfigValidation:
    def test_collects_all_errors(self, monkeypatch):
        """validate() reports every invalid setting in one ValueError."""
        monkeypatch.setenv("ENGINE_REGEX_TIMEOUT_SECONDS", "0")
        monkeypatch.setenv("ENGINE_DEFAULT_THRESHOLD", "150")
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        cfg = Config()

        with pytest.raises(ValueError) as exc_info:
            cfg.validate()

        message = str(exc_info.value)
        assert "ENGINE_REGEX_TIMEOUT_SECONDS" in message
        assert "ENGINE_DEFAULT_THRESHOLD" in message
        assert "LOG_LEVEL" in message
