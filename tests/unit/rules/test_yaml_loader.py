"""
Unit tests for enrollwatch/rules/loaders/yaml_loader.py

Tests cover:
- Parsing rule documents (valid, partially broken, malformed)
- Loading custom rule files and the missing-file error
- Merging global rules with tenant overrides and custom rules
"""

import pytest

from enrollwatch.core.config import EngineConfig, RulesConfig
from enrollwatch.core.errors import RuleDefinitionError, RulesFileNotFoundError
from enrollwatch.rules.loaders.yaml_loader import YamlRuleLoader, parse_rules_document
from enrollwatch.rules.models import ConditionSource, RuleDefinition, RuleSeverity

CUSTOM_RULES = """
rules:
  - rule_id: CUSTOM-001
    title: Printer driver install failed
    severity: warning
    category: printers
    conditions:
      - signal: driver_failed
        source: event_type
        event_type: app_install_failed
        data_field: appName
        operator: contains
        value: printer
        required: true
  - rule_id: CUSTOM-002
    title: Broken severity
    severity: medium
  - just a string
  - rule_id: CUSTOM-003
    title: Lots of reboots
    confidenceThreshold: 75
    conditions:
      - signal: reboots
        source: event_count
        event_type: reboot_detected
        operator: count_gte
        value: 3
        required: true
"""


def _loader(include_builtin: bool = False, **kwargs) -> YamlRuleLoader:
    return YamlRuleLoader(
        include_builtin=include_builtin,
        rules_config=RulesConfig(cache_ttl_seconds=300),
        **kwargs,
    )


class TestParseRulesDocument:
    """Tests for parse_rules_document()."""

    def test_invalid_entries_are_skipped(self):
        """A rule that fails validation does not take the rest of the file down."""
        rules = parse_rules_document(CUSTOM_RULES, source="test")

        assert [r.rule_id for r in rules] == ["CUSTOM-001", "CUSTOM-003"]
        assert rules[0].category == "printers"
        assert rules[0].conditions[0].source == ConditionSource.EVENT_TYPE
        assert rules[1].conditions[0].value == "3"
        assert rules[1].confidence_threshold == 75

    def test_default_threshold_only_fills_missing_values(self):
        rules = parse_rules_document(CUSTOM_RULES, source="test", default_threshold=55)

        assert rules[0].confidence_threshold == 55
        assert rules[1].confidence_threshold == 75

    def test_builtin_flag_is_forced(self):
        content = "rules:\n  - rule_id: R\n    title: T\n    is_builtin: true\n"

        assert parse_rules_document(content, source="test")[0].is_builtin is False
        assert parse_rules_document(content, source="test", is_builtin=True)[0].is_builtin is True

    @pytest.mark.parametrize("content", ["", "other: []", "rules: not-a-list", "- a\n- b"])
    def test_documents_without_rule_list(self, content):
        assert parse_rules_document(content, source="test") == []

    def test_invalid_yaml_raises(self):
        with pytest.raises(RuleDefinitionError):
            parse_rules_document("rules: [unclosed", source="test")


class TestLoadFile:
    """Tests for YamlRuleLoader.load_file()."""

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(RulesFileNotFoundError):
            _loader().load_file(tmp_path / "missing.yaml")

    def test_loads_and_caches_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(CUSTOM_RULES, encoding="utf-8")
        loader = _loader()

        first = loader.load_file(path)
        path.write_text("rules: []\n", encoding="utf-8")
        cached = loader.load_file(path)

        assert [r.rule_id for r in first] == ["CUSTOM-001", "CUSTOM-003"]
        assert cached is first

        loader.clear_cache()
        assert loader.load_file(path) == []

    def test_engine_default_threshold_is_applied(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(CUSTOM_RULES, encoding="utf-8")
        loader = _loader(engine_config=EngineConfig(default_confidence_threshold=65))

        rules = loader.load_file(path)

        assert rules[0].confidence_threshold == 65


class TestTenantMerge:
    """Tests for the effective rule set of a tenant."""

    @pytest.mark.asyncio
    async def test_builtin_rules_are_loaded(self):
        loader = _loader(include_builtin=True)

        rules = await loader.get_active_rules("tenant-1")

        assert rules
        assert all(r.is_builtin for r in rules)
        assert "ANALYZE-NET-001" in {r.rule_id for r in rules}

    @pytest.mark.asyncio
    async def test_builtin_rules_can_be_excluded(self):
        assert await _loader(include_builtin=False).get_active_rules("tenant-1") == []

    @pytest.mark.asyncio
    async def test_tenant_override_disables_rule_for_that_tenant_only(self):
        loader = _loader(include_builtin=True)
        loader.set_rule_enabled("tenant-1", "ANALYZE-NET-002", False)

        tenant_one = {r.rule_id for r in await loader.get_active_rules("tenant-1")}
        tenant_two = {r.rule_id for r in await loader.get_active_rules("tenant-2")}
        all_rules = {r.rule_id: r for r in await loader.get_all_rules("tenant-1")}

        assert "ANALYZE-NET-002" not in tenant_one
        assert "ANALYZE-NET-002" in tenant_two
        assert all_rules["ANALYZE-NET-002"].enabled is False

    @pytest.mark.asyncio
    async def test_custom_rules_are_appended_after_global_rules(self, tmp_path):
        path = tmp_path / "global.yaml"
        path.write_text(
            "rules:\n  - rule_id: GLOBAL-1\n    title: Global\n",
            encoding="utf-8",
        )
        loader = _loader(custom_rules_path=path)
        loader.add_custom_rule("tenant-1", RuleDefinition(rule_id="TENANT-1", title="Tenant", is_builtin=True))

        rules = await loader.get_active_rules("tenant-1")

        assert [r.rule_id for r in rules] == ["GLOBAL-1", "TENANT-1"]
        assert rules[1].is_builtin is False
        assert [r.rule_id for r in await loader.get_active_rules("tenant-2")] == ["GLOBAL-1"]

    @pytest.mark.asyncio
    async def test_custom_rule_replaces_global_rule_with_same_id(self):
        loader = _loader(include_builtin=True)
        loader.add_custom_rule(
            "tenant-1", RuleDefinition(rule_id="ANALYZE-NET-001", title="Tuned proxy rule", severity="critical")
        )

        rules = [r for r in await loader.get_active_rules("tenant-1") if r.rule_id == "ANALYZE-NET-001"]

        assert len(rules) == 1
        assert rules[0].title == "Tuned proxy rule"
        assert rules[0].severity == RuleSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_custom_rules_from_yaml_and_removal(self):
        loader = _loader()

        added = loader.add_custom_rules_from_yaml("tenant-1", CUSTOM_RULES)

        assert added == 2
        assert loader.remove_custom_rule("tenant-1", "CUSTOM-001") is True
        assert loader.remove_custom_rule("tenant-1", "CUSTOM-001") is False
        assert [r.rule_id for r in await loader.get_active_rules("tenant-1")] == ["CUSTOM-003"]

    @pytest.mark.asyncio
    async def test_missing_global_file_raises(self, tmp_path):
        loader = _loader(custom_rules_path=tmp_path / "nope.yaml")

        with pytest.raises(RulesFileNotFoundError):
            await loader.get_active_rules("tenant-1")
