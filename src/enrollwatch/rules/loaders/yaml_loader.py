"""
YAML-based rule loader.

Loads the built-in rule library and optional custom rule files, and merges
them with per-tenant enablement overrides and custom rules, implementing the
RuleLoader interface.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from cachetools import TTLCache

from enrollwatch.core.config import EngineConfig, RulesConfig, config
from enrollwatch.core.errors import RuleDefinitionError, RulesFileNotFoundError
from enrollwatch.core.utils.logging import log_function_call
from enrollwatch.rules.interface import RuleLoader
from enrollwatch.rules.library import read_builtin_rules
from enrollwatch.rules.models import RuleDefinition

logger = logging.getLogger(__name__)

BUILTIN_CACHE_KEY = "builtin"


def parse_rules_document(
    content: str,
    source: str,
    is_builtin: bool = False,
    default_threshold: int | None = None,
) -> list[RuleDefinition]:
    """
    Parse a rules YAML document into rule definitions.

    Entries that fail validation are logged and skipped so that one broken
    rule does not take the rest of the file down with it.

    Args:
        content: Raw YAML with a top-level `rules:` list
        source: Where the content came from, for log messages
        is_builtin: Mark every parsed rule as part of the built-in library
        default_threshold: Confidence threshold for rules that do not set one

    Returns:
        list of RuleDefinition objects in file order

    Raises:
        RuleDefinitionError: If the document is not valid YAML
    """
    try:
        rules_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise RuleDefinitionError(f"Invalid YAML in {source}: {e}") from e

    if not isinstance(rules_data, dict) or "rules" not in rules_data:
        logger.warning(f"No rules found in {source}")
        return []

    if not isinstance(rules_data["rules"], list):
        logger.warning(f"Rules key is not a list in {source}")
        return []

    rules = []
    for index, rule_data in enumerate(rules_data["rules"]):
        if not isinstance(rule_data, dict):
            logger.warning(f"Skipping rule #{index + 1} in {source}: expected a mapping")
            continue
        try:
            rules.append(_parse_rule(rule_data, is_builtin, default_threshold))
        except Exception as e:
            rule_id = rule_data.get("rule_id") or rule_data.get("ruleId") or "unknown"
            logger.error(f"Error parsing rule {rule_id} in {source}: {e}")
            continue

    logger.info(f"Loaded {len(rules)} rules from {source}")
    return rules


def _parse_rule(rule_data: dict[str, Any], is_builtin: bool, default_threshold: int | None) -> RuleDefinition:
    data = dict(rule_data)
    data.pop("isBuiltin", None)
    data["is_builtin"] = is_builtin
    if default_threshold is not None and "confidence_threshold" not in data and "confidenceThreshold" not in data:
        data["confidence_threshold"] = default_threshold
    return RuleDefinition.model_validate(data)


class YamlRuleLoader(RuleLoader):
    """
    Loads rules from the built-in library and YAML files.

    The effective rule set of a tenant is the global rules (built-in library
    plus the optional custom rules file) with the tenant's enabled overrides
    applied, followed by the tenant's own custom rules. A tenant custom rule
    replaces a global rule with the same id.
    """

    def __init__(
        self,
        custom_rules_path: str | Path | None = None,
        include_builtin: bool | None = None,
        rules_config: RulesConfig | None = None,
        engine_config: EngineConfig | None = None,
    ):
        self.rules_config = rules_config or config.rules
        self.engine_config = engine_config or config.engine
        self.include_builtin = (
            self.rules_config.builtin_rules_enabled if include_builtin is None else include_builtin
        )
        path = custom_rules_path or self.rules_config.custom_rules_path
        self.custom_rules_path = Path(path) if path else None

        self._cache: TTLCache = TTLCache(maxsize=32, ttl=self.rules_config.cache_ttl_seconds)
        self._tenant_overrides: dict[str, dict[str, bool]] = {}
        self._tenant_rules: dict[str, dict[str, RuleDefinition]] = {}

    @log_function_call(operation="load_active_rules")
    async def get_active_rules(self, tenant_id: str) -> list[RuleDefinition]:
        rules = [rule for rule in await self.get_all_rules(tenant_id) if rule.enabled]
        logger.info(f"Tenant {tenant_id} has {len(rules)} active rules")
        return rules

    async def get_all_rules(self, tenant_id: str) -> list[RuleDefinition]:
        """Return the tenant's effective rules, including disabled ones."""
        overrides = self._tenant_overrides.get(tenant_id, {})
        custom = self._tenant_rules.get(tenant_id, {})

        merged = []
        for rule in self.load_global_rules():
            if rule.rule_id in custom:
                continue
            merged.append(_apply_override(rule, overrides))

        for rule in custom.values():
            merged.append(_apply_override(rule, overrides))

        return merged

    def load_global_rules(self) -> list[RuleDefinition]:
        """Return the rules shared by every tenant."""
        rules = []
        if self.include_builtin:
            rules.extend(self._load_builtin())
        if self.custom_rules_path is not None:
            rules.extend(self.load_file(self.custom_rules_path))
        return rules

    @log_function_call(operation="load_rules_file")
    def load_file(self, path: str | Path) -> list[RuleDefinition]:
        """
        Load custom rules from a YAML file.

        Raises:
            RulesFileNotFoundError: If the file does not exist
            RuleDefinitionError: If the file is not valid YAML
        """
        path = Path(path)
        cache_key = f"file:{path.resolve()}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        if not path.is_file():
            logger.warning(f"No rules file found at {path}")
            raise RulesFileNotFoundError(f"Rules file not found: {path}")

        rules = parse_rules_document(
            path.read_text(encoding="utf-8"),
            source=str(path),
            default_threshold=self.engine_config.default_confidence_threshold,
        )
        self._cache[cache_key] = rules
        return rules

    def set_rule_enabled(self, tenant_id: str, rule_id: str, enabled: bool) -> None:
        """Record a tenant's enabled/disabled choice for a rule."""
        self._tenant_overrides.setdefault(tenant_id, {})[rule_id] = enabled
        logger.info(f"Rule {rule_id} {'enabled' if enabled else 'disabled'} for tenant {tenant_id}")

    def add_custom_rule(self, tenant_id: str, rule: RuleDefinition) -> None:
        """Add or replace a tenant custom rule, keyed by rule id."""
        self._tenant_rules.setdefault(tenant_id, {})[rule.rule_id] = rule.model_copy(update={"is_builtin": False})
        logger.info(f"Stored custom rule {rule.rule_id} for tenant {tenant_id}")

    def add_custom_rules_from_yaml(self, tenant_id: str, content: str) -> int:
        """Parse a rules document and add every valid rule as a tenant custom rule."""
        rules = parse_rules_document(
            content,
            source=f"custom rules for tenant {tenant_id}",
            default_threshold=self.engine_config.default_confidence_threshold,
        )
        for rule in rules:
            self.add_custom_rule(tenant_id, rule)
        return len(rules)

    def remove_custom_rule(self, tenant_id: str, rule_id: str) -> bool:
        removed = self._tenant_rules.get(tenant_id, {}).pop(rule_id, None)
        return removed is not None

    def clear_cache(self) -> None:
        self._cache.clear()

    def _load_builtin(self) -> list[RuleDefinition]:
        cached = self._cache.get(BUILTIN_CACHE_KEY)
        if cached is not None:
            return cached

        rules = parse_rules_document(
            read_builtin_rules(),
            source="built-in rule library",
            is_builtin=True,
            default_threshold=self.engine_config.default_confidence_threshold,
        )
        self._cache[BUILTIN_CACHE_KEY] = rules
        return rules


def _apply_override(rule: RuleDefinition, overrides: dict[str, bool]) -> RuleDefinition:
    if rule.rule_id not in overrides or overrides[rule.rule_id] == rule.enabled:
        return rule
    return rule.model_copy(update={"enabled": overrides[rule.rule_id]})
