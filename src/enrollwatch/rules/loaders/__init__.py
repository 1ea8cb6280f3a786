from enrollwatch.rules.loaders.yaml_loader import YamlRuleLoader, parse_rules_document

__all__ = ["YamlRuleLoader", "parse_rules_document"]
