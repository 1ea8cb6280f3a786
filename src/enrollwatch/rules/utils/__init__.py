from enrollwatch.rules.utils.validation import validate_rules_yaml

__all__ = ["validate_rules_yaml"]
