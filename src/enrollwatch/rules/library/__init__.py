"""
Built-in rule library shipped as package data.
"""

from importlib.resources import files

BUILTIN_RULES_RESOURCE = "builtin_rules.yaml"


def read_builtin_rules() -> str:
    """Return the raw YAML of the built-in rule library."""
    return files(__name__).joinpath(BUILTIN_RULES_RESOURCE).read_text(encoding="utf-8")
