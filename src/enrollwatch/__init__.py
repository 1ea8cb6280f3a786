"""enrollwatch: rule-based diagnostics for device enrollment sessions."""

__version__ = "0.1.0"
