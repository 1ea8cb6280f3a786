"""
Core utilities package.
"""

from enrollwatch.core.utils.logging import (
    configure_logging,
    log_function_call,
    log_operation,
)
from enrollwatch.core.utils.session_trigger import TriggerResult, should_analyze_session

__all__ = [
    "TriggerResult",
    "configure_logging",
    "log_function_call",
    "log_operation",
    "should_analyze_session",
]
