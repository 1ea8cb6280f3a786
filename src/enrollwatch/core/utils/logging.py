"""
Structured logging utilities.

Logging setup for the stdlib and structlog loggers, plus helpers that log
an operation's start, outcome and latency.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Callable  # noqa: TCH003
from contextlib import asynccontextmanager
from functools import wraps
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from enrollwatch.core.config.logging_config import LoggingConfig

logger = logging.getLogger(__name__)


def configure_logging(logging_config: LoggingConfig) -> None:
    """
    Configure stdlib logging and route structlog through it.

    Args:
        logging_config: Level, format and optional file target.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if logging_config.file_path:
        handlers.append(logging.FileHandler(logging_config.file_path))

    logging.basicConfig(
        level=logging_config.level.upper(),
        format=logging_config.format,
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@asynccontextmanager
async def log_operation(
    operation: str,
    subject_ids: dict[str, str] | None = None,
    **context: Any,
) -> Any:  # AsyncGenerator[None, None]
    """
    Log an operation's start, completion or failure with its latency.

    Args:
        operation: Name of the operation being performed
        subject_ids: Identifiers of what is being operated on (e.g. {"tenant": "t1", "session": "s1"})
        **context: Additional context attached to every record

    Example:
        async with log_operation("session_analysis", subject_ids={"session": session_id}):
            events = await repository.get_session_events(tenant_id, session_id)
    """
    log_context = {"operation": operation, **(subject_ids or {}), **context}
    started = time.monotonic()

    logger.info(f"🚀 Starting {operation}", extra=log_context)

    try:
        yield
    except Exception as e:
        latency_ms = _elapsed_ms(started)
        logger.error(
            f"❌ {operation} failed after {latency_ms}ms",
            extra={**log_context, "error": str(e), "latency_ms": latency_ms},
            exc_info=True,
        )
        raise

    latency_ms = _elapsed_ms(started)
    logger.info(f"✅ {operation} completed in {latency_ms}ms", extra={**log_context, "latency_ms": latency_ms})


def _log_call_failure(op_name: str, started: float, error: Exception) -> None:
    logger.error(f"❌ {op_name} failed after {_elapsed_ms(started)}ms: {error}", exc_info=True)


def log_function_call(operation: str | None = None) -> Any:
    """
    Decorator logging each call of a sync or async function with its latency.

    Args:
        operation: Name used in the log records (defaults to the function name)

    Example:
        @log_function_call(operation="load_rules_file")
        def load_file(self, path):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        op_name = operation or func.__name__

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.monotonic()
                logger.info(f"🚀 Calling {op_name}")
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_call_failure(op_name, started, e)
                    raise
                logger.info(f"✅ {op_name} completed in {_elapsed_ms(started)}ms")
                return result

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            logger.info(f"🚀 Calling {op_name}")
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_call_failure(op_name, started, e)
                raise
            logger.info(f"✅ {op_name} completed in {_elapsed_ms(started)}ms")
            return result

        return sync_wrapper

    return decorator
