"""Structured logging configuration for the schema generator.

This module configures structlog for consistent, machine-readable logging
across the parser, the generators and the sync pipeline, with per-run and
per-document context carried through context variables.
"""

import logging
import sys
import time
from typing import Any

import structlog
from structlog.typing import EventDict


def add_app_context(
    _logger: Any, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application-specific context to log events."""
    event_dict["service"] = "armgen"
    event_dict["component"] = event_dict.get("logger", "unknown")
    return event_dict


def add_run_id(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    """Add the sync run identifier for tracing one pipeline run."""
    context_vars = structlog.contextvars.get_contextvars()
    run_id = context_vars.get("run_id")
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def configure_logging(
    environment: str = "development", log_level: str = "INFO", json_logs: bool = False
) -> None:
    """Configure structured logging for the application.

    Args:
        environment: Application environment (development/production)
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR)
        json_logs: Whether to output JSON format logs
    """
    # Logs go to stderr so generated source printed on stdout stays clean
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    if json_logs or environment == "production":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        add_run_id,
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for run tracing.

    Args:
        **kwargs: Context variables to bind (e.g., run_id, document)
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


class OperationTimer:
    """Helper for logging pipeline operation duration and outcome."""

    def __init__(
        self, logger: structlog.stdlib.BoundLogger, operation: str, **context: Any
    ):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self) -> "OperationTimer":
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Operation started", operation=self.operation, **self.context
        )
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.start_time is None:
            return

        self.duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is None:
            self.logger.debug(
                "Operation completed",
                operation=self.operation,
                duration_ms=self.duration_ms,
                **self.context,
            )
        else:
            self.logger.warning(
                "Operation failed",
                operation=self.operation,
                duration_ms=self.duration_ms,
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.context,
            )
