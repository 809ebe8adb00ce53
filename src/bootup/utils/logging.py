"""Structured logging for BOOTUP.

Every module logs through ``get_logger(__name__)`` with snake_case event
names and keyword context. An upgrade run binds its ``run_id`` once with
``bound_run`` so each event of the run carries it.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "console": structlog.dev.ConsoleRenderer,
}


def _stream_for(output: str) -> TextIO:
    return sys.stdout if output == "stdout" else sys.stderr


def setup_logging(level: str = "INFO", format: str = "console", output: str = "stderr") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, case-insensitive; unknown names mean INFO
        format: ``json`` for machine-readable lines, anything else for console
        output: ``stdout`` or ``stderr``; console output of the CLI stays
            readable when logs go to the other stream
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = _stream_for(output)

    # Libraries (python-gitlab, kubernetes, botocore) log through stdlib;
    # handlers installed before this call are replaced.
    logging.basicConfig(format="%(message)s", stream=stream, level=log_level, force=True)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        processors += [structlog.processors.StackInfoRenderer(), structlog.processors.format_exc_info]
    processors.append(_RENDERERS.get(format, structlog.dev.ConsoleRenderer)())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger (pass ``__name__``)."""
    return structlog.get_logger(name)


@contextmanager
def bound_run(**context: Any) -> Iterator[None]:
    """Attach ``context`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**context):
        yield


def log_error(
    logger: structlog.BoundLogger,
    error: Exception,
    operation: str | None = None,
    **kwargs: Any,
) -> None:
    """Log a failure with its type and message as structured fields.

    Args:
        logger: Logger instance
        error: The exception being reported
        operation: What was being done (for upgrades, the state whose step failed)
        **kwargs: Additional context fields
    """
    context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }
    if operation:
        context["operation"] = operation

    logger.error("error_occurred", **context)
