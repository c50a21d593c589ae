"""
Structured logging for redeploy.

Every module logs dotted event names with key/value context through
structlog::

    from redeploy.core.logging import configure_logging, get_logger

    configure_logging(level="INFO", service="redeploy")
    logger = get_logger(__name__)
    logger.info("step.started", step="wasp_build")

Log lines are written to stderr. Stdout belongs to the coloured progress
output and to ``--json`` results, which must stay machine readable.
Rendering is JSON when stderr is not a terminal, unless ``json_format``
says otherwise.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service = "redeploy"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", _service)
    return event_dict


def _processors(json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_service,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_format:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "redeploy",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the current process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: True for JSON, False for console, None to decide from stderr.
        service: Value of the ``service`` key on every event.
        add_timestamp: Prefix events with a UTC ISO timestamp.
    """
    global _service
    _service = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    structlog.configure(
        processors=_processors(json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind keys (typically ``run_id``) for the duration of a ``with`` block.

    Example:
        with LogContext(run_id=config.run_id):
            sequencer.run()
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self._context)


__all__ = [
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
