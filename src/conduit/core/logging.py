"""
Conduit Logging - structured logging with an injectable logger factory.

Pipelines never reach for a process-wide logger.  Each execution context
is constructed with a ``LoggerFactory``; engine components ask the context
for a logger by component name.  The default factory is a no-op so a bare
pipeline prints nothing, and ``StructlogLoggerFactory`` plugs in structlog.

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │ configure_logging()   level/format from CONDUIT_LOG_*      │
        │     ↓                                                      │
        │ structlog configured with processor chain:                 │
        │   1. TimeStamper(iso)                                      │
        │   2. add_log_level / add_logger_name                       │
        │   3. merge_contextvars  (pipeline, run_id from LogContext) │
        │   4. JSONRenderer (log_format="json") or ConsoleRenderer   │
        └────────────────────────────────────────────────────────────┘

        ┌────────────────────────────────────────────────────────────┐
        │ PipelineBuilder().with_logger_factory(StructlogLoggerFactory())│
        │     ↓                                                      │
        │ EtlContext.get_logger("conduit.pipeline")                  │
        │     ↓                                                      │
        │ logger.info("pipeline.step", step="load", index=1)         │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> from conduit.core.logging import configure_logging, StructlogLoggerFactory
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> factory = StructlogLoggerFactory()
    >>> factory("conduit.pipeline").info("pipeline.start", steps=3)

Guardrails:
    ❌ DON'T: Import a module-level logger inside engine code
    ✅ DO: Use context.get_logger(name) so the injected factory is honoured

Tags:
    logging, structlog, observability, logger-factory, conduit
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

import structlog
from structlog.types import Processor

from conduit.core.settings import get_settings


class Logger(Protocol):
    """Leveled logger contract used by the engine."""

    def debug(self, event: str, **kwargs: Any) -> Any: ...

    def info(self, event: str, **kwargs: Any) -> Any: ...

    def warning(self, event: str, **kwargs: Any) -> Any: ...

    def error(self, event: str, **kwargs: Any) -> Any: ...

    def exception(self, event: str, **kwargs: Any) -> Any: ...


class LoggerFactory(Protocol):
    """Returns a logger for a component name."""

    def __call__(self, name: str) -> Logger: ...


class NullLogger:
    """Logger that discards everything."""

    def debug(self, event: str, **kwargs: Any) -> None:
        pass

    def info(self, event: str, **kwargs: Any) -> None:
        pass

    def warning(self, event: str, **kwargs: Any) -> None:
        pass

    warn = warning

    def error(self, event: str, **kwargs: Any) -> None:
        pass

    def exception(self, event: str, **kwargs: Any) -> None:
        pass

    def bind(self, **kwargs: Any) -> NullLogger:
        return self


_NULL_LOGGER = NullLogger()


class NullLoggerFactory:
    """Default factory: every component gets the shared no-op logger."""

    def __call__(self, name: str) -> NullLogger:
        return _NULL_LOGGER


class StructlogLoggerFactory:
    """Factory backed by structlog, optionally binding fixed fields."""

    def __init__(self, **bound: Any) -> None:
        self._bound = bound

    def __call__(self, name: str) -> Any:
        logger = structlog.get_logger(name)
        if self._bound:
            logger = logger.bind(**self._bound)
        return logger


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog rendering for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to
            ``ConduitSettings.log_level``
        json_format: True for JSON, False for console; defaults to
            ``ConduitSettings.log_format == "json"``
        add_timestamp: Include ISO timestamp in logs
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.log_format.lower() == "json"

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level)
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger directly (outside of a pipeline context)."""
    return structlog.get_logger(name)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(pipeline="nightly", run_id="abc123"):
            logger.info("step_started")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._context.keys())


__all__ = [
    "Logger",
    "LoggerFactory",
    "NullLogger",
    "NullLoggerFactory",
    "StructlogLoggerFactory",
    "configure_logging",
    "get_logger",
    "LogContext",
]
