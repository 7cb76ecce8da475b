"""Conduit Core -- engine-independent primitives.

Architecture::

    errors.py       Structured error hierarchy (ConduitError, ExecutionError, ...)
    result.py       Ok / Err envelope and try_result()
    logging.py      structlog setup and injectable logger factories
    settings.py     ConduitSettings (pydantic-settings, CONDUIT_* env vars)
    config.py       PipelineConfig -- per-execution key/value configuration
    record.py       Record -- named-field container with typed accessors
    pool.py         ObjectPool / TypedPool -- borrow/return record pools
    connection.py   ConnectionFactory -- named DB-API connections
"""

from conduit.core.config import PipelineConfig
from conduit.core.connection import ConnectionFactory
from conduit.core.errors import (
    ConduitError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ExecutionError,
    PipelineAbortedError,
    PoolContractError,
    PoolError,
    PoolExhaustedError,
    PoolNotRegisteredError,
    RecordConversionError,
    StreamClosedError,
    ValidationError,
)
from conduit.core.logging import (
    LogContext,
    NullLogger,
    NullLoggerFactory,
    StructlogLoggerFactory,
    configure_logging,
    get_logger,
)
from conduit.core.pool import ObjectPool, TypedPool
from conduit.core.record import Record
from conduit.core.result import Err, Ok, Result, try_result
from conduit.core.settings import ConduitSettings, clear_settings_cache, get_settings

__all__ = [
    "PipelineConfig",
    "ConnectionFactory",
    "ConduitError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionError",
    "PipelineAbortedError",
    "PoolContractError",
    "PoolError",
    "PoolExhaustedError",
    "PoolNotRegisteredError",
    "RecordConversionError",
    "StreamClosedError",
    "ValidationError",
    "LogContext",
    "NullLogger",
    "NullLoggerFactory",
    "StructlogLoggerFactory",
    "configure_logging",
    "get_logger",
    "ObjectPool",
    "TypedPool",
    "Record",
    "Err",
    "Ok",
    "Result",
    "try_result",
    "ConduitSettings",
    "clear_settings_cache",
    "get_settings",
]
