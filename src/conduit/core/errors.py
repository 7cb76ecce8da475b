"""
Structured error types for the conduit pipeline engine.

Every fault the engine raises or records is a ``ConduitError``.  Instead of
generic exceptions that lose context, each error carries:

- **Category:** What kind of error (validation, execution, pool, config)
- **Context:** Which pipeline, operation or node was involved
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Fail fast at build time:** Misconfiguration surfaces as
      ``ValidationError`` before any work starts
    - **Never lose the faulting identity:** ``ExecutionError`` always names
      the operation or node that failed
    - **Errors are data at run time:** The engine records errors on results
      rather than letting them escape ``Pipeline.execute()``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       ConduitError                           │
        │              (category, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ValidationError        ConfigError       ExecutionError     │
        │  (VALIDATION)           (CONFIG)          (EXECUTION)        │
        │       │                                        │             │
        │  PoolNotRegisteredError               PipelineAbortedError   │
        │  RecordConversionError                                       │
        │                                                              │
        │  PoolError (POOL)                                            │
        │       │                                                      │
        │  PoolExhaustedError    PoolContractError                     │
        │                                                              │
        │  StreamClosedError (INTERNAL)                                │
        └─────────────────────────────────────────────────────────────┘

Examples:
    Wrapping a fault raised by user code:

    >>> try:
    ...     raise KeyError("customer_id")
    ... except KeyError as e:
    ...     error = ExecutionError("load failed", identity="load_customers", cause=e)
    >>> error.identity
    'load_customers'
    >>> error.to_dict()["category"]
    'EXECUTION'

Guardrails:
    ❌ DON'T: Raise ExecutionError from builders
    ✅ DO: Raise ValidationError for anything detectable before execution

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, conduit

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    VALIDATION = "VALIDATION"     # Bad build-time configuration
    CONFIG = "CONFIG"             # Missing/invalid configuration keys
    EXECUTION = "EXECUTION"       # Fault during an operation or node run
    POOL = "POOL"                 # Object pool misuse or exhaustion
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        pipeline: Name of the pipeline being executed
        operation: Operation identity where the error occurred
        node: Node identity inside a process, if any
        run_id: Pipeline run identifier
        metadata: Additional key-value pairs
    """

    pipeline: str | None = None
    operation: str | None = None
    node: str | None = None
    run_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["pipeline", "operation", "node", "run_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ConduitError(Exception):
    """
    Base exception for all conduit errors.

    Subclasses set ``default_category`` to classify themselves.  Extra
    metadata can be attached fluently with :meth:`with_context`.

    Examples:
        >>> error = ConduitError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(pipeline="nightly").context.pipeline
        'nightly'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ConduitError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ConfigError("missing key").with_context(pipeline="nightly")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# BUILD-TIME ERRORS
# =============================================================================


class ValidationError(ConduitError):
    """
    Bad build-time configuration.

    Raised by builders and registration calls before any execution starts.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class PoolNotRegisteredError(ValidationError):
    """No object pool was registered for the requested type."""

    def __init__(self, record_type: type):
        self.record_type = record_type
        super().__init__(f"No object pool registered for type '{record_type.__name__}'")


class RecordConversionError(ValidationError):
    """A typed field read could not convert the stored value."""

    def __init__(self, field_name: str, value: Any, target: type, cause: BaseException | None = None):
        self.value = value
        self.target = target
        super().__init__(
            f"Field '{field_name}' value {value!r} cannot be converted to {target.__name__}",
            field=field_name,
            cause=cause,
        )


class ConfigError(ConduitError):
    """Missing or invalid configuration value."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, key: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.key = key


# =============================================================================
# RUN-TIME ERRORS
# =============================================================================


class ExecutionError(ConduitError):
    """
    Fault during an operation or node run.

    ``identity`` is the name of the faulting operation (or
    ``"<process>/<node>"`` for a node inside a process).
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(self, message: str, *, identity: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.identity = identity
        if self.context.operation is None:
            self.context.operation = identity

    @classmethod
    def wrap(cls, identity: str, exc: BaseException) -> ExecutionError:
        """Wrap an arbitrary fault, keeping an existing ExecutionError as-is."""
        if isinstance(exc, ExecutionError):
            return exc
        return cls(f"{type(exc).__name__}: {exc}", identity=identity, cause=exc)


class PipelineAbortedError(ExecutionError):
    """Raised from ``Pipeline.execute()`` only when ``throw_on_error()`` is set."""

    def __init__(self, result: Any):
        self.result = result
        super().__init__(
            f"Pipeline '{result.pipeline}' aborted on '{result.aborted_on}'",
            identity=result.aborted_on or result.pipeline,
        )


# =============================================================================
# POOL ERRORS
# =============================================================================


class PoolError(ConduitError):
    """Base for object pool errors."""

    default_category = ErrorCategory.POOL


class PoolExhaustedError(PoolError):
    """Borrow requested with no free instance and growth disabled."""

    def __init__(self, record_type: type, capacity: int):
        self.record_type = record_type
        self.capacity = capacity
        super().__init__(
            f"Object pool for '{record_type.__name__}' exhausted (capacity={capacity}, auto_grow=False)"
        )


class PoolContractError(PoolError):
    """An instance was returned that the pool did not issue, or was returned twice."""


# =============================================================================
# STREAMING ERRORS
# =============================================================================


class StreamClosedError(ConduitError):
    """A record was put into an adapter after its end-of-stream."""

    default_category = ErrorCategory.INTERNAL

    def __init__(self, adapter: str):
        self.adapter = adapter
        super().__init__(f"Adapter '{adapter}' already signalled end-of-stream")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ConduitError",
    "ValidationError",
    "PoolNotRegisteredError",
    "RecordConversionError",
    "ConfigError",
    "ExecutionError",
    "PipelineAbortedError",
    "PoolError",
    "PoolExhaustedError",
    "PoolContractError",
    "StreamClosedError",
]
