"""
EtlContext - the shared bag passed to every operation and node.

One context lives for exactly one pipeline execution.  It holds the
configuration, a mutable run-state map, the object pool, the logger and
connection factories, the error-decision function, and a log of every
error reported during the run.

Tier: Basic (conduit)

Design Principles:
- Shared: every concurrently running operation and node sees the same context
- Thread-safe: config, state, error log and pool are lock-guarded
- Injected: logging goes through the factory given at construction time

Example:
    from conduit.orchestration import EtlContext

    ctx = EtlContext.create(config={"batch_size": 500})
    ctx.state["rows_loaded"] = 0
    ctx.state.increment("rows_loaded", 10)
    log = ctx.get_logger("my.step")
    log.info("rows.loaded", rows=ctx.state["rows_loaded"])

Tags:
    conduit, orchestration, context, shared-state, thread-safe

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterator, MutableMapping, Sequence
from datetime import UTC, datetime
from typing import Any

from conduit.core.config import PipelineConfig
from conduit.core.connection import ConnectionFactory
from conduit.core.logging import Logger, LoggerFactory, NullLoggerFactory
from conduit.core.pool import ObjectPool
from conduit.orchestration.operation_result import OperationError

ErrorHandler = Callable[["EtlContext", Sequence[OperationError]], bool]


def abort_on_error(context: EtlContext, errors: Sequence[OperationError]) -> bool:
    """Default error policy: never continue."""
    return False


def continue_on_error(context: EtlContext, errors: Sequence[OperationError]) -> bool:
    """Error policy that absorbs every error."""
    return True


class RunState(MutableMapping[str, Any]):
    """Thread-safe mapping of named mutable run state."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._values[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._values))

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def setdefault(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.setdefault(key, default)

    def increment(self, key: str, amount: int | float = 1) -> int | float:
        """Atomically add *amount* to a numeric entry (missing counts as 0)."""
        with self._lock:
            value = self._values.get(key, 0) + amount
            self._values[key] = value
            return value

    def update_with(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Atomically replace an entry with ``fn(current)``."""
        with self._lock:
            value = fn(self._values.get(key, default))
            self._values[key] = value
            return value

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)


class EtlContext:
    """
    Shared configuration/state/resource bag for one pipeline execution.

    Attributes:
        run_id: Unique identifier for this execution
        config: PipelineConfig (thread-safe key/value configuration)
        state: RunState (thread-safe mutable state)
        object_pool: ObjectPool shared by all nodes
        connections: ConnectionFactory resolving named connections
        error_handler: Decides continue (True) / abort (False) on errors
        started_at: When the context was created
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        logger_factory: LoggerFactory | None = None,
        connection_factory: ConnectionFactory | None = None,
        object_pool: ObjectPool | None = None,
        error_handler: ErrorHandler | None = None,
        run_id: str | None = None,
    ) -> None:
        self.run_id = run_id or str(uuid.uuid4())
        self.config = config if config is not None else PipelineConfig()
        self.state = RunState()
        self.object_pool = object_pool or ObjectPool()
        self.connections = connection_factory or ConnectionFactory(self.config)
        self.error_handler: ErrorHandler = error_handler or abort_on_error
        self.started_at = datetime.now(UTC)
        self._logger_factory: LoggerFactory = logger_factory or NullLoggerFactory()
        self._errors_lock = threading.Lock()
        self._errors: list[OperationError] = []

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def create(
        cls,
        config: dict[str, Any] | PipelineConfig | None = None,
        **kwargs: Any,
    ) -> EtlContext:
        """Create a context from a plain dict or an existing PipelineConfig."""
        if config is not None and not isinstance(config, PipelineConfig):
            config = PipelineConfig(config)
        return cls(config, **kwargs)

    # =========================================================================
    # Resource factories
    # =========================================================================

    def get_logger(self, name: str) -> Logger:
        return self._logger_factory(name)

    @property
    def logger_factory(self) -> LoggerFactory:
        return self._logger_factory

    def create_named_connection(self, name: str) -> Any:
        """Open a new, unshared connection for *name*."""
        return self.connections.create_named_connection(name)

    # =========================================================================
    # Error log
    # =========================================================================

    def report_errors(self, errors: Sequence[OperationError]) -> None:
        with self._errors_lock:
            self._errors.extend(errors)

    @property
    def errors(self) -> list[OperationError]:
        with self._errors_lock:
            return list(self._errors)

    # =========================================================================
    # Lifetime
    # =========================================================================

    def close(self) -> None:
        """Release the pool and any cached connection engines."""
        self.object_pool.deallocate()
        self.connections.dispose()

    def __repr__(self) -> str:
        return f"EtlContext(run_id={self.run_id!r}, config_keys={len(self.config)}, state_keys={len(self.state)})"


__all__ = [
    "EtlContext",
    "RunState",
    "ErrorHandler",
    "abort_on_error",
    "continue_on_error",
]
