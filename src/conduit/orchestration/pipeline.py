"""Pipeline engine — build an immutable step list, then execute it.

WHY
───
Building a pipeline performs no work.  ``PipelineBuilder`` collects
settings and steps; ``build()`` freezes them into a ``Pipeline`` whose
``execute()`` walks the steps through :func:`run_operation`, stops on the
first abort and always returns a :class:`PipelineResult`.

ARCHITECTURE
────────────
::

    PipelineBuilder (mutable)                     Pipeline (immutable)
      named / with_config / with_context_init       name, steps
      register_object_pool / on_error               execute(context=None)
      throw_on_error / use_existing_context   ──►     ├─ prepare context
      run / run_action / run_with_result              ├─ log header
      run_parallel / run_if / if_ / do().while_       ├─ run_operation(step) …
      build()                                         │    gc.collect() after each
                                                      │    stop on abort
                                                      └─ finally: pool stats, deallocate

BEST PRACTICES
──────────────
- Keep the default abort policy unless a step's failure is genuinely
  tolerable; use ``on_error`` to decide per error.
- Register a pool for every record type the nodes borrow.
- ``throw_on_error()`` is opt-in; by default ``execute()`` never raises.

Example::

    pipeline = (
        PipelineBuilder("nightly")
        .with_config(lambda cfg: cfg.set_connection_string("dw", "sqlite:///dw.db"))
        .register_object_pool(Record, 1000)
        .run(ExecuteSqlOperation("truncate", "dw", "DELETE FROM staging"))
        .run(load_process)
        .run_if(lambda ctx: ctx.state.get("rows", 0) > 0, publish)
        .build()
    )
    result = pipeline.execute()
"""

from __future__ import annotations

import copy
import gc
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from conduit.core.config import PipelineConfig
from conduit.core.connection import ConnectionFactory
from conduit.core.errors import PipelineAbortedError, ValidationError
from conduit.core.logging import LogContext, LoggerFactory, NullLoggerFactory
from conduit.core.result import Err, try_result
from conduit.core.settings import ConduitSettings, get_settings
from conduit.orchestration.context import ErrorHandler, EtlContext, abort_on_error
from conduit.orchestration.operation_result import OperationError, PipelineResult
from conduit.orchestration.operations import (
    ActionOperation,
    ConditionalOperation,
    DeferredOperation,
    DoWhileOperation,
    Operation,
    ParallelOperation,
    ResultHandlerOperation,
    SequenceOperation,
    run_operation,
)

LOGGER_NAME = "conduit.pipeline"

ConfigInitializer = Callable[[PipelineConfig], Any]
ContextInitializer = Callable[[EtlContext], Any]
ConnectionFactoryProvider = Callable[[PipelineConfig], ConnectionFactory]
Predicate = Callable[[EtlContext], bool]


@dataclass(frozen=True)
class PoolRegistration:
    record_type: type
    initial_size: int
    auto_grow: bool


# =============================================================================
# Pipeline (built)
# =============================================================================


class Pipeline:
    """An immutable, executable step list."""

    def __init__(
        self,
        name: str,
        steps: Sequence[Operation],
        *,
        config_initializers: Sequence[ConfigInitializer] = (),
        context_initializers: Sequence[ContextInitializer] = (),
        pool_registrations: Sequence[PoolRegistration] = (),
        error_handler: ErrorHandler = abort_on_error,
        throw_on_error: bool = False,
        existing_context: EtlContext | None = None,
        logger_factory: LoggerFactory | None = None,
        connection_factory: ConnectionFactoryProvider | None = None,
        settings: ConduitSettings | None = None,
    ) -> None:
        self.name = name
        self._steps = tuple(steps)
        self._config_initializers = tuple(config_initializers)
        self._context_initializers = tuple(context_initializers)
        self._pool_registrations = tuple(pool_registrations)
        self._error_handler = error_handler
        self._throw_on_error = throw_on_error
        self._existing_context = existing_context
        self._logger_factory = logger_factory or NullLoggerFactory()
        self._connection_factory = connection_factory or ConnectionFactory
        self._settings = settings or get_settings()

    @staticmethod
    def builder(name: str | None = None) -> PipelineBuilder:
        return PipelineBuilder(name)

    @property
    def steps(self) -> tuple[Operation, ...]:
        return self._steps

    def as_operation(self, name: str | None = None) -> SequenceOperation:
        """This pipeline's steps as a single step of another pipeline.

        The steps run in the outer pipeline's context under its error policy.
        """
        return SequenceOperation(name or self.name, self._steps)

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(self, context: EtlContext | None = None) -> PipelineResult:
        """Run every step in order, stopping on the first abort.

        Raises:
            PipelineAbortedError: Only when built with ``throw_on_error()``
                and the run did not succeed.
        """
        context = context or self._existing_context or self._create_context()
        context.error_handler = self._error_handler
        log = context.get_logger(LOGGER_NAME)

        result = PipelineResult(
            pipeline=self.name,
            run_id=context.run_id,
            started_at=datetime.now(UTC),
        )
        start = time.perf_counter()

        with LogContext(pipeline=self.name, run_id=context.run_id):
            try:
                if self._initialize(context, result, log):
                    self._print_header(log)
                    self._run_steps(context, result, log)
            finally:
                self._release(context, log)
                result.completed_at = datetime.now(UTC)
                result.elapsed_seconds = time.perf_counter() - start

            log.info(
                "pipeline.complete",
                success=result.success,
                steps=len(result.step_results),
                errors=len(result.errors),
                aborted_on=result.aborted_on,
                elapsed_seconds=round(result.elapsed_seconds, 3),
            )

        if self._throw_on_error and not result.success:
            raise PipelineAbortedError(result)
        return result

    def _create_context(self) -> EtlContext:
        config = PipelineConfig()
        return EtlContext(
            config,
            logger_factory=self._logger_factory,
            connection_factory=self._connection_factory(config),
        )

    def _initialize(self, context: EtlContext, result: PipelineResult, log: Any) -> bool:
        identity = f"{self.name}.initialize"
        match try_result(lambda: self._apply_initializers(context)):
            case Err(exc):
                log.error("pipeline.initialize_failed", error=f"{type(exc).__name__}: {exc}")
                error = OperationError.from_exception(identity, exc)
                context.report_errors([error])
                result.errors.append(error)
                result.aborted_on = identity
                return False
        return True

    def _apply_initializers(self, context: EtlContext) -> None:
        for initializer in self._config_initializers:
            initializer(context.config)
        for initializer in self._context_initializers:
            initializer(context)
        for registration in self._pool_registrations:
            if not context.object_pool.is_registered(registration.record_type):
                context.object_pool.register(
                    registration.record_type,
                    registration.initial_size,
                    registration.auto_grow,
                )

    def _print_header(self, log: Any) -> None:
        log.info(
            "pipeline.start",
            steps=[step.name for step in self._steps],
            step_count=len(self._steps),
        )

    def _run_steps(self, context: EtlContext, result: PipelineResult, log: Any) -> None:
        total = len(self._steps)
        for index, step in enumerate(self._steps, start=1):
            log.info("pipeline.step", step=step.name, index=index, total=total)
            step_result = run_operation(step, context)
            result.step_results.append(step_result)
            result.errors.extend(step_result.errors)

            if self._settings.collect_garbage_between_steps:
                gc.collect()

            if step_result.abort is not None:
                result.aborted_on = step_result.abort.operation
                log.error(
                    "pipeline.aborted",
                    step=step.name,
                    aborted_on=result.aborted_on,
                    errors=[str(e) for e in step_result.abort.errors],
                )
                return

    def _release(self, context: EtlContext, log: Any) -> None:
        for pool in context.object_pool.pools:
            log.debug(
                "pool.stats",
                record_type=pool.record_type.__name__,
                capacity=pool.capacity,
                free=pool.free,
                referenced=pool.referenced,
            )
        context.close()

    def __repr__(self) -> str:
        return f"Pipeline({self.name!r}, steps={len(self._steps)})"


# =============================================================================
# Builders
# =============================================================================


class StepListBuilder:
    """Step verbs shared by the pipeline builder and nested blocks."""

    def __init__(self, settings: ConduitSettings | None = None) -> None:
        self._settings = settings or get_settings()
        self._steps: list[Operation] = []
        self._open_loops = 0

    def _add(self, operation: Operation) -> None:
        self._steps.append(operation)

    def _block(self, configure: Callable[[StepListBuilder], Any]) -> list[Operation]:
        block = StepListBuilder(self._settings)
        configure(block)
        block._check_closed()
        return block._steps

    def _check_closed(self) -> None:
        if self._open_loops:
            raise ValidationError("do() block without a matching while_()", field="steps")

    def run(
        self,
        operation: Operation | Pipeline | Callable[[EtlContext], Operation],
        name: str | None = None,
    ):
        """Add a step.

        Accepts an Operation, a built Pipeline (run as a nested step) or a
        factory ``fn(context) -> Operation`` evaluated at execution time.
        With *name*, the step is a renamed copy; the given operation keeps
        its own name.
        """
        if isinstance(operation, Pipeline):
            step = operation.as_operation(name)
        elif isinstance(operation, Operation):
            step = copy.copy(operation).named(name) if name else operation
        elif callable(operation):
            step = DeferredOperation(operation, name)
        else:
            raise ValidationError(
                f"Cannot run {type(operation).__name__}; expected an Operation, Pipeline or callable",
                field="operation",
            )
        self._add(step)
        return self

    def run_action(self, fn: Callable[[EtlContext], Any], name: str | None = None):
        """Add a void step backed by ``fn(context)``."""
        self._add(ActionOperation(fn, name))
        return self

    def run_with_result(self, operation: Operation, handler: Callable[[EtlContext, Any], Any]):
        """Add a scalar/enumerable step whose value is passed to ``handler(context, value)``."""
        self._add(ResultHandlerOperation(operation, handler))
        return self

    def run_parallel(self, *operations: Operation, name: str | None = None):
        if not operations:
            raise ValidationError("run_parallel() needs at least one operation", field="operations")
        self._add(
            ParallelOperation(operations, name=name, max_workers=self._settings.max_parallelism)
        )
        return self

    def run_if(self, predicate: Predicate, operation: Operation):
        self._add(ConditionalOperation(predicate, operation))
        return self

    def if_(self, predicate: Predicate, configure: Callable[[StepListBuilder], Any]):
        """Every step added inside *configure* runs only when *predicate* holds."""
        for operation in self._block(configure):
            self._add(ConditionalOperation(predicate, operation))
        return self

    def do(self, configure: Callable[[StepListBuilder], Any], name: str | None = None) -> DoWhileBuilder:
        """Start a do-while block; finish it with ``.while_(predicate)``."""
        body = self._block(configure)
        if not body:
            raise ValidationError("do() block is empty", field="steps")
        self._open_loops += 1
        return DoWhileBuilder(self, body, name)


class DoWhileBuilder:
    """Pending ``do(...)`` block waiting for its loop predicate."""

    def __init__(self, parent: StepListBuilder, body: list[Operation], name: str | None) -> None:
        self._parent = parent
        self._body = body
        self._name = name or f"do[{', '.join(op.name for op in body)}]"

    def while_(self, predicate: Predicate):
        """Close the block; returns the builder it was opened on."""
        self._parent._open_loops -= 1
        self._parent._add(DoWhileOperation(self._name, self._body, predicate))
        return self._parent


class PipelineBuilder(StepListBuilder):
    """Fluent, mutable description of a pipeline."""

    def __init__(self, name: str | None = None, *, settings: ConduitSettings | None = None) -> None:
        super().__init__(settings)
        self._name = name or "pipeline"
        self._config_initializers: list[ConfigInitializer] = []
        self._context_initializers: list[ContextInitializer] = []
        self._pool_registrations: list[PoolRegistration] = []
        self._error_handler: ErrorHandler = abort_on_error
        self._throw_on_error = False
        self._existing_context: EtlContext | None = None
        self._logger_factory: LoggerFactory | None = None
        self._connection_factory: ConnectionFactoryProvider | None = None

    def named(self, name: str) -> PipelineBuilder:
        self._name = name
        return self

    def with_config(self, initializer: ConfigInitializer) -> PipelineBuilder:
        """Populate the configuration before any step runs."""
        self._config_initializers.append(initializer)
        return self

    def with_context_initializer(self, initializer: ContextInitializer) -> PipelineBuilder:
        """Prepare the context (state, connections) after configuration."""
        self._context_initializers.append(initializer)
        return self

    def register_object_pool(
        self,
        record_type: type,
        initial_size: int | None = None,
        auto_grow: bool | None = None,
    ) -> PipelineBuilder:
        if initial_size is None:
            initial_size = self._settings.pool_initial_size
        if auto_grow is None:
            auto_grow = self._settings.pool_auto_grow
        if initial_size < 0:
            raise ValidationError(
                f"Pool initial_size must be >= 0, got {initial_size}", field="initial_size"
            )
        if any(r.record_type is record_type for r in self._pool_registrations):
            raise ValidationError(
                f"Object pool already registered for type '{record_type.__name__}'",
                field="record_type",
            )
        self._pool_registrations.append(PoolRegistration(record_type, initial_size, auto_grow))
        return self

    def on_error(self, handler: ErrorHandler) -> PipelineBuilder:
        """``handler(context, errors) -> bool``: True continues, False aborts."""
        self._error_handler = handler
        return self

    def throw_on_error(self) -> PipelineBuilder:
        """Make ``execute()`` raise PipelineAbortedError when the run fails."""
        self._throw_on_error = True
        return self

    def use_existing_context(self, context: EtlContext) -> PipelineBuilder:
        self._existing_context = context
        return self

    def with_logger_factory(self, factory: LoggerFactory) -> PipelineBuilder:
        self._logger_factory = factory
        return self

    def with_connection_factory(self, provider: ConnectionFactoryProvider) -> PipelineBuilder:
        """``provider(config) -> ConnectionFactory`` used for new contexts."""
        self._connection_factory = provider
        return self

    def build(self) -> Pipeline:
        """Freeze the builder into an executable Pipeline.

        Raises:
            ValidationError: No steps, or an unclosed do() block.
        """
        self._check_closed()
        if not self._steps:
            raise ValidationError(f"Pipeline '{self._name}' has no steps", field="steps")
        return Pipeline(
            self._name,
            self._steps,
            config_initializers=self._config_initializers,
            context_initializers=self._context_initializers,
            pool_registrations=self._pool_registrations,
            error_handler=self._error_handler,
            throw_on_error=self._throw_on_error,
            existing_context=self._existing_context,
            logger_factory=self._logger_factory,
            connection_factory=self._connection_factory,
            settings=self._settings,
        )


__all__ = [
    "Pipeline",
    "PipelineBuilder",
    "StepListBuilder",
    "DoWhileBuilder",
    "PoolRegistration",
]
