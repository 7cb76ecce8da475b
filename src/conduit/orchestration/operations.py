"""Operations — the polymorphic unit of work and its composites.

WHY
───
A pipeline is a tree of operations.  Leaves do work (returning nothing, a
scalar, or an enumerable); composites sequence, branch, loop and
parallelize other operations; processes stream records between nodes.
All of them share ``execute(context) -> OperationResult`` so the engine is
one recursive rule, :func:`run_operation`.

ARCHITECTURE
────────────
::

    Operation (ABC)                       execute(context) -> OperationResult
      ├── ActionOperation      VOID        fn(ctx) -> None
      ├── ScalarOperation      SCALAR      fn(ctx) -> value
      ├── EnumerableOperation  ENUMERABLE  fn(ctx) -> iterable  (materialized)
      ├── SequenceOperation    COMPOSITE   in order, stop on abort
      ├── ConditionalOperation COMPOSITE   skip (success) when predicate false
      ├── DoWhileOperation     COMPOSITE   body ≥ once, re-check after each pass
      ├── ParallelOperation    COMPOSITE   all members concurrently, wait for all
      ├── ResultHandlerOperation           hand a leaf's value to a callback
      ├── DeferredOperation                build the operation from the context
      └── Process (streaming.process)      concurrent node chain

    run_operation(op, ctx)
      1. try_result(op.execute)      raised fault → ExecutionError(op.name)
      2. undecided errors            → ctx.error_handler(ctx, errors)
             True  → errors absorbed, continue
             False → AbortSignal(op.name, errors) attached to the result
      3. op.close() if defined       scoped release

An abort is a value on the result.  Composites stop scheduling further
members once a member result carries one and pass it upward unchanged;
running parallel siblings are never preempted.

Example::

    seq = SequenceOperation("load", [
        ActionOperation(truncate_staging, name="truncate"),
        ConditionalOperation(lambda ctx: ctx.config.get_bool("full", False),
                             ActionOperation(rebuild_indexes, name="reindex")),
    ])
    result = run_operation(seq, EtlContext())
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Any

from conduit.core.result import Err, Ok, try_result
from conduit.orchestration.context import EtlContext
from conduit.orchestration.operation_result import AbortSignal, OperationResult

LOGGER_NAME = "conduit.operations"

Predicate = Callable[[EtlContext], bool]


class ResultKind(str, Enum):
    """What an operation produces."""

    VOID = "void"
    SCALAR = "scalar"
    ENUMERABLE = "enumerable"
    COMPOSITE = "composite"
    PROCESS = "process"


class Operation(ABC):
    """Base class for every unit of work."""

    result_kind: ResultKind = ResultKind.VOID

    def __init__(self, name: str | None = None) -> None:
        self.name = name or type(self).__name__

    def named(self, name: str) -> Operation:
        """Rename the operation (fluent)."""
        self.name = name
        return self

    @property
    def operations(self) -> tuple[Operation, ...]:
        """Ordered sub-operations (empty for leaves)."""
        return ()

    @abstractmethod
    def execute(self, context: EtlContext) -> OperationResult:
        """Run the operation against *context*."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


# =============================================================================
# Engine rule
# =============================================================================


def run_operation(operation: Operation, context: EtlContext) -> OperationResult:
    """Execute *operation* with fault capture, error policy and release.

    Never raises for faults inside the operation; they come back as
    errors on the returned result.
    """
    log = context.get_logger(LOGGER_NAME)
    log.debug("operation.start", operation=operation.name, kind=operation.result_kind.value)

    try:
        match try_result(lambda: operation.execute(context)):
            case Ok(result) if isinstance(result, OperationResult):
                pass
            case Ok(other):
                result = OperationResult.from_exception(
                    operation.name,
                    TypeError(f"execute() returned {type(other).__name__}, expected OperationResult"),
                )
            case Err(exc):
                log.error(
                    "operation.exception",
                    operation=operation.name,
                    error=f"{type(exc).__name__}: {exc}",
                )
                result = OperationResult.from_exception(operation.name, exc)

        if result.errors and not result.decided:
            result = _decide(operation, result, context)
    finally:
        _release(operation, context)

    log.debug(
        "operation.complete",
        operation=operation.name,
        success=result.success,
        errors=len(result.errors),
        aborted=result.aborted,
    )
    return result


def _decide(operation: Operation, result: OperationResult, context: EtlContext) -> OperationResult:
    log = context.get_logger(LOGGER_NAME)
    context.report_errors(result.errors)

    match try_result(lambda: bool(context.error_handler(context, result.errors))):
        case Ok(proceed):
            pass
        case Err(exc):
            log.error(
                "operation.error_handler_failed",
                operation=operation.name,
                error=f"{type(exc).__name__}: {exc}",
            )
            proceed = False

    if proceed:
        log.warning(
            "operation.error_absorbed",
            operation=operation.name,
            errors=[str(e) for e in result.errors],
        )
        return result.with_decision(tuple(e.absorb() for e in result.errors))

    log.error(
        "operation.abort",
        operation=operation.name,
        errors=[str(e) for e in result.errors],
    )
    return result.with_abort(AbortSignal(operation.name, result.errors))


def _own_fault(operation: Operation, context: EtlContext, exc: Exception) -> OperationResult:
    """Record a fault raised by a composite's own code (predicate, handler, factory)."""
    context.get_logger(LOGGER_NAME).error(
        "operation.exception",
        operation=operation.name,
        error=f"{type(exc).__name__}: {exc}",
    )
    return _decide(operation, OperationResult.from_exception(operation.name, exc), context)


def _release(operation: Operation, context: EtlContext) -> None:
    close = getattr(operation, "close", None)
    if not callable(close):
        return
    context.get_logger(LOGGER_NAME).debug("operation.release", operation=operation.name)
    match try_result(close):
        case Err(exc):
            context.get_logger(LOGGER_NAME).warning(
                "operation.release_failed",
                operation=operation.name,
                error=f"{type(exc).__name__}: {exc}",
            )


# =============================================================================
# Leaves
# =============================================================================


class ActionOperation(Operation):
    """Void leaf backed by a function ``fn(context) -> None``."""

    result_kind = ResultKind.VOID

    def __init__(self, fn: Callable[[EtlContext], Any], name: str | None = None) -> None:
        super().__init__(name or getattr(fn, "__name__", None))
        self._fn = fn

    def execute(self, context: EtlContext) -> OperationResult:
        self._fn(context)
        return OperationResult.ok(self.name)


class ScalarOperation(Operation):
    """Leaf producing a single value ``fn(context) -> value``."""

    result_kind = ResultKind.SCALAR

    def __init__(self, fn: Callable[[EtlContext], Any], name: str | None = None) -> None:
        super().__init__(name or getattr(fn, "__name__", None))
        self._fn = fn

    def execute(self, context: EtlContext) -> OperationResult:
        return OperationResult.ok(self.name, self._fn(context))


class EnumerableOperation(Operation):
    """Leaf producing a sequence ``fn(context) -> iterable``; materialized as a list."""

    result_kind = ResultKind.ENUMERABLE

    def __init__(self, fn: Callable[[EtlContext], Iterable[Any]], name: str | None = None) -> None:
        super().__init__(name or getattr(fn, "__name__", None))
        self._fn = fn

    def execute(self, context: EtlContext) -> OperationResult:
        return OperationResult.ok(self.name, list(self._fn(context)))


# =============================================================================
# Composites
# =============================================================================


class SequenceOperation(Operation):
    """Runs members in order; stops early only on abort."""

    result_kind = ResultKind.COMPOSITE

    def __init__(self, name: str, operations: Sequence[Operation]) -> None:
        super().__init__(name)
        self._operations = tuple(operations)

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    def execute(self, context: EtlContext) -> OperationResult:
        results: list[OperationResult] = []
        for operation in self._operations:
            result = run_operation(operation, context)
            results.append(result)
            if result.aborted:
                break
        return OperationResult.aggregate(self.name, results)


class ConditionalOperation(Operation):
    """Runs the wrapped operation only when ``predicate(context)`` is true.

    A false predicate reports success with no errors and the wrapped
    operation is not touched at all.
    """

    result_kind = ResultKind.COMPOSITE

    def __init__(self, predicate: Predicate, operation: Operation, name: str | None = None) -> None:
        super().__init__(name or f"if({operation.name})")
        self._predicate = predicate
        self._operation = operation

    @property
    def operations(self) -> tuple[Operation, ...]:
        return (self._operation,)

    def execute(self, context: EtlContext) -> OperationResult:
        if not self._predicate(context):
            context.get_logger(LOGGER_NAME).debug(
                "operation.skipped", operation=self._operation.name, reason="predicate_false"
            )
            return OperationResult.skipped(self.name)
        result = run_operation(self._operation, context)
        return OperationResult.aggregate(self.name, [result], value=result.value)


class DoWhileOperation(Operation):
    """Do-while loop over an ordered body.

    The whole body runs at least once; ``predicate(context)`` is evaluated
    after each complete pass and the loop repeats while it is true.  The
    result value is the number of completed passes.  A predicate fault
    ends the loop and is recorded after the body results.
    """

    result_kind = ResultKind.COMPOSITE

    def __init__(self, name: str, operations: Sequence[Operation], predicate: Predicate) -> None:
        super().__init__(name)
        self._operations = tuple(operations)
        self._predicate = predicate

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    def execute(self, context: EtlContext) -> OperationResult:
        log = context.get_logger(LOGGER_NAME)
        results: list[OperationResult] = []
        passes = 0
        while True:
            for operation in self._operations:
                result = run_operation(operation, context)
                results.append(result)
                if result.aborted:
                    return OperationResult.aggregate(self.name, results, value=passes)
            passes += 1
            log.debug("loop.pass_complete", operation=self.name, passes=passes)
            match try_result(lambda: bool(self._predicate(context))):
                case Ok(True):
                    continue
                case Ok(False):
                    break
                case Err(exc):
                    results.append(_own_fault(self, context, exc))
                    break
        return OperationResult.aggregate(self.name, results, value=passes)


class ParallelOperation(Operation):
    """Starts every member concurrently and waits for all of them.

    A failing or aborting member never preempts its siblings.  Member
    results (and therefore errors) are collected in completion order.
    """

    result_kind = ResultKind.COMPOSITE

    def __init__(
        self,
        operations: Sequence[Operation],
        name: str | None = None,
        max_workers: int | None = None,
    ) -> None:
        operations = tuple(operations)
        super().__init__(name or f"parallel[{', '.join(op.name for op in operations)}]")
        self._operations = operations
        self._max_workers = max_workers

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    def execute(self, context: EtlContext) -> OperationResult:
        if not self._operations:
            return OperationResult.aggregate(self.name, [])

        results: list[OperationResult] = []
        workers = self._max_workers or len(self._operations)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="conduit-parallel") as executor:
            futures = [executor.submit(run_operation, op, context) for op in self._operations]
            for future in as_completed(futures):
                results.append(future.result())
        return OperationResult.aggregate(self.name, results)


class ResultHandlerOperation(Operation):
    """Runs a scalar/enumerable operation and hands its value to ``handler``.

    The handler is only called when the wrapped operation produced no
    errors.  A handler fault is recorded against this operation next to
    the wrapped result.
    """

    result_kind = ResultKind.COMPOSITE

    def __init__(
        self,
        operation: Operation,
        handler: Callable[[EtlContext, Any], Any],
        name: str | None = None,
    ) -> None:
        super().__init__(name or operation.name)
        self._operation = operation
        self._handler = handler

    @property
    def operations(self) -> tuple[Operation, ...]:
        return (self._operation,)

    def execute(self, context: EtlContext) -> OperationResult:
        result = run_operation(self._operation, context)
        results = [result]
        if not result.errors and not result.aborted:
            match try_result(lambda: self._handler(context, result.value)):
                case Err(exc):
                    results.append(_own_fault(self, context, exc))
        return OperationResult.aggregate(self.name, results, value=result.value)


class DeferredOperation(Operation):
    """Builds the real operation from the context when executed."""

    result_kind = ResultKind.COMPOSITE

    def __init__(self, factory: Callable[[EtlContext], Operation], name: str | None = None) -> None:
        super().__init__(name or getattr(factory, "__name__", None) or "deferred")
        self._factory = factory

    def execute(self, context: EtlContext) -> OperationResult:
        match try_result(lambda: self._factory(context)):
            case Ok(operation):
                result = run_operation(operation, context)
            case Err(exc):
                return OperationResult.aggregate(self.name, [_own_fault(self, context, exc)])
        return OperationResult.aggregate(self.name, [result], value=result.value)


__all__ = [
    "ResultKind",
    "Operation",
    "run_operation",
    "ActionOperation",
    "ScalarOperation",
    "EnumerableOperation",
    "SequenceOperation",
    "ConditionalOperation",
    "DoWhileOperation",
    "ParallelOperation",
    "ResultHandlerOperation",
    "DeferredOperation",
]
