"""Conduit Orchestration -- operations, context and the pipeline engine.

Architecture::

    operation_result.py  OperationError / AbortSignal / OperationResult / PipelineResult
    context.py           EtlContext -- config, run state, pool, factories, error policy
    operations.py        Operation kinds, composites and run_operation()
    sql.py               ExecuteSqlOperation
    pipeline.py          PipelineBuilder -> Pipeline.execute()
"""

from conduit.orchestration.context import (
    ErrorHandler,
    EtlContext,
    RunState,
    abort_on_error,
    continue_on_error,
)
from conduit.orchestration.operation_result import (
    AbortSignal,
    OperationError,
    OperationResult,
    PipelineResult,
)
from conduit.orchestration.operations import (
    ActionOperation,
    ConditionalOperation,
    DeferredOperation,
    DoWhileOperation,
    EnumerableOperation,
    Operation,
    ParallelOperation,
    ResultHandlerOperation,
    ResultKind,
    ScalarOperation,
    SequenceOperation,
    run_operation,
)
from conduit.orchestration.pipeline import (
    DoWhileBuilder,
    Pipeline,
    PipelineBuilder,
    StepListBuilder,
)
from conduit.orchestration.sql import ExecuteSqlOperation

__all__ = [
    "ErrorHandler",
    "EtlContext",
    "RunState",
    "abort_on_error",
    "continue_on_error",
    "AbortSignal",
    "OperationError",
    "OperationResult",
    "PipelineResult",
    "ActionOperation",
    "ConditionalOperation",
    "DeferredOperation",
    "DoWhileOperation",
    "EnumerableOperation",
    "Operation",
    "ParallelOperation",
    "ResultHandlerOperation",
    "ResultKind",
    "ScalarOperation",
    "SequenceOperation",
    "run_operation",
    "DoWhileBuilder",
    "Pipeline",
    "PipelineBuilder",
    "StepListBuilder",
    "ExecuteSqlOperation",
]
