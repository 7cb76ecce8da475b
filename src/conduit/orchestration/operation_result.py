"""Operation results — uniform envelopes for operation and pipeline outcomes.

Manifesto:
    Every operation kind (leaf, composite, process) returns the same
    envelope so the engine can aggregate without knowing what ran: success
    flag, ordered errors and an optional abort marker.  Scalar and enumerable
    leaves also carry the produced value.

ARCHITECTURE
────────────
::

    OperationResult
      ├── .ok(operation, value)           → success
      ├── .failed(operation, errors)      → failure
      ├── .skipped(operation)             → success, no errors (false conditional)
      ├── .aggregate(operation, children) → errors concatenated, first abort kept
      └── .with_abort(signal)             → abort marker attached

    OperationError  ── operation identity + ExecutionError + absorbed flag
    AbortSignal     ── (operation, errors); a value, never raised
    PipelineResult  ── terminal summary of one Pipeline.execute()

BEST PRACTICES
──────────────
- Prefer the factories over constructing results directly.
- A failure always carries at least one error.
- Success follows the errors: a result whose errors were all absorbed
  reports success.

Tags:
    conduit, orchestration, operation-result, envelope, success-failure

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from conduit.core.errors import ExecutionError


@dataclass(frozen=True)
class OperationError:
    """A fault recorded against an operation (or ``process/node``) identity.

    Attributes:
        operation: Identity of the faulting operation or node
        error: The ExecutionError; its ``cause`` is the underlying fault
        absorbed: True once the error policy decided to continue past it
    """

    operation: str
    error: ExecutionError
    absorbed: bool = False

    @classmethod
    def from_exception(cls, operation: str, exc: BaseException) -> OperationError:
        return cls(operation=operation, error=ExecutionError.wrap(operation, exc))

    @property
    def cause(self) -> BaseException:
        """The underlying fault (the ExecutionError itself when raised directly)."""
        return self.error.cause or self.error

    def absorb(self) -> OperationError:
        return replace(self, absorbed=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "absorbed": self.absorbed,
            **self.error.to_dict(),
        }

    def __str__(self) -> str:
        return f"{self.operation}: {self.error.message}"


@dataclass(frozen=True)
class AbortSignal:
    """Marks that the error policy asked to stop; unwinds as a value."""

    operation: str
    errors: tuple[OperationError, ...] = ()


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of executing one operation.

    Attributes:
        operation: Identity of the operation that produced this result
        success: False iff at least one error was not absorbed
        errors: Ordered errors (composites: members' errors concatenated)
        abort: Set when the error policy decided to abort
        value: Payload of scalar / enumerable leaves
        children: Member results of composites, in execution/completion order
        decided: Errors have been through the error policy already
    """

    operation: str
    success: bool = True
    errors: tuple[OperationError, ...] = ()
    abort: AbortSignal | None = None
    value: Any = None
    children: tuple[OperationResult, ...] = ()
    decided: bool = False

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def ok(cls, operation: str, value: Any = None) -> OperationResult:
        return cls(operation=operation, success=True, value=value)

    @classmethod
    def skipped(cls, operation: str) -> OperationResult:
        return cls(operation=operation, success=True, decided=True)

    @classmethod
    def failed(cls, operation: str, errors: list[OperationError] | tuple[OperationError, ...]) -> OperationResult:
        if not errors:
            errors = (
                OperationError(
                    operation,
                    ExecutionError("Operation failed without error", identity=operation),
                ),
            )
        return cls(operation=operation, success=False, errors=tuple(errors))

    @classmethod
    def from_exception(cls, operation: str, exc: BaseException) -> OperationResult:
        return cls.failed(operation, [OperationError.from_exception(operation, exc)])

    @classmethod
    def aggregate(
        cls,
        operation: str,
        children: list[OperationResult] | tuple[OperationResult, ...],
        value: Any = None,
    ) -> OperationResult:
        """Combine member results: errors concatenated in the given order.

        Success is derived from the errors: false iff one of them was not
        absorbed.  The first member abort becomes the aggregate's abort.
        """
        errors: list[OperationError] = []
        abort = None
        for child in children:
            errors.extend(child.errors)
            if abort is None and child.abort is not None:
                abort = child.abort
        return cls(
            operation=operation,
            success=_all_absorbed(errors),
            errors=tuple(errors),
            abort=abort,
            value=value,
            children=tuple(children),
            decided=True,
        )

    # =========================================================================
    # Derived
    # =========================================================================

    @property
    def aborted(self) -> bool:
        return self.abort is not None

    @property
    def fatal_errors(self) -> tuple[OperationError, ...]:
        return tuple(e for e in self.errors if not e.absorbed)

    def with_abort(self, signal: AbortSignal) -> OperationResult:
        return replace(self, abort=signal, decided=True)

    def with_decision(self, errors: tuple[OperationError, ...]) -> OperationResult:
        return replace(self, errors=errors, success=_all_absorbed(errors), decided=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "success": self.success,
        }
        if self.errors:
            result["errors"] = [e.to_dict() for e in self.errors]
        if self.abort:
            result["aborted_on"] = self.abort.operation
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result

    def __repr__(self) -> str:
        status = "OK" if self.success else f"FAIL({len(self.errors)})"
        if self.abort:
            status += " ABORT"
        return f"OperationResult({self.operation!r}, {status})"


def _all_absorbed(errors) -> bool:
    return all(e.absorbed for e in errors)


@dataclass
class PipelineResult:
    """Terminal summary of one ``Pipeline.execute()`` call.

    ``success`` is false iff at least one recorded error was not absorbed by
    the error policy, which only happens when the run aborted.
    """

    pipeline: str
    run_id: str
    started_at: datetime
    completed_at: datetime | None = None
    elapsed_seconds: float = 0.0
    step_results: list[OperationResult] = field(default_factory=list)
    errors: list[OperationError] = field(default_factory=list)
    aborted_on: str | None = None

    @property
    def success(self) -> bool:
        return self.aborted_on is None and all(e.absorbed for e in self.errors)

    @property
    def elapsed(self) -> timedelta:
        return timedelta(seconds=self.elapsed_seconds)

    @property
    def executed_steps(self) -> list[str]:
        return [r.operation for r in self.step_results]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging/storage."""
        return {
            "pipeline": self.pipeline,
            "run_id": self.run_id,
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "elapsed_seconds": self.elapsed_seconds,
            "executed_steps": self.executed_steps,
            "aborted_on": self.aborted_on,
            "errors": [e.to_dict() for e in self.errors],
        }


__all__ = ["OperationError", "AbortSignal", "OperationResult", "PipelineResult"]
