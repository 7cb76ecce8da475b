"""
Result envelope for turning raised faults into explicit values.

The engine never lets a user fault unwind through ``Pipeline.execute()``.
At every ``Execute`` boundary the call is wrapped with :func:`try_result`,
which returns ``Ok(value)`` or ``Err(exception)``; the caller then decides
what to record without nested try/except blocks.

Architecture:
    ::

        ┌─────────────┐         ┌─────────────┐
        │ f() raises  │ ──────> │  Err(exc)   │
        └─────────────┘         └─────────────┘
        ┌─────────────┐         ┌─────────────┐
        │ f() returns │ ──────> │  Ok(value)  │
        └─────────────┘         └─────────────┘

Examples:
    >>> try_result(lambda: 1 + 1).unwrap()
    2
    >>> try_result(lambda: 1 / 0).is_err()
    True
    >>> match try_result(lambda: int("x")):
    ...     case Ok(value):
    ...         print(value)
    ...     case Err(error):
    ...         print(type(error).__name__)
    ValueError

Guardrails:
    ❌ DON'T: Use unwrap() without checking is_ok() first
    ✅ DO: Use unwrap_or() or pattern matching for safe extraction

Tags:
    result-pattern, error-handling, exception-bridge, conduit
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """The call returned ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """The call raised ``error``."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Re-raise the captured exception."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        return f"Err({type(self.error).__name__}: {self.error})"


Result = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """Call ``f()`` and capture either its return value or the exception it raised."""
    try:
        return Ok(f())
    except Exception as exc:
        return Err(exc)


__all__ = ["Ok", "Err", "Result", "try_result"]
