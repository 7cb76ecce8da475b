"""Tests for conduit.orchestration.operation_result module."""

from datetime import UTC, datetime

from conduit.core.errors import ExecutionError
from conduit.orchestration.operation_result import (
    AbortSignal,
    OperationError,
    OperationResult,
    PipelineResult,
)


def _error(name: str = "op") -> OperationError:
    return OperationError.from_exception(name, ValueError(f"{name} failed"))


# ---------------------------------------------------------------------------
# OperationError
# ---------------------------------------------------------------------------


class TestOperationError:
    def test_from_exception(self):
        cause = ValueError("bad")
        error = OperationError.from_exception("load", cause)
        assert error.operation == "load"
        assert isinstance(error.error, ExecutionError)
        assert error.error.identity == "load"
        assert error.cause is cause
        assert error.absorbed is False

    def test_cause_falls_back_to_error(self):
        direct = ExecutionError("raised directly", identity="x")
        assert OperationError("x", direct).cause is direct

    def test_absorb_returns_copy(self):
        error = _error()
        absorbed = error.absorb()
        assert absorbed.absorbed is True
        assert error.absorbed is False

    def test_to_dict_and_str(self):
        error = _error("load")
        assert error.to_dict()["operation"] == "load"
        assert str(error).startswith("load: ValueError")


# ---------------------------------------------------------------------------
# OperationResult
# ---------------------------------------------------------------------------


class TestFactories:
    def test_ok(self):
        result = OperationResult.ok("op", 5)
        assert result.success is True
        assert result.value == 5
        assert result.errors == ()
        assert result.aborted is False

    def test_skipped_is_decided_success(self):
        result = OperationResult.skipped("cond")
        assert result.success is True
        assert result.errors == ()
        assert result.decided is True

    def test_failed_always_carries_an_error(self):
        result = OperationResult.failed("op", [])
        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].operation == "op"

    def test_from_exception(self):
        result = OperationResult.from_exception("op", RuntimeError("x"))
        assert result.success is False
        assert isinstance(result.errors[0].cause, RuntimeError)


class TestAggregate:
    def test_all_success(self):
        result = OperationResult.aggregate("seq", [OperationResult.ok("a"), OperationResult.ok("b")])
        assert result.success is True
        assert result.errors == ()
        assert result.decided is True
        assert [c.operation for c in result.children] == ["a", "b"]

    def test_errors_concatenated_in_order(self):
        e1, e2 = _error("a"), _error("b")
        result = OperationResult.aggregate(
            "seq",
            [OperationResult.failed("a", [e1]), OperationResult.ok("x"), OperationResult.failed("b", [e2])],
        )
        assert result.success is False
        assert result.errors == (e1, e2)

    def test_first_abort_propagates(self):
        first = OperationResult.failed("a", [_error("a")]).with_abort(AbortSignal("a"))
        second = OperationResult.failed("b", [_error("b")]).with_abort(AbortSignal("b"))
        result = OperationResult.aggregate("par", [first, second])
        assert result.abort.operation == "a"

    def test_empty_is_success(self):
        assert OperationResult.aggregate("empty", []).success is True

    def test_absorbed_member_errors_are_success(self):
        absorbed = OperationResult.failed("a", [_error("a")]).with_decision((_error("a").absorb(),))
        result = OperationResult.aggregate("seq", [absorbed, OperationResult.ok("b")])
        assert result.success is True
        assert result.errors[0].absorbed is True

    def test_one_unabsorbed_error_fails_the_group(self):
        absorbed = OperationResult.failed("a", [_error("a")]).with_decision((_error("a").absorb(),))
        fatal = OperationResult.failed("b", [_error("b")])
        result = OperationResult.aggregate("seq", [absorbed, fatal])
        assert result.success is False
        assert result.fatal_errors == fatal.errors


class TestDerived:
    def test_fatal_errors_excludes_absorbed(self):
        kept, absorbed = _error("a"), _error("b").absorb()
        result = OperationResult.failed("x", [kept, absorbed])
        assert result.fatal_errors == (kept,)

    def test_with_decision_absorbed_is_success(self):
        result = OperationResult.failed("x", [_error("x")])
        decided = result.with_decision(tuple(e.absorb() for e in result.errors))
        assert decided.decided is True
        assert decided.success is True
        assert all(e.absorbed for e in decided.errors)

    def test_to_dict(self):
        result = OperationResult.failed("x", [_error("x")]).with_abort(AbortSignal("x"))
        d = result.to_dict()
        assert d["success"] is False
        assert d["aborted_on"] == "x"
        assert "ABORT" in repr(result)


# ---------------------------------------------------------------------------
# PipelineResult
# ---------------------------------------------------------------------------


class TestPipelineResult:
    def _result(self, **kwargs) -> PipelineResult:
        return PipelineResult(pipeline="p", run_id="r", started_at=datetime.now(UTC), **kwargs)

    def test_success_without_errors(self):
        assert self._result().success is True

    def test_absorbed_errors_still_success(self):
        assert self._result(errors=[_error().absorb()]).success is True

    def test_unabsorbed_error_fails(self):
        assert self._result(errors=[_error()]).success is False

    def test_abort_fails(self):
        assert self._result(aborted_on="load").success is False

    def test_executed_steps_and_to_dict(self):
        result = self._result(step_results=[OperationResult.ok("a"), OperationResult.ok("b")])
        result.completed_at = result.started_at
        result.elapsed_seconds = 1.5
        assert result.executed_steps == ["a", "b"]
        assert result.elapsed.total_seconds() == 1.5
        d = result.to_dict()
        assert d["executed_steps"] == ["a", "b"]
        assert d["success"] is True
