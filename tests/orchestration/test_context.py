"""Tests for conduit.orchestration.context module."""

import threading

from conduit.core.config import PipelineConfig
from conduit.core.record import Record
from conduit.orchestration.context import (
    EtlContext,
    RunState,
    abort_on_error,
    continue_on_error,
)
from conduit.orchestration.operation_result import OperationError


class TestRunState:
    def test_mapping_behaviour(self):
        state = RunState()
        state["a"] = 1
        assert state["a"] == 1
        assert list(state) == ["a"]
        del state["a"]
        assert len(state) == 0

    def test_increment_is_atomic(self):
        state = RunState()

        def bump():
            for _ in range(1000):
                state.increment("count")

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert state["count"] == 8000

    def test_update_with_and_snapshot(self):
        state = RunState()
        state.update_with("items", lambda items: items + [1], default=[])
        state.setdefault("flag", True)
        assert state.snapshot() == {"items": [1], "flag": True}


class TestEtlContext:
    def test_defaults(self):
        ctx = EtlContext()
        assert ctx.run_id
        assert isinstance(ctx.config, PipelineConfig)
        assert ctx.error_handler is abort_on_error
        assert ctx.errors == []

    def test_create_from_dict(self):
        ctx = EtlContext.create({"batch": 10}, run_id="run-1")
        assert ctx.config["batch"] == 10
        assert ctx.run_id == "run-1"

    def test_create_from_existing_config(self):
        config = PipelineConfig({"a": 1})
        assert EtlContext.create(config).config is config

    def test_logger_factory_is_used(self, logger_factory):
        ctx = EtlContext(logger_factory=logger_factory)
        ctx.get_logger("my.step").info("rows.loaded", rows=3)
        assert logger_factory.records == [("my.step", "info", "rows.loaded", {"rows": 3})]

    def test_report_errors(self):
        ctx = EtlContext()
        error = OperationError.from_exception("op", ValueError("x"))
        ctx.report_errors([error])
        assert ctx.errors == [error]

    def test_named_connection_uses_config(self, tmp_path):
        ctx = EtlContext.create({"connections.local": f"sqlite:///{tmp_path / 'x.db'}"})
        conn = ctx.create_named_connection("local")
        try:
            assert conn.execute("SELECT 1").fetchone() == (1,)
        finally:
            conn.close()

    def test_close_deallocates_pool(self):
        ctx = EtlContext()
        ctx.object_pool.register(Record, 3)
        ctx.close()
        assert ctx.object_pool.pools == []


class TestPolicies:
    def test_builtin_policies(self):
        assert abort_on_error(EtlContext(), []) is False
        assert continue_on_error(EtlContext(), []) is True
