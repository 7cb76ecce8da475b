"""
Shared pytest fixtures and configuration for conduit tests.

This module provides:
- Settings cache isolation between tests
- A fresh EtlContext and a recording logger factory
- Small operation / node helpers used across test packages
"""

import sys
import threading
from pathlib import Path
from typing import Any

import pytest

# Ensure conduit package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from conduit.core.settings import ConduitSettings, clear_settings_cache
from conduit.orchestration import EtlContext


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_settings():
    """Every test sees freshly loaded settings."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> ConduitSettings:
    """Settings with GC between steps disabled to keep tests fast."""
    return ConduitSettings(collect_garbage_between_steps=False)


# =============================================================================
# Context & Logging Fixtures
# =============================================================================


class RecordingLogger:
    """Logger that stores every (level, event, fields) call."""

    def __init__(self, name: str, sink: list[tuple[str, str, str, dict[str, Any]]], lock: threading.Lock):
        self.name = name
        self._sink = sink
        self._lock = lock

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        with self._lock:
            self._sink.append((self.name, level, event, kwargs))

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)

    def exception(self, event: str, **kwargs: Any) -> None:
        self._log("exception", event, **kwargs)


class RecordingLoggerFactory:
    def __init__(self) -> None:
        self.records: list[tuple[str, str, str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def __call__(self, name: str) -> RecordingLogger:
        return RecordingLogger(name, self.records, self._lock)

    def events(self, level: str | None = None) -> list[str]:
        with self._lock:
            return [event for _, lvl, event, _ in self.records if level is None or lvl == level]


@pytest.fixture
def logger_factory() -> RecordingLoggerFactory:
    return RecordingLoggerFactory()


@pytest.fixture
def context(logger_factory) -> EtlContext:
    """Fresh context with a recording logger."""
    ctx = EtlContext(logger_factory=logger_factory)
    yield ctx
    ctx.close()
