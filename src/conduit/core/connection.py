"""Connection factory — open named connections from configuration.

Connections are never shared between nodes or operations.  Each unit of
work asks the factory for its own connection by *name*; the name resolves
to a URL stored in the pipeline configuration under
``connections.<name>`` (see :meth:`PipelineConfig.set_connection_string`).

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``sqlite``          ``sqlite:///path/to/file.db``                sqlite3
``sqlite`` (RAM)    ``sqlite:///:memory:``                       sqlite3
``(other)``         ``postgresql://user:pw@host:port/db``        SQLAlchemy
==================  ==========================================  ============

Non-SQLite URLs are opened through a SQLAlchemy engine and handed back as
the engine's raw DB-API connection, so callers always see ``cursor()``,
``commit()``, ``rollback()`` and ``close()``.  Engines are cached per URL.

Custom openers can be registered per name for anything else::

    factory.register("warehouse", lambda: my_driver.connect(...))
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable
from typing import Any

import sqlalchemy

from conduit.core.config import PipelineConfig

SQLITE_PREFIX = "sqlite:///"


class ConnectionFactory:
    """Creates a fresh DB-API connection for a configured name."""

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config
        self._lock = threading.Lock()
        self._openers: dict[str, Callable[[], Any]] = {}
        self._engines: dict[str, sqlalchemy.Engine] = {}

    def register(self, name: str, opener: Callable[[], Any]) -> ConnectionFactory:
        """Use *opener* instead of the configured URL for *name*."""
        with self._lock:
            self._openers[name] = opener
        return self

    def create_named_connection(self, name: str) -> Any:
        """Open a new connection for *name*.

        Raises:
            ConfigError: No opener registered and no ``connections.<name>`` key.
        """
        with self._lock:
            opener = self._openers.get(name)
        if opener is not None:
            return opener()
        return self.connect(self._config.get_connection_string(name))

    def connect(self, url: str) -> Any:
        if url.startswith(SQLITE_PREFIX):
            # may be used from a worker thread other than the opener
            return sqlite3.connect(url[len(SQLITE_PREFIX):], check_same_thread=False)
        return self._engine(url).raw_connection()

    def _engine(self, url: str) -> sqlalchemy.Engine:
        with self._lock:
            engine = self._engines.get(url)
            if engine is None:
                engine = sqlalchemy.create_engine(url)
                self._engines[url] = engine
            return engine

    def dispose(self) -> None:
        """Dispose every cached SQLAlchemy engine."""
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.dispose()


__all__ = ["ConnectionFactory"]
