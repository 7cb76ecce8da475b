"""Tests for conduit.core.connection module."""

import pytest

from conduit.core.config import PipelineConfig
from conduit.core.connection import ConnectionFactory
from conduit.core.errors import ConfigError


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.db"


class TestNamedConnections:
    def test_sqlite_url(self, db_path):
        config = PipelineConfig().set_connection_string("dw", f"sqlite:///{db_path}")
        factory = ConnectionFactory(config)
        conn = factory.create_named_connection("dw")
        try:
            conn.execute("CREATE TABLE t (id INTEGER)")
            conn.execute("INSERT INTO t VALUES (1)")
            conn.commit()
        finally:
            conn.close()
        assert db_path.exists()

    def test_each_call_opens_a_new_connection(self, db_path):
        config = PipelineConfig().set_connection_string("dw", f"sqlite:///{db_path}")
        factory = ConnectionFactory(config)
        first = factory.create_named_connection("dw")
        second = factory.create_named_connection("dw")
        try:
            assert first is not second
        finally:
            first.close()
            second.close()

    def test_unknown_name_raises_config_error(self):
        with pytest.raises(ConfigError):
            ConnectionFactory(PipelineConfig()).create_named_connection("missing")

    def test_registered_opener_wins(self):
        sentinel = object()
        factory = ConnectionFactory(PipelineConfig()).register("custom", lambda: sentinel)
        assert factory.create_named_connection("custom") is sentinel


class TestSqlAlchemyUrls:
    def test_non_sqlite_prefix_uses_engine(self, db_path):
        # "sqlite+pysqlite" is not the plain sqlite prefix, so it goes through SQLAlchemy
        factory = ConnectionFactory(PipelineConfig())
        conn = factory.connect(f"sqlite+pysqlite:///{db_path}")
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            assert cursor.fetchone()[0] == 1
            cursor.close()
        finally:
            conn.close()
            factory.dispose()

    def test_engines_are_cached(self, db_path):
        factory = ConnectionFactory(PipelineConfig())
        url = f"sqlite+pysqlite:///{db_path}"
        assert factory._engine(url) is factory._engine(url)
        factory.dispose()
        assert factory._engines == {}
