"""SQL command operation over a named connection."""

from __future__ import annotations

from typing import Any

from conduit.orchestration.context import EtlContext
from conduit.orchestration.operation_result import OperationResult
from conduit.orchestration.operations import Operation, ResultKind


class ExecuteSqlOperation(Operation):
    """Run one SQL command in its own transaction.

    The connection is opened from the context's connection factory by name,
    committed on success, rolled back on failure and always closed.  The
    result value is the cursor's ``rowcount``.

    Example::

        op = (
            ExecuteSqlOperation("purge", "warehouse", "DELETE FROM staging WHERE day < :day")
            .with_parameter("day", "2024-01-01")
        )
    """

    result_kind = ResultKind.VOID

    def __init__(
        self,
        name: str,
        connection_name: str,
        sql: str,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(name)
        self.connection_name = connection_name
        self.sql = sql
        self._parameters: dict[str, Any] = dict(parameters or {})

    @property
    def parameters(self) -> dict[str, Any]:
        return dict(self._parameters)

    def with_parameter(self, name: str, value: Any) -> ExecuteSqlOperation:
        self._parameters[name] = value
        return self

    def execute(self, context: EtlContext) -> OperationResult:
        log = context.get_logger(__name__)
        connection = context.create_named_connection(self.connection_name)
        try:
            cursor = connection.cursor()
            try:
                cursor.execute(self.sql, self._parameters)
                rowcount = cursor.rowcount
            finally:
                cursor.close()
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            connection.close()

        log.info(
            "sql.executed",
            operation=self.name,
            connection=self.connection_name,
            rowcount=rowcount,
        )
        return OperationResult.ok(self.name, rowcount)


__all__ = ["ExecuteSqlOperation"]
