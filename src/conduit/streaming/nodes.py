"""Generic nodes — ready-made sources, transforms, sinks and merges.

ARCHITECTURE
────────────
::

    Sources     IterableSourceNode      records from an iterable (or ctx -> iterable)
                GeneratorSourceNode     state-driven: initialize / predicate / produce / advance
                DbReaderNode            one Record per row of a SQL query
    Transforms  MapNode                 emit fn(record) (None drops the record)
                FilterNode              emit records where predicate(record) is true
    Sinks       ActionSinkNode          fn(record) per record
                CollectionSinkNode      keep every record for later inspection
    Merge       RoundRobinMergeNode     a1, b1, a2, b2, ... then drain the longer input

Pool discipline is manual: a node that drops a pooled record returns it
with ``context.object_pool.return_(record)``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from conduit.core.record import Record
from conduit.orchestration.context import EtlContext
from conduit.streaming.node import MergeNode, SinkNode, SourceNode, TransformNode

_END = object()

# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class IterableSourceNode(SourceNode):
    """Emits every item of an iterable, or of ``fn(context)`` when given a callable."""

    def __init__(
        self,
        items: Iterable[Any] | Callable[[EtlContext], Iterable[Any]],
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        self._items = items

    def on_execute(self, context: EtlContext) -> None:
        items = self._items(context) if callable(self._items) else self._items
        for item in items:
            self.emit(item)


class GeneratorSourceNode(SourceNode):
    """Source driven by explicit carried state and an iteration counter.

    ``initialize(context)`` builds the state on iteration 1.  Before each
    production ``predicate(state)`` is checked; while true the node emits
    ``produce(context, state, iteration)`` and then moves on with
    ``state = advance(state)``, exactly once per produced record.
    """

    def __init__(
        self,
        initialize: Callable[[EtlContext], Any],
        predicate: Callable[[Any], bool],
        produce: Callable[[EtlContext, Any, int], Any],
        advance: Callable[[Any], Any],
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        self._initialize = initialize
        self._predicate = predicate
        self._produce = produce
        self._advance = advance

    def on_execute(self, context: EtlContext) -> None:
        iteration = 1
        state = self._initialize(context)
        while self._predicate(state):
            self.emit(self._produce(context, state, iteration))
            state = self._advance(state)
            iteration += 1


class DbReaderNode(SourceNode):
    """Emits one :class:`Record` per row returned by a SQL query.

    The node opens its own connection from the context's connection factory
    and closes it when the result set is exhausted (or on error).
    """

    def __init__(
        self,
        connection_name: str,
        sql: str,
        parameters: dict[str, Any] | None = None,
        name: str | None = None,
        fetch_size: int = 500,
    ) -> None:
        super().__init__(name)
        self.connection_name = connection_name
        self.sql = sql
        self._parameters: dict[str, Any] = dict(parameters or {})
        self._fetch_size = fetch_size

    def with_parameter(self, name: str, value: Any) -> DbReaderNode:
        self._parameters[name] = value
        return self

    def on_execute(self, context: EtlContext) -> None:
        log = context.get_logger(__name__)
        connection = context.create_named_connection(self.connection_name)
        try:
            cursor = connection.cursor()
            try:
                cursor.execute(self.sql, self._parameters)
                columns = [column[0] for column in cursor.description or ()]
                for row in self._rows(cursor):
                    self.emit(Record(dict(zip(columns, row))))
            finally:
                cursor.close()
        except Exception:
            log.error("db_reader.query_failed", node=self.identity, sql=self.sql)
            raise
        finally:
            connection.close()
        log.debug("db_reader.complete", node=self.identity, rows=self.emitted)

    def _rows(self, cursor: Any) -> Iterator[Any]:
        while True:
            batch = cursor.fetchmany(self._fetch_size)
            if not batch:
                return
            yield from batch


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


class MapNode(TransformNode):
    """Emits ``fn(record)`` for each input record; a ``None`` result is dropped."""

    def __init__(self, fn: Callable[[Any], Any], name: str | None = None) -> None:
        super().__init__(name)
        self._fn = fn

    def on_execute(self, context: EtlContext) -> None:
        for record in self.input:
            result = self._fn(record)
            if result is not None:
                self.emit(result)


class FilterNode(TransformNode):
    """Emits only the records for which ``predicate(record)`` is true."""

    def __init__(self, predicate: Callable[[Any], bool], name: str | None = None) -> None:
        super().__init__(name)
        self._predicate = predicate

    def on_execute(self, context: EtlContext) -> None:
        for record in self.input:
            if self._predicate(record):
                self.emit(record)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class ActionSinkNode(SinkNode):
    def __init__(self, fn: Callable[[Any], Any], name: str | None = None) -> None:
        super().__init__(name)
        self._fn = fn

    def on_execute(self, context: EtlContext) -> None:
        for record in self.input:
            self._fn(record)


class CollectionSinkNode(SinkNode):
    """Keeps the records received during the latest run, in arrival order."""

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name)
        self.records: list[Any] = []

    def reset(self) -> None:
        super().reset()
        self.records = []

    def on_execute(self, context: EtlContext) -> None:
        self.records.extend(self.input)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


class RoundRobinMergeNode(MergeNode):
    """Strict round-robin interleave of two inputs.

    One record from the first input, one from the second, repeating until
    either is exhausted; then the rest of the other input in order.
    """

    def on_execute(self, context: EtlContext) -> None:
        first, second = (iter(adapter) for adapter in self.inputs)
        while True:
            record = next(first, _END)
            if record is _END:
                self._drain(second)
                return
            self.emit(record)

            record = next(second, _END)
            if record is _END:
                self._drain(first)
                return
            self.emit(record)

    def _drain(self, remaining: Iterator[Any]) -> None:
        for record in remaining:
            self.emit(record)


__all__ = [
    "IterableSourceNode",
    "GeneratorSourceNode",
    "DbReaderNode",
    "MapNode",
    "FilterNode",
    "ActionSinkNode",
    "CollectionSinkNode",
    "RoundRobinMergeNode",
]
