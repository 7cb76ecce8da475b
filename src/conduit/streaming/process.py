"""Process — a chain of concurrently running nodes, usable as an operation.

WHY
───
Record-at-a-time work is pipelined: the source keeps producing while
transforms and sinks consume, with bounded adapters applying backpressure
between every pair of stages.  A Process wraps such a graph so it can sit
anywhere in a pipeline like any other operation.

ARCHITECTURE
────────────
::

    ProcessBuilder("load")
      .source(reader)            ──► NodeChain
          .then(clean)           ──► NodeChain
          .fan_out(sink_a, sink_b)
      .build()                   ──► Process (validated)

    Process.execute(context)
      ├── wire a fresh Adapter(capacity) per edge
      ├── ThreadPoolExecutor: one worker per node
      │     on_execute(context)
      │     finally: signal_end() + abandon inputs
      └── wait for every node; faults → OperationError("<process>/<node>")

BEST PRACTICES
──────────────
- Keep node work independent; nodes share only the context.
- A node that stops reading early does not stall its producer: its inputs
  are abandoned when it finishes.
- Node faults never kill the process; sibling nodes run to completion.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from conduit.core.errors import ValidationError
from conduit.core.result import Err, try_result
from conduit.core.settings import get_settings
from conduit.orchestration.context import EtlContext
from conduit.orchestration.operation_result import OperationError, OperationResult
from conduit.orchestration.operations import Operation, ResultKind
from conduit.streaming.adapter import Adapter
from conduit.streaming.node import Node, NodeKind

LOGGER_NAME = "conduit.process"

Edge = tuple[Node, Node]


class Process(Operation):
    """A validated node graph executed with one worker thread per node."""

    result_kind = ResultKind.PROCESS

    def __init__(
        self,
        name: str,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        capacity: int | None = None,
    ) -> None:
        super().__init__(name)
        self._nodes = tuple(nodes)
        self._edges = tuple(edges)
        self._capacity = capacity if capacity is not None else get_settings().adapter_capacity
        _validate(name, self._nodes, self._edges, self._capacity)
        for node in self._nodes:
            node.process = name

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    @property
    def capacity(self) -> int:
        return self._capacity

    def named(self, name: str) -> Process:
        self.name = name
        for node in self._nodes:
            node.process = name
        return self

    def execute(self, context: EtlContext) -> OperationResult:
        log = context.get_logger(LOGGER_NAME)
        self._wire()
        log.info(
            "process.start",
            process=self.name,
            nodes=[node.name for node in self._nodes],
            capacity=self._capacity,
        )

        with ThreadPoolExecutor(
            max_workers=len(self._nodes),
            thread_name_prefix=f"conduit-{self.name}",
        ) as executor:
            futures = [executor.submit(self._run_node, node, context) for node in self._nodes]
            outcomes = [future.result() for future in futures]

        errors = [error for error in outcomes if error is not None]
        log.info(
            "process.complete",
            process=self.name,
            success=not errors,
            errors=len(errors),
            emitted={node.name: node.emitted for node in self._nodes},
        )
        if errors:
            return OperationResult.failed(self.name, errors)
        return OperationResult.ok(self.name)

    def _wire(self) -> None:
        for node in self._nodes:
            node.reset()
        for producer, consumer in self._edges:
            adapter: Adapter = Adapter(self._capacity, name=f"{producer.name}->{consumer.name}")
            producer.attach_output(adapter)
            consumer.attach_input(adapter)

    def _run_node(self, node: Node, context: EtlContext) -> OperationError | None:
        log = context.get_logger(LOGGER_NAME)
        log.debug("node.start", node=node.identity, kind=node.kind.value)
        try:
            outcome = try_result(lambda: node.on_execute(context))
        finally:
            node.signal_end()
            node.abandon_inputs()

        match outcome:
            case Err(exc):
                log.error(
                    "node.failed",
                    node=node.identity,
                    error=f"{type(exc).__name__}: {exc}",
                )
                return OperationError.from_exception(node.identity, exc)
        log.debug("node.complete", node=node.identity, emitted=node.emitted)
        return None

    def __repr__(self) -> str:
        return f"Process({self.name!r}, nodes={len(self._nodes)})"


def _validate(name: str, nodes: tuple[Node, ...], edges: tuple[Edge, ...], capacity: int) -> None:
    if capacity < 1:
        raise ValidationError(f"Process '{name}': capacity must be >= 1, got {capacity}", field="capacity")
    if not nodes:
        raise ValidationError(f"Process '{name}' has no nodes", field="nodes")
    if not any(node.kind is NodeKind.SOURCE for node in nodes):
        raise ValidationError(f"Process '{name}' has no source node", field="nodes")

    seen: set[int] = set()
    for node in nodes:
        if id(node) in seen:
            raise ValidationError(f"Process '{name}': node '{node.name}' added twice", field="nodes")
        seen.add(id(node))
        if node.process is not None and node.process != name:
            raise ValidationError(
                f"Process '{name}': node '{node.name}' already belongs to process '{node.process}'",
                field="nodes",
            )

    producers: dict[int, list[Node]] = {id(node): [] for node in nodes}
    incoming = {id(node): 0 for node in nodes}
    outgoing = {id(node): 0 for node in nodes}
    for producer, consumer in edges:
        if id(producer) not in seen or id(consumer) not in seen:
            raise ValidationError(
                f"Process '{name}': edge {producer.name}->{consumer.name} references a node outside the process",
                field="edges",
            )
        outgoing[id(producer)] += 1
        incoming[id(consumer)] += 1
        producers[id(consumer)].append(producer)

    for node in nodes:
        n_in, n_out = incoming[id(node)], outgoing[id(node)]
        if node.kind is NodeKind.SOURCE and n_in:
            raise ValidationError(f"Process '{name}': source '{node.name}' cannot have inputs", field="edges")
        if node.kind in (NodeKind.TRANSFORM, NodeKind.SINK) and n_in != 1:
            raise ValidationError(
                f"Process '{name}': {node.kind.value} '{node.name}' needs exactly one input, has {n_in}",
                field="edges",
            )
        if node.kind is NodeKind.MERGE and n_in != 2:
            raise ValidationError(
                f"Process '{name}': merge '{node.name}' needs exactly two inputs, has {n_in}",
                field="edges",
            )
        if node.kind is NodeKind.MERGE:
            first, second = (_upstream(p, producers) for p in producers[id(node)])
            if first & second:
                raise ValidationError(
                    f"Process '{name}': merge '{node.name}' has inputs fed by the same upstream node",
                    field="edges",
                )
        if node.kind is NodeKind.SINK and n_out:
            raise ValidationError(f"Process '{name}': sink '{node.name}' cannot have outputs", field="edges")
        if node.kind is not NodeKind.SINK and not n_out:
            raise ValidationError(
                f"Process '{name}': {node.kind.value} '{node.name}' has no consumer",
                field="edges",
            )


def _upstream(node: Node, producers: dict[int, list[Node]]) -> set[int]:
    """Ids of *node* and every node feeding it, directly or indirectly."""
    seen: set[int] = set()
    pending = [node]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        pending.extend(producers[id(current)])
    return seen


# =============================================================================
# Builder
# =============================================================================


class NodeChain:
    """Handle on the last node of a chain under construction."""

    def __init__(self, builder: ProcessBuilder, tail: Node) -> None:
        self._builder = builder
        self.tail = tail

    def then(self, node: Node) -> NodeChain:
        self._builder._connect(self.tail, node)
        return NodeChain(self._builder, node)

    def fan_out(self, *nodes: Node) -> tuple[NodeChain, ...]:
        """Send every record of this chain to each of *nodes*."""
        if len(nodes) < 2:
            raise ValidationError("fan_out() needs at least two consumers", field="nodes")
        return tuple(self.then(node) for node in nodes)

    def merge(self, other: NodeChain, merge_node: Node) -> NodeChain:
        """Join this chain (first input) and *other* (second input)."""
        if merge_node.kind is not NodeKind.MERGE:
            raise ValidationError(f"'{merge_node.name}' is not a merge node", field="merge_node")
        self._builder._connect(self.tail, merge_node)
        self._builder._connect(other.tail, merge_node)
        return NodeChain(self._builder, merge_node)


class ProcessBuilder:
    """Fluent construction of a Process graph."""

    def __init__(self, name: str, capacity: int | None = None) -> None:
        self._name = name
        self._capacity = capacity
        self._nodes: list[Node] = []
        self._edges: list[Edge] = []

    def with_capacity(self, capacity: int) -> ProcessBuilder:
        if capacity < 1:
            raise ValidationError(f"Adapter capacity must be >= 1, got {capacity}", field="capacity")
        self._capacity = capacity
        return self

    def source(self, node: Node) -> NodeChain:
        if node.kind is not NodeKind.SOURCE:
            raise ValidationError(f"'{node.name}' is not a source node", field="node")
        self._add(node)
        return NodeChain(self, node)

    def build(self) -> Process:
        """Validate the graph and create the Process.

        Raises:
            ValidationError: Any structural misconfiguration.
        """
        return Process(self._name, self._nodes, self._edges, self._capacity)

    def _add(self, node: Node) -> None:
        if not any(existing is node for existing in self._nodes):
            self._nodes.append(node)

    def _connect(self, producer: Node, consumer: Node) -> None:
        if consumer.kind is NodeKind.SOURCE:
            raise ValidationError(f"Source '{consumer.name}' cannot consume records", field="node")
        self._add(consumer)
        self._edges.append((producer, consumer))


__all__ = ["Process", "ProcessBuilder", "NodeChain"]
