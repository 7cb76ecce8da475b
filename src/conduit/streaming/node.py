"""
Node - one concurrent stage of a streaming process.

A node reads records from its input adapter(s), does its work, and emits
records to its output adapter(s).  While a process runs, each node has its
own worker thread.

Tier: Basic (conduit)

Node kinds:
- SOURCE: no inputs, one or more outputs (produces records)
- TRANSFORM: one input, one or more outputs
- SINK: one input, no outputs (consumes records)
- MERGE: exactly two inputs, one or more outputs

Contract:
- ``on_execute(context)`` does the work and returns when the node is done
- ``emit(record)`` delivers the same record to every output adapter (fan-out)
- ``signal_end()`` ends every output exactly once; the process runtime
  calls it after ``on_execute`` returns or raises

Example:
    class UpperCase(TransformNode):
        def on_execute(self, context):
            for record in self.input:
                record["name"] = record["name"].upper()
                self.emit(record)

Tags:
    conduit, streaming, node, producer-consumer

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from enum import Enum
from typing import Any

from conduit.orchestration.context import EtlContext
from conduit.streaming.adapter import Adapter


class NodeKind(str, Enum):
    """Role of a node in a process graph."""

    SOURCE = "source"
    TRANSFORM = "transform"
    SINK = "sink"
    MERGE = "merge"


class Node(ABC):
    """Base class for every stage."""

    kind: NodeKind = NodeKind.TRANSFORM

    def __init__(self, name: str | None = None) -> None:
        self.name = name or type(self).__name__
        self.process: str | None = None
        self._inputs: list[Adapter[Any]] = []
        self._outputs: list[Adapter[Any]] = []
        self._end_lock = threading.Lock()
        self._ended = False
        self._emitted = 0

    def named(self, name: str) -> Node:
        self.name = name
        return self

    @property
    def identity(self) -> str:
        """``"<process>/<node>"`` once attached to a process."""
        return f"{self.process}/{self.name}" if self.process else self.name

    # =========================================================================
    # Wiring
    # =========================================================================

    @property
    def inputs(self) -> tuple[Adapter[Any], ...]:
        return tuple(self._inputs)

    @property
    def outputs(self) -> tuple[Adapter[Any], ...]:
        return tuple(self._outputs)

    def attach_input(self, adapter: Adapter[Any]) -> None:
        self._inputs.append(adapter)

    def attach_output(self, adapter: Adapter[Any]) -> None:
        self._outputs.append(adapter)

    def reset(self) -> None:
        """Drop all wiring so the node can be connected for a fresh run."""
        self._inputs.clear()
        self._outputs.clear()
        with self._end_lock:
            self._ended = False
        self._emitted = 0

    # =========================================================================
    # Streaming
    # =========================================================================

    @property
    def input(self) -> Iterator[Any]:
        """Records from the first input until its end-of-stream."""
        if not self._inputs:
            return iter(())
        return iter(self._inputs[0])

    @property
    def emitted(self) -> int:
        return self._emitted

    def emit(self, record: Any) -> None:
        """Deliver *record* to every consumer, blocking on full adapters."""
        for adapter in self._outputs:
            adapter.put(record)
        self._emitted += 1

    def signal_end(self) -> None:
        """End every output stream; later calls are no-ops."""
        with self._end_lock:
            if self._ended:
                return
            self._ended = True
        for adapter in self._outputs:
            adapter.end()

    def abandon_inputs(self) -> None:
        for adapter in self._inputs:
            adapter.abandon()

    @abstractmethod
    def on_execute(self, context: EtlContext) -> None:
        """Do the node's work; return when finished."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity!r}, kind={self.kind.value})"


class SourceNode(Node):
    """Produces records; has no inputs."""

    kind = NodeKind.SOURCE


class TransformNode(Node):
    """Consumes one input and emits zero or more records per input record."""

    kind = NodeKind.TRANSFORM


class SinkNode(Node):
    """Consumes one input; emits nothing."""

    kind = NodeKind.SINK


class MergeNode(Node):
    """Combines exactly two inputs into one output stream."""

    kind = NodeKind.MERGE


__all__ = [
    "NodeKind",
    "Node",
    "SourceNode",
    "TransformNode",
    "SinkNode",
    "MergeNode",
]
