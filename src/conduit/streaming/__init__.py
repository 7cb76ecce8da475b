"""Conduit Streaming -- concurrent node runtime.

Architecture::

    adapter.py      Adapter -- bounded FIFO with one-shot end-of-stream
    node.py         Node base + Source / Transform / Sink / Merge kinds
    nodes.py        Generic nodes (iterable & generator sources, DB reader,
                    map / filter, action & collection sinks, round-robin merge)
    process.py      Process (an Operation) + ProcessBuilder
"""

from conduit.streaming.adapter import Adapter
from conduit.streaming.node import MergeNode, Node, NodeKind, SinkNode, SourceNode, TransformNode
from conduit.streaming.nodes import (
    ActionSinkNode,
    CollectionSinkNode,
    DbReaderNode,
    FilterNode,
    GeneratorSourceNode,
    IterableSourceNode,
    MapNode,
    RoundRobinMergeNode,
)
from conduit.streaming.process import NodeChain, Process, ProcessBuilder

__all__ = [
    "Adapter",
    "Node",
    "NodeKind",
    "SourceNode",
    "TransformNode",
    "SinkNode",
    "MergeNode",
    "ActionSinkNode",
    "CollectionSinkNode",
    "DbReaderNode",
    "FilterNode",
    "GeneratorSourceNode",
    "IterableSourceNode",
    "MapNode",
    "RoundRobinMergeNode",
    "NodeChain",
    "Process",
    "ProcessBuilder",
]
