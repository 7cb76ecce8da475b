"""
Conduit - single-process ETL pipelines.

Subpackages:
- conduit.core: records, object pool, configuration, settings, logging, errors
- conduit.orchestration: operations, context and the pipeline engine
- conduit.streaming: concurrent node runtime (adapters, nodes, processes)
"""

__version__ = "0.1.0"

from conduit.core import *  # noqa
from conduit.orchestration import (  # noqa: F401
    EtlContext,
    Operation,
    OperationResult,
    Pipeline,
    PipelineBuilder,
    PipelineResult,
)
from conduit.streaming import Process, ProcessBuilder  # noqa: F401
