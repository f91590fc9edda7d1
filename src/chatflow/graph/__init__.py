"""Flow graph model, loading and validation."""

from chatflow.graph.loader import FlowLoader
from chatflow.graph.models import Edge, FlowGraph, parse_node
from chatflow.graph.repository import (
    DirectoryFlowRepository,
    FlowRepository,
    InMemoryFlowRepository,
)

__all__ = [
    "Edge",
    "FlowGraph",
    "FlowLoader",
    "FlowRepository",
    "InMemoryFlowRepository",
    "DirectoryFlowRepository",
    "parse_node",
]
