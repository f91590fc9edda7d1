"""Flow repositories.

The interpreter never builds or edits graphs; it only reads them through
a repository keyed by flow id and (optionally) owner.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from cachetools import TTLCache

from chatflow.graph.loader import FLOW_SUFFIXES, FlowLoader
from chatflow.graph.models import FlowGraph

logger = logging.getLogger(__name__)


def _owned_by(graph: FlowGraph, owner_id: str | None) -> bool:
    # Graphs without an owner, or lookups without one, are not filtered
    return owner_id is None or graph.owner_id is None or graph.owner_id == owner_id


class FlowRepository(ABC):
    """Read-only access to flow graphs."""

    @abstractmethod
    async def get(self, flow_id: str, owner_id: str | None = None) -> FlowGraph | None:
        """Return the graph, or None if it does not exist for this owner."""
        ...


class InMemoryFlowRepository(FlowRepository):
    """Holds graphs in a dict. Used by tests and the CLI."""

    def __init__(self, graphs: list[FlowGraph] | None = None) -> None:
        self._graphs: dict[str, FlowGraph] = {}
        for graph in graphs or []:
            self.add(graph)

    def add(self, graph: FlowGraph) -> None:
        self._graphs[graph.id] = graph

    async def get(self, flow_id: str, owner_id: str | None = None) -> FlowGraph | None:
        graph = self._graphs.get(flow_id)
        if graph is None or not _owned_by(graph, owner_id):
            return None
        return graph


class DirectoryFlowRepository(FlowRepository):
    """Loads ``<flow_id>.yaml|.yml|.json`` files from a directory.

    Parsed graphs are cached for ``ttl`` seconds so edits made by the
    builder become visible without a restart.
    """

    def __init__(self, directory: Path | str, ttl: float = 30.0, maxsize: int = 256) -> None:
        self.directory = Path(directory)
        self._cache: TTLCache[str, FlowGraph] = TTLCache(maxsize=maxsize, ttl=ttl)

    def _find_file(self, flow_id: str) -> Path | None:
        # Refuse ids that would escape the flows directory
        if not flow_id or "/" in flow_id or "\\" in flow_id or flow_id.startswith("."):
            return None
        for suffix in FLOW_SUFFIXES:
            candidate = self.directory / f"{flow_id}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    async def get(self, flow_id: str, owner_id: str | None = None) -> FlowGraph | None:
        graph = self._cache.get(flow_id)
        if graph is None:
            path = self._find_file(flow_id)
            if path is None:
                logger.debug(f"No flow file for {flow_id!r} in {self.directory}")
                return None
            graph = await asyncio.to_thread(FlowLoader.load, path)
            self._cache[flow_id] = graph

        if not _owned_by(graph, owner_id):
            return None
        return graph

    def invalidate(self, flow_id: str | None = None) -> None:
        if flow_id is None:
            self._cache.clear()
        else:
            self._cache.pop(flow_id, None)
