"""chatflow - conversational flow execution engine.

Runs chatbot conversation graphs (trigger, message, image, buttonMessage,
condition, ai and action nodes) one inbound message at a time, pausing at
button prompts and resuming from a persisted per-user session.

Quick start:
    from chatflow import ChatService, FlowLoader, InMemoryFlowRepository
    from chatflow.session.store import MemorySessionStore

    flows = InMemoryFlowRepository([FlowLoader.load("flows/support.yaml")])
    service = ChatService(flows, MemorySessionStore())

    outcome = await service.handle_message("support", "hi", session_key="user-1")
"""

__version__ = "0.1.0"

from chatflow.core.errors import (
    ChatflowError,
    ConfigError,
    ExpressionError,
    FlowNotFoundError,
    GraphLoadError,
    SessionConflictError,
    StateError,
)
from chatflow.engine.interpreter import ExecutionResult, FlowInterpreter
from chatflow.graph.loader import FlowLoader
from chatflow.graph.models import FlowGraph
from chatflow.graph.repository import DirectoryFlowRepository, InMemoryFlowRepository
from chatflow.runtime.service import ChatService, Failure, Reply, RunOutcome

__all__ = [
    "__version__",
    "ChatService",
    "FlowInterpreter",
    "ExecutionResult",
    "FlowGraph",
    "FlowLoader",
    "InMemoryFlowRepository",
    "DirectoryFlowRepository",
    "Reply",
    "Failure",
    "RunOutcome",
    "ChatflowError",
    "ConfigError",
    "ExpressionError",
    "FlowNotFoundError",
    "GraphLoadError",
    "SessionConflictError",
    "StateError",
]
