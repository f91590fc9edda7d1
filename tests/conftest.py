"""Shared fixtures for chatflow tests.

Graphs are built from plain dicts, the same shape the flow builder stores,
and AI nodes use a scripted delegate so no language model is called.
"""

import pytest

from chatflow.engine.interpreter import FlowInterpreter
from chatflow.engine.tracing import BufferedTraceSink
from chatflow.graph.models import FlowGraph
from chatflow.graph.repository import InMemoryFlowRepository
from chatflow.runtime.service import ChatService
from chatflow.session.store import MemorySessionStore
from tests.factories import build_graph
from tests.mocks import ScriptedDelegate


@pytest.fixture
def button_graph() -> FlowGraph:
    """trigger -> message("Welcome") -> buttonMessage("Pick one", [Yes, No])."""
    return build_graph(
        nodes=[
            {"id": "t", "type": "trigger", "data": {"text": "Hi"}},
            {"id": "m", "type": "message", "data": {"text": "Welcome"}},
            {
                "id": "b",
                "type": "buttonMessage",
                "data": {"text": "Pick one", "buttons": ["Yes", "No"]},
            },
            {"id": "yes", "type": "message", "data": {"text": "Great!"}},
            {"id": "no", "type": "message", "data": {"text": "Maybe later."}},
        ],
        edges=[
            {"id": "e1", "source": "t", "target": "m"},
            {"id": "e2", "source": "m", "target": "b"},
            {"id": "e3", "source": "b", "target": "yes", "label": "Yes"},
            {"id": "e4", "source": "b", "target": "no", "label": "No"},
        ],
    )


@pytest.fixture
def condition_graph() -> FlowGraph:
    return build_graph(
        nodes=[
            {"id": "t", "type": "trigger", "data": {}},
            {"id": "c", "type": "condition", "data": {"expr": 'includes("refund")'}},
            {"id": "refund", "type": "message", "data": {"text": "Refunds team here."}},
            {"id": "other", "type": "message", "data": {"text": "How can I help?"}},
        ],
        edges=[
            {"source": "t", "target": "c"},
            {"source": "c", "target": "other", "data": {"branch": "false"}},
            {"source": "c", "target": "refund", "data": {"branch": "true"}},
        ],
        flow_id="triage",
    )


@pytest.fixture
def ai_graph() -> FlowGraph:
    return build_graph(
        nodes=[
            {"id": "t", "type": "trigger", "data": {}},
            {"id": "ai", "type": "ai", "data": {"prompt": "Route the user."}},
            {"id": "sales", "type": "message", "data": {"text": "Sales here."}},
            {"id": "support", "type": "message", "data": {"text": "Support here."}},
        ],
        edges=[
            {"source": "t", "target": "ai"},
            {"source": "ai", "target": "sales", "label": "Sales"},
            {"source": "ai", "target": "support", "label": "Support"},
        ],
        flow_id="assistant",
    )


@pytest.fixture
def trace_sink() -> BufferedTraceSink:
    return BufferedTraceSink()


@pytest.fixture
def delegate() -> ScriptedDelegate:
    return ScriptedDelegate()


@pytest.fixture
def interpreter(delegate: ScriptedDelegate, trace_sink: BufferedTraceSink) -> FlowInterpreter:
    return FlowInterpreter(delegate=delegate, sink=trace_sink)


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def service(
    button_graph: FlowGraph,
    condition_graph: FlowGraph,
    ai_graph: FlowGraph,
    interpreter: FlowInterpreter,
    session_store: MemorySessionStore,
) -> ChatService:
    flows = InMemoryFlowRepository([button_graph, condition_graph, ai_graph])
    return ChatService(flows, session_store, interpreter)
