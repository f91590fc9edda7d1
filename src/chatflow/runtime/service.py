"""ChatService - one inbound message, end to end.

Loads the flow graph and the caller's session, runs the interpreter and
persists the resulting session write with compare-and-swap. If another
request for the same session wrote first, the session is re-read and the
run repeated, so two concurrent messages can never both resume from the
same paused node.

Callers get an explicit ``Reply`` or ``Failure``: in-graph problems always
produce a Reply, only storage and lookup failures produce a Failure.
"""

import logging
from dataclasses import dataclass
from typing import Union

from chatflow.ai.delegate import AIDelegate, create_delegate
from chatflow.config.models import ChatflowConfig
from chatflow.core.constants import DEFAULT_SESSION_KEY, FALLBACK_REPLY, MAX_CONFLICT_RETRIES
from chatflow.core.errors import (
    ChatflowError,
    FlowNotFoundError,
    GraphLoadError,
    SessionConflictError,
    StateError,
)
from chatflow.engine.assembler import assemble_reply
from chatflow.engine.interpreter import ExecutionResult, FlowInterpreter
from chatflow.engine.replies import ReplyPayload
from chatflow.engine.tracing import LoggingTraceSink, TraceSink
from chatflow.graph.models import FlowGraph
from chatflow.graph.repository import FlowRepository
from chatflow.session.models import Session
from chatflow.session.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reply:
    """The flow produced a normal reply."""

    reply: str
    session_key: str
    payload: ReplyPayload
    result: ExecutionResult


@dataclass(frozen=True)
class Failure:
    """Execution could not run."""

    error: ChatflowError
    session_key: str


RunOutcome = Union[Reply, Failure]


class ChatService:
    """Coordinates flow lookup, session reconciliation and execution."""

    def __init__(
        self,
        flows: FlowRepository,
        sessions: SessionStore,
        interpreter: FlowInterpreter | None = None,
        max_conflict_retries: int = MAX_CONFLICT_RETRIES,
        fallback_reply: str = FALLBACK_REPLY,
    ) -> None:
        self.flows = flows
        self.sessions = sessions
        self.interpreter = interpreter or FlowInterpreter()
        self.max_conflict_retries = max_conflict_retries
        self.fallback_reply = fallback_reply

    @classmethod
    def from_config(
        cls,
        config: ChatflowConfig,
        flows: FlowRepository,
        sessions: SessionStore,
        delegate: AIDelegate | None = None,
        sink: TraceSink | None = None,
    ) -> "ChatService":
        engine = config.settings.engine
        interpreter = FlowInterpreter(
            delegate=delegate or create_delegate(config.settings.ai),
            max_steps=engine.max_steps,
            sink=sink or LoggingTraceSink(),
            invalid_selection_message=engine.invalid_selection_message,
            trigger_missing_message=engine.trigger_missing_message,
        )
        return cls(
            flows,
            sessions,
            interpreter,
            max_conflict_retries=engine.max_conflict_retries,
            fallback_reply=engine.fallback_reply,
        )

    async def _load_graph(self, flow_id: str, owner_id: str | None) -> FlowGraph:
        graph = await self.flows.get(flow_id, owner_id)
        if graph is None:
            raise FlowNotFoundError(flow_id)
        return graph

    async def _run(self, graph: FlowGraph, session_key: str, text: str) -> ExecutionResult:
        attempts = self.max_conflict_retries + 1
        for attempt in range(1, attempts + 1):
            session = await self.sessions.get_or_create(graph.id, session_key)
            result = await self.interpreter.run(graph, session, text)
            if result.session_update is None:
                return result
            try:
                await self.sessions.compare_and_set(session, result.session_update)
                return result
            except SessionConflictError:
                logger.info(
                    f"Session ({graph.id}, {session_key}) changed concurrently "
                    f"(attempt {attempt}/{attempts})"
                )
        raise SessionConflictError(
            f"Session ({graph.id}, {session_key}) kept changing after {attempts} attempts"
        )

    async def handle_message(
        self,
        flow_id: str,
        message: str,
        session_key: str | None = None,
        owner_id: str | None = None,
    ) -> RunOutcome:
        """Process one user message and return the reply or the failure."""
        key = session_key or DEFAULT_SESSION_KEY
        text = (message or "").strip()

        try:
            graph = await self._load_graph(flow_id, owner_id)
            result = await self._run(graph, key, text)
        except FlowNotFoundError as e:
            logger.info(str(e))
            return Failure(e, key)
        except (StateError, GraphLoadError) as e:
            logger.error(f"Cannot run flow {flow_id!r} for session {key!r}: {e}")
            return Failure(e, key)

        payload = assemble_reply(result, self.fallback_reply)
        return Reply(reply=payload.encode(), session_key=key, payload=payload, result=result)

    async def get_session(self, flow_id: str, session_key: str) -> Session | None:
        return await self.sessions.get(flow_id, session_key)

    async def reset_session(self, flow_id: str, session_key: str) -> bool:
        return await self.sessions.reset(flow_id, session_key)
