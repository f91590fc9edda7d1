"""Step loop over a flow graph.

One call to ``FlowInterpreter.run`` handles one inbound message: it starts
at the trigger (fresh session) or at the paused node, dispatches node
handlers until one pauses or terminates, and reports the output together
with the session write the caller should persist.

The interpreter never raises for problems inside the graph. A missing
trigger, a dangling edge, an unknown node type or an exhausted step budget
all end the run with whatever output was accumulated.
"""

import logging
from dataclasses import dataclass, field

from chatflow.ai.delegate import AIDelegate, EchoDelegate
from chatflow.core.constants import INVALID_SELECTION_MESSAGE, MAX_STEPS, TRIGGER_MISSING_MESSAGE
from chatflow.core.errors import BrokenGraphReference, FlowConfigurationError
from chatflow.core.events import (
    EVENT_BROKEN_REFERENCE,
    EVENT_CONFIGURATION_ERROR,
    EVENT_NODE_ENTERED,
    EVENT_PAUSED,
    EVENT_RUN_RESUMED,
    EVENT_RUN_STARTED,
    EVENT_STEP_LIMIT_REACHED,
    EVENT_TERMINATED,
    EVENT_TRANSITION,
    EVENT_UNKNOWN_NODE_TYPE,
)
from chatflow.engine.context import (
    ActionRecord,
    Continue,
    ExecutionContext,
    HaltReason,
    Outcome,
    Pause,
    Terminate,
)
from chatflow.engine.handlers import get_handler
from chatflow.engine.replies import ButtonReply, MediaImage
from chatflow.engine.tracing import LoggingTraceSink, TraceSink
from chatflow.graph.models import FlowGraph, Node
from chatflow.session.models import AwaitingNode, Session, SessionUpdate

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Everything one run produced."""

    halt_reason: HaltReason
    messages: list[str] = field(default_factory=list)
    media: list[MediaImage] = field(default_factory=list)
    buttons: ButtonReply | None = None
    actions: list[ActionRecord] = field(default_factory=list)
    session_update: SessionUpdate | None = None
    last_node_id: str | None = None
    steps: int = 0

    @property
    def truncated(self) -> bool:
        """True when the step budget ran out before the run halted."""
        return self.halt_reason is HaltReason.STEP_LIMIT

    @classmethod
    def from_context(
        cls, ctx: ExecutionContext, reason: HaltReason, steps: int = 0
    ) -> "ExecutionResult":
        return cls(
            halt_reason=reason,
            messages=list(ctx.messages),
            media=list(ctx.media),
            buttons=ctx.buttons,
            actions=list(ctx.actions),
            session_update=ctx.session_update,
            last_node_id=ctx.current_node_id,
            steps=steps,
        )


class FlowInterpreter:
    """Walks a FlowGraph for one inbound message."""

    def __init__(
        self,
        delegate: AIDelegate | None = None,
        max_steps: int = MAX_STEPS,
        sink: TraceSink | None = None,
        invalid_selection_message: str = INVALID_SELECTION_MESSAGE,
        trigger_missing_message: str = TRIGGER_MISSING_MESSAGE,
    ) -> None:
        self.delegate = delegate or EchoDelegate()
        self.max_steps = max_steps
        self.sink = sink or LoggingTraceSink()
        self.invalid_selection_message = invalid_selection_message
        self.trigger_missing_message = trigger_missing_message

    def _entry_node_id(self, graph: FlowGraph, ctx: ExecutionContext) -> str:
        if isinstance(ctx.resume_point, AwaitingNode):
            ctx.current_node_id = ctx.resume_point.node_id
            ctx.emit(EVENT_RUN_RESUMED)
            return ctx.resume_point.node_id

        trigger = graph.trigger()
        if trigger is None:
            raise FlowConfigurationError(f"Flow {graph.id!r} has no trigger node")
        ctx.emit(EVENT_RUN_STARTED, trigger)
        return trigger.id

    def _resolve(self, graph: FlowGraph, node_id: str) -> Node:
        node = graph.node(node_id)
        if node is None:
            raise BrokenGraphReference(node_id)
        return node

    async def run(self, graph: FlowGraph, session: Session, text: str) -> ExecutionResult:
        """Advance the conversation for one message.

        Args:
            graph: The flow graph to execute
            session: The caller's session as read from the store
            text: The user's message

        Returns:
            ExecutionResult with output and the session write (if any)
        """
        ctx = ExecutionContext(
            graph=graph,
            text=text,
            resume_point=session.resume_point,
            delegate=self.delegate,
            sink=self.sink,
            invalid_selection_message=self.invalid_selection_message,
        )

        try:
            ctx.current_node_id = self._entry_node_id(graph, ctx)
        except FlowConfigurationError as e:
            logger.error(str(e))
            ctx.emit(EVENT_CONFIGURATION_ERROR)
            ctx.messages.append(self.trigger_missing_message)
            return ExecutionResult.from_context(ctx, HaltReason.CONFIGURATION_ERROR)

        for step in range(self.max_steps):
            ctx.step = step
            try:
                node = self._resolve(graph, ctx.current_node_id or "")
            except BrokenGraphReference as e:
                logger.warning(f"Flow {graph.id!r}: {e}; returning accumulated output")
                ctx.emit(EVENT_BROKEN_REFERENCE)
                return ExecutionResult.from_context(ctx, HaltReason.BROKEN_REFERENCE, step)

            outgoing = graph.outgoing(node.id)
            ctx.emit(EVENT_NODE_ENTERED, node, outgoing=len(outgoing))

            handler = get_handler(node.type)
            if handler is None:
                logger.warning(f"Flow {graph.id!r}: unknown node type {node.type!r} at {node.id}")
                ctx.emit(EVENT_UNKNOWN_NODE_TYPE, node)
                outcome: Outcome = Terminate(clear_session=False)
            else:
                outcome = await handler(node, outgoing, ctx)

            if isinstance(outcome, Continue):
                ctx.emit(EVENT_TRANSITION, node, target=outcome.next_id)
                ctx.current_node_id = outcome.next_id
                continue

            if isinstance(outcome, Pause):
                ctx.session_update = SessionUpdate.pause_at(node.id, text)
                ctx.emit(EVENT_PAUSED, node)
                return ExecutionResult.from_context(ctx, HaltReason.PAUSED, step + 1)

            if outcome.clear_session:
                ctx.session_update = SessionUpdate.terminate(text)
            ctx.emit(EVENT_TERMINATED, node, cleared=outcome.clear_session)
            return ExecutionResult.from_context(ctx, HaltReason.TERMINATED, step + 1)

        logger.warning(
            f"Flow {graph.id!r} stopped after {self.max_steps} steps at {ctx.current_node_id!r}"
        )
        ctx.emit(EVENT_STEP_LIMIT_REACHED, max_steps=self.max_steps)
        return ExecutionResult.from_context(ctx, HaltReason.STEP_LIMIT, self.max_steps)
