"""Per-request execution context and handler outcomes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from chatflow.ai.delegate import AIDelegate
from chatflow.engine.replies import ButtonReply, MediaImage
from chatflow.engine.tracing import StepEvent, TraceSink
from chatflow.graph.models import FlowGraph, Node
from chatflow.session.models import AwaitingNode, Fresh, ResumePoint, SessionUpdate

# =============================================================================
# OUTCOMES
# =============================================================================


@dataclass(frozen=True)
class Continue:
    """Move to ``next_id`` within the same request."""

    next_id: str


@dataclass(frozen=True)
class Pause:
    """Stop and wait at the current node for the next message."""


@dataclass(frozen=True)
class Terminate:
    """End this conversation branch.

    ``clear_session`` False leaves the stored resume point untouched.
    """

    clear_session: bool = True


Outcome = Union[Continue, Pause, Terminate]


class HaltReason(str, Enum):
    """Why the step loop stopped."""

    PAUSED = "paused"
    TERMINATED = "terminated"
    BROKEN_REFERENCE = "broken_reference"
    STEP_LIMIT = "step_limit"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class ActionRecord:
    """An action node that ran during the request."""

    node_id: str
    method: str
    url: str


# =============================================================================
# CONTEXT
# =============================================================================


@dataclass
class ExecutionContext:
    """Mutable state of one interpreter run."""

    graph: FlowGraph
    text: str
    resume_point: ResumePoint
    delegate: AIDelegate
    sink: TraceSink
    invalid_selection_message: str
    current_node_id: str | None = None
    step: int = 0
    messages: list[str] = field(default_factory=list)
    media: list[MediaImage] = field(default_factory=list)
    buttons: ButtonReply | None = None
    actions: list[ActionRecord] = field(default_factory=list)
    session_update: SessionUpdate | None = None
    resume_consumed: bool = False

    @property
    def started_fresh(self) -> bool:
        return isinstance(self.resume_point, Fresh)

    def is_resuming_at(self, node_id: str) -> bool:
        """True only for the first visit to the node the session paused at."""
        return (
            not self.resume_consumed
            and isinstance(self.resume_point, AwaitingNode)
            and self.resume_point.node_id == node_id
        )

    def emit(self, event: str, node: Node | None = None, **detail: Any) -> None:
        self.sink.emit(
            StepEvent(
                event=event,
                step=self.step,
                node_id=node.id if node is not None else self.current_node_id,
                node_type=node.type if node is not None else None,
                detail=detail,
            )
        )
