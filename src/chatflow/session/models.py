"""Session models.

A session records where a user's conversation with one flow paused. The
stored ``last_node_id`` is exposed as an explicit ``ResumePoint``: either
``Fresh`` (start from the trigger) or ``AwaitingNode`` (resume there).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Fresh:
    """The next message starts a new run from the trigger node."""


@dataclass(frozen=True)
class AwaitingNode:
    """The conversation is paused at ``node_id`` waiting for input."""

    node_id: str


ResumePoint = Union[Fresh, AwaitingNode]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """Persisted per-(flow, session key) conversation state."""

    id: str
    flow_id: str
    session_key: str
    last_node_id: str | None = None
    last_message: str | None = None
    version: int = Field(default=0, description="Incremented on every write")
    updated_at: datetime = Field(default_factory=_now)

    @property
    def resume_point(self) -> ResumePoint:
        if self.last_node_id:
            return AwaitingNode(self.last_node_id)
        return Fresh()


class SessionUpdate(BaseModel):
    """Write produced by the interpreter at a pause/terminate boundary."""

    last_node_id: str | None
    last_message: str

    @classmethod
    def pause_at(cls, node_id: str, message: str) -> "SessionUpdate":
        return cls(last_node_id=node_id, last_message=message)

    @classmethod
    def terminate(cls, message: str) -> "SessionUpdate":
        return cls(last_node_id=None, last_message=message)
