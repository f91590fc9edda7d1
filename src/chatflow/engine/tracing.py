"""Step-trace telemetry.

The interpreter reports what it does as ``StepEvent`` objects sent to a
``TraceSink``. Sinks decide where events go (logs, a buffer, a UI).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepEvent:
    """One thing that happened while walking the graph."""

    event: str
    step: int
    node_id: str | None = None
    node_type: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "step": self.step,
            "node_id": self.node_id,
            "node_type": self.node_type,
            **self.detail,
        }


class TraceSink(ABC):
    """Interface for receiving step-trace events."""

    @abstractmethod
    def emit(self, event: StepEvent) -> None:
        """Record a single event."""
        ...


class LoggingTraceSink(TraceSink):
    """Writes events to the ``chatflow.trace`` logger with structured extras."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level
        self._logger = logging.getLogger("chatflow.trace")

    def emit(self, event: StepEvent) -> None:
        self._logger.log(
            self.level,
            f"step={event.step} {event.event} node={event.node_id} type={event.node_type}",
            extra={"trace": event.to_dict()},
        )


class BufferedTraceSink(TraceSink):
    """Buffers events for testing or for display after a run."""

    def __init__(self) -> None:
        self.events: list[StepEvent] = []

    def emit(self, event: StepEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.event for e in self.events]

    def clear(self) -> None:
        self.events.clear()
