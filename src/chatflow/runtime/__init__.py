"""Runtime: per-message orchestration of flows, sessions and the interpreter."""

from chatflow.runtime.service import ChatService, Failure, Reply, RunOutcome

__all__ = ["ChatService", "Failure", "Reply", "RunOutcome"]
