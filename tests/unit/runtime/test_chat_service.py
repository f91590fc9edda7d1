"""Tests for ChatService orchestration and session reconciliation."""

from unittest.mock import AsyncMock

import pytest

from chatflow.config.models import ChatflowConfig
from chatflow.core.errors import FlowNotFoundError, GraphLoadError, SessionConflictError, StateError
from chatflow.engine.replies import ButtonReply, TextReply
from chatflow.graph.repository import InMemoryFlowRepository
from chatflow.runtime.service import ChatService, Failure, Reply
from chatflow.session.models import SessionUpdate
from chatflow.session.store import MemorySessionStore


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_returns_reply_and_persists_pause(self, service, session_store):
        outcome = await service.handle_message("bot", "hi", session_key="user-1")

        assert isinstance(outcome, Reply)
        assert isinstance(outcome.payload, ButtonReply)
        assert outcome.session_key == "user-1"
        stored = await session_store.get("bot", "user-1")
        assert stored.last_node_id == "b"
        assert stored.last_message == "hi"

    @pytest.mark.asyncio
    async def test_default_session_key(self, service):
        outcome = await service.handle_message("bot", "hi")
        assert outcome.session_key == "web-session"

    @pytest.mark.asyncio
    async def test_message_is_trimmed(self, service, session_store):
        await service.handle_message("bot", "hi", session_key="u")
        outcome = await service.handle_message("bot", "   yes \n", session_key="u")

        assert outcome.reply == "Great!"
        assert (await session_store.get("bot", "u")).last_message == "yes"

    @pytest.mark.asyncio
    async def test_unknown_flow_is_failure(self, service):
        outcome = await service.handle_message("missing", "hi", session_key="u")

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, FlowNotFoundError)
        assert outcome.error.flow_id == "missing"

    @pytest.mark.asyncio
    async def test_owner_mismatch_is_not_found(self, button_graph, interpreter):
        flows = InMemoryFlowRepository([button_graph.model_copy(update={"owner_id": "alice"})])
        svc = ChatService(flows, MemorySessionStore(), interpreter)

        assert isinstance(await svc.handle_message("bot", "hi", owner_id="alice"), Reply)
        outcome = await svc.handle_message("bot", "hi", owner_id="mallory")
        assert isinstance(outcome.error, FlowNotFoundError)

    @pytest.mark.asyncio
    async def test_storage_failure_is_failure(self, button_graph, interpreter):
        sessions = MemorySessionStore()
        sessions.get_or_create = AsyncMock(side_effect=StateError("database is locked"))
        svc = ChatService(InMemoryFlowRepository([button_graph]), sessions, interpreter)

        outcome = await svc.handle_message("bot", "hi")

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, StateError)

    @pytest.mark.asyncio
    async def test_graph_load_failure_is_failure(self, interpreter):
        flows = AsyncMock()
        flows.get = AsyncMock(side_effect=GraphLoadError("bad yaml"))
        svc = ChatService(flows, MemorySessionStore(), interpreter)

        outcome = await svc.handle_message("bot", "hi")

        assert isinstance(outcome.error, GraphLoadError)

    @pytest.mark.asyncio
    async def test_empty_output_uses_fallback(self, interpreter):
        from tests.factories import build_graph

        graph = build_graph(
            nodes=[{"id": "t", "type": "trigger"}, {"id": "i", "type": "image"}],
            edges=[{"source": "t", "target": "i"}],
        )
        svc = ChatService(
            InMemoryFlowRepository([graph]),
            MemorySessionStore(),
            interpreter,
            fallback_reply="Nothing to say.",
        )

        outcome = await svc.handle_message("bot", "hi")

        assert outcome.payload == TextReply(text="Nothing to say.")


class ConflictingStore(MemorySessionStore):
    """Simulates another request writing between read and write."""

    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.attempts = 0

    async def compare_and_set(self, session, update):
        self.attempts += 1
        if self.attempts <= self.conflicts:
            # A concurrent request moved the conversation to a terminal state
            current = await self.get(session.flow_id, session.session_key)
            await super().compare_and_set(current, SessionUpdate.terminate("other"))
        return await super().compare_and_set(session, update)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_conflict_rereads_and_reruns(self, button_graph, interpreter):
        sessions = ConflictingStore(conflicts=1)
        svc = ChatService(InMemoryFlowRepository([button_graph]), sessions, interpreter)

        outcome = await svc.handle_message("bot", "hi", session_key="u")

        assert isinstance(outcome, Reply)
        assert sessions.attempts == 2
        stored = await sessions.get("bot", "u")
        assert stored.last_node_id == "b"
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, button_graph, interpreter):
        sessions = ConflictingStore(conflicts=10)
        svc = ChatService(
            InMemoryFlowRepository([button_graph]), sessions, interpreter, max_conflict_retries=2
        )

        outcome = await svc.handle_message("bot", "hi", session_key="u")

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, SessionConflictError)
        assert sessions.attempts == 3
        assert "after 3 attempts" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_no_write_means_no_conflict(self, interpreter):
        from tests.factories import build_graph

        graph = build_graph(
            nodes=[{"id": "t", "type": "trigger", "data": {"text": "Hi"}}], edges=[]
        )
        sessions = ConflictingStore(conflicts=10)
        svc = ChatService(InMemoryFlowRepository([graph]), sessions, interpreter)

        outcome = await svc.handle_message("bot", "hi")

        assert outcome.reply == "Hi"
        assert sessions.attempts == 0


class TestSessionAdmin:
    @pytest.mark.asyncio
    async def test_reset_starts_over(self, service):
        await service.handle_message("bot", "hi", session_key="u")

        assert await service.reset_session("bot", "u") is True
        session = await service.get_session("bot", "u")
        assert session.last_node_id is None

        outcome = await service.handle_message("bot", "yes", session_key="u")
        assert isinstance(outcome.payload, ButtonReply)


class TestFromConfig:
    def test_uses_engine_settings(self, delegate):
        config = ChatflowConfig.model_validate(
            {
                "settings": {
                    "engine": {
                        "max_steps": 7,
                        "max_conflict_retries": 1,
                        "fallback_reply": "…",
                    },
                }
            }
        )

        svc = ChatService.from_config(
            config, InMemoryFlowRepository(), MemorySessionStore(), delegate=delegate
        )

        assert svc.interpreter.max_steps == 7
        assert svc.interpreter.delegate is delegate
        assert svc.max_conflict_retries == 1
        assert svc.fallback_reply == "…"
