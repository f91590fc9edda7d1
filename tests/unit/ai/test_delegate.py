"""Tests for AI delegates.

DSPy modules are replaced with mocks; no language model is configured.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatflow.ai.delegate import (
    EMPTY_REPLY,
    UNAVAILABLE_REPLY,
    AIReply,
    DSPyDelegate,
    EchoDelegate,
    create_delegate,
)
from chatflow.config.models import AISettings


def _module(**kwargs) -> MagicMock:
    module = MagicMock()
    module.acall = AsyncMock(**kwargs)
    return module


class TestEchoDelegate:
    @pytest.mark.asyncio
    async def test_echoes_user_text(self):
        reply = await EchoDelegate().generate_reply("prompt", "hello")
        assert reply == AIReply(reply="AI: hello", route="")


class TestDSPyDelegate:
    @pytest.mark.asyncio
    async def test_returns_reply_and_route(self):
        module = _module(return_value=SimpleNamespace(reply="Sure, I can help", route=" support "))
        delegate = DSPyDelegate(module)

        reply = await delegate.generate_reply("Be nice", "help\nme", routes=["Support"])

        assert reply == AIReply(reply="Sure, I can help", route="support")
        module.acall.assert_awaited_once_with(
            prompt="Be nice", user_message="help me", routes=["Support"]
        )

    @pytest.mark.asyncio
    async def test_provider_error_becomes_fallback(self):
        delegate = DSPyDelegate(_module(side_effect=RuntimeError("rate limited")))

        reply = await delegate.generate_reply("p", "hi")

        assert reply == AIReply(reply=UNAVAILABLE_REPLY, route="")

    @pytest.mark.asyncio
    async def test_timeout_becomes_fallback(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        module = MagicMock()
        module.acall = slow
        delegate = DSPyDelegate(module, timeout=0.01)

        assert (await delegate.generate_reply("p", "hi")).reply == UNAVAILABLE_REPLY

    @pytest.mark.asyncio
    async def test_empty_reply_is_replaced(self):
        delegate = DSPyDelegate(_module(return_value=SimpleNamespace(reply="  ", route=None)))

        reply = await delegate.generate_reply("p", "hi")

        assert reply == AIReply(reply=EMPTY_REPLY, route="")


class TestCreateDelegate:
    def test_disabled(self):
        assert isinstance(create_delegate(AISettings(enabled=False)), EchoDelegate)

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert isinstance(create_delegate(AISettings()), EchoDelegate)

    def test_configures_dspy_when_key_present(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")

        with patch("chatflow.ai.delegate.dspy.LM") as lm, patch(
            "chatflow.ai.delegate.dspy.configure"
        ) as configure:
            delegate = create_delegate(AISettings(timeout=5))

        assert isinstance(delegate, DSPyDelegate)
        assert delegate.timeout == 5
        lm.assert_called_once_with("openai/gpt-4o", temperature=0.3)
        configure.assert_called_once_with(lm=lm.return_value)
