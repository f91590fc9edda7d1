"""AI delegate for ``ai`` nodes.

The interpreter asks a delegate for a reply and an optional route label.
Delegates never raise: provider failures become a fallback reply with an
empty route so dispatch proceeds the same way every time.

``FlowReplyModule`` implements both ``aforward`` (used at runtime through
``acall``) and ``forward``, so it can also be compiled by DSPy optimizers.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import dspy

from chatflow.config.models import AISettings
from chatflow.core.errors import DelegateError
from chatflow.core.security import escape_for_llm_prompt

logger = logging.getLogger(__name__)

UNAVAILABLE_REPLY = "AI service unavailable."
EMPTY_REPLY = "Okay."


@dataclass(frozen=True)
class AIReply:
    reply: str
    route: str = ""


class AIDelegate(ABC):
    """Produces a reply (and optional route label) for an ``ai`` node."""

    @abstractmethod
    async def generate_reply(
        self, prompt: str, user_text: str, routes: list[str] | None = None
    ) -> AIReply:
        """Return a reply. Must not raise.

        Args:
            prompt: Instructions configured on the node
            user_text: The user's raw message
            routes: Labels of the node's outgoing edges, offered to the model
        """
        ...


class EchoDelegate(AIDelegate):
    """Used when no language model is configured."""

    async def generate_reply(
        self, prompt: str, user_text: str, routes: list[str] | None = None
    ) -> AIReply:
        return AIReply(reply=f"AI: {user_text}")


class FlowReplySignature(dspy.Signature):
    """Answer the user's message following the operator's instructions.

    You may direct the conversation by setting `route` to EXACTLY one of the
    available routes. Leave `route` empty when none applies.
    """

    prompt: str = dspy.InputField(desc="Operator instructions for this step")
    user_message: str = dspy.InputField(desc="The user's latest message")
    available_routes: list[str] = dspy.InputField(desc="Route labels you may choose from")

    reply: str = dspy.OutputField(desc="Reply to send to the user")
    route: str = dspy.OutputField(desc="One of available_routes, or empty string")


class FlowReplyModule(dspy.Module):
    """DSPy module wrapping the reply signature."""

    def __init__(self, use_cot: bool = False) -> None:
        super().__init__()
        self.predictor = (
            dspy.ChainOfThought(FlowReplySignature) if use_cot else dspy.Predict(FlowReplySignature)
        )

    async def aforward(self, prompt: str, user_message: str, routes: list[str]) -> dspy.Prediction:
        return await self.predictor.acall(
            prompt=prompt, user_message=user_message, available_routes=routes
        )

    def forward(self, prompt: str, user_message: str, routes: list[str]) -> dspy.Prediction:
        return self.predictor(prompt=prompt, user_message=user_message, available_routes=routes)


class DSPyDelegate(AIDelegate):
    """Delegate backed by a DSPy language model."""

    def __init__(self, module: dspy.Module | None = None, timeout: float = 30.0) -> None:
        self.module = module or FlowReplyModule()
        self.timeout = timeout

    async def _predict(self, prompt: str, user_text: str, routes: list[str]) -> Any:
        try:
            return await asyncio.wait_for(
                self.module.acall(
                    prompt=prompt,
                    user_message=escape_for_llm_prompt(user_text),
                    routes=routes,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise DelegateError(f"AI provider timed out after {self.timeout}s") from e
        except Exception as e:
            raise DelegateError(f"AI provider failed: {e}") from e

    async def generate_reply(
        self, prompt: str, user_text: str, routes: list[str] | None = None
    ) -> AIReply:
        try:
            result = await self._predict(prompt, user_text, routes or [])
        except DelegateError as e:
            logger.warning(f"{e}; replying with fallback", exc_info=True)
            return AIReply(reply=UNAVAILABLE_REPLY)

        reply = getattr(result, "reply", None)
        route = getattr(result, "route", None)
        return AIReply(
            reply=reply if isinstance(reply, str) and reply.strip() else EMPTY_REPLY,
            route=route.strip() if isinstance(route, str) else "",
        )


def configure_lm(settings: AISettings) -> dspy.LM:
    """Configure DSPy globally with the model from settings."""
    model = os.environ.get("OPENAI_MODEL") or settings.model
    lm = dspy.LM(f"{settings.provider}/{model}", temperature=settings.temperature)
    dspy.configure(lm=lm)
    return lm


def create_delegate(settings: AISettings) -> AIDelegate:
    """Pick a delegate for the given settings.

    Falls back to EchoDelegate when AI is disabled or the provider's API key
    is not set.
    """
    if not settings.enabled:
        logger.info("AI disabled; ai nodes will echo user messages")
        return EchoDelegate()

    if settings.api_key_env and not os.environ.get(settings.api_key_env):
        logger.warning(f"{settings.api_key_env} not configured; ai nodes will echo user messages")
        return EchoDelegate()

    configure_lm(settings)
    return DSPyDelegate(FlowReplyModule(use_cot=settings.use_reasoning), timeout=settings.timeout)
