"""Test doubles for chatflow collaborators."""

from typing import Any

from chatflow.ai.delegate import AIDelegate, AIReply


class ScriptedDelegate(AIDelegate):
    """Deterministic delegate returning a fixed reply and route."""

    def __init__(self, reply: str = "Sure, I can help", route: str = ""):
        self.reply = reply
        self.route = route
        self.calls: list[dict[str, Any]] = []

    async def generate_reply(
        self, prompt: str, user_text: str, routes: list[str] | None = None
    ) -> AIReply:
        self.calls.append({"prompt": prompt, "user_text": user_text, "routes": routes})
        return AIReply(reply=self.reply, route=self.route)
