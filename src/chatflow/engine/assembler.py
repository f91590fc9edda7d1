"""Response assembly.

Turns a run's accumulated output into exactly one reply payload, in
priority order: buttons, media (with any text), joined text, fallback.
"""

from chatflow.core.constants import FALLBACK_REPLY, MESSAGE_SEPARATOR
from chatflow.engine.interpreter import ExecutionResult
from chatflow.engine.replies import MediaReply, ReplyPayload, TextReply


def assemble_reply(result: ExecutionResult, fallback: str = FALLBACK_REPLY) -> ReplyPayload:
    if result.buttons is not None:
        return result.buttons

    text = MESSAGE_SEPARATOR.join(result.messages)
    if result.media:
        return MediaReply(text=text, images=list(result.media))
    if result.messages:
        return TextReply(text=text)
    return TextReply(text=fallback)
