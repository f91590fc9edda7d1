"""Node handlers.

Each handler receives the node, its outgoing edges (in authored order) and
the execution context, appends any output to the context and returns an
Outcome: Continue, Pause or Terminate. ``buttonMessage`` is the only type
that pauses.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from chatflow.core.constants import Branch, NodeType
from chatflow.core.events import (
    EVENT_ACTION_EXECUTED,
    EVENT_AI_REPLIED,
    EVENT_CONDITION_EVALUATED,
    EVENT_INVALID_SELECTION,
)
from chatflow.core.expression import evaluate_condition
from chatflow.engine.buttons import resolve_button, resolve_route
from chatflow.engine.context import (
    ActionRecord,
    Continue,
    ExecutionContext,
    Outcome,
    Pause,
    Terminate,
)
from chatflow.engine.replies import ButtonReply, MediaImage
from chatflow.graph.models import (
    ActionNode,
    AINode,
    ButtonMessageNode,
    ConditionNode,
    Edge,
    ImageNode,
    MediaItem,
    MessageNode,
    TriggerNode,
)

logger = logging.getLogger(__name__)

NodeHandler = Callable[[Any, list[Edge], ExecutionContext], Awaitable[Outcome]]


def _follow_first(outgoing: list[Edge]) -> Outcome:
    if outgoing:
        return Continue(outgoing[0].target)
    return Terminate()


def _collect_media(items: list[MediaItem], ctx: ExecutionContext) -> None:
    for item in items:
        ctx.media.append(MediaImage(url=item.url, caption=item.caption))


async def handle_trigger(
    node: TriggerNode, outgoing: list[Edge], ctx: ExecutionContext
) -> Outcome:
    # The greeting is only shown when the conversation starts over
    if node.data.text and ctx.started_fresh:
        ctx.messages.append(node.data.text)

    if not outgoing:
        return Terminate(clear_session=False)
    return Continue(outgoing[0].target)


async def handle_message(
    node: MessageNode, outgoing: list[Edge], ctx: ExecutionContext
) -> Outcome:
    ctx.messages.append(node.data.text)
    _collect_media(node.data.images, ctx)
    return _follow_first(outgoing)


async def handle_image(node: ImageNode, outgoing: list[Edge], ctx: ExecutionContext) -> Outcome:
    _collect_media(node.data.images, ctx)
    return _follow_first(outgoing)


async def handle_button_message(
    node: ButtonMessageNode, outgoing: list[Edge], ctx: ExecutionContext
) -> Outcome:
    payload = ButtonReply(text=node.data.text, buttons=list(node.data.buttons))

    if not ctx.is_resuming_at(node.id):
        ctx.buttons = payload
        return Pause()

    ctx.resume_consumed = True
    matched = resolve_button(ctx.text, outgoing)
    if matched is None:
        ctx.emit(EVENT_INVALID_SELECTION, node, reply=ctx.text)
        ctx.messages.append(ctx.invalid_selection_message)
        ctx.buttons = payload
        return Pause()

    return Continue(matched.target)


async def handle_condition(
    node: ConditionNode, outgoing: list[Edge], ctx: ExecutionContext
) -> Outcome:
    result = evaluate_condition(node.data.expr, ctx.text)
    branch = Branch.of(result).value
    ctx.emit(EVENT_CONDITION_EVALUATED, node, expr=node.data.expr, result=result)

    for edge in outgoing:
        if edge.branch == branch:
            return Continue(edge.target)

    if outgoing:
        logger.debug(f"No {branch} branch on condition {node.id}; using first edge")
        return Continue(outgoing[0].target)
    return Terminate(clear_session=False)


async def handle_ai(node: AINode, outgoing: list[Edge], ctx: ExecutionContext) -> Outcome:
    routes = [e.label for e in outgoing if e.label.strip()]
    answer = await ctx.delegate.generate_reply(node.data.prompt, ctx.text, routes=routes)
    ctx.messages.append(answer.reply)
    ctx.emit(EVENT_AI_REPLIED, node, route=answer.route)

    matched = resolve_route(answer.route, outgoing)
    if matched is not None:
        return Continue(matched.target)
    return _follow_first(outgoing)


async def handle_action(
    node: ActionNode, outgoing: list[Edge], ctx: ExecutionContext
) -> Outcome:
    method, url = node.data.method, node.data.url
    ctx.actions.append(ActionRecord(node_id=node.id, method=method, url=url))
    ctx.messages.append(f"✅ Action executed: {method} {url}")
    ctx.emit(EVENT_ACTION_EXECUTED, node, method=method, url=url)
    return _follow_first(outgoing)


HANDLERS: dict[str, NodeHandler] = {
    NodeType.TRIGGER.value: handle_trigger,
    NodeType.MESSAGE.value: handle_message,
    NodeType.IMAGE.value: handle_image,
    NodeType.BUTTON_MESSAGE.value: handle_button_message,
    NodeType.CONDITION.value: handle_condition,
    NodeType.AI.value: handle_ai,
    NodeType.ACTION.value: handle_action,
}


def get_handler(node_type: str) -> NodeHandler | None:
    return HANDLERS.get(node_type)
