"""Button reply resolution.

Matches a free-text reply to the label of one of a button node's
outgoing edges.
"""

from chatflow.graph.models import Edge


def normalize_label(value: str) -> str:
    return (value or "").strip().casefold()


def resolve_button(reply: str, outgoing: list[Edge]) -> Edge | None:
    """Return the first edge whose label equals the reply, ignoring case
    and surrounding whitespace, or None if no option matches.
    """
    choice = normalize_label(reply)
    for edge in outgoing:
        if normalize_label(edge.label) == choice:
            return edge
    return None


def resolve_route(route: str, outgoing: list[Edge]) -> Edge | None:
    """Match an AI route label against edge labels. Empty routes never match."""
    if not route or not route.strip():
        return None
    return resolve_button(route, outgoing)
