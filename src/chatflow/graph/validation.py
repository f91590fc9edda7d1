"""Static checks for flow graphs.

The interpreter tolerates every problem reported here at runtime (it
truncates or terminates instead of raising); these checks let authors find
them before users do.
"""

from collections import Counter, deque
from dataclasses import dataclass
from typing import Literal

from chatflow.core.errors import ExpressionError
from chatflow.core.expression import is_digits_only, parse_expression
from chatflow.engine.buttons import normalize_label
from chatflow.graph.models import ButtonMessageNode, ConditionNode, FlowGraph, UnknownNode

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class GraphIssue:
    severity: Severity
    message: str
    node_id: str | None = None


def _reachable(graph: FlowGraph, start: str) -> set[str]:
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for edge in graph.outgoing(current):
            if edge.target not in seen:
                seen.add(edge.target)
                queue.append(edge.target)
    return seen


def validate_graph(graph: FlowGraph) -> list[GraphIssue]:
    """Return every problem found in ``graph``, errors first."""
    issues: list[GraphIssue] = []
    node_ids = {n.id for n in graph.nodes}

    for node_id, count in Counter(n.id for n in graph.nodes).items():
        if count > 1:
            issues.append(GraphIssue("error", f"Duplicate node id {node_id!r}", node_id))

    triggers = graph.triggers()
    if not triggers:
        issues.append(GraphIssue("error", "Graph has no trigger node"))
    elif len(triggers) > 1:
        issues.append(
            GraphIssue(
                "warning",
                f"Graph has {len(triggers)} trigger nodes; {triggers[0].id!r} is the entry point",
                triggers[0].id,
            )
        )

    for edge in graph.edges:
        for end in (edge.source, edge.target):
            if end not in node_ids:
                issues.append(
                    GraphIssue("error", f"Edge {edge.id!r} references missing node {end!r}", end)
                )

    for node in graph.nodes:
        outgoing = graph.outgoing(node.id)

        if isinstance(node, UnknownNode):
            issues.append(
                GraphIssue("warning", f"Unknown node type {node.type!r}; runs stop here", node.id)
            )

        elif isinstance(node, ButtonMessageNode):
            labels = {normalize_label(e.label) for e in outgoing}
            for button in node.data.buttons:
                if normalize_label(button) not in labels:
                    issues.append(
                        GraphIssue(
                            "warning",
                            f"Button {button!r} has no outgoing edge with a matching label",
                            node.id,
                        )
                    )

        elif isinstance(node, ConditionNode):
            expr = node.data.expr
            if not is_digits_only(expr):
                try:
                    parse_expression(expr)
                except ExpressionError as e:
                    issues.append(
                        GraphIssue("error", f"Invalid condition {expr!r}: {e}", node.id)
                    )
            branches = {e.branch for e in outgoing}
            if outgoing and not {"true", "false"} & branches:
                issues.append(
                    GraphIssue(
                        "warning",
                        "Condition has no true/false branch edges; the first edge is always taken",
                        node.id,
                    )
                )

    if triggers:
        reachable = _reachable(graph, triggers[0].id)
        for node in graph.nodes:
            if node.id not in reachable:
                issues.append(
                    GraphIssue("warning", "Node is not reachable from the trigger", node.id)
                )

    return sorted(issues, key=lambda i: i.severity != "error")
