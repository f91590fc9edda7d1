"""Validate command for checking flow graphs before deployment."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from chatflow.core.errors import GraphLoadError
from chatflow.graph.loader import FlowLoader
from chatflow.graph.validation import validate_graph

console = Console()


def run_validate(
    flow_file: Path = typer.Argument(..., help="Flow graph (.yaml, .yml or .json)", exists=True),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as errors"),
) -> None:
    """Report structural problems in a flow graph."""
    try:
        graph = FlowLoader.load(flow_file)
    except GraphLoadError as e:
        console.print(f"[red]Cannot load flow: {e}[/]")
        raise typer.Exit(1)

    issues = validate_graph(graph)
    if not issues:
        console.print(
            f"[green]✓[/] {graph.name or graph.id}: "
            f"{len(graph.nodes)} nodes, {len(graph.edges)} edges, no problems found"
        )
        return

    table = Table(title=f"Issues in {flow_file.name}")
    table.add_column("Severity")
    table.add_column("Node")
    table.add_column("Problem")
    for issue in issues:
        style = "red" if issue.severity == "error" else "yellow"
        table.add_row(f"[{style}]{issue.severity}[/]", issue.node_id or "-", issue.message)
    console.print(table)

    errors = sum(1 for i in issues if i.severity == "error")
    if errors or (strict and issues):
        raise typer.Exit(1)
