"""``chatflow chat``: converse with a flow file in the terminal."""

import asyncio
from pathlib import Path

import typer

from chatflow.core.errors import ChatflowError


def run_chat(
    flow_file: Path = typer.Argument(..., help="Flow graph (.yaml, .yml or .json)", exists=True),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to chatflow.yaml or config directory"
    ),
    session_key: str | None = typer.Option(None, "--session", "-s", help="Session key"),
    trace: bool = typer.Option(False, "--trace", help="Show the step trace after each reply"),
    debug: bool = typer.Option(False, "--debug", help="Print full tracebacks"),
) -> None:
    """Open a REPL against FLOW_FILE with an in-memory session."""
    from chatflow.cli.chat_runner import ChatConfig, run_chat_session

    options = ChatConfig(flow_file, config, session_key, trace, debug)
    try:
        asyncio.run(run_chat_session(options))
    except KeyboardInterrupt:
        return
    except (ChatflowError, OSError) as e:
        typer.echo(f"chat aborted: {e}", err=True)
        raise typer.Exit(1)
