"""``chatflow server``: run the HTTP API under uvicorn."""

import os
from pathlib import Path

import typer
import uvicorn

from chatflow.config.loader import ConfigLoader
from chatflow.core.errors import ConfigError
from chatflow.server.api import CONFIG_ENV_VAR

app = typer.Typer(help="Serve configured flows over HTTP")


@app.callback(invoke_without_command=True)
def serve(
    config: Path = typer.Option(
        ..., "--config", "-c", help="chatflow.yaml, or the directory holding it", exists=True
    ),
    host: str = typer.Option("0.0.0.0", "--host", "-h"),
    port: int = typer.Option(8000, "--port", "-p"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
) -> None:
    """Check the config, then hand the app to uvicorn."""
    try:
        loaded = ConfigLoader.load(config)
    except (ConfigError, OSError) as e:
        typer.echo(f"Cannot use {config}: {e}", err=True)
        raise typer.Exit(1)

    # uvicorn imports the app by name, possibly in a reloader subprocess
    os.environ[CONFIG_ENV_VAR] = str(config.absolute())

    typer.echo(f"chatflow listening on http://{host}:{port}")
    typer.echo(f"  flows from {loaded.flows.directory}")

    uvicorn.run(
        "chatflow.server.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level=loaded.settings.logging.level.lower(),
    )
