"""``chatflow`` command line: serve, chat with and validate flow graphs."""

import typer

from chatflow import __version__
from chatflow.cli.commands import chat, server, validate

app = typer.Typer(
    name="chatflow",
    help="Run chatbot flow graphs over HTTP or in the terminal.",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(server.app, name="server", help="Serve configured flows over HTTP")
# Plain commands, so options may follow the FLOW_FILE argument
app.command("chat", help="Talk to a flow file interactively")(chat.run_chat)
app.command("validate", help="Report structural problems in a flow file")(validate.run_validate)


def _show_version(requested: bool) -> None:
    if not requested:
        return
    typer.echo(f"chatflow version {__version__}")
    raise typer.Exit()


@app.callback()
def root(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Print the installed version",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Conversational flow engine."""


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
