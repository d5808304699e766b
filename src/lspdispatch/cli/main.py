"""CLI entry point for lsp-dispatch."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from .. import __version__
from ..core.config import ConfigError

app = typer.Typer(
    name="lspdispatch",
    help="lsp-dispatch - LSP message dispatch and result aggregation",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()

ENCODINGS = ("utf-8", "utf-16", "utf-32")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"lsp-dispatch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """lsp-dispatch - LSP message dispatch and result aggregation."""


@app.command()
def replay(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Content-Length framed transcript of server messages",
    ),
    client_name: str = typer.Option(
        "replay",
        "--client-name",
        "-n",
        help="Connection name; selects the settings section of the config",
    ),
    encoding: str = typer.Option(
        "utf-16",
        "--encoding",
        "-e",
        help="Offset encoding of positions (utf-8, utf-16, utf-32)",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (trace, debug, info, warn, error)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print replies as JSON lines",
    ),
):
    """Dispatch a recorded transcript through the default handlers."""
    from ..core.config import ConfigManager
    from ..util.error import format_error, format_unknown_error
    from ..util.log import Log, LogLevel
    from .console import ConsoleEditor
    from .replay import replay_transcript

    if encoding not in ENCODINGS:
        console.print(f"[red]Error:[/red] unknown encoding {encoding!r}, expected one of {', '.join(ENCODINGS)}")
        raise typer.Exit(1)

    try:
        config = ConfigManager.load()
        ConfigManager.apply_logging(config)
        if log_level:
            Log.configure(level=LogLevel.parse(log_level))
    except (ConfigError, ValidationError, ValueError) as e:
        console.print(f"[red]Error:[/red] {format_error(e) or format_unknown_error(e)}")
        raise typer.Exit(1)

    # Keep stdout clean for JSON output
    editor = ConsoleEditor(Console(stderr=True) if json_output else console)
    replies = asyncio.run(replay_transcript(
        file,
        editor,
        client_name=client_name,
        offset_encoding=encoding,
    ))

    for reply in replies:
        if json_output:
            typer.echo(json.dumps(reply))
        else:
            console.print(f"[bold]reply[/bold] {reply.get('id')}")
            console.print_json(json.dumps(reply.get("result", reply.get("error"))))


@app.command()
def methods():
    """List the methods of the default handler table."""
    from ..lsp.client import Clients
    from ..lsp.features import FeatureStore
    from ..lsp.handlers import HandlerEnv, default_handlers
    from ..lsp.prompt import make_prompt
    from .console import ConsoleEditor

    editor = ConsoleEditor(console)
    env = HandlerEnv(
        clients=Clients(),
        editor=editor,
        features=FeatureStore(),
        prompt=make_prompt(editor),
    )
    registry = default_handlers(env)

    console.print(f"\n[bold]Default handlers ({len(registry)})[/bold]\n")
    for method in registry.methods():
        console.print(f"  [cyan]{method}[/cyan]")
    console.print()


if __name__ == "__main__":
    app()
