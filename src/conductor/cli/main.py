"""Conductor CLI entry point.

Defines the Typer application and registers the command groups.
"""

from typing import Annotated

import typer

from conductor import __version__
from conductor.cli.commands import agents, config, run, templates
from conductor.cli.formatters import console

app = typer.Typer(
    name="conductor",
    help="Conductor - workflow engine and agent orchestrator",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config.app, name="config")
app.add_typer(templates.app, name="templates")
app.add_typer(agents.app, name="agents")
app.add_typer(run.app, name="run")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]Conductor[/] version [green]{__version__}[/]")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Conductor - drive multi-step workflows across a pool of agents.

    Use [bold cyan]conductor COMMAND --help[/] for command-specific help.
    """


__all__ = ["app", "main"]
