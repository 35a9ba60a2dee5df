"""Config command group for Conductor."""

from pathlib import Path
from typing import Annotated

import typer

from conductor.cli.formatters.panels import print_error, print_success
from conductor.cli.formatters.tables import create_key_value_table, print_table
from conductor.config import apply_env_overrides, create_default_config, load_config
from conductor.config.models import get_config_dir
from conductor.core.errors import ConfigError

app = typer.Typer(
    name="config",
    help="Manage Conductor configuration.",
    no_args_is_help=True,
)

ConfigDir = Annotated[
    Path | None,
    typer.Option("--dir", "-d", help="Configuration directory (default: ~/.conductor)."),
]


def _config_path(config_dir: Path | None) -> Path:
    return (config_dir or get_config_dir()) / "config.yaml"


@app.command()
def init(
    config_dir: ConfigDir = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite an existing file.")
    ] = False,
) -> None:
    """Write config.yaml with default values."""
    try:
        path = create_default_config(config_dir, overwrite=force)
    except ConfigError as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e
    print_success(f"Configuration written to {path}")


@app.command()
def show(
    section: Annotated[
        str | None,
        typer.Argument(help="Section to display (orchestrator, workflow, persistence, logging)."),
    ] = None,
    config_dir: ConfigDir = None,
) -> None:
    """Display the effective configuration, environment overrides included."""
    try:
        config = apply_env_overrides(load_config(_config_path(config_dir)))
    except ConfigError as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e

    data = config.model_dump(mode="json")
    if section is not None:
        if section not in data:
            print_error(f"Unknown section: {section}")
            raise typer.Exit(code=1)
        data = {section: data[section]}
    print_table(create_key_value_table(data, "Configuration"))


@app.command()
def validate(config_dir: ConfigDir = None) -> None:
    """Check config.yaml for errors."""
    path = _config_path(config_dir)
    try:
        apply_env_overrides(load_config(path))
    except ConfigError as e:
        print_error(e.message, title="Invalid configuration")
        raise typer.Exit(code=1) from e
    print_success(f"{path} is valid")


__all__ = ["app"]
