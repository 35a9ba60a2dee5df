"""Conductor command-line interface, built on Typer with Rich output."""

from conductor.cli.main import app

__all__ = ["app"]
