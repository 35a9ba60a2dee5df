"""Rich tables for workflows, templates and agents."""

from collections.abc import Mapping
from typing import Any

from rich.table import Table

from conductor.cli.formatters import console

_STATUS_STYLES = {
    "success": ("completed", "available", "ready", "approved", "skipped"),
    "info": ("running", "in_progress", "assigned", "reassigned", "review"),
    "warning": ("pending", "paused", "blocked", "busy", "draft"),
    "error": ("failed", "error", "offline", "cancelled"),
}


def status_style(status: str) -> str:
    """Semantic style name for a workflow, step, agent or assignment status."""
    lowered = status.lower()
    for style, statuses in _STATUS_STYLES.items():
        if lowered in statuses:
            return style
    return ""


def create_table(
    title: str | None = None,
    *,
    show_header: bool = True,
    show_lines: bool = False,
) -> Table:
    """Create a table with the CLI's border and header styling."""
    return Table(
        title=title,
        show_header=show_header,
        show_lines=show_lines,
        border_style="blue",
        header_style="bold cyan",
        row_styles=["", "dim"],
    )


def create_key_value_table(data: Mapping[str, Any], title: str | None = None) -> Table:
    """Create a two-column table of ``data``.

    Nested mappings are flattened into dotted keys, so a configuration dump
    prints one setting per row.
    """
    table = create_table(title, show_header=False)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in _flatten(data):
        table.add_row(key, str(value))
    return table


def _flatten(data: Mapping[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    rows: list[tuple[str, Any]] = []
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            rows.extend(_flatten(value, f"{name}."))
        else:
            rows.append((name, value))
    return rows


def styled_status(status: str) -> str:
    style = status_style(status)
    return f"[{style}]{status}[/]" if style else status


def print_table(table: Table) -> None:
    console.print(table)


__all__ = [
    "create_key_value_table",
    "create_table",
    "print_table",
    "status_style",
    "styled_status",
]
