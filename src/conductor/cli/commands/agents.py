"""Agents command group for Conductor."""

import typer

from conductor.agents.defaults import default_agents
from conductor.cli.formatters.tables import create_table, print_table, styled_status

app = typer.Typer(
    name="agents",
    help="Inspect agent profiles.",
    no_args_is_help=True,
)


@app.command()
def defaults() -> None:
    """Show the built-in agent roster."""
    table = create_table("Default Agents")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Status", justify="center")
    table.add_column("Capacity", justify="right")
    table.add_column("Success %", justify="right")
    table.add_column("Skills")

    for agent in default_agents():
        table.add_row(
            agent.id,
            agent.type.value,
            styled_status(agent.status.value),
            str(agent.max_concurrent_tasks),
            f"{agent.performance.success_rate_percent:.0f}",
            ", ".join(c.skill for c in agent.capabilities),
        )
    print_table(table)


__all__ = ["app"]
