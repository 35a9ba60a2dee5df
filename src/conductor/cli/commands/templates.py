"""Templates command group for Conductor."""

from typing import Annotated

import typer

from conductor.cli.formatters import console
from conductor.cli.formatters.panels import print_error
from conductor.cli.formatters.tables import create_table, print_table
from conductor.workflow.models import WorkflowType
from conductor.workflow.templates import BuiltinTemplateProvider

app = typer.Typer(
    name="templates",
    help="Browse workflow templates.",
    no_args_is_help=True,
)


@app.command("list")
def list_templates(
    workflow_type: Annotated[
        WorkflowType | None,
        typer.Option("--type", "-t", help="Only show templates of this type."),
    ] = None,
) -> None:
    """List the available workflow templates."""
    table = create_table("Workflow Templates")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Steps", justify="right")
    table.add_column("Estimate (min)", justify="right")

    for template in BuiltinTemplateProvider().list_templates():
        if workflow_type is not None and template.type is not workflow_type:
            continue
        table.add_row(
            template.id,
            template.name,
            template.type.value,
            str(len(template.steps)),
            str(template.estimated_duration_minutes),
        )
    print_table(table)


@app.command()
def show(
    template_id: Annotated[str, typer.Argument(help="Template identifier.")],
) -> None:
    """Show a template's steps and their dependencies."""
    template = BuiltinTemplateProvider().get_template(template_id)
    if template is None:
        print_error(f"Unknown template: {template_id}")
        raise typer.Exit(code=1)

    console.print(f"[highlight]{template.name}[/] [muted]({template.id})[/]")
    if template.description:
        console.print(template.description)

    table = create_table()
    table.add_column("#", justify="right", style="muted")
    table.add_column("Step", style="cyan")
    table.add_column("Type")
    table.add_column("Depends on")
    table.add_column("Needs")
    for index, step in enumerate(template.steps, start=1):
        needs = ", ".join(
            req.skill or (req.category.value if req.category else "any")
            for req in step.required_capabilities
        )
        table.add_row(
            str(index),
            step.name,
            step.type.value,
            ", ".join(step.dependencies) or "-",
            needs or "-",
        )
    print_table(table)


__all__ = ["app"]
