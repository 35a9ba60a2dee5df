"""Run command for Conductor.

Creates a workflow from a template, starts it, and lets the default agents
work through its steps until the workflow reaches review, which is then
approved. Agents here report success immediately with placeholder outputs;
the command exercises dispatch and bookkeeping, not real agent work.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from conductor.cli.formatters import console
from conductor.cli.formatters.panels import print_error, print_success, print_warning
from conductor.cli.formatters.tables import create_table, print_table, styled_status
from conductor.config import load_config_or_default
from conductor.config.models import ConductorConfig, get_config_dir
from conductor.core.errors import ConductorError
from conductor.core.types import Result
from conductor.observability.logging import configure_logging, set_console_logging
from conductor.runtime import Conductor, build_conductor
from conductor.workflow.models import Trigger, Workflow, WorkflowState

app = typer.Typer(
    name="run",
    help="Run a workflow template with the default agents.",
    no_args_is_help=True,
)


def _ok[T](result: Result[T, ConductorError]) -> T:
    if result.is_err:
        raise result.error
    return result.value


def _runtime_config(config: ConductorConfig, *, persist: bool) -> ConductorConfig:
    return config.model_copy(
        update={
            "persistence": config.persistence.model_copy(update={"enabled": persist}),
            "orchestrator": config.orchestrator.model_copy(
                update={"register_default_agents": True}
            ),
        }
    )


async def _drive(conductor: Conductor, template_id: str, project_id: str) -> Workflow:
    engine = conductor.engine
    created = await engine.create_workflow(
        project_id, f"{template_id} run", template_id=template_id
    )
    workflow = _ok(created)

    # draft -> ready -> running
    for _ in range(2):
        workflow = _ok(await engine.transition(workflow.id, Trigger.START))

    while workflow.state is WorkflowState.RUNNING:
        started = _ok(await conductor.coordinator.dispatch_ready_steps(workflow.id))
        if not started:
            break
        for assignment in started:
            console.print(
                f"  [muted]{assignment.agent_id}[/] -> [cyan]{assignment.description}[/]"
            )
            _ok(await conductor.coordinator.report_success(
                assignment.task_id, outputs={"summary": f"{assignment.description} done"}
            )
        workflow = _ok(engine.get_workflow(workflow.id))

    if workflow.state is WorkflowState.REVIEW:
        workflow = _ok(await engine.transition(workflow.id, Trigger.APPROVE))
    return workflow


async def _run(
    config: ConductorConfig, config_dir: Path, template_id: str, project_id: str
) -> Workflow:
    conductor = await build_conductor(config, config_dir=config_dir)
    try:
        return await _drive(conductor, template_id, project_id)
    finally:
        await conductor.close()


@app.command()
def template(
    template_id: Annotated[str, typer.Argument(help="Template to run (see `templates list`).")],
    project_id: Annotated[
        str, typer.Option("--project", "-p", help="Project the workflow belongs to.")
    ] = "default",
    persist: Annotated[
        bool,
        typer.Option("--persist/--no-persist", help="Write events to the configured database."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show log output.")] = False,
) -> None:
    """Drive a template to completion with the built-in agents."""
    config_dir = get_config_dir()
    try:
        config = _runtime_config(load_config_or_default(), persist=persist)
    except ConductorError as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e

    configure_logging(config.logging.to_runtime(config_dir))
    set_console_logging(verbose)
    console.print(f"[highlight]Running[/] {template_id}")

    try:
        workflow = asyncio.run(_run(config, config_dir, template_id, project_id))
    except ConductorError as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e

    table = create_table(workflow.name)
    table.add_column("Step", style="cyan")
    table.add_column("Status", justify="center")
    for step in workflow.steps:
        table.add_row(step.name, styled_status(step.status.value))
    print_table(table)

    if workflow.state is WorkflowState.COMPLETED:
        print_success(f"Workflow {workflow.id} completed")
    else:
        print_warning(f"Workflow {workflow.id} stopped in state {workflow.state.value}")
        raise typer.Exit(code=1)


__all__ = ["app"]
