"""Conductor - workflow engine and agent orchestrator.

Drives multi-step workflows (a state machine over a DAG of steps) across a
pool of interchangeable agents selected by a load-balancing strategy.

Example:
    # Using CLI
    conductor templates list
    conductor agents defaults

    # Using Python
    from conductor.workflow import WorkflowEngine, Trigger
    from conductor.agents import AgentOrchestrator

    engine = WorkflowEngine()
    workflow = (await engine.create_workflow("proj-1", "Login", template_id="bug-fix")).value
    await engine.transition(workflow.id, Trigger.START)
"""

__version__ = "0.3.0"

__all__ = ["__version__", "main"]


def main() -> None:
    """Main entry point for the Conductor CLI."""
    from conductor.cli.main import app

    app()
