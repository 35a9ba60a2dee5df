"""Bridge driving a WorkflowEngine and an AgentOrchestrator together.

The engine and the orchestrator never reach into each other's state. The
coordinator is the caller both expect: it turns ready steps into task
assignments, and turns task outcomes back into step completions and
failures.

A step's task id is ``"<workflow_id>:<step_id>"``.

Usage:
    coordinator = WorkflowCoordinator(engine, orchestrator)
    assignments = (await coordinator.dispatch_ready_steps(workflow.id)).value

    # ... an agent does the work ...
    await coordinator.report_success(assignments[0].task_id, outputs={"design": "..."})
"""

from __future__ import annotations

from collections.abc import Sequence

from conductor.agents.models import AssignmentStatus, TaskAssignment
from conductor.agents.orchestrator import AgentOrchestrator
from conductor.core.errors import ConductorError, NoAgentAvailableError, ValidationError
from conductor.core.protocols import Artifact
from conductor.core.types import Payload, Result
from conductor.observability.logging import bind_context, get_logger, unbind_context
from conductor.workflow.engine import WorkflowEngine
from conductor.workflow.models import StepStatus, Workflow, WorkflowState

log = get_logger(__name__)


def step_task_id(workflow_id: str, step_id: str) -> str:
    return f"{workflow_id}:{step_id}"


class WorkflowCoordinator:
    """Dispatches ready steps to agents and reports outcomes back.

    Args:
        engine: Owner of the workflows.
        orchestrator: Owner of the agents and assignments.
    """

    def __init__(self, engine: WorkflowEngine, orchestrator: AgentOrchestrator) -> None:
        self._engine = engine
        self._orchestrator = orchestrator

    async def dispatch_ready_steps(
        self, workflow_id: str
    ) -> Result[list[TaskAssignment], ConductorError]:
        """Assign, execute and start every ready step that has no live task.

        Tasks the orchestrator moved to another agent since the last call are
        started on their new agent, and tasks that failed for good outside
        report_failure (agent went offline past the retry cap) fail their step.
        A step that finds no available agent stays ready for the next call.
        Nothing is dispatched unless the workflow is running.

        Returns:
            Snapshots of the assignments started by this call.
        """
        found = self._engine.get_workflow(workflow_id)
        if found.is_err:
            return Result.err(found.error)
        workflow = found.value
        if workflow.state is not WorkflowState.RUNNING:
            return Result.ok([])

        bind_context(workflow_id=workflow_id)
        try:
            started = await self._reconcile(workflow)
            ready = self._engine.get_ready_steps(workflow_id)
            if ready.is_err:
                return Result.err(ready.error)

            for step in ready.value:
                task_id = step_task_id(workflow_id, step.id)
                existing = self._orchestrator.get_assignment(task_id)
                if existing.is_ok and existing.value.is_live:
                    continue

                assigned = await self._orchestrator.assign_task(
                    task_id,
                    step.required_capabilities,
                    workflow.priority,
                    workflow_id=workflow_id,
                    step_id=step.id,
                    description=step.name,
                )
                if assigned.is_err:
                    if isinstance(assigned.error, NoAgentAvailableError):
                        log.info("coordinator.dispatch.deferred", step_id=step.id)
                        break
                    return Result.err(assigned.error)

                executed = await self._engine.execute_step(
                    workflow_id, step.id, session_id=workflow.session_id
                )
                if executed.is_err:
                    # The step cannot run now; hand the agent's slot back.
                    await self._orchestrator.fail_task(
                        task_id, executed.error.message, retry=False
                    )
                    log.warning(
                        "coordinator.dispatch.step_rejected",
                        step_id=step.id,
                        error=executed.error.message,
                    )
                    continue

                began = await self._orchestrator.start_task(task_id)
                if began.is_ok:
                    started.append(began.value)

            log.info("coordinator.dispatch.completed", started=len(started))
            return Result.ok(started)
        finally:
            unbind_context("workflow_id")

    async def _reconcile(self, workflow: Workflow) -> list[TaskAssignment]:
        started: list[TaskAssignment] = []
        for assignment in self._orchestrator.list_assignments(workflow_id=workflow.id):
            if assignment.step_id is None:
                continue
            step = workflow.step(assignment.step_id)
            if step is None or step.status is not StepStatus.RUNNING:
                continue
            if assignment.status is AssignmentStatus.REASSIGNED:
                began = await self._orchestrator.start_task(assignment.task_id)
                if began.is_ok:
                    started.append(began.value)
            elif assignment.status is AssignmentStatus.FAILED:
                await self._engine.fail_step(
                    workflow.id, step.id, assignment.error or "Task failed"
                )
        return started

    def _step_of(self, assignment: TaskAssignment) -> Result[tuple[str, str], ConductorError]:
        if assignment.workflow_id is None or assignment.step_id is None:
            return Result.err(
                ValidationError(
                    "Task is not bound to a workflow step",
                    field="task_id",
                    value=assignment.task_id,
                )
            )
        return Result.ok((assignment.workflow_id, assignment.step_id))

    async def report_success(
        self,
        task_id: str,
        outputs: Payload | None = None,
        artifacts: Sequence[Artifact] | None = None,
    ) -> Result[Workflow, ConductorError]:
        """Complete the task, then its step.

        Returns:
            The workflow after the step completed (possibly now in review).
        """
        completed = await self._orchestrator.complete_task(task_id, output=outputs)
        if completed.is_err:
            return Result.err(completed.error)
        located = self._step_of(completed.value)
        if located.is_err:
            return Result.err(located.error)
        workflow_id, step_id = located.value

        result = await self._engine.complete_step(workflow_id, step_id, outputs, artifacts)
        if result.is_err:
            return Result.err(result.error)
        return Result.ok(result.value)

    async def report_failure(
        self, task_id: str, error: str
    ) -> Result[TaskAssignment, ConductorError]:
        """Fail the task; fail its step once the task cannot be reassigned.

        A reassigned task is started right away on its new agent and the step
        keeps running.
        """
        failed = await self._orchestrator.fail_task(task_id, error)
        if failed.is_err:
            return Result.err(failed.error)
        assignment = failed.value

        if assignment.status is AssignmentStatus.REASSIGNED:
            began = await self._orchestrator.start_task(task_id)
            if began.is_err:
                return Result.err(began.error)
            return Result.ok(began.value)

        located = self._step_of(assignment)
        if located.is_err:
            return Result.err(located.error)
        workflow_id, step_id = located.value
        stepped = await self._engine.fail_step(workflow_id, step_id, error)
        if stepped.is_err:
            return Result.err(stepped.error)
        return Result.ok(assignment)


__all__ = ["WorkflowCoordinator", "step_task_id"]
