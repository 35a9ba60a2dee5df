"""Workflow engine: lifecycle transitions and step progression.

The engine is the sole owner of Workflow and WorkflowStep state. Each
operation holds the workflow's lock, mutates in memory without awaiting,
and only then schedules persistence and context-store calls on the
background dispatcher and notifies observers.

Readiness:
    A step is ready when it is pending and every dependency (by name, then
    by id) is completed. Steps are scanned by step priority, then
    declaration order (declaration order only when prioritization is off).

Advance rule (after a step completes or fails, on resume and on unblock,
only while the workflow is running):
    1. Every step completed or skipped: apply ``review``.
    2. A step failed and no other step can still make progress: apply ``fail``.
    3. Otherwise promote the first dependency-satisfied pending step.

Usage:
    engine = WorkflowEngine()
    workflow = (await engine.create_workflow("proj", "Login", template_id="bug-fix")).value
    await engine.transition(workflow.id, Trigger.START)
    await engine.transition(workflow.id, Trigger.START)

    step = engine.get_ready_steps(workflow.id).value[0]
    await engine.execute_step(workflow.id, step.id)
    await engine.complete_step(workflow.id, step.id, outputs={"repro": "ok"})
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from conductor.config.models import WorkflowConfig
from conductor.core.background import BackgroundDispatcher
from conductor.core.errors import (
    ConductorError,
    DependenciesNotMetError,
    InvalidStepStateError,
    UnknownStepError,
    UnknownTemplateError,
    UnknownWorkflowError,
    WorkflowError,
)
from conductor.core.locks import LockRegistry, workflow_key
from conductor.core.protocols import (
    Artifact,
    ContextStore,
    EventObserver,
    NullContextStore,
    NullStateStore,
    StateStore,
    TaskContextStatus,
    TaskContextUpdate,
    TemplateProvider,
)
from conductor.core.types import Clock, Payload, Priority, Result, utc_now
from conductor.events.base import BaseEvent
from conductor.events.workflow import (
    create_step_completed_event,
    create_step_failed_event,
    create_step_promoted_event,
    create_step_retried_event,
    create_step_skipped_event,
    create_step_started_event,
    create_transition_applied_event,
    create_workflow_created_event,
)
from conductor.observability.logging import get_logger
from conductor.workflow.graph import (
    StepGraph,
    dependencies_met,
    pending_dependencies,
    validate_steps,
)
from conductor.workflow.models import (
    ArtifactRecord,
    StepBlueprint,
    StepStatus,
    Trigger,
    Workflow,
    WorkflowMetrics,
    WorkflowState,
    WorkflowStep,
    WorkflowTemplate,
    WorkflowType,
)
from conductor.workflow.state_machine import WorkflowStateMachine
from conductor.workflow.templates import BuiltinTemplateProvider

log = get_logger(__name__)

PAUSED_BLOCKER = "Workflow paused by user"


@dataclass(frozen=True, slots=True)
class WorkflowStatusReport:
    """Step breakdown returned by get_workflow_status.

    Attributes:
        workflow: Snapshot of the workflow.
        ready_steps: Ready steps, and pending steps whose dependencies are met.
        blocked_steps: Pending steps still waiting on dependencies.
        completed_steps: Completed steps.
    """

    workflow: Workflow
    ready_steps: tuple[WorkflowStep, ...]
    blocked_steps: tuple[WorkflowStep, ...]
    completed_steps: tuple[WorkflowStep, ...]


@dataclass(slots=True)
class _Mutation:
    """Side effects gathered while one operation holds a workflow's lock.

    Implements TransitionContext for the state machine actions. Events and
    collaborator calls are released by the engine once the lock is dropped.
    """

    engine: WorkflowEngine
    now: datetime
    events: list[BaseEvent] = field(default_factory=list)
    context_updates: list[TaskContextUpdate] = field(default_factory=list)
    artifacts: list[Artifact] = field(default_factory=list)

    def apply(self, workflow: Workflow, trigger: Trigger) -> Result[Any, WorkflowError]:
        machine = self.engine._machine
        checked = machine.check(workflow, trigger)
        if checked.is_err:
            return checked
        row = checked.value

        # Recorded before the action so transitions it chains come after this one.
        log.info(
            "workflow.transition.applied",
            workflow_id=workflow.id,
            from_state=row.source.value,
            to_state=row.target.value,
            trigger=trigger.value,
        )
        self.events.append(
            create_transition_applied_event(
                workflow.id, row.source.value, row.target.value, trigger.value
            )
        )
        machine.enter(row, workflow, self, self.now)
        return checked

    def _promote(self, workflow: Workflow, step: WorkflowStep) -> None:
        step.status = StepStatus.READY
        log.debug("workflow.step.promoted", workflow_id=workflow.id, step_id=step.id)
        self.events.append(create_step_promoted_event(workflow.id, step.id, step.name))

    def promote_all_ready(self, workflow: Workflow) -> None:
        for step in self.engine._scan_order(workflow):
            if step.status is StepStatus.PENDING and dependencies_met(workflow.steps, step):
                self._promote(workflow, step)

    def promote_next(self, workflow: Workflow) -> None:
        for step in self.engine._scan_order(workflow):
            if step.status is StepStatus.READY:
                return
            if step.status is StepStatus.PENDING and dependencies_met(workflow.steps, step):
                self._promote(workflow, step)
                return

    def _current_step(self, workflow: Workflow) -> WorkflowStep | None:
        if workflow.current_step_id is None:
            return None
        return workflow.step(workflow.current_step_id)

    def pause_current_step(self, workflow: Workflow) -> None:
        step = self._current_step(workflow)
        if step is None or step.status is not StepStatus.RUNNING:
            return
        self.context_updates.append(
            TaskContextUpdate(
                task_id=step.id,
                title=step.name,
                status=TaskContextStatus.BLOCKED,
                started_at=step.started_at,
                blockers=(PAUSED_BLOCKER,),
            )
        )

    def resume_current_step(self, workflow: Workflow) -> None:
        step = self._current_step(workflow)
        if step is None or step.status is not StepStatus.RUNNING:
            return
        step.status = StepStatus.RUNNING
        self.context_updates.append(
            TaskContextUpdate(
                task_id=step.id,
                title=step.name,
                status=TaskContextStatus.IN_PROGRESS,
                started_at=step.started_at,
            )
        )

    def advance(self, workflow: Workflow) -> None:
        if workflow.state is not WorkflowState.RUNNING:
            return
        if workflow.all_steps_done:
            self.apply(workflow, Trigger.REVIEW)
            return
        has_failed = any(s.status is StepStatus.FAILED for s in workflow.steps)
        if has_failed and not StepGraph(workflow.steps).has_alternate_path():
            self.apply(workflow, Trigger.FAIL)
            return
        self.promote_next(workflow)

    def fail_current_step(self, workflow: Workflow) -> None:
        step = self._current_step(workflow)
        if step is not None and step.status is StepStatus.RUNNING:
            step.status = StepStatus.FAILED
            step.completed_at = self.now


class WorkflowEngine:
    """Creates workflows and drives them through their lifecycle.

    Args:
        config: Step retry default and ready-step ordering.
        template_provider: Template catalogue; the built-in templates if omitted.
        state_store: Receives a workflow snapshot after every mutation.
        context_store: Told about step starts, pauses, resumes and artifacts.
        dispatcher: Background dispatcher; one is created if omitted.
        observer: Called with every event this engine emits.
        clock: Source of timestamps.
    """

    def __init__(
        self,
        config: WorkflowConfig | None = None,
        *,
        template_provider: TemplateProvider | None = None,
        state_store: StateStore | None = None,
        context_store: ContextStore | None = None,
        dispatcher: BackgroundDispatcher | None = None,
        observer: EventObserver | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._config = config or WorkflowConfig()
        self._templates = template_provider or BuiltinTemplateProvider()
        self._state_store = state_store or NullStateStore()
        self._context_store = context_store or NullContextStore()
        self._dispatcher = dispatcher or BackgroundDispatcher()
        self._observer = observer
        self._clock = clock
        self._machine = WorkflowStateMachine()
        self._locks = LockRegistry()
        self._workflows: dict[str, Workflow] = {}

    # =========================================================================
    # Plumbing
    # =========================================================================

    def _scan_order(self, workflow: Workflow) -> list[WorkflowStep]:
        if not self._config.prioritize_ready_steps:
            return list(workflow.steps)
        return sorted(workflow.steps, key=lambda s: s.priority.sort_order)

    def _finish(
        self, mutation: _Mutation, snapshot: Workflow, observer: EventObserver | None
    ) -> None:
        """Release the side effects of an operation after its lock is dropped."""
        store = self._state_store
        self._dispatcher.submit(
            "state_store.save_workflow",
            lambda: store.save_workflow(snapshot),
            retry=True,
            key=workflow_key(snapshot.id),
            workflow_id=snapshot.id,
        )

        session_id = snapshot.session_id
        if session_id is not None:
            context = self._context_store
            for update in mutation.context_updates:
                self._dispatcher.submit(
                    "context_store.update_task_context",
                    lambda update=update: context.update_task_context(session_id, update),
                    workflow_id=snapshot.id,
                    step_id=update.task_id,
                )
            for artifact in mutation.artifacts:
                self._dispatcher.submit(
                    "context_store.track_artifact",
                    lambda artifact=artifact: context.track_artifact(session_id, artifact),
                    workflow_id=snapshot.id,
                    path=artifact.path,
                )

        for event in mutation.events:
            self._dispatcher.publish(event, (self._observer, observer))

    def _locate(
        self, workflow_id: str, step_id: str
    ) -> Result[tuple[Workflow, WorkflowStep], WorkflowError]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return Result.err(UnknownWorkflowError(workflow_id))
        step = workflow.step(step_id)
        if step is None:
            return Result.err(UnknownStepError(workflow_id, step_id))
        return Result.ok((workflow, step))

    @staticmethod
    def _invalid_step(workflow: Workflow, step: WorkflowStep, operation: str) -> WorkflowError:
        return InvalidStepStateError(
            f"Cannot {operation} step {step.name!r} while it is {step.status.value}",
            workflow_id=workflow.id,
            details={
                "step_id": step.id,
                "status": step.status.value,
                "state": workflow.state.value,
            },
        )

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_workflow(
        self,
        project_id: str,
        name: str,
        *,
        template_id: str | None = None,
        steps: Sequence[StepBlueprint] | None = None,
        description: str = "",
        workflow_type: WorkflowType | None = None,
        priority: Priority = Priority.MEDIUM,
        session_id: str | None = None,
        tags: Sequence[str] = (),
        created_by: str = "system",
        observer: EventObserver | None = None,
    ) -> Result[Workflow, ConductorError]:
        """Create a draft workflow from a template or a custom step list.

        Errors:
            UnknownTemplateError: ``template_id`` is not in the catalogue.
            WorkflowValidationError: Duplicate step names, unknown
                dependencies or a dependency cycle.
        """
        template: WorkflowTemplate | None = None
        if template_id is not None:
            template = self._templates.get_template(template_id)
            if template is None:
                return Result.err(UnknownTemplateError(template_id))
            blueprints: Sequence[StepBlueprint] = template.steps
        else:
            blueprints = steps or ()

        workflow_steps = [
            WorkflowStep.from_blueprint(b, self._config.default_step_max_retries)
            for b in blueprints
        ]
        validation = validate_steps(workflow_steps)
        if validation.is_err:
            log.warning(
                "workflow.creation.rejected",
                project_id=project_id,
                name=name,
                error=validation.error.message,
            )
            return Result.err(validation.error)

        now = self._clock()
        workflow = Workflow(
            id=str(uuid4()),
            project_id=project_id,
            name=name,
            created_at=now,
            updated_at=now,
            description=description,
            type=workflow_type or (template.type if template else WorkflowType.CUSTOM),
            steps=workflow_steps,
            metrics=WorkflowMetrics(steps_total=len(workflow_steps)),
            priority=priority,
            created_by=created_by,
            tags=tuple(tags),
            estimated_duration_minutes=template.estimated_duration_minutes if template else None,
            session_id=session_id,
            template_id=template_id,
        )

        mutation = _Mutation(self, now)
        mutation.events.append(
            create_workflow_created_event(
                workflow.id,
                project_id,
                name,
                workflow.type.value,
                len(workflow_steps),
                template_id=template_id,
            )
        )
        async with self._locks.hold(workflow_key(workflow.id)):
            self._workflows[workflow.id] = workflow
            snapshot = workflow.copy()

        log.info(
            "workflow.lifecycle.created",
            workflow_id=workflow.id,
            project_id=project_id,
            template_id=template_id,
            steps=len(workflow_steps),
        )
        self._finish(mutation, snapshot, observer)
        return Result.ok(snapshot)

    async def restore_workflow(self, workflow_id: str) -> Result[Workflow, WorkflowError]:
        """Load a workflow snapshot from the state store into the engine.

        A workflow already held in memory is returned as is.
        """
        if workflow_id in self._workflows:
            return self.get_workflow(workflow_id)

        loaded = await self._state_store.load_workflow(workflow_id)
        if loaded is None:
            return Result.err(UnknownWorkflowError(workflow_id))

        async with self._locks.hold(workflow_key(workflow_id)):
            workflow = self._workflows.setdefault(workflow_id, loaded)
            snapshot = workflow.copy()
        log.info(
            "workflow.lifecycle.restored", workflow_id=workflow_id, state=snapshot.state.value
        )
        return Result.ok(snapshot)

    # =========================================================================
    # Transitions
    # =========================================================================

    async def transition(
        self,
        workflow_id: str,
        trigger: Trigger,
        *,
        observer: EventObserver | None = None,
    ) -> Result[Workflow, WorkflowError]:
        """Apply ``trigger`` to the workflow's current state.

        Errors:
            UnknownWorkflowError: No such workflow.
            InvalidTransitionError: No row for (state, trigger).
            GuardNotMetError: The row's guard rejected the workflow.
        """
        async with self._locks.hold(workflow_key(workflow_id)):
            workflow = self._workflows.get(workflow_id)
            if workflow is None:
                return Result.err(UnknownWorkflowError(workflow_id))
            mutation = _Mutation(self, self._clock())
            result = mutation.apply(workflow, trigger)
            if result.is_err:
                log.warning(
                    "workflow.transition.rejected",
                    workflow_id=workflow_id,
                    state=workflow.state.value,
                    trigger=trigger.value,
                    error=result.error.message,
                )
                return Result.err(result.error)
            snapshot = workflow.copy()

        self._finish(mutation, snapshot, observer)
        return Result.ok(snapshot)

    # =========================================================================
    # Step lifecycle
    # =========================================================================

    async def execute_step(
        self,
        workflow_id: str,
        step_id: str,
        *,
        session_id: str | None = None,
        observer: EventObserver | None = None,
    ) -> Result[WorkflowStep, WorkflowError]:
        """Mark a step as running.

        Linking ``session_id`` makes the workflow report to that context
        store session from now on.

        Errors:
            UnknownWorkflowError, UnknownStepError: Lookup miss.
            InvalidStepStateError: Workflow not running, or step not pending/ready.
            DependenciesNotMetError: A dependency has not completed.
        """
        async with self._locks.hold(workflow_key(workflow_id)):
            located = self._locate(workflow_id, step_id)
            if located.is_err:
                return Result.err(located.error)
            workflow, step = located.value

            if workflow.state is not WorkflowState.RUNNING:
                return Result.err(
                    InvalidStepStateError(
                        f"Workflow is {workflow.state.value}, steps run only while running",
                        workflow_id=workflow_id,
                        details={"step_id": step_id, "state": workflow.state.value},
                    )
                )
            if not step.status.is_executable:
                return Result.err(self._invalid_step(workflow, step, "execute"))
            pending = pending_dependencies(workflow.steps, step)
            if pending:
                return Result.err(DependenciesNotMetError(workflow_id, step_id, pending))

            mutation = _Mutation(self, self._clock())
            step.status = StepStatus.RUNNING
            step.started_at = mutation.now
            workflow.current_step_id = step_id
            workflow.updated_at = mutation.now
            if session_id is not None:
                workflow.session_id = session_id
            mutation.context_updates.append(
                TaskContextUpdate(
                    task_id=step.id,
                    title=step.name,
                    status=TaskContextStatus.IN_PROGRESS,
                    started_at=step.started_at,
                )
            )
            mutation.events.append(create_step_started_event(workflow_id, step_id, step.name))
            step_snapshot = step.copy()
            snapshot = workflow.copy()

        log.info("workflow.step.started", workflow_id=workflow_id, step_id=step_id, name=step.name)
        self._finish(mutation, snapshot, observer)
        return Result.ok(step_snapshot)

    async def complete_step(
        self,
        workflow_id: str,
        step_id: str,
        outputs: Payload | None = None,
        artifacts: Sequence[Artifact] | None = None,
        *,
        observer: EventObserver | None = None,
    ) -> Result[Workflow, WorkflowError]:
        """Complete a running step, update metrics and advance the workflow.

        Completing the last outstanding step moves the workflow to review.
        """
        async with self._locks.hold(workflow_key(workflow_id)):
            located = self._locate(workflow_id, step_id)
            if located.is_err:
                return Result.err(located.error)
            workflow, step = located.value
            if step.status is not StepStatus.RUNNING:
                return Result.err(self._invalid_step(workflow, step, "complete"))

            mutation = _Mutation(self, self._clock())
            step.status = StepStatus.COMPLETED
            step.completed_at = mutation.now
            step.outputs = dict(outputs) if outputs is not None else None
            step.error = None
            workflow.updated_at = mutation.now

            for artifact in artifacts or ():
                workflow.artifacts.append(ArtifactRecord(step_id, artifact.type, artifact.path))
                mutation.artifacts.append(artifact)

            metrics = workflow.metrics
            metrics.steps_completed += 1
            metrics.progress_percentage = round(
                metrics.steps_completed / metrics.steps_total * 100
            )
            durations = [
                d
                for s in workflow.steps_with_status(StepStatus.COMPLETED)
                if (d := s.duration_minutes) is not None
            ]
            if durations:
                metrics.average_step_duration_minutes = sum(durations) / len(durations)

            mutation.events.append(
                create_step_completed_event(
                    workflow_id, step_id, metrics.progress_percentage, step.duration_minutes
                )
            )
            mutation.advance(workflow)
            snapshot = workflow.copy()

        log.info(
            "workflow.step.completed",
            workflow_id=workflow_id,
            step_id=step_id,
            progress=snapshot.metrics.progress_percentage,
            state=snapshot.state.value,
        )
        self._finish(mutation, snapshot, observer)
        return Result.ok(snapshot)

    async def fail_step(
        self,
        workflow_id: str,
        step_id: str,
        error: str,
        *,
        observer: EventObserver | None = None,
    ) -> Result[Workflow, WorkflowError]:
        """Record a failed attempt of a running step.

        While ``retry_count <= max_retries`` the step goes back to ready.
        Past that it fails for good, and the workflow fails with it unless
        another step can still make progress.
        """
        async with self._locks.hold(workflow_key(workflow_id)):
            located = self._locate(workflow_id, step_id)
            if located.is_err:
                return Result.err(located.error)
            workflow, step = located.value
            if step.status is not StepStatus.RUNNING:
                return Result.err(self._invalid_step(workflow, step, "fail"))

            mutation = _Mutation(self, self._clock())
            step.retry_count += 1
            step.error = error
            workflow.updated_at = mutation.now
            will_retry = step.retry_count <= step.max_retries
            if will_retry:
                step.status = StepStatus.READY
                step.started_at = None
            else:
                step.status = StepStatus.FAILED
                step.completed_at = mutation.now

            mutation.events.append(
                create_step_failed_event(workflow_id, step_id, error, step.retry_count, will_retry)
            )
            if not will_retry:
                mutation.advance(workflow)
            snapshot = workflow.copy()

        log.warning(
            "workflow.step.failed",
            workflow_id=workflow_id,
            step_id=step_id,
            error=error,
            retry_count=step.retry_count,
            will_retry=will_retry,
            state=snapshot.state.value,
        )
        self._finish(mutation, snapshot, observer)
        return Result.ok(snapshot)

    async def retry_step(
        self,
        workflow_id: str,
        step_id: str,
        *,
        max_retries: int | None = None,
        observer: EventObserver | None = None,
    ) -> Result[Workflow, WorkflowError]:
        """Reopen a step that failed for good while its workflow still runs.

        Args:
            max_retries: New retry budget; never lowers the current one.
        """
        async with self._locks.hold(workflow_key(workflow_id)):
            located = self._locate(workflow_id, step_id)
            if located.is_err:
                return Result.err(located.error)
            workflow, step = located.value
            if workflow.state is not WorkflowState.RUNNING or step.status is not StepStatus.FAILED:
                return Result.err(self._invalid_step(workflow, step, "retry"))

            mutation = _Mutation(self, self._clock())
            if max_retries is not None:
                step.max_retries = max(step.max_retries, max_retries)
            step.status = StepStatus.READY
            step.started_at = None
            step.completed_at = None
            workflow.updated_at = mutation.now
            mutation.events.append(
                create_step_retried_event(workflow_id, step_id, step.max_retries)
            )
            snapshot = workflow.copy()

        log.info(
            "workflow.step.retried",
            workflow_id=workflow_id,
            step_id=step_id,
            max_retries=step.max_retries,
        )
        self._finish(mutation, snapshot, observer)
        return Result.ok(snapshot)

    async def skip_step(
        self,
        workflow_id: str,
        step_id: str,
        reason: str,
        *,
        observer: EventObserver | None = None,
    ) -> Result[Workflow, WorkflowError]:
        """Skip a pending, ready or failed step.

        Only steps whose dependents are all skipped can be skipped, since a
        dependent of a skipped step could never become ready.
        """
        async with self._locks.hold(workflow_key(workflow_id)):
            located = self._locate(workflow_id, step_id)
            if located.is_err:
                return Result.err(located.error)
            workflow, step = located.value
            skippable = step.status.is_executable or step.status is StepStatus.FAILED
            if workflow.state.is_terminal or not skippable:
                return Result.err(self._invalid_step(workflow, step, "skip"))

            index = workflow.steps.index(step)
            blocking = [
                d.name
                for d in StepGraph(workflow.steps).dependents_of(index)
                if d.status is not StepStatus.SKIPPED
            ]
            if blocking:
                return Result.err(
                    InvalidStepStateError(
                        f"Cannot skip step {step.name!r}: other steps depend on it",
                        workflow_id=workflow_id,
                        details={"step_id": step_id, "dependents": blocking},
                    )
                )

            mutation = _Mutation(self, self._clock())
            step.status = StepStatus.SKIPPED
            step.completed_at = mutation.now
            step.outputs = {"skip_reason": reason}
            workflow.updated_at = mutation.now
            mutation.events.append(create_step_skipped_event(workflow_id, step_id, reason))
            mutation.advance(workflow)
            snapshot = workflow.copy()

        log.info("workflow.step.skipped", workflow_id=workflow_id, step_id=step_id, reason=reason)
        self._finish(mutation, snapshot, observer)
        return Result.ok(snapshot)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_workflow(self, workflow_id: str) -> Result[Workflow, WorkflowError]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return Result.err(UnknownWorkflowError(workflow_id))
        return Result.ok(workflow.copy())

    def _ready(self, workflow: Workflow) -> list[WorkflowStep]:
        return [
            s
            for s in self._scan_order(workflow)
            if s.status is StepStatus.READY
            or (s.status is StepStatus.PENDING and dependencies_met(workflow.steps, s))
        ]

    def get_ready_steps(self, workflow_id: str) -> Result[list[WorkflowStep], WorkflowError]:
        """Steps that may be executed now, in scan order."""
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return Result.err(UnknownWorkflowError(workflow_id))
        return Result.ok([s.copy() for s in self._ready(workflow)])

    def get_workflow_status(self, workflow_id: str) -> Result[WorkflowStatusReport, WorkflowError]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return Result.err(UnknownWorkflowError(workflow_id))
        blocked = [
            s.copy()
            for s in workflow.steps
            if s.status is StepStatus.PENDING and not dependencies_met(workflow.steps, s)
        ]
        return Result.ok(
            WorkflowStatusReport(
                workflow=workflow.copy(),
                ready_steps=tuple(s.copy() for s in self._ready(workflow)),
                blocked_steps=tuple(blocked),
                completed_steps=tuple(
                    s.copy() for s in workflow.steps_with_status(StepStatus.COMPLETED)
                ),
            )
        )

    def get_execution_levels(
        self, workflow_id: str
    ) -> Result[tuple[tuple[WorkflowStep, ...], ...], WorkflowError]:
        """Steps grouped into levels that can run in parallel."""
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return Result.err(UnknownWorkflowError(workflow_id))
        levels = StepGraph(workflow.steps).execution_levels()
        return Result.ok(
            tuple(tuple(workflow.steps[i].copy() for i in level) for level in levels)
        )

    def list_project_workflows(self, project_id: str) -> list[Workflow]:
        return [w.copy() for w in self._workflows.values() if w.project_id == project_id]

    def list_templates(self, workflow_type: WorkflowType | None = None) -> list[WorkflowTemplate]:
        return [
            t
            for t in self._templates.list_templates()
            if workflow_type is None or t.type is workflow_type
        ]

    async def drain(self) -> None:
        """Wait for pending background persistence and notifications."""
        await self._dispatcher.drain()


__all__ = [
    "PAUSED_BLOCKER",
    "WorkflowEngine",
    "WorkflowStatusReport",
]
