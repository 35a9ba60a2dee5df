"""Workflow lifecycle state machine.

The transition table is a closed set of (state, trigger) rows. Each row has
an optional guard, checked before the state changes, and an optional action,
run right after it. Actions are synchronous: they mutate the workflow in
memory and schedule any collaborator I/O through the TransitionContext.

    draft    --start-->   ready      guard: at least one step, all named and typed
    ready    --start-->   running
    ready    --block-->   blocked
    running  --pause-->   paused
    paused   --resume-->  running
    running  --block-->   blocked
    blocked  --unblock--> running
    running  --review-->  review     guard: every step completed or skipped
    review   --approve--> completed
    running  --fail-->    failed
    draft    --cancel-->  cancelled
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from conductor.core.errors import GuardNotMetError, InvalidTransitionError, WorkflowError
from conductor.core.types import Result
from conductor.workflow.models import Trigger, Workflow, WorkflowState


class TransitionContext(Protocol):
    """Side effects available to transition actions, provided by the engine."""

    def promote_all_ready(self, workflow: Workflow) -> None: ...

    def promote_next(self, workflow: Workflow) -> None: ...

    def pause_current_step(self, workflow: Workflow) -> None: ...

    def resume_current_step(self, workflow: Workflow) -> None: ...

    def advance(self, workflow: Workflow) -> None: ...

    def fail_current_step(self, workflow: Workflow) -> None: ...


Guard = Callable[[Workflow], bool]
Action = Callable[[TransitionContext, Workflow, datetime], None]


@dataclass(frozen=True, slots=True)
class Transition:
    source: WorkflowState
    trigger: Trigger
    target: WorkflowState
    guard: Guard | None = None
    action: Action | None = None


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------


def _is_startable(workflow: Workflow) -> bool:
    return bool(workflow.steps) and all(s.name and s.type for s in workflow.steps)


def _all_steps_done(workflow: Workflow) -> bool:
    return workflow.all_steps_done


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------


def _prepare(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    ctx.promote_all_ready(workflow)


def _start(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    ctx.promote_next(workflow)


def _pause(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    ctx.pause_current_step(workflow)


def _resume(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    ctx.resume_current_step(workflow)
    ctx.advance(workflow)


def _block(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    workflow.metrics.blocker_count += 1


def _unblock(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    ctx.advance(workflow)


def _prepare_review(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    workflow.actual_duration_minutes = round((now - workflow.created_at).total_seconds() / 60)


def _complete(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    workflow.metrics.progress_percentage = 100
    workflow.completed_at = now


def _fail(ctx: TransitionContext, workflow: Workflow, now: datetime) -> None:
    ctx.fail_current_step(workflow)


TRANSITIONS: tuple[Transition, ...] = (
    Transition(WorkflowState.DRAFT, Trigger.START, WorkflowState.READY, _is_startable, _prepare),
    Transition(WorkflowState.READY, Trigger.START, WorkflowState.RUNNING, action=_start),
    Transition(WorkflowState.READY, Trigger.BLOCK, WorkflowState.BLOCKED, action=_block),
    Transition(WorkflowState.RUNNING, Trigger.PAUSE, WorkflowState.PAUSED, action=_pause),
    Transition(WorkflowState.PAUSED, Trigger.RESUME, WorkflowState.RUNNING, action=_resume),
    Transition(WorkflowState.RUNNING, Trigger.BLOCK, WorkflowState.BLOCKED, action=_block),
    Transition(WorkflowState.BLOCKED, Trigger.UNBLOCK, WorkflowState.RUNNING, action=_unblock),
    Transition(
        WorkflowState.RUNNING,
        Trigger.REVIEW,
        WorkflowState.REVIEW,
        _all_steps_done,
        _prepare_review,
    ),
    Transition(WorkflowState.REVIEW, Trigger.APPROVE, WorkflowState.COMPLETED, action=_complete),
    Transition(WorkflowState.RUNNING, Trigger.FAIL, WorkflowState.FAILED, action=_fail),
    Transition(WorkflowState.DRAFT, Trigger.CANCEL, WorkflowState.CANCELLED),
)


class WorkflowStateMachine:
    """Looks up and applies rows of the transition table."""

    def __init__(self, transitions: tuple[Transition, ...] = TRANSITIONS) -> None:
        self._rows: dict[tuple[WorkflowState, Trigger], Transition] = {
            (t.source, t.trigger): t for t in transitions
        }

    def find(self, state: WorkflowState, trigger: Trigger) -> Transition | None:
        return self._rows.get((state, trigger))

    def available_triggers(self, state: WorkflowState) -> list[Trigger]:
        return [trigger for (source, trigger) in self._rows if source is state]

    def check(self, workflow: Workflow, trigger: Trigger) -> Result[Transition, WorkflowError]:
        """Return the row ``trigger`` would take, without changing anything."""
        row = self.find(workflow.state, trigger)
        if row is None:
            return Result.err(
                InvalidTransitionError(workflow.id, workflow.state.value, trigger.value)
            )
        if row.guard is not None and not row.guard(workflow):
            return Result.err(GuardNotMetError(workflow.id, workflow.state.value, trigger.value))
        return Result.ok(row)

    def enter(
        self, row: Transition, workflow: Workflow, ctx: TransitionContext, now: datetime
    ) -> None:
        """Set the row's target state, then run its action.

        The state and ``updated_at`` change before the action runs, so an
        action that advances the workflow sees the new state.
        """
        workflow.state = row.target
        workflow.updated_at = now
        if row.action is not None:
            row.action(ctx, workflow, now)

    def apply(
        self,
        workflow: Workflow,
        trigger: Trigger,
        ctx: TransitionContext,
        now: datetime,
    ) -> Result[Transition, WorkflowError]:
        """Check ``trigger`` against the table and enter the matching row."""
        checked = self.check(workflow, trigger)
        if checked.is_ok:
            self.enter(checked.value, workflow, ctx, now)
        return checked


__all__ = [
    "TRANSITIONS",
    "Transition",
    "TransitionContext",
    "WorkflowStateMachine",
]
