"""Event factories for workflow and step changes.

Event naming follows dot.notation.past_tense convention:
    workflow.lifecycle.created - Workflow created from a template or step list
    workflow.transition.applied - State machine transition applied
    workflow.step.promoted - Step became ready
    workflow.step.started - Step execution began
    workflow.step.completed - Step finished successfully
    workflow.step.failed - Step attempt failed
    workflow.step.retried - Operator reopened a failed step
    workflow.step.skipped - Operator skipped a step
"""

from __future__ import annotations

from conductor.events.base import BaseEvent


def create_workflow_created_event(
    workflow_id: str,
    project_id: str,
    name: str,
    workflow_type: str,
    step_count: int,
    template_id: str | None = None,
) -> BaseEvent:
    """Emitted when a workflow is created in the draft state."""
    return BaseEvent(
        type="workflow.lifecycle.created",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={
            "project_id": project_id,
            "name": name,
            "workflow_type": workflow_type,
            "step_count": step_count,
            "template_id": template_id,
        },
    )


def create_transition_applied_event(
    workflow_id: str, from_state: str, to_state: str, trigger: str
) -> BaseEvent:
    """Emitted when a workflow enters a new state.

    Recorded before the row's action runs, so a transition the action
    applies itself (review after the last step, fail when no path remains)
    is reported after the one that caused it.
    """
    return BaseEvent(
        type="workflow.transition.applied",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={"from": from_state, "to": to_state, "trigger": trigger},
    )


def create_step_promoted_event(workflow_id: str, step_id: str, step_name: str) -> BaseEvent:
    return BaseEvent(
        type="workflow.step.promoted",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={"step_id": step_id, "step_name": step_name},
    )


def create_step_started_event(workflow_id: str, step_id: str, step_name: str) -> BaseEvent:
    return BaseEvent(
        type="workflow.step.started",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={"step_id": step_id, "step_name": step_name},
    )


def create_step_completed_event(
    workflow_id: str,
    step_id: str,
    progress_percentage: int,
    duration_minutes: float | None = None,
) -> BaseEvent:
    return BaseEvent(
        type="workflow.step.completed",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={
            "step_id": step_id,
            "progress_percentage": progress_percentage,
            "duration_minutes": duration_minutes,
        },
    )


def create_step_failed_event(
    workflow_id: str,
    step_id: str,
    error: str,
    retry_count: int,
    will_retry: bool,
) -> BaseEvent:
    """Emitted on every failed step attempt.

    Args:
        workflow_id: Owning workflow.
        step_id: The step that failed.
        error: Failure description.
        retry_count: Attempts used so far.
        will_retry: True when the step went back to ready.
    """
    return BaseEvent(
        type="workflow.step.failed",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={
            "step_id": step_id,
            "error": error,
            "retry_count": retry_count,
            "will_retry": will_retry,
        },
    )


def create_step_retried_event(workflow_id: str, step_id: str, max_retries: int) -> BaseEvent:
    return BaseEvent(
        type="workflow.step.retried",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={"step_id": step_id, "max_retries": max_retries},
    )


def create_step_skipped_event(workflow_id: str, step_id: str, reason: str) -> BaseEvent:
    return BaseEvent(
        type="workflow.step.skipped",
        aggregate_type="workflow",
        aggregate_id=workflow_id,
        data={"step_id": step_id, "reason": reason},
    )


__all__ = [
    "create_step_completed_event",
    "create_step_failed_event",
    "create_step_promoted_event",
    "create_step_retried_event",
    "create_step_skipped_event",
    "create_step_started_event",
    "create_transition_applied_event",
    "create_workflow_created_event",
]
