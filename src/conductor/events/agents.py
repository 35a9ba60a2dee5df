"""Event factories for agent, task assignment and collaboration changes.

Event naming follows dot.notation.past_tense convention.
"""

from __future__ import annotations

from typing import Any

from conductor.events.base import BaseEvent


def create_agent_registered_event(agent_id: str, agent_type: str, is_new: bool) -> BaseEvent:
    """Emitted when an agent is registered or re-registered."""
    return BaseEvent(
        type="agent.registration.completed",
        aggregate_type="agent",
        aggregate_id=agent_id,
        data={"agent_type": agent_type, "is_new": is_new},
    )


def create_agent_status_changed_event(
    agent_id: str,
    previous_status: str,
    status: str,
    reassigned_task_ids: list[str],
) -> BaseEvent:
    """Emitted when an agent's status changes.

    Args:
        agent_id: Agent whose status changed.
        previous_status: Status before the change.
        status: New status.
        reassigned_task_ids: Tasks moved away as a consequence (offline/error).
    """
    return BaseEvent(
        type="agent.status.changed",
        aggregate_type="agent",
        aggregate_id=agent_id,
        data={
            "previous_status": previous_status,
            "status": status,
            "reassigned_task_ids": reassigned_task_ids,
        },
    )


def create_task_assigned_event(
    task_id: str,
    agent_id: str,
    priority: str,
    strategy: str,
    workflow_id: str | None = None,
    step_id: str | None = None,
) -> BaseEvent:
    """Emitted when a task is bound to an agent for the first time."""
    return BaseEvent(
        type="agent.task.assigned",
        aggregate_type="task",
        aggregate_id=task_id,
        data={
            "agent_id": agent_id,
            "priority": priority,
            "strategy": strategy,
            "workflow_id": workflow_id,
            "step_id": step_id,
        },
    )


def create_task_started_event(task_id: str, agent_id: str) -> BaseEvent:
    return BaseEvent(
        type="agent.task.started",
        aggregate_type="task",
        aggregate_id=task_id,
        data={"agent_id": agent_id},
    )


def create_task_completed_event(
    task_id: str, agent_id: str, duration_minutes: float | None
) -> BaseEvent:
    return BaseEvent(
        type="agent.task.completed",
        aggregate_type="task",
        aggregate_id=task_id,
        data={"agent_id": agent_id, "duration_minutes": duration_minutes},
    )


def create_task_failed_event(
    task_id: str,
    agent_id: str,
    error: str,
    retry_count: int,
    final: bool,
) -> BaseEvent:
    """Emitted on every failed attempt.

    Args:
        task_id: The failed task.
        agent_id: Agent that held the task when it failed.
        error: Failure description.
        retry_count: Attempts used so far.
        final: True when no further reassignment will happen.
    """
    return BaseEvent(
        type="agent.task.failed",
        aggregate_type="task",
        aggregate_id=task_id,
        data={
            "agent_id": agent_id,
            "error": error,
            "retry_count": retry_count,
            "final": final,
        },
    )


def create_task_reassigned_event(
    task_id: str, from_agent_id: str, to_agent_id: str, retry_count: int
) -> BaseEvent:
    return BaseEvent(
        type="agent.task.reassigned",
        aggregate_type="task",
        aggregate_id=task_id,
        data={
            "from_agent_id": from_agent_id,
            "to_agent_id": to_agent_id,
            "retry_count": retry_count,
        },
    )


def create_strategy_changed_event(previous: str, strategy: str) -> BaseEvent:
    return BaseEvent(
        type="agent.strategy.changed",
        aggregate_type="orchestrator",
        aggregate_id="orchestrator",
        data={"previous": previous, "strategy": strategy},
    )


def create_collaboration_created_event(
    session_id: str, participant_ids: list[str], lead_agent_id: str, purpose: str
) -> BaseEvent:
    return BaseEvent(
        type="collaboration.session.created",
        aggregate_type="collaboration",
        aggregate_id=session_id,
        data={
            "participant_ids": participant_ids,
            "lead_agent_id": lead_agent_id,
            "purpose": purpose,
        },
    )


def create_collaboration_message_event(
    session_id: str, message: dict[str, Any]
) -> BaseEvent:
    """Emitted for every message appended to a collaboration log."""
    event_type = (
        "collaboration.handoff.sent"
        if message.get("type") == "handoff"
        else "collaboration.message.sent"
    )
    return BaseEvent(
        type=event_type,
        aggregate_type="collaboration",
        aggregate_id=session_id,
        data=message,
    )


def create_collaboration_closed_event(session_id: str, status: str) -> BaseEvent:
    return BaseEvent(
        type="collaboration.session.closed",
        aggregate_type="collaboration",
        aggregate_id=session_id,
        data={"status": status},
    )


__all__ = [
    "create_agent_registered_event",
    "create_agent_status_changed_event",
    "create_collaboration_closed_event",
    "create_collaboration_created_event",
    "create_collaboration_message_event",
    "create_strategy_changed_event",
    "create_task_assigned_event",
    "create_task_completed_event",
    "create_task_failed_event",
    "create_task_reassigned_event",
    "create_task_started_event",
]
