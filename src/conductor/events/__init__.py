"""Conductor events - immutable records of workflow and agent state changes."""

from conductor.events.agents import (
    create_agent_registered_event,
    create_agent_status_changed_event,
    create_collaboration_closed_event,
    create_collaboration_created_event,
    create_collaboration_message_event,
    create_strategy_changed_event,
    create_task_assigned_event,
    create_task_completed_event,
    create_task_failed_event,
    create_task_reassigned_event,
    create_task_started_event,
)
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

__all__ = [
    "BaseEvent",
    # Workflow
    "create_step_completed_event",
    "create_step_failed_event",
    "create_step_promoted_event",
    "create_step_retried_event",
    "create_step_skipped_event",
    "create_step_started_event",
    "create_transition_applied_event",
    "create_workflow_created_event",
    # Agents and collaboration
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
