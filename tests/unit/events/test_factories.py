"""Unit tests for conductor.events factories."""

from conductor.events import (
    create_agent_status_changed_event,
    create_step_failed_event,
    create_task_assigned_event,
    create_task_reassigned_event,
    create_transition_applied_event,
    create_workflow_created_event,
)


class TestWorkflowEvents:
    """Test workflow event factories."""

    def test_created_event(self) -> None:
        event = create_workflow_created_event("wf-1", "proj", "Fix", "bugfix", 5, "bug-fix")

        assert event.type == "workflow.lifecycle.created"
        assert event.aggregate_type == "workflow"
        assert event.aggregate_id == "wf-1"
        assert event.data["template_id"] == "bug-fix"
        assert event.data["step_count"] == 5

    def test_transition_event_records_both_states(self) -> None:
        event = create_transition_applied_event("wf-1", "running", "paused", "pause")

        assert event.type == "workflow.transition.applied"
        assert event.data == {"from": "running", "to": "paused", "trigger": "pause"}

    def test_step_failed_event_reports_retry(self) -> None:
        event = create_step_failed_event("wf-1", "s-1", "boom", 1, True)

        assert event.data["will_retry"] is True
        assert event.data["retry_count"] == 1


class TestAgentEvents:
    """Test agent and task event factories."""

    def test_assigned_event_is_task_aggregate(self) -> None:
        event = create_task_assigned_event("t-1", "a-1", "high", "least_loaded")

        assert event.type == "agent.task.assigned"
        assert event.aggregate_type == "task"
        assert event.data["strategy"] == "least_loaded"

    def test_reassigned_event_names_both_agents(self) -> None:
        event = create_task_reassigned_event("t-1", "a-1", "a-2", 1)

        assert event.data["from_agent_id"] == "a-1"
        assert event.data["to_agent_id"] == "a-2"

    def test_status_changed_lists_moved_tasks(self) -> None:
        event = create_agent_status_changed_event("a-1", "available", "offline", ["t-1"])

        assert event.aggregate_type == "agent"
        assert event.data["reassigned_task_ids"] == ["t-1"]
