"""Unit tests for conductor.core.errors module."""

from conductor.core.errors import (
    ConductorError,
    DependenciesNotMetError,
    InvalidTransitionError,
    NoAgentAvailableError,
    OrchestrationError,
    ValidationError,
    WorkflowError,
    WorkflowValidationError,
)


class TestConductorError:
    """Test the base error."""

    def test_str_without_details_is_message(self) -> None:
        assert str(ConductorError("plain")) == "plain"

    def test_str_includes_details(self) -> None:
        error = ConductorError("failed", details={"id": 1})

        assert "failed" in str(error)
        assert "'id': 1" in str(error)


class TestValidationError:
    """Test ValidationError formatting."""

    def test_str_names_field_and_value(self) -> None:
        error = ValidationError("bad", field="priority", value="urgent")

        assert str(error) == "bad (field: priority, value: 'urgent')"

    def test_workflow_validation_error_is_validation_error(self) -> None:
        assert issubclass(WorkflowValidationError, ValidationError)


class TestWorkflowErrors:
    """Test workflow error details."""

    def test_invalid_transition_carries_state_and_trigger(self) -> None:
        error = InvalidTransitionError("wf-1", "draft", "approve")

        assert isinstance(error, WorkflowError)
        assert error.workflow_id == "wf-1"
        assert error.details == {"state": "draft", "trigger": "approve"}
        assert "draft -> approve" in error.message

    def test_dependencies_not_met_lists_pending(self) -> None:
        error = DependenciesNotMetError("wf-1", "step-2", ["step-1"])

        assert error.pending == ["step-1"]
        assert error.details["pending_dependencies"] == ["step-1"]


class TestOrchestrationErrors:
    """Test orchestrator error details."""

    def test_no_agent_available_lists_exclusions(self) -> None:
        error = NoAgentAvailableError("task-1", excluded=["agent-a"])

        assert isinstance(error, OrchestrationError)
        assert error.message == "No suitable agent available for task"
        assert error.details["excluded_agents"] == ["agent-a"]
