"""Error hierarchy for Conductor.

Expected failures are returned inside ``Result.err(...)``; the same classes
are raised only for programming errors.

Exception Hierarchy:
    ConductorError (base)
    ├── ConfigError              - Configuration loading/validation issues
    ├── PersistenceError         - State store and event store failures
    ├── ValidationError          - Invalid input data
    │   └── WorkflowValidationError - Duplicate names, unknown or cyclic dependencies
    ├── WorkflowError            - Workflow engine failures
    │   ├── InvalidTransitionError  - No transition row for (state, trigger)
    │   ├── GuardNotMetError        - Row exists but its guard is false
    │   ├── UnknownWorkflowError
    │   ├── UnknownStepError
    │   ├── UnknownTemplateError
    │   ├── DependenciesNotMetError - Step executed before it is ready
    │   └── InvalidStepStateError   - Step or workflow in the wrong state
    └── OrchestrationError       - Agent orchestrator failures
        ├── UnknownAgentError
        ├── UnknownTaskError
        ├── DuplicateTaskError
        ├── InvalidAssignmentStateError
        ├── NoAgentAvailableError
        ├── UnknownCollaborationError
        └── CollaborationClosedError
"""

from typing import Any


class ConductorError(Exception):
    """Base exception for all Conductor errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the error.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigError(ConductorError):
    """Error from configuration operations.

    Attributes:
        config_key: The configuration key that caused the error.
        config_file: Path to the config file if applicable.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class PersistenceError(ConductorError):
    """Error from state store and event store operations.

    Attributes:
        operation: The operation that failed (e.g., "insert", "save_workflow").
        table: The database table involved if applicable.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.operation = operation
        self.table = table


class ValidationError(ConductorError):
    """Error from input validation.

    Attributes:
        field: The field that failed validation.
        value: The invalid value.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value

    def __str__(self) -> str:
        base = self.message
        if self.field:
            base = f"{base} (field: {self.field}, value: {self.value!r})"
        if self.details:
            base = f"{base} (details: {self.details})"
        return base


class WorkflowValidationError(ValidationError):
    """Workflow definition rejected at creation time.

    Raised for duplicate step names, dependencies that resolve to no step,
    and dependency cycles.
    """


# =============================================================================
# Workflow engine errors
# =============================================================================


class WorkflowError(ConductorError):
    """Base class for workflow engine failures.

    Attributes:
        workflow_id: Workflow the operation targeted.
    """

    def __init__(
        self,
        message: str,
        *,
        workflow_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.workflow_id = workflow_id


class InvalidTransitionError(WorkflowError):
    """No transition row matches the workflow's state and the trigger."""

    def __init__(self, workflow_id: str, state: str, trigger: str) -> None:
        super().__init__(
            f"Invalid transition: {state} -> {trigger}",
            workflow_id=workflow_id,
            details={"state": state, "trigger": trigger},
        )
        self.state = state
        self.trigger = trigger


class GuardNotMetError(WorkflowError):
    """A transition row matched but its guard returned False."""

    def __init__(self, workflow_id: str, state: str, trigger: str) -> None:
        super().__init__(
            f"Transition conditions not met: {state} -> {trigger}",
            workflow_id=workflow_id,
            details={"state": state, "trigger": trigger},
        )
        self.state = state
        self.trigger = trigger


class UnknownWorkflowError(WorkflowError):
    """Lookup miss for a workflow id."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id} not found", workflow_id=workflow_id)


class UnknownStepError(WorkflowError):
    """Lookup miss for a step id within a workflow."""

    def __init__(self, workflow_id: str, step_id: str) -> None:
        super().__init__(
            f"Step {step_id} not found",
            workflow_id=workflow_id,
            details={"step_id": step_id},
        )
        self.step_id = step_id


class UnknownTemplateError(WorkflowError):
    """The template provider has no template with the given id."""

    def __init__(self, template_id: str) -> None:
        super().__init__(
            f"Workflow template {template_id} not found",
            details={"template_id": template_id},
        )
        self.template_id = template_id


class DependenciesNotMetError(WorkflowError):
    """A step was executed before all of its dependencies completed."""

    def __init__(self, workflow_id: str, step_id: str, pending: list[str]) -> None:
        super().__init__(
            f"Dependencies not met for step {step_id}",
            workflow_id=workflow_id,
            details={"step_id": step_id, "pending_dependencies": pending},
        )
        self.step_id = step_id
        self.pending = pending


class InvalidStepStateError(WorkflowError):
    """A step operation was attempted in a state that does not allow it."""


# =============================================================================
# Orchestrator errors
# =============================================================================


class OrchestrationError(ConductorError):
    """Base class for agent orchestrator failures."""


class UnknownAgentError(OrchestrationError):
    """Lookup miss for an agent id."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent {agent_id} not found", details={"agent_id": agent_id})
        self.agent_id = agent_id


class UnknownTaskError(OrchestrationError):
    """Lookup miss for a task assignment."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found", details={"task_id": task_id})
        self.task_id = task_id


class DuplicateTaskError(OrchestrationError):
    """A task id already has a live assignment."""

    def __init__(self, task_id: str, agent_id: str) -> None:
        super().__init__(
            f"Task {task_id} is already assigned to {agent_id}",
            details={"task_id": task_id, "agent_id": agent_id},
        )
        self.task_id = task_id


class InvalidAssignmentStateError(OrchestrationError):
    """A task lifecycle call does not fit the assignment's current status."""

    def __init__(self, task_id: str, status: str, operation: str) -> None:
        super().__init__(
            f"Cannot {operation} task {task_id} in status {status}",
            details={"task_id": task_id, "status": status, "operation": operation},
        )
        self.task_id = task_id
        self.status = status


class NoAgentAvailableError(OrchestrationError):
    """Assignment or reassignment found no eligible candidate."""

    def __init__(self, task_id: str, excluded: list[str] | None = None) -> None:
        super().__init__(
            "No suitable agent available for task",
            details={"task_id": task_id, "excluded_agents": excluded or []},
        )
        self.task_id = task_id


class UnknownCollaborationError(OrchestrationError):
    """Lookup miss for a collaboration session."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Collaboration {session_id} not found", details={"session_id": session_id}
        )
        self.session_id = session_id


class CollaborationClosedError(OrchestrationError):
    """A message was sent to a collaboration that is no longer active."""

    def __init__(self, session_id: str, status: str) -> None:
        super().__init__(
            f"Collaboration {session_id} is {status}",
            details={"session_id": session_id, "status": status},
        )
        self.session_id = session_id


__all__ = [
    "CollaborationClosedError",
    "ConductorError",
    "ConfigError",
    "DependenciesNotMetError",
    "DuplicateTaskError",
    "GuardNotMetError",
    "InvalidAssignmentStateError",
    "InvalidStepStateError",
    "InvalidTransitionError",
    "NoAgentAvailableError",
    "OrchestrationError",
    "PersistenceError",
    "UnknownAgentError",
    "UnknownCollaborationError",
    "UnknownStepError",
    "UnknownTaskError",
    "UnknownTemplateError",
    "UnknownWorkflowError",
    "ValidationError",
    "WorkflowError",
    "WorkflowValidationError",
]
