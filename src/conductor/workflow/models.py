"""Workflow, step and template records owned by the workflow engine.

A Workflow is a DAG of WorkflowSteps plus a lifecycle state. Steps name their
dependencies by step name or step id; names are unique within a workflow so
either lookup is unambiguous.

Workflows are mutable dataclasses mutated in place by the engine under the
workflow lock. Callers only ever see ``copy()`` snapshots. Templates and
blueprints are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from conductor.agents.capability import CapabilityRequirement
from conductor.core.types import Priority


class WorkflowState(StrEnum):
    DRAFT = "draft"
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    BLOCKED = "blocked"
    REVIEW = "review"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.COMPLETED, WorkflowState.FAILED, WorkflowState.CANCELLED)


class Trigger(StrEnum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    BLOCK = "block"
    UNBLOCK = "unblock"
    REVIEW = "review"
    APPROVE = "approve"
    FAIL = "fail"
    CANCEL = "cancel"


class StepStatus(StrEnum):
    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_done(self) -> bool:
        """Counts toward the review guard."""
        return self in (StepStatus.COMPLETED, StepStatus.SKIPPED)

    @property
    def is_executable(self) -> bool:
        return self in (StepStatus.PENDING, StepStatus.READY)


class StepType(StrEnum):
    AI_TASK = "ai_task"
    HUMAN_REVIEW = "human_review"
    AUTOMATED = "automated"
    DECISION = "decision"
    PARALLEL = "parallel"


class WorkflowType(StrEnum):
    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    RESEARCH = "research"
    DEPLOYMENT = "deployment"
    CUSTOM = "custom"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# =============================================================================
# Blueprints and templates
# =============================================================================


@dataclass(frozen=True, slots=True)
class StepBlueprint:
    """Declaration of a step, turned into a WorkflowStep at creation time.

    Attributes:
        name: Unique name within the workflow; dependencies may refer to it.
        description: What the step does.
        type: Kind of work.
        dependencies: Names (or ids) of steps that must complete first.
        priority: Step-level priority used when ordering ready steps.
        required_capabilities: What an agent needs to run the step.
        max_retries: Retry budget; the engine default applies when None.
        assignee_type: Hint for the kind of agent expected ("claude", ...).
        inputs: Static inputs handed to whoever runs the step.
    """

    name: str
    description: str = ""
    type: StepType = StepType.AI_TASK
    dependencies: tuple[str, ...] = ()
    priority: Priority = Priority.MEDIUM
    required_capabilities: tuple[CapabilityRequirement, ...] = ()
    max_retries: int | None = None
    assignee_type: str | None = None
    inputs: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "dependencies": list(self.dependencies),
            "priority": self.priority.value,
            "required_capabilities": [r.to_dict() for r in self.required_capabilities],
            "max_retries": self.max_retries,
            "assignee_type": self.assignee_type,
            "inputs": dict(self.inputs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepBlueprint:
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            type=StepType(data.get("type", StepType.AI_TASK)),
            dependencies=tuple(data.get("dependencies", ())),
            priority=Priority(data.get("priority", Priority.MEDIUM)),
            required_capabilities=tuple(
                CapabilityRequirement.from_dict(r) for r in data.get("required_capabilities", [])
            ),
            max_retries=data.get("max_retries"),
            assignee_type=data.get("assignee_type"),
            inputs=dict(data.get("inputs", {})),
        )


@dataclass(frozen=True, slots=True)
class WorkflowTemplate:
    """Reusable workflow definition."""

    id: str
    name: str
    description: str
    type: WorkflowType
    steps: tuple[StepBlueprint, ...]
    estimated_duration_minutes: int | None = None
    required_inputs: tuple[str, ...] = ()
    expected_outputs: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "steps": [s.to_dict() for s in self.steps],
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "required_inputs": list(self.required_inputs),
            "expected_outputs": list(self.expected_outputs),
        }


# =============================================================================
# Workflow steps
# =============================================================================


@dataclass(slots=True)
class WorkflowStep:
    """A unit of work within a workflow.

    Attributes:
        id: Unique step id (generated).
        name: Unique name within the workflow.
        status: Lifecycle status; see StepStatus.
        retry_count: Failed attempts so far.
        max_retries: Failed attempts allowed before the step fails for good.
        outputs: Results stored by complete_step.
        error: Last failure description.
    """

    id: str
    name: str
    description: str = ""
    type: StepType = StepType.AI_TASK
    dependencies: tuple[str, ...] = ()
    status: StepStatus = StepStatus.PENDING
    priority: Priority = Priority.MEDIUM
    required_capabilities: tuple[CapabilityRequirement, ...] = ()
    assignee_type: str | None = None
    inputs: dict[str, Any] = field(default_factory=dict)
    outputs: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    retry_count: int = 0
    max_retries: int = 3

    @classmethod
    def from_blueprint(cls, blueprint: StepBlueprint, default_max_retries: int) -> WorkflowStep:
        return cls(
            id=str(uuid4()),
            name=blueprint.name,
            description=blueprint.description,
            type=blueprint.type,
            dependencies=tuple(blueprint.dependencies),
            priority=blueprint.priority,
            required_capabilities=blueprint.required_capabilities,
            assignee_type=blueprint.assignee_type,
            inputs=dict(blueprint.inputs),
            max_retries=(
                blueprint.max_retries
                if blueprint.max_retries is not None
                else default_max_retries
            ),
        )

    @property
    def duration_minutes(self) -> float | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() / 60

    def copy(self) -> WorkflowStep:
        return WorkflowStep(
            id=self.id,
            name=self.name,
            description=self.description,
            type=self.type,
            dependencies=self.dependencies,
            status=self.status,
            priority=self.priority,
            required_capabilities=self.required_capabilities,
            assignee_type=self.assignee_type,
            inputs=dict(self.inputs),
            outputs=dict(self.outputs) if self.outputs is not None else None,
            error=self.error,
            started_at=self.started_at,
            completed_at=self.completed_at,
            retry_count=self.retry_count,
            max_retries=self.max_retries,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "dependencies": list(self.dependencies),
            "status": self.status.value,
            "priority": self.priority.value,
            "required_capabilities": [r.to_dict() for r in self.required_capabilities],
            "assignee_type": self.assignee_type,
            "inputs": dict(self.inputs),
            "outputs": self.outputs,
            "error": self.error,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowStep:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            type=StepType(data.get("type", StepType.AI_TASK)),
            dependencies=tuple(data.get("dependencies", ())),
            status=StepStatus(data.get("status", StepStatus.PENDING)),
            priority=Priority(data.get("priority", Priority.MEDIUM)),
            required_capabilities=tuple(
                CapabilityRequirement.from_dict(r) for r in data.get("required_capabilities", [])
            ),
            assignee_type=data.get("assignee_type"),
            inputs=dict(data.get("inputs", {})),
            outputs=data.get("outputs"),
            error=data.get("error"),
            started_at=_parse(data.get("started_at")),
            completed_at=_parse(data.get("completed_at")),
            retry_count=data.get("retry_count", 0),
            max_retries=data.get("max_retries", 3),
        )


# =============================================================================
# Workflow
# =============================================================================


@dataclass(slots=True)
class WorkflowMetrics:
    steps_completed: int = 0
    steps_total: int = 0
    progress_percentage: int = 0
    average_step_duration_minutes: float = 0.0
    blocker_count: int = 0

    def copy(self) -> WorkflowMetrics:
        return WorkflowMetrics(
            steps_completed=self.steps_completed,
            steps_total=self.steps_total,
            progress_percentage=self.progress_percentage,
            average_step_duration_minutes=self.average_step_duration_minutes,
            blocker_count=self.blocker_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps_completed": self.steps_completed,
            "steps_total": self.steps_total,
            "progress_percentage": self.progress_percentage,
            "average_step_duration_minutes": self.average_step_duration_minutes,
            "blocker_count": self.blocker_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowMetrics:
        return cls(
            steps_completed=data.get("steps_completed", 0),
            steps_total=data.get("steps_total", 0),
            progress_percentage=data.get("progress_percentage", 0),
            average_step_duration_minutes=data.get("average_step_duration_minutes", 0.0),
            blocker_count=data.get("blocker_count", 0),
        )


@dataclass(frozen=True, slots=True)
class ArtifactRecord:
    """Artifact produced by a step, as logged on the workflow."""

    step_id: str
    type: str
    path: str

    def to_dict(self) -> dict[str, str]:
        return {"step_id": self.step_id, "type": self.type, "path": self.path}


@dataclass(slots=True)
class Workflow:
    """A DAG of steps with a lifecycle state.

    Attributes:
        id: Unique workflow id (generated).
        project_id: Project the workflow belongs to.
        state: Lifecycle state, changed only through transitions.
        steps: Steps in declaration order.
        current_step_id: Step most recently started; kept while blocked.
        metrics: Progress counters.
        session_id: Context-store session linked to the workflow.
        artifacts: Artifacts reported by completed steps.
    """

    id: str
    project_id: str
    name: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    type: WorkflowType = WorkflowType.CUSTOM
    state: WorkflowState = WorkflowState.DRAFT
    steps: list[WorkflowStep] = field(default_factory=list)
    current_step_id: str | None = None
    metrics: WorkflowMetrics = field(default_factory=WorkflowMetrics)
    priority: Priority = Priority.MEDIUM
    created_by: str = "system"
    completed_at: datetime | None = None
    tags: tuple[str, ...] = ()
    estimated_duration_minutes: int | None = None
    actual_duration_minutes: int | None = None
    session_id: str | None = None
    artifacts: list[ArtifactRecord] = field(default_factory=list)
    template_id: str | None = None

    def step(self, step_id: str) -> WorkflowStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def steps_with_status(self, status: StepStatus) -> list[WorkflowStep]:
        return [s for s in self.steps if s.status is status]

    @property
    def all_steps_done(self) -> bool:
        return all(s.status.is_done for s in self.steps)

    def copy(self) -> Workflow:
        return Workflow(
            id=self.id,
            project_id=self.project_id,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
            description=self.description,
            type=self.type,
            state=self.state,
            steps=[s.copy() for s in self.steps],
            current_step_id=self.current_step_id,
            metrics=self.metrics.copy(),
            priority=self.priority,
            created_by=self.created_by,
            completed_at=self.completed_at,
            tags=self.tags,
            estimated_duration_minutes=self.estimated_duration_minutes,
            actual_duration_minutes=self.actual_duration_minutes,
            session_id=self.session_id,
            artifacts=list(self.artifacts),
            template_id=self.template_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "description": self.description,
            "type": self.type.value,
            "state": self.state.value,
            "steps": [s.to_dict() for s in self.steps],
            "current_step_id": self.current_step_id,
            "metrics": self.metrics.to_dict(),
            "priority": self.priority.value,
            "created_by": self.created_by,
            "completed_at": _iso(self.completed_at),
            "tags": list(self.tags),
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "actual_duration_minutes": self.actual_duration_minutes,
            "session_id": self.session_id,
            "artifacts": [a.to_dict() for a in self.artifacts],
            "template_id": self.template_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workflow:
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            name=data["name"],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            description=data.get("description", ""),
            type=WorkflowType(data.get("type", WorkflowType.CUSTOM)),
            state=WorkflowState(data.get("state", WorkflowState.DRAFT)),
            steps=[WorkflowStep.from_dict(s) for s in data.get("steps", [])],
            current_step_id=data.get("current_step_id"),
            metrics=WorkflowMetrics.from_dict(data.get("metrics", {})),
            priority=Priority(data.get("priority", Priority.MEDIUM)),
            created_by=data.get("created_by", "system"),
            completed_at=_parse(data.get("completed_at")),
            tags=tuple(data.get("tags", ())),
            estimated_duration_minutes=data.get("estimated_duration_minutes"),
            actual_duration_minutes=data.get("actual_duration_minutes"),
            session_id=data.get("session_id"),
            artifacts=[ArtifactRecord(**a) for a in data.get("artifacts", [])],
            template_id=data.get("template_id"),
        )


__all__ = [
    "ArtifactRecord",
    "StepBlueprint",
    "StepStatus",
    "StepType",
    "Trigger",
    "Workflow",
    "WorkflowMetrics",
    "WorkflowState",
    "WorkflowStep",
    "WorkflowTemplate",
    "WorkflowType",
]
