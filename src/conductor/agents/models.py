"""Agent and task assignment records owned by the orchestrator.

Agents and assignments are mutable dataclasses: the orchestrator mutates them
in place under the per-aggregate lock. Everything handed to callers outside
the orchestrator is a snapshot taken with ``copy()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from conductor.agents.capability import Capability, CapabilityRequirement
from conductor.core.errors import ValidationError
from conductor.core.types import Priority, SuccessRateMode

# Weight of one outcome when nudging a per-skill success rate.
SKILL_RATE_SMOOTHING = 0.1


class AgentType(StrEnum):
    CLAUDE = "claude"
    GPT = "gpt"
    COPILOT = "copilot"
    CURSOR = "cursor"
    GEMINI = "gemini"
    LLAMA = "llama"
    GENERIC = "generic"


class AgentStatus(StrEnum):
    """Availability of an agent.

    OFFLINE and ERROR take the place of deregistration: agents are never
    removed, and entering either status moves their tasks elsewhere.
    """

    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"
    ERROR = "error"
    MAINTENANCE = "maintenance"

    @property
    def triggers_reassignment(self) -> bool:
        return self in (AgentStatus.OFFLINE, AgentStatus.ERROR)


class AssignmentStatus(StrEnum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    REASSIGNED = "reassigned"

    @property
    def is_terminal(self) -> bool:
        return self in (AssignmentStatus.COMPLETED, AssignmentStatus.FAILED)

    @property
    def is_startable(self) -> bool:
        return self in (AssignmentStatus.ASSIGNED, AssignmentStatus.REASSIGNED)


# =============================================================================
# Agent
# =============================================================================


@dataclass(slots=True)
class AgentPerformance:
    """Performance history used by the performance-based strategies.

    Attributes:
        tasks_completed: Tasks finished successfully.
        tasks_failed: Failed attempts, including ones later reassigned.
        average_completion_time_minutes: Rolling mean over completed tasks.
        success_rate_percent: Overall success rate (0-100).
        per_skill_success_rate: Skill name to success rate (0-100).
    """

    tasks_completed: int = 0
    tasks_failed: int = 0
    average_completion_time_minutes: float = 0.0
    success_rate_percent: float = 100.0
    per_skill_success_rate: dict[str, float] = field(default_factory=dict)

    def record_completion(
        self,
        duration_minutes: float | None,
        skills: list[str],
        mode: SuccessRateMode = SuccessRateMode.COUNTED,
    ) -> None:
        """Count a success and fold its duration into the rolling average."""
        self.tasks_completed += 1
        n = self.tasks_completed
        if duration_minutes is not None:
            previous = self.average_completion_time_minutes
            self.average_completion_time_minutes = (previous * (n - 1) + duration_minutes) / n
        self._nudge_skills(skills, success=True)
        self._refresh_counted(mode)

    def record_failure(
        self, skills: list[str], mode: SuccessRateMode = SuccessRateMode.COUNTED
    ) -> None:
        """Count a failure and lower the success rate according to ``mode``."""
        if mode is SuccessRateMode.DILUTION:
            self.success_rate_percent = (
                self.success_rate_percent * self.tasks_completed / (self.tasks_completed + 1)
            )
        self.tasks_failed += 1
        self._nudge_skills(skills, success=False)
        self._refresh_counted(mode)

    def _refresh_counted(self, mode: SuccessRateMode) -> None:
        # The seeded rate stands until the first recorded outcome.
        if mode is not SuccessRateMode.COUNTED:
            return
        observed = self.tasks_completed + self.tasks_failed
        if observed:
            self.success_rate_percent = 100.0 * self.tasks_completed / observed

    def _nudge_skills(self, skills: list[str], *, success: bool) -> None:
        target = 100.0 if success else 0.0
        for skill in skills:
            current = self.per_skill_success_rate.get(skill, self.success_rate_percent)
            nudged = current + (target - current) * SKILL_RATE_SMOOTHING
            self.per_skill_success_rate[skill] = nudged

    def copy(self) -> AgentPerformance:
        return AgentPerformance(
            tasks_completed=self.tasks_completed,
            tasks_failed=self.tasks_failed,
            average_completion_time_minutes=self.average_completion_time_minutes,
            success_rate_percent=self.success_rate_percent,
            per_skill_success_rate=dict(self.per_skill_success_rate),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks_completed": self.tasks_completed,
            "tasks_failed": self.tasks_failed,
            "average_completion_time_minutes": self.average_completion_time_minutes,
            "success_rate_percent": self.success_rate_percent,
            "per_skill_success_rate": dict(self.per_skill_success_rate),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentPerformance:
        return cls(
            tasks_completed=data.get("tasks_completed", 0),
            tasks_failed=data.get("tasks_failed", 0),
            average_completion_time_minutes=data.get("average_completion_time_minutes", 0.0),
            success_rate_percent=data.get("success_rate_percent", 100.0),
            per_skill_success_rate=dict(data.get("per_skill_success_rate", {})),
        )


@dataclass(slots=True)
class Agent:
    """A worker that can be assigned tasks.

    Attributes:
        id: Unique agent identifier.
        type: Agent family.
        name: Display name.
        status: Availability.
        capabilities: Declared capabilities, replaced wholesale on re-registration.
        max_concurrent_tasks: Capacity; load is measured against it.
        active_task_ids: Task ids currently held, in assignment order.
        performance: Outcome history.
        preferred_task_types: Free-form hints, not used for selection.
        metadata: Free-form data (endpoint, version, rate limits).
    """

    id: str
    name: str
    type: AgentType = AgentType.GENERIC
    status: AgentStatus = AgentStatus.AVAILABLE
    capabilities: tuple[Capability, ...] = ()
    max_concurrent_tasks: int = 1
    active_task_ids: list[str] = field(default_factory=list)
    performance: AgentPerformance = field(default_factory=AgentPerformance)
    preferred_task_types: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_concurrent_tasks <= 0:
            raise ValidationError(
                "max_concurrent_tasks must be positive",
                field="max_concurrent_tasks",
                value=self.max_concurrent_tasks,
            )
        self.capabilities = tuple(self.capabilities)

    @property
    def current_load(self) -> float:
        """Percentage of capacity in use, always derived from active_task_ids."""
        return len(self.active_task_ids) / self.max_concurrent_tasks * 100

    @property
    def has_capacity(self) -> bool:
        return self.current_load < 100

    @property
    def is_eligible(self) -> bool:
        """Available and below full load."""
        return self.status is AgentStatus.AVAILABLE and self.has_capacity

    def hold(self, task_id: str) -> None:
        if task_id not in self.active_task_ids:
            self.active_task_ids.append(task_id)

    def release(self, task_id: str) -> None:
        if task_id in self.active_task_ids:
            self.active_task_ids.remove(task_id)

    def capability_for(self, skill: str) -> Capability | None:
        for capability in self.capabilities:
            if capability.skill == skill:
                return capability
        return None

    def copy(self) -> Agent:
        """Detached snapshot safe to hand to callers."""
        return Agent(
            id=self.id,
            name=self.name,
            type=self.type,
            status=self.status,
            capabilities=self.capabilities,
            max_concurrent_tasks=self.max_concurrent_tasks,
            active_task_ids=list(self.active_task_ids),
            performance=self.performance.copy(),
            preferred_task_types=self.preferred_task_types,
            metadata=dict(self.metadata),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
            "capabilities": [c.to_dict() for c in self.capabilities],
            "max_concurrent_tasks": self.max_concurrent_tasks,
            "active_task_ids": list(self.active_task_ids),
            "current_load": self.current_load,
            "performance": self.performance.to_dict(),
            "preferred_task_types": list(self.preferred_task_types),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Agent:
        return cls(
            id=data["id"],
            name=data["name"],
            type=AgentType(data.get("type", AgentType.GENERIC)),
            status=AgentStatus(data.get("status", AgentStatus.AVAILABLE)),
            capabilities=tuple(Capability.from_dict(c) for c in data.get("capabilities", [])),
            max_concurrent_tasks=data.get("max_concurrent_tasks", 1),
            active_task_ids=list(data.get("active_task_ids", [])),
            performance=AgentPerformance.from_dict(data.get("performance", {})),
            preferred_task_types=tuple(data.get("preferred_task_types", ())),
            metadata=dict(data.get("metadata", {})),
        )


# =============================================================================
# Task assignment
# =============================================================================


@dataclass(slots=True)
class TaskAssignment:
    """Binding of one task to one agent.

    Assignments are never deleted; completed and failed ones stay for audit
    and performance attribution.
    """

    task_id: str
    agent_id: str
    assigned_at: datetime
    priority: Priority = Priority.MEDIUM
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    workflow_id: str | None = None
    step_id: str | None = None
    description: str = ""
    required_capabilities: tuple[CapabilityRequirement, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    estimated_duration_minutes: float | None = None
    actual_duration_minutes: float | None = None
    retry_count: int = 0
    output: Any = None
    error: str | None = None
    previous_agent_ids: list[str] = field(default_factory=list)

    @property
    def is_live(self) -> bool:
        """Still held by an agent (not completed or failed)."""
        return not self.status.is_terminal

    def copy(self) -> TaskAssignment:
        return TaskAssignment(
            task_id=self.task_id,
            agent_id=self.agent_id,
            assigned_at=self.assigned_at,
            priority=self.priority,
            status=self.status,
            workflow_id=self.workflow_id,
            step_id=self.step_id,
            description=self.description,
            required_capabilities=self.required_capabilities,
            started_at=self.started_at,
            completed_at=self.completed_at,
            estimated_duration_minutes=self.estimated_duration_minutes,
            actual_duration_minutes=self.actual_duration_minutes,
            retry_count=self.retry_count,
            output=self.output,
            error=self.error,
            previous_agent_ids=list(self.previous_agent_ids),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "assigned_at": self.assigned_at.isoformat(),
            "priority": self.priority.value,
            "status": self.status.value,
            "workflow_id": self.workflow_id,
            "step_id": self.step_id,
            "description": self.description,
            "required_capabilities": [r.to_dict() for r in self.required_capabilities],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "actual_duration_minutes": self.actual_duration_minutes,
            "retry_count": self.retry_count,
            "error": self.error,
            "previous_agent_ids": list(self.previous_agent_ids),
        }


__all__ = [
    "SKILL_RATE_SMOOTHING",
    "Agent",
    "AgentPerformance",
    "AgentStatus",
    "AgentType",
    "AssignmentStatus",
    "TaskAssignment",
]
