"""Collaborator protocols consumed by the engine and orchestrator.

The core never owns storage, context tracking or template catalogues. It
talks to them through the narrow protocols below, always off the critical
path (see conductor.core.background).

Protocols:
    ContextStore: session task context and artifact tracking
    StateStore: workflow and agent snapshots
    TemplateProvider: workflow template catalogue
    EventObserver: synchronous notification of state changes

Null implementations are provided for callers that need none of these.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from conductor.core.types import utc_now

if TYPE_CHECKING:
    from conductor.agents.models import Agent
    from conductor.events.base import BaseEvent
    from conductor.workflow.models import Workflow, WorkflowTemplate


class TaskContextStatus(StrEnum):
    """Task status as reported to the context store."""

    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class TaskContextUpdate:
    """Payload of ContextStore.update_task_context."""

    task_id: str
    title: str
    status: TaskContextStatus
    started_at: datetime | None = None
    blockers: tuple[str, ...] = ()
    progress: int | None = None


@dataclass(frozen=True, slots=True)
class Artifact:
    """A file produced by a step, forwarded to the context store."""

    type: str
    path: str
    content: str = ""
    operation: str = "created"
    timestamp: datetime = field(default_factory=utc_now)


@runtime_checkable
class ContextStore(Protocol):
    """Session-scoped task context tracking."""

    async def update_task_context(self, session_id: str, update: TaskContextUpdate) -> None:
        """Record the status of a task within a session."""
        ...

    async def track_artifact(self, session_id: str, artifact: Artifact) -> None:
        """Record an artifact produced within a session."""
        ...


@runtime_checkable
class StateStore(Protocol):
    """Durable snapshots of workflows and agents.

    Called after every state-mutating operation. Failures are logged by the
    caller and never roll back the in-memory mutation.
    """

    async def save_workflow(self, workflow: Workflow) -> None: ...

    async def load_workflow(self, workflow_id: str) -> Workflow | None: ...

    async def save_agent(self, agent: Agent) -> None: ...


@runtime_checkable
class TemplateProvider(Protocol):
    """Workflow template catalogue, consulted at workflow creation."""

    def get_template(self, template_id: str) -> WorkflowTemplate | None: ...

    def list_templates(self) -> Sequence[WorkflowTemplate]: ...


class EventObserver(Protocol):
    """Callable notified synchronously after each state change."""

    def __call__(self, event: BaseEvent) -> None: ...


class NullContextStore:
    """ContextStore that discards every call."""

    async def update_task_context(self, session_id: str, update: TaskContextUpdate) -> None:
        return None

    async def track_artifact(self, session_id: str, artifact: Artifact) -> None:
        return None


class NullStateStore:
    """StateStore that keeps nothing."""

    async def save_workflow(self, workflow: Workflow) -> None:
        return None

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        return None

    async def save_agent(self, agent: Agent) -> None:
        return None


__all__ = [
    "Artifact",
    "ContextStore",
    "EventObserver",
    "NullContextStore",
    "NullStateStore",
    "StateStore",
    "TaskContextStatus",
    "TaskContextUpdate",
    "TemplateProvider",
]
