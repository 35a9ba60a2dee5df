"""StateStore implementations.

InMemoryStateStore keeps serialized snapshots in dictionaries, which is
enough for tests and single-process use. EventSourcedStateStore writes each
snapshot as an event into the EventStore and loads the most recent one back,
so the audit log and the durable state share one table.

Usage:
    event_store = EventStore("sqlite+aiosqlite:///:memory:")
    await event_store.initialize()
    state_store = EventSourcedStateStore(event_store)

    engine = WorkflowEngine(state_store=state_store)
"""

from __future__ import annotations

from typing import Any

from conductor.agents.models import Agent
from conductor.core.errors import PersistenceError
from conductor.events.base import BaseEvent
from conductor.observability.logging import get_logger
from conductor.persistence.event_store import EventStore
from conductor.workflow.models import Workflow

log = get_logger(__name__)

WORKFLOW_SNAPSHOT = "workflow.snapshot.saved"
AGENT_SNAPSHOT = "agent.snapshot.saved"


class InMemoryStateStore:
    """StateStore holding serialized snapshots in memory.

    Snapshots are stored as dictionaries so later mutation of the saved
    objects never leaks into the store.
    """

    def __init__(self) -> None:
        self._workflows: dict[str, dict[str, Any]] = {}
        self._agents: dict[str, dict[str, Any]] = {}

    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow.to_dict()

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        data = self._workflows.get(workflow_id)
        return Workflow.from_dict(data) if data is not None else None

    async def save_agent(self, agent: Agent) -> None:
        self._agents[agent.id] = agent.to_dict()

    async def load_agent(self, agent_id: str) -> Agent | None:
        data = self._agents.get(agent_id)
        return Agent.from_dict(data) if data is not None else None

    @property
    def workflow_ids(self) -> list[str]:
        return list(self._workflows)

    @property
    def agent_ids(self) -> list[str]:
        return list(self._agents)


class EventSourcedStateStore:
    """StateStore writing snapshots as events into an EventStore.

    Args:
        event_store: An initialized EventStore.
    """

    def __init__(self, event_store: EventStore) -> None:
        self._event_store = event_store

    async def save_workflow(self, workflow: Workflow) -> None:
        await self._event_store.append(
            BaseEvent(
                type=WORKFLOW_SNAPSHOT,
                aggregate_type="workflow",
                aggregate_id=workflow.id,
                data=workflow.to_dict(),
            )
        )
        log.debug("persistence.workflow.saved", workflow_id=workflow.id, state=workflow.state.value)

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        event = await self._event_store.latest("workflow", workflow_id, WORKFLOW_SNAPSHOT)
        if event is None:
            return None
        try:
            return Workflow.from_dict(event.data)
        except (KeyError, ValueError) as e:
            raise PersistenceError(
                f"Corrupt workflow snapshot: {e}",
                operation="load_workflow",
                table="events",
                details={"workflow_id": workflow_id, "event_id": event.id},
            ) from e

    async def save_agent(self, agent: Agent) -> None:
        await self._event_store.append(
            BaseEvent(
                type=AGENT_SNAPSHOT,
                aggregate_type="agent",
                aggregate_id=agent.id,
                data=agent.to_dict(),
            )
        )
        log.debug("persistence.agent.saved", agent_id=agent.id, load=agent.current_load)

    async def load_agent(self, agent_id: str) -> Agent | None:
        event = await self._event_store.latest("agent", agent_id, AGENT_SNAPSHOT)
        if event is None:
            return None
        try:
            return Agent.from_dict(event.data)
        except (KeyError, ValueError) as e:
            raise PersistenceError(
                f"Corrupt agent snapshot: {e}",
                operation="load_agent",
                table="events",
                details={"agent_id": agent_id, "event_id": event.id},
            ) from e


__all__ = [
    "AGENT_SNAPSHOT",
    "WORKFLOW_SNAPSHOT",
    "EventSourcedStateStore",
    "InMemoryStateStore",
]
