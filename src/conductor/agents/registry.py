"""Agent registry for the orchestrator.

Holds agent records in registration order together with the round-robin
queue used by the round-robin selection strategy.

Usage:
    registry = AgentRegistry()
    is_new = registry.upsert(agent)

    agent = registry.get("gpt-4-turbo")
    candidates = registry.eligible(exclude="claude-3-opus")
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from conductor.agents.models import Agent, AgentStatus
from conductor.observability.logging import get_logger

log = get_logger(__name__)


class AgentRegistry:
    """Registry of agents keyed by id.

    Agents are never removed. Re-registering an id replaces the declared
    fields but keeps the active task set the orchestrator is tracking, so
    load stays consistent with live assignments.
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._queue: deque[str] = deque()

    @property
    def queue(self) -> deque[str]:
        """Round-robin queue of agent ids, shared with the selection strategy."""
        return self._queue

    def upsert(self, agent: Agent) -> bool:
        """Register or replace an agent.

        Returns:
            True if the id was new.
        """
        existing = self._agents.get(agent.id)
        if existing is not None:
            agent.active_task_ids = list(existing.active_task_ids)
            self._agents[agent.id] = agent
            log.debug("agents.registry.replaced", agent_id=agent.id)
            return False

        self._agents[agent.id] = agent
        self._queue.append(agent.id)
        log.debug("agents.registry.added", agent_id=agent.id, agent_type=agent.type.value)
        return True

    def get(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._agents.values())

    def __len__(self) -> int:
        return len(self._agents)

    def eligible(self, *, exclude: str | None = None) -> list[Agent]:
        """Available agents below full load, in registration order."""
        return [a for a in self._agents.values() if a.is_eligible and a.id != exclude]

    def with_status(self, status: AgentStatus) -> list[Agent]:
        return [a for a in self._agents.values() if a.status is status]


__all__ = ["AgentRegistry"]
