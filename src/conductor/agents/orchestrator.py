"""Agent orchestrator: assignment, load tracking and reassignment.

The orchestrator is the sole owner of Agent and TaskAssignment state. Every
mutating operation holds the locks of the task and agents it touches, mutates
in memory without awaiting, then hands persistence, context updates and
event-log appends to the background dispatcher.

Assignment algorithm:
    1. A preferred agent that is available and below full load wins.
    2. Otherwise candidates are all available agents below full load.
    3. The configured strategy picks among the candidates.
    4. The task id joins the chosen agent's active set.

Failure handling:
    A failed attempt counts against the task's retry budget. While budget
    remains the task moves to the least-loaded other eligible agent; once it
    is spent, or nobody is eligible, the assignment fails terminally.

Usage:
    orchestrator = AgentOrchestrator()
    await orchestrator.register_default_agents()

    result = await orchestrator.assign_task(
        "task-1", [CapabilityRequirement.of(skill="debugging")], Priority.HIGH
    )
    if result.is_ok:
        await orchestrator.start_task("task-1")
        await orchestrator.complete_task("task-1", output={"patch": "..."})
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Literal

from conductor.agents.capability import CapabilityRequirement, matched_capabilities
from conductor.agents.collaboration import (
    CollaborationChannel,
    CollaborationMessage,
    CollaborationSession,
    CollaborationStatus,
    MessageType,
)
from conductor.agents.defaults import default_agents
from conductor.agents.models import (
    Agent,
    AgentPerformance,
    AgentStatus,
    AgentType,
    AssignmentStatus,
    TaskAssignment,
)
from conductor.agents.registry import AgentRegistry
from conductor.agents.selection import SelectionStrategy, create_strategy, least_loaded
from conductor.config.models import OrchestratorConfig
from conductor.core.background import BackgroundDispatcher
from conductor.core.errors import (
    ConductorError,
    DuplicateTaskError,
    InvalidAssignmentStateError,
    NoAgentAvailableError,
    OrchestrationError,
    UnknownAgentError,
    UnknownTaskError,
)
from conductor.core.locks import LockRegistry, agent_key, task_key
from conductor.core.protocols import (
    ContextStore,
    EventObserver,
    NullContextStore,
    NullStateStore,
    StateStore,
    TaskContextStatus,
    TaskContextUpdate,
)
from conductor.core.types import Clock, LoadBalancingStrategy, Priority, Result, utc_now
from conductor.events.agents import (
    create_agent_registered_event,
    create_agent_status_changed_event,
    create_strategy_changed_event,
    create_task_assigned_event,
    create_task_completed_event,
    create_task_failed_event,
    create_task_reassigned_event,
    create_task_started_event,
)
from conductor.events.base import BaseEvent
from conductor.observability.logging import get_logger

log = get_logger(__name__)

NO_AGENT_AVAILABLE = "NoAgentAvailable"

AgentSortKey = Literal["name", "load", "success_rate", "tasks_completed"]


@dataclass(frozen=True, slots=True)
class AgentLoad:
    agent_id: str
    name: str
    load: int
    tasks: int


@dataclass(frozen=True, slots=True)
class WorkloadSummary:
    """Pool-wide load snapshot. Loads are rounded to whole percent."""

    total_agents: int
    available_agents: int
    total_tasks: int
    average_load: int
    agent_loads: tuple[AgentLoad, ...]


class AgentOrchestrator:
    """Assigns tasks to agents and tracks their lifecycle.

    Args:
        config: Strategy, retry budget and success-rate policy.
        state_store: Receives an agent snapshot after every agent mutation.
        context_store: Notified when tasks start or complete within a session.
        dispatcher: Background dispatcher; one is created if omitted.
        observer: Called with every event this orchestrator emits.
        clock: Source of timestamps.
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        *,
        state_store: StateStore | None = None,
        context_store: ContextStore | None = None,
        dispatcher: BackgroundDispatcher | None = None,
        observer: EventObserver | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._config = config or OrchestratorConfig()
        self._state_store = state_store or NullStateStore()
        self._context_store = context_store or NullContextStore()
        self._dispatcher = dispatcher or BackgroundDispatcher()
        self._observer = observer
        self._clock = clock

        self._registry = AgentRegistry()
        self._assignments: dict[str, TaskAssignment] = {}
        self._history: dict[str, list[TaskAssignment]] = {}
        self._locks = LockRegistry()
        self._strategy: SelectionStrategy = create_strategy(
            self._config.strategy, self._registry.queue
        )
        self._collaboration = CollaborationChannel(
            self._registry,
            self._locks,
            self._dispatcher,
            context_store=self._context_store,
            observer=observer,
            clock=clock,
        )

    @property
    def strategy(self) -> LoadBalancingStrategy:
        return self._strategy.kind

    @property
    def collaboration(self) -> CollaborationChannel:
        return self._collaboration

    # =========================================================================
    # Plumbing
    # =========================================================================

    def _emit(self, event: BaseEvent, observer: EventObserver | None) -> None:
        self._dispatcher.publish(event, (self._observer, observer))

    def _persist_agent(self, agent: Agent) -> None:
        snapshot = agent.copy()
        store = self._state_store
        self._dispatcher.submit(
            "state_store.save_agent",
            lambda: store.save_agent(snapshot),
            retry=True,
            key=agent_key(snapshot.id),
            agent_id=agent.id,
        )

    def _notify_context(
        self, session_id: str | None, assignment: TaskAssignment, status: TaskContextStatus
    ) -> None:
        if session_id is None:
            return
        update = TaskContextUpdate(
            task_id=assignment.task_id,
            title=assignment.description or f"Task {assignment.task_id}",
            status=status,
            started_at=assignment.started_at,
        )
        store = self._context_store
        self._dispatcher.submit(
            "context_store.update_task_context",
            lambda: store.update_task_context(session_id, update),
            task_id=assignment.task_id,
        )

    @asynccontextmanager
    async def _hold_assignment(self, task_id: str) -> AsyncIterator[TaskAssignment | None]:
        """Lock a task and its current agent; yields None for an unknown task.

        The agent can change while we wait for its lock (a concurrent
        reassignment), in which case the locks are dropped and retaken.
        """
        while True:
            assignment = self._assignments.get(task_id)
            if assignment is None:
                yield None
                return
            agent_id = assignment.agent_id
            async with self._locks.hold(task_key(task_id), agent_key(agent_id)):
                current = self._assignments.get(task_id)
                if current is not None and current.agent_id == agent_id:
                    yield current
                    return

    def _minutes_between(self, start: Any, end: Any) -> float | None:
        if start is None or end is None:
            return None
        return (end - start).total_seconds() / 60

    def _matched_skills(self, agent: Agent, assignment: TaskAssignment) -> list[str]:
        matches = matched_capabilities(agent.capabilities, assignment.required_capabilities)
        return list(dict.fromkeys(c.skill for c in matches))

    # =========================================================================
    # Registration and status
    # =========================================================================

    async def register_agent(
        self, agent: Agent, *, observer: EventObserver | None = None
    ) -> Result[Agent, OrchestrationError]:
        """Register an agent, or replace the declared fields of a known one.

        Re-registration keeps the agent's active tasks so load stays in step
        with live assignments, unless the new record is offline or in error:
        its tasks are then reassigned as with update_agent_status. New ids
        join the round-robin queue.
        """
        async with self._locks.hold(agent_key(agent.id)):
            stored = agent.copy()
            is_new = self._registry.upsert(stored)
            affected, events = self._release_tasks(stored)
            snapshot = stored.copy()

        log.info(
            "agent.registration.completed",
            agent_id=agent.id,
            agent_type=agent.type.value,
            is_new=is_new,
            max_concurrent_tasks=agent.max_concurrent_tasks,
            affected_tasks=len(affected),
        )
        self._persist_agent(snapshot)
        self._persist_targets(affected)
        self._emit(create_agent_registered_event(agent.id, agent.type.value, is_new), observer)
        for event in events:
            self._emit(event, observer)
        return Result.ok(snapshot)

    async def register_default_agents(self) -> list[Agent]:
        """Register the built-in roster and return snapshots of it."""
        registered = []
        for agent in default_agents():
            result = await self.register_agent(agent)
            registered.append(result.value)
        return registered

    def _release_tasks(self, agent: Agent) -> tuple[list[TaskAssignment], list[BaseEvent]]:
        """Move every live task off an offline or failed agent.

        Runs inside the agent's critical section. Each move counts against
        the task's retry budget; a task at the cap fails for good.
        """
        affected: list[TaskAssignment] = []
        events: list[BaseEvent] = []
        if not agent.status.triggers_reassignment:
            return affected, events

        for task_id in list(agent.active_task_ids):
            assignment = self._assignments.get(task_id)
            if assignment is None or not assignment.is_live:
                continue
            assignment.retry_count += 1
            assignment.error = f"Agent {agent.id} became {agent.status.value}"
            if assignment.retry_count < self._config.max_task_retries:
                events.extend(self._reassign(assignment, agent))
            else:
                events.append(self._fail_terminally(assignment, agent))
            affected.append(assignment.copy())
        agent.active_task_ids.clear()
        return affected, events

    def _persist_targets(self, affected: list[TaskAssignment]) -> None:
        for moved in affected:
            target = self._registry.get(moved.agent_id)
            if moved.status is AssignmentStatus.REASSIGNED and target is not None:
                self._persist_agent(target)

    async def update_agent_status(
        self,
        agent_id: str,
        status: AgentStatus,
        *,
        observer: EventObserver | None = None,
    ) -> Result[list[TaskAssignment], OrchestrationError]:
        """Change an agent's status.

        Moving to offline or error reassigns every task the agent holds
        before returning, then clears its active set.

        Returns:
            Snapshots of the assignments affected by the change.
        """
        async with self._locks.hold(agent_key(agent_id)):
            agent = self._registry.get(agent_id)
            if agent is None:
                return Result.err(UnknownAgentError(agent_id))
            previous = agent.status
            agent.status = status
            affected, events = self._release_tasks(agent)

        log.info(
            "agent.status.changed",
            agent_id=agent_id,
            previous_status=previous.value,
            status=status.value,
            affected_tasks=len(affected),
        )
        self._persist_agent(agent)
        self._persist_targets(affected)
        for event in events:
            self._emit(event, observer)
        self._emit(
            create_agent_status_changed_event(
                agent_id, previous.value, status.value, [a.task_id for a in affected]
            ),
            observer,
        )
        return Result.ok(affected)

    # =========================================================================
    # Assignment lifecycle
    # =========================================================================

    def _select_agent(
        self, requirements: Sequence[CapabilityRequirement], preferred_agent_id: str | None
    ) -> Agent | None:
        if preferred_agent_id is not None:
            preferred = self._registry.get(preferred_agent_id)
            if preferred is not None and preferred.is_eligible:
                return preferred

        candidates = self._registry.eligible()
        if not candidates:
            return None
        return self._strategy.select(candidates, requirements)

    async def assign_task(
        self,
        task_id: str,
        required_capabilities: Sequence[CapabilityRequirement] = (),
        priority: Priority = Priority.MEDIUM,
        *,
        preferred_agent_id: str | None = None,
        workflow_id: str | None = None,
        step_id: str | None = None,
        description: str = "",
        estimated_duration_minutes: float | None = None,
        observer: EventObserver | None = None,
    ) -> Result[TaskAssignment, OrchestrationError]:
        """Bind a task to the best eligible agent.

        A task id whose previous assignment ended (completed or failed) may
        be assigned again; the old record moves to the task's history.

        Errors:
            DuplicateTaskError: The task already has a live assignment.
            NoAgentAvailableError: No agent is available below full load.
        """
        requirements = tuple(required_capabilities)
        async with self._locks.hold(task_key(task_id)):
            existing = self._assignments.get(task_id)
            if existing is not None and existing.is_live:
                return Result.err(DuplicateTaskError(task_id, existing.agent_id))

            # Selection and the load update below run without awaiting, so no
            # other operation can observe or change agent loads in between.
            agent = self._select_agent(requirements, preferred_agent_id)
            if agent is None:
                log.warning("agent.task.unassignable", task_id=task_id)
                return Result.err(NoAgentAvailableError(task_id))

            if existing is not None:
                self._history.setdefault(task_id, []).append(existing)

            assignment = TaskAssignment(
                task_id=task_id,
                agent_id=agent.id,
                assigned_at=self._clock(),
                priority=priority,
                workflow_id=workflow_id,
                step_id=step_id,
                description=description,
                required_capabilities=requirements,
                estimated_duration_minutes=estimated_duration_minutes,
            )
            agent.hold(task_id)
            self._assignments[task_id] = assignment
            snapshot = assignment.copy()

        log.info(
            "agent.task.assigned",
            task_id=task_id,
            agent_id=agent.id,
            strategy=self._strategy.kind.value,
            priority=priority.value,
            agent_load=agent.current_load,
        )
        self._persist_agent(agent)
        self._emit(
            create_task_assigned_event(
                task_id,
                agent.id,
                priority.value,
                self._strategy.kind.value,
                workflow_id=workflow_id,
                step_id=step_id,
            ),
            observer,
        )
        return Result.ok(snapshot)

    async def start_task(
        self,
        task_id: str,
        *,
        session_id: str | None = None,
        observer: EventObserver | None = None,
    ) -> Result[TaskAssignment, OrchestrationError]:
        """Mark an assigned or reassigned task as in progress."""
        async with self._hold_assignment(task_id) as assignment:
            if assignment is None:
                return Result.err(UnknownTaskError(task_id))
            if not assignment.status.is_startable:
                return Result.err(
                    InvalidAssignmentStateError(task_id, assignment.status.value, "start")
                )
            assignment.status = AssignmentStatus.IN_PROGRESS
            assignment.started_at = self._clock()
            snapshot = assignment.copy()

        log.info("agent.task.started", task_id=task_id, agent_id=snapshot.agent_id)
        self._notify_context(session_id, snapshot, TaskContextStatus.IN_PROGRESS)
        self._emit(create_task_started_event(task_id, snapshot.agent_id), observer)
        return Result.ok(snapshot)

    async def complete_task(
        self,
        task_id: str,
        output: Any = None,
        *,
        session_id: str | None = None,
        observer: EventObserver | None = None,
    ) -> Result[TaskAssignment, OrchestrationError]:
        """Complete a live task, free the agent's slot and update its history."""
        async with self._hold_assignment(task_id) as assignment:
            if assignment is None:
                return Result.err(UnknownTaskError(task_id))
            if not assignment.is_live:
                return Result.err(
                    InvalidAssignmentStateError(task_id, assignment.status.value, "complete")
                )
            agent = self._registry.get(assignment.agent_id)
            if agent is None:
                return Result.err(UnknownAgentError(assignment.agent_id))

            assignment.status = AssignmentStatus.COMPLETED
            assignment.completed_at = self._clock()
            assignment.output = output
            assignment.actual_duration_minutes = self._minutes_between(
                assignment.started_at, assignment.completed_at
            )
            agent.release(task_id)
            agent.performance.record_completion(
                assignment.actual_duration_minutes,
                self._matched_skills(agent, assignment),
                self._config.success_rate_mode,
            )
            snapshot = assignment.copy()

        log.info(
            "agent.task.completed",
            task_id=task_id,
            agent_id=agent.id,
            duration_minutes=snapshot.actual_duration_minutes,
        )
        self._persist_agent(agent)
        self._notify_context(session_id, snapshot, TaskContextStatus.COMPLETED)
        self._emit(
            create_task_completed_event(task_id, agent.id, snapshot.actual_duration_minutes),
            observer,
        )
        return Result.ok(snapshot)

    async def fail_task(
        self,
        task_id: str,
        error: str,
        *,
        retry: bool = True,
        observer: EventObserver | None = None,
    ) -> Result[TaskAssignment, OrchestrationError]:
        """Record a failed attempt and reassign while retry budget remains.

        Returns:
            The assignment after the failure: ``reassigned`` when it moved to
            another agent, ``failed`` when the failure is terminal.
        """
        async with self._hold_assignment(task_id) as assignment:
            if assignment is None:
                return Result.err(UnknownTaskError(task_id))
            if not assignment.is_live:
                return Result.err(
                    InvalidAssignmentStateError(task_id, assignment.status.value, "fail")
                )
            agent = self._registry.get(assignment.agent_id)
            if agent is None:
                return Result.err(UnknownAgentError(assignment.agent_id))

            agent.performance.record_failure(
                self._matched_skills(agent, assignment), self._config.success_rate_mode
            )
            agent.release(task_id)
            assignment.error = error
            assignment.retry_count += 1

            events: list[BaseEvent]
            if retry and assignment.retry_count < self._config.max_task_retries:
                events = [
                    create_task_failed_event(
                        task_id, agent.id, error, assignment.retry_count, final=False
                    ),
                    *self._reassign(assignment, agent),
                ]
            else:
                events = [self._fail_terminally(assignment, agent)]
            snapshot = assignment.copy()

        log.warning(
            "agent.task.failed",
            task_id=task_id,
            agent_id=agent.id,
            error=error,
            retry_count=snapshot.retry_count,
            status=snapshot.status.value,
        )
        self._persist_agent(agent)
        if snapshot.status is AssignmentStatus.REASSIGNED:
            new_agent = self._registry.get(snapshot.agent_id)
            if new_agent is not None:
                self._persist_agent(new_agent)
        for event in events:
            self._emit(event, observer)
        return Result.ok(snapshot)

    def _reassign(self, assignment: TaskAssignment, previous: Agent) -> list[BaseEvent]:
        """Move a task to the least-loaded other eligible agent.

        Runs inside the caller's critical section. The previous agent has
        already released the task or is about to have its set cleared.
        """
        candidates = self._registry.eligible(exclude=previous.id)
        if not candidates:
            assignment.error = NO_AGENT_AVAILABLE
            return [self._fail_terminally(assignment, previous)]

        target = least_loaded(candidates)
        previous.release(assignment.task_id)
        target.hold(assignment.task_id)
        assignment.previous_agent_ids.append(previous.id)
        assignment.agent_id = target.id
        assignment.status = AssignmentStatus.REASSIGNED
        assignment.started_at = None

        log.info(
            "agent.task.reassigned",
            task_id=assignment.task_id,
            from_agent_id=previous.id,
            to_agent_id=target.id,
            retry_count=assignment.retry_count,
        )
        return [
            create_task_reassigned_event(
                assignment.task_id, previous.id, target.id, assignment.retry_count
            )
        ]

    def _fail_terminally(self, assignment: TaskAssignment, agent: Agent) -> BaseEvent:
        agent.release(assignment.task_id)
        assignment.status = AssignmentStatus.FAILED
        assignment.completed_at = self._clock()
        return create_task_failed_event(
            assignment.task_id,
            agent.id,
            assignment.error or "",
            assignment.retry_count,
            final=True,
        )

    async def set_strategy(
        self, kind: LoadBalancingStrategy, *, observer: EventObserver | None = None
    ) -> LoadBalancingStrategy:
        """Switch the load-balancing strategy; returns the previous one."""
        previous = self._strategy.kind
        self._strategy = create_strategy(kind, self._registry.queue)
        log.info("agent.strategy.changed", previous=previous.value, strategy=kind.value)
        self._emit(create_strategy_changed_event(previous.value, kind.value), observer)
        return previous

    # =========================================================================
    # Queries
    # =========================================================================

    def get_agent(self, agent_id: str) -> Result[Agent, OrchestrationError]:
        agent = self._registry.get(agent_id)
        if agent is None:
            return Result.err(UnknownAgentError(agent_id))
        return Result.ok(agent.copy())

    def list_agents(
        self,
        *,
        status: AgentStatus | None = None,
        agent_type: AgentType | None = None,
        skill: str | None = None,
        sort_by: AgentSortKey = "name",
    ) -> list[Agent]:
        """Agents matching every given filter, sorted by ``sort_by``.

        Load sorts ascending; success rate and completed tasks descending.
        """
        agents = [
            a
            for a in self._registry
            if (status is None or a.status is status)
            and (agent_type is None or a.type is agent_type)
            and (skill is None or a.capability_for(skill) is not None)
        ]
        match sort_by:
            case "name":
                agents.sort(key=lambda a: a.name)
            case "load":
                agents.sort(key=lambda a: a.current_load)
            case "success_rate":
                agents.sort(key=lambda a: a.performance.success_rate_percent, reverse=True)
            case "tasks_completed":
                agents.sort(key=lambda a: a.performance.tasks_completed, reverse=True)
        return [a.copy() for a in agents]

    def get_assignment(self, task_id: str) -> Result[TaskAssignment, OrchestrationError]:
        assignment = self._assignments.get(task_id)
        if assignment is None:
            return Result.err(UnknownTaskError(task_id))
        return Result.ok(assignment.copy())

    def get_assignment_history(self, task_id: str) -> list[TaskAssignment]:
        """Earlier, finished assignments of a task id that was assigned again."""
        return [a.copy() for a in self._history.get(task_id, [])]

    def list_assignments(
        self,
        *,
        agent_id: str | None = None,
        status: AssignmentStatus | None = None,
        workflow_id: str | None = None,
    ) -> list[TaskAssignment]:
        return [
            a.copy()
            for a in self._assignments.values()
            if (agent_id is None or a.agent_id == agent_id)
            and (status is None or a.status is status)
            and (workflow_id is None or a.workflow_id == workflow_id)
        ]

    def get_workload_summary(self) -> WorkloadSummary:
        agents = list(self._registry)
        total_load = sum(a.current_load for a in agents)
        return WorkloadSummary(
            total_agents=len(agents),
            available_agents=sum(1 for a in agents if a.status is AgentStatus.AVAILABLE),
            total_tasks=sum(len(a.active_task_ids) for a in agents),
            average_load=round(total_load / len(agents)) if agents else 0,
            agent_loads=tuple(
                AgentLoad(
                    agent_id=a.id,
                    name=a.name,
                    load=round(a.current_load),
                    tasks=len(a.active_task_ids),
                )
                for a in agents
            ),
        )

    def get_agent_metrics(self, agent_id: str) -> Result[AgentPerformance, OrchestrationError]:
        agent = self._registry.get(agent_id)
        if agent is None:
            return Result.err(UnknownAgentError(agent_id))
        return Result.ok(agent.performance.copy())

    def get_best_agent_for_skill(self, skill: str) -> Agent | None:
        """Available agent maximizing proficiency x skill success rate / 100.

        The overall success rate stands in when the agent has no per-skill
        rate. Agents without the skill are never chosen.
        """
        best: Agent | None = None
        best_score = 0.0
        for agent in self._registry.with_status(AgentStatus.AVAILABLE):
            capability = agent.capability_for(skill)
            if capability is None:
                continue
            rate = agent.performance.per_skill_success_rate.get(
                skill, agent.performance.success_rate_percent
            )
            score = capability.proficiency * rate / 100
            if score > best_score:
                best, best_score = agent, score
        return best.copy() if best is not None else None

    # =========================================================================
    # Collaboration
    # =========================================================================

    async def create_collaboration(
        self,
        participant_ids: Sequence[str],
        purpose: str,
        *,
        lead_agent_id: str | None = None,
        shared_context: dict[str, Any] | None = None,
        observer: EventObserver | None = None,
    ) -> Result[CollaborationSession, ConductorError]:
        return await self._collaboration.create_collaboration(
            participant_ids,
            purpose,
            lead_agent_id=lead_agent_id,
            shared_context=shared_context,
            observer=observer,
        )

    async def send_message(
        self,
        session_id: str,
        from_agent_id: str,
        to: str,
        content: str,
        message_type: MessageType = MessageType.REQUEST,
        *,
        observer: EventObserver | None = None,
    ) -> Result[CollaborationMessage, ConductorError]:
        return await self._collaboration.send_message(
            session_id, from_agent_id, to, content, message_type, observer=observer
        )

    async def complete_collaboration(
        self,
        session_id: str,
        status: CollaborationStatus = CollaborationStatus.COMPLETED,
        *,
        observer: EventObserver | None = None,
    ) -> Result[CollaborationSession, ConductorError]:
        return await self._collaboration.complete_collaboration(
            session_id, status, observer=observer
        )

    def get_collaboration(self, session_id: str) -> Result[CollaborationSession, ConductorError]:
        return self._collaboration.get_collaboration(session_id)

    def list_collaborations(self, *, active_only: bool = False) -> list[CollaborationSession]:
        return self._collaboration.list_collaborations(active_only=active_only)

    async def drain(self) -> None:
        """Wait for pending background persistence and notifications."""
        await self._dispatcher.drain()


__all__ = [
    "NO_AGENT_AVAILABLE",
    "AgentLoad",
    "AgentOrchestrator",
    "WorkloadSummary",
]
