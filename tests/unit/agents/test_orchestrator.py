"""Unit tests for conductor.agents.orchestrator module."""

import asyncio

import pytest

from conductor.agents.capability import Capability, CapabilityCategory, CapabilityRequirement
from conductor.agents.models import Agent, AgentPerformance, AgentStatus, AssignmentStatus
from conductor.agents.orchestrator import NO_AGENT_AVAILABLE, AgentOrchestrator
from conductor.config.models import OrchestratorConfig
from conductor.core.errors import (
    DuplicateTaskError,
    InvalidAssignmentStateError,
    NoAgentAvailableError,
    UnknownAgentError,
    UnknownTaskError,
)
from conductor.core.protocols import TaskContextStatus
from conductor.core.types import LoadBalancingStrategy, Priority

DEBUGGING = [CapabilityRequirement.of(skill="debugging")]


def _agent(agent_id: str, *, capacity: int = 2, proficiency: int = 3) -> Agent:
    return Agent(
        id=agent_id,
        name=agent_id.upper(),
        capabilities=(Capability.of(CapabilityCategory.CODING, "debugging", proficiency),),
        max_concurrent_tasks=capacity,
    )


@pytest.fixture
def orchestrator(clock, dispatcher, state_store, context_store, recorder) -> AgentOrchestrator:
    return AgentOrchestrator(
        OrchestratorConfig(strategy=LoadBalancingStrategy.LEAST_LOADED, max_task_retries=3),
        state_store=state_store,
        context_store=context_store,
        dispatcher=dispatcher,
        observer=recorder,
        clock=clock,
    )


@pytest.fixture
async def pool(orchestrator: AgentOrchestrator) -> AgentOrchestrator:
    for agent_id in ("a", "b", "c"):
        await orchestrator.register_agent(_agent(agent_id))
    return orchestrator


class TestRegistration:
    """Test register_agent and register_default_agents."""

    async def test_register_persists_and_emits(
        self, orchestrator: AgentOrchestrator, state_store, recorder
    ) -> None:
        result = await orchestrator.register_agent(_agent("a"))
        await orchestrator.drain()

        assert result.is_ok
        assert state_store.agent_ids == ["a"]
        assert recorder.types == ["agent.registration.completed"]
        assert recorder.events[0].data["is_new"] is True

    async def test_reregistration_keeps_load(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")

        await pool.register_agent(_agent("a", capacity=4))

        agent = pool.get_agent("a").value
        assert agent.active_task_ids == ["t-1"]
        assert agent.current_load == 25

    async def test_reregistering_offline_hands_tasks_over(
        self, pool: AgentOrchestrator, state_store, recorder
    ) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")

        offline = _agent("a")
        offline.status = AgentStatus.OFFLINE
        result = await pool.register_agent(offline)
        await pool.drain()

        assignment = pool.get_assignment("t-1").value
        assert result.value.active_task_ids == []
        assert assignment.status is AssignmentStatus.REASSIGNED
        assert assignment.agent_id in {"b", "c"}
        assert pool.get_agent(assignment.agent_id).value.active_task_ids == ["t-1"]
        assert (await state_store.load_agent(assignment.agent_id)).active_task_ids == ["t-1"]
        assert recorder.types[-2:] == ["agent.registration.completed", "agent.task.reassigned"]

    async def test_reregistering_in_error_at_retry_cap_fails_task(
        self, pool: AgentOrchestrator, recorder
    ) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")
        await pool.fail_task("t-1", "e1")
        await pool.fail_task("t-1", "e2")

        owner = pool.get_assignment("t-1").value.agent_id
        broken = _agent(owner)
        broken.status = AgentStatus.ERROR
        await pool.register_agent(broken)

        assignment = pool.get_assignment("t-1").value
        assert assignment.status is AssignmentStatus.FAILED
        assert pool.get_agent(owner).value.active_task_ids == []
        assert recorder.events[-1].data["final"] is True

    async def test_default_agents(self, orchestrator: AgentOrchestrator) -> None:
        registered = await orchestrator.register_default_agents()

        assert [a.id for a in registered] == ["claude-3-opus", "gpt-4-turbo", "gemini-pro"]
        assert len(orchestrator.list_agents()) == 3


class TestAssignTask:
    """Test assign_task."""

    async def test_assigns_least_loaded_and_updates_load(self, pool: AgentOrchestrator) -> None:
        first = await pool.assign_task("t-1", DEBUGGING, Priority.HIGH)
        second = await pool.assign_task("t-2", DEBUGGING)

        assert first.value.agent_id == "a"
        assert first.value.status is AssignmentStatus.ASSIGNED
        assert first.value.priority is Priority.HIGH
        assert second.value.agent_id == "b"
        assert pool.get_agent("a").value.current_load == 50

    async def test_preferred_agent_wins_when_eligible(self, pool: AgentOrchestrator) -> None:
        result = await pool.assign_task("t-1", preferred_agent_id="c")

        assert result.value.agent_id == "c"

    async def test_unavailable_preferred_agent_is_ignored(self, pool: AgentOrchestrator) -> None:
        await pool.update_agent_status("c", AgentStatus.MAINTENANCE)

        result = await pool.assign_task("t-1", preferred_agent_id="c")

        assert result.value.agent_id == "a"

    async def test_duplicate_live_task_is_rejected(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")

        result = await pool.assign_task("t-1")

        assert isinstance(result.error, DuplicateTaskError)

    async def test_no_agent_available(self, orchestrator: AgentOrchestrator) -> None:
        await orchestrator.register_agent(_agent("solo", capacity=1))
        await orchestrator.assign_task("t-1")

        result = await orchestrator.assign_task("t-2")

        assert isinstance(result.error, NoAgentAvailableError)
        assert orchestrator.get_assignment("t-2").is_err

    async def test_finished_task_id_can_be_reassigned(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")
        await pool.complete_task("t-1")

        result = await pool.assign_task("t-1")

        assert result.is_ok
        history = pool.get_assignment_history("t-1")
        assert [h.status for h in history] == [AssignmentStatus.COMPLETED]

    async def test_concurrent_assignments_never_exceed_capacity(
        self, orchestrator: AgentOrchestrator
    ) -> None:
        await orchestrator.register_agent(_agent("a", capacity=2))
        await orchestrator.register_agent(_agent("b", capacity=2))

        results = await asyncio.gather(
            *(orchestrator.assign_task(f"t-{i}") for i in range(6))
        )

        assert sum(r.is_ok for r in results) == 4
        for agent in orchestrator.list_agents():
            assert len(agent.active_task_ids) <= agent.max_concurrent_tasks


class TestTaskLifecycle:
    """Test start, complete and fail."""

    async def test_start_then_complete(self, pool: AgentOrchestrator, clock, recorder) -> None:
        await pool.assign_task("t-1", DEBUGGING)
        started = await pool.start_task("t-1")
        clock.advance(12)
        completed = await pool.complete_task("t-1", output={"patch": "diff"})

        assert started.value.status is AssignmentStatus.IN_PROGRESS
        assert completed.value.status is AssignmentStatus.COMPLETED
        assert completed.value.actual_duration_minutes == 12
        assert completed.value.output == {"patch": "diff"}

        metrics = pool.get_agent_metrics("a").value
        assert metrics.tasks_completed == 1
        assert metrics.average_completion_time_minutes == 12
        assert pool.get_agent("a").value.active_task_ids == []
        assert recorder.types[-3:] == [
            "agent.task.assigned",
            "agent.task.started",
            "agent.task.completed",
        ]

    async def test_start_twice_is_rejected(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")
        await pool.start_task("t-1")

        result = await pool.start_task("t-1")

        assert isinstance(result.error, InvalidAssignmentStateError)

    async def test_complete_unknown_task(self, pool: AgentOrchestrator) -> None:
        assert isinstance((await pool.complete_task("missing")).error, UnknownTaskError)

    async def test_complete_after_complete_is_rejected(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")
        await pool.complete_task("t-1")

        result = await pool.complete_task("t-1")

        assert isinstance(result.error, InvalidAssignmentStateError)

    async def test_session_notifies_context_store(
        self, pool: AgentOrchestrator, context_store
    ) -> None:
        await pool.assign_task("t-1", description="Fix login")
        await pool.start_task("t-1", session_id="s-1")
        await pool.complete_task("t-1", session_id="s-1")
        await pool.drain()

        statuses = [u.status for _, u in context_store.updates]
        assert statuses == [TaskContextStatus.IN_PROGRESS, TaskContextStatus.COMPLETED]
        assert context_store.updates[0][1].title == "Fix login"


class TestFailTask:
    """Test failure handling and reassignment."""

    async def test_failure_reassigns_to_least_loaded_other_agent(
        self, pool: AgentOrchestrator, recorder
    ) -> None:
        await pool.assign_task("busy", preferred_agent_id="b")
        await pool.assign_task("t-1", preferred_agent_id="a")

        result = await pool.fail_task("t-1", "timeout")

        assignment = result.value
        assert assignment.status is AssignmentStatus.REASSIGNED
        assert assignment.agent_id == "c"
        assert assignment.previous_agent_ids == ["a"]
        assert assignment.retry_count == 1
        assert assignment.error == "timeout"
        assert pool.get_agent("a").value.active_task_ids == []
        assert pool.get_agent("c").value.active_task_ids == ["t-1"]
        assert pool.get_agent_metrics("a").value.tasks_failed == 1
        assert "agent.task.reassigned" in recorder.types

    async def test_reassigned_task_can_start(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")
        await pool.start_task("t-1")
        await pool.fail_task("t-1", "timeout")

        result = await pool.start_task("t-1")

        assert result.value.status is AssignmentStatus.IN_PROGRESS

    async def test_retry_budget_is_enforced(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")

        await pool.fail_task("t-1", "e1")
        await pool.fail_task("t-1", "e2")
        result = await pool.fail_task("t-1", "e3")

        assert result.value.status is AssignmentStatus.FAILED
        assert result.value.retry_count == 3
        assert all(not a.active_task_ids for a in pool.list_agents())

    async def test_no_other_agent_fails_terminally(self, orchestrator: AgentOrchestrator) -> None:
        await orchestrator.register_agent(_agent("solo"))
        await orchestrator.assign_task("t-1")

        result = await orchestrator.fail_task("t-1", "crash")

        assert result.value.status is AssignmentStatus.FAILED
        assert result.value.error == NO_AGENT_AVAILABLE

    async def test_retry_false_fails_immediately(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1")

        result = await pool.fail_task("t-1", "rejected", retry=False)

        assert result.value.status is AssignmentStatus.FAILED
        assert result.value.agent_id == "a"


class TestAgentStatus:
    """Test update_agent_status."""

    async def test_offline_agent_hands_tasks_over(self, pool: AgentOrchestrator, recorder) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")
        await pool.assign_task("t-2", preferred_agent_id="a")

        result = await pool.update_agent_status("a", AgentStatus.OFFLINE)

        moved = {a.task_id: a for a in result.value}
        assert set(moved) == {"t-1", "t-2"}
        assert all(a.status is AssignmentStatus.REASSIGNED for a in moved.values())
        assert all(a.agent_id != "a" for a in moved.values())
        assert pool.get_agent("a").value.active_task_ids == []
        assert recorder.types[-1] == "agent.status.changed"
        assert recorder.events[-1].data["reassigned_task_ids"] == ["t-1", "t-2"]

    async def test_busy_status_keeps_tasks(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")

        result = await pool.update_agent_status("a", AgentStatus.BUSY)

        assert result.value == []
        assert pool.get_agent("a").value.active_task_ids == ["t-1"]

    async def test_unknown_agent(self, pool: AgentOrchestrator) -> None:
        result = await pool.update_agent_status("z", AgentStatus.OFFLINE)

        assert isinstance(result.error, UnknownAgentError)


class TestQueries:
    """Test the read-only queries."""

    async def test_list_agents_filters_and_sorts(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")
        await pool.update_agent_status("b", AgentStatus.BUSY)

        by_load = [a.id for a in pool.list_agents(sort_by="load")]
        available = [a.id for a in pool.list_agents(status=AgentStatus.AVAILABLE)]

        assert by_load[-1] == "a"
        assert available == ["a", "c"]
        assert pool.list_agents(skill="web_search") == []

    async def test_workload_summary(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1", preferred_agent_id="a")

        summary = pool.get_workload_summary()

        assert summary.total_agents == 3
        assert summary.total_tasks == 1
        assert summary.average_load == 17
        assert summary.agent_loads[0].load == 50

    async def test_best_agent_for_skill(self, orchestrator: AgentOrchestrator) -> None:
        expert = _agent("expert", proficiency=5)
        expert.performance = AgentPerformance(per_skill_success_rate={"debugging": 60})
        steady = _agent("steady", proficiency=4)
        await orchestrator.register_agent(expert)
        await orchestrator.register_agent(steady)

        best = orchestrator.get_best_agent_for_skill("debugging")

        assert best is not None
        assert best.id == "steady"
        assert orchestrator.get_best_agent_for_skill("docs") is None

    async def test_list_assignments_filters(self, pool: AgentOrchestrator) -> None:
        await pool.assign_task("t-1", workflow_id="wf-1", step_id="s-1")
        await pool.assign_task("t-2", workflow_id="wf-2", step_id="s-1")

        assert [a.task_id for a in pool.list_assignments(workflow_id="wf-1")] == ["t-1"]
        assert len(pool.list_assignments(status=AssignmentStatus.ASSIGNED)) == 2

    async def test_set_strategy(self, pool: AgentOrchestrator, recorder) -> None:
        previous = await pool.set_strategy(LoadBalancingStrategy.ROUND_ROBIN)

        assert previous is LoadBalancingStrategy.LEAST_LOADED
        assert pool.strategy is LoadBalancingStrategy.ROUND_ROBIN
        assert recorder.types[-1] == "agent.strategy.changed"
