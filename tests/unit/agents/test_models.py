"""Unit tests for conductor.agents.models module."""

from datetime import UTC, datetime

import pytest

from conductor.agents.capability import Capability, CapabilityCategory
from conductor.agents.models import (
    Agent,
    AgentPerformance,
    AgentStatus,
    AssignmentStatus,
    TaskAssignment,
)
from conductor.core.errors import ValidationError
from conductor.core.types import SuccessRateMode


class TestAgent:
    """Test Agent load and eligibility."""

    def test_load_is_derived_from_active_tasks(self) -> None:
        agent = Agent(id="a", name="A", max_concurrent_tasks=4)

        agent.hold("t-1")
        agent.hold("t-1")
        agent.hold("t-2")

        assert agent.active_task_ids == ["t-1", "t-2"]
        assert agent.current_load == 50

    def test_full_agent_is_not_eligible(self) -> None:
        agent = Agent(id="a", name="A", max_concurrent_tasks=1)
        agent.hold("t-1")

        assert not agent.has_capacity
        assert not agent.is_eligible

        agent.release("t-1")
        assert agent.is_eligible

    def test_unavailable_agent_is_not_eligible(self) -> None:
        assert not Agent(id="a", name="A", status=AgentStatus.MAINTENANCE).is_eligible

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Agent(id="a", name="A", max_concurrent_tasks=0)

    def test_copy_is_detached(self) -> None:
        agent = Agent(id="a", name="A", max_concurrent_tasks=2)
        snapshot = agent.copy()

        agent.hold("t-1")
        agent.performance.tasks_completed = 3

        assert snapshot.active_task_ids == []
        assert snapshot.performance.tasks_completed == 0

    def test_dict_round_trip(self) -> None:
        agent = Agent(
            id="a",
            name="A",
            capabilities=(Capability.of(CapabilityCategory.REVIEW, "code_review", 4),),
            max_concurrent_tasks=3,
            active_task_ids=["t-1"],
        )

        restored = Agent.from_dict(agent.to_dict())

        assert restored.capabilities == agent.capabilities
        assert restored.active_task_ids == ["t-1"]
        assert restored.current_load == agent.current_load


class TestAgentPerformance:
    """Test performance bookkeeping."""

    def test_completion_updates_rolling_average(self) -> None:
        performance = AgentPerformance()

        performance.record_completion(10, [])
        performance.record_completion(30, [])

        assert performance.tasks_completed == 2
        assert performance.average_completion_time_minutes == 20

    def test_counted_mode_uses_outcome_ratio(self) -> None:
        performance = AgentPerformance(success_rate_percent=95)

        performance.record_completion(None, [])
        performance.record_failure([])

        assert performance.success_rate_percent == 50

    def test_dilution_mode_scales_on_failure(self) -> None:
        performance = AgentPerformance(tasks_completed=3, success_rate_percent=80)

        performance.record_failure([], SuccessRateMode.DILUTION)

        assert performance.success_rate_percent == pytest.approx(60)
        assert performance.tasks_failed == 1

    def test_skill_rates_are_nudged(self) -> None:
        performance = AgentPerformance(per_skill_success_rate={"debugging": 90})

        performance.record_failure(["debugging"])

        assert performance.per_skill_success_rate["debugging"] == pytest.approx(81)

    def test_unknown_skill_starts_from_overall_rate(self) -> None:
        performance = AgentPerformance(success_rate_percent=80)

        performance.record_completion(None, ["docs"], SuccessRateMode.DILUTION)

        assert performance.per_skill_success_rate["docs"] == pytest.approx(82)


class TestTaskAssignment:
    """Test assignment status helpers."""

    def test_terminal_statuses(self) -> None:
        assert AssignmentStatus.COMPLETED.is_terminal
        assert AssignmentStatus.FAILED.is_terminal
        assert not AssignmentStatus.REASSIGNED.is_terminal

    def test_startable_statuses(self) -> None:
        assert AssignmentStatus.ASSIGNED.is_startable
        assert AssignmentStatus.REASSIGNED.is_startable
        assert not AssignmentStatus.IN_PROGRESS.is_startable

    def test_copy_detaches_history(self) -> None:
        assignment = TaskAssignment(
            task_id="t-1", agent_id="a", assigned_at=datetime(2025, 1, 1, tzinfo=UTC)
        )
        snapshot = assignment.copy()

        assignment.previous_agent_ids.append("b")
        assignment.status = AssignmentStatus.FAILED

        assert snapshot.previous_agent_ids == []
        assert snapshot.is_live
