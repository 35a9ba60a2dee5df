"""Unit tests for conductor.coordinator module."""

from __future__ import annotations

import pytest

from conductor.agents.capability import Capability, CapabilityCategory, CapabilityRequirement
from conductor.agents.models import Agent, AgentStatus, AssignmentStatus
from conductor.agents.orchestrator import AgentOrchestrator
from conductor.config.models import OrchestratorConfig, WorkflowConfig
from conductor.coordinator import WorkflowCoordinator, step_task_id
from conductor.core.errors import UnknownWorkflowError, ValidationError
from conductor.core.types import LoadBalancingStrategy
from conductor.workflow.engine import WorkflowEngine
from conductor.workflow.models import StepBlueprint, StepStatus, Trigger, Workflow, WorkflowState

CODING = (CapabilityRequirement.of(skill="implementation"),)

DIAMOND = (
    StepBlueprint(name="design", required_capabilities=CODING),
    StepBlueprint(name="api", dependencies=("design",), required_capabilities=CODING),
    StepBlueprint(name="ui", dependencies=("design",), required_capabilities=CODING),
    StepBlueprint(name="release", dependencies=("api", "ui"), required_capabilities=CODING),
)

LINEAR = (
    StepBlueprint(name="build", required_capabilities=CODING),
    StepBlueprint(name="ship", dependencies=("build",), required_capabilities=CODING),
)


def _agent(agent_id: str) -> Agent:
    return Agent(
        id=agent_id,
        name=agent_id.title(),
        capabilities=(Capability.of(CapabilityCategory.CODING, "implementation", 4),),
        max_concurrent_tasks=2,
    )


def sid(workflow: Workflow, name: str) -> str:
    return next(s.id for s in workflow.steps if s.name == name)


class Harness:
    """Engine, orchestrator and coordinator sharing one dispatcher."""

    def __init__(self, dispatcher, clock, *, max_task_retries: int = 3) -> None:
        self.engine = WorkflowEngine(
            WorkflowConfig(default_step_max_retries=0), dispatcher=dispatcher, clock=clock
        )
        self.orchestrator = AgentOrchestrator(
            OrchestratorConfig(
                strategy=LoadBalancingStrategy.LEAST_LOADED, max_task_retries=max_task_retries
            ),
            dispatcher=dispatcher,
            clock=clock,
        )
        self.coordinator = WorkflowCoordinator(self.engine, self.orchestrator)

    async def start(self, steps=DIAMOND) -> Workflow:
        for agent_id in ("coder", "backup"):
            await self.orchestrator.register_agent(_agent(agent_id))
        workflow = (await self.engine.create_workflow("proj", "W", steps=steps)).value
        await self.engine.transition(workflow.id, Trigger.START)
        return (await self.engine.transition(workflow.id, Trigger.START)).value

    def step_status(self, workflow_id: str, name: str) -> StepStatus:
        workflow = self.engine.get_workflow(workflow_id).value
        return next(s.status for s in workflow.steps if s.name == name)


@pytest.fixture
def harness(dispatcher, clock) -> Harness:
    return Harness(dispatcher, clock)


class TestDispatchReadySteps:
    """Tests for WorkflowCoordinator.dispatch_ready_steps."""

    async def test_starts_ready_steps(self, harness: Harness) -> None:
        workflow = await harness.start()

        started = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        assert [a.step_id for a in started] == [sid(workflow, "design")]
        (assignment,) = started
        assert assignment.task_id == step_task_id(workflow.id, sid(workflow, "design"))
        assert assignment.status is AssignmentStatus.IN_PROGRESS
        assert assignment.workflow_id == workflow.id
        assert harness.step_status(workflow.id, "design") is StepStatus.RUNNING

    async def test_second_dispatch_does_not_duplicate(self, harness: Harness) -> None:
        workflow = await harness.start()
        await harness.coordinator.dispatch_ready_steps(workflow.id)

        again = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        assert again == []
        assert len(harness.orchestrator.list_assignments(workflow_id=workflow.id)) == 1

    async def test_parallel_branches_dispatch_together(self, harness: Harness) -> None:
        workflow = await harness.start()
        (design,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value
        await harness.coordinator.report_success(design.task_id)

        started = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        assert sorted(a.step_id for a in started) == sorted(
            [sid(workflow, "api"), sid(workflow, "ui")]
        )

    async def test_nothing_dispatched_unless_running(self, harness: Harness) -> None:
        await harness.orchestrator.register_agent(_agent("coder"))
        workflow = (await harness.engine.create_workflow("proj", "W", steps=DIAMOND)).value

        assert (await harness.coordinator.dispatch_ready_steps(workflow.id)).value == []

    async def test_unknown_workflow(self, harness: Harness) -> None:
        result = await harness.coordinator.dispatch_ready_steps("missing")

        assert isinstance(result.error, UnknownWorkflowError)

    async def test_no_agent_leaves_step_ready(self, harness: Harness) -> None:
        workflow = await harness.start()
        for agent_id in ("coder", "backup"):
            await harness.orchestrator.update_agent_status(agent_id, AgentStatus.OFFLINE)

        started = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        assert started == []
        assert harness.step_status(workflow.id, "design") is StepStatus.READY


class TestReportSuccess:
    async def test_completes_task_and_step(self, harness: Harness) -> None:
        workflow = await harness.start(LINEAR)
        (build,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        after = (
            await harness.coordinator.report_success(build.task_id, outputs={"binary": "app"})
        ).value

        assert after.steps[0].status is StepStatus.COMPLETED
        assert after.steps[0].outputs == {"binary": "app"}
        task = harness.orchestrator.get_assignment(build.task_id).value
        assert task.status is AssignmentStatus.COMPLETED
        assert harness.orchestrator.get_agent(build.agent_id).value.active_task_ids == []

    async def test_task_without_step_is_rejected(self, harness: Harness) -> None:
        await harness.orchestrator.register_agent(_agent("coder"))
        await harness.orchestrator.assign_task("adhoc", CODING)

        result = await harness.coordinator.report_success("adhoc")

        assert isinstance(result.error, ValidationError)


class TestReportFailure:
    """Tests for WorkflowCoordinator.report_failure."""

    async def test_reassigns_and_keeps_step_running(self, harness: Harness) -> None:
        workflow = await harness.start(LINEAR)
        (build,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        moved = (await harness.coordinator.report_failure(build.task_id, "crashed")).value

        assert moved.status is AssignmentStatus.IN_PROGRESS
        assert moved.agent_id != build.agent_id
        assert moved.previous_agent_ids == [build.agent_id]
        assert harness.step_status(workflow.id, "build") is StepStatus.RUNNING

    async def test_terminal_failure_fails_step_and_workflow(self, dispatcher, clock) -> None:
        harness = Harness(dispatcher, clock, max_task_retries=1)
        workflow = await harness.start(LINEAR)
        (build,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        failed = (await harness.coordinator.report_failure(build.task_id, "broken")).value

        assert failed.status is AssignmentStatus.FAILED
        assert harness.step_status(workflow.id, "build") is StepStatus.FAILED
        assert harness.engine.get_workflow(workflow.id).value.state is WorkflowState.FAILED

    async def test_step_retry_reuses_task_id(self, dispatcher, clock) -> None:
        harness = Harness(dispatcher, clock, max_task_retries=1)
        steps = (StepBlueprint(name="build", required_capabilities=CODING, max_retries=1),)
        workflow = await harness.start(steps)
        (first,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value
        await harness.coordinator.report_failure(first.task_id, "flaky")

        (second,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        assert second.task_id == first.task_id
        assert second.status is AssignmentStatus.IN_PROGRESS
        history = harness.orchestrator.get_assignment_history(first.task_id)
        assert [a.status for a in history] == [AssignmentStatus.FAILED]


class TestReconcile:
    """Tasks changed by agent status updates are picked up on the next dispatch."""

    async def test_reassigned_task_is_started(self, harness: Harness) -> None:
        workflow = await harness.start(LINEAR)
        (build,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value
        await harness.orchestrator.update_agent_status(build.agent_id, AgentStatus.OFFLINE)

        started = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value

        assert [a.task_id for a in started] == [build.task_id]
        assert started[0].status is AssignmentStatus.IN_PROGRESS
        assert started[0].agent_id != build.agent_id

    async def test_failed_task_fails_step(self, dispatcher, clock) -> None:
        harness = Harness(dispatcher, clock, max_task_retries=1)
        workflow = await harness.start(LINEAR)
        (build,) = (await harness.coordinator.dispatch_ready_steps(workflow.id)).value
        await harness.orchestrator.update_agent_status(build.agent_id, AgentStatus.ERROR)

        await harness.coordinator.dispatch_ready_steps(workflow.id)

        assert harness.step_status(workflow.id, "build") is StepStatus.FAILED
        assert harness.engine.get_workflow(workflow.id).value.state is WorkflowState.FAILED
