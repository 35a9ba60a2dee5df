"""Integration tests for persistence across runtime restarts."""

from __future__ import annotations

from pathlib import Path

from conductor.agents.models import Agent
from conductor.config.models import ConductorConfig, OrchestratorConfig, PersistenceConfig
from conductor.core.background import BackgroundDispatcher
from conductor.core.errors import PersistenceError
from conductor.persistence.event_store import EventStore
from conductor.persistence.state_store import InMemoryStateStore
from conductor.runtime import build_conductor
from conductor.workflow.engine import WorkflowEngine
from conductor.workflow.models import StepStatus, Trigger, Workflow, WorkflowState


class FailingStateStore:
    """StateStore whose writes always fail."""

    def __init__(self) -> None:
        self.attempts = 0

    async def save_workflow(self, workflow: Workflow) -> None:
        self.attempts += 1
        raise PersistenceError("disk full", operation="save_workflow")

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        return None

    async def save_agent(self, agent: Agent) -> None:
        raise PersistenceError("disk full", operation="save_agent")


class FlakyStateStore(InMemoryStateStore):
    """In-memory store whose first workflow save fails."""

    def __init__(self) -> None:
        super().__init__()
        self.failed = False

    async def save_workflow(self, workflow: Workflow) -> None:
        if not self.failed:
            self.failed = True
            raise PersistenceError("connection reset", operation="save_workflow")
        await super().save_workflow(workflow)


def _config() -> ConductorConfig:
    return ConductorConfig(
        persistence=PersistenceConfig(database_path="data/conductor.db"),
        orchestrator=OrchestratorConfig(register_default_agents=True),
    )


class TestRestart:
    """A workflow survives a runtime restart."""

    async def test_restore_and_continue(self, tmp_path: Path) -> None:
        first = await build_conductor(_config(), config_dir=tmp_path)
        workflow = (
            await first.engine.create_workflow("proj", "Fix login", template_id="bug-fix")
        ).value
        await first.engine.transition(workflow.id, Trigger.START)
        await first.engine.transition(workflow.id, Trigger.START)
        (task,) = (await first.coordinator.dispatch_ready_steps(workflow.id)).value
        await first.coordinator.report_success(task.task_id, outputs={"repro": "steps.md"})
        await first.close()

        second = await build_conductor(_config(), config_dir=tmp_path)
        restored = (await second.engine.restore_workflow(workflow.id)).value

        assert restored.state is WorkflowState.RUNNING
        assert restored.steps[0].status is StepStatus.COMPLETED
        assert restored.steps[0].outputs == {"repro": "steps.md"}
        assert restored.steps[1].status is StepStatus.READY

        (next_task,) = (await second.coordinator.dispatch_ready_steps(workflow.id)).value
        assert next_task.description == "Root Cause Analysis"
        await second.close()
        assert second.dispatcher.failure_count == 0

    async def test_unknown_workflow_is_not_restored(self, tmp_path: Path) -> None:
        conductor = await build_conductor(_config(), config_dir=tmp_path)

        result = await conductor.engine.restore_workflow("missing")
        await conductor.close()

        assert result.is_err

    async def test_events_are_queryable(self, tmp_path: Path) -> None:
        conductor = await build_conductor(_config(), config_dir=tmp_path)
        workflow = (
            await conductor.engine.create_workflow("proj", "Fix", template_id="bug-fix")
        ).value
        await conductor.engine.transition(workflow.id, Trigger.START)
        await conductor.close()

        store = EventStore(_config().persistence.database_url(tmp_path))
        await store.initialize()
        latest = await store.latest("workflow", workflow.id, "workflow.snapshot.saved")
        agent_events = await store.replay("agent", "gpt-4-turbo")
        await store.close()

        assert latest is not None
        assert latest.data["state"] == "ready"
        assert "agent.registration.completed" in {e.type for e in agent_events}


class TestStoreFailures:
    """State store failures never break engine operations."""

    async def test_failing_state_store_is_tolerated(self, clock) -> None:
        store = FailingStateStore()
        dispatcher = BackgroundDispatcher(retry_attempts=2)
        engine = WorkflowEngine(state_store=store, dispatcher=dispatcher, clock=clock)

        workflow = (
            await engine.create_workflow("proj", "Fix", template_id="bug-fix")
        ).value
        started = await engine.transition(workflow.id, Trigger.START)
        await engine.drain()

        assert started.is_ok
        assert engine.get_workflow(workflow.id).value.state is WorkflowState.READY
        assert store.attempts >= 2
        assert dispatcher.failure_count >= 2

    async def test_retried_snapshot_does_not_replace_newer_one(
        self, clock, live_retries
    ) -> None:
        store = FlakyStateStore()
        dispatcher = BackgroundDispatcher(
            retry_attempts=3, retry_wait_initial=0.01, retry_wait_max=0.02
        )
        engine = WorkflowEngine(state_store=store, dispatcher=dispatcher, clock=clock)

        workflow = (
            await engine.create_workflow("proj", "Fix", template_id="bug-fix")
        ).value
        await engine.transition(workflow.id, Trigger.START)
        await engine.drain()

        saved = await store.load_workflow(workflow.id)
        assert saved is not None
        assert saved.state is WorkflowState.READY
        assert dispatcher.failure_count == 0
