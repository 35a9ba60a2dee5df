"""Wiring of a complete Conductor runtime from configuration.

build_conductor creates the shared background dispatcher, the event store
and state store (when persistence is enabled), the workflow engine, the
agent orchestrator and the coordinator, all configured from one
ConductorConfig.

Usage:
    conductor = await build_conductor(load_config_or_default())
    try:
        workflow = (await conductor.engine.create_workflow("proj", "Fix")).value
        ...
    finally:
        await conductor.close()
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from conductor.agents.orchestrator import AgentOrchestrator
from conductor.config.models import ConductorConfig, get_config_dir
from conductor.coordinator import WorkflowCoordinator
from conductor.core.background import BackgroundDispatcher
from conductor.core.protocols import ContextStore, EventObserver, StateStore
from conductor.observability.logging import get_logger
from conductor.persistence.event_store import EventStore
from conductor.persistence.state_store import EventSourcedStateStore, InMemoryStateStore
from conductor.workflow.engine import WorkflowEngine

log = get_logger(__name__)


@dataclass(slots=True)
class Conductor:
    """A wired engine, orchestrator and coordinator sharing one dispatcher."""

    engine: WorkflowEngine
    orchestrator: AgentOrchestrator
    coordinator: WorkflowCoordinator
    dispatcher: BackgroundDispatcher
    state_store: StateStore
    event_store: EventStore | None = None

    async def close(self) -> None:
        """Flush background work, then release the database."""
        await self.dispatcher.drain()
        if self.event_store is not None:
            await self.event_store.close()
        log.info("runtime.closed", background_failures=self.dispatcher.failure_count)


async def build_conductor(
    config: ConductorConfig | None = None,
    *,
    config_dir: Path | None = None,
    context_store: ContextStore | None = None,
    observer: EventObserver | None = None,
) -> Conductor:
    """Build a runtime from ``config``.

    Args:
        config: Configuration; defaults when omitted.
        config_dir: Base for relative database paths. Defaults to ~/.conductor/
        context_store: Context store shared by the engine and orchestrator.
        observer: Observer notified of every event from both components.
    """
    config = config or ConductorConfig()
    config_dir = config_dir or get_config_dir()
    persistence = config.persistence

    event_store: EventStore | None = None
    state_store: StateStore = InMemoryStateStore()
    if persistence.enabled:
        persistence.database_file(config_dir).parent.mkdir(parents=True, exist_ok=True)
        event_store = EventStore(persistence.database_url(config_dir))
        await event_store.initialize()
        state_store = EventSourcedStateStore(event_store)

    dispatcher = BackgroundDispatcher(
        retry_attempts=persistence.retry_attempts,
        retry_wait_initial=persistence.retry_wait_initial,
        retry_wait_max=persistence.retry_wait_max,
        event_store=event_store,
    )
    engine = WorkflowEngine(
        config.workflow,
        state_store=state_store,
        context_store=context_store,
        dispatcher=dispatcher,
        observer=observer,
    )
    orchestrator = AgentOrchestrator(
        config.orchestrator,
        state_store=state_store,
        context_store=context_store,
        dispatcher=dispatcher,
        observer=observer,
    )
    if config.orchestrator.register_default_agents:
        await orchestrator.register_default_agents()

    log.info(
        "runtime.started",
        strategy=config.orchestrator.strategy.value,
        persistence=persistence.enabled,
    )
    return Conductor(
        engine=engine,
        orchestrator=orchestrator,
        coordinator=WorkflowCoordinator(engine, orchestrator),
        dispatcher=dispatcher,
        state_store=state_store,
        event_store=event_store,
    )


__all__ = ["Conductor", "build_conductor"]
