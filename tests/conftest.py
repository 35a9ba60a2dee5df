"""Shared fixtures for the Conductor test suite."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import stamina

from conductor.core.background import BackgroundDispatcher
from conductor.core.protocols import Artifact, TaskContextUpdate
from conductor.events.base import BaseEvent
from conductor.observability.logging import reset_logging, set_console_logging
from conductor.persistence.state_store import InMemoryStateStore

# Background retries must not sleep in tests.
stamina.set_testing(True)


class FakeClock:
    """Deterministic clock advanced explicitly by tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


class RecordingContextStore:
    """ContextStore that remembers every call."""

    def __init__(self) -> None:
        self.updates: list[tuple[str, TaskContextUpdate]] = []
        self.artifacts: list[tuple[str, Artifact]] = []

    async def update_task_context(self, session_id: str, update: TaskContextUpdate) -> None:
        self.updates.append((session_id, update))

    async def track_artifact(self, session_id: str, artifact: Artifact) -> None:
        self.artifacts.append((session_id, artifact))


class EventRecorder:
    """EventObserver collecting events in order."""

    def __init__(self) -> None:
        self.events: list[BaseEvent] = []

    def __call__(self, event: BaseEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]

    def of_type(self, event_type: str) -> list[BaseEvent]:
        return [e for e in self.events if e.type == event_type]


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Keep structlog output off the test console."""
    reset_logging()
    set_console_logging(False)
    yield
    reset_logging()
    set_console_logging(True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context_store() -> RecordingContextStore:
    return RecordingContextStore()


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def dispatcher() -> BackgroundDispatcher:
    return BackgroundDispatcher(retry_attempts=3, retry_wait_initial=0.01, retry_wait_max=0.01)


@pytest.fixture
def payload() -> dict[str, Any]:
    return {"summary": "done"}


@pytest.fixture
def live_retries() -> Iterator[None]:
    """Let stamina really back off and retry for the duration of a test."""
    stamina.set_testing(False)
    yield
    stamina.set_testing(True)
