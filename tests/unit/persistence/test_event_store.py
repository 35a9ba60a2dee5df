"""Unit tests for conductor.persistence.event_store module."""

from datetime import UTC, datetime, timedelta

import pytest

from conductor.core.errors import PersistenceError
from conductor.events.base import BaseEvent
from conductor.persistence.event_store import EventStore

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
async def event_store(tmp_path):
    """Create an EventStore backed by a temporary SQLite file."""
    store = EventStore(f"sqlite+aiosqlite:///{tmp_path / 'events.db'}")
    await store.initialize()
    yield store
    await store.close()


def _event(
    event_type: str = "workflow.step.completed",
    aggregate_id: str = "wf-1",
    *,
    minutes: int = 0,
    **data,
) -> BaseEvent:
    return BaseEvent(
        type=event_type,
        aggregate_type="workflow",
        aggregate_id=aggregate_id,
        timestamp=T0 + timedelta(minutes=minutes),
        data=data,
    )


class TestInitialization:
    """Test EventStore.initialize()."""

    async def test_initialize_is_idempotent(self, tmp_path) -> None:
        store = EventStore(f"sqlite+aiosqlite:///{tmp_path / 'twice.db'}")
        assert not store.is_initialized

        await store.initialize()
        await store.initialize()

        assert store.is_initialized
        await store.close()
        assert not store.is_initialized

    async def test_operations_require_initialize(self, tmp_path) -> None:
        store = EventStore(f"sqlite+aiosqlite:///{tmp_path / 'cold.db'}")

        with pytest.raises(PersistenceError, match="not initialized"):
            await store.append(_event())

    async def test_data_survives_reopen(self, tmp_path) -> None:
        url = f"sqlite+aiosqlite:///{tmp_path / 'reopen.db'}"
        first = EventStore(url)
        await first.initialize()
        await first.append(_event(step_id="s1"))
        await first.close()

        second = EventStore(url)
        await second.initialize()
        events = await second.replay("workflow", "wf-1")
        await second.close()

        assert [e.data for e in events] == [{"step_id": "s1"}]


class TestAppendAndReplay:
    """Test append(), append_batch() and replay()."""

    async def test_replay_is_chronological(self, event_store: EventStore) -> None:
        await event_store.append(_event(minutes=5, step="second"))
        await event_store.append(_event(minutes=1, step="first"))
        await event_store.append(_event(aggregate_id="wf-2", step="other"))

        events = await event_store.replay("workflow", "wf-1")

        assert [e.data["step"] for e in events] == ["first", "second"]

    async def test_replay_filters_by_type(self, event_store: EventStore) -> None:
        await event_store.append(_event("workflow.step.started"))
        await event_store.append(_event("workflow.step.completed", minutes=1))

        events = await event_store.replay(
            "workflow", "wf-1", event_type="workflow.step.started"
        )

        assert [e.type for e in events] == ["workflow.step.started"]

    async def test_event_round_trips(self, event_store: EventStore) -> None:
        original = _event(progress=50, nested={"ok": True})
        await event_store.append(original)

        (stored,) = await event_store.replay("workflow", "wf-1")

        assert stored.id == original.id
        assert stored.type == original.type
        assert stored.data == {"progress": 50, "nested": {"ok": True}}

    async def test_duplicate_id_raises(self, event_store: EventStore) -> None:
        event = _event()
        await event_store.append(event)

        with pytest.raises(PersistenceError) as exc_info:
            await event_store.append(event)

        assert exc_info.value.details["event_id"] == event.id

    async def test_batch_is_atomic(self, event_store: EventStore) -> None:
        existing = _event()
        await event_store.append(existing)

        with pytest.raises(PersistenceError):
            await event_store.append_batch([_event(minutes=1), existing])

        assert len(await event_store.replay("workflow", "wf-1")) == 1

    async def test_empty_batch_is_noop(self, event_store: EventStore) -> None:
        await event_store.append_batch([])

        assert await event_store.query_events() == []


class TestLatest:
    """Test latest()."""

    async def test_latest_by_timestamp(self, event_store: EventStore) -> None:
        await event_store.append(_event("workflow.snapshot.saved", minutes=2, version=2))
        await event_store.append(_event("workflow.snapshot.saved", minutes=1, version=1))

        latest = await event_store.latest("workflow", "wf-1", "workflow.snapshot.saved")

        assert latest is not None
        assert latest.data["version"] == 2

    async def test_same_timestamp_prefers_last_written(self, event_store: EventStore) -> None:
        for version in range(3):
            await event_store.append(_event("workflow.snapshot.saved", version=version))

        latest = await event_store.latest("workflow", "wf-1", "workflow.snapshot.saved")

        assert latest.data["version"] == 2

    async def test_latest_missing(self, event_store: EventStore) -> None:
        assert await event_store.latest("workflow", "nope", "workflow.snapshot.saved") is None


class TestQueryEvents:
    """Test query_events()."""

    async def test_newest_first_with_paging(self, event_store: EventStore) -> None:
        for minute in range(5):
            await event_store.append(_event(minutes=minute, n=minute))

        page = await event_store.query_events(limit=2, offset=1)

        assert [e.data["n"] for e in page] == [3, 2]

    async def test_filters(self, event_store: EventStore) -> None:
        await event_store.append(_event("workflow.step.started", "wf-1"))
        await event_store.append(_event("workflow.step.started", "wf-2"))
        await event_store.append(_event("workflow.step.completed", "wf-2"))

        by_aggregate = await event_store.query_events(aggregate_id="wf-2")
        by_both = await event_store.query_events(
            aggregate_id="wf-2", event_type="workflow.step.started"
        )

        assert len(by_aggregate) == 2
        assert [(e.aggregate_id, e.type) for e in by_both] == [
            ("wf-2", "workflow.step.started")
        ]
