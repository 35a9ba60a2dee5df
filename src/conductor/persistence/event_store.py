"""EventStore: append-only event log on SQLAlchemy Core + aiosqlite."""

from pathlib import Path

from sqlalchemy import literal_column, select
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from conductor.core.errors import PersistenceError
from conductor.events.base import BaseEvent
from conductor.persistence.schema import events_table, metadata


class EventStore:
    """Event store for persisting and replaying events.

    Usage:
        store = EventStore("sqlite+aiosqlite:///:memory:")
        await store.initialize()

        await store.append(event)
        events = await store.replay("workflow", "wf-123")

        await store.close()
    """

    def __init__(self, database_url: str | None = None) -> None:
        """Initialize EventStore with database URL.

        Args:
            database_url: SQLAlchemy async database URL
                (e.g. "sqlite+aiosqlite:///path/to/db.sqlite").
                Defaults to ~/.conductor/events.db.
        """
        if database_url is None:
            db_path = Path.home() / ".conductor" / "events.db"
            db_path.parent.mkdir(parents=True, exist_ok=True)
            database_url = f"sqlite+aiosqlite:///{db_path}"
        self._database_url = database_url
        self._engine: AsyncEngine | None = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> None:
        """Create the engine and tables. Idempotent."""
        if self._engine is None:
            self._engine = create_async_engine(self._database_url, echo=False)

        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    def _require_engine(self, operation: str) -> AsyncEngine:
        if self._engine is None:
            raise PersistenceError(
                "EventStore not initialized. Call initialize() first.",
                operation=operation,
            )
        return self._engine

    async def append(self, event: BaseEvent) -> None:
        """Append an event in its own transaction.

        Raises:
            PersistenceError: If the insert fails.
        """
        engine = self._require_engine("append")
        try:
            async with engine.begin() as conn:
                await conn.execute(events_table.insert().values(**event.to_db_dict()))
        except Exception as e:
            raise PersistenceError(
                f"Failed to append event: {e}",
                operation="insert",
                table="events",
                details={"event_id": event.id, "event_type": event.type},
            ) from e

    async def append_batch(self, events: list[BaseEvent]) -> None:
        """Append several events atomically; either all land or none do.

        Raises:
            PersistenceError: If the batch insert fails.
        """
        engine = self._require_engine("append_batch")
        if not events:
            return

        try:
            async with engine.begin() as conn:
                await conn.execute(
                    events_table.insert(),
                    [event.to_db_dict() for event in events],
                )
        except Exception as e:
            raise PersistenceError(
                f"Failed to append event batch: {e}",
                operation="insert_batch",
                table="events",
                details={"batch_size": len(events)},
            ) from e

    async def replay(
        self,
        aggregate_type: str,
        aggregate_id: str,
        *,
        event_type: str | None = None,
    ) -> list[BaseEvent]:
        """Return the events of one aggregate in chronological order.

        Args:
            aggregate_type: "workflow", "agent", "task" or "collaboration".
            aggregate_id: The aggregate identifier.
            event_type: Restrict to a single event type.

        Raises:
            PersistenceError: If the query fails.
        """
        engine = self._require_engine("replay")
        try:
            async with engine.begin() as conn:
                query = (
                    select(events_table)
                    .where(events_table.c.aggregate_type == aggregate_type)
                    .where(events_table.c.aggregate_id == aggregate_id)
                    .order_by(events_table.c.timestamp, events_table.c.id)
                )
                if event_type:
                    query = query.where(events_table.c.event_type == event_type)
                result = await conn.execute(query)
                return [BaseEvent.from_db_row(dict(row)) for row in result.mappings().all()]
        except Exception as e:
            raise PersistenceError(
                f"Failed to replay events: {e}",
                operation="select",
                table="events",
                details={"aggregate_type": aggregate_type, "aggregate_id": aggregate_id},
            ) from e

    async def latest(
        self, aggregate_type: str, aggregate_id: str, event_type: str
    ) -> BaseEvent | None:
        """Return the most recent event of a type for an aggregate, if any."""
        engine = self._require_engine("latest")
        try:
            async with engine.begin() as conn:
                result = await conn.execute(
                    select(events_table)
                    .where(events_table.c.aggregate_type == aggregate_type)
                    .where(events_table.c.aggregate_id == aggregate_id)
                    .where(events_table.c.event_type == event_type)
                    .order_by(events_table.c.timestamp.desc(), literal_column("rowid").desc())
                    .limit(1)
                )
                row = result.mappings().first()
                return BaseEvent.from_db_row(dict(row)) if row is not None else None
        except Exception as e:
            raise PersistenceError(
                f"Failed to load latest event: {e}",
                operation="select",
                table="events",
                details={
                    "aggregate_type": aggregate_type,
                    "aggregate_id": aggregate_id,
                    "event_type": event_type,
                },
            ) from e

    async def query_events(
        self,
        aggregate_id: str | None = None,
        event_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BaseEvent]:
        """Query events with optional filters, newest first.

        Raises:
            PersistenceError: If the query fails.
        """
        engine = self._require_engine("query_events")
        try:
            async with engine.begin() as conn:
                query = select(events_table).order_by(events_table.c.timestamp.desc())
                if aggregate_id:
                    query = query.where(events_table.c.aggregate_id == aggregate_id)
                if event_type:
                    query = query.where(events_table.c.event_type == event_type)
                query = query.limit(limit).offset(offset)

                result = await conn.execute(query)
                return [BaseEvent.from_db_row(dict(row)) for row in result.mappings().all()]
        except Exception as e:
            raise PersistenceError(
                f"Failed to query events: {e}",
                operation="select",
                table="events",
                details={
                    "aggregate_id": aggregate_id,
                    "event_type": event_type,
                    "limit": limit,
                    "offset": offset,
                },
            ) from e

    async def close(self) -> None:
        """Dispose of the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None


__all__ = ["EventStore"]
