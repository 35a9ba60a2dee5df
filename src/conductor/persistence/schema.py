"""Database schema definitions using SQLAlchemy Core.

Table: events
    Append-only log of workflow, agent, task and collaboration events.
    State snapshots written by EventSourcedStateStore live here too, as
    events of type "<aggregate>.snapshot.saved".
"""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    text,
)

metadata = MetaData()

events_table = Table(
    "events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("aggregate_type", String(50), nullable=False),
    # Task ids are "<workflow_id>:<step_id>" when dispatched by the coordinator
    Column("aggregate_id", String(200), nullable=False),
    Column("event_type", String(200), nullable=False),
    Column("payload", JSON, nullable=False),
    Column(
        "timestamp",
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("CURRENT_TIMESTAMP"),
    ),
    Index("ix_events_aggregate_type_id", "aggregate_type", "aggregate_id"),
    Index("ix_events_event_type", "event_type"),
    Index("ix_events_timestamp", "timestamp"),
)

__all__ = ["events_table", "metadata"]
