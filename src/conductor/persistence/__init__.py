"""Conductor persistence module - event log and state snapshots."""

from conductor.persistence.event_store import EventStore
from conductor.persistence.schema import events_table, metadata
from conductor.persistence.state_store import (
    AGENT_SNAPSHOT,
    WORKFLOW_SNAPSHOT,
    EventSourcedStateStore,
    InMemoryStateStore,
)

__all__ = [
    "AGENT_SNAPSHOT",
    "WORKFLOW_SNAPSHOT",
    "EventSourcedStateStore",
    "EventStore",
    "InMemoryStateStore",
    "events_table",
    "metadata",
]
