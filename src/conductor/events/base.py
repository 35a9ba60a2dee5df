"""Base event definition.

Every state change in the engine and orchestrator is described by an
immutable BaseEvent. Events are handed to observers synchronously and can be
appended to the EventStore for an audit log. Event types follow the
dot.notation.past_tense convention ("workflow.transition.applied").
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class BaseEvent(BaseModel, frozen=True):
    """Immutable record of a state change.

    Attributes:
        id: Unique event identifier (UUID).
        type: Event type, e.g. "workflow.step.completed".
        timestamp: When the event occurred (UTC).
        aggregate_type: "workflow", "agent", "task" or "collaboration".
        aggregate_id: Identifier of the aggregate the event belongs to.
        data: Event-specific payload.

    Example:
        event = BaseEvent(
            type="agent.task.assigned",
            aggregate_type="task",
            aggregate_id="task-001",
            data={"agent_id": "gpt-4-turbo", "priority": "high"},
        )
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    aggregate_type: str
    aggregate_id: str
    data: dict[str, Any] = Field(default_factory=dict)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert event to a row for the events table."""
        return {
            "id": self.id,
            "event_type": self.type,
            "timestamp": self.timestamp,
            "aggregate_type": self.aggregate_type,
            "aggregate_id": self.aggregate_id,
            "payload": self.data,
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> BaseEvent:
        """Create an event from an events table row."""
        return cls(
            id=row["id"],
            type=row["event_type"],
            timestamp=row["timestamp"],
            aggregate_type=row["aggregate_type"],
            aggregate_id=row["aggregate_id"],
            data=row["payload"],
        )


__all__ = ["BaseEvent"]
