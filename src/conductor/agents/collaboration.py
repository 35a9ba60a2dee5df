"""Collaboration channel: directed message logs between agents.

A collaboration session groups two or more registered agents around a
purpose. Messages are appended in order and never edited. A handoff message
addressed to a single agent also notifies the context store, so the
receiving agent's context picks up where the sender left off.

Usage:
    session = (await channel.create_collaboration(["a", "b"], "Design review")).value
    await channel.send_message(session.id, "a", "b", "Take over the API", MessageType.HANDOFF)
    await channel.complete_collaboration(session.id)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from conductor.core.errors import (
    CollaborationClosedError,
    ConductorError,
    UnknownAgentError,
    UnknownCollaborationError,
    ValidationError,
)
from conductor.core.protocols import (
    ContextStore,
    EventObserver,
    NullContextStore,
    TaskContextStatus,
    TaskContextUpdate,
)
from conductor.core.types import Clock, Result, utc_now
from conductor.events.agents import (
    create_collaboration_closed_event,
    create_collaboration_created_event,
    create_collaboration_message_event,
)
from conductor.observability.logging import get_logger

if TYPE_CHECKING:
    from conductor.agents.registry import AgentRegistry
    from conductor.core.background import BackgroundDispatcher
    from conductor.core.locks import LockRegistry

log = get_logger(__name__)

BROADCAST = "all"


class CollaborationStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class MessageType(StrEnum):
    REQUEST = "request"
    RESPONSE = "response"
    BROADCAST = "broadcast"
    HANDOFF = "handoff"


@dataclass(frozen=True, slots=True)
class CollaborationMessage:
    """One entry of a collaboration log. ``to`` is an agent id or "all"."""

    from_agent_id: str
    to: str
    content: str
    timestamp: datetime
    type: MessageType = MessageType.REQUEST

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_agent_id": self.from_agent_id,
            "to": self.to,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
        }


@dataclass(slots=True)
class CollaborationSession:
    """A named session with an append-only message log."""

    id: str
    participant_ids: tuple[str, ...]
    lead_agent_id: str
    purpose: str
    created_at: datetime
    shared_context: dict[str, Any] = field(default_factory=dict)
    messages: list[CollaborationMessage] = field(default_factory=list)
    status: CollaborationStatus = CollaborationStatus.ACTIVE
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is CollaborationStatus.ACTIVE

    def copy(self) -> CollaborationSession:
        return CollaborationSession(
            id=self.id,
            participant_ids=self.participant_ids,
            lead_agent_id=self.lead_agent_id,
            purpose=self.purpose,
            created_at=self.created_at,
            shared_context=dict(self.shared_context),
            messages=list(self.messages),
            status=self.status,
            completed_at=self.completed_at,
        )


class CollaborationChannel:
    """Owner of collaboration sessions.

    Built by the AgentOrchestrator, which shares its agent registry, lock
    registry and background dispatcher with the channel.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        locks: LockRegistry,
        dispatcher: BackgroundDispatcher,
        *,
        context_store: ContextStore | None = None,
        observer: EventObserver | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._registry = registry
        self._locks = locks
        self._dispatcher = dispatcher
        self._context_store = context_store or NullContextStore()
        self._observer = observer
        self._clock = clock
        self._sessions: dict[str, CollaborationSession] = {}

    @staticmethod
    def _key(session_id: str) -> str:
        return f"collaboration:{session_id}"

    async def create_collaboration(
        self,
        participant_ids: Sequence[str],
        purpose: str,
        *,
        lead_agent_id: str | None = None,
        shared_context: dict[str, Any] | None = None,
        observer: EventObserver | None = None,
    ) -> Result[CollaborationSession, ConductorError]:
        """Open a session between registered agents.

        The lead defaults to the first participant and must be a participant.
        """
        participants = tuple(dict.fromkeys(participant_ids))
        if not participants:
            return Result.err(
                ValidationError(
                    "A collaboration needs at least one participant", field="participant_ids"
                )
            )
        for agent_id in participants:
            if agent_id not in self._registry:
                return Result.err(UnknownAgentError(agent_id))

        lead = lead_agent_id or participants[0]
        if lead not in participants:
            return Result.err(
                ValidationError(
                    "Lead agent must be a participant", field="lead_agent_id", value=lead
                )
            )

        session = CollaborationSession(
            id=str(uuid4()),
            participant_ids=participants,
            lead_agent_id=lead,
            purpose=purpose,
            created_at=self._clock(),
            shared_context=dict(shared_context or {}),
        )
        async with self._locks.hold(self._key(session.id)):
            self._sessions[session.id] = session

        log.info(
            "collaboration.session.created",
            session_id=session.id,
            participants=list(participants),
            lead_agent_id=lead,
        )
        self._dispatcher.publish(
            create_collaboration_created_event(session.id, list(participants), lead, purpose),
            (self._observer, observer),
        )
        return Result.ok(session.copy())

    async def send_message(
        self,
        session_id: str,
        from_agent_id: str,
        to: str,
        content: str,
        message_type: MessageType = MessageType.REQUEST,
        *,
        observer: EventObserver | None = None,
    ) -> Result[CollaborationMessage, ConductorError]:
        """Append a message to the session log.

        The sender must be a participant; the recipient a participant or
        "all". A handoff to a specific agent notifies the context store.
        """
        async with self._locks.hold(self._key(session_id)):
            session = self._sessions.get(session_id)
            if session is None:
                return Result.err(UnknownCollaborationError(session_id))
            if not session.is_active:
                return Result.err(CollaborationClosedError(session_id, session.status.value))
            if from_agent_id not in session.participant_ids:
                return Result.err(
                    ValidationError(
                        "Sender is not a participant", field="from_agent_id", value=from_agent_id
                    )
                )
            if to != BROADCAST and to not in session.participant_ids:
                return Result.err(
                    ValidationError(
                        "Recipient is not a participant", field="to", value=to
                    )
                )

            message = CollaborationMessage(
                from_agent_id=from_agent_id,
                to=to,
                content=content,
                timestamp=self._clock(),
                type=message_type,
            )
            session.messages.append(message)

        log.debug(
            "collaboration.message.sent",
            session_id=session_id,
            from_agent_id=from_agent_id,
            to=to,
            message_type=message_type.value,
        )
        if message_type is MessageType.HANDOFF and to != BROADCAST:
            self._notify_handoff(session_id, message)

        self._dispatcher.publish(
            create_collaboration_message_event(session_id, message.to_dict()),
            (self._observer, observer),
        )
        return Result.ok(message)

    def _notify_handoff(self, session_id: str, message: CollaborationMessage) -> None:
        update = TaskContextUpdate(
            task_id=f"handoff:{session_id}:{message.to}",
            title=f"Handoff from {message.from_agent_id}: {message.content}",
            status=TaskContextStatus.IN_PROGRESS,
            started_at=message.timestamp,
        )
        store = self._context_store
        self._dispatcher.submit(
            "context_store.update_task_context",
            lambda: store.update_task_context(session_id, update),
            session_id=session_id,
        )
        log.info(
            "collaboration.handoff.sent",
            session_id=session_id,
            from_agent_id=message.from_agent_id,
            to=message.to,
        )

    async def complete_collaboration(
        self,
        session_id: str,
        status: CollaborationStatus = CollaborationStatus.COMPLETED,
        *,
        observer: EventObserver | None = None,
    ) -> Result[CollaborationSession, ConductorError]:
        """Close a session as completed or failed."""
        if status is CollaborationStatus.ACTIVE:
            return Result.err(
                ValidationError(
                    "A session can only be closed as completed or failed",
                    field="status",
                    value=status.value,
                )
            )
        async with self._locks.hold(self._key(session_id)):
            session = self._sessions.get(session_id)
            if session is None:
                return Result.err(UnknownCollaborationError(session_id))
            if not session.is_active:
                return Result.err(CollaborationClosedError(session_id, session.status.value))
            session.status = status
            session.completed_at = self._clock()
            snapshot = session.copy()

        log.info("collaboration.session.closed", session_id=session_id, status=status.value)
        self._dispatcher.publish(
            create_collaboration_closed_event(session_id, status.value),
            (self._observer, observer),
        )
        return Result.ok(snapshot)

    def get_collaboration(self, session_id: str) -> Result[CollaborationSession, ConductorError]:
        session = self._sessions.get(session_id)
        if session is None:
            return Result.err(UnknownCollaborationError(session_id))
        return Result.ok(session.copy())

    def list_collaborations(self, *, active_only: bool = False) -> list[CollaborationSession]:
        return [
            s.copy() for s in self._sessions.values() if s.is_active or not active_only
        ]


__all__ = [
    "BROADCAST",
    "CollaborationChannel",
    "CollaborationMessage",
    "CollaborationSession",
    "CollaborationStatus",
    "MessageType",
]
