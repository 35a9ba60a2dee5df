"""Fire-and-forget dispatch of collaborator I/O.

State changes complete in memory first. Persistence, context-store updates
and event-log appends are then scheduled here so that a slow or failing
collaborator never delays or fails the operation that triggered it.

Failures are logged. Persistence writes are retried in the background with
stamina (exponential backoff with jitter) before being given up.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from functools import partial
from typing import TYPE_CHECKING, Any

import stamina

from conductor.core.errors import PersistenceError
from conductor.observability.logging import get_logger

if TYPE_CHECKING:
    from conductor.core.protocols import EventObserver
    from conductor.events.base import BaseEvent
    from conductor.persistence.event_store import EventStore

log = get_logger(__name__)

# Errors worth retrying: the store raised, or the connection went away.
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (PersistenceError, OSError, TimeoutError)


class BackgroundDispatcher:
    """Runs collaborator calls as detached asyncio tasks.

    The dispatcher holds a strong reference to every pending task until it
    finishes, so tasks are never garbage collected mid-flight.

    Args:
        retry_attempts: Attempts for retried calls (1 disables retrying).
        retry_wait_initial: First backoff delay in seconds.
        retry_wait_max: Upper bound on backoff delay in seconds.
        event_store: Optional event log every emitted event is appended to.
    """

    def __init__(
        self,
        *,
        retry_attempts: int = 3,
        retry_wait_initial: float = 0.1,
        retry_wait_max: float = 2.0,
        event_store: EventStore | None = None,
    ) -> None:
        self._retry_attempts = max(1, retry_attempts)
        self._retry_wait_initial = retry_wait_initial
        self._retry_wait_max = retry_wait_max
        self._event_store = event_store
        self._pending: set[asyncio.Task[Any]] = set()
        self._tails: dict[str, asyncio.Task[Any]] = {}
        self._failures = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def failure_count(self) -> int:
        """Number of background calls that ultimately failed."""
        return self._failures

    def submit(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]],
        *,
        retry: bool = False,
        key: str | None = None,
        **log_context: Any,
    ) -> asyncio.Task[Any]:
        """Schedule ``call`` without awaiting it.

        Calls sharing a ``key`` run one after another in submission order,
        retries included, so a retried snapshot never lands after a newer one.

        Args:
            operation: Name used in log entries (e.g. "state_store.save_workflow").
            call: Zero-argument factory returning the awaitable to run.
                A factory rather than a coroutine so retries get a fresh one.
            retry: Retry on RETRYABLE_ERRORS with exponential backoff.
            key: Ordering key, usually the aggregate the call writes.
            **log_context: Extra keys for failure log entries.
        """
        run = call
        if retry and self._retry_attempts > 1:
            run = partial(self._run_with_retry, call)

        previous = self._tails.get(key) if key is not None else None
        if previous is not None:
            coro = self._run_after(previous, run)
        else:
            coro = run()

        task: asyncio.Task[Any] = asyncio.ensure_future(coro)
        self._pending.add(task)
        if key is not None:
            self._tails[key] = task
        task.add_done_callback(lambda t: self._on_done(t, operation, key, log_context))
        return task

    @staticmethod
    async def _run_after(
        previous: asyncio.Task[Any], run: Callable[[], Awaitable[Any]]
    ) -> Any:
        # asyncio.wait never raises the awaited task's exception.
        await asyncio.wait([previous])
        return await run()

    async def _run_with_retry(self, call: Callable[[], Awaitable[Any]]) -> Any:
        @stamina.retry(
            on=RETRYABLE_ERRORS,
            attempts=self._retry_attempts,
            wait_initial=self._retry_wait_initial,
            wait_max=self._retry_wait_max,
            wait_jitter=0.5,
        )
        async def _attempt() -> Any:
            return await call()

        return await _attempt()

    def _on_done(
        self,
        task: asyncio.Task[Any],
        operation: str,
        key: str | None,
        log_context: dict[str, Any],
    ) -> None:
        self._pending.discard(task)
        if key is not None and self._tails.get(key) is task:
            del self._tails[key]
        if task.cancelled():
            log.debug("background.call.cancelled", operation=operation, **log_context)
            return
        error = task.exception()
        if error is not None:
            self._failures += 1
            log.warning(
                "background.call.failed",
                operation=operation,
                error=str(error),
                error_type=type(error).__name__,
                **log_context,
            )

    def publish(self, event: BaseEvent, observers: Iterable[EventObserver | None]) -> None:
        """Hand an event to observers synchronously, then log it in the background.

        Observer exceptions are logged and never propagate to the caller.
        """
        for observer in observers:
            if observer is None:
                continue
            try:
                observer(event)
            except Exception as e:
                log.warning(
                    "background.observer.failed",
                    event_type=event.type,
                    aggregate_id=event.aggregate_id,
                    error=str(e),
                )

        store = self._event_store
        if store is not None:
            self.submit(
                "event_store.append",
                lambda: store.append(event),
                retry=True,
                key=f"events:{event.aggregate_type}:{event.aggregate_id}",
                event_type=event.type,
            )

    async def drain(self) -> None:
        """Wait until every scheduled call, including ones scheduled meanwhile, has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["RETRYABLE_ERRORS", "BackgroundDispatcher"]
