"""Core types for Conductor - Result type and shared aliases.

Every engine and orchestrator operation returns a Result instead of raising
for expected failures (unknown ids, invalid transitions, no agent available).
Exceptions are kept for programming errors.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, cast


@dataclass(frozen=True, slots=True)
class Result[T, E]:
    """Either a success value (Ok) or an expected failure (Err).

    Usage:
        result = await engine.transition(workflow_id, Trigger.START)
        if result.is_err:
            log.warning("workflow.start.rejected", error=str(result.error))
            return
        workflow = result.value

        # Chaining
        state = result.map(lambda wf: wf.state).unwrap_or(WorkflowState.DRAFT)
    """

    _value: T | None
    _error: E | None
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> Result[T, E]:
        """Wrap a success value."""
        return cls(_value=value, _error=None, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> Result[T, E]:
        """Wrap an expected failure."""
        return cls(_value=None, _error=error, _is_ok=False)

    @property
    def is_ok(self) -> bool:
        """True when the Result holds a value."""
        return self._is_ok

    @property
    def is_err(self) -> bool:
        """True when the Result holds an error."""
        return not self._is_ok

    def __repr__(self) -> str:
        if self._is_ok:
            return f"Ok({self._value!r})"
        return f"Err({self._error!r})"

    @property
    def value(self) -> T:
        """Return the Ok value.

        Raises:
            ValueError: If accessed on an Err result.
        """
        if not self._is_ok:
            msg = "Cannot access value on Err result"
            raise ValueError(msg)
        return cast(T, self._value)

    @property
    def error(self) -> E:
        """Return the Err value.

        Raises:
            ValueError: If accessed on an Ok result.
        """
        if self._is_ok:
            msg = "Cannot access error on Ok result"
            raise ValueError(msg)
        return cast(E, self._error)

    def unwrap(self) -> T:
        """Return the Ok value or raise ValueError carrying the error text."""
        if self._is_ok:
            return cast(T, self._value)
        raise ValueError(str(self._error))

    def unwrap_or(self, default: T) -> T:
        """Return the Ok value, or ``default`` for an Err."""
        if self._is_ok:
            return cast(T, self._value)
        return default

    def map[U](self, fn: Callable[[T], U]) -> Result[U, E]:
        """Apply ``fn`` to an Ok value; pass an Err through unchanged."""
        if self._is_ok:
            return Result.ok(fn(cast(T, self._value)))
        return Result.err(cast(E, self._error))

    def map_err[F](self, fn: Callable[[E], F]) -> Result[T, F]:
        """Apply ``fn`` to an Err value; pass an Ok through unchanged."""
        if self._is_ok:
            return Result.ok(cast(T, self._value))
        return Result.err(fn(cast(E, self._error)))

    def and_then[U](self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        """Chain a Result-producing operation onto an Ok value.

        Example:
            result = engine.get_workflow(wf_id).and_then(check_not_terminal)
        """
        if self._is_ok:
            return fn(cast(T, self._value))
        return Result.err(cast(E, self._error))


Payload = dict[str, Any]
"""JSON-serializable mapping used for step inputs/outputs and event data."""

Clock = Callable[[], datetime]
"""Zero-argument callable returning the current UTC time."""


def utc_now() -> datetime:
    """Default clock for engine and orchestrator timestamps."""
    return datetime.now(UTC)


class Priority(StrEnum):
    """Urgency of a workflow, step or task assignment."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def sort_order(self) -> int:
        """Numeric sort order (lower = more urgent)."""
        orders = {Priority.CRITICAL: 0, Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}
        return orders[self]


class LoadBalancingStrategy(StrEnum):
    """How the orchestrator picks among eligible agents."""

    ROUND_ROBIN = "round_robin"
    LEAST_LOADED = "least_loaded"
    CAPABILITY_BASED = "capability_based"
    PERFORMANCE_BASED = "performance_based"
    HYBRID = "hybrid"


class SuccessRateMode(StrEnum):
    """How an agent's success rate is updated after a task outcome.

    COUNTED derives the rate from completed and failed counters once the
    agent has a recorded outcome. DILUTION scales the rate by
    completed / (completed + 1) on every failure.
    """

    COUNTED = "counted"
    DILUTION = "dilution"


__all__ = [
    "Clock",
    "LoadBalancingStrategy",
    "Payload",
    "Priority",
    "Result",
    "SuccessRateMode",
    "utc_now",
]
