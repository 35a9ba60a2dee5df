"""Load-balancing strategies for agent selection.

Each strategy is a small class with one ``select`` method. Strategies never
filter for eligibility: the orchestrator passes only available agents below
full load, in registration order, and ties go to the earliest candidate.

Strategies:
    round_robin: rotate the shared queue until an eligible id comes up
    least_loaded: lowest current load
    capability_based: sum of matched proficiencies, scaled by free capacity
    performance_based: success history plus speed, scaled by free capacity
    hybrid: capability and performance winners, lower load breaks a split
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from typing import Protocol

from conductor.agents.capability import CapabilityRequirement, matched_capabilities
from conductor.agents.models import Agent
from conductor.core.types import LoadBalancingStrategy


class SelectionStrategy(Protocol):
    """Picks one agent among non-empty, eligible candidates."""

    kind: LoadBalancingStrategy

    def select(
        self, candidates: Sequence[Agent], requirements: Sequence[CapabilityRequirement]
    ) -> Agent: ...


def _free_capacity(agent: Agent) -> float:
    return 1 - agent.current_load / 100


def _argmax(candidates: Sequence[Agent], scores: list[float]) -> Agent:
    best = 0
    for index, score in enumerate(scores):
        if score > scores[best]:
            best = index
    return candidates[best]


def capability_score(agent: Agent, requirements: Sequence[CapabilityRequirement]) -> float:
    """Sum of proficiencies of the first capability matching each requirement."""
    total = sum(c.proficiency for c in matched_capabilities(agent.capabilities, requirements))
    return total * _free_capacity(agent)


def performance_score(agent: Agent, requirements: Sequence[CapabilityRequirement]) -> float:
    """Success rate, specialist bonus and speed bonus, scaled by free capacity."""
    performance = agent.performance
    score = performance.success_rate_percent
    for requirement in requirements:
        if requirement.skill and requirement.skill in performance.per_skill_success_rate:
            score += performance.per_skill_success_rate[requirement.skill] / 10
    score += (100 - performance.average_completion_time_minutes) / 10
    return score * _free_capacity(agent)


class RoundRobinStrategy:
    kind = LoadBalancingStrategy.ROUND_ROBIN

    def __init__(self, queue: deque[str]) -> None:
        self._queue = queue

    def select(
        self, candidates: Sequence[Agent], requirements: Sequence[CapabilityRequirement]
    ) -> Agent:
        by_id = {agent.id: agent for agent in candidates}
        # One full turn of the queue at most; every rotation moves the head to the back.
        for _ in range(len(self._queue)):
            agent_id = self._queue.popleft()
            self._queue.append(agent_id)
            if agent_id in by_id:
                return by_id[agent_id]
        return candidates[0]


class LeastLoadedStrategy:
    kind = LoadBalancingStrategy.LEAST_LOADED

    def select(
        self, candidates: Sequence[Agent], requirements: Sequence[CapabilityRequirement]
    ) -> Agent:
        return least_loaded(candidates)


def least_loaded(candidates: Sequence[Agent]) -> Agent:
    """Lowest current load; the earliest candidate wins a tie."""
    best = candidates[0]
    for agent in candidates[1:]:
        if agent.current_load < best.current_load:
            best = agent
    return best


class CapabilityBasedStrategy:
    kind = LoadBalancingStrategy.CAPABILITY_BASED

    def select(
        self, candidates: Sequence[Agent], requirements: Sequence[CapabilityRequirement]
    ) -> Agent:
        if not requirements:
            return least_loaded(candidates)
        return _argmax(candidates, [capability_score(a, requirements) for a in candidates])


class PerformanceBasedStrategy:
    kind = LoadBalancingStrategy.PERFORMANCE_BASED

    def select(
        self, candidates: Sequence[Agent], requirements: Sequence[CapabilityRequirement]
    ) -> Agent:
        return _argmax(candidates, [performance_score(a, requirements) for a in candidates])


class HybridStrategy:
    kind = LoadBalancingStrategy.HYBRID

    def __init__(self) -> None:
        self._capability = CapabilityBasedStrategy()
        self._performance = PerformanceBasedStrategy()

    def select(
        self, candidates: Sequence[Agent], requirements: Sequence[CapabilityRequirement]
    ) -> Agent:
        by_capability = self._capability.select(candidates, requirements)
        by_performance = self._performance.select(candidates, requirements)
        if by_capability.id == by_performance.id:
            return by_capability
        if by_capability.current_load < by_performance.current_load:
            return by_capability
        return by_performance


def create_strategy(kind: LoadBalancingStrategy, queue: deque[str]) -> SelectionStrategy:
    """Build the strategy for ``kind``.

    Args:
        kind: Which strategy to build.
        queue: Round-robin queue owned by the agent registry.
    """
    match kind:
        case LoadBalancingStrategy.ROUND_ROBIN:
            return RoundRobinStrategy(queue)
        case LoadBalancingStrategy.LEAST_LOADED:
            return LeastLoadedStrategy()
        case LoadBalancingStrategy.CAPABILITY_BASED:
            return CapabilityBasedStrategy()
        case LoadBalancingStrategy.PERFORMANCE_BASED:
            return PerformanceBasedStrategy()
        case LoadBalancingStrategy.HYBRID:
            return HybridStrategy()


__all__ = [
    "CapabilityBasedStrategy",
    "HybridStrategy",
    "LeastLoadedStrategy",
    "LoadBalancingStrategy",
    "PerformanceBasedStrategy",
    "RoundRobinStrategy",
    "SelectionStrategy",
    "capability_score",
    "create_strategy",
    "least_loaded",
    "performance_score",
]
