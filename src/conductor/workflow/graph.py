"""Step dependency graph.

Dependencies are references to other steps by name, falling back to id.
Workflows are validated once at creation: step names must be unique, every
reference must resolve, and the graph must be acyclic. After that the helpers
below answer readiness and reachability questions for the engine.

Example:
    result = validate_steps(steps)
    if result.is_ok:
        levels = StepGraph(steps).execution_levels()
        # ((0,), (1, 2), (3,)): step 0 first, then 1 and 2 in parallel, then 3
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from conductor.core.errors import WorkflowValidationError
from conductor.core.types import Result
from conductor.workflow.models import StepStatus, WorkflowStep


def resolve(steps: Sequence[WorkflowStep], reference: str) -> WorkflowStep | None:
    """Find the step a dependency reference points to: by name, then by id."""
    for step in steps:
        if step.name == reference:
            return step
    for step in steps:
        if step.id == reference:
            return step
    return None


def pending_dependencies(steps: Sequence[WorkflowStep], step: WorkflowStep) -> list[str]:
    """References of ``step`` whose target is missing or not completed."""
    pending = []
    for reference in step.dependencies:
        target = resolve(steps, reference)
        if target is None or target.status is not StepStatus.COMPLETED:
            pending.append(reference)
    return pending


def dependencies_met(steps: Sequence[WorkflowStep], step: WorkflowStep) -> bool:
    return not pending_dependencies(steps, step)


class StepGraph:
    """Index-based view of a workflow's steps and their dependency edges.

    Unresolvable references are ignored here; validate_steps rejects them
    before a workflow is ever stored.
    """

    def __init__(self, steps: Sequence[WorkflowStep]) -> None:
        self._steps = list(steps)
        positions = {id(step): i for i, step in enumerate(self._steps)}
        self._depends_on: list[tuple[int, ...]] = []
        self._dependents: list[list[int]] = [[] for _ in self._steps]
        for index, step in enumerate(self._steps):
            edges = []
            for reference in step.dependencies:
                target = resolve(self._steps, reference)
                if target is None:
                    continue
                target_index = positions[id(target)]
                edges.append(target_index)
                self._dependents[target_index].append(index)
            self._depends_on.append(tuple(dict.fromkeys(edges)))

    def execution_levels(self) -> tuple[tuple[int, ...], ...]:
        """Group step indices into levels that can run in parallel (Kahn's algorithm).

        Returns:
            Levels in execution order, or an empty tuple when the graph has a
            cycle.
        """
        in_degree = [len(edges) for edges in self._depends_on]
        remaining = set(range(len(self._steps)))
        levels: list[tuple[int, ...]] = []

        while remaining:
            ready = tuple(sorted(i for i in remaining if in_degree[i] == 0))
            if not ready:
                return ()
            levels.append(ready)
            for index in ready:
                remaining.discard(index)
                for dependent in self._dependents[index]:
                    in_degree[dependent] -= 1

        return tuple(levels)

    def cycle(self) -> list[str]:
        """Names of the steps on one dependency cycle, or [] when acyclic."""
        white, grey, black = 0, 1, 2
        color = [white] * len(self._steps)
        path: list[int] = []

        def visit(index: int) -> list[int]:
            color[index] = grey
            path.append(index)
            for target in self._depends_on[index]:
                if color[target] == grey:
                    return path[path.index(target) :]
                if color[target] == white:
                    found = visit(target)
                    if found:
                        return found
            path.pop()
            color[index] = black
            return []

        for start in range(len(self._steps)):
            if color[start] == white:
                found = visit(start)
                if found:
                    return [self._steps[i].name for i in found]
        return []

    def ancestors(self, index: int) -> set[int]:
        """Every step ``index`` transitively depends on."""
        seen: set[int] = set()
        stack = list(self._depends_on[index])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._depends_on[current])
        return seen

    def dependents_of(self, index: int) -> list[WorkflowStep]:
        """Steps that directly depend on the step at ``index``."""
        return [self._steps[i] for i in self._dependents[index]]

    def has_alternate_path(self) -> bool:
        """True while some unfinished step does not depend on a failed step.

        Unfinished means pending, ready or running. A workflow with no failed
        step always has a path as long as anything is unfinished.
        """
        failed = {i for i, s in enumerate(self._steps) if s.status is StepStatus.FAILED}
        for index, step in enumerate(self._steps):
            if step.status.is_done or step.status is StepStatus.FAILED:
                continue
            if not (self.ancestors(index) & failed):
                return True
        return False


def validate_steps(steps: Sequence[WorkflowStep]) -> Result[None, WorkflowValidationError]:
    """Reject duplicate names, dangling references and dependency cycles."""
    duplicates = sorted(name for name, count in Counter(s.name for s in steps).items() if count > 1)
    if duplicates:
        return Result.err(
            WorkflowValidationError(
                f"Step names must be unique: {', '.join(duplicates)}",
                field="steps",
                value=duplicates,
            )
        )

    for step in steps:
        if not step.name:
            return Result.err(
                WorkflowValidationError("Every step needs a name", field="name", value=step.id)
            )
        missing = [ref for ref in step.dependencies if resolve(steps, ref) is None]
        if missing:
            return Result.err(
                WorkflowValidationError(
                    f"Step {step.name!r} depends on unknown steps: {', '.join(missing)}",
                    field="dependencies",
                    value=missing,
                )
            )

    cycle = StepGraph(steps).cycle()
    if cycle:
        return Result.err(
            WorkflowValidationError(
                f"Dependency cycle: {' -> '.join([*cycle, cycle[0]])}",
                field="dependencies",
                value=cycle,
            )
        )
    return Result.ok(None)


__all__ = [
    "StepGraph",
    "dependencies_met",
    "pending_dependencies",
    "resolve",
    "validate_steps",
]
