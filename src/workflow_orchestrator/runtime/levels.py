"""Topological depth of plan tasks, used to lay out the workflow graph."""

from __future__ import annotations

from collections.abc import Sequence

from workflow_orchestrator.runtime.errors import CircularDependencyError
from workflow_orchestrator.runtime.schemas import TaskSpec


def compute_levels(tasks: Sequence[TaskSpec]) -> list[int]:
    """Return ``level[i]`` for every task, raising on any dependency cycle.

    A task without dependencies sits at level 0; otherwise its level is one
    more than the deepest of its dependencies. Indices that point outside the
    plan count as level 0 here; the scheduler reports them as a deadlock.
    """
    levels: dict[int, int] = {}

    def _level(index: int, visiting: set[int]) -> int:
        if index in visiting:
            raise CircularDependencyError(index)
        if index in levels:
            return levels[index]
        if not 0 <= index < len(tasks):
            return 0

        dependencies = tasks[index].dependencies
        if not dependencies:
            levels[index] = 0
            return 0

        visiting.add(index)
        level = 1 + max(_level(dep, visiting) for dep in dependencies)
        visiting.discard(index)
        levels[index] = level
        return level

    return [_level(index, set()) for index in range(len(tasks))]
