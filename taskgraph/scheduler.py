"""Board helpers: blocked tasks and picking the next task to start."""

from __future__ import annotations

from .gate import can_transition, dependency_statuses
from .graph import task_weight
from .models import Status, TaskNode


def count_downstream(task_id: str, tasks: list[TaskNode]) -> int:
    """Count how many tasks (recursively) depend on this task."""
    # Build adjacency: task_id → set of direct dependents
    dependents: dict[str, set[str]] = {}
    for t in tasks:
        dependents.setdefault(t.id, set())
        for dep in t.dependencies:
            dependents.setdefault(dep, set()).add(t.id)

    visited: set[str] = set()
    stack = list(dependents.get(task_id, set()))
    while stack:
        nid = stack.pop()
        if nid in visited:
            continue
        visited.add(nid)
        stack.extend(dependents.get(nid, set()))

    # A cycle through task_id would otherwise count the task itself
    visited.discard(task_id)
    return len(visited)


def blocked_tasks(tasks: list[TaskNode]) -> dict[str, int]:
    """Map of unfinished task id → number of incomplete direct dependencies."""
    by_id = {t.id: t for t in tasks}
    result: dict[str, int] = {}
    for t in tasks:
        if t.status == Status.COMPLETED:
            continue
        incomplete = sum(
            1 for s in dependency_statuses(t, by_id) if s != Status.COMPLETED
        )
        if incomplete:
            result[t.id] = incomplete
    return result


def pick_next(tasks: list[TaskNode]) -> TaskNode | None:
    """Select the next todo task that can start now.

    Order: unlock-count (desc) → estimated hours (desc) → input order.
    """
    by_id = {t.id: t for t in tasks}
    startable = [
        t for t in tasks
        if t.status == Status.TODO
        and can_transition(Status.IN_PROGRESS, dependency_statuses(t, by_id)).allowed
    ]
    if not startable:
        return None

    # sort() is stable, so input order breaks the remaining ties
    startable.sort(
        key=lambda t: (
            -count_downstream(t.id, tasks),
            -task_weight(t.estimated_hours),
        )
    )
    return startable[0]
