"""Dependency gating for task status transitions."""

from __future__ import annotations

from typing import Iterable, Mapping

from .models import GateDecision, Status, TaskNode

GATED_STATUSES = frozenset({Status.IN_PROGRESS, Status.REVIEW, Status.COMPLETED})


def can_transition(
    target_status: Status | str, dependency_statuses: Iterable[Status | str]
) -> GateDecision:
    """Decide whether a task may move to ``target_status``.

    Moving to in_progress, review or completed needs every direct dependency
    completed. Moving to todo or blocked is never gated.
    """
    target = Status(target_status)
    if target not in GATED_STATUSES:
        return GateDecision(allowed=True, blocking_count=0, target_status=target)

    blocking = sum(1 for s in dependency_statuses if Status(s) != Status.COMPLETED)
    return GateDecision(allowed=blocking == 0, blocking_count=blocking, target_status=target)


def dependency_statuses(task: TaskNode, tasks_by_id: Mapping[str, TaskNode]) -> list[Status]:
    """Statuses of a task's direct dependencies; unknown ids are skipped."""
    statuses: list[Status] = []
    seen: set[str] = set()
    for dep in task.dependencies:
        if dep in seen or dep not in tasks_by_id:
            continue
        seen.add(dep)
        statuses.append(tasks_by_id[dep].status)
    return statuses
