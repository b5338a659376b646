"""Dependency graph construction for a project's tasks."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from .models import Status, TaskNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Graph:
    """Adjacency view of a task set.

    Edges run dependency -> dependent in ``successors``; ``predecessors``
    holds each task's resolved direct dependencies in its own list order.
    """

    nodes: list[str] = field(default_factory=list)
    weights: dict[str, float] = field(default_factory=dict)
    titles: dict[str, str] = field(default_factory=dict)
    statuses: dict[str, Status] = field(default_factory=dict)
    successors: dict[str, list[str]] = field(default_factory=dict)
    predecessors: dict[str, list[str]] = field(default_factory=dict)
    dangling: dict[str, list[str]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.weights


def task_weight(hours) -> float:
    """Normalize an estimate to a non-negative float; missing or bad → 0."""
    if isinstance(hours, bool) or not isinstance(hours, (int, float)):
        return 0.0
    if math.isnan(hours) or hours < 0:
        return 0.0
    return float(hours)


def build_graph(tasks: Iterable[TaskNode]) -> Graph:
    """Build the dependency graph for one project's tasks.

    Dependency ids that do not resolve to a supplied task are left out of the
    edge lists and recorded in ``Graph.dangling``.
    """
    tasks = list(tasks)
    nodes = [t.id for t in tasks]
    known = set(nodes)

    weights = {t.id: task_weight(t.estimated_hours) for t in tasks}
    titles = {t.id: t.title for t in tasks}
    statuses = {t.id: t.status for t in tasks}
    succ: dict[str, list[str]] = {u: [] for u in nodes}
    preds: dict[str, list[str]] = {u: [] for u in nodes}
    dangling: dict[str, list[str]] = {}

    for t in tasks:
        seen: set[str] = set()
        for dep in t.dependencies or []:
            if dep in seen:
                continue
            seen.add(dep)
            if dep not in known:
                dangling.setdefault(t.id, []).append(dep)
                continue
            succ[dep].append(t.id)
            preds[t.id].append(dep)

    if dangling:
        logger.debug("Skipping unresolved dependencies: %s", dangling)

    return Graph(
        nodes=nodes,
        weights=weights,
        titles=titles,
        statuses=statuses,
        successors=succ,
        predecessors=preds,
        dangling=dangling,
    )
