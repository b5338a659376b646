"""Critical path (longest path in a DAG) and precedence-only CPM schedule."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from .cycles import detect_cycle
from .graph import Graph, build_graph
from .models import CriticalPathReport, PathStep, ScheduleEntry, TaskNode

logger = logging.getLogger(__name__)

_EPS = 1e-9


def topological_order(graph: Graph) -> list[str] | None:
    """Kahn's algorithm, seeded in input order. ``None`` when a cycle remains."""
    indeg = {u: len(graph.predecessors.get(u, [])) for u in graph.nodes}
    q = deque(u for u in graph.nodes if indeg[u] == 0)
    order: list[str] = []
    while q:
        u = q.popleft()
        order.append(u)
        for v in graph.successors.get(u, []):
            indeg[v] -= 1
            if indeg[v] == 0:
                q.append(v)
    if len(order) != len(graph.nodes):
        return None
    return order


def analyze_critical_path(graph: Graph) -> CriticalPathReport:
    """Compute the longest-duration dependency chain.

    Ties between predecessors go to the first dependency in the task's own
    dependency list; ties between end nodes go to the first task in input
    order. A graph that cannot be fully ordered yields the cycle sentinel.
    """
    order = topological_order(graph)
    if order is None:
        logger.debug("Topological sort incomplete; reporting cycle")
        return CriticalPathReport(has_cycle=True)
    if not order:
        return CriticalPathReport(has_cycle=False)

    dist: dict[str, float] = {}
    parent: dict[str, str | None] = {}
    for u in order:
        best: str | None = None
        for d in graph.predecessors.get(u, []):
            if best is None or dist[d] > dist[best]:
                best = d
        parent[u] = best
        dist[u] = graph.weights[u] + (dist[best] if best is not None else 0.0)

    end = graph.nodes[0]
    for u in graph.nodes[1:]:
        if dist[u] > dist[end]:
            end = u

    ids: list[str] = []
    cur: str | None = end
    while cur is not None:
        ids.append(cur)
        cur = parent[cur]
    ids.reverse()

    path = [
        PathStep(
            id=u,
            title=graph.titles.get(u, ""),
            estimated_hours=graph.weights[u],
            status=graph.statuses[u],
        )
        for u in ids
    ]
    return CriticalPathReport(has_cycle=False, path=path, total_hours=dist[end])


def analyze_tasks(tasks: Iterable[TaskNode]) -> CriticalPathReport:
    """Build the graph, reject cycles, then compute the critical path."""
    graph = build_graph(tasks)
    cycle = detect_cycle(graph)
    if cycle.has_cycle:
        return CriticalPathReport(has_cycle=True, cycle_nodes=cycle.cycle_nodes)
    return analyze_critical_path(graph)


def compute_schedule(graph: Graph) -> list[ScheduleEntry] | None:
    """Forward/backward pass giving ES/EF/LS/LF and slack per task.

    Returns ``None`` for a cyclic graph. Entries come in topological order.
    """
    order = topological_order(graph)
    if order is None:
        return None

    dur = graph.weights
    es: dict[str, float] = {u: 0.0 for u in order}
    ef: dict[str, float] = {}
    for u in order:
        preds = graph.predecessors.get(u, [])
        if preds:
            es[u] = max(ef[p] for p in preds)
        ef[u] = es[u] + dur[u]
    makespan = max(ef.values(), default=0.0)

    lf: dict[str, float] = {u: makespan for u in order}
    ls: dict[str, float] = {}
    for u in reversed(order):
        succ = graph.successors.get(u, [])
        if succ:
            lf[u] = min(ls[v] for v in succ)
        ls[u] = lf[u] - dur[u]

    entries = []
    for u in order:
        slack = max(0.0, ls[u] - es[u])
        entries.append(
            ScheduleEntry(
                id=u,
                duration=dur[u],
                es=es[u],
                ef=ef[u],
                ls=ls[u],
                lf=lf[u],
                slack=slack,
                is_critical=slack < _EPS,
            )
        )
    return entries
