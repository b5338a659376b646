"""Cycle detection over a task dependency graph."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .graph import Graph, build_graph
from .models import CycleReport, TaskNode

_WHITE, _GRAY, _BLACK = 0, 1, 2


def detect_cycle(graph: Graph) -> CycleReport:
    """White/gray/black DFS over every node, roots taken in input order.

    Iterative so that long dependency chains cannot hit the recursion limit.
    Reports the members of the first cycle found, in traversal order.
    """
    color = {u: _WHITE for u in graph.nodes}

    for root in graph.nodes:
        if color[root] != _WHITE:
            continue
        color[root] = _GRAY
        path = [root]
        stack = [iter(graph.successors.get(root, []))]
        while stack:
            advanced = False
            for nxt in stack[-1]:
                state = color.get(nxt)
                if state == _GRAY:
                    return CycleReport(has_cycle=True, cycle_nodes=path[path.index(nxt):])
                if state == _WHITE:
                    color[nxt] = _GRAY
                    path.append(nxt)
                    stack.append(iter(graph.successors.get(nxt, [])))
                    advanced = True
                    break
            if not advanced:
                color[path.pop()] = _BLACK
                stack.pop()

    return CycleReport(has_cycle=False)


def would_create_cycle(
    tasks: Iterable[TaskNode], task_id: str, dependencies: list[str]
) -> CycleReport:
    """Check whether replacing one task's dependencies would close a cycle.

    Only cycles through ``task_id`` count; a cycle elsewhere in the project
    does not block the edit. The supplied tasks are not modified.
    """
    proposed = [
        replace(t, dependencies=list(dependencies)) if t.id == task_id else t
        for t in tasks
    ]
    graph = build_graph(proposed)
    if task_id not in graph:
        return CycleReport(has_cycle=False)

    # Any new cycle must lead from task_id back to itself
    parent: dict[str, str] = {}
    stack = [task_id]
    while stack:
        u = stack.pop()
        for v in graph.successors.get(u, []):
            if v == task_id:
                cycle = [u]
                while cycle[-1] != task_id:
                    cycle.append(parent[cycle[-1]])
                cycle.reverse()
                return CycleReport(has_cycle=True, cycle_nodes=cycle)
            if v not in parent:
                parent[v] = u
                stack.append(v)
    return CycleReport(has_cycle=False)
