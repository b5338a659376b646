"""Task and project operations over the store: the host side of the engine."""

from __future__ import annotations

import logging

from .critical_path import analyze_tasks, compute_schedule
from .cycles import would_create_cycle
from .db import Database
from .gate import can_transition, dependency_statuses
from .graph import build_graph
from .models import CriticalPathReport, GateDecision, Project, ScheduleEntry, Status, TaskNode
from .notifier import Notifier

logger = logging.getLogger(__name__)


class TaskGraphError(Exception):
    """Base class for task update failures surfaced to the caller."""


class TaskNotFoundError(TaskGraphError):
    def __init__(self, project_id: str, task_id: str):
        self.project_id = project_id
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' not found in project '{project_id}'")


class TransitionRejectedError(TaskGraphError):
    def __init__(self, task_id: str, decision: GateDecision):
        self.task_id = task_id
        self.decision = decision
        super().__init__(decision.message())


class ConcurrentUpdateError(TaskGraphError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' was modified concurrently; reload and retry")


class UnknownDependencyError(TaskGraphError):
    def __init__(self, task_id: str, missing: list[str]):
        self.task_id = task_id
        self.missing = missing
        super().__init__(
            f"Task '{task_id}' cannot depend on unknown tasks: {', '.join(missing)}"
        )


class DependencyCycleError(TaskGraphError):
    def __init__(self, task_id: str, cycle_nodes: list[str]):
        self.task_id = task_id
        self.cycle_nodes = cycle_nodes
        super().__init__("Circular dependency detected: " + " -> ".join(cycle_nodes))


# ---------------------------------------------------------------
# Project analysis
# ---------------------------------------------------------------

async def sync_projects(db: Database, projects: list[Project]) -> int:
    """Import scanned projects into the store. Returns the task count.

    Task definitions follow the files; statuses already in the store are
    kept. Stored tasks that a project file no longer lists are removed.
    """
    count = 0
    for project in projects:
        await db.upsert_project(project)
        for task in project.tasks:
            task.project_id = project.id
            await db.upsert_task(task)
            count += 1

        listed = {t.id for t in project.tasks}
        for stored in await db.list_project_tasks(project.id):
            if stored.id not in listed:
                await db.delete_task(project.id, stored.id)
                await db.log_event(project.id, stored.id, "removed")
                logger.info("Removed task %s/%s (no longer in project file)", project.id, stored.id)

        logger.info("Synced project %s (%d tasks)", project.id, len(project.tasks))
    return count


async def project_critical_path(
    db: Database, project_id: str, notifier: Notifier | None = None
) -> CriticalPathReport:
    tasks = await db.list_project_tasks(project_id)
    report = analyze_tasks(tasks)
    if report.has_cycle:
        logger.warning("Dependency cycle in project %s: %s", project_id, report.cycle_nodes)
        if notifier:
            await notifier.notify(
                "cycle.detected",
                f"Dependency cycle detected in project {project_id}",
                project_id=project_id,
                cycle=report.cycle_nodes,
            )
    return report


async def project_schedule(db: Database, project_id: str) -> list[ScheduleEntry] | None:
    tasks = await db.list_project_tasks(project_id)
    return compute_schedule(build_graph(tasks))


# ---------------------------------------------------------------
# Task updates
# ---------------------------------------------------------------

async def _load_task(db: Database, project_id: str, task_id: str) -> TaskNode:
    task = await db.get_task(project_id, task_id)
    if task is None:
        raise TaskNotFoundError(project_id, task_id)
    return task


async def transition_task(
    db: Database,
    project_id: str,
    task_id: str,
    target_status: Status | str,
    notifier: Notifier | None = None,
) -> TaskNode:
    """Move a task to a new status, enforcing the dependency gate.

    The write is conditional on the status read here, so a concurrent
    update between the gate check and the write is reported, not lost.
    """
    target = Status(target_status)
    task = await _load_task(db, project_id, task_id)
    siblings = await db.list_project_tasks(project_id)
    by_id = {t.id: t for t in siblings}

    decision = can_transition(target, dependency_statuses(task, by_id))
    if not decision.allowed:
        logger.info("Rejected %s -> %s: %s", task_id, target.value, decision.message())
        await db.log_event(project_id, task_id, "transition_rejected", {
            "from": task.status.value,
            "to": target.value,
            "blocking_count": decision.blocking_count,
        })
        if notifier:
            await notifier.notify(
                "transition.rejected",
                f"{task.title or task_id}: {decision.message()}",
                project_id=project_id,
                task_id=task_id,
                blocking_count=decision.blocking_count,
            )
        raise TransitionRejectedError(task_id, decision)

    if task.status == target:
        return task

    if not await db.update_status_if(project_id, task_id, task.status, target):
        raise ConcurrentUpdateError(task_id)

    await db.log_event(project_id, task_id, "transition", {"from": task.status.value, "to": target.value})
    logger.info("Task %s/%s: %s -> %s", project_id, task_id, task.status.value, target.value)

    updated = await _load_task(db, project_id, task_id)
    if target == Status.COMPLETED and notifier:
        await notifier.notify(
            "task.completed",
            f"Task completed: {updated.title or task_id}",
            task_id=task_id,
            project_id=project_id,
        )
    return updated


async def set_dependencies(
    db: Database,
    project_id: str,
    task_id: str,
    dependencies: list[str],
    notifier: Notifier | None = None,
) -> TaskNode:
    """Replace a task's dependency list, refusing unknown ids and cycles."""
    await _load_task(db, project_id, task_id)
    siblings = await db.list_project_tasks(project_id)
    known = {t.id for t in siblings}

    deps = list(dict.fromkeys(dependencies))
    missing = [d for d in deps if d not in known]
    if missing:
        raise UnknownDependencyError(task_id, missing)

    cycle = would_create_cycle(siblings, task_id, deps)
    if cycle.has_cycle:
        await db.log_event(project_id, task_id, "dependencies_rejected", {
            "dependencies": deps,
            "cycle": cycle.cycle_nodes,
        })
        if notifier:
            await notifier.notify(
                "cycle.detected",
                f"Rejected dependency change on {task_id}: circular dependency",
                project_id=project_id,
                task_id=task_id,
                cycle=cycle.cycle_nodes,
            )
        raise DependencyCycleError(task_id, cycle.cycle_nodes)

    await db.update_dependencies(project_id, task_id, deps)
    await db.log_event(project_id, task_id, "dependencies", {"dependencies": deps})
    logger.info("Task %s/%s now depends on %s", project_id, task_id, deps)
    return await _load_task(db, project_id, task_id)
