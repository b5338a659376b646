"""Core data models for taskgraph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Status(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    BLOCKED = "blocked"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


@dataclass
class TaskNode:
    """A single task within a project."""

    id: str
    title: str = ""
    estimated_hours: float | None = None
    status: Status = Status.TODO
    dependencies: list[str] = field(default_factory=list)

    # Host fields, not read by the graph engine
    project_id: str = ""
    completed_at: str = ""
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Project:
    """A project and its tasks as loaded from a project file."""

    id: str
    title: str
    source: str = ""
    tasks: list[TaskNode] = field(default_factory=list)


@dataclass
class PathStep:
    """One task on the critical path."""

    id: str
    title: str
    estimated_hours: float
    status: Status

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "estimatedHours": self.estimated_hours,
            "status": self.status.value,
        }


@dataclass
class CycleReport:
    has_cycle: bool
    cycle_nodes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict = {"hasCycle": self.has_cycle}
        if self.has_cycle:
            data["cycleNodes"] = list(self.cycle_nodes)
        return data


@dataclass
class CriticalPathReport:
    """Longest-duration chain through a project's dependency graph.

    When ``has_cycle`` is set, ``path`` is empty and ``total_hours`` is 0;
    ``cycle_nodes`` lists the members of the detected cycle when known.
    """

    has_cycle: bool
    path: list[PathStep] = field(default_factory=list)
    total_hours: float = 0.0
    cycle_nodes: list[str] = field(default_factory=list)

    @property
    def path_ids(self) -> list[str]:
        return [step.id for step in self.path]

    @property
    def completed_count(self) -> int:
        return sum(1 for step in self.path if step.status == Status.COMPLETED)

    @property
    def progress_percent(self) -> int:
        if not self.path:
            return 0
        return round(self.completed_count * 100 / len(self.path))

    def total_days(self, hours_per_day: float = 8.0) -> float:
        if hours_per_day <= 0:
            return 0.0
        return self.total_hours / hours_per_day

    def to_dict(self) -> dict:
        if self.has_cycle:
            data: dict = {"hasCycle": True, "message": "Dependency cycle detected"}
            if self.cycle_nodes:
                data["cycleNodes"] = list(self.cycle_nodes)
            return data
        return {
            "hasCycle": False,
            "totalHours": self.total_hours,
            "path": [step.to_dict() for step in self.path],
        }


@dataclass
class GateDecision:
    """Outcome of a dependency-gated status transition check."""

    allowed: bool
    blocking_count: int = 0
    target_status: Status | None = None

    def message(self) -> str:
        if self.allowed:
            return "Transition allowed"
        target = self.target_status.label if self.target_status else "that status"
        noun = "dependency" if self.blocking_count == 1 else "dependencies"
        return f"Cannot move to {target}: {self.blocking_count} incomplete {noun}"

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "blockingCount": self.blocking_count}


@dataclass
class ScheduleEntry:
    """Precedence-only CPM timings for one task, in hours from project start."""

    id: str
    duration: float
    es: float
    ef: float
    ls: float
    lf: float
    slack: float
    is_critical: bool
