"""Scan the projects/ directory → Project list."""

from __future__ import annotations

from pathlib import Path

import yaml

from .config import Config
from .models import Project, Status, TaskNode

_SUFFIXES = (".yaml", ".yml")
_ALLOWED_STATUSES = [s.value for s in Status]


class ProjectLoadError(Exception):
    """Raised when a project file cannot be parsed into tasks."""

    def __init__(self, message: str, file: str | None = None, path: str | None = None):
        self.message = message
        self.file = file
        self.path = path
        super().__init__(str(self))

    def __str__(self) -> str:
        loc = ":".join(p for p in (self.file, self.path) if p) or "<project>"
        return f"{loc}: {self.message}"


# -------------------------------------------------------------------
# Task parsing
# -------------------------------------------------------------------

def _parse_task(raw, index: int, file: str) -> TaskNode:
    node_path = f"tasks[{index}]"
    if not isinstance(raw, dict):
        raise ProjectLoadError("task must be a mapping", file, node_path)

    tid = raw.get("id")
    if isinstance(tid, int) and not isinstance(tid, bool):
        tid = str(tid)
    if not isinstance(tid, str) or not tid.strip():
        raise ProjectLoadError("id is required and must be a non-empty string", file, f"{node_path}.id")

    title = raw.get("title", tid)
    if not isinstance(title, str):
        raise ProjectLoadError("title must be a string", file, f"{node_path}.title")

    hours = raw.get("estimated_hours")
    if hours is not None and (isinstance(hours, bool) or not isinstance(hours, (int, float))):
        raise ProjectLoadError("estimated_hours must be a number", file, f"{node_path}.estimated_hours")

    raw_status = raw.get("status", Status.TODO.value)
    try:
        status = Status(raw_status)
    except ValueError:
        raise ProjectLoadError(
            f"status must be one of {_ALLOWED_STATUSES}, got {raw_status!r}",
            file,
            f"{node_path}.status",
        ) from None

    deps = raw.get("depends_on", [])
    if deps is None:
        deps = []
    if not isinstance(deps, list) or not all(isinstance(d, (str, int)) for d in deps):
        raise ProjectLoadError("depends_on must be a list of task ids", file, f"{node_path}.depends_on")

    return TaskNode(
        id=tid.strip(),
        title=title.strip(),
        estimated_hours=hours,
        status=status,
        dependencies=[str(d) for d in deps],
    )


# -------------------------------------------------------------------
# Project files
# -------------------------------------------------------------------

def load_project_file(path: str | Path) -> Project:
    """Parse a single project YAML file → Project."""
    path = Path(path)
    file = str(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ProjectLoadError(f"invalid YAML: {e}", file) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProjectLoadError(f"expected mapping, got {type(data).__name__}", file)

    project_id = str(data.get("id") or path.stem)
    title = str(data.get("title") or project_id)

    raw_tasks = data.get("tasks") or []
    if not isinstance(raw_tasks, list):
        raise ProjectLoadError("tasks must be a list", file, "tasks")

    tasks: list[TaskNode] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_tasks):
        task = _parse_task(raw, i, file)
        if task.id in seen:
            raise ProjectLoadError(f"duplicate task id: {task.id}", file, f"tasks[{i}].id")
        seen.add(task.id)
        task.project_id = project_id
        tasks.append(task)

    return Project(id=project_id, title=title, source=file, tasks=tasks)


def scan_projects(project_root: str | Path, config: Config | None = None) -> list[Project]:
    """Scan the projects directory and return Projects sorted by file name.

    Skips: subdirectories, files without a .yaml/.yml suffix.
    """
    project_root = Path(project_root)

    if config is None:
        from .config import load_config
        config = load_config(project_root)

    projects_dir = project_root / config.projects_dir
    if not projects_dir.exists():
        return []

    projects: list[Project] = []
    for entry in sorted(projects_dir.iterdir()):
        if not entry.is_file() or entry.suffix not in _SUFFIXES:
            continue
        projects.append(load_project_file(entry))

    return projects
