"""taskgraph CLI — typer-based command interface."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import CONFIG_DIR, Config, load_config

app = typer.Typer(
    name="taskgraph",
    help="taskgraph — task dependencies, cycle checks and critical paths",
    no_args_is_help=True,
)

_state = {"verbose": False}

# -------------------------------------------------------------------
# Templates
# -------------------------------------------------------------------

DEFAULT_CONFIG_TEMPLATE = """\
# .taskgraph/config.yaml — team-shared configuration
projects_dir: projects
db_path: .taskgraph/state.db
hours_per_day: 8
log_level: WARNING

notify:
  webhook_url: ""
  events:
    - cycle.detected
    - transition.rejected
    - task.completed
"""

DEFAULT_LOCAL_CONFIG_TEMPLATE = """\
# .taskgraph/local.config.yaml — personal overrides (DO NOT commit)
# notify:
#   webhook_url: https://hooks.slack.com/services/xxx
# log_level: INFO
"""

EXAMPLE_PROJECT = """\
id: example
title: Example Project
tasks:
  - id: design
    title: Design mockups
    estimated_hours: 5
    status: todo
    depends_on: []
  - id: build
    title: Build pages
    estimated_hours: 10
    depends_on: [design]
  - id: launch
    title: Launch
    estimated_hours: 3
    depends_on: [build]
"""

GITIGNORE_ENTRIES = [
    f"{CONFIG_DIR}/local.config.yaml",
    f"{CONFIG_DIR}/state.db",
    f"{CONFIG_DIR}/state.db-wal",
    f"{CONFIG_DIR}/state.db-shm",
]

_STATUS_ICONS = {
    "todo": "⏳", "in_progress": "🔄", "review": "👀",
    "completed": "✅", "blocked": "⛔",
}


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _get_project_root() -> Path:
    return Path.cwd()


def _load(root: Path) -> Config:
    """Load config and configure logging from it."""
    config = load_config(root)
    level = logging.DEBUG if _state["verbose"] else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("taskgraph").setLevel(level)
    return config


def _run_async(coro):
    """Run an async coroutine from sync context."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop and loop.is_running():
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


async def _get_db(config: Config):
    from .db import Database
    db_path = config.resolve_db_path()
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    db = Database(str(db_path))
    await db.init()
    return db


def _get_notifier(config: Config):
    from .notifier import Notifier
    return Notifier(webhook_url=config.notify.webhook_url, events=config.notify.events)


def _scan_or_exit(root: Path, config: Config):
    from .loader import ProjectLoadError, scan_projects
    try:
        return scan_projects(root, config)
    except ProjectLoadError as e:
        typer.echo(f"  Load Error: {e}", err=True)
        raise typer.Exit(2)


async def _project_tasks(db, root: Path, config: Config, project_id: str):
    """Tasks for a project from the store, importing project files on first use."""
    from .service import sync_projects
    tasks = await db.list_project_tasks(project_id)
    if not tasks:
        projects = [p for p in _scan_or_exit(root, config) if p.id == project_id]
        if projects:
            await sync_projects(db, projects)
            tasks = await db.list_project_tasks(project_id)
    if not tasks:
        typer.echo(f"  Project '{project_id}' has no tasks.")
    return tasks


def _fmt_hours(hours: float) -> str:
    return f"{hours:g}h"


# -------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------

@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """taskgraph CLI."""
    _state["verbose"] = verbose


@app.command()
def init():
    """Initialize taskgraph in the current directory."""
    root = _get_project_root()

    config_dir = root / CONFIG_DIR
    config_dir.mkdir(exist_ok=True)

    config_path = config_dir / "config.yaml"
    if not config_path.exists():
        config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
        typer.echo(f"  Created {config_path.relative_to(root)}")
    else:
        typer.echo(f"  Exists  {config_path.relative_to(root)}")

    local_path = config_dir / "local.config.yaml"
    if not local_path.exists():
        local_path.write_text(DEFAULT_LOCAL_CONFIG_TEMPLATE)
        typer.echo(f"  Created {local_path.relative_to(root)}")

    config = _load(root)
    projects_dir = root / config.projects_dir
    projects_dir.mkdir(parents=True, exist_ok=True)
    if not any(projects_dir.iterdir()):
        example = projects_dir / "example.yaml"
        example.write_text(EXAMPLE_PROJECT)
        typer.echo(f"  Created {example.relative_to(root)}")

    gitignore_path = root / ".gitignore"
    existing = ""
    if gitignore_path.exists():
        existing = gitignore_path.read_text()
    additions = [e for e in GITIGNORE_ENTRIES if e not in existing]
    if additions:
        with open(gitignore_path, "a") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write("# taskgraph\n")
            for entry in additions:
                f.write(f"{entry}\n")
        typer.echo("  Updated .gitignore")

    typer.echo("\n  taskgraph initialized. Run `taskgraph sync` to import projects.")


@app.command()
def scan():
    """List projects found in the projects directory."""
    root = _get_project_root()
    config = _load(root)
    projects = _scan_or_exit(root, config)

    if not projects:
        typer.echo("  No projects found.")
        return

    typer.echo(f"\n  Found {len(projects)} project(s):")
    for p in projects:
        typer.echo(f"  - {p.id}: {p.title} ({len(p.tasks)} tasks)")
    typer.echo("")


@app.command()
def sync():
    """Import project files into the task store."""
    root = _get_project_root()
    config = _load(root)
    projects = _scan_or_exit(root, config)

    if not projects:
        typer.echo("  No projects found.")
        return

    async def _sync():
        from .service import sync_projects
        db = await _get_db(config)
        try:
            return await sync_projects(db, projects)
        finally:
            await db.close()

    count = _run_async(_sync())
    typer.echo(f"  Synced {len(projects)} project(s), {count} task(s).")


@app.command()
def projects():
    """List projects in the task store."""
    root = _get_project_root()
    config = _load(root)

    async def _projects():
        db = await _get_db(config)
        try:
            return await db.list_projects(), await db.count_tasks()
        finally:
            await db.close()

    stored, counts = _run_async(_projects())
    if not stored:
        typer.echo("  No projects synced. Run `taskgraph sync` first.")
        return

    typer.echo(f"\n  {len(stored)} project(s) in store:")
    for p in stored:
        typer.echo(f"  - {p.id}: {p.title} ({counts.get(p.id, 0)} tasks)")
    typer.echo("")


@app.command()
def status(project_id: str = typer.Argument(..., help="Project ID")):
    """Show task statuses and dependency blockers for a project."""
    root = _get_project_root()
    config = _load(root)

    async def _status():
        from .scheduler import blocked_tasks, pick_next
        db = await _get_db(config)
        try:
            tasks = await _project_tasks(db, root, config, project_id)
            if not tasks:
                return
            blockers = blocked_tasks(tasks)

            typer.echo(f"\n  {project_id} — Status Overview")
            typer.echo("  " + "─" * 50)
            for t in tasks:
                icon = _STATUS_ICONS.get(t.status.value, "  ")
                note = f"  ({blockers[t.id]} incomplete deps)" if t.id in blockers else ""
                typer.echo(f"  {icon} {t.id:<20} {t.status.value:<12}{note}")

            nxt = pick_next(tasks)
            if nxt:
                typer.echo(f"\n  Next up: {nxt.id} — {nxt.title}")
            typer.echo("")
        finally:
            await db.close()

    _run_async(_status())


@app.command()
def deps(project_id: str = typer.Argument(..., help="Project ID")):
    """Show the dependency graph of a project."""
    root = _get_project_root()
    config = _load(root)

    async def _deps():
        from .critical_path import topological_order
        from .graph import build_graph
        db = await _get_db(config)
        try:
            tasks = await _project_tasks(db, root, config, project_id)
            if not tasks:
                return
            graph = build_graph(tasks)
            order = topological_order(graph) or graph.nodes

            typer.echo("\n  Dependency Graph")
            typer.echo("  " + "─" * 40)
            for node in order:
                preds = graph.predecessors.get(node, [])
                if preds:
                    typer.echo(f"  {node} ← {', '.join(preds)}")
                else:
                    typer.echo(f"  {node} (root)")
            for node, missing in graph.dangling.items():
                typer.echo(f"  ⚠️  {node} references unknown: {', '.join(missing)}")
            typer.echo("")
        finally:
            await db.close()

    _run_async(_deps())


@app.command()
def check(project_id: str = typer.Argument(..., help="Project ID")):
    """Check a project for dependency cycles (exit 1 if found)."""
    root = _get_project_root()
    config = _load(root)

    async def _check():
        from .cycles import detect_cycle
        from .graph import build_graph
        db = await _get_db(config)
        try:
            tasks = await _project_tasks(db, root, config, project_id)
            return detect_cycle(build_graph(tasks))
        finally:
            await db.close()

    report = _run_async(_check())
    if report.has_cycle:
        typer.echo(f"  Cycle detected: {' → '.join(report.cycle_nodes)}", err=True)
        raise typer.Exit(1)
    typer.echo("  No dependency cycles.")


@app.command()
def path(
    project_id: str = typer.Argument(..., help="Project ID"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON"),
):
    """Show the critical path of a project."""
    root = _get_project_root()
    config = _load(root)

    async def _path():
        from .service import project_critical_path
        db = await _get_db(config)
        notifier = _get_notifier(config)
        try:
            await _project_tasks(db, root, config, project_id)
            return await project_critical_path(db, project_id, notifier)
        finally:
            await notifier.close()
            await db.close()

    report = _run_async(_path())

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return

    if report.has_cycle:
        typer.echo("  ⚠️  Dependency cycle detected — cannot compute critical path.", err=True)
        if report.cycle_nodes:
            typer.echo(f"  Cycle: {' → '.join(report.cycle_nodes)}", err=True)
        raise typer.Exit(1)

    if not report.path:
        typer.echo("  No critical path found.")
        return

    days = report.total_days(config.hours_per_day)
    typer.echo("\n  Critical Path")
    typer.echo("  " + "─" * 50)
    for i, step in enumerate(report.path, 1):
        icon = _STATUS_ICONS.get(step.status.value, "  ")
        typer.echo(f"  {i:>2}. {icon} {step.id:<20} {_fmt_hours(step.estimated_hours):>7}  {step.title}")
    typer.echo("")
    typer.echo(f"  Total: {_fmt_hours(report.total_hours)} (≈ {days:.1f} days)")
    typer.echo(f"  Progress: {report.completed_count}/{len(report.path)} completed ({report.progress_percent}%)")
    typer.echo("")


@app.command()
def schedule(project_id: str = typer.Argument(..., help="Project ID")):
    """Show earliest/latest start and slack per task."""
    root = _get_project_root()
    config = _load(root)

    async def _schedule():
        from .service import project_schedule
        db = await _get_db(config)
        try:
            await _project_tasks(db, root, config, project_id)
            return await project_schedule(db, project_id)
        finally:
            await db.close()

    entries = _run_async(_schedule())
    if entries is None:
        typer.echo("  ⚠️  Dependency cycle detected — cannot schedule.", err=True)
        raise typer.Exit(1)

    typer.echo(f"\n  {'Task':<20} {'Dur':>7} {'ES':>7} {'EF':>7} {'LS':>7} {'LF':>7} {'Slack':>7}")
    for e in entries:
        mark = " *" if e.is_critical else ""
        typer.echo(
            f"  {e.id:<20} {e.duration:>7g} {e.es:>7g} {e.ef:>7g} {e.ls:>7g} {e.lf:>7g} {e.slack:>7g}{mark}"
        )
    typer.echo("\n  * critical (zero slack)\n")


@app.command()
def move(
    project_id: str = typer.Argument(..., help="Project ID"),
    task_id: str = typer.Argument(..., help="Task ID"),
    target: str = typer.Argument(..., help="todo|in_progress|review|completed|blocked"),
):
    """Change a task's status, enforcing dependency completion."""
    from .models import Status
    from .service import TaskGraphError, transition_task

    try:
        target_status = Status(target)
    except ValueError:
        allowed = ", ".join(s.value for s in Status)
        typer.echo(f"  Unknown status '{target}' (choose one of: {allowed})", err=True)
        raise typer.Exit(2)

    root = _get_project_root()
    config = _load(root)

    async def _move():
        db = await _get_db(config)
        notifier = _get_notifier(config)
        try:
            return await transition_task(db, project_id, task_id, target_status, notifier)
        finally:
            await notifier.close()
            await db.close()

    try:
        task = _run_async(_move())
    except TaskGraphError as e:
        typer.echo(f"  ❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"  {_STATUS_ICONS[task.status.value]} {task.id} → {task.status.value}")


@app.command()
def link(
    project_id: str = typer.Argument(..., help="Project ID"),
    task_id: str = typer.Argument(..., help="Task ID"),
    dependencies: Optional[List[str]] = typer.Argument(None, help="Dependency task IDs (none clears)"),
):
    """Replace a task's dependencies, rejecting cycles."""
    from .service import TaskGraphError, set_dependencies

    root = _get_project_root()
    config = _load(root)

    async def _link():
        db = await _get_db(config)
        notifier = _get_notifier(config)
        try:
            return await set_dependencies(db, project_id, task_id, dependencies or [], notifier)
        finally:
            await notifier.close()
            await db.close()

    try:
        task = _run_async(_link())
    except TaskGraphError as e:
        typer.echo(f"  ❌ {e}", err=True)
        raise typer.Exit(1)
    deps_str = ", ".join(task.dependencies) if task.dependencies else "—"
    typer.echo(f"  {task.id} ← {deps_str}")


@app.command()
def logs(
    project_id: str = typer.Argument(..., help="Project ID"),
    task_id: str = typer.Argument(..., help="Task ID"),
):
    """Show the event log for a task."""
    root = _get_project_root()
    config = _load(root)

    async def _logs():
        db = await _get_db(config)
        try:
            entries = await db.get_logs(project_id, task_id)
            if not entries:
                typer.echo(f"  No logs for '{project_id}/{task_id}'.")
                return
            typer.echo(f"\n  Logs — {project_id}/{task_id}")
            typer.echo("  " + "─" * 50)
            for entry in entries:
                typer.echo(f"  [{entry['created_at']}] {entry['event']}")
                if entry.get("detail"):
                    typer.echo(f"    {json.dumps(entry['detail'], ensure_ascii=False)}")
        finally:
            await db.close()

    _run_async(_logs())


@app.command("config")
def config_show():
    """Show merged configuration."""
    root = _get_project_root()

    import yaml
    from dataclasses import asdict

    config = _load(root)
    data = asdict(config)
    if data["notify"].get("webhook_url"):
        data["notify"]["webhook_url"] = data["notify"]["webhook_url"][:16] + "..."

    typer.echo("\n  taskgraph — Merged Configuration")
    typer.echo("  " + "─" * 40)
    typer.echo(yaml.dump(data, default_flow_style=False, allow_unicode=True))


if __name__ == "__main__":
    app()
