"""SQLite task store with WAL mode."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from .models import Project, Status, TaskNode

# Task ids are unique per project only, so tasks and their log entries are
# keyed by (project_id, id).
_SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    source TEXT DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    project_id TEXT NOT NULL REFERENCES projects(id),
    id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    estimated_hours REAL,
    status TEXT NOT NULL DEFAULT 'todo',
    dependencies TEXT DEFAULT '[]',
    completed_at TEXT DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (project_id, id)
);

CREATE TABLE IF NOT EXISTS run_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    event TEXT NOT NULL,
    detail TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_project_status ON tasks(project_id, status);
CREATE INDEX IF NOT EXISTS idx_run_log_task ON run_log(project_id, task_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        if self.db_path != ":memory:":
            await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    # ---------------------------------------------------------------
    # Projects
    # ---------------------------------------------------------------

    async def upsert_project(self, project: Project) -> None:
        now = _now()
        await self._conn.execute(
            """INSERT INTO projects (id, title, source, created_at, updated_at)
               VALUES (?,?,?,?,?)
               ON CONFLICT(id) DO UPDATE SET
                 title=excluded.title,
                 source=excluded.source,
                 updated_at=excluded.updated_at
            """,
            (project.id, project.title, project.source, now, now),
        )
        await self._conn.commit()

    async def list_projects(self) -> list[Project]:
        cursor = await self._conn.execute("SELECT * FROM projects ORDER BY id")
        rows = await cursor.fetchall()
        return [
            Project(id=r["id"], title=r["title"], source=r["source"] or "")
            for r in rows
        ]

    # ---------------------------------------------------------------
    # Task CRUD
    # ---------------------------------------------------------------

    async def upsert_task(self, task: TaskNode) -> None:
        """Insert a task or refresh its definition from a project file.

        On conflict the stored ``status`` and ``completed_at`` are kept; they
        change only through ``update_status_if``.
        """
        now = _now()
        if not task.created_at:
            task.created_at = now
        task.updated_at = now
        await self._conn.execute(
            """INSERT INTO tasks
               (project_id, id, title, estimated_hours, status, dependencies,
                completed_at, created_at, updated_at)
               VALUES (?,?,?,?,?,?,?,?,?)
               ON CONFLICT(project_id, id) DO UPDATE SET
                 title=excluded.title,
                 estimated_hours=excluded.estimated_hours,
                 dependencies=excluded.dependencies,
                 updated_at=excluded.updated_at
            """,
            (
                task.project_id, task.id, task.title, task.estimated_hours,
                Status(task.status).value, json.dumps(task.dependencies),
                task.completed_at, task.created_at, task.updated_at,
            ),
        )
        await self._conn.commit()

    async def get_task(self, project_id: str, task_id: str) -> TaskNode | None:
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE project_id = ? AND id = ?",
            (project_id, task_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_project_tasks(self, project_id: str) -> list[TaskNode]:
        # rowid keeps insertion order, which the engine uses for tie-breaks
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def count_tasks(self) -> dict[str, int]:
        cursor = await self._conn.execute(
            "SELECT project_id, COUNT(*) AS n FROM tasks GROUP BY project_id"
        )
        rows = await cursor.fetchall()
        return {r["project_id"]: r["n"] for r in rows}

    async def update_status_if(
        self, project_id: str, task_id: str, expected: Status, status: Status
    ) -> bool:
        """Compare-and-set the status. Returns False if it changed meanwhile."""
        now = _now()
        completed_at = now if status == Status.COMPLETED else ""
        cursor = await self._conn.execute(
            """UPDATE tasks SET status = ?, completed_at = ?, updated_at = ?
               WHERE project_id = ? AND id = ? AND status = ?""",
            (status.value, completed_at, now, project_id, task_id, expected.value),
        )
        await self._conn.commit()
        return cursor.rowcount == 1

    async def update_dependencies(
        self, project_id: str, task_id: str, dependencies: list[str]
    ) -> None:
        await self._conn.execute(
            """UPDATE tasks SET dependencies = ?, updated_at = ?
               WHERE project_id = ? AND id = ?""",
            (json.dumps(dependencies), _now(), project_id, task_id),
        )
        await self._conn.commit()

    async def delete_task(self, project_id: str, task_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE project_id = ? AND id = ?",
            (project_id, task_id),
        )
        await self._conn.commit()
        return cursor.rowcount == 1

    # ---------------------------------------------------------------
    # Run Log
    # ---------------------------------------------------------------

    async def log_event(
        self, project_id: str, task_id: str, event: str, detail: dict | None = None
    ) -> None:
        await self._conn.execute(
            """INSERT INTO run_log (project_id, task_id, event, detail, created_at)
               VALUES (?,?,?,?,?)""",
            (project_id, task_id, event, json.dumps(detail) if detail else None, _now()),
        )
        await self._conn.commit()

    async def get_logs(self, project_id: str, task_id: str) -> list[dict]:
        cursor = await self._conn.execute(
            "SELECT * FROM run_log WHERE project_id = ? AND task_id = ? ORDER BY id",
            (project_id, task_id),
        )
        rows = await cursor.fetchall()
        return [
            {
                "event": r["event"],
                "detail": json.loads(r["detail"]) if r["detail"] else None,
                "created_at": r["created_at"],
            }
            for r in rows
        ]

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    @staticmethod
    def _row_to_task(row) -> TaskNode:
        return TaskNode(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"] or "",
            estimated_hours=row["estimated_hours"],
            status=Status(row["status"]),
            dependencies=json.loads(row["dependencies"]) if row["dependencies"] else [],
            completed_at=row["completed_at"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
