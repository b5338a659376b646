"""Shared fixtures for taskgraph tests."""

import pytest
import pytest_asyncio

from taskgraph.models import Status, TaskNode


def make_task(tid, hours=None, deps=None, status=Status.TODO, title=None, project="p1"):
    return TaskNode(
        id=tid,
        title=title if title is not None else tid.upper(),
        estimated_hours=hours,
        status=status,
        dependencies=list(deps or []),
        project_id=project,
    )


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temporary workspace: .taskgraph/ + projects/."""
    config_dir = tmp_path / ".taskgraph"
    config_dir.mkdir()
    (tmp_path / "projects").mkdir()

    (config_dir / "config.yaml").write_text("""\
projects_dir: projects
db_path: .taskgraph/state.db
hours_per_day: 8
log_level: WARNING
notify:
  webhook_url: ""
  events:
    - cycle.detected
    - transition.rejected
""")
    return tmp_path


@pytest.fixture
def relaunch_project(tmp_project):
    """Website relaunch: design(5h) → build(10h) → launch(3h), plus copy(2h) → launch."""
    (tmp_project / "projects" / "relaunch.yaml").write_text("""\
id: relaunch
title: Website relaunch
tasks:
  - id: design
    title: Design mockups
    estimated_hours: 5
    status: completed
  - id: build
    title: Build pages
    estimated_hours: 10
    status: todo
    depends_on: [design]
  - id: copy
    title: Write copy
    estimated_hours: 2
    status: in_progress
  - id: launch
    title: Launch
    estimated_hours: 3
    depends_on: [build, copy]
""")
    return tmp_project


@pytest.fixture
def cycle_project(tmp_project):
    """3 tasks forming a cycle: a → b → c → a"""
    (tmp_project / "projects" / "loop.yaml").write_text("""\
id: loop
title: Loop
tasks:
  - {id: a, estimated_hours: 1, depends_on: [c]}
  - {id: b, estimated_hours: 1, depends_on: [a]}
  - {id: c, estimated_hours: 1, depends_on: [b]}
""")
    return tmp_project


@pytest.fixture
def diamond_tasks():
    """Diamond: A → {B, C} → D."""
    return [
        make_task("A", 2),
        make_task("B", 4, ["A"]),
        make_task("C", 1, ["A"]),
        make_task("D", 3, ["B", "C"]),
    ]


@pytest_asyncio.fixture
async def db(tmp_path):
    """Real SQLite file database (WAL mode)."""
    from taskgraph.db import Database
    db = Database(str(tmp_path / "test.db"))
    await db.init()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def memory_db():
    """In-memory database for fast unit tests."""
    from taskgraph.db import Database
    db = Database(":memory:")
    await db.init()
    yield db
    await db.close()
