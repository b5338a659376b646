"""Tests for CLI commands."""

import json

from typer.testing import CliRunner
from taskgraph.cli import app

runner = CliRunner()


def test_init_creates_structure(tmp_path, monkeypatch):
    """taskgraph init creates .taskgraph/ + config.yaml + projects/ + .gitignore."""
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert (tmp_path / ".taskgraph" / "config.yaml").exists()
    assert (tmp_path / ".taskgraph" / "local.config.yaml").exists()
    assert (tmp_path / "projects" / "example.yaml").exists()
    gitignore = (tmp_path / ".gitignore").read_text()
    assert ".taskgraph/local.config.yaml" in gitignore
    assert ".taskgraph/state.db" in gitignore


def test_init_idempotent(tmp_path, monkeypatch):
    """taskgraph init repeated does not overwrite existing config."""
    monkeypatch.chdir(tmp_path)
    runner.invoke(app, ["init"])
    (tmp_path / ".taskgraph" / "config.yaml").write_text("hours_per_day: 6\n")
    runner.invoke(app, ["init"])
    assert "hours_per_day: 6" in (tmp_path / ".taskgraph" / "config.yaml").read_text()


def test_init_example_has_critical_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    runner.invoke(app, ["init"])
    result = runner.invoke(app, ["path", "example"])
    assert result.exit_code == 0
    assert "Total: 18h" in result.output


def test_scan_finds_projects(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["scan"])
    assert result.exit_code == 0
    assert "Found 1 project(s)" in result.output
    assert "relaunch" in result.output


def test_scan_empty(tmp_project, monkeypatch):
    monkeypatch.chdir(tmp_project)
    result = runner.invoke(app, ["scan"])
    assert result.exit_code == 0
    assert "No projects found." in result.output


def test_scan_load_error_exits_2(tmp_project, monkeypatch):
    (tmp_project / "projects" / "bad.yaml").write_text("tasks:\n  - id: a\n    status: done\n")
    monkeypatch.chdir(tmp_project)
    result = runner.invoke(app, ["scan"])
    assert result.exit_code == 2


def test_sync_counts(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["sync"])
    assert result.exit_code == 0
    assert "Synced 1 project(s), 4 task(s)." in result.output


def test_path_text(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["path", "relaunch"])
    assert result.exit_code == 0
    assert "Critical Path" in result.output
    assert "Total: 18h (≈ 2.2 days)" in result.output
    assert "Progress: 1/3 completed (33%)" in result.output
    assert "copy" not in result.output


def test_path_json(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["path", "relaunch", "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["hasCycle"] is False
    assert data["totalHours"] == 18
    assert [s["id"] for s in data["path"]] == ["design", "build", "launch"]
    assert data["path"][0] == {
        "id": "design", "title": "Design mockups",
        "estimatedHours": 5, "status": "completed",
    }


def test_path_cycle_exits_1(cycle_project, monkeypatch):
    monkeypatch.chdir(cycle_project)
    result = runner.invoke(app, ["path", "loop"])
    assert result.exit_code == 1


def test_path_cycle_json(cycle_project, monkeypatch):
    monkeypatch.chdir(cycle_project)
    result = runner.invoke(app, ["path", "loop", "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["hasCycle"] is True
    assert "path" not in data


def test_check_cycle_exits_1(cycle_project, monkeypatch):
    monkeypatch.chdir(cycle_project)
    result = runner.invoke(app, ["check", "loop"])
    assert result.exit_code == 1


def test_check_clean(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["check", "relaunch"])
    assert result.exit_code == 0
    assert "No dependency cycles." in result.output


def test_schedule_marks_critical(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["schedule", "relaunch"])
    assert result.exit_code == 0
    assert "design" in result.output
    assert "*" in result.output


def test_status_and_deps(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["status", "relaunch"])
    assert result.exit_code == 0
    assert "Next up: build" in result.output
    result = runner.invoke(app, ["deps", "relaunch"])
    assert result.exit_code == 0
    assert "design (root)" in result.output
    assert "launch ← build, copy" in result.output


def test_unknown_project(tmp_project, monkeypatch):
    monkeypatch.chdir(tmp_project)
    result = runner.invoke(app, ["status", "ghost"])
    assert result.exit_code == 0
    assert "Project 'ghost' has no tasks." in result.output


def test_move_allowed(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["move", "relaunch", "build", "in_progress"])
    assert result.exit_code == 0
    assert "build → in_progress" in result.output


def test_move_rejected(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["move", "relaunch", "launch", "in_progress"])
    assert result.exit_code == 1
    result = runner.invoke(app, ["logs", "relaunch", "launch"])
    assert "transition_rejected" in result.output


def test_move_unknown_status_exits_2(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["move", "relaunch", "build", "done"])
    assert result.exit_code == 2


def test_link_rejects_cycle(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["link", "relaunch", "design", "launch"])
    assert result.exit_code == 1


def test_link_replaces_dependencies(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["link", "relaunch", "launch", "build"])
    assert result.exit_code == 0
    assert "launch ← build" in result.output


def test_config_show(tmp_project, monkeypatch):
    """taskgraph config shows merged config."""
    monkeypatch.chdir(tmp_project)
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "projects_dir" in result.output
    assert "hours_per_day" in result.output


def test_resync_keeps_moves(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    runner.invoke(app, ["sync"])
    runner.invoke(app, ["move", "relaunch", "build", "completed"])
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["status", "relaunch"])
    assert result.exit_code == 0
    rows = [line.split() for line in result.output.splitlines()]
    assert ["build", "completed"] in [row[1:3] for row in rows if len(row) >= 3]


def test_projects_lists_store(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    result = runner.invoke(app, ["projects"])
    assert "No projects synced." in result.output
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["projects"])
    assert result.exit_code == 0
    assert "relaunch: Website relaunch (4 tasks)" in result.output


def test_example_and_project_share_task_ids(relaunch_project, monkeypatch):
    monkeypatch.chdir(relaunch_project)
    (relaunch_project / "projects" / "example.yaml").write_text(
        "tasks:\n  - {id: design, estimated_hours: 1}\n"
    )
    runner.invoke(app, ["sync"])
    result = runner.invoke(app, ["path", "relaunch", "--json"])
    data = json.loads(result.stdout)
    assert [s["id"] for s in data["path"]] == ["design", "build", "launch"]
    assert data["totalHours"] == 18
