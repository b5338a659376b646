"""Three-layer config loading and merging."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

CONFIG_DIR = ".taskgraph"

DEFAULT_EVENTS = ["cycle.detected", "transition.rejected", "task.completed"]


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass
class NotifyConfig:
    webhook_url: str = ""
    events: list[str] = field(default_factory=lambda: list(DEFAULT_EVENTS))


@dataclass
class Config:
    projects_dir: str = "projects"
    db_path: str = f"{CONFIG_DIR}/state.db"
    hours_per_day: float = 8.0
    log_level: str = "WARNING"
    notify: NotifyConfig = field(default_factory=NotifyConfig)
    project_root: str = ""

    def resolve_db_path(self) -> Path:
        path = Path(self.db_path)
        if self.db_path == ":memory:" or path.is_absolute():
            return path
        return Path(self.project_root) / path


# ---------------------------------------------------------------------------
# Deep merge
# ---------------------------------------------------------------------------

def deep_merge(base: dict, override: dict) -> dict:
    """Field-level deep merge. Lists are replaced, None values ignored."""
    result = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# ---------------------------------------------------------------------------
# Dict → Config mapping
# ---------------------------------------------------------------------------

def _dict_to_config(data: dict, project_root: str) -> Config:
    cfg = Config(project_root=project_root)

    if "projects_dir" in data:
        cfg.projects_dir = str(data["projects_dir"])
    if "db_path" in data:
        cfg.db_path = str(data["db_path"])
    if "hours_per_day" in data:
        cfg.hours_per_day = float(data["hours_per_day"])
    if "log_level" in data:
        cfg.log_level = str(data["log_level"]).upper()

    if "notify" in data and isinstance(data["notify"], dict):
        n = data["notify"]
        cfg.notify = NotifyConfig(
            webhook_url=n.get("webhook_url", "") or "",
            events=n.get("events", cfg.notify.events),
        )

    return cfg


def _read_yaml(path: Path, strict: bool) -> dict:
    if not path.exists():
        return {}
    parsed = yaml.safe_load(path.read_text())
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        if strict:
            raise ValueError(
                f"Invalid {path.name}: expected mapping, got {type(parsed).__name__}"
            )
        return {}
    return parsed


# ---------------------------------------------------------------------------
# Load config (3-layer)
# ---------------------------------------------------------------------------

def load_config(project_root: str | Path) -> Config:
    """Load and merge config from up to 3 layers.

    Priority (highest first):
      1. Environment variables (TASKGRAPH_*)
      2. .taskgraph/local.config.yaml
      3. .taskgraph/config.yaml
    """
    project_root = Path(project_root)
    config_dir = project_root / CONFIG_DIR

    base_data = _read_yaml(config_dir / "config.yaml", strict=True)
    local_data = _read_yaml(config_dir / "local.config.yaml", strict=False)

    merged = deep_merge(base_data, local_data)
    cfg = _dict_to_config(merged, str(project_root))

    env_webhook = os.environ.get("TASKGRAPH_WEBHOOK_URL")
    if env_webhook:
        cfg.notify.webhook_url = env_webhook

    env_level = os.environ.get("TASKGRAPH_LOG_LEVEL")
    if env_level:
        cfg.log_level = env_level.upper()

    env_db = os.environ.get("TASKGRAPH_DB_PATH")
    if env_db:
        cfg.db_path = env_db

    return cfg
