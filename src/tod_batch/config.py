"""Configuration file IO for tod-batch."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import typer
import yaml

from .models import ConfigError, Project

APP_NAME = "tod-batch"
CONFIG_ENV_VAR = "TOD_BATCH_CONFIG"
TOKEN_ENV_VAR = "TODOIST_TOKEN"
DEFAULT_BASE_URL = "https://api.todoist.com"
DEFAULT_TIMEZONE = "UTC"
SUPPORTED_KEYS = {"token", "timezone", "base_url", "projects"}


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path(typer.get_app_dir(APP_NAME)) / "config.yaml"


@dataclass(slots=True)
class Config:
    path: Path
    token: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    base_url: str = DEFAULT_BASE_URL
    projects: list[Project] = field(default_factory=list)
    warn: Callable[[str], None] | None = field(default=None, repr=False, compare=False)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def require_token(self) -> str:
        if not self.token:
            raise ConfigError(
                f"No Todoist token configured. Set '{TOKEN_ENV_VAR}' or add 'token' to {self.path}."
            )
        return self.token

    def project_by_name(self, name: str) -> Project:
        wanted = name.strip().lower()
        for project in self.projects:
            if project.name.lower() == wanted or project.id == name.strip():
                return project
        raise ConfigError(
            f"Unknown project '{name}'. Run 'tod-batch projects refresh' to update the project list."
        )

    def with_projects(self, projects: list[Project]) -> Config:
        return replace(self, projects=list(projects))

    def reload(self) -> Config:
        """Re-read the config file, keeping values that came from the environment."""
        fresh = load_config(self.path, warn=self.warn)
        if fresh.token is None:
            fresh.token = self.token
        return fresh

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.token and os.environ.get(TOKEN_ENV_VAR) != self.token:
            payload["token"] = self.token
        payload["timezone"] = self.timezone
        if self.base_url != DEFAULT_BASE_URL:
            payload["base_url"] = self.base_url
        payload["projects"] = [project.to_dict() for project in self.projects]
        return payload

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)
        self.path.write_text(text, encoding="utf-8")


def read_config(path: Path, warn: Callable[[str], None] | None = None) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        if warn is not None:
            warn(f"Unable to parse config at {path}. Falling back to defaults.")
        return {}
    if not isinstance(payload, dict):
        if warn is not None:
            warn(f"Invalid config format at {path}. Falling back to defaults.")
        return {}
    return payload


def _resolve_timezone(raw: Any, path: Path, warn: Callable[[str], None] | None) -> str:
    if raw is None:
        return DEFAULT_TIMEZONE
    if isinstance(raw, str):
        try:
            ZoneInfo(raw)
        except (ZoneInfoNotFoundError, ValueError):
            pass
        else:
            return raw
    if warn is not None:
        warn(f"Invalid timezone in {path}. Using default '{DEFAULT_TIMEZONE}'.")
    return DEFAULT_TIMEZONE


def _resolve_projects(raw: Any, path: Path, warn: Callable[[str], None] | None) -> list[Project]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        if warn is not None:
            warn(f"Invalid projects section in {path}. Ignoring.")
        return []

    projects: list[Project] = []
    for item in raw:
        if not isinstance(item, dict) or "id" not in item or "name" not in item:
            if warn is not None:
                warn(f"Invalid project entry {item!r} in {path}. Ignoring.")
            continue
        projects.append(Project(id=str(item["id"]), name=str(item["name"])))
    return projects


def load_config(path: Path | None = None, warn: Callable[[str], None] | None = None) -> Config:
    path = path or default_config_path()
    data = read_config(path, warn=warn)
    for key in data.keys():
        if key not in SUPPORTED_KEYS and warn is not None:
            warn(f"Unsupported config key '{key}' in {path}. Ignoring.")

    token = data.get("token") or os.environ.get(TOKEN_ENV_VAR) or None
    base_url = data.get("base_url") or DEFAULT_BASE_URL
    if not isinstance(base_url, str):
        if warn is not None:
            warn(f"Invalid base_url in {path}. Using default '{DEFAULT_BASE_URL}'.")
        base_url = DEFAULT_BASE_URL

    return Config(
        path=path,
        token=str(token) if token else None,
        timezone=_resolve_timezone(data.get("timezone"), path, warn),
        base_url=base_url.rstrip("/"),
        projects=_resolve_projects(data.get("projects"), path, warn),
        warn=warn,
    )
