"""Core Todoist models, selectors and errors."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
import enum
from typing import Any
from zoneinfo import ZoneInfo

WEB_PROJECT_URL = "https://app.todoist.com/app/project/{project_id}"


class TodError(Exception):
    """Base error for tod-batch operations."""


class ConfigError(TodError):
    """Raised when configuration is missing or unusable."""


class GatewayError(TodError):
    """Raised when the remote service cannot satisfy a request."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class Priority(enum.IntEnum):
    """Task priority, ordered lowest to highest.

    Values match the Todoist API, where 1 is an unprioritized task and 4 is
    the most urgent.
    """

    NONE = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4

    @property
    def label(self) -> str:
        return {
            Priority.NONE: "none",
            Priority.LOW: "p3",
            Priority.MEDIUM: "p2",
            Priority.HIGH: "p1",
        }[self]


@dataclass(slots=True, frozen=True)
class Duration:
    amount: int
    unit: str = "minute"

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> Duration | None:
        if not data:
            return None
        return cls(amount=int(data["amount"]), unit=str(data.get("unit", "minute")))

    def __str__(self) -> str:
        suffix = "min" if self.unit == "minute" else "d"
        return f"{self.amount}{suffix}"


@dataclass(slots=True, frozen=True)
class Due:
    date: dt.date
    datetime: dt.datetime | None = None
    string: str = ""
    is_recurring: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> Due | None:
        if not data or not data.get("date"):
            return None
        raw = str(data["date"])
        when: dt.datetime | None = None
        if "T" in raw:
            when = dt.datetime.fromisoformat(raw.replace("Z", "+00:00"))
            if when.tzinfo is None and data.get("timezone"):
                when = when.replace(tzinfo=ZoneInfo(data["timezone"]))
            day = when.date()
        else:
            day = dt.date.fromisoformat(raw)
        return cls(
            date=day,
            datetime=when,
            string=str(data.get("string") or ""),
            is_recurring=bool(data.get("is_recurring", False)),
        )

    def localized(self, tz: dt.tzinfo) -> dt.datetime | None:
        """Timed due as an aware datetime; floating times are read in ``tz``."""
        if self.datetime is None:
            return None
        if self.datetime.tzinfo is None:
            return self.datetime.replace(tzinfo=tz)
        return self.datetime.astimezone(tz)

    def local_date(self, tz: dt.tzinfo) -> dt.date:
        """Calendar day of the due in ``tz``; date-only dues are already local."""
        when = self.localized(tz)
        return when.date() if when is not None else self.date


@dataclass(slots=True)
class Task:
    id: str
    content: str
    project_id: str
    priority: Priority = Priority.NONE
    description: str = ""
    duration: Duration | None = None
    due: Due | None = None
    parent_id: str | None = None
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data["id"]),
            content=str(data.get("content", "")),
            project_id=str(data.get("project_id", "")),
            priority=Priority(int(data.get("priority", 1))),
            description=str(data.get("description") or ""),
            duration=Duration.from_api(data.get("duration")),
            due=Due.from_api(data.get("due")),
            parent_id=str(data["parent_id"]) if data.get("parent_id") else None,
            labels=list(data.get("labels") or []),
        )


@dataclass(slots=True, frozen=True)
class Comment:
    id: str
    task_id: str
    content: str
    posted_at: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Comment:
        task_id = data.get("task_id") or data.get("item_id") or ""
        return cls(
            id=str(data["id"]),
            task_id=str(task_id),
            content=str(data.get("content", "")),
            posted_at=str(data.get("posted_at", "")),
        )


@dataclass(slots=True, frozen=True)
class Project:
    id: str
    name: str

    @property
    def url(self) -> str:
        return WEB_PROJECT_URL.format(project_id=self.id)

    def __str__(self) -> str:
        return f"{self.name}\n{self.url}"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(slots=True, frozen=True)
class ProjectFlag:
    project: Project

    def __str__(self) -> str:
        return str(self.project)


@dataclass(slots=True, frozen=True)
class FilterFlag:
    query: str

    def __str__(self) -> str:
        return f"'{self.query}'"


Flag = ProjectFlag | FilterFlag
