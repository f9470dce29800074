"""Renderers for task listings and the interactive walker."""

from __future__ import annotations

import datetime as dt
from typing import Iterable

from .models import Comment, Priority, Task


def _priority_style(priority: Priority) -> str:
    return {
        Priority.HIGH: "bold red",
        Priority.MEDIUM: "bold yellow",
        Priority.LOW: "cyan",
        Priority.NONE: "white",
    }.get(priority, "white")


def _due_label(task: Task, tz: dt.tzinfo) -> str | None:
    due = task.due
    if due is None:
        return None
    when = due.localized(tz)
    label = when.strftime("%Y-%m-%d %H:%M") if when is not None else due.date.isoformat()
    if due.is_recurring and due.string:
        label = f"{label} ({due.string})"
    return label


def _truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width == 1:
        return "…"
    return f"{value[: width - 1]}…"


def _detail_lines(task: Task, tz: dt.tzinfo, project_name: str | None) -> list[str]:
    lines: list[str] = []
    due = _due_label(task, tz)
    if due:
        lines.append(f"due: {due}")
    if task.duration is not None:
        lines.append(f"duration: {task.duration}")
    if task.labels:
        lines.append(f"labels: {', '.join(task.labels)}")
    if project_name:
        lines.append(f"project: {project_name}")
    return lines


def render_task_plain(task: Task, tz: dt.tzinfo, *, project_name: str | None = None) -> str:
    """One list entry: the title line followed by indented details."""
    marker = "" if task.priority is Priority.NONE else f"[{task.priority.label}] "
    lines = [f"- {marker}{task.content}"]
    lines.extend(f"  {line}" for line in _detail_lines(task, tz, project_name))
    return "\n".join(lines) + "\n"


def render_group_plain(label: str, tasks: Iterable[Task], tz: dt.tzinfo) -> str:
    buffer = f"\nTasks for {label}\n"
    for task in tasks:
        buffer += "\n" + render_task_plain(task, tz)
    return buffer


def render_comment_plain(comment: Comment) -> str:
    stamp = comment.posted_at[:16].replace("T", " ") if comment.posted_at else "-"
    return f"[{stamp}] {_truncate(comment.content.strip(), 500)}"


def render_task_rich(
    task: Task,
    tz: dt.tzinfo,
    *,
    comments: list[Comment] | None = None,
    remaining: int | None = None,
    project_name: str | None = None,
):
    from rich.console import Group
    from rich.text import Text

    renderables = []
    if remaining is not None:
        noun = "task" if remaining == 1 else "tasks"
        renderables.append(Text(f"{remaining} {noun} left", style="dim"))

    title = Text()
    title.append(task.content, style="bold")
    if task.priority is not Priority.NONE:
        title.append(" ")
        title.append(f"[{task.priority.label}]", style=_priority_style(task.priority))
    renderables.append(title)

    if task.description.strip():
        renderables.append(Text(task.description.strip(), style="italic"))
    for line in _detail_lines(task, tz, project_name):
        renderables.append(Text(line, style="dim"))

    if comments:
        renderables.append(Text(""))
        renderables.append(Text(f"Comments ({len(comments)})", style="bold"))
        for comment in comments:
            renderables.append(Text(render_comment_plain(comment)))
    return Group(*renderables)
