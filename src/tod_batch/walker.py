"""Interactive per-task steps used by the batch operations.

Each step renders one task, asks the user what to do with it and returns a
mutation handle: an ``asyncio.Task`` that has already been scheduled and is
left running while the caller moves on. Steps that allow quitting return
``None`` when the user chose to abandon the whole run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Awaitable

from . import prompt_ui
from .config import Config
from .gateway import TodoistClient
from .models import Comment, Priority, Task
from .render import render_task_rich

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Countdown:
    """Number of tasks still to be walked, shown to the user as progress."""

    remaining: int

    def tick(self) -> int:
        shown = self.remaining
        self.remaining = max(0, self.remaining - 1)
        return shown


def _print(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _dispatch(mutation: Awaitable[Any]) -> asyncio.Task[Any]:
    return asyncio.ensure_future(mutation)


async def _skipped() -> None:
    return None


def _skip() -> asyncio.Task[Any]:
    return _dispatch(_skipped())


def _project_name(config: Config, task: Task) -> str | None:
    for project in config.projects:
        if project.id == task.project_id:
            return project.name
    return task.project_id or None


async def set_priority(
    client: TodoistClient,
    config: Config,
    task: Task,
    *,
    prompt: bool = True,
    priority: Priority | None = None,
) -> asyncio.Task[Any]:
    if prompt:
        _print(render_task_rich(task, config.tzinfo))
        priority = await asyncio.to_thread(prompt_ui.choose_priority, task)
    if priority is None:
        logger.debug("No priority chosen for task %s; skipping", task.id)
        return _skip()
    return _dispatch(client.update_task(task, priority=int(priority)))


async def timebox_task(
    client: TodoistClient,
    config: Config,
    task: Task,
    countdown: Countdown,
    *,
    show_project: bool = False,
) -> asyncio.Task[Any] | None:
    project_name = _project_name(config, task) if show_project else None
    _print(
        render_task_rich(
            task,
            config.tzinfo,
            remaining=countdown.tick(),
            project_name=project_name,
        )
    )
    minutes = await asyncio.to_thread(prompt_ui.ask_duration, task)
    if minutes is None:
        return None
    if minutes == 0:
        return _skip()
    return _dispatch(client.update_task(task, duration=minutes, duration_unit="minute"))


async def process_task(
    client: TodoistClient,
    comments: list[Comment],
    config: Config,
    task: Task,
    countdown: Countdown,
    *,
    show_project: bool,
) -> asyncio.Task[Any] | None:
    project_name = _project_name(config, task) if show_project else None
    _print(
        render_task_rich(
            task,
            config.tzinfo,
            comments=comments,
            remaining=countdown.tick(),
            project_name=project_name,
        )
    )

    while True:
        action = await asyncio.to_thread(prompt_ui.choose_process_action, task)
        if action is None or action == "quit":
            return None
        if action == "complete":
            return _dispatch(client.complete_task(task))
        if action == "skip":
            return _skip()
        if action == "delete":
            return _dispatch(client.delete_task(task))
        if action == "schedule":
            due_string = await asyncio.to_thread(prompt_ui.ask_due_string)
            if not due_string:
                continue
            return _dispatch(client.update_task(task, due_string=due_string))
        if action == "priority":
            priority = await asyncio.to_thread(prompt_ui.choose_priority, task)
            if priority is None:
                continue
            return _dispatch(client.update_task(task, priority=int(priority)))
        if action == "subtask":
            content = await asyncio.to_thread(prompt_ui.ask_subtask_content)
            if content:
                # Awaited so the subtask exists before the next task is shown.
                subtask = await client.create_subtask(task, content)
                _print(f"Created subtask: {subtask.content}")
            continue
        logger.warning("Unknown action %r for task %s", action, task.id)


async def label_task(
    client: TodoistClient,
    config: Config,
    task: Task,
    labels: list[str],
) -> asyncio.Task[Any]:
    _print(render_task_rich(task, config.tzinfo))
    if not labels:
        return _skip()
    label = await asyncio.to_thread(prompt_ui.choose_label, task, labels)
    if label is None:
        return _skip()
    merged = list(dict.fromkeys([*task.labels, label]))
    return _dispatch(client.update_task(task, labels=merged))
