"""Batch operations over the tasks of a project or filter."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from pathlib import Path
from typing import Any, Iterable

import typer

from . import walker
from .comments import fetch_comments_for_tasks
from .config import Config
from .gateway import TodoistClient
from .models import FilterFlag, Flag, Priority, ProjectFlag, Task
from .render import render_group_plain
from .sorting import SortOrder, sort_tasks

logger = logging.getLogger(__name__)

EXITED = "Exited"
IMPORT_DONE = "✓"


def _now(config: Config) -> dt.datetime:
    return dt.datetime.now(config.tzinfo)


def _empty_text(flag: Flag) -> str:
    return f"No tasks for {flag}"


def _success_text(verb: str, flag: Flag) -> str:
    return f"Successfully {verb} {flag}"


async def fetch_groups(client: TodoistClient, flag: Flag) -> list[tuple[str, list[Task]]]:
    """Resolve a selector into ``(label, tasks)`` groups."""
    if isinstance(flag, ProjectFlag):
        tasks = await client.all_tasks_by_project(flag.project)
        return [(flag.project.name, tasks)]
    if isinstance(flag, FilterFlag):
        return await client.all_tasks_by_filters(flag.query)
    raise TypeError(f"Unsupported selector: {flag!r}")


async def fetch_tasks(client: TodoistClient, flag: Flag) -> list[Task]:
    groups = await fetch_groups(client, flag)
    return [task for _, tasks in groups for task in tasks]


def filter_not_in_future(tasks: Iterable[Task], now: dt.datetime) -> list[Task]:
    today = now.date()
    return [task for task in tasks if task.due is None or task.due.local_date(now.tzinfo) <= today]


def reject_parent_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Drop tasks that are the parent of another task in the same set."""
    task_list = list(tasks)
    parent_ids = {task.parent_id for task in task_list if task.parent_id}
    return [task for task in task_list if task.id not in parent_ids]


async def join_mutations(handles: list[asyncio.Future[Any]]) -> None:
    """Wait for every dispatched mutation; failures are logged, not raised."""
    if not handles:
        return
    results = await asyncio.gather(*handles, return_exceptions=True)
    failed = 0
    for result in results:
        if isinstance(result, BaseException):
            failed += 1
            logger.warning("Mutation failed: %s", result)
    if failed:
        logger.info("%d of %d mutations failed", failed, len(results))


async def view(client: TodoistClient, config: Config, flag: Flag, sort: SortOrder) -> str:
    groups = await fetch_groups(client, flag)
    now = _now(config)
    buffer = ""
    for query, tasks in groups:
        buffer += render_group_plain(query, sort_tasks(tasks, sort, now), config.tzinfo)
    return buffer


async def prioritize(client: TodoistClient, config: Config, flag: Flag, sort: SortOrder) -> str:
    tasks = [task for task in await fetch_tasks(client, flag) if task.priority is Priority.NONE]
    if not tasks:
        return _empty_text(flag)

    handles: list[asyncio.Future[Any]] = []
    for task in sort_tasks(tasks, sort, _now(config)):
        typer.echo("")
        handles.append(await walker.set_priority(client, config, task, prompt=True))
    await join_mutations(handles)
    return _success_text("prioritized", flag)


async def timebox(client: TodoistClient, config: Config, flag: Flag, sort: SortOrder) -> str:
    tasks = [task for task in await fetch_tasks(client, flag) if task.duration is None]
    if not tasks:
        return _empty_text(flag)

    tasks = sort_tasks(tasks, sort, _now(config))
    countdown = walker.Countdown(len(tasks))
    handles: list[asyncio.Future[Any]] = []
    for task in tasks:
        typer.echo("")
        fresh = await asyncio.to_thread(config.reload)
        handle = await walker.timebox_task(client, fresh, task, countdown)
        if handle is None:
            return EXITED
        handles.append(handle)
    await join_mutations(handles)
    return _success_text("timeboxed", flag)


async def process(client: TodoistClient, config: Config, flag: Flag, sort: SortOrder) -> str:
    now = _now(config)
    tasks = filter_not_in_future(await fetch_tasks(client, flag), now)
    tasks = reject_parent_tasks(tasks)
    if not tasks:
        return _empty_text(flag)

    with_project = isinstance(flag, FilterFlag)
    tasks = sort_tasks(tasks, sort, now)
    countdown = walker.Countdown(len(tasks))
    fetched = await fetch_comments_for_tasks(client, tasks)

    handles: list[asyncio.Future[Any]] = []
    for item in fetched:
        if item.failure is not None:
            logger.error(
                "Skipping task %s: comment fetch did not complete (%r)",
                item.task.id,
                item.failure,
            )
            countdown.tick()
            continue

        show_project = with_project
        if item.error is not None:
            typer.echo(
                f"Could not fetch comments from {item.error.source}: {item.error.message}",
                err=True,
            )
            show_project = False

        fresh = await asyncio.to_thread(config.reload)
        typer.echo("")
        handle = await walker.process_task(
            client,
            item.comments,
            fresh,
            item.task,
            countdown,
            show_project=show_project,
        )
        if handle is None:
            return EXITED
        handles.append(handle)
    await join_mutations(handles)
    return _success_text("processed", flag)


async def label(
    client: TodoistClient,
    config: Config,
    flag: Flag,
    labels: list[str],
    sort: SortOrder,
) -> str:
    tasks = await fetch_tasks(client, flag)
    if not tasks:
        return _empty_text(flag)

    handles: list[asyncio.Future[Any]] = []
    for task in sort_tasks(tasks, sort, _now(config)):
        typer.echo("")
        handles.append(await walker.label_task(client, config, task, labels))
    await join_mutations(handles)
    return _success_text("labeled", flag)


async def import_file(client: TodoistClient, file_path: Path) -> str:
    """Quick-create one task per non-blank line, in file order."""
    text = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
    lines = [line for line in text.splitlines() if line.strip()]
    for line in lines:
        await client.quick_create_task(line)
    logger.info("Imported %d tasks from %s", len(lines), file_path)
    return IMPORT_DONE
