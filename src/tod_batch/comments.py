"""Concurrent comment fetching for batches of tasks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Protocol

from .models import Comment, GatewayError, Task

logger = logging.getLogger(__name__)


class CommentSource(Protocol):
    async def all_comments(self, task: Task) -> list[Comment]: ...


@dataclass(slots=True)
class CommentFetch:
    """Settled outcome of fetching one task's comments.

    Exactly one of ``error`` (the gateway reported a problem) or ``failure``
    (the fetch itself did not run to completion) is set on failure.
    """

    task: Task
    comments: list[Comment] = field(default_factory=list)
    error: GatewayError | None = None
    failure: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.failure is None


async def _fetch_one(source: CommentSource, task: Task) -> CommentFetch:
    try:
        comments = await source.all_comments(task)
    except GatewayError as exc:
        return CommentFetch(task=task, error=exc)
    return CommentFetch(task=task, comments=comments)


async def fetch_comments_for_tasks(source: CommentSource, tasks: list[Task]) -> list[CommentFetch]:
    """Fetch comments for every task at once, one result per task in input order."""
    handles = [asyncio.create_task(_fetch_one(source, task)) for task in tasks]
    settled = await asyncio.gather(*handles, return_exceptions=True)

    results: list[CommentFetch] = []
    for task, outcome in zip(tasks, settled):
        if isinstance(outcome, CommentFetch):
            results.append(outcome)
            continue
        logger.debug("Comment fetch for task %s did not complete: %r", task.id, outcome)
        results.append(CommentFetch(task=task, failure=outcome))
    return results
