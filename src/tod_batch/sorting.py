"""Task ordering."""

from __future__ import annotations

import datetime as dt
import enum
from typing import Iterable

from .models import Priority, Task

PRIORITY_VALUE = {
    Priority.HIGH: 400,
    Priority.MEDIUM: 300,
    Priority.NONE: 200,
    Priority.LOW: 100,
}
OVERDUE_VALUE = 150
DUE_TODAY_VALUE = 100
TIME_PASSED_VALUE = 50
RECURRING_PENALTY = 25
NO_DUE_PENALTY = 50


class SortOrder(str, enum.Enum):
    VALUE = "value"
    PRIORITY = "priority"
    DATETIME = "datetime"


def task_value(task: Task, now: dt.datetime) -> int:
    """Score a task for the "value" order; higher scores sort first.

    Unprioritized tasks rank above low priority ones, matching how the web
    client treats the default priority.
    """
    value = PRIORITY_VALUE[task.priority]
    due = task.due
    if due is None:
        return value - NO_DUE_PENALTY

    today = now.date()
    due_date = due.local_date(now.tzinfo)
    if due_date < today:
        value += OVERDUE_VALUE
    elif due_date == today:
        value += DUE_TODAY_VALUE
        when = due.localized(now.tzinfo)
        if when is not None and when <= now:
            value += TIME_PASSED_VALUE
    if due.is_recurring:
        value -= RECURRING_PENALTY
    return value


def _due_key(task: Task, now: dt.datetime) -> tuple[int, float]:
    due = task.due
    if due is None:
        return (1, 0.0)
    when = due.localized(now.tzinfo)
    if when is None:
        # Date-only tasks sort after timed tasks on the same day.
        when = dt.datetime.combine(due.local_date(now.tzinfo), dt.time.max, tzinfo=now.tzinfo)
    return (0, when.timestamp())


def sort_tasks(tasks: Iterable[Task], order: SortOrder, now: dt.datetime) -> list[Task]:
    """Return a stably sorted copy of ``tasks``."""
    if order is SortOrder.VALUE:
        return sorted(tasks, key=lambda task: -task_value(task, now))
    if order is SortOrder.PRIORITY:
        return sorted(tasks, key=lambda task: -int(task.priority))
    if order is SortOrder.DATETIME:
        return sorted(tasks, key=lambda task: _due_key(task, now))
    raise ValueError(f"Unknown sort order: {order}")
