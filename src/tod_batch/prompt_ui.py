"""Prompt-based interactive helpers."""

from __future__ import annotations

import typer

from .models import Priority, Project, Task
from .selector_ui import SelectorUnavailableError, select_fuzzy, select_one, select_text

PROCESS_ACTIONS = (
    ("complete", "Complete"),
    ("skip", "Skip"),
    ("schedule", "Schedule"),
    ("priority", "Change priority"),
    ("subtask", "Add subtask"),
    ("delete", "Delete"),
    ("quit", "Quit"),
)
PRIORITY_OPTIONS = (
    (Priority.HIGH, "p1 (high)"),
    (Priority.MEDIUM, "p2 (medium)"),
    (Priority.LOW, "p3 (low)"),
    (Priority.NONE, "p4 (none)"),
)
QUIT_TOKENS = {"q", "quit", "exit"}


def _warn_selector_fallback(exc: Exception) -> None:
    message = str(exc)
    if not message:
        return
    typer.echo(f"Warning: {message}; falling back to numeric prompts.", err=True)


def _safe_prompt(message: str, *, default: str = "") -> str | None:
    try:
        selected = select_text(message, default_value=default)
    except SelectorUnavailableError:
        pass
    else:
        return selected

    try:
        return typer.prompt(message, default=default, show_default=bool(default))
    except (typer.Abort, KeyboardInterrupt, EOFError):
        return None


def _prompt_single_choice(title: str, options: list[tuple[str, str]], default_value: str) -> str | None:
    try:
        selected = select_one(title, options, default_value=default_value)
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo(title)
    default_index = 1
    for idx, (value, label) in enumerate(options, start=1):
        typer.echo(f"{idx}. {label}")
        if value == default_value:
            default_index = idx

    while True:
        raw = _safe_prompt("Enter number", default=str(default_index))
        if raw is None:
            return None
        try:
            index = int(raw)
        except ValueError:
            typer.echo("Invalid selection. Enter a number.")
            continue
        if 1 <= index <= len(options):
            return options[index - 1][0]
        typer.echo("Selection out of range.")


def choose_priority(task: Task) -> Priority | None:
    options = [(str(int(priority)), label) for priority, label in PRIORITY_OPTIONS]
    selected = _prompt_single_choice(
        f"Priority for '{task.content}'",
        options,
        default_value=str(int(task.priority)),
    )
    if selected is None:
        return None
    return Priority(int(selected))


def ask_duration(task: Task) -> int | None:
    """Minutes to set, 0 to skip the task, or None to quit the run."""
    while True:
        raw = _safe_prompt(f"Duration in minutes for '{task.content}' (blank skips, q quits)")
        if raw is None:
            return None
        raw = raw.strip().lower()
        if not raw:
            return 0
        if raw in QUIT_TOKENS:
            return None
        try:
            minutes = int(raw)
        except ValueError:
            typer.echo("Invalid duration. Enter a whole number of minutes.")
            continue
        if minutes <= 0:
            typer.echo("Duration must be positive.")
            continue
        return minutes


def choose_process_action(task: Task) -> str | None:
    return _prompt_single_choice(
        f"Action for '{task.content}'",
        list(PROCESS_ACTIONS),
        default_value="complete",
    )


def ask_due_string() -> str | None:
    raw = _safe_prompt("Due date (e.g. 'tomorrow 9am', 'no date')")
    if raw is None:
        return None
    return raw.strip()


def ask_subtask_content() -> str | None:
    raw = _safe_prompt("Subtask")
    if raw is None:
        return None
    return raw.strip()


def choose_label(task: Task, labels: list[str]) -> str | None:
    options = [(label, label) for label in labels]
    return _prompt_single_choice(f"Label for '{task.content}'", options, default_value=labels[0])


def choose_project(projects: list[Project], title: str = "Select project") -> str | None:
    if not projects:
        return None

    options = [(project.id, project.name) for project in projects]
    try:
        return select_fuzzy(title, options)
    except SelectorUnavailableError:
        pass
    return _prompt_single_choice(title, options, default_value=projects[0].id)
