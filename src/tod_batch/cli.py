"""CLI entrypoint for tod-batch."""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys
from typing import Annotated, Awaitable, Callable

import typer

from . import batch
from .config import Config, load_config
from .gateway import TodoistClient
from .logging_setup import setup_logging
from .models import ConfigError, FilterFlag, Flag, ProjectFlag, TodError
from .prompt_ui import choose_project
from .sorting import SortOrder

ProjectOption = Annotated[
    str | None,
    typer.Option("--project", "-p", help="Project name or id"),
]
FilterOption = Annotated[
    str | None,
    typer.Option("--filter", "-f", help="Todoist filter query, e.g. 'today | overdue'"),
]
SortOption = Annotated[
    SortOrder,
    typer.Option("--sort", "-s", case_sensitive=False, help="Order tasks are shown in"),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Explicit config.yaml path", envvar="TOD_BATCH_CONFIG"),
]

app = typer.Typer(help="Batch operations for Todoist projects and filters")
projects_app = typer.Typer(help="Manage the cached project list")
app.add_typer(projects_app, name="projects")


def _can_interact() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _can_render_rich_output() -> bool:
    return sys.stdout.isatty()


def _print_rich(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _warn_config(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _print_summary(text: str) -> None:
    if _can_render_rich_output():
        from rich.text import Text

        _print_rich(Text(text, style="green"))
        return
    typer.echo(text)


def _load(config_path: Path | None) -> Config:
    return load_config(config_path, warn=_warn_config)


def _exit_canceled(code: int) -> None:
    typer.echo("Canceled.")
    raise typer.Exit(code=code)


def _run_and_handle(fn: Callable[[], Awaitable[None]]) -> None:
    try:
        asyncio.run(fn())
    except TodError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _resolve_flag(config: Config, project: str | None, filter_query: str | None) -> Flag:
    if project and filter_query:
        raise TodError("Use either --project or --filter, not both.")
    if filter_query:
        return FilterFlag(filter_query)
    if project:
        return ProjectFlag(config.project_by_name(project))

    if not _can_interact():
        raise ConfigError("--project or --filter is required in non-interactive mode")
    if not config.projects:
        raise ConfigError("No cached projects. Run 'tod-batch projects refresh' first.")
    selected = choose_project(config.projects)
    if not selected:
        _exit_canceled(1)
    return ProjectFlag(config.project_by_name(selected))


@app.callback()
def root_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    setup_logging(verbose=verbose)


@app.command("view")
def view_cmd(
    project: ProjectOption = None,
    filter_query: FilterOption = None,
    sort: SortOption = SortOrder.VALUE,
    config_path: ConfigOption = None,
) -> None:
    """List tasks, grouped per filter query."""

    async def _inner() -> None:
        config = _load(config_path)
        flag = _resolve_flag(config, project, filter_query)
        async with TodoistClient(config) as client:
            typer.echo(await batch.view(client, config, flag, sort))

    _run_and_handle(_inner)


@app.command("prioritize")
def prioritize_cmd(
    project: ProjectOption = None,
    filter_query: FilterOption = None,
    sort: SortOption = SortOrder.VALUE,
    config_path: ConfigOption = None,
) -> None:
    """Give a priority to every unprioritized task."""

    async def _inner() -> None:
        config = _load(config_path)
        flag = _resolve_flag(config, project, filter_query)
        async with TodoistClient(config) as client:
            _print_summary(await batch.prioritize(client, config, flag, sort))

    _run_and_handle(_inner)


@app.command("timebox")
def timebox_cmd(
    project: ProjectOption = None,
    filter_query: FilterOption = None,
    sort: SortOption = SortOrder.VALUE,
    config_path: ConfigOption = None,
) -> None:
    """Give a duration to every task without one."""

    async def _inner() -> None:
        config = _load(config_path)
        flag = _resolve_flag(config, project, filter_query)
        async with TodoistClient(config) as client:
            _print_summary(await batch.timebox(client, config, flag, sort))

    _run_and_handle(_inner)


@app.command("process")
def process_cmd(
    project: ProjectOption = None,
    filter_query: FilterOption = None,
    sort: SortOption = SortOrder.VALUE,
    config_path: ConfigOption = None,
) -> None:
    """Walk actionable tasks one at a time."""

    async def _inner() -> None:
        config = _load(config_path)
        flag = _resolve_flag(config, project, filter_query)
        async with TodoistClient(config) as client:
            _print_summary(await batch.process(client, config, flag, sort))

    _run_and_handle(_inner)


@app.command("label")
def label_cmd(
    labels: Annotated[
        list[str],
        typer.Option("--label", "-l", help="Label to offer; repeat for several"),
    ],
    project: ProjectOption = None,
    filter_query: FilterOption = None,
    sort: SortOption = SortOrder.VALUE,
    config_path: ConfigOption = None,
) -> None:
    """Pick one of the given labels for every task."""

    async def _inner() -> None:
        config = _load(config_path)
        flag = _resolve_flag(config, project, filter_query)
        async with TodoistClient(config) as client:
            _print_summary(await batch.label(client, config, flag, labels, sort))

    _run_and_handle(_inner)


@app.command("import")
def import_cmd(
    file_path: Annotated[
        Path,
        typer.Argument(help="Text file with one task per line", exists=True, dir_okay=False),
    ],
    config_path: ConfigOption = None,
) -> None:
    """Quick-add one task per non-blank line of a file."""

    async def _inner() -> None:
        config = _load(config_path)
        async with TodoistClient(config) as client:
            _print_summary(await batch.import_file(client, file_path))

    _run_and_handle(_inner)


@projects_app.command("list")
def projects_list_cmd(config_path: ConfigOption = None) -> None:
    """Show cached projects."""
    config = _load(config_path)
    if not config.projects:
        typer.echo("No cached projects. Run 'tod-batch projects refresh'.")
        return
    for project in config.projects:
        typer.echo(f"{project.name}  {project.url}")


@projects_app.command("refresh")
def projects_refresh_cmd(config_path: ConfigOption = None) -> None:
    """Fetch projects from Todoist and cache them in the config file."""

    async def _inner() -> None:
        config = _load(config_path)
        async with TodoistClient(config) as client:
            projects = await client.all_projects()
        config.with_projects(projects).save()
        typer.echo(f"Saved {len(projects)} projects to {config.path}")

    _run_and_handle(_inner)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
