from __future__ import annotations

import datetime as dt
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from tod_batch import batch, prompt_ui, walker
from tod_batch.models import (
    Due,
    Duration,
    FilterFlag,
    GatewayError,
    Priority,
    Project,
    ProjectFlag,
    Task,
)
from tod_batch.sorting import SortOrder

from .fakes import FakeTodoistClient, make_task

INPUTS = Path(__file__).parent / "inputs"


def _today() -> dt.date:
    return dt.datetime.now(dt.timezone.utc).date()


def _fail_prompt(*args, **kwargs):
    pytest.fail("walker prompt used")


@pytest.mark.asyncio
async def test_process_with_filter_completes_task(monkeypatch: pytest.MonkeyPatch, config) -> None:
    client = FakeTodoistClient(filter_groups=[("today", [make_task("X")])])
    monkeypatch.setattr(prompt_ui, "choose_process_action", lambda task: "complete")

    result = await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully processed 'today'"
    assert client.mutations == [("complete", "X", {})]
    assert ("all_comments", "X") in client.calls


@pytest.mark.asyncio
async def test_process_with_project_renders_project_in_summary(
    monkeypatch: pytest.MonkeyPatch, config, project
) -> None:
    client = FakeTodoistClient(project_tasks=[make_task("X")])
    monkeypatch.setattr(prompt_ui, "choose_process_action", lambda task: "complete")

    result = await batch.process(client, config, ProjectFlag(project), SortOrder.VALUE)

    assert result == "Successfully processed myproject\nhttps://app.todoist.com/app/project/123"


@pytest.mark.asyncio
async def test_timebox_with_no_tasks_lacking_duration(
    monkeypatch: pytest.MonkeyPatch, config, project
) -> None:
    client = FakeTodoistClient(project_tasks=[make_task("X", duration=Duration(15))])
    monkeypatch.setattr(prompt_ui, "ask_duration", _fail_prompt)

    result = await batch.timebox(client, config, ProjectFlag(project), SortOrder.VALUE)

    assert result == "No tasks for myproject\nhttps://app.todoist.com/app/project/123"
    assert client.mutations == []
    assert [name for name, _ in client.calls] == ["all_tasks_by_project"]


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["prioritize", "timebox", "process", "label"])
async def test_empty_selection_short_circuits(operation: str, config) -> None:
    client = FakeTodoistClient(filter_groups=[("today", [])])
    flag = FilterFlag("today")

    if operation == "label":
        result = await batch.label(client, config, flag, ["thing"], SortOrder.VALUE)
    else:
        result = await getattr(batch, operation)(client, config, flag, SortOrder.VALUE)

    assert result == "No tasks for 'today'"
    assert client.mutations == []
    assert [name for name, _ in client.calls] == ["all_tasks_by_filters"]


@pytest.mark.asyncio
async def test_prioritize_only_walks_unprioritized_tasks(monkeypatch: pytest.MonkeyPatch, config) -> None:
    tasks = [
        make_task("a", priority=Priority.HIGH),
        make_task("b"),
        make_task("c", priority=Priority.LOW),
        make_task("d"),
    ]
    client = FakeTodoistClient(filter_groups=[("today", tasks)])
    seen: list[str] = []

    def _choose(task):
        seen.append(task.id)
        return Priority.MEDIUM

    monkeypatch.setattr(prompt_ui, "choose_priority", _choose)

    result = await batch.prioritize(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully prioritized 'today'"
    assert seen == ["b", "d"]
    assert client.mutations == [
        ("update", "b", {"priority": 3}),
        ("update", "d", {"priority": 3}),
    ]


@pytest.mark.asyncio
async def test_process_excludes_parents_and_future_tasks(monkeypatch: pytest.MonkeyPatch, config) -> None:
    tomorrow = _today() + dt.timedelta(days=1)
    tasks = [
        make_task("parent"),
        make_task("child", parent_id="parent"),
        make_task("later", due=Due(date=tomorrow)),
        make_task("now", due=Due(date=_today())),
    ]
    client = FakeTodoistClient(filter_groups=[("today", tasks)])
    seen: list[str] = []

    def _choose(task):
        seen.append(task.id)
        return "skip"

    monkeypatch.setattr(prompt_ui, "choose_process_action", _choose)

    result = await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully processed 'today'"
    assert sorted(seen) == ["child", "now"]
    assert "parent" not in {task_id for name, task_id in client.calls if name == "all_comments"}


@pytest.mark.asyncio
async def test_quit_stops_walk_immediately(monkeypatch: pytest.MonkeyPatch, config) -> None:
    tasks = [make_task("1"), make_task("2"), make_task("3")]
    client = FakeTodoistClient(filter_groups=[("today", tasks)])
    seen: list[str] = []

    def _choose(task):
        seen.append(task.id)
        return "complete" if task.id == "1" else "quit"

    monkeypatch.setattr(prompt_ui, "choose_process_action", _choose)

    result = await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Exited"
    assert seen == ["1", "2"]


@pytest.mark.asyncio
async def test_timebox_quit_returns_exited(monkeypatch: pytest.MonkeyPatch, config) -> None:
    tasks = [make_task("1"), make_task("2")]
    client = FakeTodoistClient(filter_groups=[("today", tasks)])
    answers = iter([30, None])
    monkeypatch.setattr(prompt_ui, "ask_duration", lambda task: next(answers))

    result = await batch.timebox(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Exited"


@pytest.mark.asyncio
async def test_timebox_sets_durations(monkeypatch: pytest.MonkeyPatch, config) -> None:
    tasks = [make_task("1"), make_task("2", duration=Duration(10)), make_task("3")]
    client = FakeTodoistClient(filter_groups=[("today", tasks)])
    answers = iter([25, 0])
    monkeypatch.setattr(prompt_ui, "ask_duration", lambda task: next(answers))

    result = await batch.timebox(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully timeboxed 'today'"
    assert client.mutations == [("update", "1", {"duration": 25, "duration_unit": "minute"})]


@pytest.mark.asyncio
async def test_process_falls_back_to_empty_comments_on_gateway_error(
    monkeypatch: pytest.MonkeyPatch, config, capsys: pytest.CaptureFixture[str]
) -> None:
    client = FakeTodoistClient(
        filter_groups=[("today", [make_task("X")])],
        comment_errors={"X": GatewayError("Todoist", "503 unavailable")},
    )
    monkeypatch.setattr(prompt_ui, "choose_process_action", lambda task: "complete")

    result = await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully processed 'today'"
    assert client.mutations == [("complete", "X", {})]
    assert "Could not fetch comments from Todoist: 503 unavailable" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_process_skips_task_whose_fetch_did_not_complete(
    monkeypatch: pytest.MonkeyPatch, config
) -> None:
    client = FakeTodoistClient(
        filter_groups=[("today", [make_task("1"), make_task("2")])],
        comment_errors={"1": RuntimeError("boom")},
    )
    seen: list[str] = []

    def _choose(task):
        seen.append(task.id)
        return "complete"

    monkeypatch.setattr(prompt_ui, "choose_process_action", _choose)

    result = await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully processed 'today'"
    assert seen == ["2"]


@pytest.mark.asyncio
async def test_failed_mutations_do_not_change_summary(monkeypatch: pytest.MonkeyPatch, config) -> None:
    client = FakeTodoistClient(
        filter_groups=[("today", [make_task("1"), make_task("2")])],
        failing_mutations={"1"},
    )
    monkeypatch.setattr(prompt_ui, "choose_process_action", lambda task: "complete")

    result = await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully processed 'today'"
    assert client.mutations == [("complete", "2", {})]


@pytest.mark.asyncio
async def test_label_updates_every_task(monkeypatch: pytest.MonkeyPatch, config) -> None:
    tasks = [make_task("1", labels=["home"]), make_task("2")]
    client = FakeTodoistClient(filter_groups=[("today", tasks)])
    monkeypatch.setattr(prompt_ui, "choose_label", lambda task, labels: labels[0])

    result = await batch.label(client, config, FilterFlag("today"), ["thing"], SortOrder.VALUE)

    assert result == "Successfully labeled 'today'"
    assert client.mutations == [
        ("update", "1", {"labels": ["home", "thing"]}),
        ("update", "2", {"labels": ["thing"]}),
    ]


@pytest.mark.asyncio
async def test_view_keeps_filter_groups(config) -> None:
    client = FakeTodoistClient(
        filter_groups=[
            ("today", [make_task("1", "TEST")]),
            ("overdue", [make_task("2", "OLD")]),
        ]
    )

    text = await batch.view(client, config, FilterFlag("today, overdue"), SortOrder.VALUE)

    assert "Tasks for today" in text
    assert "Tasks for overdue" in text
    assert "- TEST\n" in text
    assert text.index("Tasks for today") < text.index("- TEST") < text.index("Tasks for overdue")
    assert client.mutations == []


@pytest.mark.asyncio
async def test_view_with_project_uses_project_name(config, project) -> None:
    client = FakeTodoistClient(project_tasks=[make_task("1", "TEST")])

    text = await batch.view(client, config, ProjectFlag(project), SortOrder.VALUE)

    assert "Tasks for myproject" in text
    assert "- TEST\n" in text


@pytest.mark.asyncio
async def test_import_creates_one_task_per_line_in_order() -> None:
    client = FakeTodoistClient()
    path = INPUTS / "import_tasks.txt"
    expected = [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]

    result = await batch.import_file(client, path)

    assert result == "✓"
    assert len(client.created) == 14
    assert client.created == expected


@pytest.mark.asyncio
async def test_import_stops_at_first_gateway_error(tmp_path: Path) -> None:
    class _Failing(FakeTodoistClient):
        async def quick_create_task(self, text: str):
            if text == "second":
                raise GatewayError("Todoist", "400 bad request")
            return await super().quick_create_task(text)

    path = tmp_path / "tasks.txt"
    path.write_text("first\nsecond\nthird\n", encoding="utf-8")
    client = _Failing()

    with pytest.raises(GatewayError):
        await batch.import_file(client, path)
    assert client.created == ["first"]


def test_reject_parent_tasks_keeps_unrelated_tasks() -> None:
    tasks = [make_task("a"), make_task("b", parent_id="zzz"), make_task("c", parent_id="a")]
    assert [task.id for task in batch.reject_parent_tasks(tasks)] == ["b", "c"]


def test_tasks_due_tonight_locally_are_not_in_the_future() -> None:
    los_angeles = ZoneInfo("America/Los_Angeles")
    now = dt.datetime(2026, 10, 17, 9, 0, tzinfo=los_angeles)
    tonight = Task.from_api({"id": "1", "content": "TEST", "due": {"date": "2026-10-18T03:00:00Z"}})
    tomorrow = Task.from_api({"id": "2", "content": "TEST", "due": {"date": "2026-10-18T15:00:00Z"}})

    assert tonight.due is not None and tonight.due.local_date(los_angeles) == dt.date(2026, 10, 17)
    assert [task.id for task in batch.filter_not_in_future([tonight, tomorrow], now)] == ["1"]


@pytest.mark.asyncio
async def test_each_timebox_step_sees_config_saved_by_the_previous_step(
    monkeypatch: pytest.MonkeyPatch, config
) -> None:
    client = FakeTodoistClient(filter_groups=[("today", [make_task("1"), make_task("2")])])
    monkeypatch.setattr(prompt_ui, "ask_duration", lambda task: 15)
    original = walker.timebox_task
    seen: list[list[str]] = []

    async def _recording(client, step_config, task, countdown, **kwargs):
        seen.append([project.name for project in step_config.projects])
        if task.id == "1":
            step_config.with_projects(
                [*step_config.projects, Project(id="456", name="errands")]
            ).save()
        return await original(client, step_config, task, countdown, **kwargs)

    monkeypatch.setattr(walker, "timebox_task", _recording)

    result = await batch.timebox(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert result == "Successfully timeboxed 'today'"
    assert seen == [["myproject"], ["myproject", "errands"]]


@pytest.mark.asyncio
async def test_skipped_task_still_counts_down(monkeypatch: pytest.MonkeyPatch, config) -> None:
    client = FakeTodoistClient(
        filter_groups=[("today", [make_task("1"), make_task("2")])],
        comment_errors={"1": RuntimeError("boom")},
    )
    monkeypatch.setattr(prompt_ui, "choose_process_action", lambda task: "skip")
    original = walker.process_task
    remaining: list[int] = []

    async def _recording(client, comments, step_config, task, countdown, **kwargs):
        remaining.append(countdown.remaining)
        return await original(client, comments, step_config, task, countdown, **kwargs)

    monkeypatch.setattr(walker, "process_task", _recording)

    await batch.process(client, config, FilterFlag("today"), SortOrder.VALUE)

    assert remaining == [1]
