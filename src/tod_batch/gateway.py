"""Async Todoist REST client."""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import httpx

from .config import Config
from .models import Comment, GatewayError, Project, Task

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
PAGE_LIMIT = 200
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=5.0)

T = TypeVar("T")


def split_filter(query: str) -> list[str]:
    """Split a Todoist filter on ``,`` into the separate lists it describes."""
    return [part.strip() for part in query.split(",") if part.strip()]


def _decode(rows: list[dict[str, Any]], build: Callable[[dict[str, Any]], T], what: str) -> list[T]:
    try:
        return [build(row) for row in rows]
    except (KeyError, TypeError, ValueError) as exc:
        raise GatewayError("Todoist", f"Malformed {what} in response: {exc!r}") from exc


class TodoistClient:
    """Thin async wrapper over the Todoist API.

    Use as an async context manager so the underlying connection pool is
    closed when the run ends.
    """

    def __init__(
        self,
        config: Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=f"{config.base_url}{API_PREFIX}",
            headers={"Authorization": f"Bearer {config.require_token()}"},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> TodoistClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = await self._http.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GatewayError(
                "Todoist",
                f"{exc.response.status_code} for {method} {path}: {exc.response.text.strip()}",
            ) from exc
        except httpx.HTTPError as exc:
            raise GatewayError("httpx", f"{method} {path} failed: {exc}") from exc

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError("Todoist", f"Invalid JSON from {method} {path}") from exc

    async def _paginated(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            page_params = dict(params, limit=PAGE_LIMIT)
            if cursor:
                page_params["cursor"] = cursor
            payload = await self._request("GET", path, params=page_params)
            if not isinstance(payload, dict):
                raise GatewayError("Todoist", f"Unexpected response shape from GET {path}")
            items.extend(payload.get("results") or [])
            cursor = payload.get("next_cursor")
            if not cursor:
                return items

    async def all_projects(self) -> list[Project]:
        rows = await self._paginated("/projects", {})
        return _decode(rows, lambda row: Project(id=str(row["id"]), name=str(row["name"])), "project")

    async def all_tasks_by_project(
        self,
        project: Project,
        extra_filter: str | None = None,
    ) -> list[Task]:
        if extra_filter:
            query = f"#{project.name} & ({extra_filter})"
            rows = await self._paginated("/tasks/filter", {"query": query})
        else:
            rows = await self._paginated("/tasks/", {"project_id": project.id})
        return _decode(rows, Task.from_api, "task")

    async def all_tasks_by_filters(self, query: str) -> list[tuple[str, list[Task]]]:
        groups: list[tuple[str, list[Task]]] = []
        for sub_query in split_filter(query):
            rows = await self._paginated("/tasks/filter", {"query": sub_query})
            groups.append((sub_query, _decode(rows, Task.from_api, "task")))
        return groups

    async def all_comments(self, task: Task) -> list[Comment]:
        rows = await self._paginated("/comments/", {"task_id": task.id})
        return _decode(rows, Comment.from_api, "comment")

    async def update_task(self, task: Task, **fields: Any) -> Task:
        payload = await self._request("POST", f"/tasks/{task.id}", json=fields)
        logger.info("Updated task %s (%s)", task.id, ", ".join(sorted(fields)))
        if isinstance(payload, dict) and "id" in payload:
            return Task.from_api(payload)
        return task

    async def complete_task(self, task: Task) -> None:
        await self._request("POST", f"/tasks/{task.id}/close")
        logger.info("Completed task %s", task.id)

    async def delete_task(self, task: Task) -> None:
        await self._request("DELETE", f"/tasks/{task.id}")
        logger.info("Deleted task %s", task.id)

    async def create_subtask(self, parent: Task, content: str) -> Task:
        payload = await self._request(
            "POST",
            "/tasks",
            json={"content": content, "parent_id": parent.id, "project_id": parent.project_id},
        )
        return Task.from_api(payload)

    async def quick_create_task(self, text: str) -> Task:
        payload = await self._request("POST", "/tasks/quick", json={"text": text})
        return Task.from_api(payload)
