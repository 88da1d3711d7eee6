"""Paged issue fetching: sprint resolution, pagination and record normalization."""

from __future__ import annotations

import logging
from typing import Any, Awaitable

from jiraview.config import AppConfig
from jiraview.errors import MalformedRecord, NoBoardsFound, ProjectRequired, TransportError
from jiraview.jira import JiraClient
from jiraview.models import Issue
from jiraview.sprint_cache import SprintCache

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
BASE_FIELDS = (
    "summary",
    "status",
    "parent",
    "priority",
    "assignee",
    "timespent",
    "timeoriginalestimate",
    "issuetype",
)
BACKLOG_JQL = (
    "project = '{project}' AND (sprint is EMPTY OR sprint not in openSprints()) "
    "AND issuetype not in (Epic) AND statusCategory != Done ORDER BY Rank ASC"
)


def _nested(value: Any, *path: str) -> Any:
    """Walk ``path`` through nested JSON objects; None once any step is missing or null."""
    for key in path:
        match value:
            case dict():
                value = value.get(key)
            case _:
                return None
    return value


def _number(value: Any) -> float | None:
    match value:
        case bool():
            return None
        case int() | float():
            return value
        case _:
            return None


def _text(value: Any, default: str) -> str:
    match value:
        case str() if value:
            return value
        case _:
            return default


def normalize_issue(raw: Any, story_point_field: str) -> Issue:
    key = _nested(raw, "key")
    if not isinstance(key, str) or not key:
        raise MalformedRecord("issue record has no key")
    fields = _nested(raw, "fields") or {}
    parent = _nested(fields, "parent", "key")
    return Issue(
        key=key,
        summary=_text(_nested(fields, "summary"), ""),
        status=_text(_nested(fields, "status", "name"), "Unknown"),
        type=_text(_nested(fields, "issuetype", "name"), "Task"),
        parent=parent if isinstance(parent, str) and parent else None,
        assignee=_text(_nested(fields, "assignee", "displayName"), "Unassigned"),
        priority=_text(_nested(fields, "priority", "name"), "None"),
        time_spent=_number(_nested(fields, "timespent")),
        time_estimate=_number(_nested(fields, "timeoriginalestimate")),
        story_points=_number(_nested(fields, story_point_field)),
    )


class FetchPipeline:
    def __init__(self, client: JiraClient, sprint_cache: SprintCache, config: AppConfig):
        self.client = client
        self.sprint_cache = sprint_cache
        self.config = config

    @property
    def limit(self) -> int:
        return max(1, self.config.limit)

    def fields_for(self, project: str) -> list[str]:
        return [*BASE_FIELDS, self.config.project_config(project).story_point_field]

    async def fetch_sprint_issues(self, project: str, force_refresh: bool = False) -> list[Issue]:
        if not project:
            raise ProjectRequired()

        cached = None if force_refresh else self.sprint_cache.get(project)
        if cached is not None:
            logger.debug("Using cached sprint %s (board %s) for %s", cached.sprint_id, cached.board_id, project)
            sprint_id = cached.sprint_id
        else:
            sprint_id = await self._resolve_active_sprint(project)
            if sprint_id is None:
                return []

        story_point_field = self.config.project_config(project).story_point_field
        fields = self.fields_for(project)
        collected: list[Issue] = []
        offset = 0
        while True:
            page_size = min(MAX_PAGE_SIZE, self.limit - len(collected))
            if page_size <= 0:
                break
            page = await self._call(
                "Failed to get sprint issues",
                self.client.get_sprint_issues(sprint_id, offset, page_size, fields),
            )
            raw_issues = page.get("issues")
            if not raw_issues:
                break
            self._accumulate(collected, raw_issues, story_point_field)
            total = page.get("total") or 0
            offset += len(raw_issues)
            if offset >= total or len(collected) >= self.limit:
                break
        logger.debug("Fetched %d sprint issues for %s", len(collected), project)
        return collected

    async def fetch_by_query(self, project: str, jql: str) -> list[Issue]:
        if not project:
            raise ProjectRequired()

        resolved = await self._call("Failed to resolve JQL", self.client.resolve_current_user(jql))
        story_point_field = self.config.project_config(project).story_point_field
        fields = self.fields_for(project)
        collected: list[Issue] = []
        page_token: str | None = None
        while True:
            page_size = min(MAX_PAGE_SIZE, self.limit - len(collected))
            if page_size <= 0:
                break
            page = await self._call(
                "Failed to search issues",
                self.client.search_issues(resolved, page_token, page_size, fields),
            )
            raw_issues = page.get("issues")
            if not raw_issues:
                break
            self._accumulate(collected, raw_issues, story_point_field)
            page_token = page.get("nextPageToken")
            if not page_token or len(collected) >= self.limit:
                break
        logger.debug("Fetched %d issues for %s with %r", len(collected), project, resolved)
        return collected

    async def fetch_backlog(self, project: str) -> list[Issue]:
        if not project:
            raise ProjectRequired()
        return await self.fetch_by_query(project, BACKLOG_JQL.format(project=project))

    async def _resolve_active_sprint(self, project: str) -> Any | None:
        boards = await self._call("Failed to get boards", self.client.get_boards(project))
        board_values = boards.get("values") or []
        if not board_values:
            raise NoBoardsFound(project)
        board_id = board_values[0].get("id")

        sprints = await self._call("Failed to get active sprints", self.client.get_active_sprints(board_id))
        sprint_values = sprints.get("values") or []
        if not sprint_values:
            logger.info("No active sprint on board %s for %s", board_id, project)
            return None
        sprint_id = sprint_values[0].get("id")
        self.sprint_cache.put(project, board_id, sprint_id)
        return sprint_id

    def _accumulate(self, collected: list[Issue], raw_issues: list[Any], story_point_field: str) -> None:
        for raw in raw_issues:
            if len(collected) >= self.limit:
                return
            try:
                collected.append(normalize_issue(raw, story_point_field))
            except MalformedRecord as e:
                logger.warning("Skipping issue record: %s", e)

    @staticmethod
    async def _call(context: str, request: Awaitable[Any]) -> Any:
        try:
            result = await request
        except TransportError as e:
            raise TransportError(f"{context}: {e.message}", status_code=e.status_code) from e
        return result if result is not None else {}
