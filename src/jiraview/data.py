from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List

from jiraview.config import AppConfig
from jiraview.errors import JiraViewError, TransportError
from jiraview.fetch import FetchPipeline
from jiraview.jira import JiraClient
from jiraview.models import Issue, IssueDetail, IssueNode
from jiraview.sprint_cache import SprintCache
from jiraview.tree import build_issue_tree, find_node, visible_nodes

logger = logging.getLogger(__name__)


class DataManager:
    def __init__(self, config: AppConfig | None = None, clock: Callable[[], float] = time.time):
        self.config = config or AppConfig.from_env()
        self.clock = clock
        self.jira = JiraClient.from_config(self.config)
        self.sprint_cache = SprintCache(
            Path(self.config.sprint_cache_path),
            ttl=self.config.sprint_cache_ttl,
            clock=clock,
        )
        self.pipeline = FetchPipeline(self.jira, self.sprint_cache, self.config)
        self.issues: List[Issue] = []
        self.tree: List[IssueNode] = []
        self.issue_cache: dict[str, IssueDetail] = {}
        self.is_initialized = False
        self.fetch_in_progress = False
        self.current_project: str | None = None
        self.current_view: str | None = None
        self.last_fetch_at: str | None = None
        self.last_fetch_error: str | None = None
        self.last_fetch_result: str = "idle"

    def initialize(self) -> None:
        """Loads the persisted sprint cache. Call once per process."""
        self.sprint_cache.load()
        self.is_initialized = True

    async def load_sprint(self, project: str, force_refresh: bool = False) -> bool:
        return await self._load(
            "sprint",
            project,
            lambda: self.pipeline.fetch_sprint_issues(project, force_refresh=force_refresh),
        )

    async def load_backlog(self, project: str) -> bool:
        return await self._load("backlog", project, lambda: self.pipeline.fetch_backlog(project))

    async def load_query(self, project: str, query: str) -> bool:
        jql = self.config.resolve_query(query)
        return await self._load("query", project, lambda: self.pipeline.fetch_by_query(project, jql))

    async def _load(
        self,
        view: str,
        project: str,
        fetch: Callable[[], Awaitable[List[Issue]]],
    ) -> bool:
        self.fetch_in_progress = True
        self.last_fetch_error = None
        self.last_fetch_result = "fetching"
        try:
            issues = await fetch()
        except JiraViewError as e:
            logger.warning("%s fetch for %s failed: %s", view, project, e)
            self.last_fetch_error = str(e)
            self.last_fetch_result = "failed"
            return False
        finally:
            self.fetch_in_progress = False

        self.issues = issues
        self.tree = build_issue_tree(issues)
        self.current_project = project
        self.current_view = view
        self.last_fetch_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self.last_fetch_result = "success"
        return True

    def fetch_status_summary(self) -> str:
        if self.fetch_in_progress:
            return "fetching"
        if self.last_fetch_result == "success":
            return f"success {self.current_view}:{self.current_project} issues:{len(self.issues)}"
        if self.last_fetch_error:
            return f"failed: {self.last_fetch_error}"
        return self.last_fetch_result

    def get_issue_by_key(self, key: str) -> IssueNode | None:
        return find_node(self.tree, key)

    def toggle_expanded(self, key: str) -> bool:
        node = self.get_issue_by_key(key)
        if node is None or not node.children:
            return False
        node.expanded = not node.expanded
        return True

    def visible_issue_keys(self) -> list[str]:
        return [node.key for node, _ in visible_nodes(self.tree)]

    def clear_sprint_cache(self, project: str | None = None) -> None:
        self.sprint_cache.clear(project)

    async def open_issue(self, issue_key: str, force_refresh: bool = False) -> IssueDetail:
        cached = self.issue_cache.get(issue_key)
        if cached and not force_refresh and self.clock() - cached.fetched_at < self.config.issue_cache_ttl:
            return cached

        raw_issue = await self.jira.get_issue(issue_key)
        key = raw_issue.get("key")
        if not key:
            raise TransportError("Invalid issue data received (missing key field)")
        try:
            comments = await self.jira.get_comments(key)
        except TransportError as e:
            logger.warning("Error fetching comments for %s: %s", key, e)
            comments = []

        detail = IssueDetail(key=key, raw=raw_issue, comments=comments, fetched_at=self.clock())
        self.issue_cache[key] = detail
        return detail

    async def refresh_comments(self, issue_key: str) -> list[dict]:
        comments = await self.jira.get_comments(issue_key)
        cached = self.issue_cache.get(issue_key)
        if cached:
            cached.comments = comments
            cached.fetched_at = self.clock()
        return comments

    async def add_comment(self, issue_key: str, markdown: str) -> tuple[bool, str]:
        if not markdown.strip():
            return False, "Empty comment, nothing to submit"
        return await self._write_comment(
            issue_key,
            lambda: self.jira.add_comment(issue_key, markdown),
            "Comment added.",
            "Error adding comment",
        )

    async def edit_comment(self, issue_key: str, comment_id: str, markdown: str) -> tuple[bool, str]:
        if not markdown.strip():
            return False, "Empty comment, nothing to submit"
        return await self._write_comment(
            issue_key,
            lambda: self.jira.edit_comment(issue_key, comment_id, markdown),
            "Comment updated.",
            "Error updating comment",
        )

    async def _write_comment(
        self,
        issue_key: str,
        remote_write: Callable[[], Awaitable[dict]],
        success_message: str,
        failure_prefix: str,
    ) -> tuple[bool, str]:
        try:
            await remote_write()
        except TransportError as e:
            return False, f"{failure_prefix}: {e}"
        try:
            await self.refresh_comments(issue_key)
        except TransportError as e:
            return True, f"{success_message} (warning: error refreshing comments: {e})"
        return True, success_message

    def clear_issue_cache(self, issue_key: str | None = None) -> None:
        if issue_key:
            self.issue_cache.pop(issue_key, None)
        else:
            self.issue_cache = {}
