"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from jiraview.config import AppConfig


def raw_issue(key: str, parent: str | None = None, **fields: Any) -> dict[str, Any]:
    """Build a Jira REST issue payload the way the search/agile endpoints return it."""
    payload_fields: dict[str, Any] = {
        "summary": f"Summary of {key}",
        "status": {"name": "In Progress"},
        "priority": {"name": "Medium"},
        "assignee": {"displayName": "Jane Doe"},
        "issuetype": {"name": "Story"},
        "timespent": None,
        "timeoriginalestimate": None,
    }
    if parent:
        payload_fields["parent"] = {"key": parent}
    payload_fields.update(fields)
    return {"id": f"id-{key}", "key": key, "fields": payload_fields}


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        jira_base_url="https://example.atlassian.net",
        jira_email="jane@example.com",
        jira_token="secret",
        sprint_cache_path=str(tmp_path / "jira_sprint_cache.json"),
    )
