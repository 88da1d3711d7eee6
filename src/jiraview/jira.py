from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from jiraview.adf import markdown_to_adf
from jiraview.config import AppConfig
from jiraview.errors import TransportError

logger = logging.getLogger(__name__)

CURRENT_USER_TOKEN = "currentUser()"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        parts = [str(m) for m in body.get("errorMessages") or []]
        errors = body.get("errors") or {}
        if isinstance(errors, dict):
            parts.extend(f"{name}: {message}" for name, message in errors.items())
        if parts:
            return "; ".join(parts)
    return response.reason_phrase or "Unknown Jira API error"


class JiraClient:
    TIMEOUT = 30

    def __init__(
        self,
        base_url: Optional[str] = None,
        email: Optional[str] = None,
        token: Optional[str] = None,
        auth_type: str = "basic",
        use_jql_post: bool = True,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.email = email or ""
        self.token = token or ""
        self.auth_type = auth_type
        self.use_jql_post = use_jql_post
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if auth_type == "bearer" and self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    @classmethod
    def from_config(cls, config: AppConfig) -> "JiraClient":
        return cls(
            base_url=config.jira_base_url,
            email=config.jira_email,
            token=config.jira_token,
            auth_type=config.auth_type,
            use_jql_post=config.use_jql_post,
        )

    @property
    def is_configured(self) -> bool:
        if not self.base_url or not self.token:
            return False
        return self.auth_type == "bearer" or bool(self.email)

    def _auth(self) -> httpx.BasicAuth | None:
        if self.auth_type == "basic" and self.email:
            return httpx.BasicAuth(self.email, self.token)
        return None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.is_configured:
            raise TransportError("Jira credentials are not set (JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN).")

        logger.debug("%s %s params=%s", method, path, params)
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.TIMEOUT) as client:
                response = await client.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    headers=self.headers,
                    auth=self._auth(),
                )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(_error_message(response), status_code=response.status_code)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            result = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {path}", status_code=response.status_code) from e
        return result if isinstance(result, dict) else {"values": result}

    async def search_issues(
        self,
        jql: str,
        page_token: str | None,
        page_size: int,
        fields: list[str] | None = None,
    ) -> dict[str, Any]:
        if self.use_jql_post:
            body: dict[str, Any] = {"jql": jql, "maxResults": page_size}
            if fields:
                body["fields"] = fields
            if page_token:
                body["nextPageToken"] = page_token
            return await self._request("POST", "/rest/api/3/search/jql", json=body)

        params: dict[str, Any] = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)
        if page_token:
            params["nextPageToken"] = page_token
        return await self._request("GET", "/rest/api/3/search/jql", params=params)

    async def get_boards(self, project: str) -> dict[str, Any]:
        return await self._request("GET", "/rest/agile/1.0/board", params={"projectKeyOrId": project})

    async def get_active_sprints(self, board_id: Any) -> dict[str, Any]:
        return await self._request("GET", f"/rest/agile/1.0/board/{board_id}/sprint", params={"state": "active"})

    async def get_sprint_issues(
        self,
        sprint_id: Any,
        start_at: int,
        max_results: int,
        fields: list[str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"startAt": start_at, "maxResults": max_results}
        if fields:
            params["fields"] = ",".join(fields)
        return await self._request("GET", f"/rest/agile/1.0/sprint/{sprint_id}/issue", params=params)

    async def get_myself(self) -> dict[str, Any]:
        return await self._request("GET", "/rest/api/3/myself")

    async def resolve_current_user(self, jql: str) -> str:
        if CURRENT_USER_TOKEN not in jql:
            return jql
        me = await self.get_myself()
        account_id = me.get("accountId")
        if not account_id:
            raise TransportError("Could not resolve currentUser(): no accountId for the authenticated user")
        return jql.replace(CURRENT_USER_TOKEN, f'"{account_id}"')

    async def get_issue(self, issue_key: str) -> dict[str, Any]:
        return await self._request("GET", f"/rest/api/3/issue/{issue_key}")

    async def get_comments(self, issue_key: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/rest/api/3/issue/{issue_key}/comment", params={"orderBy": "created"})
        return list(data.get("comments") or [])

    async def add_comment(self, issue_key: str, markdown: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/rest/api/3/issue/{issue_key}/comment",
            json={"body": markdown_to_adf(markdown)},
        )

    async def edit_comment(self, issue_key: str, comment_id: str, markdown: str) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"/rest/api/3/issue/{issue_key}/comment/{comment_id}",
            json={"body": markdown_to_adf(markdown)},
        )
