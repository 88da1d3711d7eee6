"""Tests for JiraClient using pytest-httpx."""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from jiraview.errors import TransportError
from jiraview.jira import JiraClient

BASE_URL = "https://example.atlassian.net"


def _client(**kwargs) -> JiraClient:
    options = {"base_url": BASE_URL, "email": "jane@example.com", "token": "secret"}
    options.update(kwargs)
    return JiraClient(**options)


def test_is_configured_requires_email_for_basic_auth() -> None:
    assert _client().is_configured
    assert not _client(email="").is_configured
    assert _client(email="", auth_type="bearer").is_configured
    assert not _client(token="").is_configured
    assert not JiraClient().is_configured


@pytest.mark.asyncio
async def test_unconfigured_client_raises_without_request() -> None:
    with pytest.raises(TransportError, match="credentials are not set"):
        await JiraClient().get_myself()


@pytest.mark.asyncio
async def test_search_posts_jql_with_page_token(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE_URL}/rest/api/3/search/jql",
        json={"issues": [{"key": "ABC-1"}], "nextPageToken": "tok-2"},
    )
    page = await _client().search_issues("project = ABC", "tok-1", 50, ["summary", "status"])

    assert page["nextPageToken"] == "tok-2"
    request = httpx_mock.get_request()
    assert request.headers["Authorization"].startswith("Basic ")
    assert json.loads(request.content) == {
        "jql": "project = ABC",
        "maxResults": 50,
        "fields": ["summary", "status"],
        "nextPageToken": "tok-1",
    }


@pytest.mark.asyncio
async def test_search_can_use_get_with_query_params(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(method="GET", json={"issues": []})
    await _client(use_jql_post=False).search_issues("project = ABC", None, 100, ["summary", "status"])

    request = httpx_mock.get_request()
    assert request.url.path == "/rest/api/3/search/jql"
    assert request.url.params["jql"] == "project = ABC"
    assert request.url.params["maxResults"] == "100"
    assert request.url.params["fields"] == "summary,status"
    assert "nextPageToken" not in request.url.params


@pytest.mark.asyncio
async def test_sprint_issue_page_uses_offset_params(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(method="GET", json={"total": 0, "issues": []})
    await _client().get_sprint_issues(42, 100, 50, ["summary", "customfield_10035"])

    request = httpx_mock.get_request()
    assert request.url.path == "/rest/agile/1.0/sprint/42/issue"
    assert request.url.params["startAt"] == "100"
    assert request.url.params["maxResults"] == "50"
    assert request.url.params["fields"] == "summary,customfield_10035"


@pytest.mark.asyncio
async def test_board_and_sprint_lookups(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(
        url=f"{BASE_URL}/rest/agile/1.0/board?projectKeyOrId=ABC",
        json={"values": [{"id": 7}]},
    )
    httpx_mock.add_response(
        url=f"{BASE_URL}/rest/agile/1.0/board/7/sprint?state=active",
        json={"values": [{"id": 99, "state": "active"}]},
    )
    client = _client()

    boards = await client.get_boards("ABC")
    sprints = await client.get_active_sprints(7)
    assert boards["values"][0]["id"] == 7
    assert sprints["values"][0]["id"] == 99


@pytest.mark.asyncio
async def test_bearer_auth_sets_header(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(json={"accountId": "acc-1"})
    await _client(email="", auth_type="bearer").get_myself()
    assert httpx_mock.get_request().headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_http_error_carries_jira_messages(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(
        status_code=400,
        json={"errorMessages": ["Field 'foo' does not exist"], "errors": {"jql": "bad query"}},
    )
    with pytest.raises(TransportError) as raised:
        await _client().search_issues("foo = 1", None, 10)

    assert raised.value.status_code == 400
    assert raised.value.message == "Field 'foo' does not exist; jql: bad query"
    assert str(raised.value).endswith("| status=400")


@pytest.mark.asyncio
async def test_http_error_without_json_body(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(status_code=502, text="Bad gateway")
    with pytest.raises(TransportError, match="Bad gateway") as raised:
        await _client().get_boards("ABC")
    assert raised.value.status_code == 502


@pytest.mark.asyncio
async def test_network_failure_becomes_transport_error(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    with pytest.raises(TransportError, match="connection refused") as raised:
        await _client().get_boards("ABC")
    assert raised.value.status_code is None


@pytest.mark.asyncio
async def test_empty_response_body_is_empty_dict(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(status_code=204)
    assert await _client().edit_comment("ABC-1", "10", "updated") == {}


@pytest.mark.asyncio
async def test_resolve_current_user_skips_request_when_token_absent() -> None:
    # no response registered: any request would fail the test
    assert await _client().resolve_current_user("project = ABC") == "project = ABC"


@pytest.mark.asyncio
async def test_resolve_current_user_substitutes_account_id(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(url=f"{BASE_URL}/rest/api/3/myself", json={"accountId": "acc-1"})
    resolved = await _client().resolve_current_user("assignee = currentUser() OR reporter = currentUser()")
    assert resolved == 'assignee = "acc-1" OR reporter = "acc-1"'


@pytest.mark.asyncio
async def test_resolve_current_user_without_account_id_fails(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(url=f"{BASE_URL}/rest/api/3/myself", json={"displayName": "Jane"})
    with pytest.raises(TransportError, match="currentUser"):
        await _client().resolve_current_user("assignee = currentUser()")


@pytest.mark.asyncio
async def test_comments_are_listed_and_posted_as_adf(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/rest/api/3/issue/ABC-1/comment?orderBy=created",
        json={"comments": [{"id": "10"}, {"id": "11"}], "total": 2},
    )
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE_URL}/rest/api/3/issue/ABC-1/comment",
        status_code=201,
        json={"id": "12"},
    )
    client = _client()

    comments = await client.get_comments("ABC-1")
    created = await client.add_comment("ABC-1", "Looks **good**")

    assert [c["id"] for c in comments] == ["10", "11"]
    assert created == {"id": "12"}
    posted = json.loads(httpx_mock.get_requests()[-1].content)
    assert posted["body"]["type"] == "doc"
    assert posted["body"]["content"][0]["content"][1] == {
        "type": "text",
        "text": "good",
        "marks": [{"type": "strong"}],
    }
