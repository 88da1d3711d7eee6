from pathlib import Path

from jiraview.config import DEFAULT_QUERIES, AppConfig
from jiraview.sprint_cache import DEFAULT_SPRINT_CACHE_TTL


def test_defaults() -> None:
    config = AppConfig()
    assert config.limit == 200
    assert config.sprint_cache_ttl == DEFAULT_SPRINT_CACHE_TTL == 1_209_600
    assert config.issue_cache_ttl == 300
    assert config.story_point_field == "customfield_10035"
    assert config.auth_type == "basic"
    assert config.use_jql_post is True
    assert config.queries == DEFAULT_QUERIES


def test_config_merge_file_json(tmp_path: Path) -> None:
    config_file = tmp_path / "jiraview.config.json"
    config_file.write_text(
        """
{
  "jira_base_url": "https://acme.atlassian.net/",
  "limit": "50",
  "sprint_cache_ttl": 600,
  "use_jql_post": "no",
  "auth_type": "Bearer",
  "projects": {
    "ABC": {
      "story_point_field": "customfield_10016",
      "custom_fields": [{"key": "customfield_10020", "label": "Team"}, {"key": "broken"}]
    },
    "BAD": "not-an-object"
  },
  "queries": {"Mine": "assignee = currentUser()"}
}
""".strip(),
        encoding="utf-8",
    )

    merged = AppConfig().merge_file(config_file)
    assert merged.jira_base_url == "https://acme.atlassian.net"
    assert merged.limit == 50
    assert merged.sprint_cache_ttl == 600
    assert merged.use_jql_post is False
    assert merged.auth_type == "bearer"
    assert set(merged.projects) == {"ABC"}
    assert merged.queries == {"Mine": "assignee = currentUser()"}
    assert merged.config_source == str(config_file)

    project = merged.project_config("ABC")
    assert project.story_point_field == "customfield_10016"
    assert project.custom_fields == (("customfield_10020", "Team"),)
    assert merged.project_config("XYZ").story_point_field == "customfield_10035"


def test_config_merge_file_yaml(tmp_path: Path) -> None:
    config_file = tmp_path / "jiraview.config.yaml"
    config_file.write_text("limit: 25\nstory_point_field: customfield_10002\n", encoding="utf-8")

    merged = AppConfig().merge_file(config_file)
    assert merged.limit == 25
    assert merged.story_point_field == "customfield_10002"
    assert merged.project_config(None).story_point_field == "customfield_10002"


def test_config_merge_file_invalid_values_fall_back(tmp_path: Path) -> None:
    config_file = tmp_path / "jiraview.config.json"
    config_file.write_text('{"limit": 0, "issue_cache_ttl": "soon", "auth_type": "oauth"}', encoding="utf-8")

    merged = AppConfig().merge_file(config_file)
    assert merged.limit == 1
    assert merged.issue_cache_ttl == 300
    assert merged.auth_type == "basic"


def test_config_merge_file_invalid_json_falls_back(tmp_path: Path) -> None:
    config_file = tmp_path / "jiraview.config.json"
    config_file.write_text("{ this-is: bad json", encoding="utf-8")

    defaults = AppConfig()
    assert defaults.merge_file(config_file) == defaults
    assert defaults.merge_file(tmp_path / "missing.json") == defaults


def test_resolve_query_by_name_or_raw_jql() -> None:
    config = AppConfig(queries={"Open bugs": "issuetype = Bug AND statusCategory != Done"})
    assert config.resolve_query("Open bugs") == "issuetype = Bug AND statusCategory != Done"
    assert config.resolve_query("project = ABC") == "project = ABC"


def test_config_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("JIRA_BASE_URL", "https://acme.atlassian.net/")
    monkeypatch.setenv("JIRA_EMAIL", "jane@example.com")
    monkeypatch.setenv("JIRA_API_TOKEN", "secret")
    monkeypatch.setenv("JV_LIMIT", "75")
    monkeypatch.setenv("JV_SPRINT_CACHE_TTL", "not-a-number")
    monkeypatch.setenv("JV_SPRINT_CACHE_PATH", str(tmp_path / "cache.json"))
    monkeypatch.setenv("JV_USE_JQL_POST", "false")
    monkeypatch.setenv("JV_CONFIG_PATH", str(tmp_path / "non-existent-config-file.json"))

    config = AppConfig.from_env()
    assert config.jira_base_url == "https://acme.atlassian.net"
    assert config.jira_email == "jane@example.com"
    assert config.jira_token == "secret"
    assert config.limit == 75
    assert config.sprint_cache_ttl == DEFAULT_SPRINT_CACHE_TTL
    assert config.sprint_cache_path == str(tmp_path / "cache.json")
    assert config.use_jql_post is False
    assert config.config_source == "defaults/env"


def test_config_merge_unreadable_file_falls_back(tmp_path: Path) -> None:
    defaults = AppConfig()

    binary = tmp_path / "jiraview.config.json"
    binary.write_bytes(b"\xff\xfe\x00{not utf-8")
    assert defaults.merge_file(binary) == defaults

    directory = tmp_path / "config-dir.yaml"
    directory.mkdir()
    assert defaults.merge_file(directory) == defaults

    unsupported = tmp_path / "jiraview.config.toml"
    unsupported.write_text('limit = 5\n', encoding="utf-8")
    assert defaults.merge_file(unsupported) == defaults

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n", encoding="utf-8")
    assert defaults.merge_file(scalar) == defaults


def test_config_integer_coercion(tmp_path: Path, monkeypatch) -> None:
    config_file = tmp_path / "jiraview.config.json"
    config_file.write_text('{"limit": true, "sprint_cache_ttl": " 90 ", "issue_cache_ttl": -5}', encoding="utf-8")

    merged = AppConfig().merge_file(config_file)
    assert merged.limit == 200
    assert merged.sprint_cache_ttl == 90
    assert merged.issue_cache_ttl == 0

    monkeypatch.setenv("JV_LIMIT", " 40 ")
    monkeypatch.setenv("JV_ISSUE_CACHE_TTL", "-1")
    monkeypatch.setenv("JV_CONFIG_PATH", str(tmp_path / "missing.json"))
    config = AppConfig.from_env()
    assert config.limit == 40
    assert config.issue_cache_ttl == 0
