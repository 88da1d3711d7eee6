from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from jiraview.sprint_cache import DEFAULT_SPRINT_CACHE_PATH, DEFAULT_SPRINT_CACHE_TTL

logger = logging.getLogger(__name__)

DEFAULT_STORY_POINT_FIELD = "customfield_10035"
DEFAULT_QUERIES = {
    "My Tasks": "assignee = currentUser() AND statusCategory != Done ORDER BY updated DESC",
}


_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})
_CONFIG_SUFFIXES = frozenset({".json", ".yml", ".yaml"})


def _to_int(value: Any, default: int, minimum: int) -> int:
    """Whole number from a config or env value; bools and unparsable text give ``default``."""
    if isinstance(value, bool):
        return max(minimum, default)
    try:
        parsed = int(value.strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        parsed = default
    return max(minimum, parsed)


def _env_int(name: str, default: int, minimum: int) -> int:
    return _to_int(os.getenv(name), default, minimum)


def _to_bool(value: Any, default: bool) -> bool:
    match value:
        case bool():
            return value
        case None:
            return default
    word = str(value).strip().casefold()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return default


@dataclass(frozen=True)
class ProjectConfig:
    story_point_field: str = DEFAULT_STORY_POINT_FIELD
    # (field id, label) pairs shown in the issue detail view
    custom_fields: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class AppConfig:
    jira_base_url: str = ""
    jira_email: str = ""
    jira_token: str = ""
    auth_type: str = "basic"
    use_jql_post: bool = True
    limit: int = 200
    sprint_cache_ttl: int = DEFAULT_SPRINT_CACHE_TTL
    sprint_cache_path: str = str(DEFAULT_SPRINT_CACHE_PATH)
    issue_cache_ttl: int = 300
    story_point_field: str = DEFAULT_STORY_POINT_FIELD
    projects: dict[str, dict[str, Any]] = field(default_factory=dict)
    queries: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_QUERIES))
    config_source: str = "defaults/env"

    @classmethod
    def from_env(cls) -> "AppConfig":
        auth_type = os.getenv("JV_AUTH_TYPE", "basic").strip().casefold()
        config = cls(
            jira_base_url=os.getenv("JIRA_BASE_URL", "").rstrip("/"),
            jira_email=os.getenv("JIRA_EMAIL", ""),
            jira_token=os.getenv("JIRA_API_TOKEN", ""),
            auth_type=auth_type if auth_type in {"basic", "bearer"} else "basic",
            use_jql_post=_to_bool(os.getenv("JV_USE_JQL_POST"), True),
            limit=_env_int("JV_LIMIT", 200, 1),
            sprint_cache_ttl=_env_int("JV_SPRINT_CACHE_TTL", DEFAULT_SPRINT_CACHE_TTL, 0),
            sprint_cache_path=os.getenv("JV_SPRINT_CACHE_PATH") or str(DEFAULT_SPRINT_CACHE_PATH),
            issue_cache_ttl=_env_int("JV_ISSUE_CACHE_TTL", 300, 0),
        )
        config_path = os.getenv("JV_CONFIG_PATH", "jiraview.config.json")
        return config.merge_file(Path(config_path))

    def merge_file(self, path: Path) -> "AppConfig":
        if not path.exists():
            return self
        loaded = self._load_config_file(path)
        if not loaded:
            return self
        merged = dict(self.__dict__)
        for key in merged:
            if key in loaded:
                merged[key] = loaded[key]
        merged["jira_base_url"] = str(merged["jira_base_url"] or "").strip().rstrip("/")
        merged["jira_email"] = str(merged["jira_email"] or "").strip()
        merged["jira_token"] = str(merged["jira_token"] or "").strip()
        auth_type = str(merged["auth_type"]).strip().casefold()
        merged["auth_type"] = auth_type if auth_type in {"basic", "bearer"} else self.auth_type
        merged["use_jql_post"] = _to_bool(merged["use_jql_post"], self.use_jql_post)
        merged["limit"] = _to_int(merged["limit"], self.limit, 1)
        merged["sprint_cache_ttl"] = _to_int(merged["sprint_cache_ttl"], self.sprint_cache_ttl, 0)
        merged["sprint_cache_path"] = str(merged["sprint_cache_path"] or "").strip() or self.sprint_cache_path
        merged["issue_cache_ttl"] = _to_int(merged["issue_cache_ttl"], self.issue_cache_ttl, 0)
        merged["story_point_field"] = str(merged["story_point_field"] or "").strip() or self.story_point_field
        if not isinstance(merged["projects"], dict):
            merged["projects"] = {}
        else:
            merged["projects"] = {
                str(key): value
                for key, value in merged["projects"].items()
                if str(key).strip() and isinstance(value, dict)
            }
        if not isinstance(merged["queries"], dict):
            merged["queries"] = dict(self.queries)
        else:
            merged["queries"] = {
                str(name): str(jql)
                for name, jql in merged["queries"].items()
                if str(name).strip() and str(jql).strip()
            }
        merged["config_source"] = str(path)
        return AppConfig(**merged)

    def project_config(self, project_key: str | None) -> ProjectConfig:
        overrides = self.projects.get(project_key or "") or {}
        story_point_field = str(overrides.get("story_point_field") or "").strip() or self.story_point_field
        custom_fields: list[tuple[str, str]] = []
        for entry in overrides.get("custom_fields") or []:
            if isinstance(entry, dict) and entry.get("key") and entry.get("label"):
                custom_fields.append((str(entry["key"]), str(entry["label"])))
        return ProjectConfig(story_point_field=story_point_field, custom_fields=tuple(custom_fields))

    def resolve_query(self, query: str) -> str:
        """Return the saved JQL for a query name, or the text itself."""
        return self.queries.get(query, query)

    def _load_config_file(self, path: Path) -> dict[str, Any]:
        suffix = path.suffix.lower()
        if suffix not in _CONFIG_SUFFIXES:
            logger.warning("Ignoring config %s: expected .json, .yml or .yaml", path)
            return {}
        try:
            text = path.read_text(encoding="utf-8")
            parsed = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            # ValueError covers UnicodeDecodeError and JSONDecodeError
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            return {}
        if not isinstance(parsed, dict):
            logger.warning("Ignoring config %s: top level is not a mapping", path)
            return {}
        return parsed
