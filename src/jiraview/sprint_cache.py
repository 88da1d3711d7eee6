from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable

from jiraview.models import SprintCacheEntry

logger = logging.getLogger(__name__)

DEFAULT_SPRINT_CACHE_TTL = 1_209_600  # two weeks
DEFAULT_SPRINT_CACHE_PATH = Path.home() / ".local" / "share" / "jiraview" / "jira_sprint_cache.json"


class SprintCache:
    """Project key -> active board/sprint, persisted to a single JSON file.

    Expiry is checked on read only. Every mutation rewrites the whole file.
    """

    def __init__(
        self,
        path: Path = DEFAULT_SPRINT_CACHE_PATH,
        ttl: int = DEFAULT_SPRINT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.ttl = ttl
        self.clock = clock
        self.entries: dict[str, SprintCacheEntry] = {}

    def load(self) -> None:
        self.entries = {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            logger.debug("Ignoring unreadable sprint cache %s: %s", self.path, e)
            return
        if not isinstance(raw, dict):
            return
        for project, value in raw.items():
            entry = self._entry_from_json(value)
            if entry is not None:
                self.entries[str(project)] = entry

    def get(self, project: str) -> SprintCacheEntry | None:
        entry = self.entries.get(project)
        if entry is None:
            return None
        if self.clock() - entry.timestamp < self.ttl:
            return entry
        return None

    def put(self, project: str, board_id: Any, sprint_id: Any) -> SprintCacheEntry:
        entry = SprintCacheEntry(board_id=board_id, sprint_id=sprint_id, timestamp=self.clock())
        self.entries[project] = entry
        self._save()
        return entry

    def clear(self, project: str | None = None) -> None:
        if project is not None:
            self.entries.pop(project, None)
        else:
            self.entries = {}
        self._save()

    def _save(self) -> None:
        payload = {
            project: {
                "board_id": entry.board_id,
                "sprint_id": entry.sprint_id,
                "timestamp": entry.timestamp,
            }
            for project, entry in self.entries.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, sort_keys=True), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write sprint cache %s: %s", self.path, e)

    @staticmethod
    def _entry_from_json(value: Any) -> SprintCacheEntry | None:
        if not isinstance(value, dict):
            return None
        board_id = value.get("board_id")
        sprint_id = value.get("sprint_id")
        if board_id is None or sprint_id is None:
            return None
        try:
            timestamp = float(value.get("timestamp") or 0)
        except (TypeError, ValueError):
            timestamp = 0.0
        return SprintCacheEntry(board_id=board_id, sprint_id=sprint_id, timestamp=timestamp)
