from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

AdfNode = dict[str, Any]


@dataclass
class Issue:
    key: str
    summary: str
    status: str
    type: str = "Task"
    parent: Optional[str] = None
    assignee: Optional[str] = None
    priority: Optional[str] = None
    time_spent: Optional[float] = None
    time_estimate: Optional[float] = None
    story_points: Optional[float] = None


@dataclass
class IssueNode(Issue):
    children: List["IssueNode"] = field(default_factory=list)
    expanded: bool = True

    @classmethod
    def from_issue(cls, issue: Issue) -> "IssueNode":
        return cls(**vars(issue))


@dataclass(frozen=True)
class SprintCacheEntry:
    board_id: Any
    sprint_id: Any
    timestamp: float


@dataclass
class IssueDetail:
    key: str
    raw: dict[str, Any]
    comments: list[dict[str, Any]] = field(default_factory=list)
    fetched_at: float = 0.0

    @property
    def fields(self) -> dict[str, Any]:
        return self.raw.get("fields") or {}
