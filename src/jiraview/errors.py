from __future__ import annotations


class JiraViewError(Exception):
    """Base class for every failure surfaced to callers."""


class ProjectRequired(JiraViewError):
    def __init__(self) -> None:
        super().__init__("Project Key is required")


class NoBoardsFound(JiraViewError):
    def __init__(self, project: str) -> None:
        super().__init__(f"No boards found for project {project}")
        self.project = project


class TransportError(JiraViewError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} | status={self.status_code}"
        return self.message


class MalformedRecord(JiraViewError):
    """Raised for a raw issue that cannot be normalized; the fetch skips it."""
