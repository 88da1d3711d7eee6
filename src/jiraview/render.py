from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from rich.text import Text

from jiraview.adf import adf_to_markdown
from jiraview.models import IssueDetail, IssueNode
from jiraview.tree import visible_nodes

COMMENT_SEPARATOR = "─" * 40

TYPE_ICONS = {
    "bug": ("✖", "#f38ba8"),
    "story": ("★", "#a6e3a1"),
    "task": ("✔", "#89b4fa"),
    "sub-task": ("↳", "#94e2d5"),
    "subtask": ("↳", "#94e2d5"),
    "epic": ("⚡", "#cba6f7"),
}
DEFAULT_TYPE_ICON = ("•", "#9399b2")


def format_time(seconds: float | None) -> str:
    if not seconds or seconds <= 0:
        return "0"
    hours = seconds / 3600
    if float(hours).is_integer():
        return str(int(hours))
    return f"{hours:.1f}"


def _format_points(points: float | None) -> str:
    if points is None:
        return ""
    if float(points).is_integer():
        return str(int(points))
    return f"{points:g}"


@dataclass(frozen=True)
class TreeLine:
    node: IssueNode
    depth: int
    text: Text


def render_issue_line(node: IssueNode, depth: int) -> Text:
    icon, icon_color = TYPE_ICONS.get(node.type.casefold(), DEFAULT_TYPE_ICON)
    if node.children:
        marker = "▾ " if node.expanded else "▸ "
    else:
        marker = "  "
    assignee = node.assignee or "Unassigned"

    line = Text()
    line.append("  " * depth)
    line.append(marker, style="bold")
    line.append(f"{icon} ", style=icon_color)
    line.append(node.key, style="bold" if depth == 0 else "bold #89dceb")
    line.append(f" {node.summary}")
    points = _format_points(node.story_points)
    if points:
        line.append(f"  [{points}]", style="bold #f38ba8")
    if node.time_spent or node.time_estimate:
        line.append(f"  {format_time(node.time_spent)}/{format_time(node.time_estimate)}h", style="#89b4fa")
    line.append(f"  {assignee}", style="italic #6c7086" if assignee == "Unassigned" else "#a6e3a1")
    line.append("  ")
    line.append(f" {node.status} ", style="bold reverse" if depth == 0 else "reverse")
    return line


def render_issue_tree(forest: Sequence[IssueNode]) -> list[TreeLine]:
    return [TreeLine(node, depth, render_issue_line(node, depth)) for node, depth in visible_nodes(forest)]


def _markdown_lines(markdown: str) -> list[Text]:
    return [Text(line) for line in markdown.splitlines() if line.strip()]


def _format_created(created: str) -> str:
    # 2024-05-01T10:42:13.000+0000 -> 2024-05-01 10:42
    if len(created) >= 16 and created[10] == "T":
        return f"{created[:10]} {created[11:16]}"
    return created


def render_issue_detail(
    detail: IssueDetail,
    tab: str = "description",
    custom_fields: Iterable[tuple[str, str]] = (),
) -> list[Text]:
    fields = detail.fields
    lines = [Text(f"# {detail.key}: {fields.get('summary') or ''}", style="bold"), Text("")]

    if tab == "comments":
        lines.extend(_render_comments(detail.comments))
        return lines

    status = (fields.get("status") or {}).get("name") or "Unknown"
    assignee = (fields.get("assignee") or {}).get("displayName") or "Unassigned"
    priority = (fields.get("priority") or {}).get("name") or "None"
    lines.append(Text.assemble(("**Status**: ", "bold"), status))
    lines.append(Text.assemble(("**Assignee**: ", "bold"), assignee))
    lines.append(Text.assemble(("**Priority**: ", "bold"), priority))
    lines.extend([Text(""), Text("## Description", style="bold"), Text("")])

    description = adf_to_markdown(fields.get("description"))
    if description.strip():
        lines.extend(_markdown_lines(description))
    else:
        lines.append(Text("_No description_", style="italic"))

    attachments = fields.get("attachment") or []
    if attachments:
        lines.extend([Text(""), Text("## Attachments", style="bold"), Text("")])
        for attachment in attachments:
            size_kb = int((attachment.get("size") or 0) // 1024)
            mime = attachment.get("mimeType") or "unknown"
            lines.append(Text(f"📎 {attachment.get('filename')} ({size_kb} KB, {mime})"))
            lines.append(Text(f"   {attachment.get('content') or ''}", style="underline"))

    for field_id, label in custom_fields:
        value = fields.get(field_id)
        if not value:
            continue
        lines.extend([Text(""), Text(f"## {label}", style="bold"), Text("")])
        if isinstance(value, dict):
            lines.extend(_markdown_lines(adf_to_markdown(value)))
        else:
            lines.append(Text(str(value)))
    return lines


def _render_comments(comments: Sequence[dict]) -> list[Text]:
    if not comments:
        return [Text("_No comments_", style="italic")]

    lines: list[Text] = []
    for index, comment in enumerate(comments):
        if index > 0:
            lines.extend([Text(""), Text(COMMENT_SEPARATOR, style="dim")])
        author = (comment.get("author") or {}).get("displayName") or "Unknown"
        created = _format_created(comment.get("created") or "")
        lines.append(Text.assemble((author, "bold"), "  ", (created, "dim")))
        body = adf_to_markdown(comment.get("body"))
        lines.extend(Text(line) for line in body.rstrip("\n").split("\n") if body.strip())
    return lines
