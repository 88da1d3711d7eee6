"""Conversion between Atlassian Document Format (ADF) and Markdown.

Jira Cloud exchanges descriptions and comments as ADF, a tree of typed nodes.
``adf_to_markdown`` renders any such tree for display. ``markdown_to_adf`` is
the best-effort inverse used when submitting edited text: it only understands
paragraphs, ``**bold**`` and ``[text](url)`` links.
"""

from __future__ import annotations

import re
from typing import Any

from jiraview.models import AdfNode

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_LINK = re.compile(r"\[([^\]]*)\]\(([^)]*)\)")


def _apply_mark(text: str, mark: Any) -> str:
    if not isinstance(mark, dict):
        return text
    mark_type = mark.get("type")
    if mark_type == "strong":
        return f"**{text}**"
    if mark_type == "em":
        return f"_{text}_"
    if mark_type == "code":
        return f"`{text}`"
    if mark_type == "strike":
        return f"~~{text}~~"
    if mark_type == "link":
        attrs = mark.get("attrs")
        href = attrs.get("href") if isinstance(attrs, dict) else None
        return f"[{text}]({href or ''})"
    return text


def _heading_level(attrs: dict[str, Any]) -> int:
    try:
        level = int(attrs.get("level") or 1)
    except (TypeError, ValueError):
        return 1
    return level if level > 0 else 1


def _render(node: Any) -> str:
    if not node or not isinstance(node, dict):
        return ""
    node_type = node.get("type")
    attrs = node.get("attrs")
    if not isinstance(attrs, dict):
        attrs = {}

    if node_type == "hardBreak":
        return "\n"
    if node_type == "rule":
        return "---\n\n"
    if node_type == "text":
        text = node.get("text")
        if not isinstance(text, str):
            text = ""
        marks = node.get("marks")
        for mark in marks if isinstance(marks, list) else []:
            text = _apply_mark(text, mark)
        return text

    children = node.get("content")
    # a container without content renders nothing, not even its own prefix
    if not isinstance(children, list):
        return ""
    if node_type == "bulletList":
        return "".join(f"- {_render(child)}" for child in children) + "\n"
    if node_type == "orderedList":
        return "".join(f"{index}. {_render(child)}" for index, child in enumerate(children, start=1)) + "\n"

    joined = "".join(_render(child) for child in children)
    if node_type == "paragraph":
        return joined + "\n\n"
    if node_type == "heading":
        return "#" * _heading_level(attrs) + " " + joined + "\n\n"
    if node_type == "codeBlock":
        return f"```{attrs.get('language') or ''}\n{joined}\n```\n\n"
    if node_type == "blockquote":
        body = joined.rstrip("\n")
        return "> " + body.replace("\n", "\n> ") + "\n\n"
    # doc, listItem and unknown node types
    return joined


def adf_to_markdown(adf: AdfNode | None) -> str:
    if not adf:
        return ""
    return _render(adf)


def _text_node(text: str, marks: list[dict[str, Any]] | None = None) -> AdfNode:
    node: AdfNode = {"type": "text", "text": text}
    if marks:
        node["marks"] = marks
    return node


def parse_inline_markdown(text: str) -> list[AdfNode]:
    nodes: list[AdfNode] = []
    pos = 0
    while pos < len(text):
        bold = _BOLD.search(text, pos)
        link = _LINK.search(text, pos)
        if bold and (not link or bold.start() < link.start()):
            match = bold
        elif link:
            match = link
        else:
            nodes.append(_text_node(text[pos:]))
            break

        if match.start() > pos:
            nodes.append(_text_node(text[pos:match.start()]))
        if match is bold:
            nodes.append(_text_node(match.group(1), [{"type": "strong"}]))
        else:
            nodes.append(_text_node(match.group(1), [{"type": "link", "attrs": {"href": match.group(2)}}]))
        pos = match.end()

    if not nodes:
        nodes.append(_text_node(""))
    return nodes


def markdown_to_adf(text: str) -> AdfNode:
    doc: AdfNode = {"type": "doc", "version": 1, "content": []}
    paragraph: AdfNode | None = None

    # only "\n" separates lines, and only an empty line ends a paragraph
    for line in text.split("\n"):
        if line == "":
            if paragraph is not None:
                doc["content"].append(paragraph)
                paragraph = None
            continue
        if paragraph is None:
            paragraph = {"type": "paragraph", "content": []}
        else:
            paragraph["content"].append(_text_node(" "))
        paragraph["content"].extend(parse_inline_markdown(line))

    if paragraph is not None:
        doc["content"].append(paragraph)
    return doc
