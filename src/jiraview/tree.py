from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence

from jiraview.models import Issue, IssueNode


def build_issue_tree(issues: Sequence[Issue]) -> list[IssueNode]:
    """Arrange a flat, rank-ordered issue list into a forest.

    Roots and siblings keep the input order. A parent key that is not part of
    the batch makes the issue a root. For duplicate keys the last record wins
    and is placed once, where the key first appeared. An issue whose ancestor
    chain loops back to itself becomes a root, so every key is placed exactly
    once.
    """
    key_to_node: dict[str, IssueNode] = {}
    for issue in issues:
        key_to_node[issue.key] = IssueNode.from_issue(issue)

    roots: list[IssueNode] = []
    # key -> parent key actually used (None for roots)
    placed: dict[str, Optional[str]] = {}

    for issue in issues:
        node = key_to_node[issue.key]
        if node.key in placed:
            continue
        parent_key = node.parent if node.parent in key_to_node else None
        if parent_key is not None and _leads_back_to(node.key, parent_key, key_to_node, placed):
            parent_key = None
        placed[node.key] = parent_key
        if parent_key is None:
            roots.append(node)
        else:
            key_to_node[parent_key].children.append(node)

    return roots


def _leads_back_to(
    key: str,
    start: str,
    key_to_node: dict[str, IssueNode],
    placed: dict[str, Optional[str]],
) -> bool:
    seen: set[str] = set()
    current: Optional[str] = start
    while current is not None and current not in seen:
        if current == key:
            return True
        seen.add(current)
        if current in placed:
            current = placed[current]
        else:
            parent = key_to_node[current].parent
            current = parent if parent in key_to_node else None
    return False


def iter_nodes(forest: Iterable[IssueNode], depth: int = 0) -> Iterator[tuple[IssueNode, int]]:
    for node in forest:
        yield node, depth
        yield from iter_nodes(node.children, depth + 1)


def visible_nodes(forest: Iterable[IssueNode], depth: int = 0) -> Iterator[tuple[IssueNode, int]]:
    for node in forest:
        yield node, depth
        if node.expanded:
            yield from visible_nodes(node.children, depth + 1)


def find_node(forest: Iterable[IssueNode], key: str) -> IssueNode | None:
    for node, _ in iter_nodes(forest):
        if node.key == key:
            return node
    return None
