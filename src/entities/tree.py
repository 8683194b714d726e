"""Assemble a flat, permission-filtered list of entities into a forest."""

import uuid
from dataclasses import dataclass, field
from typing import Iterable

from .store import ListItem


@dataclass
class TreeNode:
    item: ListItem
    children: list["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        payload = self.item.to_dict()
        payload["children"] = [child.to_dict() for child in self.children]
        return payload


def build_tree(items: Iterable[ListItem]) -> list[TreeNode]:
    """Build a deterministic forest from ``items``.

    Items without a parent, or whose parent is not part of ``items`` (a
    permission-filtered view is expected to be partial), become roots.
    Siblings are ordered by name, then by id, at every level.
    """
    nodes: dict[uuid.UUID, TreeNode] = {}
    for item in items:
        nodes[item.id] = TreeNode(item=item)

    roots: list[TreeNode] = []
    for node in nodes.values():
        parent = nodes.get(node.item.parent_id) if node.item.parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)

    _sort_siblings(roots)
    return roots


def _sort_key(node: TreeNode) -> tuple[str, str]:
    return node.item.name, str(node.item.id)


def _sort_siblings(nodes: list[TreeNode]) -> None:
    stack = [nodes]
    while stack:
        siblings = stack.pop()
        siblings.sort(key=_sort_key)
        stack.extend(node.children for node in siblings if node.children)


__all__ = ["TreeNode", "build_tree"]
