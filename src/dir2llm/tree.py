from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass
class TreeNode:
    """A directory or file in the preview tree. The root has an empty name."""

    name: str
    is_dir: bool
    children: list[TreeNode] = field(default_factory=list)


def _sort_key(node: TreeNode) -> tuple[bool, str]:
    return (not node.is_dir, node.name)


def generate_tree(paths: Sequence[str]) -> TreeNode:
    """Build a tree from slash separated relative file paths.

    Shared directory prefixes map onto a single node. Siblings are ordered
    directories first, then files, each group sorted case-sensitively.

    Args:
        paths (Sequence[str]): file paths relative to the exported directory.

    Returns:
        TreeNode: the unnamed root directory node.
    """
    root = TreeNode(name="", is_dir=True)
    nodes: dict[str, TreeNode] = {"": root}

    for path in paths:
        parts = [part for part in path.replace("\\", "/").split("/") if part]
        current = ""
        for i, part in enumerate(parts):
            parent = nodes[current]
            current = f"{current}/{part}" if current else part
            if current not in nodes:
                node = TreeNode(name=part, is_dir=i < len(parts) - 1)
                parent.children.append(node)
                nodes[current] = node

    for node in nodes.values():
        node.children.sort(key=_sort_key)
    return root


def render_tree_markdown(root: TreeNode) -> list[str]:
    """Render a tree as a nested Markdown list, directories suffixed with "/".

    The root node itself is not rendered.
    """
    lines: list[str] = []

    def walk(node: TreeNode, depth: int) -> None:
        for child in node.children:
            suffix = "/" if child.is_dir else ""
            lines.append(f"{'  ' * depth}- {child.name}{suffix}")
            if child.is_dir:
                walk(child, depth + 1)

    walk(root, 0)
    return lines


def render_tree_lines(root: TreeNode, root_name: str = ".") -> list[str]:
    """Render a tree with box-drawing branches, suitable for plain text.

    Args:
        root (TreeNode): the tree to render.
        root_name (str): label printed on the first line in place of the root.

    Returns:
        list[str]: one string per line.
    """
    lines: list[str] = [root_name]

    def walk(node: TreeNode, prefix: str) -> None:
        for idx, child in enumerate(node.children):
            last = idx == len(node.children) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + child.name + ("/" if child.is_dir else ""))
            if child.is_dir:
                ext = "    " if last else "│   "
                walk(child, prefix + ext)

    walk(root, "")
    return lines
