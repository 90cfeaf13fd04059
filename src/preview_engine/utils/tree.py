"""Projection of a flat path set into a nested file tree."""

from collections.abc import Iterable
from typing import Any

from preview_engine.models.session import TreeNode
from preview_engine.utils.paths import split_segments


def build_tree(paths: Iterable[str]) -> list[TreeNode]:
    """Build a hierarchical tree from normalized file paths.

    Directories are inferred from path segments. Within each level
    directories come first, then files, each group sorted by name, so the
    same path set always yields the same tree shape.
    """
    root: dict[str, Any] = {}
    for path in paths:
        segments = split_segments(path)
        level = root
        for segment in segments[:-1]:
            node = level.setdefault(segment, {})
            if node is None:
                node = level[segment] = {}
            level = node
        if segments and segments[-1] not in level:
            level[segments[-1]] = None
    return _to_nodes(root, "")


def _to_nodes(level: dict[str, Any], prefix: str) -> list[TreeNode]:
    dirs = sorted(name for name, child in level.items() if child is not None)
    files = sorted(name for name, child in level.items() if child is None)

    nodes: list[TreeNode] = []
    for name in dirs:
        path = f"{prefix}{name}"
        nodes.append(
            TreeNode(name=name, path=path, type="dir", children=_to_nodes(level[name], f"{path}/"))
        )
    for name in files:
        nodes.append(TreeNode(name=name, path=f"{prefix}{name}", type="file"))
    return nodes

