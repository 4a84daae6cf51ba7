# core/outline/flattener.py
"""Flatten an outline tree into the linear sequence learners navigate.

Each node becomes one FlatRecord in depth-first pre-order. Records carry both
addressing schemes: the positional path (valid for this snapshot only) and the
folder path (stable, used when saving).
"""

from dataclasses import dataclass
from typing import Any

from core.outline.mutations import sort_outline
from core.outline.tree import FolderPath, OutlineNode, OutlineTree, Path


@dataclass(frozen=True)
class FlatRecord:
    """One node of the outline at its position in the flattened sequence."""

    node: OutlineNode
    depth: int
    parent_flat_index: int | None
    flat_index: int
    path: Path
    folder_path: FolderPath

    @property
    def display_number(self) -> str:
        """Human numbering like "2.1" built from the positional path."""
        return ".".join(str(position + 1) for position in self.path)

    @property
    def is_root(self) -> bool:
        return self.depth == 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the API response (camelCase, like the lesson snapshot)."""
        return {
            "title": self.node.title,
            "order": self.node.order,
            "folderIndex": self.node.folder_index,
            "hasSublessons": self.node.has_children,
            "depth": self.depth,
            "parentFlatIndex": self.parent_flat_index,
            "flatIndex": self.flat_index,
            "path": list(self.path),
            "folderPath": list(self.folder_path),
            "displayNumber": self.display_number,
        }


def flatten_outline(tree: OutlineTree) -> list[FlatRecord]:
    """Flatten a tree whose sibling groups are already sorted by order.

    Iterative pre-order walk; flat_index is the position in the output.

    Args:
        tree: The outline to flatten (see project_outline to sort first)

    Returns:
        One FlatRecord per node
    """
    records: list[FlatRecord] = []
    # (folder_index, depth, parent_flat_index, path, folder_path), reversed so
    # the first sibling is popped first
    stack = [
        (folder_index, 0, None, (position,), (folder_index,))
        for position, folder_index in enumerate(tree.roots)
    ]
    stack.reverse()

    while stack:
        folder_index, depth, parent_flat_index, path, folder_path = stack.pop()
        node = tree.nodes[folder_index]
        flat_index = len(records)
        records.append(
            FlatRecord(
                node=node,
                depth=depth,
                parent_flat_index=parent_flat_index,
                flat_index=flat_index,
                path=path,
                folder_path=folder_path,
            )
        )
        for position in reversed(range(len(node.children))):
            child = node.children[position]
            stack.append(
                (child, depth + 1, flat_index, path + (position,), folder_path + (child,))
            )

    return records


def project_outline(tree: OutlineTree) -> list[FlatRecord]:
    """Sort every sibling group by order, then flatten."""
    return flatten_outline(sort_outline(tree))


def find_by_path(records: list[FlatRecord], path: Path) -> FlatRecord | None:
    path = tuple(path)
    for record in records:
        if record.path == path:
            return record
    return None


def find_by_folder_path(
    records: list[FlatRecord], folder_path: FolderPath
) -> FlatRecord | None:
    folder_path = tuple(folder_path)
    for record in records:
        if record.folder_path == folder_path:
            return record
    return None


def ancestors_of(records: list[FlatRecord], flat_index: int) -> list[FlatRecord]:
    """Strict ancestors of a record, nearest first."""
    ancestors = []
    parent = records[flat_index].parent_flat_index
    while parent is not None:
        ancestors.append(records[parent])
        parent = records[parent].parent_flat_index
    return ancestors
