"""Restore contiguous order values within one sibling group."""

from dataclasses import replace
from typing import Iterable

from core.outline.tree import OutlineNode


def renumber_group(nodes: dict[int, OutlineNode], sibling_ids: Iterable[int]) -> int:
    """Set order = position + 1 for every node in the group, in place.

    Only the given group is touched; nodes whose order is already right keep
    their identity. Works on a working copy of the arena owned by the caller.

    Returns:
        Number of nodes whose order changed
    """
    changed = 0
    for position, folder_index in enumerate(sibling_ids, start=1):
        node = nodes[folder_index]
        if node.order != position:
            nodes[folder_index] = replace(node, order=position)
            changed += 1
    return changed
