# core/outline/mutations.py
"""Path-addressed edits on an outline tree.

Every function is pure: it takes an OutlineTree and returns a new one,
sharing all nodes it didn't change. Inserts, deletes and moves renumber only
the sibling group they touched.
"""

import logging
from dataclasses import replace
from typing import Literal

from core.outline.renumber import renumber_group
from core.outline.tree import (
    MAX_DEPTH,
    InvalidPathError,
    MaxDepthError,
    NodeDraft,
    OutlineNode,
    OutlineTree,
    Path,
)

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


def _with_group(
    tree: OutlineTree,
    nodes: dict[int, OutlineNode],
    parent_path: Path,
    sibling_ids: tuple[int, ...],
    next_folder_index: int | None = None,
) -> OutlineTree:
    """Store a rewritten sibling group and build the resulting tree."""
    roots = tree.roots
    if parent_path:
        parent_id = tree.resolve(parent_path)[-1]
        nodes[parent_id] = replace(nodes[parent_id], children=sibling_ids)
    else:
        roots = sibling_ids

    return OutlineTree(
        nodes=nodes,
        roots=roots,
        next_folder_index=(
            tree.next_folder_index if next_folder_index is None else next_folder_index
        ),
    )


def can_add_child(tree: OutlineTree, path: Path) -> bool:
    """Whether the node at path may receive a subchapter."""
    if len(path) > MAX_DEPTH:
        return False
    try:
        tree.resolve(path)
    except InvalidPathError:
        return False
    return len(path) <= MAX_DEPTH


def _insert(tree: OutlineTree, parent_path: Path, draft: NodeDraft) -> OutlineTree:
    siblings = tree.sibling_ids(parent_path)
    folder_index = tree.next_folder_index
    nodes = dict(tree.nodes)
    nodes[folder_index] = OutlineNode(
        title=draft.title,
        content=draft.content,
        order=len(siblings) + 1,
        folder_index=folder_index,
    )
    new_siblings = siblings + (folder_index,)
    renumber_group(nodes, new_siblings)
    return _with_group(
        tree, nodes, parent_path, new_siblings, next_folder_index=folder_index + 1
    )


def insert_root(tree: OutlineTree, draft: NodeDraft) -> OutlineTree:
    """Append a new chapter at the end of the root list."""
    return _insert(tree, (), draft)


def insert_child(tree: OutlineTree, parent_path: Path, draft: NodeDraft) -> OutlineTree:
    """Append a new subchapter under the node at parent_path.

    Raises:
        MaxDepthError: If the parent is already at MAX_DEPTH
        InvalidPathError: If parent_path doesn't address a node
    """
    parent_path = tuple(parent_path)
    if len(parent_path) > MAX_DEPTH:
        logger.info(f"Rejected subchapter under {list(parent_path)}: max depth reached")
        raise MaxDepthError(parent_path)
    if not parent_path:
        raise InvalidPathError("Parent path is empty; use insert_root for chapters")
    tree.resolve(parent_path)
    return _insert(tree, parent_path, draft)


def delete_at(tree: OutlineTree, path: Path) -> OutlineTree:
    """Remove the node at path together with its subtree.

    The surviving siblings are renumbered. Removed folder indices are not
    reused: next_folder_index never goes down.
    """
    path = tuple(path)
    folder_index = tree.resolve(path)[-1]
    parent_path = path[:-1]

    nodes = dict(tree.nodes)
    for removed in tree.subtree_ids(folder_index):
        del nodes[removed]

    survivors = tuple(i for i in tree.sibling_ids(parent_path) if i != folder_index)
    renumber_group(nodes, survivors)
    return _with_group(tree, nodes, parent_path, survivors)


def move_sibling(tree: OutlineTree, path: Path, direction: Direction) -> OutlineTree:
    """Swap the node at path with its previous ("up") or next ("down") sibling.

    Moving the first node up or the last node down returns the same tree.
    """
    if direction not in ("up", "down"):
        raise ValueError(f"Invalid direction: {direction!r}")

    path = tuple(path)
    tree.resolve(path)
    parent_path = path[:-1]
    index = path[-1]
    siblings = list(tree.sibling_ids(parent_path))

    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(siblings):
        return tree

    siblings[index], siblings[target] = siblings[target], siblings[index]
    nodes = dict(tree.nodes)
    renumber_group(nodes, siblings)
    return _with_group(tree, nodes, parent_path, tuple(siblings))


def update_content(tree: OutlineTree, path: Path, title: str, content: str) -> OutlineTree:
    """Replace the title and content of the node at path."""
    folder_index = tree.resolve(tuple(path))[-1]
    node = tree.nodes[folder_index]
    if node.title == title and node.content == content:
        return tree

    nodes = dict(tree.nodes)
    nodes[folder_index] = replace(node, title=title, content=content)
    return OutlineTree(
        nodes=nodes, roots=tree.roots, next_folder_index=tree.next_folder_index
    )


def sort_outline(tree: OutlineTree) -> OutlineTree:
    """Sort every sibling group by (order, folder_index).

    Folder paths survive sorting; positional paths generally don't.
    """

    def _sorted(ids: tuple[int, ...]) -> tuple[int, ...]:
        return tuple(
            sorted(ids, key=lambda i: (tree.nodes[i].order, tree.nodes[i].folder_index))
        )

    nodes = dict(tree.nodes)
    changed = False
    for folder_index, node in tree.nodes.items():
        ordered = _sorted(node.children)
        if ordered != node.children:
            nodes[folder_index] = replace(node, children=ordered)
            changed = True

    roots = _sorted(tree.roots)
    if not changed and roots == tree.roots:
        return tree
    return OutlineTree(nodes=nodes, roots=roots, next_folder_index=tree.next_folder_index)
