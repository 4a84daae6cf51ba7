# core/outline/tree.py
"""Outline tree model for course chapters and subchapters.

Nodes live in a flat store keyed by folder_index (the arena). Each node keeps
an ordered tuple of child folder indices instead of owning nested nodes, so a
lookup by path is O(depth) and edits can return a new tree that shares every
node they didn't touch.

Two addressing schemes:
- path: sibling positions from the roots, e.g. (0, 2). Only valid against the
  tree snapshot it was computed from.
- folder path: the folder_index of every ancestor plus the node's own, e.g.
  (4, 9). Stable across re-sorting, used for persistence.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

# Roots are depth 0; grandchildren (depth 2) may not have children.
MAX_DEPTH = 2

Path = tuple[int, ...]
FolderPath = tuple[int, ...]


class OutlineError(Exception):
    """Base class for outline structure errors."""

    pass


class InvalidPathError(OutlineError, LookupError):
    """Raised when a path or folder path doesn't address a node."""

    pass


class MaxDepthError(OutlineError):
    """Raised when an insert would create a node below MAX_DEPTH."""

    def __init__(self, parent_path: Path):
        self.parent_path = tuple(parent_path)
        super().__init__(f"Max depth reached: cannot add a child under {list(parent_path)}")


class DuplicateFolderIndexError(OutlineError):
    """Raised when a snapshot reuses a folder_index."""

    pass


@dataclass(frozen=True)
class NodeDraft:
    """Title and content of a node that hasn't been inserted yet."""

    title: str
    content: str


@dataclass(frozen=True)
class OutlineNode:
    """A single chapter or subchapter."""

    title: str
    content: str
    order: int
    folder_index: int
    children: tuple[int, ...] = ()

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0


@dataclass(frozen=True)
class OutlineTree:
    """An immutable outline: arena of nodes plus the ordered root list."""

    nodes: Mapping[int, OutlineNode] = field(default_factory=dict)
    roots: tuple[int, ...] = ()
    next_folder_index: int = 0

    def __post_init__(self):
        # Freeze the arena so callers can't mutate a shared snapshot
        if not isinstance(self.nodes, MappingProxyType):
            object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[OutlineNode]:
        return (self.nodes[folder_index] for folder_index in self.roots)

    def get(self, folder_index: int) -> OutlineNode:
        try:
            return self.nodes[folder_index]
        except KeyError:
            raise InvalidPathError(f"No node with folder index {folder_index}")

    def children_of(self, node: OutlineNode) -> list[OutlineNode]:
        return [self.nodes[child] for child in node.children]

    def sibling_ids(self, parent_path: Path) -> tuple[int, ...]:
        """Folder indices of the group under parent_path (() = the roots)."""
        if not parent_path:
            return self.roots
        return self.node_at(parent_path).children

    def resolve(self, path: Path) -> list[int]:
        """Walk a path and return the folder index of every node on it.

        Raises:
            InvalidPathError: If the path is empty or any position is out of range
        """
        if not path:
            raise InvalidPathError("Empty path")

        chain = []
        group = self.roots
        for depth, position in enumerate(path):
            if position < 0 or position >= len(group):
                raise InvalidPathError(
                    f"Position {position} out of range at depth {depth} of path {list(path)}"
                )
            folder_index = group[position]
            chain.append(folder_index)
            group = self.nodes[folder_index].children
        return chain

    def node_at(self, path: Path) -> OutlineNode:
        return self.nodes[self.resolve(path)[-1]]

    def folder_path_of(self, path: Path) -> FolderPath:
        return tuple(self.resolve(path))

    def node_at_folder_path(self, folder_path: FolderPath) -> OutlineNode:
        """Look up a node by its folder path, checking the parent chain."""
        if not folder_path:
            raise InvalidPathError("Empty folder path")

        group = self.roots
        node = None
        for folder_index in folder_path:
            if folder_index not in group:
                raise InvalidPathError(f"Folder path {list(folder_path)} not found")
            node = self.nodes[folder_index]
            group = node.children
        return node

    def subtree_ids(self, folder_index: int) -> list[int]:
        """Folder indices of a node and all of its descendants."""
        ids = []
        stack = [folder_index]
        while stack:
            current = stack.pop()
            ids.append(current)
            stack.extend(self.nodes[current].children)
        return ids

    def to_nested(self) -> list[dict[str, Any]]:
        """Serialize to nested lesson dicts (the snapshot format)."""

        def _serialize(node: OutlineNode) -> dict[str, Any]:
            return {
                "title": node.title,
                "content": node.content,
                "order": node.order,
                "folderIndex": node.folder_index,
                "hasSublessons": node.has_children,
                "sublessons": [_serialize(child) for child in self.children_of(node)],
            }

        return [_serialize(node) for node in self]

    @classmethod
    def from_nested(
        cls, lessons: list[dict[str, Any]], next_folder_index: int | None = None
    ) -> "OutlineTree":
        """Build a tree from nested lesson dicts that already carry folder indices.

        Accepts "sublessons" or "children" for nested lists. Order values in
        each sibling group are ranked into 1..N, keeping the list order.
        next_folder_index carries a stored allocator forward so ids of
        deleted nodes are not handed out again.

        Raises:
            DuplicateFolderIndexError: If two lessons share a folder index
            MaxDepthError: If a lesson below MAX_DEPTH has children
            ValueError: If a lesson has no folderIndex or a non-integer order
        """
        nodes: dict[int, OutlineNode] = {}

        def _build(items: list[dict[str, Any]], parent_path: Path) -> tuple[int, ...]:
            if items and len(parent_path) > MAX_DEPTH:
                raise MaxDepthError(parent_path)

            ranks = _rank_orders([_order_of(item) for item in items])
            ids = []
            for position, item in enumerate(items):
                folder_index = item.get("folderIndex", item.get("folder_index"))
                if folder_index is None:
                    raise ValueError(f"Lesson {item.get('title')!r} has no folderIndex")
                folder_index = int(folder_index)
                if folder_index in nodes:
                    raise DuplicateFolderIndexError(
                        f"Folder index {folder_index} used more than once"
                    )
                # Reserve the id before descending so duplicates below are caught
                nodes[folder_index] = None  # type: ignore[assignment]
                nested = item.get("sublessons") or item.get("children") or []
                children = _build(nested, parent_path + (position,))
                nodes[folder_index] = OutlineNode(
                    title=item.get("title", ""),
                    content=item.get("content", ""),
                    order=ranks[position],
                    folder_index=folder_index,
                    children=children,
                )
                ids.append(folder_index)
            return tuple(ids)

        roots = _build(lessons, ())
        # A stored allocator may be ahead of the live ids (deleted nodes)
        lowest_free = max(nodes) + 1 if nodes else 0
        next_folder_index = max(next_folder_index or 0, lowest_free)
        return cls(nodes=nodes, roots=roots, next_folder_index=next_folder_index)


def _order_of(item: dict[str, Any]) -> int:
    order = item.get("order", 0)
    try:
        return int(order)
    except (TypeError, ValueError):
        raise ValueError(f"Lesson {item.get('title')!r} has an invalid order: {order!r}")


def _rank_orders(orders: list[int]) -> list[int]:
    """Map raw order values to 1..N, ties broken by list position."""
    ranked = sorted(range(len(orders)), key=lambda i: (orders[i], i))
    ranks = [0] * len(orders)
    for rank, position in enumerate(ranked, start=1):
        ranks[position] = rank
    return ranks


def depth_of(path: Path) -> int:
    return len(path) - 1


def check_invariants(tree: OutlineTree) -> list[str]:
    """Return a description of every invariant the tree violates (empty if none)."""
    problems = []
    seen: set[int] = set()

    def _check_group(ids: tuple[int, ...], depth: int, label: str):
        orders = sorted(tree.nodes[i].order for i in ids)
        if orders != list(range(1, len(ids) + 1)):
            problems.append(f"{label}: order values {orders} are not 1..{len(ids)}")
        for folder_index in ids:
            if folder_index in seen:
                problems.append(f"folder index {folder_index} appears twice")
                continue
            seen.add(folder_index)
            node = tree.nodes[folder_index]
            if node.children and depth >= MAX_DEPTH:
                problems.append(f"node {folder_index} has children at depth {depth}")
            _check_group(node.children, depth + 1, f"children of {folder_index}")

    _check_group(tree.roots, 0, "roots")
    if seen != set(tree.nodes):
        problems.append("arena holds nodes that are not reachable from the roots")
    if tree.nodes and tree.next_folder_index <= max(tree.nodes):
        problems.append("next_folder_index would reuse an existing folder index")
    return problems
