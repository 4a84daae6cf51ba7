"""Database persistence for course outlines.

Nodes are stored one row per folder_index with a parent pointer and their
position in the sibling list, so a saved outline reloads with the same
folder paths. Saving an outline replaces all of its node rows; content-only
saves address a single lesson by folder path.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from core.outline.tree import FolderPath, OutlineTree
from core.tables import course_outlines, outline_nodes

logger = logging.getLogger(__name__)


class OutlineNotFoundError(Exception):
    """Raised when a course has no stored outline."""

    pass


class LessonNotFoundError(Exception):
    """Raised when a folder path doesn't match a stored lesson."""

    pass


def outline_to_rows(course_id: str, tree: OutlineTree) -> list[dict[str, Any]]:
    """One row per node, parents before children."""
    rows = []
    stack: list[tuple[int | None, tuple[int, ...]]] = [(None, tree.roots)]
    while stack:
        parent, group = stack.pop(0)
        for position, folder_index in enumerate(group):
            node = tree.nodes[folder_index]
            rows.append(
                {
                    "course_id": course_id,
                    "folder_index": folder_index,
                    "parent_folder_index": parent,
                    "position": position,
                    "order": node.order,
                    "title": node.title,
                    "content": node.content,
                }
            )
            if node.children:
                stack.append((folder_index, node.children))
    return rows


def outline_from_rows(rows: list[dict[str, Any]], next_folder_index: int = 0) -> OutlineTree:
    """Rebuild a tree from node rows (any row order)."""
    by_parent: dict[int | None, list[dict[str, Any]]] = {}
    for row in rows:
        by_parent.setdefault(row["parent_folder_index"], []).append(row)

    def _nest(parent: int | None) -> list[dict[str, Any]]:
        children = sorted(by_parent.get(parent, []), key=lambda r: r["position"])
        return [
            {
                "title": row["title"],
                "content": row["content"],
                "order": row["order"],
                "folderIndex": row["folder_index"],
                "sublessons": _nest(row["folder_index"]),
            }
            for row in children
        ]

    return OutlineTree.from_nested(_nest(None), next_folder_index=next_folder_index)


async def get_course_record(conn: AsyncConnection, course_id: str) -> dict:
    result = await conn.execute(
        select(course_outlines).where(course_outlines.c.course_id == course_id)
    )
    row = result.fetchone()
    if row is None:
        raise OutlineNotFoundError(f"Course outline not found: {course_id}")
    return dict(row._mapping)


async def load_outline(conn: AsyncConnection, course_id: str) -> OutlineTree:
    """Load a course's outline snapshot.

    Raises:
        OutlineNotFoundError: If the course has no outline
    """
    course = await get_course_record(conn, course_id)
    result = await conn.execute(
        select(outline_nodes).where(outline_nodes.c.course_id == course_id)
    )
    rows = [dict(row._mapping) for row in result.fetchall()]
    return outline_from_rows(rows, next_folder_index=course["next_folder_index"])


async def save_outline(
    conn: AsyncConnection,
    course_id: str,
    tree: OutlineTree,
    *,
    title: str | None = None,
    description: str | None = None,
) -> None:
    """Replace the stored outline of a course (whole-course save).

    Creates the course record if needed. Run inside a transaction so the
    delete and re-insert of node rows land together.
    """
    now = datetime.now(timezone.utc)
    result = await conn.execute(
        select(course_outlines.c.course_id).where(course_outlines.c.course_id == course_id)
    )
    course_values: dict[str, Any] = {
        "next_folder_index": tree.next_folder_index,
        "updated_at": now,
    }
    if title is not None:
        course_values["title"] = title
    if description is not None:
        course_values["description"] = description

    if result.fetchone() is None:
        await conn.execute(
            insert(course_outlines).values(course_id=course_id, **course_values)
        )
    else:
        await conn.execute(
            update(course_outlines)
            .where(course_outlines.c.course_id == course_id)
            .values(**course_values)
        )

    await conn.execute(delete(outline_nodes).where(outline_nodes.c.course_id == course_id))
    rows = outline_to_rows(course_id, tree)
    if rows:
        await conn.execute(insert(outline_nodes), rows)
    logger.info(f"Saved outline for course {course_id} ({len(rows)} lessons)")


async def save_lesson_content(
    conn: AsyncConnection, course_id: str, folder_path: FolderPath, content: str
) -> None:
    """Update the content of the lesson at folder_path.

    The folder path must match the stored parent chain, not just the last
    folder index.

    Raises:
        LessonNotFoundError: If the folder path doesn't name a stored lesson
    """
    folder_path = tuple(folder_path)
    if not folder_path:
        raise LessonNotFoundError("Empty folder path")

    result = await conn.execute(
        select(outline_nodes.c.folder_index, outline_nodes.c.parent_folder_index).where(
            and_(
                outline_nodes.c.course_id == course_id,
                outline_nodes.c.folder_index.in_(folder_path),
            )
        )
    )
    parents = {row.folder_index: row.parent_folder_index for row in result.fetchall()}

    expected_parent = None
    for folder_index in folder_path:
        if folder_index not in parents or parents[folder_index] != expected_parent:
            raise LessonNotFoundError(
                f"Lesson {list(folder_path)} not found in course {course_id}"
            )
        expected_parent = folder_index

    await conn.execute(
        update(outline_nodes)
        .where(
            and_(
                outline_nodes.c.course_id == course_id,
                outline_nodes.c.folder_index == folder_path[-1],
            )
        )
        .values(content=content)
    )
    await conn.execute(
        update(course_outlines)
        .where(course_outlines.c.course_id == course_id)
        .values(updated_at=datetime.now(timezone.utc))
    )
