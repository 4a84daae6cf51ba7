"""Learner bookmarks on outline lessons.

A bookmark names a lesson by its flat index, the same way completed_lessons
does, so it goes stale the same way: after the outline is reordered or
pruned the index names whatever lesson sits there now, or nothing.
"""

import uuid
from uuid import UUID

from sqlalchemy import and_, delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from core.outline.flattener import FlatRecord
from core.outline.progress import current_record
from core.tables import course_bookmarks


class BookmarkNotFoundError(Exception):
    """Raised when a learner has no bookmark on the lesson."""

    pass


def bookmark_to_dict(row: dict, records: list[FlatRecord] | None = None) -> dict:
    """Serialize a bookmark row, naming the lesson its index points at now."""
    data = {
        "id": str(row["bookmark_id"]),
        "libraryCourseId": row["course_id"],
        "lessonIndex": row["lesson_index"],
        "note": row.get("note") or "",
        "createdAt": row["created_at"].isoformat() if row.get("created_at") else None,
    }
    if records is not None:
        record = current_record(records, row["lesson_index"])
        data["lessonTitle"] = record.node.title if record else None
        data["displayNumber"] = record.display_number if record else None
    return data


def _where(learner_token: UUID, course_id: str, lesson_index: int):
    return and_(
        course_bookmarks.c.learner_token == learner_token,
        course_bookmarks.c.course_id == course_id,
        course_bookmarks.c.lesson_index == lesson_index,
    )


async def list_bookmarks(
    conn: AsyncConnection, *, learner_token: UUID, course_id: str
) -> list[dict]:
    """A learner's bookmarks in one course, by lesson index."""
    result = await conn.execute(
        select(course_bookmarks)
        .where(
            and_(
                course_bookmarks.c.learner_token == learner_token,
                course_bookmarks.c.course_id == course_id,
            )
        )
        .order_by(course_bookmarks.c.lesson_index)
    )
    return [dict(row._mapping) for row in result.fetchall()]


async def add_bookmark(
    conn: AsyncConnection,
    *,
    learner_token: UUID,
    course_id: str,
    lesson_index: int,
    note: str = "",
) -> dict:
    """Bookmark a lesson. Bookmarking it again replaces the note.

    Raises:
        ValueError: If lesson_index is negative
    """
    if lesson_index < 0:
        raise ValueError(f"Invalid lesson index: {lesson_index}")

    stmt = pg_insert(course_bookmarks).values(
        bookmark_id=uuid.uuid4(),
        course_id=course_id,
        learner_token=learner_token,
        lesson_index=lesson_index,
        note=note,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["learner_token", "course_id", "lesson_index"],
        set_={"note": stmt.excluded.note},
    ).returning(course_bookmarks)

    result = await conn.execute(stmt)
    row = result.fetchone()
    # No explicit commit - let the caller's transaction context handle it
    return dict(row._mapping)


async def update_bookmark_note(
    conn: AsyncConnection,
    *,
    learner_token: UUID,
    course_id: str,
    lesson_index: int,
    note: str,
) -> dict:
    """
    Raises:
        BookmarkNotFoundError: If the lesson isn't bookmarked
    """
    result = await conn.execute(
        update(course_bookmarks)
        .where(_where(learner_token, course_id, lesson_index))
        .values(note=note)
        .returning(course_bookmarks)
    )
    row = result.fetchone()
    if row is None:
        raise BookmarkNotFoundError(f"No bookmark on lesson {lesson_index}")
    return dict(row._mapping)


async def remove_bookmark(
    conn: AsyncConnection, *, learner_token: UUID, course_id: str, lesson_index: int
) -> None:
    """
    Raises:
        BookmarkNotFoundError: If the lesson isn't bookmarked
    """
    result = await conn.execute(
        delete(course_bookmarks)
        .where(_where(learner_token, course_id, lesson_index))
        .returning(course_bookmarks.c.bookmark_id)
    )
    if result.fetchone() is None:
        raise BookmarkNotFoundError(f"No bookmark on lesson {lesson_index}")
