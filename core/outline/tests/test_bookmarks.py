# core/outline/tests/test_bookmarks.py
"""Tests for learner bookmarks."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from core.outline.bookmarks import (
    BookmarkNotFoundError,
    add_bookmark,
    bookmark_to_dict,
    remove_bookmark,
    update_bookmark_note,
)
from core.outline.flattener import project_outline
from core.outline.mutations import delete_at
from core.outline.tree import OutlineTree


def make_result(row: dict | None) -> MagicMock:
    """Fake SQLAlchemy result whose fetchone() returns a row with _mapping."""
    result = MagicMock()
    if row is None:
        result.fetchone.return_value = None
    else:
        fake_row = MagicMock()
        fake_row._mapping = row
        result.fetchone.return_value = fake_row
    return result


def bookmark_row(lesson_index: int, note: str = "") -> dict:
    return {
        "bookmark_id": uuid.UUID("00000000-0000-0000-0000-000000000001"),
        "course_id": "c",
        "learner_token": uuid.uuid4(),
        "lesson_index": lesson_index,
        "note": note,
        "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    }


def test_bookmark_index_is_not_repaired_after_structure_change():
    """A bookmark on "Lesson Intro" (index 2) names "Lesson Practice" once
    the chapter before it is deleted."""
    tree = OutlineTree.from_nested(
        [
            {"title": "Setup", "order": 1, "folderIndex": 0},
            {
                "title": "Lesson",
                "order": 2,
                "folderIndex": 1,
                "sublessons": [
                    {"title": "Lesson Intro", "order": 1, "folderIndex": 2},
                    {"title": "Lesson Practice", "order": 2, "folderIndex": 3},
                ],
            },
        ]
    )
    row = bookmark_row(2, note="come back here")
    assert bookmark_to_dict(row, project_outline(tree))["lessonTitle"] == "Lesson Intro"

    pruned = delete_at(tree, (0,))
    data = bookmark_to_dict(row, project_outline(pruned))

    assert data["lessonIndex"] == 2
    assert data["lessonTitle"] == "Lesson Practice"
    assert data["displayNumber"] == "1.2"


def test_bookmark_past_the_end_names_no_lesson(course_tree):
    data = bookmark_to_dict(bookmark_row(40), project_outline(course_tree))
    assert data["lessonTitle"] is None
    assert data["displayNumber"] is None


def test_bookmark_to_dict_without_outline():
    data = bookmark_to_dict(bookmark_row(1, note="tricky"))
    assert data == {
        "id": "00000000-0000-0000-0000-000000000001",
        "libraryCourseId": "c",
        "lessonIndex": 1,
        "note": "tricky",
        "createdAt": "2026-03-01T00:00:00+00:00",
    }


class TestPersistence:
    @pytest.mark.asyncio
    async def test_add_bookmark_upserts_the_note(self):
        conn = AsyncMock()
        conn.execute.return_value = make_result(bookmark_row(3, note="again"))

        row = await add_bookmark(
            conn, learner_token=uuid.uuid4(), course_id="c", lesson_index=3, note="again"
        )

        assert row["note"] == "again"
        stmt = conn.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (learner_token, course_id, lesson_index) DO UPDATE" in sql

    @pytest.mark.asyncio
    async def test_add_bookmark_rejects_negative_index(self):
        conn = AsyncMock()
        with pytest.raises(ValueError):
            await add_bookmark(conn, learner_token=uuid.uuid4(), course_id="c", lesson_index=-1)
        conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_note_requires_bookmark(self):
        conn = AsyncMock()
        conn.execute.return_value = make_result(None)

        with pytest.raises(BookmarkNotFoundError):
            await update_bookmark_note(
                conn, learner_token=uuid.uuid4(), course_id="c", lesson_index=0, note="x"
            )

    @pytest.mark.asyncio
    async def test_remove_missing_bookmark_raises(self):
        conn = AsyncMock()
        conn.execute.return_value = make_result(None)

        with pytest.raises(BookmarkNotFoundError):
            await remove_bookmark(conn, learner_token=uuid.uuid4(), course_id="c", lesson_index=5)

    @pytest.mark.asyncio
    async def test_remove_bookmark(self):
        conn = AsyncMock()
        conn.execute.return_value = make_result({"bookmark_id": uuid.uuid4()})

        await remove_bookmark(conn, learner_token=uuid.uuid4(), course_id="c", lesson_index=5)

        params = conn.execute.await_args.args[0].compile().params
        assert 5 in params.values()
