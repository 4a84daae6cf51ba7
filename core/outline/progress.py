"""Learner progress through a course outline.

Progress is recorded as flat indices into the outline projection:
current_lesson_index and completed_lessons. They are read against whatever
the projection looks like now. If the outline was reordered or pruned after
an index was recorded, the index now names a different lesson (or none); we
don't try to repair that.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from core.outline.flattener import FlatRecord
from core.tables import course_enrollments


class EnrollmentNotFoundError(Exception):
    """Raised when a learner isn't enrolled in the course."""

    pass


def completed_records(
    records: list[FlatRecord], completed_lessons: list[int]
) -> list[FlatRecord]:
    """Records whose flat index is marked complete, in outline order.

    Indices outside the current projection are ignored.
    """
    completed = set(completed_lessons)
    return [record for record in records if record.flat_index in completed]


def current_record(records: list[FlatRecord], current_lesson_index: int) -> FlatRecord | None:
    if 0 <= current_lesson_index < len(records):
        return records[current_lesson_index]
    return None


def progress_percentage(completed_lessons: list[int], total_lessons: int) -> int:
    """Whole-number completion percentage, counting only in-range indices."""
    if total_lessons <= 0:
        return 0
    done = len({i for i in completed_lessons if 0 <= i < total_lessons})
    return min(100, round(done * 100 / total_lessons))


def _where(learner_token: UUID, course_id: str):
    return and_(
        course_enrollments.c.learner_token == learner_token,
        course_enrollments.c.course_id == course_id,
    )


async def get_enrollment(
    conn: AsyncConnection, *, learner_token: UUID, course_id: str, for_update: bool = False
) -> dict | None:
    """Fetch a learner's enrollment, optionally locking the row until commit."""
    query = select(course_enrollments).where(_where(learner_token, course_id))
    if for_update:
        query = query.with_for_update()
    result = await conn.execute(query)
    row = result.fetchone()
    return dict(row._mapping) if row else None


async def enroll(conn: AsyncConnection, *, learner_token: UUID, course_id: str) -> dict:
    """Start a course for a learner, or return the existing enrollment."""
    existing = await get_enrollment(conn, learner_token=learner_token, course_id=course_id)
    if existing:
        return existing

    result = await conn.execute(
        insert(course_enrollments)
        .values(
            learner_token=learner_token,
            course_id=course_id,
            current_lesson_index=0,
            completed_lessons=[],
            progress=0,
        )
        .returning(course_enrollments)
    )
    row = result.fetchone()
    # No explicit commit - let the caller's transaction context handle it
    return dict(row._mapping)


async def set_current_lesson(
    conn: AsyncConnection, *, learner_token: UUID, course_id: str, lesson_index: int
) -> dict:
    """Persist the cursor position.

    Raises:
        EnrollmentNotFoundError: If the learner isn't enrolled
    """
    result = await conn.execute(
        update(course_enrollments)
        .where(_where(learner_token, course_id))
        .values(current_lesson_index=lesson_index, updated_at=datetime.now(timezone.utc))
        .returning(course_enrollments)
    )
    row = result.fetchone()
    if row is None:
        raise EnrollmentNotFoundError(f"Not enrolled in course {course_id}")
    return dict(row._mapping)


async def set_lesson_completed(
    conn: AsyncConnection,
    *,
    learner_token: UUID,
    course_id: str,
    lesson_index: int,
    completed: bool,
    total_lessons: int,
) -> dict:
    """Mark one lesson complete or incomplete and recompute the percentage.

    completed_at is stamped the first time progress reaches 100 and kept
    afterwards.

    Raises:
        EnrollmentNotFoundError: If the learner isn't enrolled
    """
    enrollment = await get_enrollment(
        conn, learner_token=learner_token, course_id=course_id, for_update=True
    )
    if enrollment is None:
        raise EnrollmentNotFoundError(f"Not enrolled in course {course_id}")

    lessons = set(enrollment["completed_lessons"] or [])
    if completed:
        lessons.add(lesson_index)
    else:
        lessons.discard(lesson_index)
    completed_lessons = sorted(lessons)
    progress = progress_percentage(completed_lessons, total_lessons)

    now = datetime.now(timezone.utc)
    values = {
        "completed_lessons": completed_lessons,
        "progress": progress,
        "updated_at": now,
    }
    if progress == 100 and enrollment.get("completed_at") is None:
        values["completed_at"] = now

    result = await conn.execute(
        update(course_enrollments)
        .where(course_enrollments.c.enrollment_id == enrollment["enrollment_id"])
        .values(**values)
        .returning(course_enrollments)
    )
    row = result.fetchone()
    return dict(row._mapping)
