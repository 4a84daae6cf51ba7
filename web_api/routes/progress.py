"""Learner progress API routes.

Endpoints:
- GET  /api/progress/courses/{course_id}                         - Outline with progress
- POST /api/progress/courses/{course_id}/enroll                  - Start the course
- PUT  /api/progress/courses/{course_id}/current-lesson          - Persist cursor position
- PUT  /api/progress/courses/{course_id}/lessons/{index}/completion - Toggle completion
- GET    /api/progress/courses/{course_id}/bookmarks               - Bookmarks with lesson titles
- PUT    /api/progress/courses/{course_id}/bookmarks/{index}       - Bookmark a lesson
- PATCH  /api/progress/courses/{course_id}/bookmarks/{index}       - Change a bookmark note
- DELETE /api/progress/courses/{course_id}/bookmarks/{index}       - Remove a bookmark

Progress and bookmarks are stored as flat indices into the outline projection
and read against the outline as it is now.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Header, Query
from pydantic import BaseModel

from core.database import get_connection, get_transaction
from core.outline.bookmarks import (
    BookmarkNotFoundError,
    add_bookmark,
    bookmark_to_dict,
    list_bookmarks,
    remove_bookmark,
    update_bookmark_note,
)
from core.outline.flattener import project_outline
from core.outline.progress import (
    EnrollmentNotFoundError,
    current_record,
    enroll,
    get_enrollment,
    set_current_lesson,
    set_lesson_completed,
)
from core.outline.repository import OutlineNotFoundError, load_outline

router = APIRouter(prefix="/api/progress", tags=["progress"])


class CurrentLessonRequest(BaseModel):
    lessonIndex: int


class CompletionRequest(BaseModel):
    completed: bool = True


class BookmarkRequest(BaseModel):
    note: str = ""


async def get_learner_token(
    x_anonymous_token: str | None = Header(None),
    anonymous_token: str | None = Query(None),  # For sendBeacon (query param)
) -> UUID:
    """Get the learner token from the X-Anonymous-Token header or query param.

    Raises:
        HTTPException: 401 if no token given, 400 if it isn't a UUID
    """
    token_str = x_anonymous_token or anonymous_token
    if not token_str:
        raise HTTPException(401, "Authentication required")
    try:
        return UUID(token_str)
    except ValueError:
        raise HTTPException(400, "Invalid session token format")


def enrollment_response(enrollment: dict | None, records: list) -> dict:
    completed = set(enrollment["completed_lessons"] or []) if enrollment else set()
    current_index = enrollment["current_lesson_index"] if enrollment else 0
    current = current_record(records, current_index)
    return {
        "enrolled": enrollment is not None,
        "currentLessonIndex": current_index,
        "currentLesson": current.to_dict() if current else None,
        "completedLessons": sorted(completed),
        "progress": enrollment["progress"] if enrollment else 0,
        "completedAt": (
            enrollment["completed_at"].isoformat()
            if enrollment and enrollment.get("completed_at")
            else None
        ),
        "lessons": [
            {**record.to_dict(), "completed": record.flat_index in completed}
            for record in records
        ],
    }


@router.get("/courses/{course_id}")
async def get_course_progress(course_id: str, learner: UUID = Depends(get_learner_token)):
    """Get the course outline annotated with the learner's progress."""
    async with get_connection() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")
        enrollment = await get_enrollment(conn, learner_token=learner, course_id=course_id)

    return enrollment_response(enrollment, project_outline(tree))


@router.post("/courses/{course_id}/enroll")
async def enroll_in_course(course_id: str, learner: UUID = Depends(get_learner_token)):
    async with get_transaction() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")
        enrollment = await enroll(conn, learner_token=learner, course_id=course_id)

    return enrollment_response(enrollment, project_outline(tree))


@router.put("/courses/{course_id}/current-lesson")
async def put_current_lesson(
    course_id: str,
    body: CurrentLessonRequest,
    learner: UUID = Depends(get_learner_token),
):
    """Persist the learner's current lesson (flat index)."""
    if body.lessonIndex < 0:
        raise HTTPException(400, "lessonIndex must be >= 0")

    async with get_transaction() as conn:
        try:
            enrollment = await set_current_lesson(
                conn,
                learner_token=learner,
                course_id=course_id,
                lesson_index=body.lessonIndex,
            )
        except EnrollmentNotFoundError as e:
            raise HTTPException(404, str(e))

    return {"currentLessonIndex": enrollment["current_lesson_index"]}


@router.put("/courses/{course_id}/lessons/{lesson_index}/completion")
async def put_lesson_completion(
    course_id: str,
    lesson_index: int,
    body: CompletionRequest,
    learner: UUID = Depends(get_learner_token),
):
    """Mark a lesson complete or incomplete and return the updated progress."""
    async with get_transaction() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")

        records = project_outline(tree)
        if lesson_index < 0 or lesson_index >= len(records):
            raise HTTPException(400, f"Lesson index {lesson_index} is out of range")

        try:
            enrollment = await set_lesson_completed(
                conn,
                learner_token=learner,
                course_id=course_id,
                lesson_index=lesson_index,
                completed=body.completed,
                total_lessons=len(records),
            )
        except EnrollmentNotFoundError as e:
            raise HTTPException(404, str(e))

    return enrollment_response(enrollment, records)


@router.get("/courses/{course_id}/bookmarks")
async def get_course_bookmarks(course_id: str, learner: UUID = Depends(get_learner_token)):
    """List bookmarks, each with the lesson its index names in the current outline."""
    async with get_connection() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")
        rows = await list_bookmarks(conn, learner_token=learner, course_id=course_id)

    records = project_outline(tree)
    return {"bookmarks": [bookmark_to_dict(row, records) for row in rows]}


@router.put("/courses/{course_id}/bookmarks/{lesson_index}")
async def put_bookmark(
    course_id: str,
    lesson_index: int,
    body: BookmarkRequest,
    learner: UUID = Depends(get_learner_token),
):
    """Bookmark a lesson, replacing the note if it is already bookmarked."""
    async with get_transaction() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")

        records = project_outline(tree)
        if lesson_index < 0 or lesson_index >= len(records):
            raise HTTPException(400, f"Lesson index {lesson_index} is out of range")

        row = await add_bookmark(
            conn,
            learner_token=learner,
            course_id=course_id,
            lesson_index=lesson_index,
            note=body.note,
        )

    return bookmark_to_dict(row, records)


@router.patch("/courses/{course_id}/bookmarks/{lesson_index}")
async def patch_bookmark(
    course_id: str,
    lesson_index: int,
    body: BookmarkRequest,
    learner: UUID = Depends(get_learner_token),
):
    async with get_transaction() as conn:
        try:
            row = await update_bookmark_note(
                conn,
                learner_token=learner,
                course_id=course_id,
                lesson_index=lesson_index,
                note=body.note,
            )
        except BookmarkNotFoundError as e:
            raise HTTPException(404, str(e))

    return bookmark_to_dict(row)


@router.delete("/courses/{course_id}/bookmarks/{lesson_index}", status_code=204)
async def delete_bookmark(
    course_id: str, lesson_index: int, learner: UUID = Depends(get_learner_token)
):
    async with get_transaction() as conn:
        try:
            await remove_bookmark(
                conn, learner_token=learner, course_id=course_id, lesson_index=lesson_index
            )
        except BookmarkNotFoundError as e:
            raise HTTPException(404, str(e))
