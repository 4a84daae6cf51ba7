"""Course outline API routes.

Endpoints:
- GET /api/courses/{course_id}/outline - Nested lessons plus flat records
- PUT /api/courses/{course_id}/outline - Whole-course save
- PUT /api/courses/{course_id}/lessons/content - Save one lesson's content
"""

import logging

import sentry_sdk
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from core.database import get_connection, get_transaction
from core.outline.flattener import project_outline
from core.outline.repository import (
    LessonNotFoundError,
    OutlineNotFoundError,
    load_outline,
    save_lesson_content,
    save_outline,
)
from core.outline.tree import OutlineError, OutlineTree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["outlines"])


class OutlineSaveRequest(BaseModel):
    lessons: list[dict]
    title: str | None = None
    description: str | None = None
    nextFolderIndex: int | None = None


class LessonContentRequest(BaseModel):
    folderPath: list[int] = Field(min_length=1)
    content: str


def outline_response(course_id: str, tree: OutlineTree) -> dict:
    return {
        "courseId": course_id,
        "lessons": tree.to_nested(),
        "nextFolderIndex": tree.next_folder_index,
        "flat": [record.to_dict() for record in project_outline(tree)],
    }


@router.get("/{course_id}/outline")
async def get_outline(course_id: str):
    """Get a course outline with its flattened projection."""
    async with get_connection() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")
    return outline_response(course_id, tree)


@router.put("/{course_id}/outline")
async def put_outline(course_id: str, body: OutlineSaveRequest):
    """Replace a course outline with the given nested lessons."""
    try:
        tree = OutlineTree.from_nested(body.lessons, next_folder_index=body.nextFolderIndex)
    except (OutlineError, ValueError) as e:
        raise HTTPException(400, str(e))

    try:
        async with get_transaction() as conn:
            await save_outline(
                conn, course_id, tree, title=body.title, description=body.description
            )
    except Exception as e:
        logger.error(f"Failed to save outline for course {course_id}: {e}")
        raise HTTPException(502, "Failed to save outline")

    return outline_response(course_id, tree)


@router.put("/{course_id}/lessons/content")
async def put_lesson_content(course_id: str, body: LessonContentRequest):
    """Save the content of one lesson, addressed by folder path."""
    try:
        async with get_transaction() as conn:
            await save_lesson_content(conn, course_id, body.folderPath, body.content)
    except LessonNotFoundError as e:
        raise HTTPException(404, str(e))
    except Exception as e:
        logger.error(
            f"Failed to save content of {body.folderPath} in course {course_id}: {e}"
        )
        sentry_sdk.capture_exception(e)
        raise HTTPException(502, "Failed to save lesson content")

    return {"status": "saved", "folderPath": body.folderPath}
