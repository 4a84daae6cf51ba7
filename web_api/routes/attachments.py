"""Chapter attachment API routes.

Endpoints:
- GET    /api/courses/{course_id}/chapters/{chapter_index}/attachments - List
- POST   /api/courses/{course_id}/chapters/{chapter_index}/attachments - Upload
- GET    /api/attachments/{attachment_id}/download
- DELETE /api/attachments/{attachment_id}

chapter_index is the root chapter's folder index.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, UploadFile
from fastapi.responses import FileResponse

from core.database import get_connection, get_transaction
from core.outline.attachments import (
    AttachmentNotFoundError,
    AttachmentTooLargeError,
    attachment_file_path,
    attachment_to_dict,
    create_attachment,
    delete_attachment,
    get_attachment,
    list_attachments,
)
from core.outline.repository import OutlineNotFoundError, load_outline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["attachments"])


@router.get("/api/courses/{course_id}/chapters/{chapter_index}/attachments")
async def get_chapter_attachments(course_id: str, chapter_index: int):
    async with get_connection() as conn:
        rows = await list_attachments(conn, course_id, chapter_index)
    return {"attachments": [attachment_to_dict(row) for row in rows]}


@router.post(
    "/api/courses/{course_id}/chapters/{chapter_index}/attachments", status_code=201
)
async def upload_chapter_attachment(course_id: str, chapter_index: int, file: UploadFile):
    """Attach a file to a root chapter."""
    data = await file.read()

    async with get_transaction() as conn:
        try:
            tree = await load_outline(conn, course_id)
        except OutlineNotFoundError:
            raise HTTPException(404, f"Course not found: {course_id}")
        if chapter_index not in tree.roots:
            raise HTTPException(404, f"Chapter {chapter_index} not found in course {course_id}")

        try:
            row = await create_attachment(
                conn,
                course_id=course_id,
                chapter_index=chapter_index,
                original_name=file.filename or "upload",
                data=data,
                mime_type=file.content_type,
            )
        except AttachmentTooLargeError as e:
            raise HTTPException(413, str(e))

    return attachment_to_dict(row)


@router.get("/api/attachments/{attachment_id}/download")
async def download_attachment(attachment_id: UUID):
    async with get_connection() as conn:
        try:
            row = await get_attachment(conn, attachment_id)
        except AttachmentNotFoundError:
            raise HTTPException(404, "Attachment not found")

    path = attachment_file_path(row)
    if not path.exists():
        logger.warning(f"Attachment {attachment_id} has no file at {path}")
        raise HTTPException(404, "Attachment file missing")
    return FileResponse(path, media_type=row["mime_type"], filename=row["original_name"])


@router.delete("/api/attachments/{attachment_id}", status_code=204)
async def remove_attachment(attachment_id: UUID):
    async with get_transaction() as conn:
        try:
            await delete_attachment(conn, attachment_id)
        except AttachmentNotFoundError:
            raise HTTPException(404, "Attachment not found")
