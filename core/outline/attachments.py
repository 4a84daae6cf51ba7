# core/outline/attachments.py
"""Files attached to root chapters.

Attachments belong to a root chapter, addressed by the chapter's folder index
so they stay with the chapter when chapters are reordered. Subchapters can't
own attachments; their record maps to the enclosing root chapter.

AttachmentPanel loads the list for the selected chapter. If the author moves
to another chapter before a fetch finishes, the late result is dropped.
"""

import logging
import mimetypes
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.ext.asyncio import AsyncConnection

from core.config import get_attachments_path, get_max_attachment_bytes
from core.outline.flattener import FlatRecord
from core.tables import lesson_attachments

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class AttachmentNotFoundError(Exception):
    """Raised when an attachment id is unknown."""

    pass


class AttachmentTooLargeError(Exception):
    """Raised when an upload exceeds the configured size limit."""

    pass


def chapter_index_for(record: FlatRecord) -> int:
    """Attachment address of a record: its root chapter's folder index."""
    return record.folder_path[0]


def safe_filename(original_name: str) -> str:
    """Unique on-disk name that keeps the original extension."""
    name = Path(original_name).name
    stem = _UNSAFE_FILENAME_CHARS.sub("-", Path(name).stem).strip("-") or "file"
    suffix = _UNSAFE_FILENAME_CHARS.sub("", Path(name).suffix)
    return f"{uuid.uuid4().hex[:12]}-{stem[:60]}{suffix}"


def attachment_to_dict(row: dict) -> dict:
    """Serialize an attachment row for the API response."""
    return {
        "id": str(row["attachment_id"]),
        "libraryCourseId": row["course_id"],
        "lessonIndex": row["chapter_index"],
        "filename": row["filename"],
        "originalName": row["original_name"],
        "mimeType": row["mime_type"],
        "size": row["size"],
        "uploadedAt": row["uploaded_at"].isoformat() if row.get("uploaded_at") else None,
        "downloadUrl": f"/api/attachments/{row['attachment_id']}/download",
    }


async def list_attachments(
    conn: AsyncConnection, course_id: str, chapter_index: int
) -> list[dict]:
    result = await conn.execute(
        select(lesson_attachments)
        .where(
            and_(
                lesson_attachments.c.course_id == course_id,
                lesson_attachments.c.chapter_index == chapter_index,
            )
        )
        .order_by(lesson_attachments.c.uploaded_at)
    )
    return [dict(row._mapping) for row in result.fetchall()]


async def get_attachment(conn: AsyncConnection, attachment_id: UUID) -> dict:
    result = await conn.execute(
        select(lesson_attachments).where(lesson_attachments.c.attachment_id == attachment_id)
    )
    row = result.fetchone()
    if row is None:
        raise AttachmentNotFoundError(f"Attachment not found: {attachment_id}")
    return dict(row._mapping)


async def create_attachment(
    conn: AsyncConnection,
    *,
    course_id: str,
    chapter_index: int,
    original_name: str,
    data: bytes,
    mime_type: str | None = None,
    storage_dir: Path | None = None,
) -> dict:
    """Store an uploaded file and record it.

    Raises:
        AttachmentTooLargeError: If data exceeds MAX_ATTACHMENT_BYTES
    """
    max_bytes = get_max_attachment_bytes()
    if len(data) > max_bytes:
        raise AttachmentTooLargeError(
            f"{original_name} is {len(data)} bytes; the limit is {max_bytes}"
        )

    storage_dir = storage_dir or get_attachments_path()
    course_dir = storage_dir / _UNSAFE_FILENAME_CHARS.sub("-", course_id)
    course_dir.mkdir(parents=True, exist_ok=True)

    filename = safe_filename(original_name)
    file_path = course_dir / filename
    file_path.write_bytes(data)

    mime_type = mime_type or mimetypes.guess_type(original_name)[0] or "application/octet-stream"
    try:
        result = await conn.execute(
            insert(lesson_attachments)
            .values(
                attachment_id=uuid.uuid4(),
                course_id=course_id,
                chapter_index=chapter_index,
                filename=filename,
                original_name=original_name,
                mime_type=mime_type,
                size=len(data),
            )
            .returning(lesson_attachments)
        )
        row = result.fetchone()
    except Exception:
        # No row will point at the file
        file_path.unlink(missing_ok=True)
        raise
    logger.info(f"Stored attachment {filename} for course {course_id} chapter {chapter_index}")
    return dict(row._mapping)


def attachment_file_path(row: dict, storage_dir: Path | None = None) -> Path:
    storage_dir = storage_dir or get_attachments_path()
    return storage_dir / _UNSAFE_FILENAME_CHARS.sub("-", row["course_id"]) / row["filename"]


async def delete_attachment(
    conn: AsyncConnection, attachment_id: UUID, storage_dir: Path | None = None
) -> None:
    """Remove the attachment record and its file.

    Raises:
        AttachmentNotFoundError: If the attachment doesn't exist
    """
    row = await get_attachment(conn, attachment_id)
    await conn.execute(
        delete(lesson_attachments).where(lesson_attachments.c.attachment_id == attachment_id)
    )
    path = attachment_file_path(row, storage_dir)
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning(f"Attachment file already missing: {path}")


AttachmentFetcher = Callable[[str, int], Awaitable[list[dict]]]


@dataclass
class AttachmentPanel:
    """Attachment list for the currently selected root chapter."""

    fetch: AttachmentFetcher
    selected: tuple[str, int] | None = None
    attachments: list[dict] = field(default_factory=list)
    loading: bool = False

    async def show(self, course_id: str, chapter_index: int) -> bool:
        """Select a chapter and load its attachments.

        Returns:
            True if the fetched list was applied, False if it was discarded
            because another chapter was selected meanwhile
        """
        key = (course_id, chapter_index)
        self.selected = key
        self.loading = True
        try:
            attachments = await self.fetch(course_id, chapter_index)
        except Exception as e:
            # Attachments are optional; a failed load just shows none
            logger.warning(f"Failed to load attachments for {course_id}/{chapter_index}: {e}")
            attachments = []

        if self.selected != key:
            logger.debug(f"Discarding stale attachments for {course_id}/{chapter_index}")
            return False

        self.attachments = attachments
        self.loading = False
        return True

    async def show_record(self, course_id: str, record: FlatRecord) -> bool:
        return await self.show(course_id, chapter_index_for(record))

    def remove(self, attachment_id: str) -> None:
        self.attachments = [
            a for a in self.attachments if str(a.get("id")) != attachment_id
        ]
