"""Outline editing session API routes.

An editing session holds a draft outline in memory while an author adds,
edits, moves and deletes lessons. Nothing reaches the database until the
session is committed.

Endpoints:
- POST   /api/outline-sessions                          - Open a session for a course
- GET    /api/outline-sessions/{session_id}             - Session state
- POST   /api/outline-sessions/{session_id}/chapters    - Start adding a chapter
- POST   /api/outline-sessions/{session_id}/subchapters - Start adding a subchapter
- POST   /api/outline-sessions/{session_id}/edit        - Start editing a lesson
- PATCH  /api/outline-sessions/{session_id}/draft       - Update the open draft
- POST   /api/outline-sessions/{session_id}/draft/save  - Save the draft into the outline
- POST   /api/outline-sessions/{session_id}/draft/cancel
- POST   /api/outline-sessions/{session_id}/move
- POST   /api/outline-sessions/{session_id}/delete
- POST   /api/outline-sessions/{session_id}/expanded    - Toggle a sidebar group
- POST   /api/outline-sessions/{session_id}/commit      - Save the whole course
- DELETE /api/outline-sessions/{session_id}             - Abandon the session
"""

import logging
from typing import Literal

import sentry_sdk
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from core.database import get_connection, get_transaction
from core.outline.repository import (
    OutlineNotFoundError,
    get_course_record,
    load_outline,
    save_outline,
)
from core.outline.session import (
    EditingInProgressError,
    LessonValidationError,
    NotEditingError,
    OutlineSession,
    SessionNotFoundError,
    get_session_store,
)
from core.outline.tree import InvalidPathError, MaxDepthError, OutlineTree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/outline-sessions", tags=["outline-sessions"])


class OpenSessionRequest(BaseModel):
    courseId: str
    title: str | None = None
    create: bool = False  # start an empty outline instead of loading one


class PathRequest(BaseModel):
    path: list[int] = Field(min_length=1)


class MoveRequest(PathRequest):
    direction: Literal["up", "down"]


class DraftRequest(BaseModel):
    title: str | None = None
    content: str | None = None


class ToggleRequest(BaseModel):
    flatIndex: int


def _get_session(session_id: str) -> OutlineSession:
    try:
        return get_session_store().get(session_id)
    except SessionNotFoundError:
        raise HTTPException(404, "Editing session not found")


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(409, str(e))


@router.post("", status_code=201)
async def open_session(body: OpenSessionRequest):
    """Open an editing session on a course's stored outline."""
    if body.create:
        tree = OutlineTree()
        title = body.title or ""
    else:
        async with get_connection() as conn:
            try:
                course = await get_course_record(conn, body.courseId)
                tree = await load_outline(conn, body.courseId)
            except OutlineNotFoundError:
                raise HTTPException(404, f"Course not found: {body.courseId}")
        title = course.get("title") or ""

    session = get_session_store().open(body.courseId, tree, title=title)
    return session.to_dict()


@router.get("/{session_id}")
async def get_session(session_id: str):
    return _get_session(session_id).to_dict()


@router.post("/{session_id}/chapters")
async def begin_add_chapter(session_id: str):
    session = _get_session(session_id)
    try:
        session.begin_add_chapter()
    except EditingInProgressError as e:
        raise _conflict(e)
    return session.to_dict()


@router.post("/{session_id}/subchapters")
async def begin_add_subchapter(session_id: str, body: PathRequest):
    """Start adding a subchapter under the lesson at body.path."""
    session = _get_session(session_id)
    try:
        session.begin_add_subchapter(tuple(body.path))
    except EditingInProgressError as e:
        raise _conflict(e)
    except InvalidPathError as e:
        raise HTTPException(404, str(e))
    except MaxDepthError as e:
        raise HTTPException(400, str(e))
    return session.to_dict()


@router.post("/{session_id}/edit")
async def begin_edit(session_id: str, body: PathRequest):
    session = _get_session(session_id)
    try:
        session.begin_edit(tuple(body.path))
    except EditingInProgressError as e:
        raise _conflict(e)
    except InvalidPathError as e:
        raise HTTPException(404, str(e))
    return session.to_dict()


@router.patch("/{session_id}/draft")
async def update_draft(session_id: str, body: DraftRequest):
    session = _get_session(session_id)
    try:
        session.update_draft(title=body.title, content=body.content)
    except NotEditingError as e:
        raise _conflict(e)
    return session.to_dict()


@router.post("/{session_id}/draft/save")
async def save_draft(session_id: str):
    """Save the open draft. Returns 422 with field errors if it is invalid."""
    session = _get_session(session_id)
    try:
        session.save_draft()
    except NotEditingError as e:
        raise _conflict(e)
    except LessonValidationError as e:
        raise HTTPException(422, {"errors": e.errors})
    return session.to_dict()


@router.post("/{session_id}/draft/cancel")
async def cancel_draft(session_id: str):
    session = _get_session(session_id)
    session.cancel_edit()
    return session.to_dict()


@router.post("/{session_id}/move")
async def move_lesson(session_id: str, body: MoveRequest):
    session = _get_session(session_id)
    try:
        session.move(tuple(body.path), body.direction)
    except EditingInProgressError as e:
        raise _conflict(e)
    except InvalidPathError as e:
        raise HTTPException(404, str(e))
    return session.to_dict()


@router.post("/{session_id}/delete")
async def delete_lesson(session_id: str, body: PathRequest):
    session = _get_session(session_id)
    try:
        session.delete(tuple(body.path))
    except EditingInProgressError as e:
        raise _conflict(e)
    except InvalidPathError as e:
        raise HTTPException(404, str(e))
    return session.to_dict()


@router.post("/{session_id}/expanded")
async def toggle_expanded(session_id: str, body: ToggleRequest):
    session = _get_session(session_id)
    session.toggle_expanded(body.flatIndex)
    return session.to_dict()


@router.post("/{session_id}/commit")
async def commit_session(session_id: str):
    """Save the session's outline as the course's stored outline.

    On failure the session is kept with its edits so the author can retry.
    """
    session = _get_session(session_id)
    if session.is_editing:
        raise HTTPException(409, "Save or cancel the open lesson before saving the course")

    try:
        async with get_transaction() as conn:
            await save_outline(
                conn, session.course_id, session.tree, title=session.title or None
            )
    except Exception as e:
        logger.error(f"Failed to save course {session.course_id} from session {session_id}: {e}")
        sentry_sdk.capture_exception(e)
        raise HTTPException(502, "Failed to save course outline")

    session.mark_saved()
    return session.to_dict()


@router.delete("/{session_id}", status_code=204)
async def abandon_session(session_id: str):
    _get_session(session_id)
    get_session_store().discard(session_id)
