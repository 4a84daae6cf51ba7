# core/outline/session.py
"""Outline editing sessions.

A session owns the draft outline of one course while an author edits it.
State machine:

    Idle -> Editing(mode, target) -> Idle        (save succeeded / cancel)
                                  -> Editing     (validation failed)

While a lesson is being edited, structural operations (add, move, delete)
are refused. Edits live only in the session until commit; an abandoned
session is simply dropped.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from core.outline.expansion import ExpansionState
from core.outline.flattener import FlatRecord, project_outline
from core.outline.mutations import (
    Direction,
    can_add_child,
    delete_at,
    insert_child,
    insert_root,
    move_sibling,
    update_content,
)
from core.outline.tree import MaxDepthError, NodeDraft, OutlineTree, Path

logger = logging.getLogger(__name__)


class EditingInProgressError(Exception):
    """Raised when a structural edit is attempted while a lesson is being edited."""

    pass


class NotEditingError(Exception):
    """Raised when a draft operation is attempted with no lesson being edited."""

    pass


class LessonValidationError(Exception):
    """Raised when a draft can't be saved. errors maps field name -> message."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(errors.values()))


class SessionNotFoundError(Exception):
    """Raised when an editing session id is unknown."""

    pass


class EditMode(str, Enum):
    NEW = "new"
    EXISTING = "existing"


@dataclass(frozen=True)
class EditingState:
    """The lesson currently open in the editor.

    target is the lesson's path for EXISTING, or the parent path for NEW
    (empty tuple for a new root chapter).
    """

    mode: EditMode
    target: Path
    title: str = ""
    content: str = ""

    @property
    def is_new(self) -> bool:
        return self.mode == EditMode.NEW


def validate_draft(title: str, content: str) -> dict[str, str]:
    errors = {}
    if not title.strip():
        errors["title"] = "Title is required"
    if not content.strip():
        errors["content"] = "Content is required"
    return errors


@dataclass
class OutlineSession:
    """Editing state for one course outline."""

    course_id: str
    tree: OutlineTree
    title: str = ""
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    editing: EditingState | None = None
    expansion: ExpansionState = field(default_factory=ExpansionState)
    dirty: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_editing(self) -> bool:
        return self.editing is not None

    def projection(self) -> list[FlatRecord]:
        return project_outline(self.tree)

    def _require_idle(self, action: str) -> None:
        if self.editing is not None:
            raise EditingInProgressError(
                f"Cannot {action} while a lesson is being edited"
            )

    def _set_tree(self, tree: OutlineTree) -> None:
        if tree is not self.tree:
            self.tree = tree
            self.dirty = True
            # Expansion keys are flat indices of the old projection
            self.expansion = ExpansionState()

    # --- Idle -> Editing ---

    def begin_add_chapter(self) -> EditingState:
        self._require_idle("add a chapter")
        self.editing = EditingState(mode=EditMode.NEW, target=())
        return self.editing

    def begin_add_subchapter(self, parent_path: Path) -> EditingState:
        self._require_idle("add a subchapter")
        parent_path = tuple(parent_path)
        if not can_add_child(self.tree, parent_path):
            # Surfaces a bad path as InvalidPathError, depth as MaxDepthError
            self.tree.resolve(parent_path)
            raise MaxDepthError(parent_path)
        self.editing = EditingState(mode=EditMode.NEW, target=parent_path)
        return self.editing

    def begin_edit(self, path: Path) -> EditingState:
        self._require_idle("edit another lesson")
        path = tuple(path)
        node = self.tree.node_at(path)
        self.editing = EditingState(
            mode=EditMode.EXISTING, target=path, title=node.title, content=node.content
        )
        return self.editing

    # --- Editing ---

    def update_draft(self, title: str | None = None, content: str | None = None) -> EditingState:
        if self.editing is None:
            raise NotEditingError("No lesson is being edited")
        changes = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        self.editing = replace(self.editing, **changes)
        return self.editing

    def save_draft(self) -> OutlineTree:
        """Validate the draft and write it into the tree.

        Raises:
            NotEditingError: If nothing is being edited
            LessonValidationError: If title or content is blank (stays in Editing)
        """
        if self.editing is None:
            raise NotEditingError("No lesson is being edited")

        errors = validate_draft(self.editing.title, self.editing.content)
        if errors:
            raise LessonValidationError(errors)

        title = self.editing.title.strip()
        content = self.editing.content.strip()
        if self.editing.mode == EditMode.EXISTING:
            tree = update_content(self.tree, self.editing.target, title, content)
        elif self.editing.target:
            tree = insert_child(self.tree, self.editing.target, NodeDraft(title, content))
        else:
            tree = insert_root(self.tree, NodeDraft(title, content))

        logger.info(
            f"Saved {self.editing.mode.value} lesson {title!r} in course {self.course_id}"
        )
        self.editing = None
        self._set_tree(tree)
        return self.tree

    def cancel_edit(self) -> None:
        self.editing = None

    # --- Structural operations (Idle only) ---

    def move(self, path: Path, direction: Direction) -> OutlineTree:
        self._require_idle("move lessons")
        self._set_tree(move_sibling(self.tree, path, direction))
        return self.tree

    def delete(self, path: Path) -> OutlineTree:
        self._require_idle("delete lessons")
        self._set_tree(delete_at(self.tree, path))
        return self.tree

    def toggle_expanded(self, key: int) -> ExpansionState:
        self.expansion = self.expansion.toggle(key)
        return self.expansion

    def mark_saved(self) -> None:
        self.dirty = False

    def to_dict(self) -> dict:
        """Serialize for the API response."""
        records = self.projection()
        editing = None
        if self.editing is not None:
            editing = {
                "mode": self.editing.mode.value,
                "target": list(self.editing.target),
                "title": self.editing.title,
                "content": self.editing.content,
                "isNew": self.editing.is_new,
            }
        return {
            "sessionId": self.session_id,
            "courseId": self.course_id,
            "title": self.title,
            "dirty": self.dirty,
            "editing": editing,
            "lessons": self.tree.to_nested(),
            "nextFolderIndex": self.tree.next_folder_index,
            "flat": [
                {
                    **record.to_dict(),
                    "visible": self.expansion.is_visible(record, records),
                    "canAddSubchapter": can_add_child(self.tree, record.path)
                    and self.editing is None,
                }
                for record in records
            ],
        }


class SessionStore:
    """In-memory registry of open editing sessions, keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, OutlineSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, course_id: str, tree: OutlineTree, title: str = "") -> OutlineSession:
        session = OutlineSession(course_id=course_id, tree=tree, title=title)
        self._sessions[session.session_id] = session
        logger.info(f"Opened outline session {session.session_id} for course {course_id}")
        return session

    def get(self, session_id: str) -> OutlineSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Editing session not found: {session_id}")

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None and session.dirty:
            logger.info(f"Discarded unsaved edits in session {session_id}")

    def clear(self) -> None:
        self._sessions.clear()


# Global session store
_store = SessionStore()


def get_session_store() -> SessionStore:
    return _store
