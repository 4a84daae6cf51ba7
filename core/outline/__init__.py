"""Course outline engine: tree, edits, flattening, navigation and sessions."""

from .tree import (
    MAX_DEPTH,
    DuplicateFolderIndexError,
    InvalidPathError,
    MaxDepthError,
    NodeDraft,
    OutlineError,
    OutlineNode,
    OutlineTree,
    check_invariants,
)
from .renumber import renumber_group
from .mutations import (
    can_add_child,
    delete_at,
    insert_child,
    insert_root,
    move_sibling,
    sort_outline,
    update_content,
)
from .flattener import FlatRecord, flatten_outline, project_outline
from .expansion import ExpansionState
from .cursor import KEY_BINDINGS, NavigationCursor
from .session import (
    EditingInProgressError,
    EditingState,
    EditMode,
    LessonValidationError,
    NotEditingError,
    OutlineSession,
    SessionNotFoundError,
    SessionStore,
    get_session_store,
)

__all__ = [
    # Tree
    "MAX_DEPTH",
    "DuplicateFolderIndexError",
    "InvalidPathError",
    "MaxDepthError",
    "NodeDraft",
    "OutlineError",
    "OutlineNode",
    "OutlineTree",
    "check_invariants",
    # Edits
    "renumber_group",
    "can_add_child",
    "delete_at",
    "insert_child",
    "insert_root",
    "move_sibling",
    "sort_outline",
    "update_content",
    # Projection and navigation
    "FlatRecord",
    "flatten_outline",
    "project_outline",
    "ExpansionState",
    "KEY_BINDINGS",
    "NavigationCursor",
    # Sessions
    "EditingInProgressError",
    "EditingState",
    "EditMode",
    "LessonValidationError",
    "NotEditingError",
    "OutlineSession",
    "SessionNotFoundError",
    "SessionStore",
    "get_session_store",
]
