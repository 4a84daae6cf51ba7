# core/outline/cursor.py
"""Current-lesson cursor over the flattened outline.

Selecting a lesson updates the cursor immediately, expands the lesson's
ancestors, and fires a persistence call in the background. A failed call is
logged and recorded as a notice; the cursor keeps the new position.
"""

import asyncio
import logging
from typing import Awaitable, Callable

import sentry_sdk

from core.outline.expansion import ExpansionState
from core.outline.flattener import FlatRecord

logger = logging.getLogger(__name__)

PersistCurrentLesson = Callable[[int], Awaitable[object]]

# Keyboard shortcuts for previous/next lesson
KEY_BINDINGS: dict[str, int] = {
    "ArrowLeft": -1,
    "j": -1,
    "ArrowRight": 1,
    "k": 1,
}


class NavigationCursor:
    """Position in a projection, plus the expansion state it drives."""

    def __init__(
        self,
        records: list[FlatRecord],
        *,
        expansion: ExpansionState | None = None,
        persist: PersistCurrentLesson | None = None,
        current_flat_index: int = 0,
    ):
        self.records = records
        self.expansion = expansion or ExpansionState()
        self.persist = persist
        self.current_flat_index = current_flat_index if 0 <= current_flat_index < len(records) else 0
        self.notices: list[str] = []
        self._pending: set[asyncio.Task] = set()

    @property
    def length(self) -> int:
        return len(self.records)

    @property
    def current(self) -> FlatRecord | None:
        if not self.records:
            return None
        return self.records[self.current_flat_index]

    def visible_records(self) -> list[FlatRecord]:
        return self.expansion.visible_records(self.records)

    def toggle(self, key: int) -> None:
        self.expansion = self.expansion.toggle(key)

    def select_index(self, index: int) -> bool:
        """Move to index if it is inside the projection.

        Returns:
            True if the cursor moved, False for an out-of-range index
        """
        if index < 0 or index >= self.length:
            return False

        self.current_flat_index = index
        self.expansion = self.expansion.auto_expand_ancestors(self.records, index)
        self._fire_persist(index)
        return True

    def step(self, delta: int) -> bool:
        """Move one lesson back (-1) or forward (+1), clamped to the ends."""
        if delta not in (-1, 1):
            raise ValueError(f"step() takes -1 or +1, got {delta}")
        if not self.records:
            return False
        target = min(max(self.current_flat_index + delta, 0), self.length - 1)
        if target == self.current_flat_index:
            return False
        return self.select_index(target)

    def handle_key(self, key: str, in_text_entry: bool = False) -> bool:
        """Apply a previous/next key binding.

        Ignored while focus is inside a text input so typing isn't hijacked.
        """
        if in_text_entry or key not in KEY_BINDINGS:
            return False
        return self.step(KEY_BINDINGS[key])

    def rebind(self, records: list[FlatRecord]) -> None:
        """Adopt a recomputed projection, clamping the current index into it."""
        self.records = records
        if not records:
            self.current_flat_index = 0
        elif self.current_flat_index >= len(records):
            self.current_flat_index = len(records) - 1

    def _fire_persist(self, index: int) -> None:
        if self.persist is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; current lesson {index} not persisted")
            return

        task = loop.create_task(self._run_persist(index))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_persist(self, index: int) -> None:
        try:
            await self.persist(index)
        except Exception as e:
            logger.error(f"Failed to persist current lesson {index}: {e}")
            sentry_sdk.capture_exception(e)
            self.notices.append(f"Could not save your position (lesson {index + 1})")

    async def drain(self) -> None:
        """Wait for in-flight persistence calls (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
