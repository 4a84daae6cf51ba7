"""Which subchapters are shown in the outline sidebar.

Expansion keys are flat indices of parent records at the time they were
toggled. A record is visible when it is a root or when every ancestor's key
is in the expanded set.
"""

from dataclasses import dataclass, field

from core.outline.flattener import FlatRecord, ancestors_of


@dataclass(frozen=True)
class ExpansionState:
    expanded: frozenset[int] = field(default_factory=frozenset)

    def is_expanded(self, key: int) -> bool:
        return key in self.expanded

    def is_visible(self, record: FlatRecord, records: list[FlatRecord]) -> bool:
        if record.depth == 0:
            return True
        return all(
            ancestor.flat_index in self.expanded
            for ancestor in ancestors_of(records, record.flat_index)
        )

    def toggle(self, key: int) -> "ExpansionState":
        """Flip one key. Ancestors and descendants are left alone."""
        if key in self.expanded:
            return ExpansionState(self.expanded - {key})
        return ExpansionState(self.expanded | {key})

    def auto_expand_ancestors(
        self, records: list[FlatRecord], flat_index: int
    ) -> "ExpansionState":
        """Expand every ancestor of the record at flat_index.

        Never collapses anything. Returns self when all ancestors are already
        expanded (or the index is out of range).
        """
        if flat_index < 0 or flat_index >= len(records):
            return self
        keys = {ancestor.flat_index for ancestor in ancestors_of(records, flat_index)}
        if keys <= self.expanded:
            return self
        return ExpansionState(self.expanded | keys)

    def visible_records(self, records: list[FlatRecord]) -> list[FlatRecord]:
        """Single pass: a child is visible iff its parent is visible and expanded."""
        visible_flags: list[bool] = []
        for record in records:
            if record.parent_flat_index is None:
                visible_flags.append(True)
            else:
                parent = record.parent_flat_index
                visible_flags.append(visible_flags[parent] and parent in self.expanded)
        return [record for record, flag in zip(records, visible_flags) if flag]
