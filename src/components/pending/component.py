"""
Pending component - uncommitted font additions and deletions.

All operations are local; nothing here performs I/O. The set is changed only
by direct user actions and cleared by the apply orchestrator.

Invariants:
- additions are unique by name; re-adding a pending name is a no-op
- files without an accepted suffix are dropped silently
- the "all custom" toggle is all-or-nothing: unchecking clears every mark
"""

from __future__ import annotations

from collections.abc import Iterable

from src.core.entities import PendingAddition, Resource
from src.domain.font_files import DEFAULT_FONT_EXTENSIONS, has_accepted_suffix

from .models import PendingSnapshot


class PendingChangeSet:
    """Local batch of font files to upload and font names to delete."""

    def __init__(self, accepted_extensions: Iterable[str] = DEFAULT_FONT_EXTENSIONS) -> None:
        self._extensions = tuple(ext.lower() for ext in accepted_extensions)
        self._additions: dict[str, PendingAddition] = {}
        # dict keeps marks in the order the user made them
        self._deletions: dict[str, None] = {}

    # --- Additions ---

    @property
    def additions(self) -> tuple[PendingAddition, ...]:
        return tuple(self._additions.values())

    def add_files(self, files: Iterable[PendingAddition]) -> list[PendingAddition]:
        """
        Queue files for upload.

        Returns the files actually added (accepted suffix, not already pending).
        """
        added = []
        for item in files:
            if not has_accepted_suffix(item.name, self._extensions):
                continue
            if item.name in self._additions:
                continue
            self._additions[item.name] = item
            added.append(item)
        return added

    def remove_addition(self, name: str) -> None:
        self._additions.pop(name, None)

    def clear_additions(self) -> None:
        self._additions.clear()

    # --- Deletions ---

    @property
    def deletions(self) -> tuple[str, ...]:
        return tuple(self._deletions)

    def is_marked(self, name: str) -> bool:
        return name in self._deletions

    def mark_for_deletion(self, name: str) -> None:
        self._deletions.setdefault(name, None)

    def unmark_for_deletion(self, name: str) -> None:
        self._deletions.pop(name, None)

    def mark_all_custom_for_deletion(self, catalog: Iterable[Resource]) -> None:
        """Replace the marks with every custom font currently in the catalog."""
        names = [r.name for r in catalog if r.is_custom]
        if not names:
            return
        self._deletions = dict.fromkeys(names)

    def set_all_custom_marked(self, checked: bool, catalog: Iterable[Resource]) -> None:
        if checked:
            self.mark_all_custom_for_deletion(catalog)
        else:
            self._deletions.clear()

    def all_custom_marked(self, catalog: Iterable[Resource]) -> bool:
        custom = {r.name for r in catalog if r.is_custom}
        return bool(custom) and custom.issubset(self._deletions)

    # --- Whole set ---

    def is_empty(self) -> bool:
        return not self._additions and not self._deletions

    def clear(self) -> None:
        self._additions.clear()
        self._deletions.clear()

    def snapshot(self) -> PendingSnapshot:
        """Immutable copy handed to the apply orchestrator."""
        return PendingSnapshot(additions=self.additions, deletions=self.deletions)

    def summary(self) -> str:
        return self.snapshot().summary()
