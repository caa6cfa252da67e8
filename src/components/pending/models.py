"""
Pending component models.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.entities import PendingAddition


@dataclass(frozen=True)
class PendingSnapshot:
    """Frozen view of a pending change set at the moment apply starts."""

    additions: tuple[PendingAddition, ...] = ()
    deletions: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.additions and not self.deletions

    def summary(self) -> str:
        """E.g. "2 font(s) to upload, 1 font(s) to delete"; empty when nothing pending."""
        parts = []
        if self.additions:
            parts.append(f"{len(self.additions)} font(s) to upload")
        if self.deletions:
            parts.append(f"{len(self.deletions)} font(s) to delete")
        return ", ".join(parts)

    def action_parts(self) -> list[str]:
        """Imperative wording used in the confirmation prompt."""
        parts = []
        if self.additions:
            parts.append(f"upload {len(self.additions)} font(s)")
        if self.deletions:
            parts.append(f"delete {len(self.deletions)} font(s)")
        return parts
