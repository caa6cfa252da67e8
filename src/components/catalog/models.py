"""
Catalog component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ResolvedDeletion:
    """
    Physical files to delete for a set of marked font names.

    file_ids is the union of backing files of every deletable marked name,
    deduplicated, in first-seen order.
    """

    file_ids: tuple[str, ...] = ()
    unknown_names: tuple[str, ...] = ()  # not present in the catalog
    builtin_names: tuple[str, ...] = ()  # present but not deletable
    shared_file_ids: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.file_ids
