"""
Catalog component - read-mostly view of the server's font catalog.

The catalog snapshot changes only through an explicit refresh (after an
apply cycle or a terminal regeneration job). Pending edits are never folded
into it; callers render them as a separate overlay.

Invariants:
- fetch() has no side effects and is always authoritative
- resolve_file_ids() issues one id per physical file, never more
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from src.core.entities import FontsStatus, Origin, Resource
from src.core.ports.fonts_api import (
    CatalogError,
    Failure,
    Ok,
    describe,
    error_for,
)

from .models import ResolvedDeletion
from .ports import CatalogSourcePort

logger = logging.getLogger(__name__)


# --- Functional Core ---


def filter_resources(
    resources: Iterable[Resource],
    name_filter: str = "",
    custom_only: bool = False,
) -> list[Resource]:
    """Case-insensitive name substring filter, optionally custom fonts only."""
    needle = name_filter.lower()
    result = []
    for resource in resources:
        if custom_only and not resource.is_custom:
            continue
        if needle and needle not in resource.name.lower():
            continue
        result.append(resource)
    return result


def find_resource(resources: Iterable[Resource], name: str) -> Resource | None:
    for resource in resources:
        if resource.name == name:
            return resource
    return None


def custom_names(resources: Iterable[Resource]) -> list[str]:
    return [r.name for r in resources if r.is_custom]


def resolve_file_ids(
    resources: Sequence[Resource],
    names: Iterable[str],
) -> ResolvedDeletion:
    """
    Union the physical files behind every marked custom font.

    Only the marked names are consulted: a file shared with an unmarked font
    is still deleted. Such files are reported in shared_file_ids.
    """
    by_name = {r.name: r for r in resources}
    marked: set[str] = set()
    file_ids: dict[str, None] = {}
    unknown: list[str] = []
    builtin: list[str] = []

    for name in names:
        resource = by_name.get(name)
        if resource is None:
            unknown.append(name)
            continue
        if not resource.is_custom:
            builtin.append(name)
            continue
        marked.add(name)
        for file_id in resource.file_ids:
            file_ids.setdefault(file_id, None)

    shared: dict[str, tuple[str, ...]] = {}
    for resource in resources:
        if resource.name in marked:
            continue
        overlap = [fid for fid in resource.file_ids if fid in file_ids]
        for fid in overlap:
            shared[fid] = shared.get(fid, ()) + (resource.name,)

    return ResolvedDeletion(
        file_ids=tuple(file_ids),
        unknown_names=tuple(unknown),
        builtin_names=tuple(builtin),
        shared_file_ids=shared,
    )


# --- Service ---


class CatalogService:
    """Holds the last fetched catalog snapshot."""

    def __init__(self, source: CatalogSourcePort) -> None:
        self._source = source
        self._resources: tuple[Resource, ...] = ()
        self._status: FontsStatus | None = None

    @property
    def resources(self) -> tuple[Resource, ...]:
        return self._resources

    @property
    def last_status(self) -> FontsStatus | None:
        return self._status

    async def fetch(
        self,
        name_filter: str = "",
        origin: Origin | None = None,
    ) -> list[Resource]:
        """Fetch the authoritative catalog without touching the snapshot."""
        result = await self._source.list_fonts(name_filter, origin)
        if isinstance(result, Ok):
            return list(result.value)
        if isinstance(result, Failure):
            raise CatalogError(f"Failed to get fonts list: {describe(result)}")
        raise error_for(result)

    async def status(self) -> FontsStatus:
        result = await self._source.get_status()
        if isinstance(result, Ok):
            self._status = result.value
            return result.value
        if isinstance(result, Failure):
            raise CatalogError(f"Failed to check fonts status: {describe(result)}")
        raise error_for(result)

    async def refresh(self) -> tuple[Resource, ...]:
        """Re-fetch the full catalog and replace the snapshot."""
        self._resources = tuple(await self.fetch())
        logger.info(
            "Catalog refreshed: %d fonts (%d custom)",
            len(self._resources),
            self.custom_count(),
        )
        return self._resources

    def find(self, name: str) -> Resource | None:
        return find_resource(self._resources, name)

    def custom_resources(self) -> list[Resource]:
        return [r for r in self._resources if r.is_custom]

    def custom_count(self) -> int:
        return len(self.custom_resources())

    def filter_resources(self, name_filter: str = "", custom_only: bool = False) -> list[Resource]:
        return filter_resources(self._resources, name_filter, custom_only)

    def resolve_file_ids(self, names: Iterable[str]) -> ResolvedDeletion:
        return resolve_file_ids(self._resources, names)
