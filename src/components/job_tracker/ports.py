"""
Job tracker component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from src.core.ports.fonts_api import JobStatusResult


class JobStatusPort(Protocol):
    """Status side of the fonts API."""

    async def get_job_status(self, job_id: str) -> JobStatusResult:
        ...


class CatalogRefreshPort(Protocol):
    """Anything that can re-fetch the catalog (usually CatalogService)."""

    async def refresh(self) -> object:
        ...
