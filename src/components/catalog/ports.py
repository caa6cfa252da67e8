"""
Catalog component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from src.core.entities import Origin
from src.core.ports.fonts_api import ListResult, StatusResult


class CatalogSourcePort(Protocol):
    """Read side of the fonts API."""

    async def get_status(self) -> StatusResult:
        """Feature availability and counters."""
        ...

    async def list_fonts(
        self,
        name_filter: str = "",
        origin: Origin | None = None,
    ) -> ListResult:
        """List fonts from the server catalog."""
        ...
