"""
Apply component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from src.core.entities import JobHandle, PendingAddition
from src.core.ports.fonts_api import ApplyChangesResult, DeleteResult, UploadResult

from .models import ConfirmationPrompt


class ApplyApiPort(Protocol):
    """Write side of the fonts API."""

    async def upload(self, addition: PendingAddition) -> UploadResult:
        ...

    async def delete(self, file_id: str) -> DeleteResult:
        ...

    async def apply_changes(self) -> ApplyChangesResult:
        ...


class ConfirmPort(Protocol):
    """
    User confirmation capability.

    Injected so the commit logic never blocks on a UI prompt of its own.
    """

    async def confirm(self, prompt: ConfirmationPrompt) -> bool:
        """Return True to proceed."""
        ...


class JobObserverPort(Protocol):
    """Receives the job an apply cycle started or adopted."""

    def start(self, handle: JobHandle) -> None:
        ...
