"""
Job tracker component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TrackerState(str, Enum):
    """IDLE -> RUNNING -> {COMPLETED, FAILED}."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TrackerState.COMPLETED, TrackerState.FAILED)


@dataclass(frozen=True)
class TrackerSnapshot:
    """What the UI renders while a job is observed."""

    state: TrackerState
    job_id: str | None = None
    progress_message: str | None = None
    error_detail: str | None = None
    polls: int = 0
