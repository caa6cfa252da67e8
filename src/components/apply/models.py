"""
Apply component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.entities import JobHandle

# --- Confirmation ---


@dataclass(frozen=True)
class ConfirmationPrompt:
    """What the user is asked before an apply cycle starts."""

    message: str
    has_pending_changes: bool
    summary: str = ""


# --- Phase reports ---


@dataclass(frozen=True)
class ItemFailure:
    """A single upload or delete that did not succeed."""

    name: str
    error: str


@dataclass(frozen=True)
class PhaseReport:
    """Outcome of one phase. Phases never short-circuit on item failures."""

    succeeded: tuple[str, ...] = ()
    failures: tuple[ItemFailure, ...] = ()
    already_gone: tuple[str, ...] = ()  # NotFound on delete, counted as success
    skipped: tuple[str, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failures) + len(self.already_gone)


# --- Output ---


@dataclass(frozen=True)
class ApplyOutput:
    """
    Result of one apply cycle.

    started_job is None only when the user declined the confirmation.
    warnings lists per-item failures from the upload and delete phases;
    they never make the cycle fail.
    """

    started_job: JobHandle | None = None
    warnings: list[str] = field(default_factory=list)
    uploads: PhaseReport = field(default_factory=PhaseReport)
    deletions: PhaseReport = field(default_factory=PhaseReport)
    cancelled: bool = False

    @property
    def adopted_existing(self) -> bool:
        return self.started_job is not None and self.started_job.adopted

    def error_summary(self) -> str:
        """Combined phase errors, one line per phase, as shown to the user."""
        lines = []
        if self.uploads.failures:
            joined = "; ".join(f"{f.name}: {f.error}" for f in self.uploads.failures)
            lines.append(f"Failed to upload: {joined}")
        if self.deletions.failures:
            joined = "; ".join(f"{f.name}: {f.error}" for f in self.deletions.failures)
            lines.append(f"Failed to delete: {joined}")
        return "\n".join(lines)
