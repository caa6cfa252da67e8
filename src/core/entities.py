"""
Domain entities for fontdesk.

- Resource: a logical font family as listed by the server catalog
- FontFile: one physical file backing a style of a Resource
- PendingAddition: an uncommitted font file blob
- ApplyJob / JobHandle: the server-side font cache regeneration job

Wire payloads use the server's camelCase names; entities accept both the
wire alias and the Python field name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.domain.font_files import physical_file_id

__all__ = [
    "ApplyJob",
    "FontFile",
    "FontStyles",
    "FontsStatus",
    "JobHandle",
    "JobStatus",
    "Origin",
    "PendingAddition",
    "Resource",
    "UploadedFont",
]


class Origin(str, Enum):
    """Where a font comes from. Only custom fonts may be deleted."""

    BUILTIN = "builtin"
    CUSTOM = "custom"

    @classmethod
    def from_wire(cls, value: Any) -> Origin:
        if isinstance(value, Origin):
            return value
        if value == "custom":
            return cls.CUSTOM
        # The server reports bundled fonts as "system"
        return cls.BUILTIN

    def to_wire(self) -> str:
        return "custom" if self is Origin.CUSTOM else "system"


class JobStatus(str, Enum):
    """Regeneration job status. COMPLETED and FAILED are terminal."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# --- Catalog ---


class FontFile(BaseModel):
    """A physical font file referenced by one style of a font."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str
    style: str = "Regular"
    face_index: int = Field(default=0, alias="faceIndex")

    @property
    def file_id(self) -> str:
        """Identifier the backing store deletes by (the bare filename)."""
        return physical_file_id(self.path)


class FontStyles(BaseModel):
    """Which style variants exist. Presentation only."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    regular: bool = Field(default=False, alias="hasRegular")
    bold: bool = Field(default=False, alias="hasBold")
    italic: bool = Field(default=False, alias="hasItalic")
    bold_italic: bool = Field(default=False, alias="hasBoldItalic")


class Resource(BaseModel):
    """
    A logical font family in the catalog.

    Invariants:
    - name is unique within a catalog
    - backing_files is non-empty
    - BUILTIN resources are never modified by this client
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    origin: Origin = Field(default=Origin.BUILTIN, alias="source")
    backing_files: tuple[FontFile, ...] = Field(alias="files", min_length=1)
    styles: FontStyles = Field(default_factory=FontStyles)

    @field_validator("origin", mode="before")
    @classmethod
    def _parse_origin(cls, value: Any) -> Origin:
        return Origin.from_wire(value)

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> Resource:
        """Build a Resource from one entry of the server's `fonts` list."""
        styles = FontStyles.model_validate(payload)
        return cls.model_validate({**payload, "styles": styles})

    @property
    def is_custom(self) -> bool:
        return self.origin is Origin.CUSTOM

    @property
    def file_ids(self) -> tuple[str, ...]:
        """Distinct physical file ids, in first-seen order."""
        seen: dict[str, None] = {}
        for font_file in self.backing_files:
            seen.setdefault(font_file.file_id, None)
        return tuple(seen)


class FontsStatus(BaseModel):
    """Feature availability and counters from `GET /fonts/status`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    available: bool = False
    total_count: int = Field(default=0, alias="totalFontsCount")
    custom_count: int = Field(default=0, alias="customFontsCount")
    total_files_count: int = Field(default=0, alias="totalFilesCount")
    custom_files_count: int = Field(default=0, alias="customFilesCount")
    is_generating: bool = Field(default=False, alias="isGenerating")
    current_job: ApplyJob | None = Field(default=None, alias="generationStatus")

    @field_validator("current_job", mode="before")
    @classmethod
    def _parse_current_job(cls, value: Any) -> Any:
        # An idle generator is reported as {"status": "idle"} without a job id
        if isinstance(value, dict) and not value.get("jobId"):
            return None
        return value


class UploadedFont(BaseModel):
    """Server acknowledgement of a stored upload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    filename: str
    original_name: str = Field(default="", alias="originalName")
    size: int = 0
    type: str = ""
    overwritten: bool = False


# --- Regeneration job ---


class ApplyJob(BaseModel):
    """Observed state of a regeneration job."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus = JobStatus.QUEUED
    progress_message: str | None = Field(default=None, alias="progress")
    error_detail: str | None = Field(default=None, alias="error")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class JobHandle:
    """Reference to a regeneration job the client should observe."""

    job_id: str
    adopted: bool = False  # True when the job was already running


# --- Pending changes ---


@dataclass(frozen=True)
class PendingAddition:
    """An uncommitted font file with its display name."""

    name: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> PendingAddition:
        return cls(name=path.name, data=path.read_bytes())


FontsStatus.model_rebuild()
