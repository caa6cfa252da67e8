"""
Fonts API Port (collaborator boundary).

Protocol-based interface to the remote font store and its regeneration job.
Every operation returns an explicit tagged result instead of raising, so
callers branch over a closed set of variants:

    Ok | NotFound | Unauthorized | Forbidden | Conflict
       | ValidationFailure | TransportFailure | Failure

Components convert a variant into an exception only where the failure is
fatal to them (see `unwrap`).

All calls assume an already-authenticated session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from src.core.entities import (
    ApplyJob,
    FontsStatus,
    JobHandle,
    Origin,
    PendingAddition,
    Resource,
    UploadedFont,
)

T = TypeVar("T")

SERVER_UNAVAILABLE = "Server unavailable"


# --- Result variants ---


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful call carrying its payload."""

    value: T


@dataclass(frozen=True)
class NotFound:
    message: str = "Not found"


@dataclass(frozen=True)
class Unauthorized:
    """Session is missing or expired. Never treated as a per-item failure."""

    message: str = "Unauthorized"


@dataclass(frozen=True)
class Forbidden:
    """Authenticated, but the operation is not permitted."""

    message: str = "Operation not permitted"


@dataclass(frozen=True)
class Conflict:
    """A regeneration job is already running."""

    existing_job_id: str
    message: str = "Generation already in progress"


@dataclass(frozen=True)
class ValidationFailure:
    """Request rejected as malformed (e.g. not a font file)."""

    message: str


@dataclass(frozen=True)
class TransportFailure:
    """Network-level failure; the server could not be reached."""

    message: str = SERVER_UNAVAILABLE


@dataclass(frozen=True)
class Failure:
    """Any other application error reported by the server."""

    message: str
    status_code: int | None = None


CommonFailure = Unauthorized | Forbidden | TransportFailure | Failure

StatusResult = Ok[FontsStatus] | CommonFailure
ListResult = Ok[list[Resource]] | CommonFailure
UploadResult = Ok[UploadedFont] | ValidationFailure | CommonFailure
DeleteResult = Ok[None] | NotFound | CommonFailure
ApplyChangesResult = Ok[JobHandle] | Conflict | ValidationFailure | CommonFailure
JobStatusResult = Ok[ApplyJob] | NotFound | CommonFailure


def describe(result: object) -> str:
    """User-facing message for a non-Ok variant."""
    message = getattr(result, "message", None)
    return str(message) if message else type(result).__name__


# --- Port ---


class FontsApiPort(Protocol):
    """
    Remote font store interface.

    Implementations must not raise for HTTP or network errors; they return
    the matching variant instead.
    """

    async def get_status(self) -> StatusResult:
        """Feature availability, counters and the current job (if any)."""
        ...

    async def list_fonts(
        self,
        name_filter: str = "",
        origin: Origin | None = None,
    ) -> ListResult:
        """List fonts, optionally filtered by name substring and origin."""
        ...

    async def upload(self, addition: PendingAddition) -> UploadResult:
        """Store one font file under its display name."""
        ...

    async def delete(self, file_id: str) -> DeleteResult:
        """Delete one physical font file by its id (bare filename)."""
        ...

    async def apply_changes(self) -> ApplyChangesResult:
        """Start regeneration; Conflict carries the job already running."""
        ...

    async def get_job_status(self, job_id: str) -> JobStatusResult:
        """Current state of a regeneration job."""
        ...


# --- Error types ---


class FontsError(Exception):
    """Base exception for font management errors."""

    pass


class UnauthorizedError(FontsError):
    """Session rejected; aborts the whole apply cycle."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(FontsError):
    """Operation not permitted for this user."""

    pass


class NotFoundError(FontsError):
    pass


class TransportError(FontsError):
    """Server unreachable (suggest "server unavailable" to the user)."""

    def __init__(self, message: str = SERVER_UNAVAILABLE) -> None:
        super().__init__(message)


class ApplyRejectedError(FontsError):
    """Regeneration trigger rejected for a reason other than Conflict."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CatalogError(FontsError):
    """Catalog could not be fetched."""

    pass


def error_for(result: object) -> FontsError:
    """Map a failure variant onto the exception hierarchy."""
    if isinstance(result, Unauthorized):
        return UnauthorizedError(result.message)
    if isinstance(result, Forbidden):
        return ForbiddenError(result.message)
    if isinstance(result, NotFound):
        return NotFoundError(result.message)
    if isinstance(result, TransportFailure):
        return TransportError(result.message)
    return FontsError(describe(result))


def unwrap(result: Ok[T] | object) -> T:
    """Return the Ok payload or raise the matching FontsError."""
    if isinstance(result, Ok):
        return result.value
    raise error_for(result)
