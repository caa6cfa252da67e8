"""
Dev Fonts Server Adapter.

In-memory FastAPI implementation of the admin fonts API for local
development and integration tests. Mirrors the production server closely
enough for the client to be exercised end to end:

- Bearer token check (401) when a token is configured
- Upload validation: extension allow-list, size limit, magic bytes (400)
- Filenames sanitised to [a-zA-Z0-9._-]
- DELETE of a missing custom file is a 404
- POST /fonts/apply while a generation runs is a 409 carrying the jobId
- Regeneration is simulated: the job completes after a configurable number
  of status polls, then the custom catalog is rebuilt from stored files and
  files no font references are removed

The catalog is only rebuilt by regeneration, so uploads and deletes are not
visible in GET /fonts until a job finishes (as with the real font cache).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from src.domain.font_files import (
    DEFAULT_FONT_EXTENSIONS,
    MAX_FONT_FILE_BYTES,
    detect_font_format,
    sanitize_filename,
    validate_font_file,
)

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "/api/v1/admin"
CUSTOM_FONTS_DIR = "/data/fonts"

# (family, style) per face, in face-index order
Faces = list[tuple[str, str]]
FaceResolver = Callable[[str, bytes], Faces]

BUILTIN_FONTS: dict[str, list[tuple[str, str]]] = {
    "DejaVu Sans": [
        ("Regular", "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        ("Bold", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    ],
    "Liberation Serif": [
        ("Regular", "/usr/share/fonts/truetype/liberation/LiberationSerif-Regular.ttf"),
        ("Italic", "/usr/share/fonts/truetype/liberation/LiberationSerif-Italic.ttf"),
    ],
    "Noto Sans CJK": [
        ("Regular", "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc"),
    ],
}


class FontStoreError(Exception):
    """Request rejected by the dev store."""

    def __init__(self, status_code: int, message: str, job_id: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.job_id = job_id


def _collection_face_count(data: bytes) -> int:
    # TTC header: tag, version, numFonts (uint32, big-endian)
    if len(data) < 12:
        return 1
    return max(1, min(int.from_bytes(data[8:12], "big"), 64))


def default_face_resolver(filename: str, data: bytes) -> Faces:
    """
    Guess faces from the file name: "Family-Style.ext".

    Collections yield one family per face. Unreadable files yield nothing
    and are treated as orphans.
    """
    font_type = detect_font_format(data)
    if font_type is None:
        return []

    stem = PurePosixPath(filename).stem
    family, _, style = stem.partition("-")
    family = family.replace("_", " ").strip() or stem
    style = style or "Regular"

    if font_type != "TTC":
        return [(family, style)]
    count = _collection_face_count(data)
    return [(family if i == 0 else f"{family} {i + 1}", style) for i in range(count)]


def _style_flags(styles: list[str]) -> dict[str, bool]:
    flags = {"hasRegular": False, "hasBold": False, "hasItalic": False, "hasBoldItalic": False}
    for style in styles:
        lowered = style.lower()
        bold = "bold" in lowered
        italic = "italic" in lowered or "oblique" in lowered
        if bold and italic:
            flags["hasBoldItalic"] = True
        elif bold:
            flags["hasBold"] = True
        elif italic:
            flags["hasItalic"] = True
        else:
            flags["hasRegular"] = True
    return flags


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class DevJob:
    """A simulated regeneration job."""

    job_id: str
    status: str = "running"
    progress: str | None = "Scanning font directories..."
    error: str | None = None
    started_at: str = field(default_factory=_now)
    completed_at: str | None = None
    polls: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")

    def to_wire(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status,
            "progress": self.progress,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "error": self.error,
        }


class DevFontsServer:
    """
    In-memory font store and regeneration simulator.

    State changes are guarded by a lock since TestClient and ASGI transports
    may call in from worker threads.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        polls_to_complete: int = 1,
        extensions: tuple[str, ...] = DEFAULT_FONT_EXTENSIONS,
        max_bytes: int = MAX_FONT_FILE_BYTES,
        face_resolver: FaceResolver = default_face_resolver,
        builtin_fonts: dict[str, list[tuple[str, str]]] | None = None,
    ) -> None:
        self.token = token
        self.polls_to_complete = polls_to_complete
        self.fail_next_generation: str | None = None

        self._extensions = extensions
        self._max_bytes = max_bytes
        self._face_resolver = face_resolver
        self._lock = threading.Lock()

        self._files: dict[str, bytes] = {}
        self._faces: dict[str, Faces] = {}
        self._builtin: list[dict[str, Any]] = [
            self._entry(name, "system", [(style, path, 0) for style, path in files])
            for name, files in (BUILTIN_FONTS if builtin_fonts is None else builtin_fonts).items()
        ]
        self._custom: list[dict[str, Any]] = []
        self._jobs: dict[str, DevJob] = {}
        self._current: DevJob | None = None

        # Observed request counts, for tests
        self.delete_calls: list[str] = []
        self.upload_calls: list[str] = []
        self.apply_calls = 0

    # --- Seeding ---

    def seed_custom_file(self, filename: str, data: bytes, faces: Faces | None = None) -> None:
        """Store a custom file and make it visible immediately."""
        with self._lock:
            self._files[filename] = data
            if faces is not None:
                self._faces[filename] = list(faces)
            self._rebuild_catalog()

    @property
    def stored_files(self) -> list[str]:
        with self._lock:
            return sorted(self._files)

    @property
    def is_generating(self) -> bool:
        return self._current is not None and not self._current.is_terminal

    # --- Catalog ---

    @staticmethod
    def _entry(name: str, source: str, files: list[tuple[str, str, int]]) -> dict[str, Any]:
        return {
            "name": name,
            "source": source,
            "files": [{"style": style, "path": path, "faceIndex": index} for style, path, index in files],
            **_style_flags([style for style, _, _ in files]),
        }

    def _faces_for(self, filename: str) -> Faces:
        if filename in self._faces:
            return self._faces[filename]
        return self._face_resolver(filename, self._files[filename])

    def _rebuild_catalog(self) -> None:
        families: dict[str, list[tuple[str, str, int]]] = {}
        for filename in sorted(self._files):
            path = f"{CUSTOM_FONTS_DIR}/{filename}"
            for index, (family, style) in enumerate(self._faces_for(filename)):
                families.setdefault(family, []).append((style, path, index))
        self._custom = [self._entry(name, "custom", files) for name, files in sorted(families.items())]

    def _cleanup_orphans(self) -> list[str]:
        referenced = {
            PurePosixPath(font_file["path"]).name
            for entry in self._custom
            for font_file in entry["files"]
        }
        orphans = [name for name in self._files if name not in referenced]
        for name in orphans:
            del self._files[name]
            self._faces.pop(name, None)
        if orphans:
            logger.info("Removed %d orphaned font file(s): %s", len(orphans), ", ".join(orphans))
        return orphans

    def status(self) -> dict[str, Any]:
        with self._lock:
            custom_files = {f["path"] for entry in self._custom for f in entry["files"]}
            builtin_files = {f["path"] for entry in self._builtin for f in entry["files"]}
            return {
                "available": True,
                "totalFontsCount": len(self._builtin) + len(self._custom),
                "customFontsCount": len(self._custom),
                "totalFilesCount": len(custom_files) + len(builtin_files),
                "customFilesCount": len(custom_files),
                "isGenerating": self.is_generating,
                "generationStatus": self._current.to_wire() if self._current else {"status": "idle"},
            }

    def list_fonts(self, name_filter: str = "", source: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            entries = [*self._builtin, *self._custom]
        if source in ("custom", "system"):
            entries = [e for e in entries if e["source"] == source]
        if name_filter:
            needle = name_filter.lower()
            entries = [e for e in entries if needle in e["name"].lower()]
        return sorted(entries, key=lambda e: e["name"].lower())

    # --- Mutations ---

    def store_upload(self, filename: str, data: bytes) -> dict[str, Any]:
        if not filename:
            raise FontStoreError(400, "X-Filename header is required")

        validation = validate_font_file(
            data,
            filename,
            extensions=self._extensions,
            max_bytes=self._max_bytes,
        )
        if not validation.valid:
            raise FontStoreError(400, validation.error or "Invalid font file")

        safe_name = sanitize_filename(filename)
        with self._lock:
            self.upload_calls.append(safe_name)
            overwritten = safe_name in self._files
            self._files[safe_name] = data
            self._faces.pop(safe_name, None)

        logger.info("Stored font %s (%d bytes, overwritten=%s)", safe_name, len(data), overwritten)
        return {
            "success": True,
            "filename": safe_name,
            "originalName": filename,
            "size": len(data),
            "type": validation.font_type,
            "overwritten": overwritten,
        }

    def delete_file(self, filename: str) -> dict[str, Any]:
        safe_name = sanitize_filename(filename)
        with self._lock:
            self.delete_calls.append(safe_name)
            if safe_name not in self._files:
                raise FontStoreError(404, "Font file not found")
            del self._files[safe_name]
            self._faces.pop(safe_name, None)

        logger.info("Deleted font %s", safe_name)
        return {"success": True, "filename": safe_name}

    # --- Regeneration ---

    def start_generation(self) -> dict[str, Any]:
        with self._lock:
            self.apply_calls += 1
            if self._current is not None and not self._current.is_terminal:
                raise FontStoreError(409, "Generation already in progress", job_id=self._current.job_id)

            job = DevJob(job_id=uuid4().hex)
            self._jobs[job.job_id] = job
            self._current = job

        logger.info("Font generation started: jobId=%s", job.job_id)
        return {"success": True, "jobId": job.job_id, "message": "Font generation started"}

    def job_status(self, job_id: str | None = None) -> dict[str, Any]:
        with self._lock:
            if job_id:
                job = self._jobs.get(job_id)
                if job is None:
                    raise FontStoreError(404, "Job not found")
            elif self._current is not None:
                job = self._current
            else:
                return {"status": "idle"}

            if not job.is_terminal:
                job.polls += 1
                if job.polls >= self.polls_to_complete:
                    self._finish(job)
                else:
                    job.progress = "Rebuilding font cache..."
            return job.to_wire()

    def finish_current_job(self) -> DevJob | None:
        """Complete the running job now, regardless of poll count."""
        with self._lock:
            job = self._current
            if job is not None and not job.is_terminal:
                self._finish(job)
            return job

    def _finish(self, job: DevJob) -> None:
        self._rebuild_catalog()
        job.completed_at = _now()
        job.progress = None

        if self.fail_next_generation is not None:
            job.status = "failed"
            job.error = self.fail_next_generation
            self.fail_next_generation = None
            logger.warning("Font generation failed: jobId=%s, error=%s", job.job_id, job.error)
            return

        self._cleanup_orphans()
        self._rebuild_catalog()
        job.status = "completed"
        logger.info("Font generation completed: jobId=%s", job.job_id)


# --- HTTP surface ---


def get_server(request: Request) -> DevFontsServer:
    server: DevFontsServer = request.app.state.fonts_server
    return server


def require_token(request: Request) -> None:
    """Reject requests without the configured bearer token."""
    server = get_server(request)
    if server.token is None:
        return
    if request.headers.get("Authorization", "") != f"Bearer {server.token}":
        raise HTTPException(status_code=401, detail="Unauthorized")


router = APIRouter(dependencies=[Depends(require_token)])


@router.get("/fonts/status")
def fonts_status(server: DevFontsServer = Depends(get_server)) -> dict[str, Any]:
    """Feature availability, counters and generation state."""
    return server.status()


@router.get("/fonts")
def list_fonts(
    name_filter: str = Query(default="", alias="filter"),
    source: str | None = Query(default=None),
    server: DevFontsServer = Depends(get_server),
) -> dict[str, Any]:
    """List fonts, optionally filtered by name and source."""
    fonts = server.list_fonts(name_filter, source)
    return {
        "fonts": fonts,
        "total": len(fonts),
        "customCount": sum(1 for f in fonts if f["source"] == "custom"),
    }


@router.post("/fonts/upload")
async def upload_font(request: Request, server: DevFontsServer = Depends(get_server)) -> dict[str, Any]:
    """Store a raw font body named by the X-Filename header."""
    data = await request.body()
    filename = unquote(request.headers.get("X-Filename", ""))
    try:
        return server.store_upload(filename, data)
    except FontStoreError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


@router.post("/fonts/apply")
def apply_changes(server: DevFontsServer = Depends(get_server)) -> Any:
    """Start a regeneration job, or report the one already running."""
    try:
        return server.start_generation()
    except FontStoreError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"error": e.message, "jobId": e.job_id},
        )


@router.get("/fonts/apply/status")
def apply_status(
    job_id: str | None = Query(default=None, alias="jobId"),
    server: DevFontsServer = Depends(get_server),
) -> dict[str, Any]:
    """Status of the given job, or of the current one."""
    try:
        return server.job_status(job_id)
    except FontStoreError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


@router.delete("/fonts/{filename}")
def delete_font(filename: str, server: DevFontsServer = Depends(get_server)) -> dict[str, Any]:
    """Delete one custom font file."""
    try:
        return server.delete_file(filename)
    except FontStoreError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


def create_dev_fonts_app(
    server: DevFontsServer | None = None,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> FastAPI:
    """Create a FastAPI app serving the fonts routes under prefix."""
    app = FastAPI(title="fontdesk dev fonts server", version="0.1.0")
    app.state.fonts_server = server or DevFontsServer()
    app.include_router(router, prefix=prefix, tags=["Fonts"])
    return app
