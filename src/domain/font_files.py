"""
Pure helpers for font files: accepted suffixes, signatures, naming.

No I/O. Shared by the client components and the dev fonts server.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

DEFAULT_FONT_EXTENSIONS: tuple[str, ...] = (
    ".ttf",
    ".tte",
    ".otf",
    ".otc",
    ".ttc",
    ".woff",
    ".woff2",
)

MAX_FONT_FILE_BYTES = 50 * 1024 * 1024

# First four bytes of each supported container
FONT_SIGNATURES: dict[str, bytes] = {
    "TTF": b"\x00\x01\x00\x00",
    "OTF": b"OTTO",
    "TTC": b"ttcf",
    "WOFF": b"wOFF",
    "WOFF2": b"wOF2",
}

# Which detected formats each extension may carry
_EXTENSION_FORMATS: dict[str, frozenset[str]] = {
    ".ttf": frozenset({"TTF", "TTC"}),
    ".tte": frozenset({"TTF", "TTC"}),
    ".otf": frozenset({"OTF", "TTC"}),
    ".otc": frozenset({"OTF", "TTC"}),
    ".ttc": frozenset({"TTC"}),
    ".woff": frozenset({"WOFF"}),
    ".woff2": frozenset({"WOFF2"}),
}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True)
class FontValidation:
    """Outcome of validating an uploaded font file."""

    valid: bool
    error: str | None = None
    font_type: str | None = None


def physical_file_id(path: str) -> str:
    """
    Reduce a server-side font path to the id the store deletes by.

    Both POSIX and Windows separators are stripped.
    """
    return path.replace("\\", "/").rsplit("/", 1)[-1]


def has_accepted_suffix(name: str, extensions: tuple[str, ...] = DEFAULT_FONT_EXTENSIONS) -> bool:
    """Case-insensitive suffix check against the allow-list."""
    lowered = name.lower()
    return any(lowered.endswith(ext.lower()) for ext in extensions)


def sanitize_filename(filename: str) -> str:
    """Keep only the basename and replace unsafe characters with '_'."""
    basename = physical_file_id(filename)
    return _UNSAFE_CHARS.sub("_", basename)


def detect_font_format(data: bytes) -> str | None:
    header = data[:4]
    for font_type, signature in FONT_SIGNATURES.items():
        if header == signature:
            return font_type
    return None


def validate_font_file(
    data: bytes,
    filename: str,
    *,
    extensions: tuple[str, ...] = DEFAULT_FONT_EXTENSIONS,
    max_bytes: int = MAX_FONT_FILE_BYTES,
) -> FontValidation:
    """
    Validate an uploaded font by size, extension and magic bytes.

    The extension must agree with the detected container format.
    """
    if len(data) < 4:
        return FontValidation(valid=False, error="File too small to be a valid font")

    if len(data) > max_bytes:
        return FontValidation(
            valid=False,
            error=f"File exceeds maximum size of {max_bytes // (1024 * 1024)}MB",
        )

    ext = PurePosixPath(filename.lower()).suffix
    if ext not in extensions:
        return FontValidation(
            valid=False,
            error=f"Invalid extension. Allowed: {', '.join(extensions)}",
        )

    font_type = detect_font_format(data)
    if font_type is None:
        return FontValidation(
            valid=False,
            error="Invalid font file signature. File may be corrupted or not a valid font.",
        )

    allowed = _EXTENSION_FORMATS.get(ext)
    if allowed is not None and font_type not in allowed:
        return FontValidation(
            valid=False,
            error=f"File extension {ext} does not match actual font format",
        )

    return FontValidation(valid=True, font_type=font_type)


def format_size(size: int) -> str:
    """Human readable byte count (B, KB, MB)."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1024 / 1024:.1f} MB"
