# fontdesk - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.fonts_api import (
    SERVER_UNAVAILABLE,
    ApplyRejectedError,
    CatalogError,
    Conflict,
    Failure,
    Forbidden,
    ForbiddenError,
    FontsApiPort,
    FontsError,
    NotFound,
    NotFoundError,
    Ok,
    TransportError,
    TransportFailure,
    Unauthorized,
    UnauthorizedError,
    ValidationFailure,
    describe,
    error_for,
    unwrap,
)

__all__ = [
    # Fonts API
    "FontsApiPort",
    "SERVER_UNAVAILABLE",
    "describe",
    "error_for",
    "unwrap",
    # Result variants
    "Conflict",
    "Failure",
    "Forbidden",
    "NotFound",
    "Ok",
    "TransportFailure",
    "Unauthorized",
    "ValidationFailure",
    # Errors
    "ApplyRejectedError",
    "CatalogError",
    "ForbiddenError",
    "FontsError",
    "NotFoundError",
    "TransportError",
    "UnauthorizedError",
]
