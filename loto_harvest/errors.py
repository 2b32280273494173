"""Custom exceptions for centralized error handling.

Per-draw errors (transport, insufficient data, duplicates) are caught by the
sync engine and skipped; run-level errors (no draws found, storage
unavailable) propagate to the trigger and are rendered by the error handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", details: Any | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=400, details=details)


class ConflictError(AppError):
    """Conflict (e.g., unique constraint)."""

    def __init__(self, message: str = "Conflict", details: Any | None = None) -> None:
        super().__init__(code="conflict", message=message, status_code=409, details=details)


class DuplicateDrawError(ConflictError):
    """A draw with the same source URL or sequence id is already stored."""

    def __init__(self, message: str = "Draw already stored", details: Any | None = None) -> None:
        super().__init__(message=message, details=details)
        self.code = "duplicate_draw"


class TransportError(AppError):
    """Upstream fetch failed (network, timeout or non-200 status)."""

    def __init__(
        self,
        message: str = "Upstream request failed",
        *,
        url: str | None = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(
            code="transport_error",
            message=message,
            status_code=502,
            details={"url": url, "upstream_status": upstream_status},
        )
        self.url = url
        self.upstream_status = upstream_status


class InsufficientDataError(AppError):
    """Fewer than six numbers could be extracted from a draw page."""

    def __init__(self, message: str = "Not enough numbers on page", *, found: int = 0) -> None:
        super().__init__(
            code="insufficient_data",
            message=message,
            status_code=422,
            details={"found": found},
        )
        self.found = found


class NoDrawsFoundError(AppError):
    """The locator could not discover a single upstream draw."""

    def __init__(self, message: str = "No draws found upstream", details: Any | None = None) -> None:
        super().__init__(code="no_draws_found", message=message, status_code=502, details=details)


class StorageUnavailableError(AppError):
    """The draw store could not be read or written."""

    def __init__(self, message: str = "Storage unavailable", details: Any | None = None) -> None:
        super().__init__(code="storage_unavailable", message=message, status_code=503, details=details)
