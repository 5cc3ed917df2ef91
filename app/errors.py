"""Error taxonomy for the gallery service.

Every error raised by the upload coordinator, the archive streamer and the
storage layers derives from GalleryError and carries the HTTP status code
the API layer should answer with.

Examples:
    >>> from app.errors import ValidationError
    >>> raise ValidationError("guestName", "Guest name is required")

Tests:
    - tests/unit/test_errors.py
"""

from __future__ import annotations

__all__ = [
    "GalleryError",
    "ValidationError",
    "NotFoundError",
    "StorageWriteError",
    "PersistenceError",
    "NoContentError",
    "PartialFetchError",
]


class GalleryError(Exception):
    """Base exception for gallery errors.

    Attributes:
        message: Human readable error message
        status_code: HTTP status code for the API response
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize gallery error.

        Args:
            message: Error message.
            status_code: Override for the class default status code.
        """
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GalleryError):
    """Rejected input (guest name, message, file type or size).

    Raised before any side effect, so nothing needs to be undone.
    """

    status_code = 400

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        return f"[{self.field}] {self.message}"


class NotFoundError(GalleryError):
    """The requested event does not exist."""

    status_code = 404


class StorageWriteError(GalleryError):
    """A blob write failed; blobs written by the same call were removed."""

    status_code = 500


class PersistenceError(GalleryError):
    """The metadata commit failed after the blobs were written."""

    status_code = 500


class NoContentError(GalleryError):
    """An archive was requested for a gallery with no uploads."""

    status_code = 404


class PartialFetchError(GalleryError):
    """A single blob could not be downloaded while building an archive.

    Never escapes the archive streamer: the file is skipped and logged.
    """

    status_code = 502

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
