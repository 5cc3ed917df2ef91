"""Input validation for uploads and events.

Validation is side-effect free: it either returns cleaned values or raises
ValidationError naming the offending field. Text that will be shown back to
other guests is HTML-escaped after its length has been checked.

Examples:
    >>> limits = UploadLimits()
    >>> submission = validate_submission("Ann", "Congrats!", [file], limits)
    >>> submission.guest_name
    'Ann'
"""

from __future__ import annotations

import html
import os
from dataclasses import dataclass

from app.config import ALLOWED_MEDIA_TYPES, Settings
from app.errors import ValidationError
from app.schemas.records import IncomingFile


@dataclass(frozen=True)
class UploadLimits:
    """Bounds applied to an upload request."""

    max_files: int = 20
    max_file_size: int = 10 * 1024 * 1024
    max_guest_name_length: int = 100
    max_message_length: int = 500

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadLimits":
        return cls(
            max_files=settings.MAX_FILES_PER_UPLOAD,
            max_file_size=settings.MAX_FILE_SIZE_BYTES,
            max_guest_name_length=settings.MAX_GUEST_NAME_LENGTH,
            max_message_length=settings.MAX_MESSAGE_LENGTH,
        )


@dataclass(frozen=True)
class ValidatedFile:
    """A file that passed the allow-list and size checks."""

    filename: str
    content_type: str
    extension: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Submission:
    """A fully validated upload request."""

    guest_name: str
    message: str
    files: list[ValidatedFile]


def escape_text(value: str) -> str:
    """Escape text for safe display in HTML, including slashes."""
    return html.escape(value, quote=True).replace("/", "&#x2F;")


def validate_text(
    value: str | None,
    field: str,
    max_length: int,
    required: bool,
    label: str,
) -> str:
    """Check presence and length of a free-text field.

    Args:
        value: Raw value (None when the field was omitted).
        field: Field name reported in the error.
        max_length: Maximum length after stripping whitespace.
        required: Whether an empty value is rejected.
        label: Human readable field name for messages.

    Returns:
        The stripped value ("" for an omitted optional field).

    Raises:
        ValidationError: If the value is missing or too long.
    """
    text = (value or "").strip()
    if required and not text:
        raise ValidationError(
            field, f"{label} is required and must be at most {max_length} characters"
        )
    if len(text) > max_length:
        raise ValidationError(field, f"{label} must be at most {max_length} characters")
    return text


def validate_file(file: IncomingFile, index: int, limits: UploadLimits) -> ValidatedFile:
    """Check one file against the media allow-list and size bound.

    The declared media type and the filename extension must both be allowed
    and must agree with each other.

    Raises:
        ValidationError: On a disallowed or mismatched type, or a bad size.
    """
    field = f"files[{index}]"
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    extension = os.path.splitext(file.filename or "")[1].lower()

    allowed_extensions = ALLOWED_MEDIA_TYPES.get(content_type)
    if allowed_extensions is None:
        raise ValidationError(
            field,
            f"Invalid file type '{content_type or 'unknown'}'. Only image and video uploads are allowed.",
        )
    if extension not in allowed_extensions:
        raise ValidationError(
            field,
            f"File extension '{extension or 'none'}' does not match type '{content_type}'",
        )
    if file.size == 0:
        raise ValidationError(field, f"File '{file.filename}' is empty")
    if file.size > limits.max_file_size:
        max_mb = limits.max_file_size // (1024 * 1024)
        raise ValidationError(
            field, f"File too large. Maximum file size is {max_mb}MB per file."
        )

    return ValidatedFile(
        filename=os.path.basename(file.filename),
        content_type=content_type,
        extension=extension,
        data=file.data,
    )


def validate_file_count(count: int, max_files: int) -> None:
    """Reject a batch with more than ``max_files`` files.

    Usable before any file body is read.
    """
    if count > max_files:
        raise ValidationError("files", f"Too many files. Maximum {max_files} files per upload.")


def validate_submission(
    guest_name: str | None,
    message: str | None,
    files: list[IncomingFile],
    limits: UploadLimits,
) -> Submission:
    """Validate a whole upload request before anything is written.

    Raises:
        ValidationError: Naming the first offending field.
    """
    name = validate_text(
        guest_name, "guestName", limits.max_guest_name_length, required=True, label="Guest name"
    )
    note = validate_text(
        message, "message", limits.max_message_length, required=False, label="Message"
    )

    if not files:
        raise ValidationError("files", "At least one file is required")
    validate_file_count(len(files), limits.max_files)

    validated = [validate_file(f, i, limits) for i, f in enumerate(files)]
    return Submission(guest_name=escape_text(name), message=escape_text(note), files=validated)
