"""Event and upload records.

These are the structures owned by the metadata store. An UploadRecord's
``storage_key`` is the only link between metadata and blob storage.

Examples:
    >>> from app.schemas.records import EventRecord
    >>> event = EventRecord(id="e1", name="Wedding", link="http://x/event/e1")
    >>> event.with_uploads([]).version
    0

Tests:
    - tests/unit/test_schemas.py
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate an opaque unique identifier."""
    return str(uuid.uuid4())


class UploadRecord(BaseModel):
    """Metadata describing one stored file contributed by a guest.

    Attributes:
        id: Unique identifier, independent of the storage key
        guest_name: Name the guest signed the upload with
        message: Optional note from the guest
        storage_key: Key of the blob in the blob store
        url: Fetchable content URL
        content_type: Declared media type
        size: Size in bytes
        original_name: Filename supplied by the client
        uploaded_at: Creation timestamp (UTC)
    """

    id: str = Field(default_factory=new_id)
    guest_name: str
    message: str = ""
    storage_key: str
    url: str
    content_type: str
    size: int = Field(ge=0)
    original_name: str
    uploaded_at: datetime = Field(default_factory=utc_now)


class EventRecord(BaseModel):
    """A named gallery grouping guest uploads.

    ``uploads`` is kept in insertion (chronological) order. ``version`` is the
    optimistic-concurrency token: stores bump it on every applied update and
    refuse updates computed from a stale version.
    """

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    link: str = ""
    version: int = 0
    uploads: list[UploadRecord] = Field(default_factory=list)

    def with_uploads(self, records: list[UploadRecord]) -> "EventRecord":
        """Return a copy of the event with ``records`` appended."""
        return self.model_copy(update={"uploads": [*self.uploads, *records]})

    def uploads_newest_first(self) -> list[UploadRecord]:
        """Uploads ordered for display."""
        return sorted(self.uploads, key=lambda u: u.uploaded_at, reverse=True)


@dataclass
class IncomingFile:
    """A file buffer received from a guest, not yet validated."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
