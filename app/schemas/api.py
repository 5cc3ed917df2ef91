"""Request and response models for the HTTP API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.records import EventRecord, UploadRecord


class CreateEventRequest(BaseModel):
    """Request to create an event.

    Length limits are enforced by the event service so they follow settings.
    """

    name: str = Field(..., description="Display name of the event", examples=["Anna & Tom's Wedding"])
    description: str | None = Field(default=None, description="Optional description")


class EventResponse(BaseModel):
    """A created or fetched event."""

    id: str
    name: str
    description: str
    created_at: datetime
    link: str
    qr_code: str | None = Field(default=None, description="QR code of the link as a PNG data URL")
    uploads: list[UploadRecord] = Field(default_factory=list)

    @classmethod
    def from_record(cls, event: EventRecord, qr_code: str | None = None) -> "EventResponse":
        return cls(
            id=event.id,
            name=event.name,
            description=event.description,
            created_at=event.created_at,
            link=event.link,
            qr_code=qr_code,
            uploads=event.uploads,
        )


class EventSummary(BaseModel):
    """Event entry in the listing."""

    id: str
    name: str
    description: str
    created_at: datetime
    link: str
    upload_count: int


class UploadResponse(BaseModel):
    """Result of a successful upload."""

    success: bool = True
    files: list[UploadRecord]
    count: int
    message: str


class GalleryResponse(BaseModel):
    """Uploads of an event, newest first."""

    event_name: str
    uploads: list[UploadRecord]
