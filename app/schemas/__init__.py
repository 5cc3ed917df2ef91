"""Pydantic schemas for events, uploads and API payloads.

Examples:
    >>> from app.schemas import EventRecord, UploadRecord
"""

from app.schemas.api import (
    CreateEventRequest,
    EventResponse,
    EventSummary,
    GalleryResponse,
    UploadResponse,
)
from app.schemas.records import EventRecord, IncomingFile, UploadRecord

__all__ = [
    # Records
    "EventRecord",
    "IncomingFile",
    "UploadRecord",
    # API
    "CreateEventRequest",
    "EventResponse",
    "EventSummary",
    "GalleryResponse",
    "UploadResponse",
]
