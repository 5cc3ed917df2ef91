"""Event API endpoints.

Endpoints:
    POST /api/events - Create an event
    GET /api/events - List events
    GET /api/events/{id} - Get an event
    GET /api/events/{id}/qr - QR code of the guest link
    POST /api/events/{id}/upload - Upload guest files
    GET /api/events/{id}/gallery - Uploads, newest first
    GET /api/events/{id}/download - Whole gallery as a streamed ZIP

Domain errors raised here are turned into JSON responses by the handlers
registered in app.main.

Examples:
    >>> POST /api/events
    >>> {"name": "Anna & Tom's Wedding"}
    >>>
    >>> # Response
    >>> {"id": "...", "link": "http://localhost:3001/event/...", "qr_code": "data:image/png;base64,..."}

Tests:
    - tests/integration/test_api_events.py
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from fastapi.responses import StreamingResponse

from app.api.deps import get_archive_streamer, get_metadata_store, get_upload_transaction
from app.config import Settings, get_settings
from app.core.archive import ArchiveStreamer
from app.core.uploads import UploadTransaction
from app.core.validation import validate_file_count
from app.errors import NotFoundError
from app.metadata.base import MetadataStore
from app.schemas.api import (
    CreateEventRequest,
    EventResponse,
    EventSummary,
    GalleryResponse,
    UploadResponse,
)
from app.schemas.records import EventRecord, IncomingFile
from app.services.events import create_event, qr_data_url, render_qr_png
from app.storage.naming import download_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


async def _require_event(store: MetadataStore, event_id: str) -> EventRecord:
    event = await store.get(event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


@router.post("", response_model=EventResponse)
async def create_event_endpoint(
    body: CreateEventRequest,
    settings: Settings = Depends(get_settings),
    store: MetadataStore = Depends(get_metadata_store),
) -> EventResponse:
    """Create an event and return it with a QR code of its link."""
    event = await create_event(
        store,
        body.name,
        body.description,
        settings.PUBLIC_BASE_URL,
        max_name_length=settings.MAX_EVENT_NAME_LENGTH,
        max_description_length=settings.MAX_DESCRIPTION_LENGTH,
    )
    return EventResponse.from_record(event, qr_code=qr_data_url(event.link))


@router.get("", response_model=list[EventSummary])
async def list_events(store: MetadataStore = Depends(get_metadata_store)) -> list[EventSummary]:
    """List all events with their upload counts."""
    events = await store.list_events()
    return [
        EventSummary(
            id=e.id,
            name=e.name,
            description=e.description,
            created_at=e.created_at,
            link=e.link,
            upload_count=len(e.uploads),
        )
        for e in events
    ]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    store: MetadataStore = Depends(get_metadata_store),
) -> EventResponse:
    """Get one event with all of its uploads."""
    return EventResponse.from_record(await _require_event(store, event_id))


@router.get("/{event_id}/qr")
async def get_event_qr(
    event_id: str,
    store: MetadataStore = Depends(get_metadata_store),
) -> Response:
    """QR code of the event link as a PNG image."""
    event = await _require_event(store, event_id)
    return Response(content=render_qr_png(event.link), media_type="image/png")


@router.post("/{event_id}/upload", response_model=UploadResponse)
async def upload_files(
    event_id: str,
    guest_name: str | None = Form(default=None, alias="guestName"),
    message: str | None = Form(default=None),
    files: list[UploadFile] = File(default=[]),
    settings: Settings = Depends(get_settings),
    transaction: UploadTransaction = Depends(get_upload_transaction),
) -> UploadResponse:
    """Store a guest's files and record them on the event.

    The file count is checked before any part is read. Each file is then
    read up to one byte past the size limit, which is enough for validation
    to reject it without buffering the whole body.
    """
    validate_file_count(len(files), settings.MAX_FILES_PER_UPLOAD)

    incoming = []
    for upload in files:
        data = await upload.read(settings.MAX_FILE_SIZE_BYTES + 1)
        incoming.append(
            IncomingFile(
                filename=upload.filename or "",
                content_type=upload.content_type or "",
                data=data,
            )
        )
        await upload.close()

    records = await transaction.execute(event_id, guest_name, message, incoming)
    return UploadResponse(
        files=records,
        count=len(records),
        message=f"Successfully uploaded {len(records)} file(s)",
    )


@router.get("/{event_id}/gallery", response_model=GalleryResponse)
async def get_gallery(
    event_id: str,
    store: MetadataStore = Depends(get_metadata_store),
) -> GalleryResponse:
    """Uploads of an event for display, newest first."""
    event = await _require_event(store, event_id)
    return GalleryResponse(event_name=event.name, uploads=event.uploads_newest_first())


@router.get("/{event_id}/download")
async def download_gallery(
    event_id: str,
    request: Request,
    store: MetadataStore = Depends(get_metadata_store),
    streamer: ArchiveStreamer = Depends(get_archive_streamer),
) -> StreamingResponse:
    """Stream every upload of the event as one ZIP archive."""
    event = await _require_event(store, event_id)
    chunks = streamer.stream(event.uploads, is_disconnected=request.is_disconnected)

    filename = download_filename(event.name, event.id)
    logger.info(f"Streaming archive of {len(event.uploads)} upload(s) for event {event.id}")
    return StreamingResponse(
        chunks,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
