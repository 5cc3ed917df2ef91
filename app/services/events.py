"""Event creation and QR codes.

An event is created with a shareable link that guests open to upload. The
link is also rendered as a QR code for printing on table cards.

Examples:
    >>> event = await create_event(store, "Anna & Tom's Wedding", None, "http://localhost:3001")
    >>> event.link
    'http://localhost:3001/event/6f1c...'
    >>> qr_data_url(event.link)[:22]
    'data:image/png;base64,'

Tests:
    - tests/unit/test_services/test_events.py
"""

from __future__ import annotations

import base64
import io
import logging

import qrcode

from app.core.validation import escape_text, validate_text
from app.metadata.base import MetadataStore
from app.schemas.records import EventRecord, new_id

logger = logging.getLogger(__name__)


async def create_event(
    store: MetadataStore,
    name: str | None,
    description: str | None,
    base_url: str,
    max_name_length: int = 200,
    max_description_length: int = 1000,
) -> EventRecord:
    """Validate and persist a new event.

    Args:
        store: Metadata store to insert into.
        name: Display name (required).
        description: Optional description.
        base_url: Public base URL used to build the guest link.
        max_name_length: Maximum name length.
        max_description_length: Maximum description length.

    Returns:
        The stored EventRecord.

    Raises:
        ValidationError: If name or description is invalid.
        PersistenceError: If the event could not be stored.
    """
    clean_name = validate_text(
        name, "name", max_name_length, required=True, label="Event name"
    )
    clean_description = validate_text(
        description, "description", max_description_length, required=False, label="Description"
    )

    event_id = new_id()
    event = EventRecord(
        id=event_id,
        name=escape_text(clean_name),
        description=escape_text(clean_description),
        link=f"{base_url.rstrip('/')}/event/{event_id}",
    )
    stored = await store.create(event)
    logger.info(f"Created event {stored.id}: {stored.name!r}")
    return stored


def render_qr_png(link: str) -> bytes:
    """Render ``link`` as a PNG QR code."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(link)
    qr.make(fit=True)

    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def qr_data_url(link: str) -> str:
    """Render ``link`` as a QR code embedded in a data URL."""
    encoded = base64.b64encode(render_qr_png(link)).decode("ascii")
    return f"data:image/png;base64,{encoded}"
