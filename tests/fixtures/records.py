"""
Builders for upload files and records used across tests.
"""
from datetime import datetime, timedelta, timezone

from app.schemas.records import IncomingFile, UploadRecord

# A JPEG header is enough; nothing decodes the bytes
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 60 + b"\xff\xd9"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 60


def make_file(name="photo.jpg", content_type="image/jpeg", data=JPEG_BYTES) -> IncomingFile:
    """Build an IncomingFile."""
    return IncomingFile(filename=name, content_type=content_type, data=data)


def make_upload(blobs, guest="Ann", name="photo.jpg", data=JPEG_BYTES, minutes=0, **overrides) -> UploadRecord:
    """Seed a blob in ``blobs`` and return an UploadRecord pointing at it."""
    key = overrides.pop("key", f"photos-tank/e1/{len(blobs.blobs):04d}-upload.jpg")
    stored = blobs.seed(key, data)
    return UploadRecord(
        guest_name=guest,
        storage_key=stored.key,
        url=stored.url,
        content_type=overrides.pop("content_type", "image/jpeg"),
        size=stored.size,
        original_name=name,
        uploaded_at=datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        **overrides,
    )
