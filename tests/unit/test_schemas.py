"""Unit tests for record and API schemas.

Tests for app/schemas - EventRecord helpers and API response mapping.

Run with:
    pytest tests/unit/test_schemas.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.schemas import EventRecord, EventResponse, IncomingFile, UploadRecord


def _upload(minutes, guest="Ann"):
    return UploadRecord(
        guest_name=guest,
        storage_key=f"photos-tank/e1/{minutes}.jpg",
        url=f"memory://blobs/photos-tank/e1/{minutes}.jpg",
        content_type="image/jpeg",
        size=10,
        original_name="a.jpg",
        uploaded_at=datetime(2024, 6, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


@pytest.mark.fast
class TestEventRecord:
    """Tests for EventRecord."""

    def test_defaults(self):
        event = EventRecord(name="Wedding")
        assert event.id
        assert event.version == 0
        assert event.uploads == []
        assert event.created_at.tzinfo is not None

    def test_with_uploads_appends_without_mutating(self):
        event = EventRecord(name="Wedding", uploads=[_upload(0)])

        updated = event.with_uploads([_upload(1), _upload(2)])

        assert len(event.uploads) == 1
        assert [u.storage_key for u in updated.uploads] == [
            "photos-tank/e1/0.jpg",
            "photos-tank/e1/1.jpg",
            "photos-tank/e1/2.jpg",
        ]

    def test_uploads_newest_first(self):
        event = EventRecord(name="Wedding", uploads=[_upload(0), _upload(5), _upload(2)])
        assert [u.storage_key for u in event.uploads_newest_first()] == [
            "photos-tank/e1/5.jpg",
            "photos-tank/e1/2.jpg",
            "photos-tank/e1/0.jpg",
        ]

    def test_upload_ids_unique(self):
        assert _upload(0).id != _upload(0).id

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            UploadRecord(
                guest_name="Ann",
                storage_key="k",
                url="u",
                content_type="image/jpeg",
                size=-1,
                original_name="a.jpg",
            )


@pytest.mark.fast
class TestApiSchemas:
    """Tests for API response models."""

    def test_event_response_from_record(self):
        event = EventRecord(id="e1", name="Wedding", link="http://x/event/e1", uploads=[_upload(0)])

        response = EventResponse.from_record(event, qr_code="data:image/png;base64,AAA")

        assert response.id == "e1"
        assert response.qr_code == "data:image/png;base64,AAA"
        assert len(response.uploads) == 1

    def test_incoming_file_size(self):
        assert IncomingFile("a.jpg", "image/jpeg", b"12345").size == 5
