"""Behavior shared by every metadata store.

Each test runs against the JSON store and the SQL store.

Run with:
    pytest tests/unit/test_metadata/test_metadata_stores.py -v
"""

import pytest

from app.errors import PersistenceError
from app.metadata.base import UpdateOutcome
from app.schemas.records import EventRecord
from tests.fixtures.memory_blob_store import MemoryBlobStore
from tests.fixtures.records import make_upload


def _event(event_id="e1", name="Wedding"):
    return EventRecord(id=event_id, name=name, description="Garden party", link=f"http://test/event/{event_id}")


@pytest.mark.fast
class TestMetadataStore:
    """Tests for create/get/list/atomic_update."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, metadata_store):
        await metadata_store.create(_event())

        stored = await metadata_store.get("e1")

        assert stored.name == "Wedding"
        assert stored.description == "Garden party"
        assert stored.link == "http://test/event/e1"
        assert stored.version == 0
        assert stored.uploads == []
        assert stored.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_get_missing(self, metadata_store):
        assert await metadata_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_create_rejected(self, metadata_store):
        await metadata_store.create(_event())
        with pytest.raises(PersistenceError):
            await metadata_store.create(_event())

    @pytest.mark.asyncio
    async def test_list_events(self, metadata_store):
        await metadata_store.create(_event("e1", "First"))
        await metadata_store.create(_event("e2", "Second"))

        events = await metadata_store.list_events()

        assert [e.id for e in events] == ["e1", "e2"]

    @pytest.mark.asyncio
    async def test_atomic_update_appends_and_bumps_version(self, metadata_store):
        blobs = MemoryBlobStore()
        await metadata_store.create(_event())
        first = [make_upload(blobs, guest="Ann"), make_upload(blobs, guest="Ann")]
        second = [make_upload(blobs, guest="Bob")]

        assert await metadata_store.atomic_update("e1", lambda e: e.with_uploads(first)) is UpdateOutcome.APPLIED
        assert await metadata_store.atomic_update("e1", lambda e: e.with_uploads(second)) is UpdateOutcome.APPLIED

        stored = await metadata_store.get("e1")
        assert stored.version == 2
        assert [u.id for u in stored.uploads] == [u.id for u in first + second]
        assert stored.uploads[0].storage_key == first[0].storage_key
        assert stored.uploads[0].uploaded_at == first[0].uploaded_at

    @pytest.mark.asyncio
    async def test_atomic_update_absent(self, metadata_store):
        outcome = await metadata_store.atomic_update("nope", lambda e: e)
        assert outcome is UpdateOutcome.ABSENT

    @pytest.mark.asyncio
    async def test_updater_gets_private_copy(self, metadata_store):
        await metadata_store.create(_event())

        def updater(event):
            event.uploads.append(make_upload(MemoryBlobStore()))
            raise RuntimeError("changed my mind")

        with pytest.raises(RuntimeError):
            await metadata_store.atomic_update("e1", updater)

        stored = await metadata_store.get("e1")
        assert stored.uploads == []
        assert stored.version == 0

    @pytest.mark.asyncio
    async def test_storage_keys(self, metadata_store):
        blobs = MemoryBlobStore()
        uploads = [make_upload(blobs), make_upload(blobs)]
        await metadata_store.create(_event())
        await metadata_store.atomic_update("e1", lambda e: e.with_uploads(uploads))

        assert await metadata_store.storage_keys() == {u.storage_key for u in uploads}

    @pytest.mark.asyncio
    async def test_healthy(self, metadata_store):
        assert await metadata_store.healthy() is True
