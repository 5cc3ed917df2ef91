"""Unit tests for storage/metadata reconciliation.

Run with:
    pytest tests/unit/test_core/test_reconcile.py -v
"""

import pytest

from app.core.reconcile import purge_orphans, reconcile
from app.schemas.records import EventRecord
from tests.fixtures.memory_blob_store import MemoryBlobStore
from tests.fixtures.records import make_upload


@pytest.mark.fast
class TestReconcile:
    """Tests for reconcile() and purge_orphans()."""

    @pytest.mark.asyncio
    async def test_consistent_storage(self, json_store, blob_store):
        uploads = [make_upload(blob_store), make_upload(blob_store)]
        await json_store.create(EventRecord(id="e1", name="Wedding", uploads=uploads))

        report = await reconcile(json_store, blob_store, "photos-tank")

        assert report.consistent
        assert report.blob_count == 2
        assert report.record_count == 2

    @pytest.mark.asyncio
    async def test_finds_orphans_and_dangling_records(self, json_store, blob_store):
        kept = make_upload(blob_store)
        dangling = make_upload(blob_store)
        del blob_store.blobs[dangling.storage_key]
        blob_store.seed("photos-tank/e1/orphan.jpg", b"left behind")
        blob_store.seed("other-prefix/ignored.jpg", b"not ours")
        await json_store.create(EventRecord(id="e1", name="Wedding", uploads=[kept, dangling]))

        report = await reconcile(json_store, blob_store, "photos-tank")

        assert not report.consistent
        assert report.orphaned_keys == ["photos-tank/e1/orphan.jpg"]
        assert [d.upload_id for d in report.dangling_uploads] == [dangling.id]
        assert report.dangling_uploads[0].event_id == "e1"

    @pytest.mark.asyncio
    async def test_purge_deletes_only_orphans(self, json_store, blob_store):
        kept = make_upload(blob_store)
        blob_store.seed("photos-tank/e1/orphan.jpg", b"left behind")
        await json_store.create(EventRecord(id="e1", name="Wedding", uploads=[kept]))

        report = await reconcile(json_store, blob_store, "photos-tank")
        deleted = await purge_orphans(blob_store, report)

        assert deleted == ["photos-tank/e1/orphan.jpg"]
        assert set(blob_store.blobs) == {kept.storage_key}

    @pytest.mark.asyncio
    async def test_purge_continues_after_delete_failure(self, json_store):
        blobs = MemoryBlobStore(fail_on_delete={"photos-tank/a.jpg"})
        blobs.seed("photos-tank/a.jpg", b"a")
        blobs.seed("photos-tank/b.jpg", b"b")

        report = await reconcile(json_store, blobs, "photos-tank")
        deleted = await purge_orphans(blobs, report)

        assert deleted == ["photos-tank/b.jpg"]
        assert "photos-tank/a.jpg" in blobs.blobs
