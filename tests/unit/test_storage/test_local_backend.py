"""Tests for app.storage.backends.local module.

Covers:
    - put/exists/delete/list_keys on disk
    - metadata sidecars hidden from listings
    - path traversal rejected
    - fetch of own URLs from disk, foreign URLs over HTTP
"""

import json

import httpx
import pytest

from app.errors import PartialFetchError
from app.storage.backends.base import BlobStore
from app.storage.backends.local import LocalBlobStore


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(root=str(tmp_path / "blobs"), public_base_url="http://test/blobs/")


async def _read(store, url):
    return b"".join([chunk async for chunk in store.fetch(url)])


@pytest.mark.fast
class TestLocalBlobStore:
    """Tests for LocalBlobStore."""

    @pytest.mark.asyncio
    async def test_put_writes_file_and_sidecar(self, store):
        blob = await store.put("photos-tank/e1/a.jpg", b"abc", "image/jpeg", {"guest_name": "Ann"})

        assert blob.url == "http://test/blobs/photos-tank/e1/a.jpg"
        assert blob.size == 3
        assert (store.root / "photos-tank/e1/a.jpg").read_bytes() == b"abc"
        meta = json.loads((store.root / ".meta/photos-tank/e1/a.jpg.json").read_text())
        assert meta == {"content_type": "image/jpeg", "guest_name": "Ann"}

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, store):
        await store.put("k/a.jpg", b"abc", "image/jpeg")
        assert await store.exists("k/a.jpg") is True

        await store.delete("k/a.jpg")

        assert await store.exists("k/a.jpg") is False
        assert not (store.root / ".meta/k/a.jpg.json").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_is_not_an_error(self, store):
        await store.delete("never/was.jpg")

    @pytest.mark.asyncio
    async def test_list_keys_skips_sidecars(self, store):
        await store.put("photos-tank/e1/b.jpg", b"b", "image/jpeg")
        await store.put("photos-tank/e1/a.jpg", b"a", "image/jpeg")
        await store.put("photos-tank/e2/c.jpg", b"c", "image/jpeg")

        assert await store.list_keys("photos-tank") == [
            "photos-tank/e1/a.jpg",
            "photos-tank/e1/b.jpg",
            "photos-tank/e2/c.jpg",
        ]
        assert await store.list_keys("photos-tank/e2") == ["photos-tank/e2/c.jpg"]
        assert await store.list_keys("missing") == []

    @pytest.mark.asyncio
    async def test_traversal_rejected(self, store):
        with pytest.raises(ValueError, match="escapes"):
            await store.put("../outside.jpg", b"x", "image/jpeg")

    def test_generated_keys_unique(self):
        keys = {BlobStore.generate_key("photos-tank/e1", ".jpg") for _ in range(100)}
        assert len(keys) == 100
        assert all(k.startswith("photos-tank/e1/") and k.endswith(".jpg") for k in keys)

    @pytest.mark.asyncio
    async def test_fetch_own_url(self, store):
        data = bytes(range(256)) * 600
        blob = await store.put("k/big.jpg", data, "image/jpeg")

        assert await _read(store, blob.url) == data

    @pytest.mark.asyncio
    async def test_fetch_missing_blob(self, store):
        with pytest.raises(PartialFetchError):
            await _read(store, "http://test/blobs/k/gone.jpg")

    @pytest.mark.asyncio
    async def test_fetch_foreign_url_over_http(self, store):
        def handler(request):
            if request.url.path == "/ok.jpg":
                return httpx.Response(200, content=b"remote")
            return httpx.Response(404)

        store._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        assert await _read(store, "http://cdn.example.com/ok.jpg") == b"remote"
        with pytest.raises(PartialFetchError, match="HTTP 404"):
            await _read(store, "http://cdn.example.com/missing.jpg")

        await store.aclose()
        assert store._http is None
