"""Local filesystem blob store using pathlib.

Blobs live under ``{root}/{key}`` and are served by the application at
``{public_base_url}/{key}``. Contextual metadata is kept in a JSON sidecar
under ``{root}/.meta/{key}.json``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import AsyncIterator

from app.errors import PartialFetchError, StorageWriteError
from app.storage.backends.base import BlobStore, StoredBlob, write_in_thread

logger = logging.getLogger(__name__)

META_DIR = ".meta"
CHUNK_SIZE = 64 * 1024


class LocalBlobStore(BlobStore):
    """Pathlib-based local filesystem blob store."""

    def __init__(self, root: str, public_base_url: str, fetch_timeout: float = 30.0) -> None:
        super().__init__(fetch_timeout=fetch_timeout)
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        p = (self.root / key).resolve()
        if self.root not in p.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return p

    def _meta_path(self, key: str) -> Path:
        return self._path(f"{META_DIR}/{key}.json")

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def key_from_url(self, url: str) -> str | None:
        """Map one of this store's URLs back to its key."""
        prefix = f"{self.public_base_url}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        return None

    def _write(self, key: str, data: bytes, metadata: dict[str, str]) -> None:
        p = self._path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
        if metadata:
            meta = self._meta_path(key)
            meta.parent.mkdir(parents=True, exist_ok=True)
            meta.write_text(json.dumps(metadata), encoding="utf-8")

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> StoredBlob:
        """Write blob bytes (and its metadata sidecar) to disk."""
        try:
            await write_in_thread(
                self._write, key, data, {"content_type": content_type, **(metadata or {})}
            )
        except OSError as e:
            raise StorageWriteError(f"Failed to write blob {key}: {e}") from e
        return StoredBlob(key=key, url=self.url_for(key), size=len(data))

    def _remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
        self._meta_path(key).unlink(missing_ok=True)

    async def delete(self, key: str) -> None:
        """Delete a local blob and its sidecar."""
        await asyncio.to_thread(self._remove, key)

    async def exists(self, key: str) -> bool:
        """Check if a local blob exists."""
        return self._path(key).is_file()

    def _list(self, prefix: str) -> list[str]:
        base = self._path(prefix) if prefix else self.root
        if not base.is_dir():
            return []
        keys = []
        for p in base.rglob("*"):
            rel = p.relative_to(self.root)
            if p.is_file() and rel.parts[0] != META_DIR:
                keys.append(rel.as_posix())
        return sorted(keys)

    async def list_keys(self, prefix: str) -> list[str]:
        """List blob keys below a prefix directory."""
        return await asyncio.to_thread(self._list, prefix)

    async def fetch(self, url: str) -> AsyncIterator[bytes]:
        """Read one of our own blobs from disk, or fall back to HTTP."""
        key = self.key_from_url(url)
        if key is None:
            async for chunk in super().fetch(url):
                yield chunk
            return

        try:
            handle = await asyncio.to_thread(self._path(key).open, "rb")
        except (OSError, ValueError) as e:
            raise PartialFetchError(url, str(e)) from e
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            handle.close()
