"""Abstract base class for blob stores."""

from __future__ import annotations

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, TypeVar

import httpx

from app.errors import PartialFetchError


T = TypeVar("T")


async def write_in_thread(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking write in a worker thread, outliving caller cancellation.

    A worker thread cannot be interrupted. When the caller is cancelled (or
    times out) this waits for the thread to finish before re-raising, so the
    write has either landed or failed by the time the caller sees the
    cancellation, and a rollback that follows can delete it.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError as cancelled:
        while not task.done():
            try:
                await asyncio.wait([task])
            except asyncio.CancelledError:
                continue
        if not task.cancelled():
            task.exception()
        raise cancelled


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful blob write."""

    key: str
    url: str
    size: int


class BlobStore(ABC):
    """Abstract remote object storage.

    Stores byte buffers under keys, hands back fetchable URLs and deletes
    by key. Knows nothing about events. Keys are never reused, so writes to
    different keys never conflict.
    """

    def __init__(self, fetch_timeout: float = 30.0) -> None:
        self.fetch_timeout = fetch_timeout
        self._http: httpx.AsyncClient | None = None

    @staticmethod
    def generate_key(prefix: str, extension: str = "") -> str:
        """Generate a fresh, never-reused key under ``prefix``.

        Args:
            prefix: Folder-like key prefix (no trailing slash).
            extension: Optional extension including the dot.

        Returns:
            Key of the form ``{prefix}/{epoch_ms}-{uuid4hex}{extension}``.
        """
        stamp = int(time.time() * 1000)
        return f"{prefix}/{stamp}-{uuid.uuid4().hex}{extension}"

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> StoredBlob:
        """Store ``data`` under ``key``.

        Args:
            key: Key produced by generate_key().
            data: Blob bytes.
            content_type: Declared media type.
            metadata: Contextual tags kept with the blob for auditing.

        Returns:
            StoredBlob with the key and a fetchable URL.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a blob. Deleting a missing key is not an error.

        Args:
            key: Blob key.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a blob is present.

        Args:
            key: Blob key.

        Returns:
            True if the blob exists.
        """

    @abstractmethod
    async def list_keys(self, prefix: str) -> list[str]:
        """List every key under ``prefix``.

        Args:
            prefix: Key prefix.

        Returns:
            Keys in lexical order.
        """

    async def fetch(self, url: str) -> AsyncIterator[bytes]:
        """Stream the bytes behind a content URL.

        The default implementation downloads over HTTP; backends that can
        resolve their own URLs override it.

        Raises:
            PartialFetchError: Non-success status or transport failure.
        """
        client = self._get_http_client()
        try:
            async with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise PartialFetchError(url, f"HTTP {response.status_code}")
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as e:
            raise PartialFetchError(url, str(e) or type(e).__name__) from e

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self.fetch_timeout,
                follow_redirects=True,
            )
        return self._http

    async def aclose(self) -> None:
        """Release network resources held by the store."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
