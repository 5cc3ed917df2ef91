"""S3 blob store backed by boto3.

boto3 is synchronous, so every call is pushed to a worker thread.
Object URLs use ``s3_public_base_url`` when configured (CDN or bucket
website), otherwise the virtual-hosted bucket URL.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator
from urllib.parse import quote, unquote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.errors import PartialFetchError, StorageWriteError
from app.storage.backends.base import BlobStore, StoredBlob, write_in_thread

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class S3BlobStore(BlobStore):
    """Amazon S3 (or S3-compatible) blob store."""

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        public_base_url: str | None = None,
        fetch_timeout: float = 30.0,
        client: Any = None,
    ) -> None:
        super().__init__(fetch_timeout=fetch_timeout)
        self.bucket = bucket
        self.region = region
        self.public_base_url = (
            public_base_url or f"https://{bucket}.s3.{region}.amazonaws.com"
        ).rstrip("/")
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(signature_version="s3v4", retries={"max_attempts": 3}),
        )

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{quote(key)}"

    def key_from_url(self, url: str) -> str | None:
        """Map one of this bucket's URLs back to its key."""
        prefix = f"{self.public_base_url}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        return None

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> StoredBlob:
        """Upload blob bytes with put_object."""
        # S3 user metadata must be ASCII
        tags = {k: quote(v, safe="") for k, v in (metadata or {}).items()}
        try:
            await write_in_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=tags,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageWriteError(f"Failed to upload {key} to s3://{self.bucket}: {e}") from e
        return StoredBlob(key=key, url=self.url_for(key), size=len(data))

    async def delete(self, key: str) -> None:
        """Delete an object; S3 treats missing keys as success."""
        await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)

    async def exists(self, key: str) -> bool:
        """Check an object with head_object."""
        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    def _list(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return sorted(keys)

    async def list_keys(self, prefix: str) -> list[str]:
        """List object keys under a prefix."""
        return await asyncio.to_thread(self._list, prefix)

    async def fetch(self, url: str) -> AsyncIterator[bytes]:
        """Stream an object with get_object, or fall back to HTTP for foreign URLs."""
        raw_key = self.key_from_url(url)
        if raw_key is None:
            async for chunk in super().fetch(url):
                yield chunk
            return

        key = unquote(raw_key)
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=key
            )
        except (BotoCoreError, ClientError) as e:
            raise PartialFetchError(url, str(e)) from e

        body = response["Body"]
        try:
            while True:
                chunk = await asyncio.to_thread(body.read, CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        except (BotoCoreError, ClientError) as e:
            raise PartialFetchError(url, str(e)) from e
        finally:
            body.close()
