"""FastAPI dependency providers.

Stores are created once per process from settings. Tests replace them with
``app.dependency_overrides``.

Examples:
    >>> @router.get("/events")
    ... async def list_events(store: MetadataStore = Depends(get_metadata_store)):
    ...     ...
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.config import Settings, get_settings
from app.core.archive import ArchiveStreamer
from app.core.uploads import UploadTransaction
from app.core.validation import UploadLimits
from app.metadata import MetadataStore, create_metadata_store
from app.storage import BlobStore, create_blob_store


@lru_cache
def get_metadata_store() -> MetadataStore:
    """Get the process-wide metadata store."""
    return create_metadata_store(get_settings())


@lru_cache
def get_blob_store() -> BlobStore:
    """Get the process-wide blob store."""
    return create_blob_store(get_settings().get_storage_config())


def get_upload_transaction(
    settings: Settings = Depends(get_settings),
    metadata: MetadataStore = Depends(get_metadata_store),
    blobs: BlobStore = Depends(get_blob_store),
) -> UploadTransaction:
    """Build an upload coordinator for one request."""
    return UploadTransaction(
        metadata=metadata,
        blobs=blobs,
        limits=UploadLimits.from_settings(settings),
        key_prefix=settings.STORAGE_PREFIX,
        write_timeout=settings.BLOB_WRITE_TIMEOUT,
        commit_retries=settings.METADATA_COMMIT_RETRIES,
        retry_backoff=settings.METADATA_RETRY_BACKOFF,
    )


def get_archive_streamer(
    settings: Settings = Depends(get_settings),
    blobs: BlobStore = Depends(get_blob_store),
) -> ArchiveStreamer:
    """Build an archive streamer for one request."""
    return ArchiveStreamer(
        blobs,
        fetch_timeout=settings.BLOB_FETCH_TIMEOUT,
        compression_level=settings.ARCHIVE_COMPRESSION_LEVEL,
    )


async def close_stores() -> None:
    """Close and forget the process-wide stores."""
    if get_metadata_store.cache_info().currsize:
        await get_metadata_store().close()
    if get_blob_store.cache_info().currsize:
        await get_blob_store().aclose()
    get_metadata_store.cache_clear()
    get_blob_store.cache_clear()
