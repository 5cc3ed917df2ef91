"""Blob storage package.

Provides the BlobStore contract, its local and S3 implementations,
and the naming helpers used for keys and archive entries.

Examples:
    >>> from app.storage import create_blob_store, StorageConfig
    >>> store = create_blob_store(StorageConfig(root="/tmp/blobs"))
    >>> blob = await store.put(store.generate_key("photos-tank/e1", ".jpg"), data, "image/jpeg")
"""

from app.storage.backends.base import BlobStore, StoredBlob
from app.storage.config import StorageBackendType, StorageConfig
from app.storage.naming import (
    archive_entry_name,
    download_filename,
    sanitize_filename_component,
)
from app.storage.service import create_blob_store

__all__ = [
    "BlobStore",
    "StorageBackendType",
    "StorageConfig",
    "StoredBlob",
    "archive_entry_name",
    "create_blob_store",
    "download_filename",
    "sanitize_filename_component",
]
