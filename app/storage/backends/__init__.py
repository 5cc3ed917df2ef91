"""Blob store backends."""

from app.storage.backends.base import BlobStore, StoredBlob
from app.storage.backends.local import LocalBlobStore

__all__ = ["BlobStore", "StoredBlob", "LocalBlobStore"]
