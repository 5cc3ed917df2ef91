"""Blob store factory.

Builds the configured BlobStore implementation.

Examples:
    >>> from app.storage.service import create_blob_store
    >>> store = create_blob_store(settings.get_storage_config())
"""

from __future__ import annotations

import logging

from app.storage.backends.base import BlobStore
from app.storage.backends.local import LocalBlobStore
from app.storage.config import StorageBackendType, StorageConfig

logger = logging.getLogger(__name__)


def create_blob_store(config: StorageConfig) -> BlobStore:
    """Create a BlobStore from config.

    Args:
        config: Storage configuration.

    Returns:
        BlobStore for the configured backend.

    Raises:
        ValueError: If the backend is misconfigured.
    """
    if config.backend == StorageBackendType.S3:
        if not config.s3_bucket:
            raise ValueError("s3_bucket is required for the s3 backend")
        # boto3 is only imported when S3 is actually used
        from app.storage.backends.s3 import S3BlobStore

        logger.info(f"Blob store: s3://{config.s3_bucket} ({config.s3_region})")
        return S3BlobStore(
            bucket=config.s3_bucket,
            region=config.s3_region,
            public_base_url=config.s3_public_base_url,
            fetch_timeout=config.fetch_timeout,
        )

    logger.info(f"Blob store: local filesystem at {config.root}")
    return LocalBlobStore(
        root=config.root,
        public_base_url=config.public_base_url,
        fetch_timeout=config.fetch_timeout,
    )
