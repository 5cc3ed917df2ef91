"""Storage configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.config import StorageBackendType


class StorageConfig(BaseModel):
    """Configuration for blob storage.

    Attributes:
        backend: Which BlobStore implementation to build.
        root: Root directory for the local backend.
        prefix: Key prefix every blob is stored under.
        public_base_url: URL prefix local blobs are served from.
        s3_bucket: Bucket for the S3 backend.
        s3_region: Region for the S3 backend.
        s3_public_base_url: Optional CDN/website prefix for S3 object URLs.
        fetch_timeout: Timeout for HTTP fetches of foreign URLs.
    """

    backend: StorageBackendType = Field(default=StorageBackendType.LOCAL)
    root: str = Field(default="./data/blobs", description="Blob storage root directory")
    prefix: str = Field(default="photos-tank", description="Blob key prefix")
    public_base_url: str = Field(default="http://localhost:3001/blobs")
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_public_base_url: str | None = None
    fetch_timeout: float = 30.0
