"""Application configuration with Pydantic Settings.

This module provides centralized configuration management using pydantic-settings.
Settings are loaded from environment variables and .env files.

Examples:
    >>> from app.config import get_settings
    >>> settings = get_settings()
    >>> settings.METADATA_BACKEND
    <MetadataBackend.JSON: 'json'>

    >>> settings.get_storage_config()
    StorageConfig(backend=<StorageBackendType.LOCAL: 'local'>, root='./data/blobs', ...)

Tests:
    - tests/unit/test_config.py::TestSettings
"""

from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from app.storage.config import StorageConfig


class MetadataBackend(str, Enum):
    """Supported metadata stores.

    - JSON: single JSON document on disk (default, zero setup)
    - SQL: SQLAlchemy database (SQLite or PostgreSQL)
    """

    JSON = "json"
    SQL = "sql"


class StorageBackendType(str, Enum):
    """Supported blob storage backends."""

    LOCAL = "local"
    S3 = "s3"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


# Upload allow-list: media type -> accepted filename extensions.
# A file is accepted only when its extension belongs to its declared type.
ALLOWED_MEDIA_TYPES: dict[str, frozenset[str]] = {
    "image/jpeg": frozenset({".jpg", ".jpeg"}),
    "image/png": frozenset({".png"}),
    "image/gif": frozenset({".gif"}),
    "image/webp": frozenset({".webp"}),
    "video/mp4": frozenset({".mp4"}),
    "video/webm": frozenset({".webm"}),
    "video/ogg": frozenset({".ogg"}),
    "video/quicktime": frozenset({".mov"}),
    "video/x-msvideo": frozenset({".avi"}),
}

ALLOWED_EXTENSIONS: frozenset[str] = frozenset().union(*ALLOWED_MEDIA_TYPES.values())


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables and .env file.

    Attributes:
        PUBLIC_BASE_URL: Base URL guests reach the service on (event links, local blob URLs)
        METADATA_BACKEND: Which metadata store to use (json or sql)
        EVENTS_FILE: Path of the JSON metadata document
        DATABASE_URL: Database connection string for the sql backend
        STORAGE_BACKEND: Which blob store to use (local or s3)
        MAX_FILE_SIZE_BYTES: Per-file upload limit
        BLOB_WRITE_TIMEOUT: Seconds allowed for a single blob write
        BLOB_FETCH_TIMEOUT: Seconds allowed for a single blob fetch while archiving
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Settings
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    DEBUG: bool = Field(
        default=True,
        description="Enable debug mode",
    )
    PUBLIC_BASE_URL: str = Field(
        default="http://localhost:3001",
        description="Public base URL of the service",
    )

    # Metadata
    METADATA_BACKEND: MetadataBackend = Field(
        default=MetadataBackend.JSON,
        description="Metadata store backend",
    )
    EVENTS_FILE: str = Field(
        default="./data/events.json",
        description="JSON metadata document path",
    )
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/gallery.db",
        description="Database connection string",
    )
    SQL_ECHO: bool = Field(
        default=False,
        description="Log every SQL statement",
    )
    METADATA_COMMIT_RETRIES: int = Field(
        default=5,
        description="Attempts at committing uploads when the event changed concurrently",
        ge=1,
        le=50,
    )
    METADATA_RETRY_BACKOFF: float = Field(
        default=0.02,
        description="Base delay in seconds between commit attempts (doubled each retry, jittered)",
        ge=0,
    )

    # Blob storage
    STORAGE_BACKEND: StorageBackendType = Field(
        default=StorageBackendType.LOCAL,
        description="Blob storage backend",
    )
    STORAGE_ROOT: str = Field(
        default="./data/blobs",
        description="Local blob storage root directory",
    )
    STORAGE_PREFIX: str = Field(
        default="photos-tank",
        description="Key prefix for every stored blob",
    )
    S3_BUCKET: str | None = Field(default=None, description="S3 bucket name")
    S3_REGION: str = Field(default="us-east-1", description="S3 region")
    S3_PUBLIC_BASE_URL: str | None = Field(
        default=None,
        description="Public URL prefix for S3 objects (CDN or bucket website)",
    )

    # Upload limits
    MAX_FILE_SIZE_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum size of a single uploaded file",
        gt=0,
    )
    MAX_FILES_PER_UPLOAD: int = Field(
        default=20,
        description="Maximum number of files per upload request",
        ge=1,
    )
    MAX_GUEST_NAME_LENGTH: int = Field(default=100, ge=1)
    MAX_MESSAGE_LENGTH: int = Field(default=500, ge=1)
    MAX_EVENT_NAME_LENGTH: int = Field(default=200, ge=1)
    MAX_DESCRIPTION_LENGTH: int = Field(default=1000, ge=1)

    # Remote I/O
    BLOB_WRITE_TIMEOUT: float = Field(
        default=30.0,
        description="Timeout in seconds for one blob write",
        gt=0,
    )
    BLOB_FETCH_TIMEOUT: float = Field(
        default=30.0,
        description="Timeout in seconds for one blob fetch",
        gt=0,
    )

    # Archive
    ARCHIVE_COMPRESSION_LEVEL: int = Field(
        default=6,
        description="Deflate level for gallery archives (0-9)",
        ge=0,
        le=9,
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format."""
        valid_prefixes = ("sqlite", "postgresql", "postgres")
        if not any(v.startswith(prefix) for prefix in valid_prefixes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {valid_prefixes}"
            )
        return v

    @field_validator("PUBLIC_BASE_URL", "S3_PUBLIC_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize base URLs so paths can be appended with a single slash."""
        return v.rstrip("/") if v else v

    @model_validator(mode="after")
    def validate_storage(self) -> "Settings":
        """Ensure the S3 backend has a bucket to write to."""
        if self.STORAGE_BACKEND == StorageBackendType.S3 and not self.S3_BUCKET:
            raise ValueError("S3_BUCKET is required when STORAGE_BACKEND=s3")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.DATABASE_URL.startswith("sqlite")

    def get_storage_config(self) -> "StorageConfig":
        """Get blob storage configuration.

        Returns:
            StorageConfig: Settings relevant to the blob store factory.
        """
        from app.storage.config import StorageConfig

        return StorageConfig(
            backend=self.STORAGE_BACKEND,
            root=self.STORAGE_ROOT,
            prefix=self.STORAGE_PREFIX,
            public_base_url=f"{self.PUBLIC_BASE_URL}/blobs",
            s3_bucket=self.S3_BUCKET,
            s3_region=self.S3_REGION,
            s3_public_base_url=self.S3_PUBLIC_BASE_URL,
            fetch_timeout=self.BLOB_FETCH_TIMEOUT,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: The application settings.

    Examples:
        >>> settings = get_settings()
        >>> settings.MAX_FILES_PER_UPLOAD
        20
    """
    return Settings()
