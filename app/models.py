"""SQLAlchemy models for the SQL metadata store.

This module defines the tables backing SqlMetadataStore: one row per event
and one row per upload, with ``events.version`` as the optimistic
concurrency token.

Examples:
    >>> from app.models import EventRow
    >>> row = EventRow.from_record(event)
    >>> row.to_record(uploads=[]).name
    'Wedding'

Tests:
    - tests/unit/test_metadata/test_sql_store.py
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)

from app.schemas.records import EventRecord, UploadRecord


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


class EventRow(Base):
    """An event gallery.

    Attributes:
        id: Event identifier (UUID string)
        name: Display name
        description: Optional description
        link: Public guest page URL
        created_at: Creation timestamp
        version: Incremented on every applied update

    Relationships:
        uploads: Upload rows in insertion order
    """

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    link: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    uploads: Mapped[list["UploadRow"]] = relationship(
        back_populates="event",
        order_by="UploadRow.position",
        cascade="all, delete-orphan",
    )

    @classmethod
    def from_record(cls, event: EventRecord) -> "EventRow":
        return cls(
            id=event.id,
            name=event.name,
            description=event.description,
            link=event.link,
            created_at=event.created_at,
            version=event.version,
        )

    def to_record(self, uploads: list["UploadRow"] | None = None) -> EventRecord:
        rows = self.uploads if uploads is None else uploads
        return EventRecord(
            id=self.id,
            name=self.name,
            description=self.description,
            link=self.link,
            created_at=_aware(self.created_at),
            version=self.version,
            uploads=[row.to_record() for row in rows],
        )


class UploadRow(Base):
    """One stored file contributed by a guest.

    ``position`` preserves insertion order within the event.
    """

    __tablename__ = "uploads"
    __table_args__ = (UniqueConstraint("event_id", "position", name="uq_uploads_event_position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    guest_name: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    storage_key: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    event: Mapped[EventRow] = relationship(back_populates="uploads")

    @classmethod
    def from_record(cls, event_id: str, position: int, upload: UploadRecord) -> "UploadRow":
        return cls(
            id=upload.id,
            event_id=event_id,
            position=position,
            guest_name=upload.guest_name,
            message=upload.message,
            storage_key=upload.storage_key,
            url=upload.url,
            content_type=upload.content_type,
            size=upload.size,
            original_name=upload.original_name,
            uploaded_at=upload.uploaded_at,
        )

    def to_record(self) -> UploadRecord:
        return UploadRecord(
            id=self.id,
            guest_name=self.guest_name,
            message=self.message,
            storage_key=self.storage_key,
            url=self.url,
            content_type=self.content_type,
            size=self.size,
            original_name=self.original_name,
            uploaded_at=_aware(self.uploaded_at),
        )
