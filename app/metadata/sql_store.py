"""SQL metadata store using SQLAlchemy async sessions.

Each atomic update runs in one transaction: the event row is bumped with
``UPDATE events SET version = v + 1 WHERE id = :id AND version = v`` and the
new upload rows are inserted alongside. If the conditional update touches no
row the event changed (or vanished) since the snapshot and the transaction is
rolled back. Safe across processes sharing the database; within one process
updates are also queued on a lock, so only other processes cause conflicts.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.errors import PersistenceError
from app.metadata.base import EventUpdater, MetadataStore, UpdateOutcome
from app.models import EventRow, UploadRow
from app.schemas.records import EventRecord

logger = logging.getLogger(__name__)


class SqlMetadataStore(MetadataStore):
    """Metadata store backed by the events/uploads tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory
        self._update_lock = asyncio.Lock()

    async def list_events(self) -> list[EventRecord]:
        try:
            async with self._sessions() as session:
                result = await session.execute(
                    select(EventRow)
                    .options(selectinload(EventRow.uploads))
                    .order_by(EventRow.created_at)
                )
                return [row.to_record() for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list events: {e}") from e

    async def get(self, event_id: str) -> EventRecord | None:
        try:
            async with self._sessions() as session:
                row = await session.get(
                    EventRow, event_id, options=[selectinload(EventRow.uploads)]
                )
                return row.to_record() if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read event {event_id}: {e}") from e

    async def create(self, event: EventRecord) -> EventRecord:
        try:
            async with self._sessions() as session:
                session.add(EventRow.from_record(event))
                for position, upload in enumerate(event.uploads):
                    session.add(UploadRow.from_record(event.id, position, upload))
                await session.commit()
        except IntegrityError as e:
            raise PersistenceError(f"Event {event.id} already exists") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create event: {e}") from e
        logger.info(f"Event created: {event.id}")
        return event

    async def atomic_update(self, event_id: str, updater: EventUpdater) -> UpdateOutcome:
        async with self._update_lock:
            return await self._compare_and_update(event_id, updater)

    async def _compare_and_update(self, event_id: str, updater: EventUpdater) -> UpdateOutcome:
        snapshot = await self.get(event_id)
        if snapshot is None:
            return UpdateOutcome.ABSENT

        updated = updater(snapshot.model_copy(deep=True))
        if updated.id != event_id:
            raise ValueError("Updater must not change the event id")
        existing = len(snapshot.uploads)
        if [u.id for u in updated.uploads[:existing]] != [u.id for u in snapshot.uploads]:
            raise ValueError("Uploads can only be appended")

        try:
            async with self._sessions() as session:
                result = await session.execute(
                    update(EventRow)
                    .where(EventRow.id == event_id, EventRow.version == snapshot.version)
                    .values(
                        version=snapshot.version + 1,
                        name=updated.name,
                        description=updated.description,
                    )
                )
                if result.rowcount != 1:
                    still_there = await session.get(EventRow, event_id)
                    await session.rollback()
                    return UpdateOutcome.CONFLICT if still_there else UpdateOutcome.ABSENT

                for position, upload in enumerate(updated.uploads[existing:], start=existing):
                    session.add(UploadRow.from_record(event_id, position, upload))
                await session.commit()
        except IntegrityError as e:
            # Another writer claimed the same positions first
            logger.debug(f"Upload insert for {event_id} lost a race: {e}")
            return UpdateOutcome.CONFLICT
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update event {event_id}: {e}") from e

        return UpdateOutcome.APPLIED

    async def healthy(self) -> bool:
        try:
            async with self._sessions() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True
