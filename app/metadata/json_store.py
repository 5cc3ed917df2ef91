"""JSON-document metadata store.

All events live in one JSON array on disk. Reads parse the whole document;
writes replace it atomically (temp file + rename) so readers never observe a
half-written file. Creates and updates run their read-modify-write under a
process-wide lock, so updates are never lost and never conflict.

Only safe for a single process. Use the SQL store when several workers
share the metadata.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.errors import PersistenceError
from app.metadata.base import EventUpdater, MetadataStore, UpdateOutcome
from app.schemas.records import EventRecord

logger = logging.getLogger(__name__)

_events_adapter = TypeAdapter(list[EventRecord])


class JsonMetadataStore(MetadataStore):
    """Metadata store backed by a single JSON file."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, EventRecord]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        events = _events_adapter.validate_json(raw)
        return {event.id: event for event in events}

    def _write(self, events: dict[str, EventRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = _events_adapter.dump_json(list(events.values()), indent=2)
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        with open(tmp, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    async def _load(self) -> dict[str, EventRecord]:
        try:
            return await asyncio.to_thread(self._read)
        except (OSError, PydanticValidationError) as e:
            logger.error(f"Error reading events file {self.path}: {e}")
            raise PersistenceError(f"Failed to read event metadata: {e}") from e

    async def _store(self, events: dict[str, EventRecord]) -> None:
        try:
            await asyncio.to_thread(self._write, events)
        except OSError as e:
            logger.error(f"Error writing events file {self.path}: {e}")
            raise PersistenceError(f"Failed to write event metadata: {e}") from e

    async def list_events(self) -> list[EventRecord]:
        return list((await self._load()).values())

    async def get(self, event_id: str) -> EventRecord | None:
        return (await self._load()).get(event_id)

    async def create(self, event: EventRecord) -> EventRecord:
        async with self._lock:
            events = await self._load()
            if event.id in events:
                raise PersistenceError(f"Event {event.id} already exists")
            events[event.id] = event
            await self._store(events)
        logger.info(f"Event created: {event.id}")
        return event

    async def atomic_update(self, event_id: str, updater: EventUpdater) -> UpdateOutcome:
        """Apply ``updater`` to the stored event.

        The read, the updater and the write all happen under the store lock,
        so nothing can move the event in between and CONFLICT is never
        returned.
        """
        async with self._lock:
            events = await self._load()
            current = events.get(event_id)
            if current is None:
                return UpdateOutcome.ABSENT

            updated = updater(current.model_copy(deep=True))
            if updated.id != event_id:
                raise ValueError("Updater must not change the event id")

            events[event_id] = updated.model_copy(update={"version": current.version + 1})
            await self._store(events)

        return UpdateOutcome.APPLIED
