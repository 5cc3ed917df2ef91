"""Abstract metadata store.

The metadata store owns event and upload records. The only mutation it
exposes for existing events is ``atomic_update``: the updater runs against a
snapshot and the result is written only if nobody else changed the event in
the meantime (compare-and-swap on ``EventRecord.version``).

Examples:
    >>> outcome = await store.atomic_update(event_id, lambda e: e.with_uploads(records))
    >>> outcome is UpdateOutcome.APPLIED
    True
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from app.schemas.records import EventRecord

EventUpdater = Callable[[EventRecord], EventRecord]


class UpdateOutcome(str, Enum):
    """Result of an atomic update.

    States:
        APPLIED: The new record was written
        CONFLICT: The event changed after the snapshot was taken; nothing written
        ABSENT: The event does not exist; nothing written
    """

    APPLIED = "applied"
    CONFLICT = "conflict"
    ABSENT = "absent"


class MetadataStore(ABC):
    """Durable mapping of event id to EventRecord.

    Implementations raise PersistenceError when the underlying storage
    fails; they never report success for a write that did not happen.
    """

    @abstractmethod
    async def list_events(self) -> list[EventRecord]:
        """Return every event in creation order."""

    @abstractmethod
    async def get(self, event_id: str) -> EventRecord | None:
        """Return one event, or None if it does not exist."""

    @abstractmethod
    async def create(self, event: EventRecord) -> EventRecord:
        """Insert a new event.

        Raises:
            PersistenceError: If the id is already taken or the write fails.
        """

    @abstractmethod
    async def atomic_update(self, event_id: str, updater: EventUpdater) -> UpdateOutcome:
        """Apply ``updater`` to the current record as one indivisible step.

        The updater receives a private copy of the record and returns the new
        record. The store bumps ``version`` itself.

        Args:
            event_id: Event to update.
            updater: Pure function from the current record to the new one.

        Returns:
            UpdateOutcome describing what happened.
        """

    async def storage_keys(self) -> set[str]:
        """Every blob key referenced by any upload record."""
        return {u.storage_key for event in await self.list_events() for u in event.uploads}

    async def healthy(self) -> bool:
        """Check if the store is reachable."""
        try:
            await self.list_events()
        except Exception:
            return False
        return True

    async def close(self) -> None:
        """Release resources held by the store."""
