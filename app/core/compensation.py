"""Compensation scope for multi-blob transactions.

Keys are registered *before* the blob write is attempted, so a write that
was interrupted mid-flight is still cleaned up (deletes are idempotent).
Leaving the scope with an exception deletes every registered key, then lets
the original exception propagate. Calling ``commit()`` discards the pending
deletes.

Examples:
    >>> async with CompensationScope(blob_store) as scope:
    ...     scope.register(key)
    ...     await blob_store.put(key, data, "image/jpeg")
    ...     await commit_metadata()
    ...     scope.commit()
"""

from __future__ import annotations

import asyncio
import logging

from app.storage.backends.base import BlobStore

logger = logging.getLogger(__name__)


class CompensationScope:
    """Tracks blobs written by one transaction and removes them on failure.

    Attributes:
        store: Blob store the keys belong to.
        keys: Keys registered in this scope, in registration order.
        committed: Whether the transaction was committed.
    """

    def __init__(self, store: BlobStore) -> None:
        self.store = store
        self.keys: list[str] = []
        self.committed = False

    def register(self, key: str) -> None:
        """Record a key that must be deleted if the transaction fails."""
        if self.committed:
            raise RuntimeError("Cannot register keys after commit")
        self.keys.append(key)

    def commit(self) -> None:
        """Mark the transaction durable; nothing will be deleted."""
        self.committed = True

    async def compensate(self) -> list[str]:
        """Delete every registered key, best-effort.

        Failures are logged and never raised, so they cannot mask the
        error that triggered compensation.

        Returns:
            Keys whose delete failed.
        """
        if not self.keys:
            return []

        results = await asyncio.gather(
            *(self.store.delete(key) for key in self.keys),
            return_exceptions=True,
        )
        failed = []
        for key, result in zip(self.keys, results):
            if isinstance(result, BaseException):
                failed.append(key)
                logger.error(f"Error deleting blob during rollback: {key}: {result}")

        logger.warning(
            f"Rolled back {len(self.keys) - len(failed)}/{len(self.keys)} blob(s)"
        )
        self.keys = []
        return failed

    async def __aenter__(self) -> "CompensationScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None and not self.committed:
            await asyncio.shield(self.compensate())
        return False
