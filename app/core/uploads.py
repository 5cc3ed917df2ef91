"""Upload transaction coordinator.

Adds a batch of guest files to an event so that the blob store and the
metadata store never disagree once the call returns:

    validate → check event → write blobs in parallel → commit metadata

Every blob key is registered with a CompensationScope before it is written.
Any failure after the first write (blob error, timeout, vanished event,
metadata error, cancellation) deletes the blobs of this call only, then the
error propagates.

Examples:
    >>> from app.core.uploads import UploadTransaction
    >>> tx = UploadTransaction(metadata=store, blobs=blob_store)
    >>> records = await tx.execute(event_id, "Ann", "Congrats!", files)
    >>> len(records) == len(files)
    True

Tests:
    - tests/unit/test_core/test_uploads.py
    - tests/unit/test_core/test_concurrent_uploads.py
"""

from __future__ import annotations

import asyncio
import logging
import random
import time

from app.core.compensation import CompensationScope
from app.core.validation import Submission, UploadLimits, ValidatedFile, validate_submission
from app.errors import GalleryError, NotFoundError, PersistenceError, StorageWriteError
from app.metadata.base import MetadataStore, UpdateOutcome
from app.schemas.records import IncomingFile, UploadRecord
from app.storage.backends.base import BlobStore, StoredBlob
from app.storage.naming import blob_prefix

logger = logging.getLogger(__name__)


class UploadTransaction:
    """Coordinates blob writes and the metadata commit for one upload batch.

    Attributes:
        metadata: Event metadata store.
        blobs: Blob store for file bytes.
        limits: Validation bounds.
        key_prefix: Root prefix for blob keys.
        write_timeout: Seconds allowed per blob write.
        commit_retries: Attempts at the metadata commit on version conflicts.
        retry_backoff: Base delay between commit attempts, doubled per attempt.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        limits: UploadLimits | None = None,
        key_prefix: str = "photos-tank",
        write_timeout: float = 30.0,
        commit_retries: int = 5,
        retry_backoff: float = 0.02,
    ) -> None:
        self.metadata = metadata
        self.blobs = blobs
        self.limits = limits or UploadLimits()
        self.key_prefix = key_prefix
        self.write_timeout = write_timeout
        self.commit_retries = commit_retries
        self.retry_backoff = retry_backoff

    async def execute(
        self,
        event_id: str,
        guest_name: str | None,
        message: str | None,
        files: list[IncomingFile],
    ) -> list[UploadRecord]:
        """Store ``files`` for a guest and record them on the event.

        Args:
            event_id: Target event.
            guest_name: Name the guest signs with.
            message: Optional note.
            files: Raw file buffers.

        Returns:
            The new UploadRecords, in input order.

        Raises:
            ValidationError: Bad input; nothing was written.
            NotFoundError: Unknown event (before or during commit).
            StorageWriteError: A blob write failed; written blobs were removed.
            PersistenceError: The metadata commit failed; written blobs were removed.
        """
        submission = validate_submission(guest_name, message, files, self.limits)

        if await self.metadata.get(event_id) is None:
            raise NotFoundError("Event not found")

        async with CompensationScope(self.blobs) as scope:
            stored = await self._write_blobs(event_id, submission, scope)
            records = self._build_records(submission, stored)
            await self._commit(event_id, records)
            scope.commit()

        logger.info(
            f"Uploaded {len(records)} file(s) to event {event_id} from {submission.guest_name!r}"
        )
        return records

    async def _write_one(
        self,
        event_id: str,
        guest_name: str,
        file: ValidatedFile,
        scope: CompensationScope,
    ) -> StoredBlob:
        key = self.blobs.generate_key(blob_prefix(self.key_prefix, event_id), file.extension)
        scope.register(key)
        try:
            return await asyncio.wait_for(
                self.blobs.put(
                    key,
                    file.data,
                    file.content_type,
                    metadata={"guest_name": guest_name, "event_id": event_id},
                ),
                timeout=self.write_timeout,
            )
        except asyncio.TimeoutError as e:
            raise StorageWriteError(
                f"Timed out after {self.write_timeout}s writing {file.filename}"
            ) from e

    async def _write_blobs(
        self,
        event_id: str,
        submission: Submission,
        scope: CompensationScope,
    ) -> list[StoredBlob]:
        """Fan out every blob write and wait for all, or the first failure."""
        tasks = [
            asyncio.create_task(self._write_one(event_id, submission.guest_name, f, scope))
            for f in submission.files
        ]
        started = time.monotonic()
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        failures = [t.exception() for t in done if not t.cancelled() and t.exception()]
        if failures:
            error = failures[0]
            logger.error(f"Blob write failed for event {event_id}: {error}")
            if isinstance(error, StorageWriteError):
                raise error
            raise StorageWriteError(f"Failed to upload files: {error}") from error

        logger.debug(
            f"Wrote {len(tasks)} blob(s) for event {event_id} in "
            f"{int((time.monotonic() - started) * 1000)}ms"
        )
        return [t.result() for t in tasks]

    @staticmethod
    def _build_records(submission: Submission, stored: list[StoredBlob]) -> list[UploadRecord]:
        return [
            UploadRecord(
                guest_name=submission.guest_name,
                message=submission.message,
                storage_key=blob.key,
                url=blob.url,
                content_type=file.content_type,
                size=blob.size,
                original_name=file.filename,
            )
            for file, blob in zip(submission.files, stored)
        ]

    async def _commit(self, event_id: str, records: list[UploadRecord]) -> None:
        """Append ``records`` to the event, retrying on version conflicts."""
        for attempt in range(1, self.commit_retries + 1):
            try:
                outcome = await self.metadata.atomic_update(
                    event_id, lambda event: event.with_uploads(records)
                )
            except GalleryError:
                raise
            except Exception as e:
                raise PersistenceError(f"Failed to save uploads: {e}") from e

            if outcome is UpdateOutcome.APPLIED:
                return
            if outcome is UpdateOutcome.ABSENT:
                logger.error(f"Event {event_id} disappeared before upload commit")
                raise NotFoundError("Event not found in database")

            logger.info(
                f"Concurrent update on event {event_id}, retrying commit "
                f"({attempt}/{self.commit_retries})"
            )
            if attempt < self.commit_retries:
                # Full jitter, doubling per attempt
                await asyncio.sleep(random.uniform(0, self.retry_backoff * 2 ** (attempt - 1)))

        raise PersistenceError(
            f"Could not commit uploads to event {event_id} after {self.commit_retries} attempts"
        )
