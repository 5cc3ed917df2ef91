"""Cross-check blob storage against event metadata.

There is no reverse index from blobs to events, so reconciliation lists
every key under the storage prefix and compares it with the storage keys of
all upload records.

Examples:
    >>> report = await reconcile(metadata, blobs, "photos-tank")
    >>> report.orphaned_keys
    ['photos-tank/e1/1700000000000-abc.jpg']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.metadata.base import MetadataStore
from app.storage.backends.base import BlobStore

logger = logging.getLogger(__name__)


@dataclass
class DanglingUpload:
    """An upload record whose blob is missing."""

    event_id: str
    upload_id: str
    storage_key: str


@dataclass
class ReconcileReport:
    """Disagreements between blob storage and metadata.

    Attributes:
        blob_count: Keys found under the prefix.
        record_count: Upload records across all events.
        orphaned_keys: Blobs no upload record points to.
        dangling_uploads: Upload records whose blob is gone.
    """

    blob_count: int = 0
    record_count: int = 0
    orphaned_keys: list[str] = field(default_factory=list)
    dangling_uploads: list[DanglingUpload] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.orphaned_keys and not self.dangling_uploads


async def reconcile(metadata: MetadataStore, blobs: BlobStore, prefix: str) -> ReconcileReport:
    """Compare every blob under ``prefix`` with every upload record.

    Args:
        metadata: Event metadata store.
        blobs: Blob store.
        prefix: Storage key prefix to scan.

    Returns:
        ReconcileReport listing both kinds of disagreement.
    """
    events = await metadata.list_events()
    keys = set(await blobs.list_keys(prefix))

    report = ReconcileReport(blob_count=len(keys))
    referenced: set[str] = set()
    for event in events:
        for upload in event.uploads:
            report.record_count += 1
            referenced.add(upload.storage_key)
            if upload.storage_key not in keys:
                report.dangling_uploads.append(
                    DanglingUpload(event.id, upload.id, upload.storage_key)
                )

    report.orphaned_keys = sorted(keys - referenced)
    logger.info(
        f"Reconciled {report.blob_count} blobs against {report.record_count} records: "
        f"{len(report.orphaned_keys)} orphaned, {len(report.dangling_uploads)} dangling"
    )
    return report


async def purge_orphans(blobs: BlobStore, report: ReconcileReport) -> list[str]:
    """Delete orphaned blobs found by reconcile().

    Returns:
        Keys that were deleted.
    """
    deleted = []
    for key in report.orphaned_keys:
        try:
            await blobs.delete(key)
        except Exception as e:
            logger.error(f"Failed to delete orphaned blob {key}: {e}")
            continue
        deleted.append(key)
    return deleted
