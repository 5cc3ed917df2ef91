"""Core components for the event gallery."""

from app.core.archive import ArchiveReport, ArchiveStreamer
from app.core.compensation import CompensationScope
from app.core.reconcile import ReconcileReport, purge_orphans, reconcile
from app.core.uploads import UploadTransaction
from app.core.validation import UploadLimits

__all__ = [
    "ArchiveReport",
    "ArchiveStreamer",
    "CompensationScope",
    "ReconcileReport",
    "UploadLimits",
    "UploadTransaction",
    "purge_orphans",
    "reconcile",
]
