"""Metadata stores for event and upload records.

Examples:
    >>> from app.metadata import JsonMetadataStore, UpdateOutcome
    >>> store = JsonMetadataStore("./data/events.json")
    >>> await store.atomic_update(event_id, lambda e: e.with_uploads(records))
    <UpdateOutcome.APPLIED: 'applied'>
"""

from app.metadata.base import EventUpdater, MetadataStore, UpdateOutcome
from app.metadata.json_store import JsonMetadataStore

__all__ = [
    "EventUpdater",
    "JsonMetadataStore",
    "MetadataStore",
    "UpdateOutcome",
    "create_metadata_store",
]


def create_metadata_store(settings) -> MetadataStore:
    """Create the configured metadata store.

    Args:
        settings: Application settings.

    Returns:
        MetadataStore for ``settings.METADATA_BACKEND``.
    """
    from app.config import MetadataBackend

    if settings.METADATA_BACKEND == MetadataBackend.SQL:
        from app.database import get_session_factory
        from app.metadata.sql_store import SqlMetadataStore

        return SqlMetadataStore(get_session_factory())
    return JsonMetadataStore(settings.EVENTS_FILE)
