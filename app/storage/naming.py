"""File naming and sanitization for blob keys and gallery archives.

Archive entries are named from the guest name and the upload id, never the
storage key, so names stay stable if keys change shape.

Format:
    entry:    {guest}_{upload_id}{ext}
    download: {event_name}_{event_id[:8]}_gallery.zip

Examples:
    >>> from app.storage.naming import sanitize_filename_component, download_filename
    >>> sanitize_filename_component("../../etc/passwd")
    'etc_passwd'
    >>> download_filename("Anna & Tom", "3f2b1c9a-1111-2222-3333-444455556666")
    'Anna___Tom_3f2b1c9a_gallery.zip'
"""

from __future__ import annotations

import html
import os
import re

from app.config import ALLOWED_EXTENSIONS, ALLOWED_MEDIA_TYPES

DEFAULT_EXTENSION = ".jpg"


def sanitize_filename_component(value: str, max_length: int = 50, fallback: str = "guest") -> str:
    """Sanitize free text into a single safe path component.

    Rules:
        - Keep only [A-Za-z0-9._-]
        - Replace everything else with underscores
        - Collapse repeated underscores and dots
        - Strip leading/trailing dots and underscores
        - Truncate to max_length
        - Fallback if empty

    Args:
        value: Raw text (e.g. a guest name).
        max_length: Maximum component length (default 50).
        fallback: Returned when nothing survives sanitization.

    Returns:
        Component safe to embed in an archive entry name.
    """
    name = re.sub(r"[^A-Za-z0-9._-]", "_", value)
    # No ".." survives, so no traversal
    name = re.sub(r"\.{2,}", ".", name)
    name = re.sub(r"_{2,}", "_", name)
    name = name.strip("._")
    name = name[:max_length].rstrip("._")
    return name or fallback


def extension_for(original_name: str, content_type: str) -> str:
    """Pick the archive extension for an upload.

    Uses the original filename's extension when it is on the allow-list,
    otherwise the first extension of the media type, otherwise ``.jpg``.
    """
    ext = os.path.splitext(original_name)[1].lower()
    if ext in ALLOWED_EXTENSIONS:
        return ext
    known = ALLOWED_MEDIA_TYPES.get(content_type)
    if known:
        return sorted(known)[0]
    return DEFAULT_EXTENSION


def archive_entry_name(guest_name: str, upload_id: str, original_name: str, content_type: str) -> str:
    """Deterministic archive entry name for one upload.

    Stored guest names are HTML-escaped, so they are unescaped first.

    Args:
        guest_name: Guest name stored on the upload.
        upload_id: Upload identifier (keeps entries unique).
        original_name: Client-supplied filename.
        content_type: Declared media type.

    Returns:
        Entry name of the form ``{guest}_{upload_id}{ext}``.
    """
    guest = sanitize_filename_component(html.unescape(guest_name))
    uid = sanitize_filename_component(upload_id, max_length=64, fallback="upload")
    return f"{guest}_{uid}{extension_for(original_name, content_type)}"


def download_filename(event_name: str, event_id: str) -> str:
    """Attachment filename for a gallery download.

    Every non-alphanumeric character of the event name becomes an
    underscore. The short id suffix reduces, but does not rule out,
    collisions between events with similar names.
    """
    safe_name = re.sub(r"[^A-Za-z0-9]", "_", html.unescape(event_name))
    safe_id = re.sub(r"[^A-Za-z0-9-]", "", event_id)[:8]
    return f"{safe_name}_{safe_id}_gallery.zip"


def blob_prefix(root_prefix: str, event_id: str) -> str:
    """Key prefix for every blob of an event."""
    return f"{root_prefix.strip('/')}/{event_id}"
