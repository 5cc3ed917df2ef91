"""Gallery archive streamer.

Turns an event's uploads into one ZIP byte stream without holding the whole
gallery in memory: fetch one blob, compress it into the archive, hand the
compressed bytes to the caller, move on. Peak memory is one file plus its
compressed form.

A blob that cannot be fetched is skipped with a warning; the rest of the
archive is still produced. Once bytes have been sent, any other failure is
logged and re-raised, so the server aborts the response and the client sees
a dropped connection rather than a cleanly ended, truncated ZIP.

Examples:
    >>> streamer = ArchiveStreamer(blob_store)
    >>> chunks = streamer.stream(event.uploads)   # raises NoContentError if empty
    >>> async for chunk in chunks:
    ...     await send(chunk)

Tests:
    - tests/unit/test_core/test_archive.py
"""

from __future__ import annotations

import asyncio
import logging
import zipfile
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from app.errors import NoContentError, PartialFetchError
from app.schemas.records import UploadRecord
from app.storage.backends.base import BlobStore
from app.storage.naming import archive_entry_name

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]

# Size of the pieces handed to the response
OUTPUT_CHUNK_SIZE = 64 * 1024


class _ChunkSink:
    """Write-only, non-seekable file object collecting ZIP output.

    ZipFile falls back to streaming mode (data descriptors) because this
    object has no ``tell``/``seek``.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes) -> int:
        self._buffer.extend(data)
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


@dataclass
class ArchiveReport:
    """What ended up in an archive.

    Attributes:
        entries: Entry names written, in order.
        skipped: Upload ids whose blob could not be fetched.
        completed: Whether the central directory was written.
        aborted_reason: Why the stream stopped early, if it did.
    """

    entries: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    completed: bool = False
    aborted_reason: str | None = None


class ArchiveStreamer:
    """Streams event uploads as a ZIP archive.

    Attributes:
        blobs: Blob store used to fetch upload content.
        fetch_timeout: Seconds allowed per blob fetch.
        compression_level: Deflate level (0-9).
    """

    def __init__(
        self,
        blobs: BlobStore,
        fetch_timeout: float = 30.0,
        compression_level: int = 6,
    ) -> None:
        self.blobs = blobs
        self.fetch_timeout = fetch_timeout
        self.compression_level = compression_level

    def stream(
        self,
        uploads: list[UploadRecord],
        is_disconnected: DisconnectCheck | None = None,
        report: ArchiveReport | None = None,
    ) -> AsyncIterator[bytes]:
        """Start streaming an archive of ``uploads``.

        Validation happens here, before any byte is produced, so an empty
        gallery can still be answered with a clean error.

        Args:
            uploads: Upload records in chronological order.
            is_disconnected: Async callable telling whether the client went away.
            report: Optional report filled in while streaming.

        Returns:
            Async iterator of ZIP bytes.

        Raises:
            NoContentError: If there is nothing to archive.
        """
        if not uploads:
            raise NoContentError("No files to download")
        return self._generate(list(uploads), is_disconnected, report or ArchiveReport())

    async def _read_blob(self, url: str) -> bytes:
        data = bytearray()
        async for chunk in self.blobs.fetch(url):
            data.extend(chunk)
        return bytes(data)

    async def fetch_upload(self, upload: UploadRecord) -> bytes:
        """Download one upload's content.

        Raises:
            PartialFetchError: On any fetch failure, including timeouts.
        """
        try:
            return await asyncio.wait_for(self._read_blob(upload.url), timeout=self.fetch_timeout)
        except PartialFetchError:
            raise
        except asyncio.TimeoutError as e:
            raise PartialFetchError(upload.url, f"timed out after {self.fetch_timeout}s") from e
        except Exception as e:
            raise PartialFetchError(upload.url, str(e) or type(e).__name__) from e

    def _zip_info(self, name: str, upload: UploadRecord) -> zipfile.ZipInfo:
        stamp = upload.uploaded_at.timetuple()[:6]
        if stamp[0] < 1980:
            stamp = (1980, 1, 1, 0, 0, 0)
        info = zipfile.ZipInfo(name, date_time=stamp)
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = 0o644 << 16
        return info

    async def _generate(
        self,
        uploads: list[UploadRecord],
        is_disconnected: DisconnectCheck | None,
        report: ArchiveReport,
    ) -> AsyncIterator[bytes]:
        sink = _ChunkSink()
        archive = zipfile.ZipFile(
            sink,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compression_level,
        )
        try:
            for upload in uploads:
                if is_disconnected is not None and await is_disconnected():
                    report.aborted_reason = "client disconnected"
                    logger.warning(
                        f"Client disconnected after {len(report.entries)} archive entries, "
                        "stopping"
                    )
                    return

                try:
                    data = await self.fetch_upload(upload)
                except PartialFetchError as e:
                    report.skipped.append(upload.id)
                    logger.warning(f"Skipping upload {upload.id} in archive: {e}")
                    continue

                name = archive_entry_name(
                    upload.guest_name, upload.id, upload.original_name, upload.content_type
                )
                info = self._zip_info(name, upload)
                await asyncio.to_thread(
                    archive.writestr,
                    info,
                    data,
                    compress_type=zipfile.ZIP_DEFLATED,
                    compresslevel=self.compression_level,
                )
                del data
                report.entries.append(name)

                for chunk in _split(sink.drain()):
                    yield chunk

            archive.close()
            report.completed = True
            for chunk in _split(sink.drain()):
                yield chunk

            if report.skipped:
                logger.warning(
                    f"Archive finished with {len(report.entries)} entries, "
                    f"{len(report.skipped)} skipped"
                )
            else:
                logger.info(f"Archive finished with {len(report.entries)} entries")
        except asyncio.CancelledError:
            report.aborted_reason = "cancelled"
            logger.warning("Archive stream cancelled, client likely disconnected")
            raise
        except Exception as e:
            # Headers are already sent; abort the response
            report.aborted_reason = str(e) or type(e).__name__
            logger.exception(f"Archive error, terminating stream: {e}")
            raise
        finally:
            if not report.completed:
                sink.drain()


def _split(data: bytes, size: int = OUTPUT_CHUNK_SIZE):
    for start in range(0, len(data), size):
        yield data[start:start + size]
