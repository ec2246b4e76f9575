"""Contract shared by every storage backend."""

import abc
import io
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Final, final, override

_CHUNK_SIZE: Final = 64 * 1024

# Payload accepted by ``put``: bytes in memory or a path to copy from
Payload = bytes | Path


@final
@dataclass(frozen=True, slots=True)
class ObjectStat:
    """Object as reported by a backend listing.

    ``basename`` is the name that was given to ``put``, stripped of the
    backend root folder; it is the key used to match database records.
    """

    filename: str
    basename: str
    size: int
    last_modified: datetime | None = None
    etag: str | None = None


@final
@dataclass(frozen=True, slots=True)
class ByteRange:
    """Inclusive byte range, as in an HTTP ``Range`` header."""

    start: int
    end: int

    @property
    def length(self) -> int:
        """Number of bytes covered by the range."""
        return self.end - self.start + 1

    def header_value(self) -> str:
        """Value for an HTTP ``Range`` request header."""
        return f'bytes={self.start}-{self.end}'


@final
class BoundedReader(io.RawIOBase):
    """Read at most ``limit`` bytes from an underlying binary stream."""

    def __init__(self, raw: BinaryIO, limit: int) -> None:
        """Wrap a stream.

        Args:
            raw: Stream positioned at the first byte to return.
            limit: Maximum number of bytes to return.
        """
        super().__init__()
        self._raw = raw
        self._remaining = limit

    @override
    def readable(self) -> bool:
        return True

    @override
    def read(self, size: int = -1) -> bytes:
        if self._remaining <= 0:
            return b''
        if size < 0 or size > self._remaining:
            size = self._remaining
        chunk = self._raw.read(size)
        self._remaining -= len(chunk)
        return chunk

    @override
    def readinto(self, buffer: bytearray) -> int:  # type: ignore[override]
        chunk = self.read(len(buffer))
        buffer[:len(chunk)] = chunk
        return len(chunk)

    @override
    def close(self) -> None:
        self._raw.close()
        super().close()


def slice_content(content: bytes, byte_range: ByteRange | None) -> BinaryIO:
    """Wrap fully fetched content, cutting out the requested range.

    Remote backends that cannot serve ranges natively fetch the whole
    object and use this helper.

    Args:
        content: Full object content.
        byte_range: Optional inclusive range.

    Returns:
        In-memory binary stream.
    """
    if byte_range is None:
        return io.BytesIO(content)
    return io.BytesIO(content[byte_range.start:byte_range.end + 1])


def iter_chunks(
    stream: BinaryIO,
    chunk_size: int = _CHUNK_SIZE,
) -> Iterator[bytes]:
    """Iterate over a binary stream in chunks and close it at the end.

    Args:
        stream: Stream to read from.
        chunk_size: Maximum size of each chunk.

    Yields:
        Non-empty byte chunks.
    """
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


class StorageBackend(abc.ABC):
    """Uniform object storage interface.

    Every implementation must behave identically, so that the file
    lifecycle and the reconciliation passes stay backend-agnostic:

    - ``login`` is idempotent and raises ``StorageConnectionError``
    - ``put`` overwrites and raises ``StorageWriteError``
    - ``get`` raises ``NotFoundError``
    - ``remove`` always returns True, even for missing objects
    - ``exists`` and ``get_metadata`` degrade to False / None

    Instances are created once per process and shared by request
    handlers and background jobs, so they must be safe for
    concurrent use.
    """

    #: Name used in log messages
    name: str = 'storage'

    @abc.abstractmethod
    def login(self) -> None:
        """Ensure the bucket / root directory exists and is reachable."""

    @abc.abstractmethod
    def list(self) -> list[ObjectStat]:
        """List all objects under the configured root."""

    @abc.abstractmethod
    def put(self, name: str, data: Payload) -> None:
        """Store an object, replacing any existing one."""

    @abc.abstractmethod
    def get(self, name: str, byte_range: ByteRange | None = None) -> BinaryIO:
        """Open an object for reading."""

    @abc.abstractmethod
    def remove(self, name: str) -> bool:
        """Delete an object. Missing objects are not an error."""

    @abc.abstractmethod
    def get_metadata(self, name: str) -> ObjectStat | None:
        """Stat a single object, or None if it cannot be found."""

    def exists(self, name: str) -> bool:
        """Check whether an object exists.

        Args:
            name: Object name.

        Returns:
            True if the backend reports the object, False otherwise.
        """
        return self.get_metadata(name) is not None

    def close(self) -> None:
        """Release client resources held by the backend."""
