"""Read-through download cache kept on the local disk.

Entries are plain files named after the physical object name. A cache
entry only ever appears through an atomic rename of a fully written
temporary file, so a present entry is always a complete copy. The whole
directory can be wiped at any time.
"""

import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import BinaryIO, Final, final

logger = logging.getLogger(__name__)

_TEMP_SUFFIX: Final = '.part'


@final
class CacheWriter:
    """Write one cache entry through a private temporary file."""

    def __init__(self, target: Path, handle: BinaryIO, temp_path: Path) -> None:
        """Initialize the writer.

        Args:
            target: Final path of the cache entry.
            handle: Open handle of the temporary file.
            temp_path: Path of the temporary file.
        """
        self.target = target
        self._handle = handle
        self._temp_path = temp_path
        self._closed = False

    def write(self, chunk: bytes) -> None:
        self._handle.write(chunk)

    def commit(self) -> None:
        """Publish the entry.

        Raises:
            OSError: If the temporary file cannot be flushed or renamed.
        """
        self._handle.close()
        self._closed = True
        os.replace(self._temp_path, self.target)

    def discard(self) -> None:
        """Drop the partial entry, never raising."""
        if not self._closed:
            try:
                self._handle.close()
            except OSError:
                logger.debug('Failed to close cache file %s', self._temp_path)
            self._closed = True
        self._temp_path.unlink(missing_ok=True)


@final
class ReadThroughCache:
    """Local copies of backend objects, keyed by physical name."""

    def __init__(self, cache_dir: str | Path) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Directory holding the entries; created lazily.
        """
        self.cache_dir = Path(cache_dir)

    def path_for(self, name: str) -> Path:
        """Path of the entry for an object name.

        Raises:
            ValueError: If the name cannot be used as a file name.
        """
        if not name or name in {'.', '..'} or '/' in name or '\\' in name:
            raise ValueError(f'Invalid cache key: {name!r}')
        return self.cache_dir.joinpath(name)

    def lookup(self, name: str) -> Path | None:
        """Return the entry path when a complete copy exists."""
        try:
            path = self.path_for(name)
        except ValueError:
            return None
        return path if path.is_file() else None

    def open_writer(self, name: str) -> CacheWriter | None:
        """Start writing an entry, or None when the cache is unusable."""
        try:
            target = self.path_for(name)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=self.cache_dir,
                prefix=f'.{name}.',
                suffix=_TEMP_SUFFIX,
            )
        except (OSError, ValueError):
            logger.warning('Cache is not writable: %s', self.cache_dir)
            return None
        return CacheWriter(target, os.fdopen(fd, 'wb'), Path(temp_name))

    def remove(self, name: str) -> None:
        """Delete an entry if present, never raising."""
        try:
            self.path_for(name).unlink(missing_ok=True)
        except (OSError, ValueError):
            logger.warning('Failed to remove cache entry: %s', name)

    def tee(self, chunks: Iterable[bytes], name: str) -> Iterator[bytes]:
        """Yield chunks while copying them into the cache.

        A failing cache write stops caching for this stream only; the
        chunks keep flowing to the caller. When the consumer stops early
        (e.g. the client disconnects) the partial copy is discarded.

        Args:
            chunks: Chunks read from the backend.
            name: Physical object name used as the cache key.

        Yields:
            The same chunks, unchanged.
        """
        writer = self.open_writer(name)
        completed = False
        try:
            for chunk in chunks:
                if writer is not None:
                    writer = self._write_chunk(writer, chunk)
                yield chunk
            completed = True
        finally:
            if writer is not None:
                self._finish(writer, completed=completed)

    def _write_chunk(self, writer: CacheWriter, chunk: bytes) -> CacheWriter | None:
        try:
            writer.write(chunk)
        except OSError:
            logger.warning('Cache write failed, not caching %s', writer.target)
            writer.discard()
            return None
        return writer

    def _finish(self, writer: CacheWriter, *, completed: bool) -> None:
        if not completed:
            writer.discard()
            return
        try:
            writer.commit()
        except OSError:
            logger.warning('Failed to commit cache entry %s', writer.target)
            writer.discard()
        else:
            logger.debug('Cached %s', writer.target)
