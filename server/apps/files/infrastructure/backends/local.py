"""Storage backend keeping objects in a local directory."""

import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO, final, override

from server.apps.files.exceptions import (
    NotFoundError,
    StorageConnectionError,
    StorageError,
    StorageWriteError,
)
from server.apps.files.infrastructure.backends.base import (
    BoundedReader,
    ByteRange,
    ObjectStat,
    Payload,
    StorageBackend,
)

logger = logging.getLogger(__name__)


@final
class LocalBackend(StorageBackend):
    """Objects are plain files directly under ``root_path``."""

    name = 'local'

    def __init__(self, root_path: str | Path) -> None:
        """Initialize the backend.

        Args:
            root_path: Directory holding the objects.
        """
        self.root_path = Path(root_path).resolve()

    @override
    def login(self) -> None:
        """Create the root directory if needed.

        Raises:
            StorageConnectionError: If the directory cannot be created.
        """
        try:
            self.root_path.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            logger.exception(
                'Failed to create local storage directory: %s',
                self.root_path,
            )
            raise StorageConnectionError(
                'Local storage directory is not writable.',
            ) from error
        logger.info('Using local storage at: %s', self.root_path)

    @override
    def list(self) -> list[ObjectStat]:
        """List the files in the root directory.

        Raises:
            StorageError: If the root directory cannot be read.
        """
        try:
            paths = list(self.root_path.iterdir())
        except OSError as error:
            logger.exception(
                'Failed to list local storage directory: %s',
                self.root_path,
            )
            raise StorageError('Could not list objects.') from error
        objects = []
        for path in paths:
            try:
                stat = path.stat()
            except FileNotFoundError:
                # Deleted between iterdir() and stat()
                continue
            except OSError as error:
                logger.exception('Failed to stat local file: %s', path)
                raise StorageError('Could not list objects.') from error
            if not path.is_file():
                continue
            objects.append(
                self._to_object_stat(path.name, stat.st_size, stat.st_mtime),
            )
        return objects

    @override
    def put(self, name: str, data: Payload) -> None:
        """Write an object, replacing any existing file.

        Args:
            name: Object name.
            data: Content in memory or a source file to copy.

        Raises:
            StorageWriteError: If the file cannot be written.
        """
        try:
            destination = self._path(name)
            if isinstance(data, Path):
                shutil.copyfile(data, destination)
            else:
                destination.write_bytes(data)
        except (OSError, ValueError) as error:
            logger.exception('Failed to write local file: %s', name)
            raise StorageWriteError() from error

    @override
    def get(self, name: str, byte_range: ByteRange | None = None) -> BinaryIO:
        """Open an object, optionally limited to a byte range.

        Args:
            name: Object name.
            byte_range: Optional inclusive byte range.

        Returns:
            Binary stream positioned at the first requested byte.

        Raises:
            NotFoundError: If the object does not exist.
            StorageError: If the file cannot be read.
        """
        try:
            stream = self._path(name).open('rb')
        except (FileNotFoundError, IsADirectoryError, ValueError) as error:
            raise NotFoundError(
                f'File not found in local storage: {name}',
            ) from error
        except OSError as error:
            logger.exception('Failed to open local file: %s', name)
            raise StorageError() from error

        if byte_range is None:
            return stream
        stream.seek(byte_range.start)
        return BoundedReader(stream, byte_range.length)  # type: ignore[return-value]

    @override
    def remove(self, name: str) -> bool:
        try:
            self._path(name).unlink()
        except FileNotFoundError:
            logger.debug('Local file already removed: %s', name)
        except (OSError, ValueError):
            logger.exception('Failed to remove local file: %s', name)
        return True

    @override
    def get_metadata(self, name: str) -> ObjectStat | None:
        try:
            path = self._path(name)
            stat = path.stat()
        except (OSError, ValueError):
            return None
        if not path.is_file():
            return None
        return self._to_object_stat(name, stat.st_size, stat.st_mtime)

    def _path(self, name: str) -> Path:
        """Resolve an object name to a path inside the root directory.

        Raises:
            ValueError: If the name would escape the root directory.
        """
        if not name or name in {'.', '..'} or '/' in name or '\\' in name:
            raise ValueError(f'Invalid object name: {name!r}')
        return self.root_path.joinpath(name)

    def _to_object_stat(
        self,
        name: str,
        size: int,
        mtime: float,
    ) -> ObjectStat:
        return ObjectStat(
            filename=str(self.root_path.joinpath(name)),
            basename=name,
            size=size,
            last_modified=datetime.fromtimestamp(mtime, tz=UTC),
        )
