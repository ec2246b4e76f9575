"""Business logic for file operations.

Ties the storage backend, the file records and the download cache
together. Authorization is enforced here: private files and every
mutation are restricted to the owner and administrators.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, final

from django.db import IntegrityError
from django.utils import timezone
from django.utils.module_loading import import_string

from server.apps.accounts.logic.credentials import can_manage
from server.apps.files.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    RangeNotSatisfiableError,
)
from server.apps.files.infrastructure.backends.base import (
    ByteRange,
    BoundedReader,
    iter_chunks,
)
from server.apps.files.infrastructure.generators import generate_id, is_zws
from server.apps.files.infrastructure.metadata import (
    content_disposition,
    detect_mime_type,
    generate_physical_name,
)
from server.apps.files.logic import file_records
from server.apps.files.models import File

if TYPE_CHECKING:
    from server.apps.files.context import FilesContext

logger = logging.getLogger(__name__)

_PUBLIC_ID_LENGTH: Final = 6
_GFYCAT_PUBLIC_ID_LENGTH: Final = 2
_MAX_ID_ATTEMPTS: Final = 10

_EXPIRY_PATTERN: Final = re.compile(r'^\s*(\d+)\s*([smhdwy])\s*$', re.IGNORECASE)
_EXPIRY_UNITS: Final = {
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
    'd': timedelta(days=1),
    'w': timedelta(weeks=1),
    'y': timedelta(days=365),
}
_NO_EXPIRY_VALUES: Final = frozenset(('', 'never', 'none', '0'))
_RANGE_PATTERN: Final = re.compile(r'^bytes=(\d*)-(\d*)$')


@final
@dataclass(frozen=True, slots=True)
class FileDownload:
    """Everything needed to send a file to the client."""

    chunks: Iterator[bytes]
    content_type: str
    content_disposition: str
    content_length: int
    total_size: int
    byte_range: ByteRange | None = None

    @property
    def content_range(self) -> str | None:
        """``Content-Range`` header value for partial responses."""
        if self.byte_range is None:
            return None
        return (
            f'bytes {self.byte_range.start}-{self.byte_range.end}'
            f'/{self.total_size}'
        )


def parse_expiry(value: str | None, now: datetime | None = None) -> datetime | None:
    """Turn a duration such as ``30m``, ``1h``, ``7d`` or ``2w`` into a date.

    Args:
        value: Duration; empty or ``never`` means no expiry.
        now: Reference time, defaults to the current time.

    Returns:
        Expiry time, or None when the file should never expire.

    Raises:
        BadRequestError: If the value is not a valid duration.
    """
    if value is None or value.strip().lower() in _NO_EXPIRY_VALUES:
        return None
    match = _EXPIRY_PATTERN.match(value)
    if match is None:
        raise BadRequestError(
            f'Invalid expiry {value!r}, expected e.g. 30m, 1h, 7d or 2w.',
        )
    amount, unit = match.groups()
    return (now or timezone.now()) + int(amount) * _EXPIRY_UNITS[unit.lower()]


def parse_range_header(header: str | None, size: int) -> ByteRange | None:
    """Parse a single-range ``Range`` header against a file size.

    Malformed headers and multi-range requests are ignored, which makes
    the caller serve the whole file.

    Raises:
        RangeNotSatisfiableError: If the range starts past the end of
            the file.
    """
    if not header:
        return None
    match = _RANGE_PATTERN.match(header.strip())
    if match is None:
        return None
    raw_start, raw_end = match.groups()
    if not raw_start and not raw_end:
        return None
    if not raw_start:
        # Suffix range: the last N bytes
        suffix = int(raw_end)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size)
        return ByteRange(max(size - suffix, 0), size - 1)

    start = int(raw_start)
    end = int(raw_end) if raw_end else size - 1
    if start >= size or start > end:
        raise RangeNotSatisfiableError(size)
    return ByteRange(start, min(end, size - 1))


def normalize_public_id(value: str) -> str:
    """Strip an extension from a requested id and validate it.

    ``abc123.png`` and ``abc123`` address the same file.

    Raises:
        BadRequestError: If the id is neither ASCII nor zero-width.
    """
    public_id = value.split('.', 1)[0] or value
    if not public_id or not (public_id.isascii() or is_zws(public_id)):
        raise BadRequestError(
            'Invalid file identifier, should be alphanumeric or ZWS.',
        )
    return public_id


def upload_file(  # noqa: WPS211
    context: 'FilesContext',
    user: Any,
    payload: bytes | Path,
    original_name: str | None,
    *,
    is_private: bool = False,
    expires_at: datetime | None = None,
    public_file_name: str | None = None,
) -> File:
    """Store an upload and create its record.

    The object is written first. When the record cannot be created the
    object stays behind as an orphan and the next reconciliation sweep
    removes it.

    Args:
        context: Application context.
        user: Owner of the file.
        payload: Content, in memory or as a temporary file.
        original_name: Filename sent by the client.
        is_private: Restrict downloads to the owner and admins.
        expires_at: Optional expiry time.
        public_file_name: Optional filename shown to downloaders.

    Returns:
        Created File instance.

    Raises:
        StorageWriteError: If the backend write fails.
    """
    if context.upload_filters:
        payload = _apply_upload_filters(context, payload, original_name)
    size_bytes = payload.stat().st_size if isinstance(payload, Path) else len(payload)

    physical_name, extension = generate_physical_name(original_name)
    logger.info(
        'Uploading %s as %s (%d bytes)',
        original_name,
        physical_name,
        size_bytes,
    )
    context.backend.put(physical_name, payload)

    strategy, length = _public_id_strategy(user)
    for _ in range(_MAX_ID_ATTEMPTS):
        public_id = generate_id(strategy, length)
        if file_records.public_id_exists(public_id):
            continue
        try:
            return file_records.add_file(
                public_id=public_id,
                physical_name=physical_name,
                extension=extension,
                user=user,
                size_bytes=size_bytes,
                is_private=is_private,
                expires_at=expires_at,
                public_file_name=public_file_name,
            )
        except IntegrityError:
            logger.info('Public id collision, retrying: %s', public_id)
        except Exception:
            logger.exception(
                'Failed to record upload, orphaned object: %s',
                physical_name,
            )
            raise
    logger.error('No free public id for upload, orphaned object: %s', physical_name)
    raise IntegrityError('Could not generate a unique public id.')


def get_visible_file(public_id: str, requester: Any | None) -> File:
    """Find a file the requester is allowed to see.

    Raises:
        NotFoundError: If there is no record or it has expired.
        ForbiddenError: If the file is private and the requester is
            neither the owner nor an admin.
    """
    file_record = file_records.get_file(public_id)
    if file_record is None or file_record.is_expired():
        raise NotFoundError('File not found.')
    if file_record.is_private and not can_manage(file_record.user_id, requester):
        raise ForbiddenError()
    return file_record


def download_file(
    context: 'FilesContext',
    public_id: str,
    requester: Any | None,
    *,
    byte_range: ByteRange | None = None,
    as_attachment: bool = False,
) -> FileDownload:
    """Open a file for sending, through the download cache.

    A full download is served from the cache when a copy exists;
    otherwise the backend stream is teed into the cache. Ranges are read
    from a cached copy when there is one, else fetched from the backend
    without populating the cache.

    Raises:
        NotFoundError: If the file is missing or expired, also when the
            backend no longer has the object.
        ForbiddenError: If the file is private and not the requester's.
        RangeNotSatisfiableError: If the range lies outside the file.
    """
    file_record = get_visible_file(public_id, requester)
    total_size = file_record.size_bytes
    if byte_range is not None:
        if byte_range.start >= total_size:
            raise RangeNotSatisfiableError(total_size)
        byte_range = ByteRange(byte_range.start, min(byte_range.end, total_size - 1))

    name = file_record.physical_name
    cached = context.cache.lookup(name)
    if byte_range is None:
        if cached is not None:
            chunks = iter_chunks(cached.open('rb'))
        else:
            stream = context.backend.get(name)
            chunks = context.cache.tee(iter_chunks(stream), name)
        content_length = total_size
    else:
        if cached is not None:
            stream = cached.open('rb')
            stream.seek(byte_range.start)
            bounded = BoundedReader(stream, byte_range.length)
            chunks = iter_chunks(bounded)  # type: ignore[arg-type]
        else:
            chunks = iter_chunks(context.backend.get(name, byte_range))
        content_length = byte_range.length

    return FileDownload(
        chunks=chunks,
        content_type=detect_mime_type(file_record.extension, name),
        content_disposition=content_disposition(
            file_record.get_download_name(),
            as_attachment=as_attachment,
        ),
        content_length=content_length,
        total_size=total_size,
        byte_range=byte_range,
    )


def delete_file(context: 'FilesContext', public_id: str, requester: Any | None) -> None:
    """Delete a file: record first, then object, then cached copy.

    Once the record is gone the file is unreachable, so a failed backend
    removal only leaves an orphan for reconciliation.

    Raises:
        NotFoundError: If there is no record.
        ForbiddenError: If the requester is neither owner nor admin.
    """
    file_record = _get_managed_file(public_id, requester)
    file_records.remove_file(file_record.public_id)
    context.backend.remove(file_record.physical_name)
    context.cache.remove(file_record.physical_name)
    logger.info(
        'File deleted: %s (%s) by user %s',
        public_id,
        file_record.physical_name,
        requester.pk,
    )


def set_file_privacy(public_id: str, requester: Any | None, is_private: bool) -> File:
    """Change the privacy flag of a file.

    Raises:
        NotFoundError: If there is no record.
        ForbiddenError: If the requester is neither owner nor admin.
    """
    file_record = _get_managed_file(public_id, requester)
    file_records.set_privacy(public_id, is_private)
    file_record.is_private = is_private
    return file_record


def set_file_expiry(
    public_id: str,
    requester: Any | None,
    expires_at: datetime | None,
) -> File:
    """Set or clear (``None``) the expiry of a file.

    Raises:
        NotFoundError: If there is no record.
        ForbiddenError: If the requester is neither owner nor admin.
    """
    file_record = _get_managed_file(public_id, requester)
    file_records.set_expiry(public_id, expires_at)
    file_record.expires_at = expires_at
    return file_record


def list_user_files(
    owner: Any,
    requester: Any | None,
    page: int = 1,
) -> file_records.FilePage:
    """Page through a user's files; the user and admins only.

    Raises:
        ForbiddenError: If the requester is someone else.
    """
    if not can_manage(owner.pk, requester):
        raise ForbiddenError()
    return file_records.get_files_for_owner(owner, page)


def _get_managed_file(public_id: str, requester: Any | None) -> File:
    file_record = file_records.get_file(public_id)
    if file_record is None:
        raise NotFoundError('File not found.')
    if not can_manage(file_record.user_id, requester):
        raise ForbiddenError()
    return file_record


def _public_id_strategy(user: Any) -> tuple[str | None, int]:
    profile = getattr(user, 'profile', None)
    strategy = profile.shortener if profile is not None else None
    if strategy == 'gfycat':
        return strategy, _GFYCAT_PUBLIC_ID_LENGTH
    return strategy, _PUBLIC_ID_LENGTH


def _apply_upload_filters(
    context: 'FilesContext',
    payload: bytes | Path,
    original_name: str | None,
) -> bytes | Path:
    """Run the configured upload filters; a failing filter is skipped."""
    data = payload.read_bytes() if isinstance(payload, Path) else payload
    filename = original_name or ''
    for dotted_path in context.upload_filters:
        try:
            upload_filter = import_string(dotted_path)
            data = upload_filter(data, filename)
        except Exception as error:
            logger.warning(
                'Upload filter %s failed for %s: %s',
                dotted_path,
                filename,
                error,
            )
    return data
