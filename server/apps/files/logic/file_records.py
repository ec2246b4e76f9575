"""File metadata store: queries and updates of ``File`` records.

Records are the source of truth for ownership, privacy and expiry.
Nothing here touches the storage backend.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final, final

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from server.apps.files.models import File

logger = logging.getLogger(__name__)

PAGE_SIZE: Final = 20


@final
@dataclass(frozen=True, slots=True)
class FilePage:
    """One page of an owner's files, newest first."""

    items: Sequence[File]
    total_pages: int
    page: int


def get_file(public_id: str) -> File | None:
    """Find a record by public id."""
    return File.objects.select_related('user').filter(public_id=public_id).first()


def get_file_by_backend_name(physical_name: str) -> File | None:
    """Find a record by the object name used in the storage backend."""
    return File.objects.filter(physical_name=physical_name).first()


def add_file(  # noqa: WPS211
    *,
    public_id: str,
    physical_name: str,
    extension: str,
    user: Any,
    size_bytes: int,
    is_private: bool = False,
    expires_at: datetime | None = None,
    public_file_name: str | None = None,
) -> File:
    """Create a record.

    Raises:
        django.db.IntegrityError: If the public id or physical name is
            already taken.
    """
    with transaction.atomic():
        file_record = File.objects.create(
            public_id=public_id,
            physical_name=physical_name,
            extension=extension,
            user=user,
            size_bytes=size_bytes,
            is_private=is_private,
            expires_at=expires_at,
            public_file_name=public_file_name or None,
        )
    logger.info(
        'File record created: %s -> %s (user: %s)',
        public_id,
        physical_name,
        user.pk,
    )
    return file_record


def remove_file(public_id: str) -> bool:
    """Delete a record. Missing records count as removed.

    Returns:
        Always True.
    """
    deleted, _ = File.objects.filter(public_id=public_id).delete()
    if deleted:
        logger.info('File record deleted: %s', public_id)
    return True


def public_id_exists(public_id: str) -> bool:
    return File.objects.filter(public_id=public_id).exists()


def set_privacy(public_id: str, is_private: bool) -> bool:
    """Update the privacy flag; last write wins.

    Returns:
        True if a record was updated.
    """
    return bool(
        File.objects.filter(public_id=public_id).update(is_private=is_private),
    )


def set_expiry(public_id: str, expires_at: datetime | None) -> bool:
    """Update or clear the expiry; last write wins.

    Returns:
        True if a record was updated.
    """
    return bool(
        File.objects.filter(public_id=public_id).update(expires_at=expires_at),
    )


def get_files_for_owner(
    user: Any,
    page: int = 1,
    page_size: int = PAGE_SIZE,
) -> FilePage:
    """Page through an owner's files sorted by creation time, newest first.

    Pages are 1-based; a page past the end is empty.

    Args:
        user: Owner.
        page: Page number.
        page_size: Records per page.

    Returns:
        Requested page and the total page count.
    """
    page = max(page, 1)
    queryset = File.objects.filter(user=user).order_by('-created_at', '-id')
    total = queryset.count()
    offset = (page - 1) * page_size
    items = list(queryset[offset:offset + page_size])
    return FilePage(
        items=items,
        total_pages=math.ceil(total / page_size),
        page=page,
    )


def reassign_owner(old_user: Any, new_user: Any) -> int:
    """Move every file of one user to another.

    Returns:
        Number of records moved.
    """
    moved = File.objects.filter(user=old_user).update(user=new_user)
    logger.info(
        'Reassigned %d files from user %s to user %s',
        moved,
        old_user.pk,
        new_user.pk,
    )
    return moved


def list_all_files() -> QuerySet[File]:
    return File.objects.all()


def list_expired_files(now: datetime | None = None) -> QuerySet[File]:
    """Records whose expiry is at or before ``now``."""
    return File.objects.filter(expires_at__lte=now or timezone.now())
