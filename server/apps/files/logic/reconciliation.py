"""Reconciliation of file records with the objects in the storage backend.

Drift between the database and the backend (crashes between the two
writes, manual tampering with the bucket) is expected and is repaired
here, never reported to API callers. Every pass handles items one by
one: a failing item is logged and counted, and the pass goes on.

Outside production, passes that would delete records or backend objects
only log what they would do.
"""

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Final, final

from django.utils import timezone

from server.apps.accounts.logic.sign_up_tokens import list_expired_sign_up_tokens
from server.apps.files.exceptions import FilesError
from server.apps.files.infrastructure.backends.base import (
    ObjectStat,
    StorageBackend,
)
from server.apps.files.infrastructure.cache import ReadThroughCache
from server.apps.files.logic.file_records import (
    get_file_by_backend_name,
    list_all_files,
    list_expired_files,
    remove_file,
)
from server.apps.files.models import File

if TYPE_CHECKING:
    from server.apps.files.context import FilesContext

logger = logging.getLogger(__name__)

PASS_FILES: Final = 'files'
PASS_TOKENS: Final = 'tokens'
PASS_EXPIRED: Final = 'expired'
ALL_PASSES: Final = (PASS_FILES, PASS_TOKENS, PASS_EXPIRED)


@final
@dataclass(slots=True)
class PassResult:
    """Outcome of one reconciliation pass."""

    checked: int = 0
    removed: int = 0
    failed: int = 0
    aborted: bool = False


@final
@dataclass(slots=True)
class ReconciliationReport:
    """Outcome of a full sweep."""

    production: bool
    records_without_objects: PassResult = field(default_factory=PassResult)
    objects_without_records: PassResult = field(default_factory=PassResult)
    expired_tokens: PassResult = field(default_factory=PassResult)
    expired_files: PassResult = field(default_factory=PassResult)

    @property
    def failed(self) -> int:
        return sum(
            result.failed
            for result in (
                self.records_without_objects,
                self.objects_without_records,
                self.expired_tokens,
                self.expired_files,
            )
        )


def remove_records_without_objects(
    file_records: Iterable[File],
    object_names: Collection[str],
    *,
    production: bool,
) -> PassResult:
    """Delete records whose backend object is missing.

    Args:
        file_records: Records that existed before the listing was taken.
        object_names: Basenames reported by the backend listing.
        production: Only delete when True; otherwise just log.

    Returns:
        Pass statistics.
    """
    result = PassResult()
    for file_record in file_records:
        result.checked += 1
        if file_record.physical_name in object_names:
            continue
        try:
            if production:
                remove_file(file_record.public_id)
            result.removed += 1
            logger.info(
                'DATABASE-CLEANUP --> Removed DB Entry %s.%s from file database.',
                file_record.public_id,
                file_record.extension,
            )
        except Exception:
            result.failed += 1
            logger.exception(
                'DATABASE-CLEANUP --> Failed to remove %s',
                file_record.public_id,
            )
    return result


def remove_objects_without_records(
    backend: StorageBackend,
    objects: Iterable[ObjectStat],
    known_names: Collection[str],
    *,
    production: bool,
) -> PassResult:
    """Remove backend objects that no record points to.

    Each candidate is looked up again right before removal, so an upload
    that finished after ``known_names`` was collected keeps its object.

    Args:
        backend: Active storage backend.
        objects: Backend listing.
        known_names: Object names of the records known to the caller.
        production: Only remove when True; otherwise just log.

    Returns:
        Pass statistics.
    """
    result = PassResult()
    for object_stat in objects:
        result.checked += 1
        if object_stat.basename in known_names:
            continue
        try:
            if get_file_by_backend_name(object_stat.basename) is not None:
                continue
            if production:
                backend.remove(object_stat.basename)
            result.removed += 1
            logger.info(
                'FILE-CLEANUP --> Removed file %s from %s.',
                object_stat.basename,
                backend.name,
            )
        except Exception:
            result.failed += 1
            logger.exception(
                'FILE-CLEANUP --> Failed to remove %s',
                object_stat.basename,
            )
    return result


def check_files(
    backend: StorageBackend,
    *,
    production: bool,
) -> tuple[PassResult, PassResult]:
    """Run both consistency passes over a single backend listing.

    Records are read before the backend is listed. An upload writes its
    object before its record, so every record in that snapshot has an
    object the listing can see, and uploads racing the sweep are left
    alone by both passes.

    A failing listing aborts both passes; nothing is deleted then, since
    an empty or partial listing would look like every object is gone.

    Returns:
        Results of the records pass and of the objects pass.
    """
    file_records = list(list_all_files())
    try:
        objects = backend.list()
    except FilesError:
        logger.exception('Skipping file check, backend listing failed')
        return PassResult(aborted=True), PassResult(aborted=True)

    object_names = {object_stat.basename for object_stat in objects}
    records_result = remove_records_without_objects(
        file_records,
        object_names,
        production=production,
    )
    objects_result = remove_objects_without_records(
        backend,
        objects,
        {file_record.physical_name for file_record in file_records},
        production=production,
    )
    return records_result, objects_result


def purge_expired_sign_up_tokens(now: datetime | None = None) -> PassResult:
    """Delete sign-up tokens past their expiry. Runs in every mode."""
    result = PassResult()
    for sign_up_token in list_expired_sign_up_tokens(now):
        result.checked += 1
        try:
            sign_up_token.delete()
        except Exception:
            result.failed += 1
            logger.exception(
                'TOKEN-CLEANUP --> Failed to delete token %s',
                sign_up_token.token,
            )
            continue
        result.removed += 1
        logger.info(
            'TOKEN-CLEANUP --> Deleted expired token: %s. Expired at %s',
            sign_up_token.token,
            sign_up_token.expires_at.isoformat(),
        )
    return result


def purge_expired_files(
    backend: StorageBackend,
    cache: ReadThroughCache | None = None,
    *,
    production: bool,
    now: datetime | None = None,
) -> PassResult:
    """Delete expired records and, in production, their backend objects.

    Args:
        backend: Active storage backend.
        cache: Download cache whose entries are dropped too.
        production: Remove backend objects only when True.
        now: Reference time, defaults to the current time.

    Returns:
        Pass statistics.
    """
    result = PassResult()
    for file_record in list(list_expired_files(now or timezone.now())):
        result.checked += 1
        try:
            remove_file(file_record.public_id)
            if production:
                backend.remove(file_record.physical_name)
            if cache is not None:
                cache.remove(file_record.physical_name)
        except Exception:
            result.failed += 1
            logger.exception(
                'EXPIRY-CLEANUP --> Failed to purge %s',
                file_record.public_id,
            )
            continue
        result.removed += 1
        logger.info(
            'EXPIRY-CLEANUP --> Removed expired file %s (%s)',
            file_record.public_id,
            file_record.physical_name,
        )
    return result


def run_reconciliation(
    context: 'FilesContext',
    *,
    production: bool | None = None,
    only: Collection[str] = ALL_PASSES,
) -> ReconciliationReport:
    """Run a full sweep, or the selected passes.

    A pass that fails as a whole is logged and reported as aborted; the
    remaining passes still run.

    Args:
        context: Application context with the backend and cache.
        production: Override the context's production flag.
        only: Passes to run, any of ``files``, ``tokens``, ``expired``.

    Returns:
        Report of every pass that ran.
    """
    is_production = context.production if production is None else production
    report = ReconciliationReport(production=is_production)
    if PASS_FILES in only:
        try:
            report.records_without_objects, report.objects_without_records = (
                check_files(context.backend, production=is_production)
            )
        except Exception:
            logger.exception('Reconciliation pass %s failed', PASS_FILES)
            report.records_without_objects = PassResult(aborted=True)
            report.objects_without_records = PassResult(aborted=True)
    if PASS_TOKENS in only:
        try:
            report.expired_tokens = purge_expired_sign_up_tokens()
        except Exception:
            logger.exception('Reconciliation pass %s failed', PASS_TOKENS)
            report.expired_tokens = PassResult(aborted=True)
    if PASS_EXPIRED in only:
        try:
            report.expired_files = purge_expired_files(
                context.backend,
                context.cache,
                production=is_production,
            )
        except Exception:
            logger.exception('Reconciliation pass %s failed', PASS_EXPIRED)
            report.expired_files = PassResult(aborted=True)
    return report
