"""Application context: the storage backend, cache and background jobs.

One context is built per process when the files app is ready. It is
passed explicitly to the file operations, the reconciliation passes and
the management commands instead of living in module globals.
"""

import atexit
import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, final

from django.apps import apps
from django.conf import settings
from django.db import OperationalError, connection

from server.apps.files.exceptions import StorageConnectionError
from server.apps.files.infrastructure.backends import (
    StorageBackend,
    build_backend,
)
from server.apps.files.infrastructure.cache import ReadThroughCache

if TYPE_CHECKING:
    from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


@final
class FilesContext:
    """Shared handles of the file host."""

    def __init__(  # noqa: WPS211
        self,
        backend: StorageBackend,
        cache: ReadThroughCache,
        *,
        production: bool = False,
        upload_filters: Sequence[str] = (),
        check_interval_minutes: int = 30,
        token_check_interval_minutes: int = 10,
        expiry_check_interval_minutes: int = 10,
    ) -> None:
        """Initialize the context; nothing is contacted yet.

        Args:
            backend: Active storage backend.
            cache: Download cache.
            production: Allow destructive reconciliation.
            upload_filters: Dotted paths of upload filter callables.
            check_interval_minutes: Period of the consistency check.
            token_check_interval_minutes: Period of the token purge.
            expiry_check_interval_minutes: Period of the expiry purge.
        """
        self.backend = backend
        self.cache = cache
        self.production = production
        self.upload_filters = tuple(upload_filters)
        self.check_interval_minutes = check_interval_minutes
        self.token_check_interval_minutes = token_check_interval_minutes
        self.expiry_check_interval_minutes = expiry_check_interval_minutes
        self._lock = threading.Lock()
        self._ready = False
        self._scheduler: BackgroundScheduler | None = None

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        """Connect to the backend and database, and bootstrap the root user.

        Safe to call from many threads; only the first call does work.

        Raises:
            StorageConnectionError: If the backend or the database is
                unreachable. The process should not serve requests then.
        """
        if self._ready:
            return
        with self._lock:
            if self._ready:
                logger.debug('Already initialized!')
                return
            self.backend.login()
            logger.info('Connected to %s storage', self.backend.name)
            try:
                connection.ensure_connection()
            except OperationalError as error:
                logger.exception('Database connection failed')
                raise StorageConnectionError(
                    'Metadata store is unavailable.',
                ) from error
            logger.info('Connected to database')

            from server.apps.accounts.logic.users import (  # noqa: WPS433
                ensure_root_user,
            )
            ensure_root_user()
            self._ready = True

    def start_background_tasks(self) -> 'BackgroundScheduler':
        """Start the reconciliation scheduler once.

        Returns:
            The running scheduler.
        """
        from server.apps.files.scheduler import build_scheduler  # noqa: WPS433

        with self._lock:
            if self._scheduler is None:
                self._scheduler = build_scheduler(self)
                self._scheduler.start()
                logger.info('Background reconciliation started')
        return self._scheduler

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop background jobs and release backend resources."""
        with self._lock:
            scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=wait)
            logger.info('Background reconciliation stopped')
        self.backend.close()


def build_files_context() -> FilesContext:
    """Build the context from Django settings.

    Raises:
        ImproperlyConfigured: If the storage mode is unknown or misses
            required options.
    """
    mode = settings.STORAGE_MODE
    backend = build_backend(mode, settings.FILES_STORAGE.get(mode, {}))
    return FilesContext(
        backend,
        ReadThroughCache(settings.FILES_CACHE_DIR),
        production=settings.FILES_IS_PRODUCTION,
        upload_filters=settings.FILES_UPLOAD_FILTERS,
        check_interval_minutes=settings.FILES_CHECK_INTERVAL_MINUTES,
        token_check_interval_minutes=settings.FILES_TOKEN_CHECK_INTERVAL_MINUTES,
        expiry_check_interval_minutes=settings.FILES_EXPIRY_CHECK_INTERVAL_MINUTES,
    )


def get_files_context() -> FilesContext:
    """Return the process context, initializing it on first use.

    Background jobs are started here when
    ``FILES_START_BACKGROUND_TASKS`` is enabled.

    Raises:
        StorageConnectionError: If initialization fails.
    """
    context: FilesContext = apps.get_app_config('files').context  # type: ignore[attr-defined]
    if not context.ready:
        context.initialize()
        if settings.FILES_START_BACKGROUND_TASKS:
            context.start_background_tasks()
            atexit.register(context.shutdown, wait=False)
    return context
