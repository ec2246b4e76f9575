"""Background scheduling of the reconciliation passes (APScheduler)."""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Final

from apscheduler.schedulers.background import BackgroundScheduler
from django.db import close_old_connections
from django.utils import timezone

from server.apps.files.logic.reconciliation import (
    check_files,
    purge_expired_files,
    purge_expired_sign_up_tokens,
)

if TYPE_CHECKING:
    from server.apps.files.context import FilesContext

logger = logging.getLogger(__name__)

CHECK_FILES_JOB_ID: Final = 'check_files'
EXPIRED_TOKENS_JOB_ID: Final = 'purge_expired_sign_up_tokens'
EXPIRED_FILES_JOB_ID: Final = 'purge_expired_files'


def _with_db_cleanup(job: Callable[[], object], job_id: str) -> Callable[[], None]:
    """Wrap a job so it never raises and drops stale DB connections."""

    def run() -> None:  # noqa: WPS430
        close_old_connections()
        try:
            job()
        except Exception:
            logger.exception('Background job %s failed', job_id)
        finally:
            close_old_connections()

    return run


def build_scheduler(context: 'FilesContext') -> BackgroundScheduler:
    """Create a scheduler with the three reconciliation jobs.

    Every job also runs once as soon as the scheduler starts. The
    scheduler is not started here.

    Args:
        context: Application context providing backend, cache, flags
            and intervals.

    Returns:
        Configured, stopped scheduler.
    """
    scheduler = BackgroundScheduler(daemon=True, timezone='UTC')
    now = timezone.now()
    jobs = (
        (
            CHECK_FILES_JOB_ID,
            'Check files against the storage backend',
            lambda: check_files(context.backend, production=context.production),
            context.check_interval_minutes,
        ),
        (
            EXPIRED_TOKENS_JOB_ID,
            'Purge expired sign-up tokens',
            purge_expired_sign_up_tokens,
            context.token_check_interval_minutes,
        ),
        (
            EXPIRED_FILES_JOB_ID,
            'Purge expired files',
            lambda: purge_expired_files(
                context.backend,
                context.cache,
                production=context.production,
            ),
            context.expiry_check_interval_minutes,
        ),
    )
    for job_id, job_name, job, minutes in jobs:
        scheduler.add_job(
            func=_with_db_cleanup(job, job_id),
            trigger='interval',
            minutes=max(1, minutes),
            id=job_id,
            name=job_name,
            next_run_time=now,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
    logger.info(
        'Scheduled reconciliation: files every %d min, tokens every %d min, '
        'expiry every %d min',
        context.check_interval_minutes,
        context.token_check_interval_minutes,
        context.expiry_check_interval_minutes,
    )
    return scheduler
