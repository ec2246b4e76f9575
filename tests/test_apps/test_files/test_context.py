"""Tests for the application context and background scheduling."""

import pytest
from django.db import OperationalError

from server.apps.files import scheduler
from server.apps.files.context import FilesContext, build_files_context
from server.apps.files.exceptions import StorageConnectionError
from server.apps.files.infrastructure.backends.local import LocalBackend


@pytest.mark.django_db
def test_initialize_creates_root_user(local_backend, cache, django_user_model):
    """Test that initialization bootstraps the root administrator once."""
    context = FilesContext(local_backend, cache)

    context.initialize()
    context.initialize()

    assert context.ready
    root = django_user_model.objects.get(username='root')
    assert root.is_superuser
    assert django_user_model.objects.filter(username='root').count() == 1


@pytest.mark.django_db
def test_initialize_fails_on_backend_error(cache, monkeypatch, tmp_path):
    """Test that a failing backend keeps the context unusable."""
    backend = LocalBackend(tmp_path / 'storage')

    def failing_login():
        raise StorageConnectionError()

    monkeypatch.setattr(backend, 'login', failing_login)
    context = FilesContext(backend, cache)

    with pytest.raises(StorageConnectionError):
        context.initialize()
    assert not context.ready


@pytest.mark.django_db
def test_initialize_fails_on_database_error(local_backend, cache, monkeypatch):
    """Test that an unreachable metadata store is a connection error."""

    def failing_connection():
        raise OperationalError('database is down')

    monkeypatch.setattr(
        'server.apps.files.context.connection.ensure_connection',
        failing_connection,
    )
    context = FilesContext(local_backend, cache)

    with pytest.raises(StorageConnectionError):
        context.initialize()
    assert not context.ready


def test_build_files_context(settings, tmp_path):
    """Test that settings select the backend and flags."""
    settings.STORAGE_MODE = 'local'
    settings.FILES_STORAGE = {'local': {'root_path': str(tmp_path / 'files')}}
    settings.FILES_CACHE_DIR = str(tmp_path / 'cache')
    settings.FILES_IS_PRODUCTION = True
    settings.FILES_CHECK_INTERVAL_MINUTES = 5

    context = build_files_context()

    assert isinstance(context.backend, LocalBackend)
    assert context.production is True
    assert context.check_interval_minutes == 5
    assert not context.ready


def test_build_scheduler_jobs(local_backend, cache):
    """Test that the three reconciliation jobs are scheduled."""
    context = FilesContext(
        local_backend,
        cache,
        check_interval_minutes=30,
        token_check_interval_minutes=10,
        expiry_check_interval_minutes=0,
    )

    background = scheduler.build_scheduler(context)
    jobs = {job.id: job for job in background.get_jobs()}

    assert set(jobs) == {
        scheduler.CHECK_FILES_JOB_ID,
        scheduler.EXPIRED_TOKENS_JOB_ID,
        scheduler.EXPIRED_FILES_JOB_ID,
    }
    assert jobs[scheduler.CHECK_FILES_JOB_ID].trigger.interval.total_seconds() == 1800
    assert jobs[scheduler.EXPIRED_FILES_JOB_ID].trigger.interval.total_seconds() == 60
    assert not background.running


def test_job_failures_are_contained(caplog):
    """Test that a failing job is logged instead of raised."""

    def failing_job():
        raise RuntimeError('boom')

    scheduler._with_db_cleanup(failing_job, 'broken')()  # noqa: WPS437

    assert 'Background job broken failed' in caplog.text


@pytest.mark.django_db
def test_background_tasks_start_once(files_context, monkeypatch):
    """Test that the scheduler is started once and stopped on shutdown."""
    job_names = (
        'check_files',
        'purge_expired_sign_up_tokens',
        'purge_expired_files',
    )
    for job_name in job_names:
        monkeypatch.setattr(scheduler, job_name, lambda *args, **kwargs: None)

    first = files_context.start_background_tasks()
    second = files_context.start_background_tasks()

    try:
        assert first is second
        assert first.running
    finally:
        files_context.shutdown(wait=True)

    assert not first.running
