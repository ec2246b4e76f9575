"""Tests for reconciliation of records with backend objects."""

import shutil
from datetime import timedelta

import pytest
from django.utils import timezone

from server.apps.accounts.models import SignUpToken
from server.apps.files.exceptions import StorageError
from server.apps.files.logic import file_operations, file_records, reconciliation
from server.apps.files.models import File


def _stored_file(backend, user, public_id, **kwargs):
    physical_name = f'{public_id}.txt'
    backend.put(physical_name, b'content')
    return file_records.add_file(
        public_id=public_id,
        physical_name=physical_name,
        extension='txt',
        user=user,
        size_bytes=7,
        **kwargs,
    )


def _object_names(backend):
    return {object_stat.basename for object_stat in backend.list()}


@pytest.mark.django_db
def test_check_files_converges(local_backend, user):
    """Test that dangling records and orphan objects are both removed."""
    _stored_file(local_backend, user, 'kept')
    dangling = _stored_file(local_backend, user, 'dangling')
    local_backend.remove(dangling.physical_name)
    local_backend.put('orphan.bin', b'nobody owns me')

    records_result, objects_result = reconciliation.check_files(
        local_backend,
        production=True,
    )

    assert list(File.objects.values_list('public_id', flat=True)) == ['kept']
    assert _object_names(local_backend) == {'kept.txt'}
    assert records_result.checked == 2
    assert records_result.removed == 1
    assert objects_result.checked == 2
    assert objects_result.removed == 1


@pytest.mark.django_db
def test_check_files_outside_production_only_logs(local_backend, user, caplog):
    """Test that nothing is deleted outside production."""
    dangling = _stored_file(local_backend, user, 'dangling')
    local_backend.remove(dangling.physical_name)
    local_backend.put('orphan.bin', b'x')

    with caplog.at_level('INFO', logger='server.apps.files.logic.reconciliation'):
        records_result, objects_result = reconciliation.check_files(
            local_backend,
            production=False,
        )

    assert File.objects.filter(public_id='dangling').exists()
    assert _object_names(local_backend) == {'orphan.bin'}
    assert records_result.removed == 1
    assert objects_result.removed == 1
    assert 'DATABASE-CLEANUP --> Removed DB Entry dangling.txt' in caplog.text
    assert 'FILE-CLEANUP --> Removed file orphan.bin from local.' in caplog.text


@pytest.mark.django_db
def test_check_files_aborts_on_listing_failure(local_backend, user, monkeypatch):
    """Test that a failed listing never deletes records."""
    _stored_file(local_backend, user, 'kept')

    def failing_list():
        raise StorageError('listing failed')

    monkeypatch.setattr(local_backend, 'list', failing_list)

    records_result, objects_result = reconciliation.check_files(
        local_backend,
        production=True,
    )

    assert records_result.aborted
    assert objects_result.aborted
    assert File.objects.filter(public_id='kept').exists()


@pytest.mark.django_db
def test_upload_during_listing_survives(files_context, user, monkeypatch):
    """Test that an upload finishing after the listing keeps record and object."""
    backend = files_context.backend
    original_list = backend.list
    uploaded = []

    def list_then_upload():
        objects = original_list()
        uploaded.append(
            file_operations.upload_file(files_context, user, b'hello', 'a.txt'),
        )
        return objects

    monkeypatch.setattr(backend, 'list', list_then_upload)

    records_result, objects_result = reconciliation.check_files(
        backend,
        production=True,
    )

    file_record = uploaded[0]
    assert File.objects.count() == 1
    assert File.objects.filter(public_id=file_record.public_id).exists()
    assert _object_names(backend) == {file_record.physical_name}
    assert records_result.removed == 0
    assert objects_result.removed == 0


@pytest.mark.django_db
def test_object_with_new_record_is_kept(local_backend, user):
    """Test that an object whose record appeared after the snapshot is kept."""
    stored = _stored_file(local_backend, user, 'late')

    result = reconciliation.remove_objects_without_records(
        local_backend,
        local_backend.list(),
        set(),
        production=True,
    )

    assert result.removed == 0
    assert _object_names(local_backend) == {stored.physical_name}


@pytest.mark.django_db
def test_failing_item_does_not_stop_pass(local_backend, user, monkeypatch):
    """Test that one failing removal is counted and the pass goes on."""
    local_backend.put('first.bin', b'x')
    local_backend.put('second.bin', b'x')
    original_remove = local_backend.remove

    def flaky_remove(name):
        if name == 'first.bin':
            raise StorageError('remove failed')
        return original_remove(name)

    monkeypatch.setattr(local_backend, 'remove', flaky_remove)

    result = reconciliation.remove_objects_without_records(
        local_backend,
        local_backend.list(),
        set(),
        production=True,
    )

    assert result.failed == 1
    assert result.removed == 1
    assert _object_names(local_backend) == {'first.bin'}


@pytest.mark.django_db
def test_purge_expired_sign_up_tokens():
    """Test that only expired tokens are deleted."""
    now = timezone.now()
    SignUpToken.objects.create(
        token='old',
        created_at=now - timedelta(days=2),
        expires_at=now - timedelta(days=1),
    )
    SignUpToken.objects.create(
        token='fresh',
        created_at=now,
        expires_at=now + timedelta(days=1),
    )

    result = reconciliation.purge_expired_sign_up_tokens(now)

    assert result.removed == 1
    assert list(SignUpToken.objects.values_list('token', flat=True)) == ['fresh']


@pytest.mark.django_db
def test_purge_expired_files(local_backend, cache, user):
    """Test that expired files lose record, object and cached copy."""
    now = timezone.now()
    expired = _stored_file(
        local_backend,
        user,
        'expired',
        expires_at=now - timedelta(minutes=1),
    )
    _stored_file(local_backend, user, 'current', expires_at=now + timedelta(days=1))
    list(cache.tee(iter([b'content']), expired.physical_name))

    result = reconciliation.purge_expired_files(
        local_backend,
        cache,
        production=True,
        now=now,
    )

    assert result.removed == 1
    assert list(File.objects.values_list('public_id', flat=True)) == ['current']
    assert _object_names(local_backend) == {'current.txt'}
    assert cache.lookup(expired.physical_name) is None


@pytest.mark.django_db
def test_purge_expired_files_outside_production(local_backend, user):
    """Test that records are deleted but objects kept outside production."""
    expired = _stored_file(
        local_backend,
        user,
        'expired',
        expires_at=timezone.now() - timedelta(minutes=1),
    )

    reconciliation.purge_expired_files(local_backend, production=False)

    assert not File.objects.exists()
    assert _object_names(local_backend) == {expired.physical_name}


@pytest.mark.django_db
def test_run_reconciliation_selected_passes(files_context, user):
    """Test that only the requested passes run."""
    files_context.backend.put('orphan.bin', b'x')
    _stored_file(
        files_context.backend,
        user,
        'expired',
        expires_at=timezone.now() - timedelta(minutes=1),
    )

    report = reconciliation.run_reconciliation(
        files_context,
        only=(reconciliation.PASS_EXPIRED,),
    )

    assert report.production is True
    assert report.expired_files.removed == 1
    assert report.objects_without_records.checked == 0
    assert _object_names(files_context.backend) == {'orphan.bin'}

    report = reconciliation.run_reconciliation(files_context)

    assert report.objects_without_records.removed == 1
    assert report.failed == 0
    assert _object_names(files_context.backend) == set()


@pytest.mark.django_db
def test_run_reconciliation_isolates_failing_pass(files_context, user):
    """Test that a broken storage root does not block the token sweep."""
    now = timezone.now()
    SignUpToken.objects.create(
        token='old',
        created_at=now - timedelta(days=2),
        expires_at=now - timedelta(days=1),
    )
    _stored_file(files_context.backend, user, 'kept')
    shutil.rmtree(files_context.backend.root_path)

    report = reconciliation.run_reconciliation(files_context)

    assert report.records_without_objects.aborted
    assert report.objects_without_records.aborted
    assert report.expired_tokens.removed == 1
    assert not SignUpToken.objects.exists()
    assert File.objects.filter(public_id='kept').exists()


@pytest.mark.django_db
def test_run_reconciliation_contains_unexpected_errors(
    files_context,
    monkeypatch,
    caplog,
):
    """Test that an unexpected error in one pass is logged and reported."""

    def failing_purge(*args, **kwargs):
        raise RuntimeError('database went away')

    monkeypatch.setattr(
        reconciliation,
        'purge_expired_sign_up_tokens',
        failing_purge,
    )

    report = reconciliation.run_reconciliation(files_context)

    assert report.expired_tokens.aborted
    assert not report.expired_files.aborted
    assert 'Reconciliation pass tokens failed' in caplog.text
