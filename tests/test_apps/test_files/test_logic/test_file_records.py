"""Tests for the file metadata store."""

from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone

from server.apps.files.logic import file_records
from server.apps.files.models import File


def _create_file(user, public_id, **kwargs):
    return file_records.add_file(
        public_id=public_id,
        physical_name=f'{public_id}-object.txt',
        extension='txt',
        user=user,
        size_bytes=kwargs.pop('size_bytes', 10),
        **kwargs,
    )


@pytest.mark.django_db
def test_add_and_get_file(user):
    """Test creating and reading back a record."""
    _create_file(user, 'abc123', public_file_name='report.txt')

    file_record = file_records.get_file('abc123')

    assert file_record is not None
    assert file_record.user == user
    assert file_record.public_file_name == 'report.txt'
    assert file_records.get_file_by_backend_name('abc123-object.txt') == file_record
    assert file_records.get_file('missing') is None


@pytest.mark.django_db
def test_add_file_duplicate_public_id(user):
    """Test that public ids are unique."""
    _create_file(user, 'abc123')

    with pytest.raises(IntegrityError):
        file_records.add_file(
            public_id='abc123',
            physical_name='other.txt',
            extension='txt',
            user=user,
            size_bytes=1,
        )


@pytest.mark.django_db
def test_remove_file_is_idempotent(user):
    """Test that removing a missing record still succeeds."""
    _create_file(user, 'abc123')

    assert file_records.remove_file('abc123') is True
    assert file_records.remove_file('abc123') is True
    assert not file_records.public_id_exists('abc123')


@pytest.mark.django_db
def test_set_privacy_and_expiry(user):
    """Test flag updates and their result for missing records."""
    _create_file(user, 'abc123')
    expires_at = timezone.now() + timedelta(hours=1)

    assert file_records.set_privacy('abc123', True) is True
    assert file_records.set_expiry('abc123', expires_at) is True
    assert file_records.set_privacy('missing', True) is False

    file_record = File.objects.get(public_id='abc123')
    assert file_record.is_private is True
    assert file_record.expires_at == expires_at

    file_records.set_expiry('abc123', None)
    file_record.refresh_from_db()
    assert file_record.expires_at is None


@pytest.mark.django_db
def test_get_files_for_owner_pagination(user, other_user):
    """Test newest-first pages of a single owner."""
    now = timezone.now()
    for index in range(5):
        file_record = _create_file(user, f'file{index}')
        File.objects.filter(pk=file_record.pk).update(
            created_at=now - timedelta(minutes=index),
        )
    _create_file(other_user, 'foreign')

    first = file_records.get_files_for_owner(user, page=1, page_size=2)
    last = file_records.get_files_for_owner(user, page=3, page_size=2)
    beyond = file_records.get_files_for_owner(user, page=4, page_size=2)

    assert [item.public_id for item in first.items] == ['file0', 'file1']
    assert first.total_pages == 3
    assert [item.public_id for item in last.items] == ['file4']
    assert beyond.items == []


@pytest.mark.django_db
def test_get_files_for_owner_without_files(user):
    """Test that an owner without files has no pages."""
    file_page = file_records.get_files_for_owner(user)

    assert file_page.items == []
    assert file_page.total_pages == 0
    assert file_page.page == 1


@pytest.mark.django_db
def test_reassign_owner(user, other_user):
    """Test moving every file to another owner."""
    _create_file(user, 'one')
    _create_file(user, 'two')

    assert file_records.reassign_owner(user, other_user) == 2
    assert File.objects.filter(user=other_user).count() == 2


@pytest.mark.django_db
def test_list_expired_files(user):
    """Test that only records past their expiry are listed."""
    now = timezone.now()
    _create_file(user, 'expired', expires_at=now - timedelta(seconds=1))
    _create_file(user, 'boundary', expires_at=now)
    _create_file(user, 'future', expires_at=now + timedelta(days=1))
    _create_file(user, 'forever')

    expired = file_records.list_expired_files(now)

    assert sorted(expired.values_list('public_id', flat=True)) == [
        'boundary',
        'expired',
    ]
