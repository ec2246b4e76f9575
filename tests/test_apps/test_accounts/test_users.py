"""Tests for user lifecycle operations."""

import pytest
from django.contrib.auth import get_user_model

from server.apps.accounts.logic.users import delete_user, ensure_root_user
from server.apps.files.exceptions import BadRequestError
from server.apps.files.models import File
from server.apps.links.models import Link

User = get_user_model()


def _create_file(user, public_id):
    return File.objects.create(
        public_id=public_id,
        physical_name=f'{public_id}.txt',
        extension='txt',
        user=user,
        size_bytes=1,
    )


@pytest.mark.django_db
def test_ensure_root_user(settings):
    """Test that the root administrator is created once."""
    settings.ROOT_PASSWORD = 'rootpass'

    root = ensure_root_user()

    assert root.username == 'root'
    assert root.is_superuser
    assert root.is_staff
    assert root.check_password('rootpass')
    assert root.profile.token
    assert ensure_root_user() == root
    assert User.objects.filter(username='root').count() == 1


@pytest.mark.django_db
def test_ensure_root_user_without_password(settings):
    """Test that a missing password leaves only the API token usable."""
    settings.ROOT_PASSWORD = ''

    root = ensure_root_user()

    assert not root.has_usable_password()


@pytest.mark.django_db
def test_delete_user_cascades(user):
    """Test that records and links go with the user."""
    _create_file(user, 'abc')
    Link.objects.create(tag='tag1', url='https://example.com', user=user)

    delete_user(user)

    assert not User.objects.filter(username='testuser').exists()
    assert not File.objects.exists()
    assert not Link.objects.exists()


@pytest.mark.django_db
def test_delete_user_with_new_owner(user, other_user):
    """Test that files and links can be handed over."""
    _create_file(user, 'abc')
    Link.objects.create(tag='tag1', url='https://example.com', user=user)

    delete_user(user, new_owner=other_user)

    assert File.objects.get().user == other_user
    assert Link.objects.get().user == other_user


@pytest.mark.django_db
def test_delete_root_user_rejected():
    """Test that the root administrator cannot be removed."""
    root = ensure_root_user()

    with pytest.raises(BadRequestError):
        delete_user(root)
    assert User.objects.filter(pk=root.pk).exists()


@pytest.mark.django_db
def test_delete_user_into_itself_rejected(user):
    """Test that a user cannot inherit its own files."""
    with pytest.raises(BadRequestError):
        delete_user(user, new_owner=user)
