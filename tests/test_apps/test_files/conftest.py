"""Shared fixtures for files app tests."""

import boto3
import pytest
from django.apps import apps
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.files.context import FilesContext
from server.apps.files.infrastructure.backends.local import LocalBackend
from server.apps.files.infrastructure.backends.s3 import S3Backend
from server.apps.files.infrastructure.cache import ReadThroughCache

User = get_user_model()

TEST_BUCKET = 'file-host'


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def admin_user(db):
    """Create a staff user, which counts as administrator.

    Returns:
        Admin user instance.
    """
    return User.objects.create_user(
        username='adminuser',
        password='testpass123',
        email='admin@example.com',
        is_staff=True,
    )


@pytest.fixture
def local_backend(tmp_path):
    """Local backend rooted in a temporary directory.

    Returns:
        Logged-in LocalBackend.
    """
    backend = LocalBackend(tmp_path / 'storage')
    backend.login()
    return backend


@pytest.fixture
def cache(tmp_path):
    """Download cache in a temporary directory.

    Returns:
        ReadThroughCache instance.
    """
    return ReadThroughCache(tmp_path / 'cache')


@pytest.fixture
def files_context(db, local_backend, cache, monkeypatch):
    """Initialized context installed as the process context.

    Views and management commands pick it up through
    ``get_files_context``.

    Returns:
        FilesContext in production mode.
    """
    context = FilesContext(local_backend, cache, production=True)
    context.initialize()
    monkeypatch.setattr(apps.get_app_config('files'), 'context', context)
    return context


@pytest.fixture
def mock_s3():
    """Mock S3 service with the test bucket.

    Yields:
        boto3 S3 resource with the bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=TEST_BUCKET)
        yield conn


@pytest.fixture
def s3_backend(mock_s3):
    """S3 backend talking to the mocked bucket.

    Returns:
        S3Backend storing objects under ``uploads/``.
    """
    return S3Backend(
        TEST_BUCKET,
        'testing',
        'testing',
        region_name='us-east-1',
        root_folder='uploads',
    )
