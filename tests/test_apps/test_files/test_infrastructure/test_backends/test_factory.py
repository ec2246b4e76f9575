"""Tests for backend selection from settings."""

import pytest
from django.core.exceptions import ImproperlyConfigured

from server.apps.files.infrastructure.backends import (
    StorageMode,
    build_backend,
    minio_endpoint_url,
)
from server.apps.files.infrastructure.backends.local import LocalBackend
from server.apps.files.infrastructure.backends.s3 import S3Backend
from server.apps.files.infrastructure.backends.vercel import VercelBlobBackend
from server.apps.files.infrastructure.backends.webdav import WebDAVBackend


@pytest.mark.parametrize(('endpoint', 'port', 'use_ssl', 'expected'), [
    ('minio.local', None, False, 'http://minio.local:9010'),
    ('minio.local', 9000, False, 'http://minio.local:9000'),
    ('http://minio.local:9000', 9010, True, 'https://minio.local:9000'),
    ('https://minio.local/', None, False, 'http://minio.local:9010'),
])
def test_minio_endpoint_url(endpoint, port, use_ssl, expected):
    """Test that protocol and port are normalized."""
    assert minio_endpoint_url(endpoint, port, use_ssl=use_ssl) == expected


def test_build_local(tmp_path):
    """Test the local mode."""
    backend = build_backend('local', {'root_path': str(tmp_path)})

    assert isinstance(backend, LocalBackend)
    assert backend.name == StorageMode.LOCAL


def test_build_minio():
    """Test that MinIO is an S3 backend with a normalized endpoint."""
    backend = build_backend('minio', {
        'endpoint': 'minio.local',
        'port': 9000,
        'bucket_name': 'files',
        'access_key': 'key',
        'secret_key': 'secret',
    })

    assert isinstance(backend, S3Backend)
    assert backend.storage.endpoint_url == 'http://minio.local:9000'
    assert backend.storage.addressing_style == 'path'


def test_build_s3():
    """Test the S3 mode without a custom endpoint."""
    backend = build_backend('s3', {
        'bucket_name': 'files',
        'access_key': 'key',
        'secret_key': 'secret',
        'region_name': 'eu-central-1',
        'endpoint': '',
    })

    assert isinstance(backend, S3Backend)
    assert backend.storage.endpoint_url is None
    assert backend.storage.region_name == 'eu-central-1'


def test_build_vercel():
    """Test the Vercel Blob mode."""
    backend = build_backend('vercel', {'token': 'vercel_blob_rw_x'})

    assert isinstance(backend, VercelBlobBackend)
    backend.close()


def test_build_webdav():
    """Test the WebDAV mode."""
    backend = build_backend('webdav', {
        'url': 'https://dav.example.com',
        'username': 'bob',
        'password': 'secret',
    })

    assert isinstance(backend, WebDAVBackend)
    backend.close()


def test_build_unknown_mode():
    """Test that unknown modes are a configuration error."""
    with pytest.raises(ImproperlyConfigured, match='Unknown STORAGE_MODE'):
        build_backend('ftp', {})


def test_build_missing_options():
    """Test that missing required options are named."""
    with pytest.raises(ImproperlyConfigured, match='secret_key'):
        build_backend('s3', {'bucket_name': 'files', 'access_key': 'key'})
