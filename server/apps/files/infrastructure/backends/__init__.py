"""Storage backends and the factory selecting one from settings."""

import enum
from collections.abc import Mapping
from typing import Any, Final

from django.core.exceptions import ImproperlyConfigured

from server.apps.files.infrastructure.backends.base import (
    ByteRange,
    ObjectStat,
    StorageBackend,
)
from server.apps.files.infrastructure.backends.local import LocalBackend
from server.apps.files.infrastructure.backends.s3 import S3Backend
from server.apps.files.infrastructure.backends.vercel import VercelBlobBackend
from server.apps.files.infrastructure.backends.webdav import WebDAVBackend

__all__ = [  # noqa: WPS410
    'ByteRange',
    'ObjectStat',
    'StorageBackend',
    'StorageMode',
    'build_backend',
]

_MINIO_DEFAULT_PORT: Final = 9010


@enum.unique
class StorageMode(enum.StrEnum):
    """Backend kinds, chosen once per process with ``STORAGE_MODE``."""

    LOCAL = 'local'
    MINIO = 'minio'
    S3 = 's3'
    VERCEL = 'vercel'
    WEBDAV = 'webdav'


_REQUIRED_OPTIONS: Final[Mapping[StorageMode, tuple[str, ...]]] = {
    StorageMode.LOCAL: ('root_path',),
    StorageMode.MINIO: ('endpoint', 'bucket_name', 'access_key', 'secret_key'),
    StorageMode.S3: ('bucket_name', 'access_key', 'secret_key'),
    StorageMode.VERCEL: ('token',),
    StorageMode.WEBDAV: ('url', 'username', 'password'),
}


def minio_endpoint_url(endpoint: str, port: int | None, *, use_ssl: bool) -> str:
    """Build an endpoint URL from a MinIO host setting.

    The host may be given with or without a protocol and a port; the
    protocol is always taken from ``use_ssl``.

    Args:
        endpoint: Host, e.g. ``minio.local`` or ``http://minio.local:9000``.
        port: Port used when the host carries none.
        use_ssl: Use https instead of http.

    Returns:
        URL such as ``http://minio.local:9010``.
    """
    host = endpoint.split('://', 1)[-1].rstrip('/')
    if ':' not in host:
        host = f'{host}:{port or _MINIO_DEFAULT_PORT}'
    scheme = 'https' if use_ssl else 'http'
    return f'{scheme}://{host}'


def build_backend(mode: str, options: Mapping[str, Any]) -> StorageBackend:
    """Create the backend for a storage mode.

    Args:
        mode: One of the ``StorageMode`` values.
        options: Settings of that mode (``FILES_STORAGE[mode]``).

    Returns:
        Backend instance; ``login`` has not been called yet.

    Raises:
        ImproperlyConfigured: If the mode is unknown or a required
            option is empty.
    """
    try:
        storage_mode = StorageMode(mode)
    except ValueError as error:
        raise ImproperlyConfigured(
            f'Unknown STORAGE_MODE {mode!r}, expected one of: '
            f'{", ".join(StorageMode)}',
        ) from error

    missing = [
        option
        for option in _REQUIRED_OPTIONS[storage_mode]
        if not options.get(option)
    ]
    if missing:
        raise ImproperlyConfigured(
            f'Storage mode {mode!r} requires: {", ".join(missing)}',
        )

    root_folder = options.get('root_folder', 'uploads')
    match storage_mode:
        case StorageMode.LOCAL:
            return LocalBackend(options['root_path'])
        case StorageMode.MINIO:
            use_ssl = bool(options.get('use_ssl', False))
            return S3Backend(
                options['bucket_name'],
                options['access_key'],
                options['secret_key'],
                endpoint_url=minio_endpoint_url(
                    options['endpoint'],
                    options.get('port'),
                    use_ssl=use_ssl,
                ),
                region_name='us-east-1',
                root_folder=root_folder,
                use_ssl=use_ssl,
                addressing_style='path',
            )
        case StorageMode.S3:
            return S3Backend(
                options['bucket_name'],
                options['access_key'],
                options['secret_key'],
                endpoint_url=options.get('endpoint') or None,
                region_name=options.get('region_name') or None,
                root_folder=root_folder,
                use_ssl=bool(options.get('use_ssl', True)),
            )
        case StorageMode.VERCEL:
            return VercelBlobBackend(options['token'], root_folder)
        case StorageMode.WEBDAV:
            return WebDAVBackend(
                options['url'],
                options['username'],
                options['password'],
                root_folder,
            )
