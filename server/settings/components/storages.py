"""Storage backend configuration.

The backend is selected once at startup with ``STORAGE_MODE``:

- ``local``: a directory on disk
- ``minio``: MinIO (S3-compatible) with a custom endpoint
- ``s3``: AWS S3 or any other S3-compatible provider (R2, Wasabi)
- ``vercel``: Vercel Blob
- ``webdav``: ownCloud / Nextcloud over WebDAV

Only the options of the selected mode are validated.
"""

import tempfile
from pathlib import Path
from typing import Any, Final

from server.settings.components import BASE_DIR, config

STORAGE_MODE: Final = config('STORAGE_MODE', default='local')

# Objects are kept under this folder (prefix) in remote backends
_ROOT_FOLDER: Final = config('STORAGE_ROOT_FOLDER', default='uploads')

FILES_STORAGE: Final[dict[str, dict[str, Any]]] = {
    'local': {
        'root_path': config(
            'LOCAL_STORAGE_PATH',
            default=str(BASE_DIR.joinpath('uploads')),
        ),
    },
    'minio': {
        'endpoint': config('MINIO_ENDPOINT', default=''),
        'bucket_name': config('MINIO_BUCKET', default=''),
        'access_key': config('MINIO_USERNAME', default=''),
        'secret_key': config('MINIO_PASSWORD', default=''),
        'use_ssl': config('MINIO_USE_SSL', cast=bool, default=False),
        'port': config('MINIO_PORT', cast=int, default=9010),
        'root_folder': _ROOT_FOLDER,
    },
    's3': {
        'endpoint': config('S3_ENDPOINT', default=''),
        'bucket_name': config('S3_BUCKET', default=''),
        'access_key': config('S3_ACCESS_KEY_ID', default=''),
        'secret_key': config('S3_SECRET_ACCESS_KEY', default=''),
        'region_name': config('S3_REGION_NAME', default='auto'),
        'use_ssl': config('S3_USE_SSL', cast=bool, default=True),
        'root_folder': _ROOT_FOLDER,
    },
    'vercel': {
        'token': config('VERCEL_BLOB_TOKEN', default=''),
        'root_folder': _ROOT_FOLDER,
    },
    'webdav': {
        'url': config('WEBDAV_URL', default=''),
        'username': config('WEBDAV_USERNAME', default=''),
        'password': config('WEBDAV_PASSWORD', default=''),
        'root_folder': _ROOT_FOLDER,
    },
}

# Read-through download cache, safe to wipe at any time
FILES_CACHE_DIR: Final = config(
    'FILES_CACHE_DIR',
    default=str(Path(tempfile.gettempdir()).joinpath('file-host-cache')),
)

# Dotted paths to ``filter(data: bytes, filename: str) -> bytes`` callables
# applied to uploads before they are stored (e.g. GPS metadata removal)
FILES_UPLOAD_FILTERS: Final[list[str]] = [
    dotted_path.strip()
    for dotted_path in config('FILES_UPLOAD_FILTERS', default='').split(',')
    if dotted_path.strip()
]
