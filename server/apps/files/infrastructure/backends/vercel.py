"""Storage backend for Vercel Blob, talking to its HTTP API with httpx."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Final, final, override

import httpx

from server.apps.files.exceptions import (
    NotFoundError,
    StorageConnectionError,
    StorageError,
    StorageWriteError,
)
from server.apps.files.infrastructure.backends.base import (
    ByteRange,
    ObjectStat,
    Payload,
    StorageBackend,
    slice_content,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL: Final = 'https://blob.vercel-storage.com'
_API_VERSION: Final = '7'
_LIST_PAGE_SIZE: Final = 1000
_TIMEOUT: Final = httpx.Timeout(30.0, connect=10.0)
_HTTP_NOT_FOUND: Final = 404
_HTTP_PARTIAL_CONTENT: Final = 206


def _parse_uploaded_at(raw_value: str | None) -> datetime | None:
    if not raw_value:
        return None
    return datetime.fromisoformat(raw_value.replace('Z', '+00:00'))


@final
class VercelBlobBackend(StorageBackend):
    """Objects are public blobs named ``root_folder/name``.

    Blobs are written without a random suffix and with overwrite
    allowed, so the pathname is fully determined by the object name.
    """

    name = 'vercel'

    def __init__(
        self,
        token: str,
        root_folder: str = 'uploads',
        *,
        api_url: str = DEFAULT_API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            token: Read-write token of the blob store.
            root_folder: Prefix for every blob pathname.
            api_url: Blob API endpoint.
            transport: Optional httpx transport (used by tests).
        """
        self.root_folder = root_folder.strip('/')
        self._api = httpx.Client(
            base_url=api_url,
            headers={
                'authorization': f'Bearer {token}',
                'x-api-version': _API_VERSION,
            },
            timeout=_TIMEOUT,
            transport=transport,
        )
        # Blob content is public; never send the token to the CDN
        self._cdn = httpx.Client(
            timeout=_TIMEOUT,
            transport=transport,
            follow_redirects=True,
        )

    @override
    def login(self) -> None:
        """Check that the token can list the store.

        Raises:
            StorageConnectionError: If the API rejects the token or is
                unreachable.
        """
        logger.info('Using Vercel Blob storage, root folder: %s', self.root_folder)
        try:
            response = self._api.get('/', params={'limit': 1})
            response.raise_for_status()
        except httpx.HTTPError as error:
            logger.exception('Vercel Blob initialization failed')
            raise StorageConnectionError(
                'Could not connect to Vercel Blob.',
            ) from error

    @override
    def list(self) -> list[ObjectStat]:
        """List blobs under the root folder, following cursors.

        Raises:
            StorageError: If a listing request fails.
        """
        prefix = self._prefix()
        objects = []
        params: dict[str, Any] = {'prefix': prefix, 'limit': _LIST_PAGE_SIZE}
        try:
            while True:
                response = self._api.get('/', params=params)
                response.raise_for_status()
                payload = response.json()
                for blob in payload.get('blobs', []):
                    basename = blob['pathname'][len(prefix):]
                    if not basename or '/' in basename:
                        continue
                    objects.append(self._to_object_stat(blob, basename))
                if not payload.get('hasMore') or not payload.get('cursor'):
                    break
                params['cursor'] = payload['cursor']
        except httpx.HTTPError as error:
            logger.exception('Failed to list blobs')
            raise StorageError('Could not list objects.') from error
        return objects

    @override
    def put(self, name: str, data: Payload) -> None:
        """Upload a blob, overwriting an existing one.

        Raises:
            StorageWriteError: If the upload fails.
        """
        try:
            content = data.read_bytes() if isinstance(data, Path) else data
            response = self._api.put(
                '/',
                params={'pathname': self._pathname(name)},
                content=content,
                headers={
                    'x-add-random-suffix': '0',
                    'x-allow-overwrite': '1',
                },
            )
            response.raise_for_status()
        except (httpx.HTTPError, OSError) as error:
            logger.exception('Failed to put blob: %s', name)
            raise StorageWriteError() from error

    @override
    def get(self, name: str, byte_range: ByteRange | None = None) -> BinaryIO:
        """Download a blob through its public URL.

        Raises:
            NotFoundError: If the blob does not exist.
            StorageError: If the download fails.
        """
        blob = self._head(name)
        if blob is None:
            raise NotFoundError(f'File not found in Vercel Blob: {name}')

        headers = {}
        if byte_range is not None:
            headers['range'] = byte_range.header_value()
        try:
            response = self._cdn.get(blob['url'], headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as error:
            logger.exception('Failed to get blob stream for: %s', name)
            raise StorageError() from error

        if response.status_code == _HTTP_PARTIAL_CONTENT:
            return slice_content(response.content, None)
        return slice_content(response.content, byte_range)

    @override
    def remove(self, name: str) -> bool:
        try:
            blob = self._head(name)
            if blob is None:
                return True
            response = self._api.post('/delete', json={'urls': [blob['url']]})
            response.raise_for_status()
        except (httpx.HTTPError, StorageError):
            logger.exception('Failed to remove blob: %s', name)
        return True

    @override
    def get_metadata(self, name: str) -> ObjectStat | None:
        try:
            blob = self._head(name)
        except StorageError:
            return None
        if blob is None:
            return None
        return self._to_object_stat(blob, name)

    def _head(self, name: str) -> dict[str, Any] | None:
        """Fetch blob details, None when the blob does not exist."""
        try:
            response = self._api.get('/', params={'url': self._pathname(name)})
        except httpx.HTTPError as error:
            raise StorageError() from error
        if response.status_code == _HTTP_NOT_FOUND:
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPError as error:
            raise StorageError() from error
        return response.json()

    def _to_object_stat(self, blob: dict[str, Any], basename: str) -> ObjectStat:
        return ObjectStat(
            filename=blob['pathname'],
            basename=basename,
            size=int(blob.get('size', 0)),
            last_modified=_parse_uploaded_at(blob.get('uploadedAt')),
            etag=blob.get('pathname'),
        )

    def _prefix(self) -> str:
        return f'{self.root_folder}/' if self.root_folder else ''

    def _pathname(self, name: str) -> str:
        return f'{self._prefix()}{name}'

    @override
    def close(self) -> None:
        self._api.close()
        self._cdn.close()
