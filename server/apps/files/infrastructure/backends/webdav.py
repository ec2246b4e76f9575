"""Storage backend for WebDAV servers (ownCloud, Nextcloud, plain DAV)."""

import logging
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Final, final, override
from urllib.parse import quote, unquote, urlsplit

import httpx
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

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

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element  # noqa: S405

logger = logging.getLogger(__name__)

_DAV_NS: Final = '{DAV:}'
_TIMEOUT: Final = httpx.Timeout(30.0, connect=10.0)
_HTTP_NOT_FOUND: Final = 404
_HTTP_PARTIAL_CONTENT: Final = 206
_PROPFIND_BODY: Final = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<d:propfind xmlns:d="DAV:"><d:prop>'
    '<d:resourcetype/><d:getcontentlength/>'
    '<d:getlastmodified/><d:getetag/>'
    '</d:prop></d:propfind>'
)


def _parse_last_modified(raw_value: str | None) -> datetime | None:
    if not raw_value:
        return None
    try:
        return parsedate_to_datetime(raw_value)
    except (TypeError, ValueError):
        return None


def _find_text(element: 'Element', tag: str) -> str | None:
    found = element.find(f'.//{_DAV_NS}{tag}')
    if found is None or found.text is None:
        return None
    return found.text.strip()


@final
class WebDAVBackend(StorageBackend):
    """Objects are files directly inside ``/root_folder/`` on the server."""

    name = 'webdav'

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        root_folder: str = 'uploads',
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            url: Base DAV endpoint, e.g.
                ``https://cloud.example.com/remote.php/dav/files/bob``.
            username: Account name.
            password: Account password or app token.
            root_folder: Collection holding the objects.
            transport: Optional httpx transport (used by tests).
        """
        self.root_folder = root_folder.strip('/')
        self._client = httpx.Client(
            base_url=url.rstrip('/'),
            auth=(username, password),
            timeout=_TIMEOUT,
            transport=transport,
        )

    @override
    def login(self) -> None:
        """Create the root collection if it is missing.

        Raises:
            StorageConnectionError: If the server is unreachable or
                refuses to create the collection.
        """
        logger.info('Using WebDAV storage, root folder: /%s/', self.root_folder)
        try:
            response = self._propfind(self._collection_url(), depth='0')
            if response.status_code == _HTTP_NOT_FOUND:
                logger.info('Creating WebDAV folder: /%s/', self.root_folder)
                response = self._client.request('MKCOL', self._collection_url())
            response.raise_for_status()
        except httpx.HTTPError as error:
            logger.exception('WebDAV initialization failed')
            raise StorageConnectionError(
                'Could not connect to WebDAV server.',
            ) from error

    @override
    def list(self) -> list[ObjectStat]:
        """List files directly inside the root collection.

        Raises:
            StorageError: If the request or the response body fails.
        """
        try:
            response = self._propfind(self._collection_url(), depth='1')
            response.raise_for_status()
            root = fromstring(response.content)
        except (httpx.HTTPError, ParseError, DefusedXmlException) as error:
            logger.exception('Failed to list WebDAV folder')
            raise StorageError('Could not list objects.') from error

        objects = []
        for element in root.iter(f'{_DAV_NS}response'):
            object_stat = self._to_object_stat(element)
            if object_stat is not None:
                objects.append(object_stat)
        return objects

    @override
    def put(self, name: str, data: Payload) -> None:
        """Upload a file, replacing an existing one.

        Raises:
            StorageWriteError: If the upload fails.
        """
        try:
            content = data.read_bytes() if isinstance(data, Path) else data
            response = self._client.put(self._object_url(name), content=content)
            response.raise_for_status()
        except (httpx.HTTPError, OSError) as error:
            logger.exception('Failed to put WebDAV file: %s', name)
            raise StorageWriteError() from error

    @override
    def get(self, name: str, byte_range: ByteRange | None = None) -> BinaryIO:
        """Download a file, asking the server for a range when needed.

        Servers that ignore ``Range`` answer 200 with the whole body,
        which is then sliced locally.

        Raises:
            NotFoundError: If the file does not exist.
            StorageError: If the download fails.
        """
        headers = {}
        if byte_range is not None:
            headers['Range'] = byte_range.header_value()
        try:
            response = self._client.get(self._object_url(name), headers=headers)
        except httpx.HTTPError as error:
            logger.exception('Failed to get WebDAV stream for: %s', name)
            raise StorageError() from error

        if response.status_code == _HTTP_NOT_FOUND:
            raise NotFoundError(f'File not found on WebDAV server: {name}')
        try:
            response.raise_for_status()
        except httpx.HTTPError as error:
            logger.exception('Failed to get WebDAV stream for: %s', name)
            raise StorageError() from error

        if response.status_code == _HTTP_PARTIAL_CONTENT:
            return slice_content(response.content, None)
        return slice_content(response.content, byte_range)

    @override
    def remove(self, name: str) -> bool:
        try:
            response = self._client.delete(self._object_url(name))
            if response.status_code != _HTTP_NOT_FOUND:
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception('Failed to remove WebDAV file: %s', name)
        return True

    @override
    def get_metadata(self, name: str) -> ObjectStat | None:
        try:
            response = self._propfind(self._object_url(name), depth='0')
            if response.status_code == _HTTP_NOT_FOUND:
                return None
            response.raise_for_status()
            root = fromstring(response.content)
        except (httpx.HTTPError, ParseError, DefusedXmlException):
            return None
        element = root.find(f'{_DAV_NS}response')
        if element is None:
            return None
        return self._to_object_stat(element)

    def _propfind(self, url: str, depth: str) -> httpx.Response:
        return self._client.request(
            'PROPFIND',
            url,
            content=_PROPFIND_BODY,
            headers={
                'Depth': depth,
                'Content-Type': 'application/xml; charset=utf-8',
            },
        )

    def _to_object_stat(self, element: 'Element') -> ObjectStat | None:
        """Convert a multistatus response entry, skipping collections."""
        href = _find_text(element, 'href')
        if href is None:
            return None
        if element.find(f'.//{_DAV_NS}collection') is not None:
            return None
        path = unquote(urlsplit(href).path)
        basename = path.rstrip('/').rsplit('/', 1)[-1]
        if not basename:
            return None
        etag = _find_text(element, 'getetag')
        return ObjectStat(
            filename=path,
            basename=basename,
            size=int(_find_text(element, 'getcontentlength') or 0),
            last_modified=_parse_last_modified(
                _find_text(element, 'getlastmodified'),
            ),
            etag=etag.strip('"') if etag else None,
        )

    def _collection_url(self) -> str:
        return f'/{quote(self.root_folder)}/' if self.root_folder else '/'

    def _object_url(self, name: str) -> str:
        return f'{self._collection_url()}{quote(name)}'

    @override
    def close(self) -> None:
        self._client.close()
