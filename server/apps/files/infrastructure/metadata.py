"""Metadata helpers for stored files: names, extensions and MIME types."""

import mimetypes
from pathlib import Path
from typing import Final

from django.utils.http import content_disposition_header

from server.apps.files.infrastructure.generators import generate_random

# Names of stored objects: random token plus an optional extension
_PHYSICAL_TOKEN_LENGTH: Final = 12
# Longer suffixes are not treated as real extensions
_MAX_EXTENSION_LENGTH: Final = 5

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'

# Generic tables map `.ts` to MPEG transport streams
_MIME_OVERRIDES: Final = {
    'ts': 'text/typescript',
    'mp4': 'video/mp4',
}


def get_file_extension(filename: str | None) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot (e.g., 'pdf').
        Returns empty string if no extension.
    """
    if not filename:
        return ''
    extension = Path(filename).suffix
    return extension.lstrip('.')


def sanitize_extension(extension: str) -> str:
    """Keep an extension only when it looks like a real one.

    Extensions longer than five characters, or containing anything but
    ASCII letters and digits, are dropped so stored names never end up
    with ambiguous double extensions.

    Args:
        extension: Extension without dot.

    Returns:
        The extension, or empty string when it is dropped.
    """
    if not extension or len(extension) > _MAX_EXTENSION_LENGTH:
        return ''
    if not (extension.isascii() and extension.isalnum()):
        return ''
    return extension


def generate_physical_name(original_name: str | None) -> tuple[str, str]:
    """Generate the backend object name for an upload.

    Args:
        original_name: Filename supplied by the client.

    Returns:
        Tuple of (physical name, extension). Extension is empty when
        the original name has none or it was dropped.
    """
    token = generate_random(_PHYSICAL_TOKEN_LENGTH)
    extension = sanitize_extension(get_file_extension(original_name))
    if extension:
        return f'{token}.{extension}', extension
    return token, ''


def detect_mime_type(extension: str, physical_name: str = '') -> str:
    """Detect MIME type of a stored file.

    ``ts`` and ``mp4`` are hardcoded because client tooling relies on
    them; everything else goes through Python's ``mimetypes`` table.

    Args:
        extension: Stored extension without dot.
        physical_name: Backend object name, used for the table lookup.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    override = _MIME_OVERRIDES.get(extension)
    if override is not None:
        return override

    lookup_name = physical_name or f'file.{extension}'
    mime_type, _ = mimetypes.guess_type(lookup_name)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def content_disposition(filename: str, *, as_attachment: bool = False) -> str:
    """Build the Content-Disposition header value.

    Args:
        filename: Name shown to the client.
        as_attachment: Force a download instead of inline display.

    Returns:
        Header value, e.g. 'inline; filename="a.txt"'. Non-ASCII
        names are sent as an RFC 6266 ``filename*`` parameter.
    """
    return content_disposition_header(as_attachment, filename) or 'inline'
