"""Exceptions for files app.

Storage backends translate SDK and transport errors into these
categories, so business logic never inspects backend-specific errors.
"""

from typing import ClassVar


class FilesError(Exception):
    """Base error with a stable category and an HTTP-equivalent status."""

    status: ClassVar[int] = 500
    category: ClassVar[str] = 'internal_error'
    default_message: ClassVar[str] = 'Internal server error.'

    def __init__(self, message: str | None = None) -> None:
        """Initialize FilesError.

        Args:
            message: Human-readable message, safe to show to the caller.
        """
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(FilesError):
    """Raised when request data is malformed."""

    status = 400
    category = 'bad_request'
    default_message = 'Bad request.'


class UnauthorizedError(FilesError):
    """Raised when no valid credential was supplied."""

    status = 401
    category = 'unauthorized'
    default_message = 'Unauthorized.'


class ForbiddenError(FilesError):
    """Raised when the requester is neither the owner nor an admin."""

    status = 403
    category = 'forbidden'
    default_message = 'Forbidden.'


class NotFoundError(FilesError):
    """Raised when an identifier has no record or no backend object."""

    status = 404
    category = 'not_found'
    default_message = 'Not found.'


class RangeNotSatisfiableError(FilesError):
    """Raised when a requested byte range lies outside the file."""

    status = 416
    category = 'range_not_satisfiable'
    default_message = 'Range Not Satisfiable.'

    def __init__(self, size: int) -> None:
        """Initialize RangeNotSatisfiableError.

        Args:
            size: Full size of the file in bytes.
        """
        self.size = size
        super().__init__()


class StorageError(FilesError):
    """Raised when a backend fails during normal operation."""

    status = 502
    category = 'storage_error'
    default_message = 'Storage backend error.'


class StorageWriteError(StorageError):
    """Raised when a backend fails to store an object."""

    status = 500
    category = 'storage_write_failed'
    default_message = 'Could not store file.'


class StorageConnectionError(FilesError, ConnectionError):
    """Raised when the backend or metadata store is unreachable at startup."""

    status = 503
    category = 'storage_unavailable'
    default_message = 'Storage is unavailable.'
