"""JSON helpers shared by the API views.

Errors are answered as ``{"error": {"status", "category", "message"}}``;
unexpected exceptions are logged and answered with a generic 500 so no
backend details reach the client.
"""

import functools
import json
import logging
from collections.abc import Callable
from typing import Any, Final

from django.http import HttpRequest, HttpResponse, JsonResponse

from server.apps.files.exceptions import (
    BadRequestError,
    FilesError,
    RangeNotSatisfiableError,
)

logger = logging.getLogger(__name__)

_INTERNAL_ERROR_STATUS: Final = 500

ViewFunc = Callable[..., HttpResponse]


def error_payload(status: int, category: str, message: str) -> dict[str, Any]:
    return {
        'error': {
            'status': status,
            'category': category,
            'message': message,
        },
    }


def error_response(error: FilesError) -> JsonResponse:
    """Convert a domain error into a JSON response."""
    response = JsonResponse(
        error_payload(error.status, error.category, error.message),
        status=error.status,
    )
    if isinstance(error, RangeNotSatisfiableError):
        response['Content-Range'] = f'bytes */{error.size}'
    return response


def handle_errors(view: ViewFunc) -> ViewFunc:
    """Decorate a view so every error becomes a JSON error response."""

    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except FilesError as error:
            if error.status >= _INTERNAL_ERROR_STATUS:
                logger.warning(
                    '%s %s failed: %s',
                    request.method,
                    request.path,
                    error.category,
                )
            return error_response(error)
        except Exception:
            logger.exception('Unhandled error in %s %s', request.method, request.path)
            return JsonResponse(
                error_payload(
                    _INTERNAL_ERROR_STATUS,
                    'internal_error',
                    'Internal server error.',
                ),
                status=_INTERNAL_ERROR_STATUS,
            )

    return wrapper


def parse_json_body(request: HttpRequest) -> dict[str, Any]:
    """Decode a JSON object body; an empty body is an empty object.

    Raises:
        BadRequestError: If the body is not a JSON object.
    """
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (ValueError, UnicodeDecodeError) as error:
        raise BadRequestError('Request body must be valid JSON.') from error
    if not isinstance(body, dict):
        raise BadRequestError('Request body must be a JSON object.')
    return body


def parse_bool(raw_value: Any) -> bool:
    """Read a boolean sent as JSON, a header or a form field."""
    if isinstance(raw_value, bool):
        return raw_value
    return str(raw_value).strip().lower() in {'true', '1', 'yes', 'on'}
