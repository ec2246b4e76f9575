"""HTTP API of the files app.

Views are thin: they read the request, call ``logic.file_operations``
and shape JSON. Authentication is an API token in the ``Authorization``
header (optionally ``Bearer``-prefixed) or a Django session.
"""

import logging
from pathlib import Path
from typing import Any

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import UploadedFile
from django.db import IntegrityError
from django.http import HttpRequest, HttpResponse, JsonResponse, StreamingHttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from server.apps.accounts.logic.credentials import require_user, resolve_user
from server.apps.files.context import get_files_context
from server.apps.files.exceptions import (
    BadRequestError,
    FilesError,
    NotFoundError,
    StorageWriteError,
)
from server.apps.files.http import handle_errors, parse_bool, parse_json_body
from server.apps.files.logic import file_operations
from server.apps.files.models import File

logger = logging.getLogger(__name__)

_HTTP_PARTIAL_CONTENT = 206


def serialize_file(request: HttpRequest, file_record: File) -> dict[str, Any]:
    """JSON representation of a file record."""
    return {
        'id': file_record.public_id,
        'fileName': file_record.physical_name,
        'extension': file_record.extension or None,
        'publicFileName': file_record.public_file_name,
        'owner': file_record.user.get_username(),
        'size': file_record.size_bytes,
        'isPrivate': file_record.is_private,
        'created': file_record.created_at.isoformat(),
        'expiresAt': (
            file_record.expires_at.isoformat() if file_record.expires_at else None
        ),
        'url': file_url(request, file_record.public_id),
    }


def file_url(request: HttpRequest, public_id: str) -> str:
    return request.build_absolute_uri(f'/api/files/{public_id}')


@csrf_exempt
@require_http_methods(['POST'])
@handle_errors
def upload_files(request: HttpRequest) -> HttpResponse:
    """Store every file sent in the multipart ``files`` field.

    Files are processed one by one; a failing file is skipped. The
    response describes the first stored file and lists all of them.
    """
    user = require_user(request)
    uploads = request.FILES.getlist('files')
    if not uploads:
        raise BadRequestError("No file upload detected with field name 'files'!")

    is_private = parse_bool(
        request.headers.get('isPrivate') or request.POST.get('isPrivate', False),
    )
    expires_at = file_operations.parse_expiry(
        request.headers.get('expiresIn') or request.POST.get('expiresIn'),
    )
    context = get_files_context()

    results = []
    for upload in uploads:
        try:
            file_record = file_operations.upload_file(
                context,
                user,
                _upload_payload(upload),
                upload.name,
                is_private=is_private,
                expires_at=expires_at,
                public_file_name=request.POST.get('publicFileName') or None,
            )
        except (FilesError, IntegrityError):
            logger.exception('Error processing file %s', upload.name)
            continue
        url = file_url(request, file_record.public_id)
        results.append({'url': url, 'deletionUrl': url, 'id': file_record.public_id})

    if not results:
        raise StorageWriteError('All files failed to process.')
    return JsonResponse({**results[0], 'files': results})


@csrf_exempt
@require_http_methods(['GET', 'POST', 'DELETE'])
@handle_errors
def file_detail(request: HttpRequest, public_id: str) -> HttpResponse:
    """Download, update or delete a single file."""
    public_id = file_operations.normalize_public_id(public_id)
    if request.method == 'POST':
        return _update_file(request, public_id)
    if request.method == 'DELETE':
        user = require_user(request)
        file_operations.delete_file(get_files_context(), public_id, user)
        return JsonResponse({'success': True, 'message': 'File deleted.'})
    return _download_file(request, public_id)


@require_http_methods(['GET'])
@handle_errors
def user_files(request: HttpRequest, username: str) -> HttpResponse:
    """Page through a user's files, newest first."""
    requester = require_user(request)
    user_model = get_user_model()
    owner = user_model.objects.filter(
        **{user_model.USERNAME_FIELD: username},
    ).first()
    if owner is None:
        raise NotFoundError('User not found.')

    try:
        page = int(request.GET.get('page', '1'))
    except ValueError as error:
        raise BadRequestError('Invalid page number.') from error

    file_page = file_operations.list_user_files(owner, requester, page)
    return JsonResponse({
        'page': file_page.page,
        'totalPages': file_page.total_pages,
        'files': [
            serialize_file(request, file_record)
            for file_record in file_page.items
        ],
    })


def _download_file(request: HttpRequest, public_id: str) -> HttpResponse:
    requester = resolve_user(request)
    if parse_bool(request.headers.get('getInfo', False)):
        file_record = file_operations.get_visible_file(public_id, requester)
        profile = getattr(file_record.user, 'profile', None)
        return JsonResponse({
            **serialize_file(request, file_record),
            'ownerEmbedPreference': bool(profile and profile.embed_image_directly),
            'ownerCustomDescription': (
                profile.custom_embed_description if profile else None
            ),
        })

    byte_range = None
    range_header = request.headers.get('Range')
    if range_header:
        file_record = file_operations.get_visible_file(public_id, requester)
        byte_range = file_operations.parse_range_header(
            range_header,
            file_record.size_bytes,
        )

    download = file_operations.download_file(
        get_files_context(),
        public_id,
        requester,
        byte_range=byte_range,
        as_attachment=parse_bool(request.GET.get('download', False)),
    )
    response = StreamingHttpResponse(
        download.chunks,
        content_type=download.content_type,
        status=_HTTP_PARTIAL_CONTENT if download.byte_range else 200,
    )
    response['Content-Disposition'] = download.content_disposition
    response['Content-Length'] = str(download.content_length)
    response['Accept-Ranges'] = 'bytes'
    if download.content_range is not None:
        response['Content-Range'] = download.content_range
    return response


def _update_file(request: HttpRequest, public_id: str) -> HttpResponse:
    user = require_user(request)
    body = parse_json_body(request)

    if 'removeExpiry' in body:
        if not isinstance(body['removeExpiry'], bool):
            raise BadRequestError("Invalid 'removeExpiry' value. Must be a boolean.")
        if body['removeExpiry']:
            file_operations.set_file_expiry(public_id, user, None)
            return JsonResponse({'success': True, 'message': 'File expiry updated.'})

    if 'expiresIn' in body:
        expires_at = file_operations.parse_expiry(str(body['expiresIn']))
        file_operations.set_file_expiry(public_id, user, expires_at)
        return JsonResponse({'success': True, 'message': 'File expiry updated.'})

    is_private = body.get('isPrivate')
    if not isinstance(is_private, bool):
        raise BadRequestError("Invalid 'isPrivate' value. Must be a boolean.")
    file_operations.set_file_privacy(public_id, user, is_private)
    return JsonResponse({'success': True, 'message': 'File privacy updated.'})


def _upload_payload(upload: UploadedFile) -> bytes | Path:
    """Large uploads are already on disk; small ones are read into memory."""
    temporary_path = getattr(upload, 'temporary_file_path', None)
    if temporary_path is not None:
        return Path(temporary_path())
    return upload.read()
