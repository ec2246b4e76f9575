"""HTTP API of the links app."""

from typing import Any

from django.http import (
    HttpRequest,
    HttpResponse,
    HttpResponseRedirect,
    JsonResponse,
)
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from server.apps.accounts.logic.credentials import require_user
from server.apps.files.http import handle_errors, parse_json_body
from server.apps.links.logic import link_operations
from server.apps.links.models import Link


def serialize_link(request: HttpRequest, link: Link) -> dict[str, Any]:
    return {
        'tag': link.tag,
        'url': link.url,
        'owner': link.user.get_username(),
        'created': link.created_at.isoformat(),
        'shortUrl': request.build_absolute_uri(f'/{link.tag}'),
    }


@csrf_exempt
@require_http_methods(['POST'])
@handle_errors
def create_link(request: HttpRequest) -> HttpResponse:
    """Shorten the URL given in the ``shorten-url`` header."""
    user = require_user(request)
    body = parse_json_body(request)
    link = link_operations.create_link(
        user,
        request.headers.get('shorten-url'),
        tag=body.get('tag'),
        shortener=body.get('shortener'),
    )
    return JsonResponse({
        'success': True,
        'url': request.build_absolute_uri(f'/{link.tag}'),
    })


@csrf_exempt
@require_http_methods(['GET', 'DELETE'])
@handle_errors
def link_detail(request: HttpRequest, tag: str) -> HttpResponse:
    """Show or delete a link."""
    if request.method == 'DELETE':
        user = require_user(request)
        link_operations.delete_link(tag, user)
        return JsonResponse({'success': True, 'message': 'Link removed!'})
    link = link_operations.get_link(tag)
    return JsonResponse({'success': True, 'link': serialize_link(request, link)})


@require_http_methods(['GET'])
@handle_errors
def follow_link(request: HttpRequest, tag: str) -> HttpResponse:
    """Redirect a short tag to its target URL."""
    link = link_operations.get_link(tag)
    return HttpResponseRedirect(link.url)
