"""Resolve API credentials to users."""

import logging
from typing import Any, Final

from django.http import HttpRequest

from server.apps.accounts.models import UserProfile
from server.apps.files.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

_BEARER_PREFIX: Final = 'Bearer '


def get_user_by_token(token: str | None) -> Any | None:
    """Find the active user owning an API token.

    Args:
        token: Raw ``Authorization`` header value, with or without the
            ``Bearer`` prefix.

    Returns:
        User, or None when the token is empty or unknown.
    """
    if not token:
        return None
    token = token.removeprefix(_BEARER_PREFIX).strip()
    if not token:
        return None
    profile = (
        UserProfile.objects
        .select_related('user')
        .filter(token=token, user__is_active=True)
        .first()
    )
    return profile.user if profile else None


def resolve_user(request: HttpRequest) -> Any | None:
    """Identify the requester from the API token or the session.

    A present but unknown ``Authorization`` token makes the request
    anonymous; it is not replaced by the session user.
    """
    header = request.headers.get('Authorization')
    if header:
        user = get_user_by_token(header)
        if user is None:
            logger.info('Ignoring unknown API token')
        return user
    session_user = getattr(request, 'user', None)
    if session_user is not None and session_user.is_authenticated:
        return session_user
    return None


def require_user(request: HttpRequest) -> Any:
    """Like ``resolve_user`` but anonymous requests are rejected.

    Raises:
        UnauthorizedError: If no valid credential is present.
    """
    user = resolve_user(request)
    if user is None:
        raise UnauthorizedError()
    return user


def is_admin(user: Any | None) -> bool:
    return bool(user is not None and user.is_staff)


def can_manage(owner_id: int, requester: Any | None) -> bool:
    """Owners and administrators may manage a resource."""
    if requester is None:
        return False
    return requester.pk == owner_id or is_admin(requester)
