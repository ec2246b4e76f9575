"""Sign-up tokens: invitations that let a new account be created."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Final

from django.utils import timezone

from server.apps.accounts.models import SignUpToken

logger = logging.getLogger(__name__)

_TOKEN_BYTES: Final = 24


def create_sign_up_token(expires_in: timedelta) -> SignUpToken:
    """Create a token valid for ``expires_in`` from now."""
    now = timezone.now()
    sign_up_token = SignUpToken.objects.create(
        token=secrets.token_urlsafe(_TOKEN_BYTES),
        created_at=now,
        expires_at=now + expires_in,
    )
    logger.info(
        'Created sign-up token expiring at %s',
        sign_up_token.expires_at.isoformat(),
    )
    return sign_up_token


def get_sign_up_token(token: str) -> SignUpToken | None:
    """Find a token that has not expired yet."""
    return SignUpToken.objects.filter(
        token=token,
        expires_at__gt=timezone.now(),
    ).first()


def remove_sign_up_token(token: str) -> bool:
    """Delete a token (e.g. once it has been used).

    Returns:
        True if a token was deleted.
    """
    deleted, _ = SignUpToken.objects.filter(token=token).delete()
    return bool(deleted)


def list_expired_sign_up_tokens(now: datetime | None = None) -> list[SignUpToken]:
    return list(SignUpToken.objects.filter(expires_at__lte=now or timezone.now()))
