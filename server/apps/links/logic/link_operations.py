"""Business logic for short links."""

import logging
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
from django.db import IntegrityError, transaction

from server.apps.accounts.logic.credentials import can_manage
from server.apps.files.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
)
from server.apps.files.infrastructure.generators import generate_id, is_zws
from server.apps.links.models import Link

logger = logging.getLogger(__name__)

_TAG_LENGTH: Final = 6
_CUSTOM_TAG_MIN_LENGTH: Final = 3
_CUSTOM_TAG_MAX_LENGTH: Final = 19
_MAX_TAG_ATTEMPTS: Final = 10

_validate_url = URLValidator(schemes=('http', 'https'))


def is_valid_custom_tag(tag: Any) -> bool:
    """Custom tags must be 3 to 19 characters long."""
    return (
        isinstance(tag, str)
        and _CUSTOM_TAG_MIN_LENGTH <= len(tag) <= _CUSTOM_TAG_MAX_LENGTH
    )


def is_valid_lookup_tag(tag: str) -> bool:
    """Tags in URLs are printable ASCII or zero-width identifiers."""
    if not tag:
        return False
    return tag.isascii() or is_zws(tag)


def get_link(tag: str) -> Link:
    """Find a link by tag.

    Raises:
        BadRequestError: If the tag is malformed.
        NotFoundError: If no link has this tag.
    """
    if not is_valid_lookup_tag(tag):
        raise BadRequestError('Invalid short URL tag.')
    link = Link.objects.filter(tag=tag).first()
    if link is None:
        raise NotFoundError('Link tag not found.')
    return link


def create_link(
    user: Any,
    url: str | None,
    *,
    tag: str | None = None,
    shortener: str | None = None,
) -> Link:
    """Shorten a URL.

    A custom tag is used when it is valid and free; otherwise a tag is
    generated with ``shortener``, falling back to the user's preference.

    Args:
        user: Owner of the link.
        url: Target URL.
        tag: Optional custom tag.
        shortener: Optional generator name.

    Returns:
        Created link.

    Raises:
        BadRequestError: If the URL is missing or invalid.
    """
    url = (url or '').strip()
    try:
        _validate_url(url)
    except ValidationError as error:
        raise BadRequestError(
            'Header "shorten-url" must be provided and be a url.',
        ) from error

    candidate = None
    if is_valid_custom_tag(tag) and not Link.objects.filter(tag=tag).exists():
        candidate = tag
    strategy = shortener or _user_shortener(user)

    for _ in range(_MAX_TAG_ATTEMPTS):
        candidate = candidate or generate_id(strategy, _TAG_LENGTH)
        try:
            with transaction.atomic():
                link = Link.objects.create(tag=candidate, url=url, user=user)
        except IntegrityError:
            logger.info('Link tag already in use, retrying: %s', candidate)
            candidate = None
            continue
        logger.info('Link created: %s -> %s', link.tag, url)
        return link
    raise BadRequestError('Could not generate a free link tag.')


def delete_link(tag: str, requester: Any | None) -> None:
    """Delete a link; owners and administrators only.

    Raises:
        NotFoundError: If no link has this tag.
        ForbiddenError: If the requester may not delete it.
    """
    link = get_link(tag)
    if not can_manage(link.user_id, requester):
        raise ForbiddenError('You are not allowed to delete that link.')
    link.delete()
    logger.info('Link removed: %s', tag)


def list_links_for_owner(user: Any) -> list[Link]:
    return list(Link.objects.filter(user=user).order_by('-created_at'))


def reassign_links(old_user: Any, new_user: Any) -> int:
    """Move every link of one user to another.

    Returns:
        Number of links moved.
    """
    return Link.objects.filter(user=old_user).update(user=new_user)


def _user_shortener(user: Any) -> str | None:
    profile = getattr(user, 'profile', None)
    return profile.shortener if profile is not None else None
