"""User lifecycle: root administrator bootstrap and user removal."""

import logging
from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from server.apps.files.exceptions import BadRequestError
from server.apps.files.logic.file_records import reassign_owner
from server.apps.links.logic.link_operations import reassign_links

logger = logging.getLogger(__name__)


def ensure_root_user() -> Any:
    """Create the root administrator when it does not exist yet.

    The password comes from ``ROOT_PASSWORD``; without one the account
    is created with an unusable password and can only use its API token.

    Returns:
        The root user.
    """
    user_model = get_user_model()
    username = settings.ROOT_USERNAME
    root = user_model.objects.filter(**{user_model.USERNAME_FIELD: username}).first()
    if root is not None:
        logger.info('Root user exists.')
        return root

    logger.info('No root user exists. Creating one with default password.')
    password = settings.ROOT_PASSWORD
    if not password:
        logger.warning('ROOT_PASSWORD is not set, root can only use its API token')
    return user_model.objects.create_superuser(
        username=username,
        email='',
        password=password or None,
    )


def delete_user(user: Any, *, new_owner: Any | None = None) -> None:
    """Remove a user.

    With ``new_owner`` the user's files and links are handed over;
    otherwise their records are deleted with the user. Backend objects
    of deleted records are removed by the next reconciliation sweep.

    Args:
        user: User to remove.
        new_owner: Optional user receiving files and links.

    Raises:
        BadRequestError: If the root user is targeted or the user is
            asked to inherit from itself.
    """
    if user.get_username() == settings.ROOT_USERNAME:
        raise BadRequestError('Admin user cannot be deleted.')
    if new_owner is not None and new_owner.pk == user.pk:
        raise BadRequestError('A user cannot inherit its own files.')

    with transaction.atomic():
        if new_owner is not None:
            reassign_owner(user, new_owner)
            reassign_links(user, new_owner)
        username = user.get_username()
        user.delete()
    logger.info('User deleted: %s', username)
