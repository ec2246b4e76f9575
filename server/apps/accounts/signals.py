"""Signal handlers for accounts app."""

import logging
from typing import Any

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from server.apps.accounts.models import UserProfile

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(
    sender: type[Any],
    instance: Any,
    created: bool,
    **kwargs: object,
) -> None:
    """Give every new user a profile with a fresh API token.

    Args:
        sender: The user model class.
        instance: The saved user.
        created: True when the user was just inserted.
        **kwargs: Additional signal arguments.
    """
    if not created or kwargs.get('raw'):
        return
    UserProfile.objects.get_or_create(user=instance)
    logger.info('Created profile for user: %s', instance.get_username())
