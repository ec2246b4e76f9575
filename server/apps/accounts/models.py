"""Database models for accounts app."""

import secrets
from typing import Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

from server.apps.files.infrastructure.generators import (
    DEFAULT_GENERATOR,
    GENERATORS,
)

_TOKEN_MAX_LENGTH: Final = 128
_SHORTENER_MAX_LENGTH: Final = 16
_DESCRIPTION_MAX_LENGTH: Final = 255
_API_TOKEN_BYTES: Final = 32


def generate_api_token() -> str:
    """New random API credential."""
    return secrets.token_urlsafe(_API_TOKEN_BYTES)


@final
class UserProfile(models.Model):
    """Per-user settings of the file host.

    Created automatically for every user (see ``signals.py``).
    Administrators are users with ``is_staff`` set.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='profile',
        primary_key=True,
    )

    token = models.CharField(
        max_length=_TOKEN_MAX_LENGTH,
        unique=True,
        default=generate_api_token,
        help_text='API credential sent in the Authorization header',
    )

    shortener = models.CharField(
        max_length=_SHORTENER_MAX_LENGTH,
        choices=[(name, name) for name in GENERATORS],
        default=DEFAULT_GENERATOR,
        help_text='Generator used for public file ids and link tags',
    )

    embed_image_directly = models.BooleanField(default=False)

    custom_embed_description = models.CharField(
        max_length=_DESCRIPTION_MAX_LENGTH,
        blank=True,
        null=True,
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'User Profile'  # type: ignore[mutable-override]
        verbose_name_plural = 'User Profiles'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.get_username()} ({self.shortener})'

    def rotate_token(self) -> str:
        """Replace the API credential and save.

        Returns:
            The new token.
        """
        self.token = generate_api_token()
        self.save(update_fields=['token'])
        return self.token


@final
class SignUpToken(models.Model):
    """One-time invitation allowing a new account to be created."""

    token = models.CharField(max_length=_TOKEN_MAX_LENGTH, unique=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Sign-up Token'  # type: ignore[mutable-override]
        verbose_name_plural = 'Sign-up Tokens'  # type: ignore[mutable-override]
        ordering = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.token} (expires {self.expires_at.isoformat()})'

    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at
