"""Database models for files app."""

from datetime import datetime
from typing import Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

# Constants for field max lengths
_PUBLIC_ID_MAX_LENGTH: Final = 128
_PHYSICAL_NAME_MAX_LENGTH: Final = 64
_EXTENSION_MAX_LENGTH: Final = 16
_FILE_NAME_MAX_LENGTH: Final = 255


@final
class File(models.Model):
    """Uploaded file whose content lives in the active storage backend.

    ``physical_name`` is the object name inside the backend, while
    ``public_id`` is the identifier used in URLs. The two are
    independent so public ids can follow the owner's shortener.
    """

    public_id = models.CharField(
        max_length=_PUBLIC_ID_MAX_LENGTH,
        unique=True,
        help_text='Identifier used in URLs',
    )

    physical_name = models.CharField(
        max_length=_PHYSICAL_NAME_MAX_LENGTH,
        unique=True,
        help_text='Object name in the storage backend',
    )

    extension = models.CharField(
        max_length=_EXTENSION_MAX_LENGTH,
        blank=True,
        default='',
    )

    public_file_name = models.CharField(
        max_length=_FILE_NAME_MAX_LENGTH,
        blank=True,
        null=True,
        help_text='Filename shown to downloaders',
    )

    # Owner relationship
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    is_private = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    expires_at = models.DateTimeField(
        blank=True,
        null=True,
        db_index=True,
        help_text='Empty means the file never expires',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            # Optimize owner listing queries
            models.Index(
                fields=['user', '-created_at'],
                name='files_user_recent_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='files_size_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.public_id} ({self.physical_name})'

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the file must no longer be served.

        Args:
            now: Reference time, defaults to the current time.

        Returns:
            True if an expiry is set and has passed.
        """
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or timezone.now())

    def get_download_name(self) -> str:
        """Filename used in ``Content-Disposition``.

        Returns:
            Public file name, or ``<public_id>.<extension>``.
        """
        if self.public_file_name:
            return self.public_file_name
        if self.extension:
            return f'{self.public_id}.{self.extension}'
        return self.public_id
