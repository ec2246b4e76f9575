"""Database models for links app."""

from typing import Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

_TAG_MAX_LENGTH: Final = 64
_URL_MAX_LENGTH: Final = 2048


@final
class Link(models.Model):
    """Short tag redirecting to a long URL."""

    tag = models.CharField(max_length=_TAG_MAX_LENGTH, unique=True)
    url = models.URLField(max_length=_URL_MAX_LENGTH)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='links',
        db_index=True,
    )

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        """Model metadata."""

        verbose_name = 'Link'  # type: ignore[mutable-override]
        verbose_name_plural = 'Links'  # type: ignore[mutable-override]
        ordering = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.tag} -> {self.url}'
