"""Django admin configuration for files app."""

from typing import Final

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.models import File

_KIB: Final = 1024


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < _KIB:
        return f'{size_bytes} B'
    if size_bytes < _KIB ** 2:
        return f'{size_bytes / _KIB:.1f} KB'
    if size_bytes < _KIB ** 3:
        return f'{size_bytes / _KIB ** 2:.1f} MB'
    return f'{size_bytes / _KIB ** 3:.1f} GB'


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model.

    Records deleted here keep their backend object until the next
    reconciliation sweep removes it.
    """

    list_display = [
        'public_id',
        'physical_name',
        'user',
        'size_display',
        'is_private',
        'created_at',
        'expires_at',
    ]

    list_filter = [
        'is_private',
        'created_at',
        'expires_at',
    ]

    search_fields = [
        'public_id',
        'physical_name',
        'public_file_name',
        'user__username',
    ]

    readonly_fields = [
        'public_id',
        'physical_name',
        'extension',
        'size_bytes',
        'created_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('public_id', 'physical_name', 'extension', 'user'),
        }),
        ('Metadata', {
            'fields': ('size_bytes', 'public_file_name'),
        }),
        ('Access', {
            'fields': ('is_private', 'expires_at'),
        }),
        ('Timestamps', {
            'fields': ('created_at',),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string.
        """
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')
