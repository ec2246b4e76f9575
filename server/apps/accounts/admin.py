"""Django admin configuration for accounts app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.accounts.models import SignUpToken, UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin[UserProfile]):
    """Admin interface for UserProfile model."""

    list_display = [
        'user',
        'shortener',
        'embed_image_directly',
    ]

    list_filter = [
        'shortener',
        'embed_image_directly',
    ]

    search_fields = [
        'user__username',
        'user__email',
    ]

    readonly_fields = ['token']

    def get_queryset(self, request: HttpRequest) -> QuerySet[UserProfile]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')


@admin.register(SignUpToken)
class SignUpTokenAdmin(admin.ModelAdmin[SignUpToken]):
    """Admin interface for SignUpToken model."""

    list_display = ['token', 'created_at', 'expires_at']
    readonly_fields = ['created_at']
