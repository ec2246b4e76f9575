"""Django admin configuration for links app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.links.models import Link


@admin.register(Link)
class LinkAdmin(admin.ModelAdmin[Link]):
    """Admin interface for Link model."""

    list_display = ['tag', 'url', 'user', 'created_at']
    list_filter = ['created_at', 'user']
    search_fields = ['tag', 'url']
    readonly_fields = ['created_at']

    def get_queryset(self, request: HttpRequest) -> QuerySet[Link]:
        return super().get_queryset(request).select_related('user')
