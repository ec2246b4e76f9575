"""Django app configuration for links app."""

from django.apps import AppConfig


class LinksConfig(AppConfig):
    """Configuration for links app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.links'
    verbose_name = 'Short Links'
