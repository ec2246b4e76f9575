"""Django app configuration for files app."""

from typing import TYPE_CHECKING, override

from django.apps import AppConfig

if TYPE_CHECKING:
    from server.apps.files.context import FilesContext


class FilesConfig(AppConfig):
    """Configuration for files app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    verbose_name = 'Files'

    context: 'FilesContext'

    @override
    def ready(self) -> None:
        """Build the storage context from settings.

        Nothing is contacted here; the backend and the database are
        checked on first use (see ``get_files_context``).
        """
        from server.apps.files.context import build_files_context  # noqa: WPS433

        self.context = build_files_context()
