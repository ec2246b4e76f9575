"""Django management command to run the reconciliation scheduler."""

import logging
import threading
from typing import Any, final, override

from django.core.management.base import BaseCommand, CommandError

from server.apps.files.context import get_files_context
from server.apps.files.exceptions import StorageConnectionError

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Run the background reconciliation jobs in the foreground."""

    help = 'Run periodic file checks, token purge and expiry purge'

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments.
            options: Keyword arguments from command line.
        """
        try:
            context = get_files_context()
        except StorageConnectionError as exc:
            raise CommandError(f'Initialization failed: {exc.message}') from exc

        context.start_background_tasks()
        logger.info('Reconciler started, waiting for interrupt')
        self.stdout.write(
            self.style.SUCCESS(
                f'Reconciler running against {context.backend.name} storage '
                f'(production: {context.production})',
            ),
        )

        stop = threading.Event()
        try:
            stop.wait()
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('\nShutting down...'))
        finally:
            context.shutdown(wait=True)
            self.stdout.write(self.style.SUCCESS('Reconciler stopped'))
