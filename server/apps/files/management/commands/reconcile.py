"""Management command to reconcile file records with the storage backend."""

from typing import Any, final, override

from django.core.management.base import BaseCommand, CommandError

from server.apps.files.context import get_files_context
from server.apps.files.exceptions import StorageConnectionError
from server.apps.files.logic.reconciliation import (
    ALL_PASSES,
    PassResult,
    run_reconciliation,
)


@final
class Command(BaseCommand):
    """Run one reconciliation sweep and print what it did."""

    help = 'Remove drift between file records and stored objects once'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only log what would be removed from records and storage',
        )
        parser.add_argument(
            '--only',
            action='append',
            choices=ALL_PASSES,
            help='Run only the given pass (repeatable, default: all)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reconciliation.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        try:
            context = get_files_context()
        except StorageConnectionError as exc:
            raise CommandError(f'Initialization failed: {exc.message}') from exc

        production = False if options['dry_run'] else None
        report = run_reconciliation(
            context,
            production=production,
            only=options['only'] or ALL_PASSES,
        )

        mode = 'production' if report.production else 'dry run'
        self.stdout.write(f'Reconciliation finished ({mode})')
        self._write_result('Records without objects', report.records_without_objects)
        self._write_result('Objects without records', report.objects_without_records)
        self._write_result('Expired sign-up tokens', report.expired_tokens)
        self._write_result('Expired files', report.expired_files)

        if report.failed:
            self.stdout.write(
                self.style.WARNING(f'{report.failed} items failed, see logs'),
            )
        else:
            self.stdout.write(self.style.SUCCESS('No failures'))

    def _write_result(self, label: str, result: PassResult) -> None:
        if result.aborted:
            self.stdout.write(self.style.ERROR(f'{label}: aborted'))
            return
        self.stdout.write(
            f'{label}: checked {result.checked}, '
            f'removed {result.removed}, failed {result.failed}',
        )
