"""Tests for reconcile management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from server.apps.files.exceptions import StorageConnectionError


@pytest.mark.django_db
class TestReconcileCommand:
    """Tests for reconcile management command."""

    def test_removes_orphan_objects(self, files_context):
        """Test a production sweep."""
        files_context.backend.put('orphan.bin', b'x')

        out = StringIO()
        call_command('reconcile', stdout=out)

        assert files_context.backend.list() == []
        assert 'Reconciliation finished (production)' in out.getvalue()
        assert 'Objects without records: checked 1, removed 1, failed 0' in (
            out.getvalue()
        )
        assert 'No failures' in out.getvalue()

    def test_dry_run_keeps_objects(self, files_context):
        """Test that --dry-run never deletes."""
        files_context.backend.put('orphan.bin', b'x')

        out = StringIO()
        call_command('reconcile', '--dry-run', stdout=out)

        assert len(files_context.backend.list()) == 1
        assert 'Reconciliation finished (dry run)' in out.getvalue()

    def test_only_selected_pass(self, files_context):
        """Test that --only limits the sweep."""
        files_context.backend.put('orphan.bin', b'x')

        out = StringIO()
        call_command('reconcile', '--only', 'tokens', stdout=out)

        assert len(files_context.backend.list()) == 1
        assert 'Objects without records: checked 0' in out.getvalue()

    def test_unreachable_backend(self, files_context, monkeypatch):
        """Test that initialization failures become command errors."""

        def failing_login():
            raise StorageConnectionError('Could not connect to object storage.')

        monkeypatch.setattr(files_context, '_ready', False)
        monkeypatch.setattr(files_context.backend, 'login', failing_login)

        with pytest.raises(CommandError, match='Could not connect'):
            call_command('reconcile', stdout=StringIO())
