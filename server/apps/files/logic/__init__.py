"""Business logic layer for files app.

This package contains all business logic of the file host:
- Upload, download, delete, privacy and expiry of files
- The file metadata store (``file_records``)
- Reconciliation of records with the storage backend

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).

Reference: https://github.com/dry-python
for decoupling business logic from Django views.
"""
