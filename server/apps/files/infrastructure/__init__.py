"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Storage backends (local disk, S3/MinIO, Vercel Blob, WebDAV)
- Read-through download cache
- Naming, MIME types and identifier generators

Keep infrastructure concerns separate from business logic.
"""
