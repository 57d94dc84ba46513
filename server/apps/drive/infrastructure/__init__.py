"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- Storage backends (local disk, S3/MinIO/R2)
- Metadata extraction (MIME type, file category, storage keys)
- Search index notifications

Keep infrastructure concerns separate from business logic.
"""
