"""Business logic layer for drive app.

This package contains all business logic for the storage core:
- Per-owner locking shared by every structural change
- Folder tree operations, listing and cascading delete
- File upload, download and delete
- Storage quota accounting

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
