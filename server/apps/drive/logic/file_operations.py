"""Business logic for file operations."""

import logging
import uuid
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError

from server.apps.drive.infrastructure.metadata import (
    build_storage_key,
    detect_mime_type,
    validate_name,
)
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.logic.locking import owner_lock
from server.apps.drive.logic.namespace_operations import (
    create_file_record,
    get_file,
    get_folder,
)
from server.apps.drive.logic.quota_operations import check_quota, commit_usage
from server.apps.drive.models import File
from server.apps.sharing.logic.share_operations import drop_links_for_files

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def get_max_upload_size() -> int:
    """Get the largest accepted upload.

    Returns:
        Size limit from settings or default of 100 MiB.
    """
    return getattr(settings, 'DRIVE_MAX_UPLOAD_BYTES', 100 * 1024 * 1024)


def upload_file(
    user: _User,
    *,
    name: str,
    content: bytes,
    mime_type: str | None = None,
    folder_id: uuid.UUID | str | None = None,
) -> File:
    """Upload file to storage and create database record.

    Transaction safety: Upload to storage first, outside the owner lock,
    then take the lock to re-check the quota, create the record and
    commit usage. If anything after the upload fails, the payload is
    deleted from storage again (rollback).

    Args:
        user: Owner of the file.
        name: User-visible file name.
        content: Raw payload.
        mime_type: Declared MIME type, detected from the name if None.
        folder_id: Containing folder ID, None for the root.

    Returns:
        Created File instance.

    Raises:
        ValidationError: If the name is invalid or the payload too large.
        QuotaExceededError: If the upload would exceed the user's quota.
        NotFoundError: If the folder is absent or owned by another user.
        BackendUnavailableError: If the storage upload fails.
    """
    cleaned_name = validate_name(name)
    size_bytes = len(content)
    max_size = get_max_upload_size()
    if size_bytes > max_size:
        raise ValidationError(
            f'File too large: {size_bytes} bytes, maximum is {max_size}',
        )
    resolved_mime_type = mime_type or detect_mime_type(cleaned_name)

    # Fail fast before paying for storage I/O
    check_quota(user, size_bytes)
    if folder_id is not None:
        get_folder(user, folder_id)

    storage = get_storage()

    # Step 1: Upload to storage first
    storage_key = storage.put(content, build_storage_key(user.pk, cleaned_name))

    # Step 2: Create database record and commit usage under the owner lock
    try:
        with owner_lock(user):
            check_quota(user, size_bytes)
            file_instance = create_file_record(
                user,
                name=cleaned_name,
                size_bytes=size_bytes,
                mime_type=resolved_mime_type,
                storage_key=storage_key,
                folder_id=folder_id,
            )
            commit_usage(user, size_bytes)
    except Exception:
        # Rollback: Delete file from storage since the metadata step failed
        logger.exception(
            'Metadata step failed, rolling back storage upload: %s',
            storage_key,
        )
        storage.rollback_upload(storage_key)
        raise

    logger.info(
        'File uploaded: %s (ID: %s, %d bytes)',
        file_instance.name,
        file_instance.id,
        size_bytes,
    )
    return file_instance


def read_file(user: _User, file_id: uuid.UUID | str) -> bytes:
    """Read the payload of a user's file.

    Args:
        user: Owner of the file.
        file_id: File ID.

    Returns:
        File content.

    Raises:
        NotFoundError: If the file or its stored payload is missing.
        BackendUnavailableError: If the storage read fails.
    """
    file_instance = get_file(user, file_id)
    return get_storage().get(file_instance.storage_key)


def delete_file(user: _User, file_id: uuid.UUID | str) -> None:
    """Delete file from database and storage.

    Transaction safety: Share links, the record and the quota bytes go
    together under the owner lock. Storage deletion is handled after
    commit by the post_delete signal handler in signals.py and never
    undoes the metadata removal.

    Args:
        user: Owner of the file.
        file_id: ID of file to delete.

    Raises:
        NotFoundError: If the file is absent or owned by another user.
    """
    with owner_lock(user):
        file_instance = get_file(user, file_id)
        size_bytes = file_instance.size_bytes

        drop_links_for_files([file_instance.id])
        file_instance.delete()
        commit_usage(user, -size_bytes)

    logger.info(
        'File deleted: ID=%s, key=%s, %d bytes released',
        file_id,
        file_instance.storage_key,
        size_bytes,
    )
