"""Signal handlers for drive app."""

import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from server.apps.drive.exceptions import BackendUnavailableError
from server.apps.drive.infrastructure.search import (
    file_document,
    folder_document,
    notify_indexed,
    notify_removed,
)
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.models import File, Folder

logger = logging.getLogger(__name__)


def _delete_stored_object(storage_key: str) -> None:
    try:
        get_storage().delete(storage_key)
    except BackendUnavailableError:
        # Log error but don't raise - DB delete already succeeded
        # Orphaned file can be reconciled later
        logger.exception(
            'Failed to delete file from storage (orphaned): %s',
            storage_key,
        )


@receiver(post_delete, sender=File)
def delete_file_from_storage(
    sender: type[File],
    instance: File,
    **kwargs: object,
) -> None:
    """Delete file from storage once the File deletion commits.

    This signal handler ensures that when a File record is deleted
    (via logic layer, admin, ORM or a folder cascade), the payload in
    storage is also cleaned up. Running after commit keeps storage I/O
    out of the owner lock and skips the delete if the transaction rolls
    back.

    Args:
        sender: The File model class.
        instance: The File instance being deleted.
        **kwargs: Additional signal arguments.
    """
    logger.info(
        'Scheduling storage delete after DB delete: %s',
        instance.storage_key,
    )
    transaction.on_commit(partial(_delete_stored_object, instance.storage_key))


@receiver(post_save, sender=File)
def index_file(
    sender: type[File],
    instance: File,
    **kwargs: object,
) -> None:
    """Send created or renamed files to the search indexer after commit.

    Args:
        sender: The File model class.
        instance: The saved File instance.
        **kwargs: Additional signal arguments.
    """
    transaction.on_commit(partial(notify_indexed, file_document(instance)))


@receiver(post_save, sender=Folder)
def index_folder(
    sender: type[Folder],
    instance: Folder,
    **kwargs: object,
) -> None:
    """Send created or renamed folders to the search indexer after commit.

    Args:
        sender: The Folder model class.
        instance: The saved Folder instance.
        **kwargs: Additional signal arguments.
    """
    transaction.on_commit(partial(notify_indexed, folder_document(instance)))


@receiver(post_delete, sender=File)
@receiver(post_delete, sender=Folder)
def unindex_item(
    sender: type[File] | type[Folder],
    instance: File | Folder,
    **kwargs: object,
) -> None:
    """Drop deleted files and folders from the search index after commit.

    Args:
        sender: The deleted model class.
        instance: The deleted instance.
        **kwargs: Additional signal arguments.
    """
    transaction.on_commit(partial(notify_removed, str(instance.id)))
