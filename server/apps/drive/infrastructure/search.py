"""Search index notifications for namespace changes.

The search engine itself is an external collaborator. The app only
builds documents and hands them to the ``SearchIndexer`` named by the
``DRIVE_SEARCH_INDEXER`` setting. Notifications are best-effort: a
failing indexer is logged and never breaks the operation that changed
the namespace.
"""

import logging
from typing import Any, final, override

from django.conf import settings
from django.utils.module_loading import import_string

from server.apps.drive.infrastructure.metadata import get_file_type
from server.apps.drive.models import File, Folder

logger = logging.getLogger(__name__)

SearchDocument = dict[str, Any]


class SearchIndexer:
    """Interface of the search-indexing collaborator."""

    def index(self, document: SearchDocument) -> None:
        """Add or replace a document in the index."""
        raise NotImplementedError

    def remove(self, item_id: str) -> None:
        """Drop a document from the index."""
        raise NotImplementedError


@final
class NullSearchIndexer(SearchIndexer):
    """Indexer used when no search engine is configured."""

    @override
    def index(self, document: SearchDocument) -> None:
        logger.debug('Search indexing disabled, skipping %s', document['id'])

    @override
    def remove(self, item_id: str) -> None:
        logger.debug('Search indexing disabled, skipping removal %s', item_id)


def get_search_indexer() -> SearchIndexer:
    """Instantiate the configured search indexer.

    Returns:
        Indexer named by ``DRIVE_SEARCH_INDEXER``.
    """
    indexer_path = getattr(
        settings,
        'DRIVE_SEARCH_INDEXER',
        'server.apps.drive.infrastructure.search.NullSearchIndexer',
    )
    return import_string(indexer_path)()


def folder_document(folder: Folder) -> SearchDocument:
    """Build the search document for a folder.

    Args:
        folder: Folder instance.

    Returns:
        Document with identity, owner and placement.
    """
    return {
        'id': str(folder.id),
        'user_id': folder.user_id,
        'name': folder.name,
        'is_folder': True,
        'parent_id': str(folder.parent_id) if folder.parent_id else None,
        'created_at': folder.created_at.isoformat(),
        'updated_at': folder.updated_at.isoformat(),
    }


def file_document(file_instance: File) -> SearchDocument:
    """Build the search document for a file.

    Args:
        file_instance: File instance.

    Returns:
        Document with identity, owner, placement, size and category.
    """
    folder_id = file_instance.folder_id
    return {
        'id': str(file_instance.id),
        'user_id': file_instance.user_id,
        'name': file_instance.name,
        'is_folder': False,
        'parent_id': str(folder_id) if folder_id else None,
        'size': file_instance.size_bytes,
        'mime_type': file_instance.mime_type,
        'type': get_file_type(file_instance.mime_type, file_instance.name),
        'created_at': file_instance.created_at.isoformat(),
        'updated_at': file_instance.updated_at.isoformat(),
    }


def notify_indexed(document: SearchDocument) -> None:
    """Send a document to the search indexer, logging any failure.

    Args:
        document: Document to index.
    """
    try:
        get_search_indexer().index(document)
    except Exception:
        # Search is best-effort, the namespace change already committed
        logger.exception('Failed to index search document: %s', document['id'])


def notify_removed(item_id: str) -> None:
    """Ask the search indexer to drop a document, logging any failure.

    Args:
        item_id: ID of the removed file or folder.
    """
    try:
        get_search_indexer().remove(item_id)
    except Exception:
        logger.exception('Failed to remove search document: %s', item_id)
