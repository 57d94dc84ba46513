"""Tests for search index notifications."""

import pytest

from server.apps.drive.infrastructure.search import (
    NullSearchIndexer,
    SearchIndexer,
    file_document,
    folder_document,
    get_search_indexer,
)
from server.apps.drive.logic.namespace_operations import (
    create_folder,
    delete_folder,
    move_folder,
)


class RecordingIndexer(SearchIndexer):
    """Indexer remembering every call."""

    events: list[tuple[str, object]] = []

    def index(self, document):
        self.events.append(('index', document))

    def remove(self, item_id):
        self.events.append(('remove', item_id))


class FailingIndexer(SearchIndexer):
    """Indexer whose search engine is down."""

    def index(self, document):
        raise ConnectionError('search engine unreachable')

    def remove(self, item_id):
        raise ConnectionError('search engine unreachable')


@pytest.fixture
def recording_indexer(settings):
    """Route notifications to RecordingIndexer.

    Returns:
        List of recorded (action, payload) events.
    """
    settings.DRIVE_SEARCH_INDEXER = f'{__name__}.RecordingIndexer'
    RecordingIndexer.events = []
    return RecordingIndexer.events


def test_default_indexer_is_null():
    """Test the configured default."""
    assert isinstance(get_search_indexer(), NullSearchIndexer)


@pytest.mark.django_db
def test_folder_document(make_folder):
    """Test the folder document layout."""
    parent = make_folder('Docs')
    child = make_folder('2024', parent=parent)

    document = folder_document(child)

    assert document['id'] == str(child.id)
    assert document['name'] == '2024'
    assert document['is_folder'] is True
    assert document['parent_id'] == str(parent.id)


@pytest.mark.django_db
def test_file_document(make_file):
    """Test the file document layout."""
    file_instance = make_file('notes.txt', size_bytes=42)

    document = file_document(file_instance)

    assert document['is_folder'] is False
    assert document['parent_id'] is None
    assert document['size'] == 42
    assert document['type'] == 'document'


@pytest.mark.django_db
def test_create_and_rename_are_indexed_after_commit(
    user,
    recording_indexer,
    django_capture_on_commit_callbacks,
):
    """Test that creates and renames reach the indexer."""
    with django_capture_on_commit_callbacks(execute=True):
        folder = create_folder(user, 'Docs')
    with django_capture_on_commit_callbacks(execute=True):
        move_folder(user, folder.id, name='Papers')

    names = [payload['name'] for action, payload in recording_indexer]
    assert names == ['Docs', 'Papers']


@pytest.mark.django_db
def test_nothing_indexed_before_commit(user, recording_indexer):
    """Test that notifications wait for the transaction."""
    create_folder(user, 'Docs')

    assert recording_indexer == []


@pytest.mark.django_db
def test_delete_is_unindexed(
    user,
    recording_indexer,
    django_capture_on_commit_callbacks,
):
    """Test that every removed folder leaves the index."""
    parent = create_folder(user, 'parent')
    child = create_folder(user, 'child', parent_id=parent.id)

    with django_capture_on_commit_callbacks(execute=True):
        delete_folder(user, parent.id)

    removed = {payload for action, payload in recording_indexer if action == 'remove'}
    assert removed == {str(parent.id), str(child.id)}


@pytest.mark.django_db
def test_failing_indexer_never_fails_operations(
    user,
    settings,
    django_capture_on_commit_callbacks,
):
    """Test that namespace changes survive a broken search engine."""
    settings.DRIVE_SEARCH_INDEXER = f'{__name__}.FailingIndexer'

    with django_capture_on_commit_callbacks(execute=True):
        folder = create_folder(user, 'Docs')
    with django_capture_on_commit_callbacks(execute=True):
        move_folder(user, folder.id, name='Papers')
    with django_capture_on_commit_callbacks(execute=True):
        delete_folder(user, folder.id)
