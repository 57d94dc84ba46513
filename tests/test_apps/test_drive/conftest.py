"""Shared fixtures for drive app tests."""

import uuid

import pytest

from server.apps.drive.models import File, Folder


@pytest.fixture
def make_folder(user):
    """Create folders directly in the database.

    Returns:
        Factory taking a name, an optional parent and owner.
    """
    def _make(name, parent=None, owner=None):
        return Folder.objects.create(
            user=owner or user,
            name=name,
            parent=parent,
        )
    return _make


@pytest.fixture
def make_file(user):
    """Create file records without touching storage.

    Returns:
        Factory taking a name, size, an optional folder and owner.
    """
    def _make(name, size_bytes=100, folder=None, owner=None):
        owner = owner or user
        return File.objects.create(
            user=owner,
            name=name,
            size_bytes=size_bytes,
            mime_type='text/plain',
            storage_key=f'{owner.pk}/{uuid.uuid4().hex}-{name}',
            folder=folder,
        )
    return _make


@pytest.fixture
def small_quota(settings):
    """Limit every user to 1000 bytes.

    Returns:
        The quota in bytes.
    """
    settings.DRIVE_QUOTA_BYTES = 1000
    return settings.DRIVE_QUOTA_BYTES
