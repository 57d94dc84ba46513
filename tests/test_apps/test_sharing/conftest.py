"""Shared fixtures for sharing app tests."""

import pytest

from server.apps.drive.logic.file_operations import upload_file


@pytest.fixture
def shared_file(user):
    """Upload a file worth sharing.

    Returns:
        File instance owned by the test user.
    """
    return upload_file(user, name='holiday.jpg', content=b'jpeg-bytes')
