"""Shared fixtures for app tests."""

import threading

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.db import connections
from moto import mock_aws

from server.apps.drive.infrastructure.storage import get_storage

User = get_user_model()

_BUCKET_NAME = 'prostor'
_STATICFILES = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def storage_root(tmp_path):
    """Directory holding payloads of the local backend."""
    return tmp_path / 'uploads'


@pytest.fixture(autouse=True)
def local_storage(settings, storage_root):
    """Point the default storage at a temporary directory.

    Applied to every test so nothing writes into the project tree.

    Returns:
        Configured LocalFileStorage.
    """
    settings.STORAGES = {
        'default': {
            'BACKEND': 'server.apps.drive.infrastructure.storage.LocalFileStorage',
            'OPTIONS': {'location': str(storage_root)},
        },
        'staticfiles': _STATICFILES,
    }
    return get_storage()


@pytest.fixture
def mock_s3():
    """Mock S3 service with prostor bucket.

    Yields:
        boto3 S3 resource with prostor bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=_BUCKET_NAME)
        yield conn


@pytest.fixture
def object_storage(settings, mock_s3):
    """Switch the default storage to the mocked S3 bucket.

    Returns:
        Configured ObjectFileStorage.
    """
    settings.STORAGES = {
        'default': {
            'BACKEND': 'server.apps.drive.infrastructure.storage.ObjectFileStorage',
            'OPTIONS': {
                'bucket_name': _BUCKET_NAME,
                'access_key': 'testing',
                'secret_key': 'testing',
                'region_name': 'us-east-1',
                'file_overwrite': False,
                'default_acl': None,
            },
        },
        'staticfiles': _STATICFILES,
    }
    return get_storage()


@pytest.fixture
def stored_files(storage_root):
    """List payloads currently held by the local backend.

    Returns:
        Callable returning sorted paths relative to the storage root.
    """
    def _list():
        if not storage_root.exists():
            return []
        return sorted(
            str(path.relative_to(storage_root))
            for path in storage_root.rglob('*')
            if path.is_file()
        )
    return _list


@pytest.fixture
def run_in_threads():
    """Run callables concurrently, each with its own DB connection.

    Returns:
        Callable taking worker functions and returning their outcomes,
        the result or the raised exception, in order.
    """
    def _run(*workers):
        outcomes = [None] * len(workers)
        barrier = threading.Barrier(len(workers))

        def _target(index, worker):
            try:
                barrier.wait()
                outcomes[index] = worker()
            except Exception as exc:
                outcomes[index] = exc
            finally:
                connections.close_all()

        threads = [
            threading.Thread(target=_target, args=(index, worker))
            for index, worker in enumerate(workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes
    return _run
