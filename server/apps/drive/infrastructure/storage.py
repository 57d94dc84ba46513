"""Storage backends for user file payloads.

Both backends share one contract, ``put``/``get``/``delete`` over opaque
keys, so the rest of the app never branches on the configured medium:

- ``LocalFileStorage`` keeps payloads under a root directory
- ``ObjectFileStorage`` keeps payloads in an S3-compatible bucket
"""

import io
import logging
from typing import Any, ClassVar, Final, final, override

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage, default_storage
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.drive.exceptions import BackendUnavailableError, NotFoundError
from server.apps.drive.infrastructure.metadata import validate_storage_key

logger = logging.getLogger(__name__)

_CHUNK_SIZE: Final = 64 * 1024
_MISSING_OBJECT_CODES: Final = frozenset(('NoSuchKey', '404', 'NotFound'))


def get_max_object_size() -> int:
    """Get the largest payload the backends will hand back.

    Returns:
        Size limit from settings or default of 100 MiB.
    """
    return getattr(settings, 'DRIVE_MAX_UPLOAD_BYTES', 100 * 1024 * 1024)


def get_storage() -> 'BlobStorageMixin':
    """Get the configured default storage backend.

    Returns:
        LocalFileStorage or ObjectFileStorage, as chosen by STORAGES.
    """
    return default_storage  # type: ignore[return-value]


class BlobStorageMixin:
    """Uniform put/get/delete contract on top of a Django storage.

    Subclasses list the exceptions their medium raises for I/O failures
    in ``backend_errors`` and implement ``_read`` and ``_is_missing``.
    """

    backend_errors: ClassVar[tuple[type[Exception], ...]] = ()

    def put(self, content: bytes, key: str) -> str:
        """Store a payload under a key.

        Args:
            content: Raw payload.
            key: Storage key ({user_id}/...).

        Returns:
            Key the payload was stored under.

        Raises:
            BackendUnavailableError: If the medium fails.
        """
        validate_storage_key(key)
        try:
            logger.info('Uploading file to storage: %s', key)
            saved_key = self.save(key, ContentFile(content))  # type: ignore[attr-defined]
        except self.backend_errors as error:
            logger.exception('Failed to upload file to storage: %s', key)
            raise BackendUnavailableError(
                f'Storage upload failed for {key}',
            ) from error
        logger.info('Successfully uploaded file: %s', saved_key)
        return saved_key

    def get(self, key: str) -> bytes:
        """Fetch a payload.

        Args:
            key: Storage key.

        Returns:
            The stored bytes.

        Raises:
            NotFoundError: If nothing is stored under the key.
            BackendUnavailableError: If the medium fails.
        """
        validate_storage_key(key)
        try:
            return self._read(key)
        except self.backend_errors as error:
            if self._is_missing(error):
                raise NotFoundError(f'Stored object not found: {key}') from error
            logger.exception('Failed to read file from storage: %s', key)
            raise BackendUnavailableError(
                f'Storage read failed for {key}',
            ) from error

    def delete(self, name: str) -> None:
        """Delete a payload, absent keys are not an error.

        Args:
            name: Storage key of file to delete.

        Raises:
            BackendUnavailableError: If the medium fails.
        """
        validate_storage_key(name)
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)  # type: ignore[misc]
        except self.backend_errors as error:
            logger.exception('Failed to delete file from storage: %s', name)
            raise BackendUnavailableError(
                f'Storage delete failed for {name}',
            ) from error
        logger.info('Successfully deleted file: %s', name)

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded file after the metadata step failed.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, the object stays orphaned in storage.

        Args:
            name: Storage key of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
        except BackendUnavailableError:
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )

    def _read(self, key: str) -> bytes:
        raise NotImplementedError

    def _is_missing(self, error: Exception) -> bool:
        raise NotImplementedError


@final
class LocalFileStorage(BlobStorageMixin, FileSystemStorage):
    """Payloads on the local filesystem under ``location``.

    ``FileSystemStorage`` creates intermediate directories on save and
    refuses names resolving outside ``location``.
    """

    backend_errors = (OSError,)

    @override
    def _read(self, key: str) -> bytes:
        with self.open(key, 'rb') as stored_file:
            return stored_file.read()

    @override
    def _is_missing(self, error: Exception) -> bool:
        return isinstance(error, FileNotFoundError)


@final
class ObjectFileStorage(BlobStorageMixin, S3Storage):
    """Payloads in S3-compatible object storage (S3, MinIO, R2).

    Reads stream the body into one buffer that may not grow past the
    maximum accepted upload size.
    """

    backend_errors = (Boto3Error, BotoCoreError, ClientError)

    @override
    def _read(self, key: str) -> bytes:
        limit = get_max_object_size()
        name = self._normalize_name(clean_name(key))
        response: dict[str, Any] = self.bucket.Object(name).get()
        body = response['Body']
        try:
            content_length = response.get('ContentLength')
            if content_length is not None and content_length > limit:
                raise BackendUnavailableError(
                    f'Stored object {key} is larger than {limit} bytes',
                )

            buffer = io.BytesIO()
            for chunk in body.iter_chunks(chunk_size=_CHUNK_SIZE):
                buffer.write(chunk)
                if buffer.tell() > limit:
                    raise BackendUnavailableError(
                        f'Stored object {key} is larger than {limit} bytes',
                    )
        finally:
            # Release the pooled connection whether or not the read finished
            body.close()
        return buffer.getvalue()

    @override
    def _is_missing(self, error: Exception) -> bool:
        if not isinstance(error, ClientError):
            return False
        code = error.response.get('Error', {}).get('Code', '')
        return code in _MISSING_OBJECT_CODES
