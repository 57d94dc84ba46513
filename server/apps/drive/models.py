"""Database models for drive app."""

import uuid
from pathlib import Path
from typing import ClassVar, Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_STORAGE_KEY_MAX_LENGTH: Final = 512


@final
class Folder(models.Model):
    """Folder in a user's namespace.

    Folders of one user form a forest: ``parent`` is null for top-level
    folders and otherwise points at another folder of the same user.
    The logic layer guarantees that no folder becomes its own ancestor.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    # Owner relationship, never changes after creation
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        editable=False,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        related_name='children',
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name', 'id']

        indexes: ClassVar[list[models.Index]] = [
            # Children lookup: one folder level per query
            models.Index(
                fields=['user', 'parent'],
                name='drive_folder_user_parent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.name}'


@final
class File(models.Model):
    """File metadata for a payload held by the storage backend.

    ``storage_key`` addresses the payload in the configured backend. It is
    assigned once at upload and never rewritten, renames and moves only
    touch ``name`` and ``folder``.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    # Owner relationship, never changes after creation
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        editable=False,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Declared or detected MIME type',
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        editable=False,
        help_text='Key in storage: {user_id}/{uuid}-{filename}',
    )

    # Null means the file lives in the user's root
    folder = models.ForeignKey(
        Folder,
        on_delete=models.CASCADE,
        related_name='files',
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at', 'id']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'folder'],
                name='drive_file_user_folder_idx',
            ),
            # Optimize recent files queries
            models.Index(
                fields=['user', '-created_at'],
                name='drive_file_user_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.name}'

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'file.pdf' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        extension = Path(self.name).suffix
        return extension.lstrip('.').lower()


@final
class UserQuota(models.Model):
    """Storage usage of a user.

    Only ``used_bytes`` is stored, the limit is the deployment-wide
    ``DRIVE_QUOTA_BYTES`` setting. The row doubles as the per-user lock
    taken by every structural change to the user's namespace.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='quota',
        primary_key=True,
    )

    used_bytes = models.BigIntegerField(
        default=0,
        help_text='Currently used storage in bytes',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'User Quota'  # type: ignore[mutable-override]
        verbose_name_plural = 'User Quotas'  # type: ignore[mutable-override]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(
                condition=models.Q(used_bytes__gte=0),
                name='drive_used_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}: {self.used_bytes}'

    def has_space_for(self, size_bytes: int, quota_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.
            quota_bytes: Total quota limit in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= quota_bytes

    def available_bytes(self, quota_bytes: int) -> int:
        """Get available storage space.

        Args:
            quota_bytes: Total quota limit in bytes.

        Returns:
            Available bytes (never negative).
        """
        return max(0, quota_bytes - self.used_bytes)
