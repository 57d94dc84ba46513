"""Database models for sharing app."""

import uuid
from datetime import datetime
from typing import ClassVar, Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

from server.apps.drive.models import File

# Constants for field max lengths
_TOKEN_MAX_LENGTH: Final = 64


@final
class ShareLink(models.Model):
    """Capability token granting access to one file.

    A link is valid while ``expires_at`` is unset or in the future.
    Expired links stay in the table, lookups treat them as missing.
    Links disappear together with their file.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='share_links',
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='share_links',
        editable=False,
    )

    token = models.CharField(
        max_length=_TOKEN_MAX_LENGTH,
        unique=True,
        editable=False,
        help_text='Unguessable token used in share URLs',
    )

    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text='Link stops resolving after this moment',
    )

    is_public = models.BooleanField(
        default=False,
        help_text='Anyone holding the token may access the file',
    )

    allowed_emails = models.JSONField(
        default=list,
        blank=True,
        help_text='Lower-cased emails allowed when the link is not public',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Share Link'  # type: ignore[mutable-override]
        verbose_name_plural = 'Share Links'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at', 'id']

        indexes: ClassVar[list[models.Index]] = [
            models.Index(
                fields=['user', 'file'],
                name='sharing_user_file_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.file_id} ({self.token[:8]})'

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the link is past its expiry.

        Args:
            now: Moment to check against, defaults to the current time.

        Returns:
            True if the link has an expiry at or before ``now``.
        """
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or timezone.now())

    def grants_access_to(self, email: str | None) -> bool:
        """Check whether a visitor may use this link.

        Args:
            email: Visitor's email, None for anonymous visitors.

        Returns:
            True for public links or listed emails.
        """
        if self.is_public:
            return True
        if not email:
            return False
        return email.strip().lower() in self.allowed_emails
