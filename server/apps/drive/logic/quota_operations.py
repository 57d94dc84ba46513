"""Business logic for storage quota operations."""

import logging
from dataclasses import dataclass
from typing import Any, final

from django.conf import settings
from django.db import transaction
from django.db.models import Sum

from server.apps.drive.exceptions import QuotaExceededError
from server.apps.drive.models import File, UserQuota

# User type for Django's dynamic user model
_User = Any

# Field name constant to avoid string literal over-use
_USED_BYTES_FIELD = 'used_bytes'  # noqa: WPS226

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class Usage:
    """Snapshot of a user's storage usage."""

    used_bytes: int
    total_bytes: int

    @property
    def used_percentage(self) -> float:
        """Share of the quota in use, 0-100."""
        if self.total_bytes == 0:
            return 0.0
        return (self.used_bytes / self.total_bytes) * 100

    @property
    def available_bytes(self) -> int:
        """Bytes left before uploads are refused."""
        return max(0, self.total_bytes - self.used_bytes)


def get_quota_limit() -> int:
    """Get the storage quota every user gets.

    Returns:
        Quota in bytes from settings or default of 10 GB.
    """
    return getattr(settings, 'DRIVE_QUOTA_BYTES', 10 * 1024 * 1024 * 1024)


def get_or_create_quota(user: _User) -> UserQuota:
    """Get or create quota for user (on-demand creation).

    Args:
        user: User to get quota for.

    Returns:
        UserQuota instance for the user.
    """
    quota, created = UserQuota.objects.get_or_create(user=user)
    if created:
        logger.info('Created quota record for user %s', user.pk)
    return quota


def get_usage(user: _User) -> Usage:
    """Get user's current usage against the quota.

    Args:
        user: User to report on.

    Returns:
        Usage snapshot.
    """
    quota = get_or_create_quota(user)
    return Usage(used_bytes=quota.used_bytes, total_bytes=get_quota_limit())


def check_quota(user: _User, size_bytes: int) -> Usage:
    """Check if user has enough quota for an upload.

    A passing check only holds while the caller keeps the owner lock;
    uploads check once before storage I/O and again under the lock.

    Args:
        user: User to check quota for.
        size_bytes: Size of the upload in bytes.

    Returns:
        Usage snapshot the decision was based on.

    Raises:
        QuotaExceededError: If upload would exceed quota.
    """
    quota = get_or_create_quota(user)
    quota_bytes = get_quota_limit()

    if not quota.has_space_for(size_bytes, quota_bytes):
        logger.warning(
            'Quota exceeded for user %s: need %d, have %d available',
            user.pk,
            size_bytes,
            quota.available_bytes(quota_bytes),
        )
        raise QuotaExceededError(
            quota_bytes=quota_bytes,
            used_bytes=quota.used_bytes,
            required_bytes=size_bytes,
        )

    return Usage(used_bytes=quota.used_bytes, total_bytes=quota_bytes)


def commit_usage(user: _User, delta: int) -> int:
    """Atomically adjust user's storage usage.

    Positive deltas account for new storage, negative deltas release it.
    The result is clamped to 0 so accounting drift from partial failures
    never produces negative usage.

    Args:
        user: User to adjust usage for.
        delta: Bytes to add (or subtract when negative).

    Returns:
        New usage in bytes.
    """
    with transaction.atomic():
        quota, _ = UserQuota.objects.select_for_update().get_or_create(
            user=user,
        )
        new_usage = max(0, quota.used_bytes + delta)
        quota.used_bytes = new_usage
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.debug(
        'Adjusted usage for user %s by %d bytes (new: %d)',
        user.pk,
        delta,
        new_usage,
    )
    return new_usage


def calculate_usage(user: _User) -> int:
    """Sum the sizes of every file the user owns.

    Args:
        user: User to calculate usage for.

    Returns:
        Bytes held by the user's files.
    """
    return File.objects.filter(user=user).aggregate(
        total=Sum('size_bytes'),
    )['total'] or 0


def recalculate_usage(user: _User) -> int:
    """Recalculate user's storage usage from actual files.

    This is useful for fixing inconsistencies after manual repairs.

    Args:
        user: User to recalculate usage for.

    Returns:
        New calculated usage in bytes.
    """
    with transaction.atomic():
        quota, _ = UserQuota.objects.select_for_update().get_or_create(
            user=user,
        )
        total = calculate_usage(user)

        old_usage = quota.used_bytes
        quota.used_bytes = total
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.info(
        'Recalculated usage for user %s: %d -> %d bytes',
        user.pk,
        old_usage,
        total,
    )

    return total
