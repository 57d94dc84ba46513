"""Business logic for share link operations."""

import logging
import secrets
import uuid
from collections.abc import Iterable
from datetime import datetime
from itertools import batched
from typing import Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils import timezone

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.logic.locking import owner_lock
from server.apps.drive.models import File
from server.apps.sharing.models import ShareLink

# User type for Django's dynamic user model
_User = Any

# Token entropy in bytes (generates 43 url-safe chars)
_TOKEN_BYTES: Final = 32

# One message for unknown, expired and denied tokens alike
_LINK_NOT_FOUND: Final = 'Share link not found'

logger = logging.getLogger(__name__)


def _normalize_emails(emails: Iterable[str]) -> list[str]:
    normalized = set()
    for email in emails:
        cleaned = email.strip().lower()
        validate_email(cleaned)
        normalized.add(cleaned)
    return sorted(normalized)


def _get_owned_file(user: _User, file_id: uuid.UUID | str) -> File:
    try:
        return File.objects.get(id=file_id, user=user)
    except (File.DoesNotExist, ValidationError) as error:
        raise NotFoundError(f'File not found: {file_id}') from error


def issue_share_link(
    user: _User,
    file_id: uuid.UUID | str,
    *,
    expires_at: datetime | None = None,
    is_public: bool = False,
    allowed_emails: Iterable[str] = (),
) -> ShareLink:
    """Create a share link for one of the user's files.

    The token comes from ``secrets``, never from a predictable sequence.
    Issuing takes the owner lock so the link cannot outlive a file being
    deleted at the same time.

    Args:
        user: Owner of the file.
        file_id: File to share.
        expires_at: Timezone-aware expiry, None for a permanent link.
        is_public: Whether anyone holding the token may access the file.
        allowed_emails: Emails allowed to use a non-public link.

    Returns:
        Created ShareLink instance.

    Raises:
        ValidationError: If the expiry is naive or in the past, or an
            email is malformed.
        NotFoundError: If the file is absent or owned by another user.
    """
    if expires_at is not None:
        if timezone.is_naive(expires_at):
            raise ValidationError('Expiry must be timezone-aware')
        if expires_at <= timezone.now():
            raise ValidationError('Expiry must be in the future')
    emails = _normalize_emails(allowed_emails)

    with owner_lock(user):
        file_instance = _get_owned_file(user, file_id)
        share_link = ShareLink.objects.create(
            file=file_instance,
            user=user,
            token=secrets.token_urlsafe(_TOKEN_BYTES),
            expires_at=expires_at,
            is_public=is_public,
            allowed_emails=emails,
        )

    logger.info(
        'Share link issued for file %s: %s (expires: %s)',
        file_instance.id,
        share_link.id,
        expires_at,
    )
    return share_link


def resolve_share_link(token: str) -> ShareLink:
    """Look up a valid share link by token.

    Expiry is checked lazily here, expired links are never purged.

    Args:
        token: Token from the share URL.

    Returns:
        ShareLink with its file loaded.

    Raises:
        NotFoundError: If the token is unknown or expired; both cases
            are indistinguishable to the caller.
    """
    try:
        share_link = ShareLink.objects.select_related('file').get(token=token)
    except ShareLink.DoesNotExist as error:
        raise NotFoundError(_LINK_NOT_FOUND) from error

    if share_link.is_expired():
        logger.debug('Share link expired: %s', share_link.id)
        raise NotFoundError(_LINK_NOT_FOUND)

    return share_link


def read_shared_file(
    token: str,
    email: str | None = None,
) -> tuple[ShareLink, bytes]:
    """Fetch the file behind a share link.

    Args:
        token: Token from the share URL.
        email: Visitor's email, None for anonymous visitors.

    Returns:
        The resolved link and the file content.

    Raises:
        NotFoundError: If the token is unknown, expired or doesn't grant
            access to the visitor.
        BackendUnavailableError: If the storage read fails.
    """
    share_link = resolve_share_link(token)
    if not share_link.grants_access_to(email):
        logger.info('Share link %s denied to visitor', share_link.id)
        raise NotFoundError(_LINK_NOT_FOUND)
    return share_link, get_storage().get(share_link.file.storage_key)


def revoke_share_link(user: _User, share_link_id: uuid.UUID | str) -> None:
    """Delete one of the user's share links.

    Args:
        user: Owner of the link.
        share_link_id: Link to revoke.

    Raises:
        NotFoundError: If the link is absent or owned by another user.
    """
    try:
        deleted, _ = ShareLink.objects.filter(
            id=share_link_id,
            user=user,
        ).delete()
    except ValidationError as error:
        raise NotFoundError(f'Share link not found: {share_link_id}') from error

    if not deleted:
        raise NotFoundError(f'Share link not found: {share_link_id}')

    logger.info('Share link revoked: %s', share_link_id)


def list_share_links(user: _User, file_id: uuid.UUID | str) -> list[ShareLink]:
    """List every share link of a file, expired ones included.

    Args:
        user: Owner of the file.
        file_id: File whose links to list.

    Returns:
        Links, newest first.

    Raises:
        NotFoundError: If the file is absent or owned by another user.
    """
    file_instance = _get_owned_file(user, file_id)
    return list(file_instance.share_links.all())


def drop_links_for_files(file_ids: Iterable[uuid.UUID]) -> int:
    """Delete every share link of the given files.

    Called inside the transaction that deletes the files, so no link
    survives its file. IDs are bound in batches of
    ``DRIVE_DELETE_BATCH_SIZE`` per query.

    Args:
        file_ids: Files about to be deleted.

    Returns:
        Number of links deleted.
    """
    batch_size = getattr(settings, 'DRIVE_DELETE_BATCH_SIZE', 500)
    deleted = 0
    for file_batch in batched(file_ids, batch_size):
        batch_deleted, _ = ShareLink.objects.filter(
            file_id__in=file_batch,
        ).delete()
        deleted += batch_deleted
    if deleted:
        logger.info('Dropped %d share links of deleted files', deleted)
    return deleted
