"""Tests for share link operations."""

import uuid
from datetime import datetime, timedelta

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.logic.file_operations import delete_file, upload_file
from server.apps.drive.logic.namespace_operations import (
    create_folder,
    delete_folder,
)
from server.apps.sharing.logic.share_operations import (
    drop_links_for_files,
    issue_share_link,
    list_share_links,
    read_shared_file,
    resolve_share_link,
    revoke_share_link,
)
from server.apps.sharing.models import ShareLink


@pytest.mark.django_db
def test_issue_share_link(user, shared_file):
    """Test issuing a permanent public link."""
    share_link = issue_share_link(user, shared_file.id, is_public=True)

    assert share_link.file == shared_file
    assert share_link.user == user
    assert share_link.is_public
    assert share_link.expires_at is None
    assert len(share_link.token) >= 43


@pytest.mark.django_db
def test_issued_tokens_are_unique(user, shared_file):
    """Test that every link gets a fresh token."""
    tokens = {issue_share_link(user, shared_file.id).token for _ in range(20)}

    assert len(tokens) == 20


@pytest.mark.django_db
def test_issue_normalizes_emails(user, shared_file):
    """Test that allowed emails are trimmed, lower-cased and deduplicated."""
    share_link = issue_share_link(
        user,
        shared_file.id,
        allowed_emails=[' Friend@Example.com', 'friend@example.com', 'b@example.com'],
    )

    assert share_link.allowed_emails == ['b@example.com', 'friend@example.com']


@pytest.mark.django_db
def test_issue_rejects_malformed_email(user, shared_file):
    """Test email validation."""
    with pytest.raises(ValidationError):
        issue_share_link(user, shared_file.id, allowed_emails=['not-an-email'])

    assert not ShareLink.objects.exists()


@pytest.mark.django_db
def test_issue_rejects_past_expiry(user, shared_file):
    """Test that links cannot be born expired."""
    with pytest.raises(ValidationError):
        issue_share_link(
            user,
            shared_file.id,
            expires_at=timezone.now() - timedelta(minutes=1),
        )


@pytest.mark.django_db
def test_issue_rejects_naive_expiry(user, shared_file):
    """Test that expiry must carry a timezone."""
    with pytest.raises(ValidationError):
        issue_share_link(
            user,
            shared_file.id,
            expires_at=datetime(2999, 1, 1),
        )


@pytest.mark.django_db
def test_issue_for_foreign_file(other_user, shared_file):
    """Test that only the owner can share a file."""
    with pytest.raises(NotFoundError):
        issue_share_link(other_user, shared_file.id, is_public=True)


@pytest.mark.django_db
def test_issue_for_missing_file(user):
    """Test sharing a file that doesn't exist."""
    with pytest.raises(NotFoundError):
        issue_share_link(user, uuid.uuid4())


@pytest.mark.django_db
def test_resolve_share_link(user, shared_file):
    """Test resolving a valid token."""
    share_link = issue_share_link(
        user,
        shared_file.id,
        expires_at=timezone.now() + timedelta(days=1),
    )

    assert resolve_share_link(share_link.token) == share_link


@pytest.mark.django_db
def test_resolve_unknown_and_expired_alike(user, shared_file):
    """Test that unknown and expired tokens fail the same way."""
    share_link = issue_share_link(
        user,
        shared_file.id,
        expires_at=timezone.now() + timedelta(days=1),
    )
    ShareLink.objects.filter(id=share_link.id).update(
        expires_at=timezone.now() - timedelta(seconds=1),
    )

    with pytest.raises(NotFoundError) as expired:
        resolve_share_link(share_link.token)
    with pytest.raises(NotFoundError) as unknown:
        resolve_share_link('never-issued')

    assert str(expired.value) == str(unknown.value)
    assert ShareLink.objects.filter(id=share_link.id).exists()


@pytest.mark.django_db
def test_read_shared_file_public(user, shared_file):
    """Test anonymous download through a public link."""
    share_link = issue_share_link(user, shared_file.id, is_public=True)

    resolved, content = read_shared_file(share_link.token)

    assert resolved == share_link
    assert content == b'jpeg-bytes'


@pytest.mark.django_db
def test_read_shared_file_private(user, shared_file):
    """Test that private links admit listed emails only."""
    share_link = issue_share_link(
        user,
        shared_file.id,
        allowed_emails=['friend@example.com'],
    )

    _, content = read_shared_file(share_link.token, email='FRIEND@example.com')
    assert content == b'jpeg-bytes'

    with pytest.raises(NotFoundError) as denied:
        read_shared_file(share_link.token, email='stranger@example.com')
    with pytest.raises(NotFoundError) as unknown:
        read_shared_file('never-issued')

    assert str(denied.value) == str(unknown.value)


@pytest.mark.django_db
def test_revoke_share_link(user, shared_file):
    """Test that revoked tokens stop resolving."""
    share_link = issue_share_link(user, shared_file.id, is_public=True)

    revoke_share_link(user, share_link.id)

    with pytest.raises(NotFoundError):
        resolve_share_link(share_link.token)


@pytest.mark.django_db
def test_revoke_foreign_or_missing_link(user, other_user, shared_file):
    """Test that users cannot revoke each other's links."""
    share_link = issue_share_link(user, shared_file.id)

    with pytest.raises(NotFoundError):
        revoke_share_link(other_user, share_link.id)
    with pytest.raises(NotFoundError):
        revoke_share_link(user, uuid.uuid4())
    with pytest.raises(NotFoundError):
        revoke_share_link(user, 'not-a-uuid')

    assert ShareLink.objects.filter(id=share_link.id).exists()


@pytest.mark.django_db
def test_list_share_links(user, other_user, shared_file):
    """Test listing links of one file, expired ones included."""
    permanent = issue_share_link(user, shared_file.id)
    expiring = issue_share_link(
        user,
        shared_file.id,
        expires_at=timezone.now() + timedelta(hours=1),
    )
    ShareLink.objects.filter(id=expiring.id).update(
        expires_at=timezone.now() - timedelta(hours=1),
    )

    links = list_share_links(user, shared_file.id)

    assert {link.id for link in links} == {permanent.id, expiring.id}
    with pytest.raises(NotFoundError):
        list_share_links(other_user, shared_file.id)


@pytest.mark.django_db
def test_delete_file_drops_its_links(user, shared_file):
    """Test that no link survives its file."""
    share_link = issue_share_link(user, shared_file.id, is_public=True)

    delete_file(user, shared_file.id)

    assert not ShareLink.objects.exists()
    with pytest.raises(NotFoundError):
        resolve_share_link(share_link.token)


@pytest.mark.django_db
def test_delete_folder_drops_links_of_contained_files(user):
    """Test that links of every file in the closure go with the folder."""
    folder = create_folder(user, 'Trip')
    child = create_folder(user, 'Day 1', parent_id=folder.id)
    inner = upload_file(user, name='a.jpg', content=b'a', folder_id=child.id)
    outside = upload_file(user, name='b.jpg', content=b'b')
    issue_share_link(user, inner.id, is_public=True)
    kept = issue_share_link(user, outside.id, is_public=True)

    delete_folder(user, folder.id)

    assert list(ShareLink.objects.all()) == [kept]


@pytest.mark.django_db
def test_drop_links_for_files(user, shared_file):
    """Test bulk removal by file IDs."""
    issue_share_link(user, shared_file.id)
    issue_share_link(user, shared_file.id)

    assert drop_links_for_files([shared_file.id]) == 2
    assert drop_links_for_files([shared_file.id]) == 0


@pytest.mark.django_db
def test_drop_links_for_files_in_batches(user, settings):
    """Test that links of many files are removed one batch at a time."""
    settings.DRIVE_DELETE_BATCH_SIZE = 1
    uploaded = [
        upload_file(user, name=f'{index}.jpg', content=b'x')
        for index in range(3)
    ]
    for file_instance in uploaded:
        issue_share_link(user, file_instance.id, is_public=True)
    kept = upload_file(user, name='kept.jpg', content=b'y')
    kept_link = issue_share_link(user, kept.id)

    dropped = drop_links_for_files(
        file_instance.id for file_instance in uploaded
    )

    assert dropped == 3
    assert list(ShareLink.objects.all()) == [kept_link]
