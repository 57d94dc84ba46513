"""Tests for ShareLink model."""

from datetime import timedelta

import pytest
from django.utils import timezone

from server.apps.sharing.models import ShareLink


@pytest.fixture
def share_link(user, shared_file):
    """Private link for two invitees."""
    return ShareLink.objects.create(
        file=shared_file,
        user=user,
        token='token-for-tests',
        allowed_emails=['friend@example.com', 'family@example.com'],
    )


@pytest.mark.django_db
def test_link_without_expiry_never_expires(share_link):
    """Test permanent links."""
    assert not share_link.is_expired()


@pytest.mark.django_db
def test_link_expires_at_its_deadline(share_link):
    """Test the expiry boundary."""
    now = timezone.now()
    share_link.expires_at = now

    assert share_link.is_expired(now)
    assert not share_link.is_expired(now - timedelta(seconds=1))


@pytest.mark.django_db
def test_private_link_access(share_link):
    """Test email allow-list matching."""
    assert share_link.grants_access_to('friend@example.com')
    assert share_link.grants_access_to('  Friend@Example.COM ')
    assert not share_link.grants_access_to('stranger@example.com')
    assert not share_link.grants_access_to(None)


@pytest.mark.django_db
def test_public_link_access(share_link):
    """Test that public links admit anyone."""
    share_link.is_public = True

    assert share_link.grants_access_to(None)
    assert share_link.grants_access_to('stranger@example.com')


@pytest.mark.django_db
def test_links_deleted_with_user_file(share_link, shared_file):
    """Test the database cascade from file to links."""
    shared_file.delete()

    assert not ShareLink.objects.exists()
