"""Tests for quota operations business logic."""

import pytest

from server.apps.drive.exceptions import QuotaExceededError
from server.apps.drive.logic.quota_operations import (
    Usage,
    calculate_usage,
    check_quota,
    commit_usage,
    get_or_create_quota,
    get_quota_limit,
    get_usage,
    recalculate_usage,
)
from server.apps.drive.models import UserQuota


@pytest.mark.django_db
def test_get_or_create_quota_creates_new(user):
    """Test get_or_create_quota creates quota when none exists."""
    assert not UserQuota.objects.filter(user=user).exists()

    quota = get_or_create_quota(user)

    assert quota.user == user
    assert quota.used_bytes == 0


@pytest.mark.django_db
def test_get_or_create_quota_returns_existing(user):
    """Test get_or_create_quota returns existing quota."""
    UserQuota.objects.create(user=user, used_bytes=1000)

    assert get_or_create_quota(user).used_bytes == 1000


def test_quota_limit_from_settings(settings):
    """Test that the limit follows DRIVE_QUOTA_BYTES."""
    settings.DRIVE_QUOTA_BYTES = 2048

    assert get_quota_limit() == 2048


@pytest.mark.django_db
def test_get_usage(user, small_quota):
    """Test the usage snapshot."""
    UserQuota.objects.create(user=user, used_bytes=250)

    usage = get_usage(user)

    assert usage == Usage(used_bytes=250, total_bytes=1000)
    assert usage.available_bytes == 750
    assert usage.used_percentage == 25.0


def test_usage_with_zero_quota():
    """Test that a zero quota reports 0% instead of dividing by zero."""
    usage = Usage(used_bytes=0, total_bytes=0)

    assert usage.used_percentage == 0.0
    assert usage.available_bytes == 0


@pytest.mark.django_db
def test_check_quota_passes_at_exact_limit(user, small_quota):
    """Test check_quota doesn't raise when landing on the limit."""
    UserQuota.objects.create(user=user, used_bytes=400)

    usage = check_quota(user, 600)

    assert usage.used_bytes == 400


@pytest.mark.django_db
def test_check_quota_raises_when_exceeded(user, small_quota):
    """Test check_quota raises with the numbers behind the decision."""
    UserQuota.objects.create(user=user, used_bytes=700)

    with pytest.raises(QuotaExceededError) as exc_info:
        check_quota(user, 400)

    assert exc_info.value.quota_bytes == 1000
    assert exc_info.value.used_bytes == 700
    assert exc_info.value.required_bytes == 400
    assert '300 bytes available' in str(exc_info.value)


@pytest.mark.django_db
def test_commit_usage_adds_and_releases(user):
    """Test positive and negative deltas."""
    assert commit_usage(user, 500) == 500
    assert commit_usage(user, -200) == 300
    assert UserQuota.objects.get(user=user).used_bytes == 300


@pytest.mark.django_db
def test_commit_usage_clamps_at_zero(user):
    """Test that releasing more than used never goes negative."""
    commit_usage(user, 100)

    assert commit_usage(user, -500) == 0


@pytest.mark.django_db
def test_recalculate_usage(user, other_user, make_file):
    """Test that usage is rebuilt from the user's files only."""
    make_file('a.txt', size_bytes=100)
    make_file('b.txt', size_bytes=250)
    make_file('c.txt', size_bytes=999, owner=other_user)
    UserQuota.objects.create(user=user, used_bytes=5)

    assert calculate_usage(user) == 350
    assert recalculate_usage(user) == 350
    assert UserQuota.objects.get(user=user).used_bytes == 350


@pytest.mark.django_db
def test_recalculate_usage_without_files(user):
    """Test recalculation for a user with nothing stored."""
    assert recalculate_usage(user) == 0
