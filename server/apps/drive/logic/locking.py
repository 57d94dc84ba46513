"""Per-owner critical sections.

Every structural change to one user's namespace (create, move, delete
of files and folders) and every quota commit runs inside
``owner_lock``. The lock is the user's ``UserQuota`` row taken with
``SELECT ... FOR UPDATE`` in a transaction, so different owners never
wait for each other and reads stay lock-free.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from django.db import transaction

from server.apps.drive.models import UserQuota

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@contextmanager
def owner_lock(user: _User) -> Iterator[None]:
    """Serialize structural changes for one owner.

    Storage I/O must not happen inside the block: upload payloads
    before entering and delete them after commit.

    Args:
        user: Owner whose namespace is about to change.

    Yields:
        Nothing, the block runs inside the owner's transaction.
    """
    with transaction.atomic():
        # Row-level locking prevents check/act races on one owner's data
        UserQuota.objects.select_for_update().get_or_create(user=user)
        logger.debug('Acquired owner lock for user %s', user.pk)
        yield
