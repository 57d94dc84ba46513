"""Business logic for the folder/file namespace.

Each user owns a forest of folders; files hang off a folder or the
user's root. Mutations here must run inside ``owner_lock`` (the public
functions take it themselves), lookups run without locks.
"""

import logging
import uuid
from dataclasses import dataclass
from itertools import batched
from typing import Any, Final, Generic, TypeVar, final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from server.apps.drive.exceptions import (
    InconsistentNamespaceError,
    InvalidHierarchyError,
    NotFoundError,
)
from server.apps.drive.infrastructure.metadata import validate_name
from server.apps.drive.logic.locking import owner_lock
from server.apps.drive.logic.quota_operations import commit_usage
from server.apps.drive.models import File, Folder
from server.apps.sharing.logic.share_operations import drop_links_for_files

# User type for Django's dynamic user model
_User = Any

_ItemT = TypeVar('_ItemT')


@final
class _Unchanged:
    """Marker for move arguments the caller leaves alone."""

    def __repr__(self) -> str:
        return 'UNCHANGED'


UNCHANGED: Final = _Unchanged()

_ORDER_ASC: Final = 'asc'
_ORDER_DESC: Final = 'desc'

FILE_SORT_KEYS: Final = frozenset((
    'name',
    'size_bytes',
    'mime_type',
    'created_at',
    'updated_at',
))
FOLDER_SORT_KEYS: Final = frozenset(('name', 'created_at', 'updated_at'))

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class Page(Generic[_ItemT]):
    """One page of a listing."""

    items: list[_ItemT]
    total: int
    page: int
    page_size: int

    @property
    def has_next(self) -> bool:
        """Whether a later page holds more items."""
        return self.page * self.page_size < self.total


@final
@dataclass(frozen=True, slots=True)
class FolderDeletion:
    """What a cascading folder delete removed."""

    folders: int
    files: int
    released_bytes: int


def get_folder(user: _User, folder_id: uuid.UUID | str) -> Folder:
    """Get a folder owned by the user.

    Args:
        user: Expected owner.
        folder_id: Folder ID.

    Returns:
        Folder instance.

    Raises:
        NotFoundError: If the folder is absent or owned by another user.
    """
    try:
        return Folder.objects.get(id=folder_id, user=user)
    except (Folder.DoesNotExist, ValidationError) as error:
        raise NotFoundError(f'Folder not found: {folder_id}') from error


def get_file(user: _User, file_id: uuid.UUID | str) -> File:
    """Get a file owned by the user.

    Args:
        user: Expected owner.
        file_id: File ID.

    Returns:
        File instance.

    Raises:
        NotFoundError: If the file is absent or owned by another user.
    """
    try:
        return File.objects.get(id=file_id, user=user)
    except (File.DoesNotExist, ValidationError) as error:
        raise NotFoundError(f'File not found: {file_id}') from error


def create_folder(
    user: _User,
    name: str,
    parent_id: uuid.UUID | str | None = None,
) -> Folder:
    """Create a folder under a parent folder or at the user's root.

    Args:
        user: Owner of the new folder.
        name: Folder name, duplicates within a parent are allowed.
        parent_id: Parent folder ID, None for the root.

    Returns:
        Created Folder instance.

    Raises:
        ValidationError: If the name is invalid.
        NotFoundError: If the parent is absent or owned by another user.
    """
    cleaned_name = validate_name(name)

    with owner_lock(user):
        parent = get_folder(user, parent_id) if parent_id is not None else None
        folder = Folder.objects.create(
            user=user,
            name=cleaned_name,
            parent=parent,
        )

    logger.info('Folder created: %s (ID: %s)', folder.name, folder.id)
    return folder


def create_file_record(  # noqa: WPS211
    user: _User,
    *,
    name: str,
    size_bytes: int,
    mime_type: str,
    storage_key: str,
    folder_id: uuid.UUID | str | None = None,
) -> File:
    """Insert the metadata record of an uploaded payload.

    Must be called inside ``owner_lock`` together with the quota commit
    for the same bytes.

    Args:
        user: Owner of the file.
        name: Validated file name.
        size_bytes: Payload size.
        mime_type: MIME type.
        storage_key: Key the payload was stored under.
        folder_id: Containing folder ID, None for the root.

    Returns:
        Created File instance.

    Raises:
        NotFoundError: If the folder is absent or owned by another user.
    """
    folder = get_folder(user, folder_id) if folder_id is not None else None
    file_instance = File.objects.create(
        user=user,
        name=name,
        size_bytes=size_bytes,
        mime_type=mime_type,
        storage_key=storage_key,
        folder=folder,
    )
    logger.info(
        'File record created in database: %s (ID: %s)',
        storage_key,
        file_instance.id,
    )
    return file_instance


def _get_new_parent(user: _User, parent_id: uuid.UUID | str) -> Folder:
    try:
        return get_folder(user, parent_id)
    except NotFoundError as error:
        raise InvalidHierarchyError(
            f'Target folder does not exist: {parent_id}',
        ) from error


def _ensure_not_descendant(
    user: _User,
    folder_id: uuid.UUID,
    new_parent: Folder,
) -> None:
    """Walk from the new parent up to the root looking for the folder.

    Raises:
        InvalidHierarchyError: If the folder is the new parent or one of
            its ancestors.
        InconsistentNamespaceError: If the ancestor chain loops or leaves
            the user's namespace.
    """
    visited: set[uuid.UUID] = set()
    current_id: uuid.UUID | None = new_parent.id
    while current_id is not None:
        if current_id == folder_id:
            raise InvalidHierarchyError(
                f'Cannot move folder {folder_id} into itself '
                'or one of its descendants',
            )
        if current_id in visited:
            raise InconsistentNamespaceError(
                f'Folder ancestry loops at {current_id}',
            )
        visited.add(current_id)
        try:
            current_id = Folder.objects.filter(
                id=current_id,
                user=user,
            ).values_list('parent_id', flat=True).get()
        except Folder.DoesNotExist as error:
            raise InconsistentNamespaceError(
                f'Folder ancestry leaves the namespace at {current_id}',
            ) from error


def move_folder(
    user: _User,
    folder_id: uuid.UUID | str,
    *,
    name: str | _Unchanged = UNCHANGED,
    parent_id: uuid.UUID | str | None | _Unchanged = UNCHANGED,
) -> Folder:
    """Rename a folder and/or move it under another parent.

    Args:
        user: Owner of the folder.
        folder_id: Folder to change.
        name: New name, UNCHANGED to keep it.
        parent_id: New parent ID, None for the root, UNCHANGED to keep it.

    Returns:
        Updated Folder instance.

    Raises:
        ValidationError: If the new name is invalid.
        NotFoundError: If the folder is absent or owned by another user.
        InvalidHierarchyError: If the new parent doesn't exist or the
            move would make the folder its own ancestor.
    """
    cleaned_name = name if isinstance(name, _Unchanged) else validate_name(name)

    with owner_lock(user):
        folder = get_folder(user, folder_id)

        if not isinstance(parent_id, _Unchanged):
            if parent_id is None:
                folder.parent = None
            else:
                new_parent = _get_new_parent(user, parent_id)
                _ensure_not_descendant(user, folder.id, new_parent)
                folder.parent = new_parent

        if not isinstance(cleaned_name, _Unchanged):
            folder.name = cleaned_name

        folder.save(update_fields=['name', 'parent', 'updated_at'])

    logger.info(
        'Folder updated: %s (ID: %s, parent: %s)',
        folder.name,
        folder.id,
        folder.parent_id,
    )
    return folder


def move_file(
    user: _User,
    file_id: uuid.UUID | str,
    *,
    name: str | _Unchanged = UNCHANGED,
    folder_id: uuid.UUID | str | None | _Unchanged = UNCHANGED,
) -> File:
    """Rename a file and/or move it to another folder.

    Only metadata changes; the storage key stays as assigned at upload.

    Args:
        user: Owner of the file.
        file_id: File to change.
        name: New name, UNCHANGED to keep it.
        folder_id: New folder ID, None for the root, UNCHANGED to keep it.

    Returns:
        Updated File instance.

    Raises:
        ValidationError: If the new name is invalid.
        NotFoundError: If the file is absent or owned by another user.
        InvalidHierarchyError: If the target folder doesn't exist.
    """
    cleaned_name = name if isinstance(name, _Unchanged) else validate_name(name)

    with owner_lock(user):
        file_instance = get_file(user, file_id)

        if not isinstance(folder_id, _Unchanged):
            file_instance.folder = (
                None if folder_id is None else _get_new_parent(user, folder_id)
            )

        if not isinstance(cleaned_name, _Unchanged):
            file_instance.name = cleaned_name

        file_instance.save(update_fields=['name', 'folder', 'updated_at'])

    logger.info(
        'File updated: %s (ID: %s, folder: %s)',
        file_instance.name,
        file_instance.id,
        file_instance.folder_id,
    )
    return file_instance


def _paginate(
    queryset: QuerySet[Any],
    *,
    allowed_keys: frozenset[str],
    page: int,
    page_size: int,
    sort_by: str,
    order: str,
) -> Page[Any]:
    if page < 1:
        raise ValidationError('Page numbers start at 1')
    if page_size < 1:
        raise ValidationError('Page size must be positive')
    if sort_by not in allowed_keys:
        raise ValidationError(
            f'Cannot sort by {sort_by!r}, '
            f'expected one of: {", ".join(sorted(allowed_keys))}',
        )
    if order not in {_ORDER_ASC, _ORDER_DESC}:
        raise ValidationError(f'Order must be "asc" or "desc", not {order!r}')

    # ID breaks ties so equal sort values keep a stable order across pages
    prefix = '-' if order == _ORDER_DESC else ''
    ordered = queryset.order_by(f'{prefix}{sort_by}', f'{prefix}id')

    offset = (page - 1) * page_size
    return Page(
        items=list(ordered[offset:offset + page_size]),
        total=queryset.count(),
        page=page,
        page_size=page_size,
    )


def list_files(  # noqa: WPS211
    user: _User,
    folder_id: uuid.UUID | str | None = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = 'created_at',
    order: str = _ORDER_DESC,
) -> Page[File]:
    """List one page of the files directly inside a folder.

    Pages past the end are empty rather than an error.

    Args:
        user: Owner of files.
        folder_id: Folder to list, None for the user's root.
        page: 1-based page number.
        page_size: Items per page.
        sort_by: One of FILE_SORT_KEYS.
        order: 'asc' or 'desc'.

    Returns:
        Page of File instances.

    Raises:
        ValidationError: If paging or sorting arguments are invalid.
    """
    logger.debug('Listing files: user=%s folder=%s', user.pk, folder_id)
    return _paginate(
        File.objects.filter(user=user, folder_id=folder_id),
        allowed_keys=FILE_SORT_KEYS,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )


def list_folders(  # noqa: WPS211
    user: _User,
    parent_id: uuid.UUID | str | None = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = 'name',
    order: str = _ORDER_ASC,
) -> Page[Folder]:
    """List one page of the folders directly inside a parent folder.

    Args:
        user: Owner of folders.
        parent_id: Parent folder, None for the user's root.
        page: 1-based page number.
        page_size: Items per page.
        sort_by: One of FOLDER_SORT_KEYS.
        order: 'asc' or 'desc'.

    Returns:
        Page of Folder instances.

    Raises:
        ValidationError: If paging or sorting arguments are invalid.
    """
    logger.debug('Listing folders: user=%s parent=%s', user.pk, parent_id)
    return _paginate(
        Folder.objects.filter(user=user, parent_id=parent_id),
        allowed_keys=FOLDER_SORT_KEYS,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )


def get_delete_batch_size() -> int:
    """Get how many IDs one cascade query may bind.

    Returns:
        Batch size from settings or default of 500.
    """
    return getattr(settings, 'DRIVE_DELETE_BATCH_SIZE', 500)


def collect_descendant_ids(
    user: _User,
    folder_id: uuid.UUID,
) -> list[uuid.UUID]:
    """Collect a folder and every folder below it.

    Breadth-first without recursion so deep trees cannot exhaust the
    stack; each level is queried in batches so wide trees stay under
    the database's bound-parameter limit. Parents always come before
    their children in the result.

    Args:
        user: Owner of the folders.
        folder_id: Root of the subtree.

    Returns:
        IDs of the folder and all its descendants.

    Raises:
        InconsistentNamespaceError: If a folder is reached twice.
    """
    batch_size = get_delete_batch_size()
    closure = [folder_id]
    seen = {folder_id}
    frontier = [folder_id]

    while frontier:
        children: list[uuid.UUID] = []
        for frontier_batch in batched(frontier, batch_size):
            children.extend(
                Folder.objects.filter(
                    user=user,
                    parent_id__in=frontier_batch,
                ).values_list('id', flat=True),
            )
        for child_id in children:
            if child_id in seen:
                raise InconsistentNamespaceError(
                    f'Folder {child_id} reached twice below {folder_id}',
                )
            seen.add(child_id)
        closure.extend(children)
        frontier = children

    return closure


def delete_folder(user: _User, folder_id: uuid.UUID | str) -> FolderDeletion:
    """Delete a folder with every folder and file below it.

    Share links of the removed files go in the same transaction and
    their bytes are released from the quota. Payloads are deleted from
    storage after commit by the File post_delete handler. Every query
    binds at most ``DRIVE_DELETE_BATCH_SIZE`` IDs, whatever the size of
    the tree.

    Args:
        user: Owner of the folder.
        folder_id: Folder to delete.

    Returns:
        Counts of what was removed.

    Raises:
        NotFoundError: If the folder is absent or owned by another user.
    """
    batch_size = get_delete_batch_size()

    with owner_lock(user):
        folder = get_folder(user, folder_id)
        closure = collect_descendant_ids(user, folder.id)

        file_count = 0
        released_bytes = 0
        for folder_batch in batched(closure, batch_size):
            contained = list(
                File.objects.filter(
                    user=user,
                    folder_id__in=folder_batch,
                ).values_list('id', 'size_bytes'),
            )
            for file_batch in batched(contained, batch_size):
                file_ids = [file_id for file_id, _ in file_batch]
                drop_links_for_files(file_ids)
                File.objects.filter(id__in=file_ids).delete()
                file_count += len(file_ids)
                released_bytes += sum(size for _, size in file_batch)

        commit_usage(user, -released_bytes)

        # Deepest levels first, so no batch cascades into the next one
        for folder_batch in batched(reversed(closure), batch_size):
            Folder.objects.filter(id__in=folder_batch).delete()

    logger.info(
        'Folder deleted: ID=%s (%d folders, %d files, %d bytes released)',
        folder.id,
        len(closure),
        file_count,
        released_bytes,
    )
    return FolderDeletion(
        folders=len(closure),
        files=file_count,
        released_bytes=released_bytes,
    )
