"""Business logic for the folder tree.

Folders form a per-owner tree through ``parent`` links and carry a
materialized ``path``. Every structural mutation (create, rename,
move, delete, duplicate) runs in one transaction holding the owner's
lock, so concurrent mutations of the same tree are serialized.
"""

import dataclasses
import logging
from collections.abc import Iterator
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from drive.apps.storage.exceptions import (
    DuplicateNameError,
    FolderNotEmptyError,
    ParentFolderNotFoundError,
)
from drive.apps.storage.infrastructure.storage import get_blob_storage
from drive.apps.storage.logic.quota_operations import (
    lock_owner,
    release_storage,
)
from drive.apps.storage.models import DEFAULT_FOLDER_COLOR, File, Folder, Note
from drive.apps.storage.validators import (
    FOLDER_NAME_MAX_LENGTH,
    clean_name,
    validate_color,
    validate_description,
    validate_folder_name,
)

# User type for Django's dynamic user model
_User = Any

# Filter value selecting top-level folders
ROOT: Final = 'root'

_PATH_SEPARATOR: Final = '/'

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class FolderContents:
    """A folder with its direct contents."""

    folder: Folder
    subfolders: list[Folder]
    files: list[File]
    notes: list[Note]


@dataclasses.dataclass(frozen=True)
class FolderDeletion:
    """What a folder delete removed."""

    folders: int
    files: int
    notes: int
    released_bytes: int


def get_owned_folder(user: _User, folder_id: int) -> Folder:
    """Fetch a folder owned by ``user``.

    Args:
        user: Owner.
        folder_id: Folder ID.

    Returns:
        Folder instance.

    Raises:
        Folder.DoesNotExist: If absent or owned by someone else.
    """
    return Folder.objects.get(id=folder_id, user=user)


def resolve_target_folder(user: _User, folder_id: int | None) -> Folder | None:
    """Resolve an optional parent/target folder for ``user``.

    Args:
        user: Owner.
        folder_id: Folder ID, or None for root.

    Returns:
        Folder instance, or None for root.

    Raises:
        ParentFolderNotFoundError: If the ID does not resolve to a
            folder of the same owner.
    """
    if folder_id is None:
        return None
    try:
        return get_owned_folder(user, folder_id)
    except Folder.DoesNotExist as error:
        raise ParentFolderNotFoundError(
            f'Parent folder not found: {folder_id}',
        ) from error


def refresh_item_count(folder_id: int | None) -> None:
    """Recount direct subfolders, files and notes of a folder.

    Args:
        folder_id: Folder to recount; None (root) is ignored.
    """
    if folder_id is None:
        return

    item_count = (
        Folder.objects.filter(parent_id=folder_id).count()
        + File.objects.filter(folder_id=folder_id).count()
        + Note.objects.filter(folder_id=folder_id).count()
    )
    Folder.objects.filter(id=folder_id).update(item_count=item_count)


def create_folder(  # noqa: WPS211
    user: _User,
    name: str,
    parent_id: int | None = None,
    *,
    description: str = '',
    color: str | None = None,
) -> Folder:
    """Create a folder at root or under ``parent_id``.

    Args:
        user: Owner of the new folder.
        name: Folder name.
        parent_id: Parent folder ID, or None for root.
        description: Optional description.
        color: Optional hex color.

    Returns:
        Created Folder instance.

    Raises:
        ValidationError: If name, description or color are invalid.
        DuplicateNameError: If a sibling already has this name.
        ParentFolderNotFoundError: If the parent does not resolve.
    """
    name = clean_name(name)
    description = description.strip()
    validate_description(description)
    color = color or DEFAULT_FOLDER_COLOR
    validate_color(color)

    with transaction.atomic():
        lock_owner(user)
        parent = resolve_target_folder(user, parent_id)
        _ensure_unique_name(user, parent, name)

        folder = Folder.objects.create(
            user=user,
            name=name,
            description=description,
            parent=parent,
            path=_build_path(parent, name),
            color=color,
            item_count=0,
        )
        refresh_item_count(folder.parent_id)

    logger.info(
        'Folder created: %s (ID: %d, user: %s)',
        folder.path,
        folder.id,
        user.username,
    )
    return folder


def get_folder(user: _User, folder_id: int) -> FolderContents:
    """Get a folder together with its direct contents.

    Args:
        user: Owner.
        folder_id: Folder ID.

    Returns:
        FolderContents for the folder.

    Raises:
        Folder.DoesNotExist: If absent or owned by someone else.
    """
    folder = get_owned_folder(user, folder_id)
    return FolderContents(
        folder=folder,
        subfolders=list(Folder.objects.filter(user=user, parent=folder)),
        files=list(File.objects.filter(user=user, folder=folder)),
        notes=list(Note.objects.filter(user=user, folder=folder)),
    )


def list_folders(
    user: _User,
    *,
    parent: int | str | None = None,
    search: str | None = None,
    favorite: bool = False,
) -> QuerySet[Folder]:
    """List a user's folders, newest first.

    Args:
        user: Owner.
        parent: ``ROOT`` for top-level folders, a folder ID for its
            children, None for no parent filter.
        search: Case-insensitive substring of the folder name.
        favorite: Only favorite folders.

    Returns:
        QuerySet of matching folders.
    """
    folders = Folder.objects.filter(user=user)

    if parent == ROOT:
        folders = folders.filter(parent__isnull=True)
    elif parent is not None:
        folders = folders.filter(parent_id=parent)

    if search:
        folders = folders.filter(name__icontains=search)

    if favorite:
        folders = folders.filter(is_favorite=True)

    return folders.order_by('-created_at')


def rename_folder(user: _User, folder_id: int, new_name: str) -> Folder:
    """Rename a folder and fix up the paths of its subtree.

    Args:
        user: Owner.
        folder_id: Folder to rename.
        new_name: New folder name.

    Returns:
        Renamed Folder instance.

    Raises:
        Folder.DoesNotExist: If absent or owned by someone else.
        ValidationError: If the new name is invalid.
        DuplicateNameError: If a sibling already has the new name.
    """
    new_name = clean_name(new_name)

    with transaction.atomic():
        lock_owner(user)
        folder = get_owned_folder(user, folder_id)
        if new_name == folder.name:
            return folder

        _ensure_unique_name(user, folder.parent, new_name, exclude_id=folder.id)

        old_path = folder.path
        head, separator, _ = old_path.rpartition(_PATH_SEPARATOR)
        folder.name = new_name
        folder.path = f'{head}{separator}{new_name}'
        folder.save(update_fields=['name', 'path', 'updated_at'])

        updated = _rewrite_descendant_paths(user, old_path, folder.path)

    logger.info(
        'Folder renamed: %s -> %s (ID: %d, %d descendants updated)',
        old_path,
        folder.path,
        folder.id,
        updated,
    )
    return folder


def move_folder(
    user: _User,
    folder_id: int,
    new_parent_id: int | None,
) -> Folder:
    """Move a folder under another parent (or to root).

    Args:
        user: Owner.
        folder_id: Folder to move.
        new_parent_id: Destination parent ID, or None for root.

    Returns:
        Moved Folder instance.

    Raises:
        Folder.DoesNotExist: If the folder is absent or not owned.
        ParentFolderNotFoundError: If the destination does not resolve.
        ValidationError: If the destination is the folder itself or
            one of its descendants.
        DuplicateNameError: If the destination already has a child
            with the same name.
    """
    with transaction.atomic():
        lock_owner(user)
        folder = get_owned_folder(user, folder_id)
        new_parent = resolve_target_folder(user, new_parent_id)

        if new_parent_id == folder.parent_id:
            return folder

        if new_parent is not None and _is_within(new_parent, folder):
            raise ValidationError(
                'Cannot move a folder into itself or one of its descendants',
            )

        _ensure_unique_name(user, new_parent, folder.name, exclude_id=folder.id)

        old_parent_id = folder.parent_id
        old_path = folder.path
        folder.parent = new_parent
        folder.path = _build_path(new_parent, folder.name)
        folder.save(update_fields=['parent', 'path', 'updated_at'])

        updated = _rewrite_descendant_paths(user, old_path, folder.path)
        refresh_item_count(old_parent_id)
        refresh_item_count(folder.parent_id)

    logger.info(
        'Folder moved: %s -> %s (ID: %d, %d descendants updated)',
        old_path,
        folder.path,
        folder.id,
        updated,
    )
    return folder


def update_folder(  # noqa: WPS211
    user: _User,
    folder_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    color: str | None = None,
    is_favorite: bool | None = None,
) -> Folder:
    """Update folder metadata; a new name goes through ``rename_folder``.

    All values are validated before anything changes, and the rename
    and the metadata update commit together.

    Returns:
        Updated Folder instance.
    """
    if name is not None:
        name = clean_name(name)
    if description is not None:
        description = description.strip()
        validate_description(description)
    if color:
        validate_color(color)

    with transaction.atomic():
        if name is not None:
            rename_folder(user, folder_id, name)

        folder = get_owned_folder(user, folder_id)
        update_fields = ['updated_at']

        if description is not None:
            folder.description = description
            update_fields.append('description')

        if color:
            folder.color = color
            update_fields.append('color')

        if is_favorite is not None:
            folder.is_favorite = is_favorite
            update_fields.append('is_favorite')

        folder.save(update_fields=update_fields)
    return folder


def count_folder_items(user: _User, folder: Folder) -> int:
    """Count subfolders, files and notes anywhere under ``folder``.

    Args:
        user: Owner.
        folder: Folder whose subtree is counted.

    Returns:
        Number of items in the subtree, not counting the folder.
    """
    return _count_subtree_items(_collect_subtree_ids(user, folder.id))


def delete_folder(
    user: _User,
    folder_id: int,
    *,
    force: bool = False,
) -> FolderDeletion:
    """Delete a folder and, when forced, everything under it.

    The subtree is removed children-first. For each folder, the
    stored bytes of its files are discarded, their sizes are
    released from the ledger, then file, note and folder records are
    deleted.

    Args:
        user: Owner.
        folder_id: Folder to delete.
        force: Delete even when the folder has contents.

    Returns:
        FolderDeletion with counts of removed items and released bytes.

    Raises:
        Folder.DoesNotExist: If absent or owned by someone else.
        FolderNotEmptyError: If the folder has contents and force is
            False. Nothing is deleted in that case.
    """
    with transaction.atomic():
        lock_owner(user)
        folder = get_owned_folder(user, folder_id)
        subtree_ids = _collect_subtree_ids(user, folder.id)

        item_count = _count_subtree_items(subtree_ids)
        if item_count and not force:
            logger.info(
                'Refusing to delete non-empty folder: %s (%d items)',
                folder.path,
                item_count,
            )
            raise FolderNotEmptyError(folder.id, item_count)

        deletion = _delete_subtree(user, subtree_ids)
        refresh_item_count(folder.parent_id)

    logger.info(
        'Folder deleted: %s (ID: %d, folders: %d, files: %d, notes: %d, '
        'released: %d bytes)',
        folder.path,
        folder_id,
        deletion.folders,
        deletion.files,
        deletion.notes,
        deletion.released_bytes,
    )
    return deletion


def duplicate_folder(user: _User, folder_id: int) -> Folder:
    """Create an empty sibling copy of a folder.

    The copy is named ``"<name> (Copy)"``, or ``"<name> (Copy N)"``
    with the smallest N >= 2 that is free among the siblings. The
    name is trimmed so the copy stays within the name limit.
    Description and color are copied; contents are not.

    Args:
        user: Owner.
        folder_id: Folder to duplicate.

    Returns:
        The new Folder instance.

    Raises:
        Folder.DoesNotExist: If absent or owned by someone else.
    """
    with transaction.atomic():
        lock_owner(user)
        original = get_owned_folder(user, folder_id)
        duplicate_name = _next_copy_name(user, original)
        validate_folder_name(duplicate_name)

        duplicate = Folder.objects.create(
            user=user,
            name=duplicate_name,
            description=original.description,
            parent=original.parent,
            path=_build_path(original.parent, duplicate_name),
            color=original.color,
        )
        refresh_item_count(duplicate.parent_id)

    logger.info(
        'Folder duplicated: %s -> %s (ID: %d)',
        original.path,
        duplicate.path,
        duplicate.id,
    )
    return duplicate


def get_full_path(user: _User, folder_id: int) -> str:
    """Resolve a folder's path by walking its ``parent`` links.

    Under a consistent tree this equals the stored ``path``.

    Args:
        user: Owner.
        folder_id: Folder ID.

    Returns:
        ``/``-joined names from the root down to the folder.

    Raises:
        Folder.DoesNotExist: If absent or owned by someone else.
    """
    folder = get_owned_folder(user, folder_id)
    names = [ancestor.name for ancestor in _walk_to_root(folder)]
    return _PATH_SEPARATOR.join(reversed(names))


def _build_path(parent: Folder | None, name: str) -> str:
    if parent is None:
        return name
    return parent.build_child_path(name)


def _ensure_unique_name(
    user: _User,
    parent: Folder | None,
    name: str,
    exclude_id: int | None = None,
) -> None:
    """Raise DuplicateNameError on an exact sibling name match."""
    siblings = Folder.objects.filter(user=user, parent=parent, name=name)
    if exclude_id is not None:
        siblings = siblings.exclude(id=exclude_id)

    # Some backends compare case-insensitively; names are case-sensitive
    if any(sibling.name == name for sibling in siblings):
        raise DuplicateNameError(name, parent.path if parent else None)


def _next_copy_name(user: _User, original: Folder) -> str:
    sibling_names = set(
        Folder.objects.filter(
            user=user,
            parent=original.parent,
        ).values_list('name', flat=True),
    )

    counter = 1
    candidate = _copy_name(original.name, counter)
    while candidate in sibling_names:
        counter += 1
        candidate = _copy_name(original.name, counter)
    return candidate


def _copy_name(name: str, counter: int) -> str:
    """Append the copy suffix, trimming the name to stay within limits."""
    suffix = ' (Copy)' if counter == 1 else f' (Copy {counter})'
    return f'{name[:FOLDER_NAME_MAX_LENGTH - len(suffix)]}{suffix}'


def _rewrite_descendant_paths(user: _User, old_path: str, new_path: str) -> int:
    """Replace the ``old_path/`` prefix with ``new_path/`` in a subtree.

    Returns:
        Number of descendant folders updated.
    """
    old_prefix = f'{old_path}{_PATH_SEPARATOR}'
    new_prefix = f'{new_path}{_PATH_SEPARATOR}'

    descendants = [
        descendant
        for descendant in Folder.objects.filter(
            user=user,
            path__startswith=old_prefix,
        )
        # LIKE is case-insensitive on some backends
        if descendant.path.startswith(old_prefix)
    ]
    for descendant in descendants:
        descendant.path = new_prefix + descendant.path[len(old_prefix):]

    Folder.objects.bulk_update(descendants, ['path'])
    return len(descendants)


def _walk_to_root(folder: Folder) -> Iterator[Folder]:
    """Yield ``folder`` and then each ancestor up to the root."""
    seen: set[int] = set()
    current: Folder | None = folder
    while current is not None:
        if current.id in seen:
            raise ValueError(f'Folder tree has a cycle at ID {current.id}')
        seen.add(current.id)
        yield current
        current = current.parent


def _is_within(candidate: Folder, folder: Folder) -> bool:
    """Whether ``candidate`` is ``folder`` or one of its descendants."""
    return any(
        ancestor.id == folder.id
        for ancestor in _walk_to_root(candidate)
    )


def _collect_subtree_ids(user: _User, root_id: int) -> list[int]:
    """IDs of a folder and all its descendants, parents before children.

    Uses an explicit stack so depth is not bounded by recursion.
    """
    ordered: list[int] = []
    stack = [root_id]
    while stack:
        current_id = stack.pop()
        ordered.append(current_id)
        stack.extend(
            Folder.objects.filter(
                user=user,
                parent_id=current_id,
            ).values_list('id', flat=True),
        )
    return ordered


def _count_subtree_items(subtree_ids: list[int]) -> int:
    """Count items in a subtree; the first ID is the subtree root."""
    subfolders = len(subtree_ids) - 1
    files = File.objects.filter(folder_id__in=subtree_ids).count()
    notes = Note.objects.filter(folder_id__in=subtree_ids).count()
    return subfolders + files + notes


def _delete_subtree(user: _User, subtree_ids: list[int]) -> FolderDeletion:
    storage = get_blob_storage()
    deleted_files = 0
    deleted_notes = 0
    released_bytes = 0

    # Reversed pre-order: every folder comes after all of its descendants
    for folder_id in reversed(subtree_ids):
        contained_files = list(
            File.objects.filter(user=user, folder_id=folder_id),
        )
        for file_instance in contained_files:
            storage.discard(file_instance.file.name)

        folder_bytes = sum(
            file_instance.size_bytes for file_instance in contained_files
        )
        if folder_bytes:
            release_storage(user, folder_bytes)

        File.objects.filter(
            id__in=[file_instance.id for file_instance in contained_files],
        ).delete()

        notes = Note.objects.filter(user=user, folder_id=folder_id)
        deleted_notes += notes.count()
        notes.delete()

        Folder.objects.filter(id=folder_id).delete()

        deleted_files += len(contained_files)
        released_bytes += folder_bytes

    return FolderDeletion(
        folders=len(subtree_ids),
        files=deleted_files,
        notes=deleted_notes,
        released_bytes=released_bytes,
    )
