"""Business logic for file operations.

Every operation that changes stored bytes keeps the quota ledger in
step: uploads and duplicates reserve before committing records,
deletes release after the bytes are gone.
"""

import dataclasses
import logging
from collections.abc import Sequence
from typing import Any, BinaryIO

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.base import File as DjangoFile
from django.core.paginator import Page, Paginator
from django.db import transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone

from drive.apps.storage.exceptions import QuotaExceededError
from drive.apps.storage.infrastructure.metadata import (
    build_copy_name,
    calculate_checksum,
    classify_file_type,
    detect_mime_type,
    extract_filename,
    generate_storage_key,
    get_file_size,
    validate_storage_path,
)
from drive.apps.storage.infrastructure.storage import get_blob_storage
from drive.apps.storage.logic.folder_operations import (
    ROOT,
    refresh_item_count,
    resolve_target_folder,
)
from drive.apps.storage.logic.quota_operations import (
    lock_owner,
    release_storage,
    reserve_storage,
)
from drive.apps.storage.logic.tag_operations import resolve_tags
from drive.apps.storage.models import File
from drive.apps.storage.validators import (
    validate_description,
    validate_file_name,
)

# User type for Django's dynamic user model
_User = Any

_Upload = BinaryIO | DjangoFile

# Sentinel for "folder not given" in update_file (None means root)
_UNSET: Any = object()

logger = logging.getLogger(__name__)


def upload_files(  # noqa: WPS210, WPS211
    user: _User,
    file_objs: Sequence[_Upload],
    folder_id: int | None = None,
    *,
    tags: Sequence[str] | str = (),
    description: str = '',
) -> list[File]:
    """Upload a batch of files into a folder (or root).

    The total size of the batch is reserved once. If the reservation
    fails nothing is stored and the incoming uploads are discarded.
    If storing or recording fails later, bytes already stored are
    removed and the reservation is released.

    Args:
        user: Owner of the files.
        file_objs: Incoming file-like objects (Django uploads or
            ``ContentFile`` instances with a name).
        folder_id: Target folder ID, or None for root.
        tags: Tag names applied to every file.
        description: Description applied to every file.

    Returns:
        Created File instances, in input order.

    Raises:
        ValidationError: If the batch is empty or too large, or a file
            name or the description is invalid.
        ParentFolderNotFoundError: If the target folder does not resolve.
        QuotaExceededError: If the batch does not fit in the quota.
    """
    _validate_batch(file_objs)
    description = description.strip()
    validate_description(description)
    folder = resolve_target_folder(user, folder_id)

    # Metadata is read before the bytes are handed to storage
    incoming = [_inspect_upload(file_obj) for file_obj in file_objs]
    total_size = sum(upload.size_bytes for upload in incoming)

    try:
        reserve_storage(user, total_size)
    except QuotaExceededError:
        _discard_incoming(file_objs)
        raise

    storage = get_blob_storage()
    saved_names: list[str] = []
    try:
        for upload in incoming:
            saved_names.append(_store_bytes(user, storage, upload))

        with transaction.atomic():
            lock_owner(user)
            # The target may have been removed since it was first resolved
            folder = resolve_target_folder(user, folder_id)
            tag_objects = resolve_tags(user, tags)
            created = [
                _create_record(
                    user,
                    upload,
                    saved_name,
                    folder=folder,
                    description=description,
                    tag_objects=tag_objects,
                )
                for upload, saved_name in zip(
                    incoming,
                    saved_names,
                    strict=True,
                )
            ]
            refresh_item_count(folder_id)
    except Exception:
        logger.exception(
            'Upload failed for user %s, rolling back %d stored files',
            user.username,
            len(saved_names),
        )
        for saved_name in saved_names:
            storage.rollback_upload(saved_name)
        release_storage(user, total_size)
        raise

    logger.info(
        'Uploaded %d file(s) for user %s (%d bytes)',
        len(created),
        user.username,
        total_size,
    )
    return created


def get_file(user: _User, file_id: int) -> File:
    """Get a file and mark it as accessed.

    Raises:
        File.DoesNotExist: If absent or owned by someone else.
    """
    file_instance = File.objects.select_related('folder').get(
        id=file_id,
        user=user,
    )
    file_instance.last_accessed = timezone.now()
    file_instance.save(update_fields=['last_accessed'])
    return file_instance


def list_files(  # noqa: WPS211
    user: _User,
    *,
    folder: int | str | None = None,
    file_type: str | None = None,
    search: str | None = None,
    favorite: bool = False,
    page: int = 1,
    page_size: int | None = None,
) -> Page:
    """List a user's files, newest first, one page at a time.

    Args:
        user: Owner.
        folder: ``ROOT`` for files at root, a folder ID, or None for
            all folders.
        file_type: Only files of this category.
        search: Case-insensitive match on name or tag names.
        favorite: Only favorite files.
        page: 1-based page number; out-of-range pages give the last page.
        page_size: Files per page (default from settings).

    Returns:
        Django Page of File instances.
    """
    files = filter_files(
        user,
        folder=folder,
        file_type=file_type,
        search=search,
        favorite=favorite,
    )
    paginator = Paginator(
        files.select_related('folder'),
        page_size or settings.DRIVE_DEFAULT_PAGE_SIZE,
    )
    return paginator.get_page(page)


def filter_files(
    user: _User,
    *,
    folder: int | str | None = None,
    file_type: str | None = None,
    search: str | None = None,
    favorite: bool = False,
) -> QuerySet[File]:
    """Build the filtered, ordered file queryset behind ``list_files``."""
    files = File.objects.filter(user=user)

    if folder == ROOT:
        files = files.filter(folder__isnull=True)
    elif folder is not None:
        files = files.filter(folder_id=folder)

    if file_type:
        files = files.filter(file_type=file_type)

    if search:
        files = files.filter(
            Q(original_name__icontains=search)
            | Q(tags__name__icontains=search),
        ).distinct()

    if favorite:
        files = files.filter(is_favorite=True)

    return files.order_by('-created_at')


def update_file(  # noqa: WPS211
    user: _User,
    file_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    tags: Sequence[str] | str | None = None,
    is_favorite: bool | None = None,
    folder_id: Any = _UNSET,
) -> File:
    """Update file metadata and optionally move it to another folder.

    Args:
        user: Owner.
        file_id: File to update.
        name: New display name.
        description: New description.
        tags: Replacement tag names.
        is_favorite: New favorite flag.
        folder_id: Destination folder ID, None for root; omit to keep.

    Returns:
        Updated File instance.

    Raises:
        File.DoesNotExist: If absent or owned by someone else.
        ValidationError: If name or description are invalid.
        ParentFolderNotFoundError: If the destination does not resolve.
    """
    with transaction.atomic():
        lock_owner(user)
        file_instance = File.objects.select_for_update().get(
            id=file_id,
            user=user,
        )
        old_folder_id = file_instance.folder_id

        if name is not None:
            name = name.strip()
            validate_file_name(name)
            file_instance.original_name = name

        if description is not None:
            description = description.strip()
            validate_description(description)
            file_instance.description = description

        if is_favorite is not None:
            file_instance.is_favorite = is_favorite

        if folder_id is not _UNSET:
            file_instance.folder = resolve_target_folder(user, folder_id)

        file_instance.save()

        if tags is not None:
            file_instance.tags.set(resolve_tags(user, tags))

        if file_instance.folder_id != old_folder_id:
            refresh_item_count(old_folder_id)
            refresh_item_count(file_instance.folder_id)

    logger.info('File updated: %s (ID: %d)', file_instance.original_name, file_id)
    return file_instance


def delete_file(user: _User, file_id: int) -> None:
    """Delete a file's bytes, release its size, then delete the record.

    Bytes go first so that an interruption never leaves a visible
    record pointing at missing bytes without the ledger knowing.
    A missing blob is logged and does not stop the delete.

    Args:
        user: Owner.
        file_id: File to delete.

    Raises:
        File.DoesNotExist: If absent or owned by someone else.
    """
    file_instance = File.objects.get(id=file_id, user=user)
    storage_name = file_instance.file.name

    logger.info(
        'Deleting file: ID=%d, key=%s',
        file_id,
        storage_name,
    )

    # Step 1: Remove stored bytes (best effort)
    get_blob_storage().discard(storage_name)

    # Step 2: Ledger, then record
    try:
        with transaction.atomic():
            lock_owner(user)
            # A concurrent delete may have released this file already
            locked = File.objects.select_for_update().filter(
                id=file_id,
                user=user,
            ).first()
            if locked is None:
                raise File.DoesNotExist(f'File already deleted: {file_id}')

            release_storage(user, locked.size_bytes)
            locked.delete()
            refresh_item_count(locked.folder_id)
    except File.DoesNotExist:
        logger.warning('File deleted concurrently: ID=%d', file_id)
        raise
    except Exception:
        logger.exception('Failed to delete file from database: ID=%d', file_id)
        raise

    logger.info('File deleted: ID=%d', file_id)


def open_file(user: _User, file_id: int) -> tuple[File, DjangoFile]:
    """Open a file for download and record the access.

    Args:
        user: Owner.
        file_id: File to download.

    Returns:
        The File instance and its opened content; the caller streams
        and closes it.

    Raises:
        File.DoesNotExist: If absent or owned by someone else.
        FileNotFoundError: If the stored bytes are missing.
    """
    file_instance = File.objects.get(id=file_id, user=user)
    storage = get_blob_storage()

    if not storage.exists(file_instance.file.name):
        logger.error(
            'Stored bytes missing for file ID=%d: %s',
            file_id,
            file_instance.file.name,
        )
        raise FileNotFoundError(file_instance.file.name)

    File.objects.filter(id=file_id).update(
        download_count=F('download_count') + 1,
        last_accessed=timezone.now(),
    )
    file_instance.refresh_from_db(fields=['download_count', 'last_accessed'])

    return file_instance, storage.open(file_instance.file.name, 'rb')


def duplicate_file(user: _User, file_id: int) -> File:  # noqa: WPS210
    """Copy a file's bytes to a new key and record the copy.

    Args:
        user: Owner.
        file_id: File to duplicate.

    Returns:
        New File instance named ``"<stem> (Copy)<ext>"``.

    Raises:
        File.DoesNotExist: If absent or owned by someone else.
        QuotaExceededError: If the copy does not fit in the quota.
    """
    source = File.objects.get(id=file_id, user=user)
    reserve_storage(user, source.size_bytes)

    storage = get_blob_storage()
    destination = generate_storage_key(user.id, source.original_name)
    copied = False
    try:
        storage.copy_object(source.file.name, destination)
        copied = True

        with transaction.atomic():
            lock_owner(user)
            duplicate = File.objects.create(
                user=user,
                file=destination,
                original_name=build_copy_name(source.original_name),
                file_type=source.file_type,
                mime_type=source.mime_type,
                size_bytes=source.size_bytes,
                checksum_sha256=source.checksum_sha256,
                folder_id=source.folder_id,
                description=source.description,
            )
            duplicate.tags.set(source.tags.all())
            refresh_item_count(source.folder_id)
    except Exception:
        logger.exception('Duplicate failed for file ID=%d, rolling back', file_id)
        if copied:
            storage.rollback_upload(destination)
        release_storage(user, source.size_bytes)
        raise

    logger.info(
        'File duplicated: ID=%d -> ID=%d (%s)',
        file_id,
        duplicate.id,
        destination,
    )
    return duplicate


def _validate_batch(file_objs: Sequence[_Upload]) -> None:
    if not file_objs:
        raise ValidationError('No files uploaded')

    max_files = settings.DRIVE_MAX_UPLOAD_FILES
    if len(file_objs) > max_files:
        raise ValidationError(
            f'Too many files: {len(file_objs)} (maximum {max_files})',
        )


def _discard_incoming(file_objs: Sequence[_Upload]) -> None:
    """Drop temporary upload data after a rejected batch.

    Closing a Django ``TemporaryUploadedFile`` removes its temp file.
    """
    for file_obj in file_objs:
        try:
            file_obj.close()
        except OSError:
            # Already gone, which is the state we want
            logger.warning(
                'Temporary upload already removed: %s',
                getattr(file_obj, 'name', file_obj),
            )


@dataclasses.dataclass(frozen=True)
class _IncomingFile:
    """An upload with the metadata read from it."""

    file_obj: _Upload
    filename: str
    size_bytes: int
    mime_type: str
    checksum: str


def _inspect_upload(file_obj: _Upload) -> _IncomingFile:
    filename = extract_filename(getattr(file_obj, 'name', '') or 'upload')
    validate_file_name(filename)
    return _IncomingFile(
        file_obj=file_obj,
        filename=filename,
        size_bytes=get_file_size(file_obj),
        mime_type=detect_mime_type(file_obj, filename),
        checksum=calculate_checksum(file_obj),
    )


def _store_bytes(user: _User, storage: Any, upload: _IncomingFile) -> str:
    storage_key = generate_storage_key(user.id, upload.filename)
    validate_storage_path(user.id, storage_key)
    upload.file_obj.seek(0)
    return storage.save(storage_key, upload.file_obj)


def _create_record(  # noqa: WPS211
    user: _User,
    upload: _IncomingFile,
    saved_name: str,
    *,
    folder: Any,
    description: str,
    tag_objects: list[Any],
) -> File:
    file_instance = File.objects.create(
        user=user,
        file=saved_name,
        original_name=upload.filename,
        file_type=classify_file_type(upload.mime_type),
        mime_type=upload.mime_type,
        size_bytes=upload.size_bytes,
        checksum_sha256=upload.checksum,
        folder=folder,
        description=description,
    )
    if tag_objects:
        file_instance.tags.set(tag_objects)

    logger.info(
        'File record created: %s (ID: %d)',
        saved_name,
        file_instance.id,
    )
    return file_instance
