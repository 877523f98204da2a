"""Business logic for notes.

Notes live in the folder tree like files but hold text only and are
never charged against the storage quota.
"""

import logging
from collections.abc import Sequence
from typing import Any

from django.conf import settings
from django.core.paginator import Page, Paginator
from django.db import transaction
from django.db.models import Case, IntegerField, Q, QuerySet, Value, When
from django.utils import timezone

from drive.apps.storage.logic.folder_operations import (
    ROOT,
    refresh_item_count,
    resolve_target_folder,
)
from drive.apps.storage.logic.quota_operations import lock_owner
from drive.apps.storage.logic.tag_operations import resolve_tags
from drive.apps.storage.models import DEFAULT_NOTE_COLOR, Note
from drive.apps.storage.validators import (
    NOTE_TITLE_MAX_LENGTH,
    validate_color,
    validate_note_content,
    validate_note_title,
)

# User type for Django's dynamic user model
_User = Any

# Sentinel for "folder not given" in update_note (None means root)
_UNSET: Any = object()

_DEFAULT_SEARCH_LIMIT = 10
_COPY_SUFFIX = ' (Copy)'

logger = logging.getLogger(__name__)


def create_note(  # noqa: WPS211
    user: _User,
    title: str,
    content: str,
    folder_id: int | None = None,
    *,
    tags: Sequence[str] | str = (),
    color: str | None = None,
    is_pinned: bool = False,
) -> Note:
    """Create a note at root or in a folder.

    Raises:
        ValidationError: If title, content or color are invalid.
        ParentFolderNotFoundError: If the folder does not resolve.
    """
    title = title.strip()
    content = content.strip()
    validate_note_title(title)
    validate_note_content(content)
    color = color or DEFAULT_NOTE_COLOR
    validate_color(color)

    with transaction.atomic():
        lock_owner(user)
        folder = resolve_target_folder(user, folder_id)
        note = Note.objects.create(
            user=user,
            title=title,
            content=content,
            folder=folder,
            color=color,
            is_pinned=is_pinned,
        )
        note.tags.set(resolve_tags(user, tags))
        refresh_item_count(folder_id)

    logger.info('Note created: %s (ID: %d)', note.title, note.id)
    return note


def get_note(user: _User, note_id: int) -> Note:
    """Get a note and mark it as accessed.

    Raises:
        Note.DoesNotExist: If absent or owned by someone else.
    """
    note = Note.objects.select_related('folder').get(id=note_id, user=user)
    note.last_accessed = timezone.now()
    note.save(update_fields=['last_accessed'])
    return note


def list_notes(  # noqa: WPS211
    user: _User,
    *,
    folder: int | str | None = None,
    search: str | None = None,
    favorite: bool = False,
    pinned: bool = False,
    page: int = 1,
    page_size: int | None = None,
) -> Page:
    """List notes, pinned first, then most recently updated.

    Args:
        user: Owner.
        folder: ``ROOT`` for notes at root, a folder ID, or None for all.
        search: Case-insensitive match in title or content.
        favorite: Only favorite notes.
        pinned: Only pinned notes (ordered by update time alone).
        page: 1-based page number.
        page_size: Notes per page (default from settings).

    Returns:
        Django Page of Note instances.
    """
    notes = Note.objects.filter(user=user)

    if folder == ROOT:
        notes = notes.filter(folder__isnull=True)
    elif folder is not None:
        notes = notes.filter(folder_id=folder)

    if search:
        notes = notes.filter(_text_match(search))

    if favorite:
        notes = notes.filter(is_favorite=True)

    if pinned:
        notes = notes.filter(is_pinned=True).order_by('-updated_at')
    else:
        notes = notes.order_by('-is_pinned', '-updated_at')

    paginator = Paginator(
        notes.select_related('folder'),
        page_size or settings.DRIVE_DEFAULT_PAGE_SIZE,
    )
    return paginator.get_page(page)


def search_notes(
    user: _User,
    query: str,
    limit: int = _DEFAULT_SEARCH_LIMIT,
) -> QuerySet[Note]:
    """Find notes whose title or content contains ``query``.

    Title matches rank above content-only matches.
    """
    return Note.objects.filter(user=user).filter(
        _text_match(query),
    ).annotate(
        title_match=Case(
            When(title__icontains=query, then=Value(1)),
            default=Value(0),
            output_field=IntegerField(),
        ),
    ).order_by('-title_match', '-updated_at')[:limit]


def update_note(  # noqa: WPS211, C901
    user: _User,
    note_id: int,
    *,
    title: str | None = None,
    content: str | None = None,
    tags: Sequence[str] | str | None = None,
    color: str | None = None,
    is_favorite: bool | None = None,
    is_pinned: bool | None = None,
    folder_id: Any = _UNSET,
) -> Note:
    """Update a note; ``folder_id`` moves it (None means root).

    Raises:
        Note.DoesNotExist: If absent or owned by someone else.
        ValidationError: If a new value is invalid.
        ParentFolderNotFoundError: If the destination does not resolve.
    """
    with transaction.atomic():
        lock_owner(user)
        note = Note.objects.select_for_update().get(id=note_id, user=user)
        old_folder_id = note.folder_id

        if title is not None:
            title = title.strip()
            validate_note_title(title)
            note.title = title

        if content is not None:
            content = content.strip()
            validate_note_content(content)
            note.content = content

        if color:
            validate_color(color)
            note.color = color

        if is_favorite is not None:
            note.is_favorite = is_favorite

        if is_pinned is not None:
            note.is_pinned = is_pinned

        if folder_id is not _UNSET:
            note.folder = resolve_target_folder(user, folder_id)

        note.save()

        if tags is not None:
            note.tags.set(resolve_tags(user, tags))

        if note.folder_id != old_folder_id:
            refresh_item_count(old_folder_id)
            refresh_item_count(note.folder_id)

    logger.info('Note updated: %s (ID: %d)', note.title, note_id)
    return note


def delete_note(user: _User, note_id: int) -> None:
    """Delete a note.

    Raises:
        Note.DoesNotExist: If absent or owned by someone else.
    """
    note = Note.objects.get(id=note_id, user=user)
    folder_id = note.folder_id

    with transaction.atomic():
        note.delete()
        refresh_item_count(folder_id)

    logger.info('Note deleted: ID=%d', note_id)


def duplicate_note(user: _User, note_id: int) -> Note:
    """Copy a note next to the original as ``"<title> (Copy)"``.

    Raises:
        Note.DoesNotExist: If absent or owned by someone else.
    """
    original = Note.objects.get(id=note_id, user=user)

    with transaction.atomic():
        lock_owner(user)
        duplicate = Note.objects.create(
            user=user,
            title=_copy_title(original.title),
            content=original.content,
            folder_id=original.folder_id,
            color=original.color,
        )
        duplicate.tags.set(original.tags.all())
        refresh_item_count(original.folder_id)

    logger.info('Note duplicated: ID=%d -> ID=%d', note_id, duplicate.id)
    return duplicate


def _text_match(query: str) -> Q:
    return Q(title__icontains=query) | Q(content__icontains=query)


def _copy_title(title: str) -> str:
    """Append the copy suffix, trimming the title to stay within limits."""
    room = NOTE_TITLE_MAX_LENGTH - len(_COPY_SUFFIX)
    return f'{title[:room]}{_COPY_SUFFIX}'
