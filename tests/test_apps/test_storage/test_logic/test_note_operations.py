"""Tests for note business logic."""

import pytest
from django.core.exceptions import ValidationError

from drive.apps.storage.exceptions import ParentFolderNotFoundError
from drive.apps.storage.logic import note_operations
from drive.apps.storage.logic.folder_operations import ROOT, create_folder
from drive.apps.storage.logic.note_operations import (
    create_note,
    delete_note,
    duplicate_note,
    get_note,
    list_notes,
    search_notes,
    update_note,
)
from drive.apps.storage.models import Note, StorageQuota


@pytest.mark.django_db
def test_create_note_defaults(user):
    """Test a note at root with default color."""
    note = create_note(user, '  Shopping  ', ' milk, eggs ')

    assert note.title == 'Shopping'
    assert note.content == 'milk, eggs'
    assert note.folder is None
    assert note.color == '#FEF3C7'
    assert not note.is_pinned


@pytest.mark.django_db
def test_create_note_in_folder_with_tags(user):
    """Test folder placement, tags and item count."""
    folder = create_folder(user, 'Ideas')

    note = create_note(user, 'Plan', 'Do things', folder.id, tags='a,b,a')

    assert note.folder == folder
    assert [tag.name for tag in note.tags.all()] == ['a', 'b']
    folder.refresh_from_db()
    assert folder.item_count == 1


@pytest.mark.django_db
def test_notes_do_not_touch_quota(user):
    """Test notes are not charged against storage."""
    StorageQuota.objects.create(user=user, quota_bytes=10)

    create_note(user, 'Long', 'x' * 1000)

    assert StorageQuota.objects.get(user=user).used_bytes == 0


@pytest.mark.django_db
@pytest.mark.parametrize(('title', 'content'), [
    ('', 'content'),
    ('t' * 201, 'content'),
    ('title', '   '),
    ('title', 'c' * 10001),
])
def test_create_note_invalid(user, title, content):
    """Test title and content limits."""
    with pytest.raises(ValidationError):
        create_note(user, title, content)

    assert not Note.objects.exists()


@pytest.mark.django_db
def test_create_note_in_foreign_folder(user, other_user):
    """Test another owner's folder is rejected."""
    foreign = create_folder(other_user, 'Theirs')

    with pytest.raises(ParentFolderNotFoundError):
        create_note(user, 'Title', 'Body', foreign.id)


@pytest.mark.django_db
def test_get_note_not_owned(user, other_user):
    """Test another owner's note looks absent."""
    note = create_note(other_user, 'Secret', 'Body')

    with pytest.raises(Note.DoesNotExist):
        get_note(user, note.id)


@pytest.mark.django_db
def test_list_notes_pinned_first(user):
    """Test pinned notes lead, then most recently updated."""
    older = create_note(user, 'Older', 'body')
    pinned = create_note(user, 'Pinned', 'body', is_pinned=True)
    newer = create_note(user, 'Newer', 'body')

    page = list_notes(user)

    assert list(page) == [pinned, newer, older]


@pytest.mark.django_db
def test_list_notes_filters(user):
    """Test folder, pinned and favorite filters."""
    folder = create_folder(user, 'Work')
    in_folder = create_note(user, 'In folder', 'body', folder.id)
    at_root = create_note(user, 'At root', 'body', is_pinned=True)
    update_note(user, in_folder.id, is_favorite=True)

    assert list(list_notes(user, folder=folder.id)) == [in_folder]
    assert list(list_notes(user, folder=ROOT)) == [at_root]
    assert list(list_notes(user, pinned=True)) == [at_root]
    assert list(list_notes(user, favorite=True)) == [in_folder]


@pytest.mark.django_db
def test_search_notes_title_matches_rank_first(user):
    """Test title matches come before content matches."""
    content_match = create_note(user, 'Groceries', 'buy python book')
    title_match = create_note(user, 'Python tips', 'use generators')
    create_note(user, 'Unrelated', 'nothing here')

    results = list(search_notes(user, 'python'))

    assert results == [title_match, content_match]


@pytest.mark.django_db
def test_update_note_moves_between_folders(user):
    """Test moving a note refreshes both folders' counts."""
    source = create_folder(user, 'Src')
    target = create_folder(user, 'Dst')
    note = create_note(user, 'Title', 'Body', source.id)

    updated = update_note(
        user,
        note.id,
        title='New title',
        color='#ABCDEF',
        folder_id=target.id,
        tags=['x'],
    )

    assert updated.title == 'New title'
    assert updated.color == '#ABCDEF'
    assert [tag.name for tag in updated.tags.all()] == ['x']
    source.refresh_from_db()
    target.refresh_from_db()
    assert source.item_count == 0
    assert target.item_count == 1


@pytest.mark.django_db
def test_update_note_invalid_color(user):
    """Test malformed colors are rejected."""
    note = create_note(user, 'Title', 'Body')

    with pytest.raises(ValidationError):
        update_note(user, note.id, color='red')


@pytest.mark.django_db
def test_delete_note(user):
    """Test deleting refreshes the folder count."""
    folder = create_folder(user, 'Work')
    note = create_note(user, 'Title', 'Body', folder.id)

    delete_note(user, note.id)

    assert not Note.objects.filter(id=note.id).exists()
    folder.refresh_from_db()
    assert folder.item_count == 0


@pytest.mark.django_db
def test_duplicate_note(user):
    """Test the copy keeps folder, tags and color."""
    folder = create_folder(user, 'Work')
    note = create_note(
        user,
        'Title',
        'Body',
        folder.id,
        tags=['t'],
        color='#000000',
        is_pinned=True,
    )

    duplicate = duplicate_note(user, note.id)

    assert duplicate.title == 'Title (Copy)'
    assert duplicate.content == 'Body'
    assert duplicate.folder == folder
    assert duplicate.color == '#000000'
    assert not duplicate.is_pinned
    assert [tag.name for tag in duplicate.tags.all()] == ['t']
    folder.refresh_from_db()
    assert folder.item_count == 2


@pytest.mark.django_db
def test_duplicate_note_long_title(user):
    """Test copy titles stay within the title limit."""
    note = create_note(user, 'x' * 200, 'Body')

    duplicate = duplicate_note(user, note.id)

    assert len(duplicate.title) == 200
    assert duplicate.title.endswith(' (Copy)')


@pytest.mark.django_db
def test_note_writes_lock_owner(user, monkeypatch):
    """Test note writes are serialized with folder deletes of the owner."""
    locked = []
    monkeypatch.setattr(note_operations, 'lock_owner', locked.append)

    note = create_note(user, 'Title', 'Body')
    update_note(user, note.id, title='Renamed')
    duplicate_note(user, note.id)

    assert locked == [user, user, user]
