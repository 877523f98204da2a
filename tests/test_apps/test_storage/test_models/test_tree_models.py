"""Tests for Folder, File and Note models."""

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import RestrictedError

from drive.apps.storage.models import File, Folder, Note, Tag


@pytest.fixture
def root_folder(user):
    """Top-level folder named Docs."""
    return Folder.objects.create(user=user, name='Docs', path='Docs')


@pytest.mark.django_db
def test_folder_str_and_child_path(user, root_folder):
    """Test folder string form and child path building."""
    assert str(root_folder) == f'{user.username}:Docs'
    assert root_folder.build_child_path('Reports') == 'Docs/Reports'


@pytest.mark.django_db
def test_folder_root_names_unique(user, root_folder):
    """Test the database rejects a second root folder with the same name."""
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Folder.objects.create(user=user, name='Docs', path='Docs')


@pytest.mark.django_db
def test_folder_sibling_names_unique(user, root_folder):
    """Test the database rejects duplicate children."""
    Folder.objects.create(
        user=user,
        name='A',
        parent=root_folder,
        path='Docs/A',
    )

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Folder.objects.create(
                user=user,
                name='A',
                parent=root_folder,
                path='Docs/A',
            )


@pytest.mark.django_db
def test_folder_name_validation(user):
    """Test model validation rejects separators in names."""
    folder = Folder(user=user, name='a/b', path='a/b')

    with pytest.raises(ValidationError):
        folder.full_clean()


@pytest.mark.django_db
def test_folder_with_contents_cannot_be_deleted_directly(user, root_folder):
    """Test raw deletes cannot orphan contents."""
    Note.objects.create(user=user, title='n', content='c', folder=root_folder)

    with pytest.raises(RestrictedError):
        root_folder.delete()


@pytest.mark.django_db
def test_user_delete_removes_tree(user, root_folder):
    """Test deleting the owner removes the whole tree."""
    child = Folder.objects.create(
        user=user,
        name='Child',
        parent=root_folder,
        path='Docs/Child',
    )
    Note.objects.create(user=user, title='n', content='c', folder=child)

    user.delete()

    assert not Folder.objects.exists()
    assert not Note.objects.exists()


@pytest.mark.django_db
def test_file_str_and_extension(user, make_file):
    """Test file string form and extension helper."""
    file_instance = make_file(original_name='Report.PDF')

    assert str(file_instance) == f'{user.username}:Report.PDF'
    assert file_instance.get_extension() == 'pdf'


@pytest.mark.django_db
def test_file_storage_key_unique(user, make_file):
    """Test two records cannot share a storage key."""
    make_file(file=f'{user.id}/same.txt')

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            make_file(file=f'{user.id}/same.txt')


@pytest.mark.django_db
def test_note_preview_and_word_count(user):
    """Test note helpers."""
    note = Note.objects.create(user=user, title='t', content='word ' * 30)

    assert note.preview(length=10) == 'word word ...'
    assert note.word_count() == 30
    assert Note(content='short').preview() == 'short'


@pytest.mark.django_db
def test_note_default_ordering(user):
    """Test pinned notes sort first."""
    plain = Note.objects.create(user=user, title='plain', content='c')
    pinned = Note.objects.create(
        user=user,
        title='pinned',
        content='c',
        is_pinned=True,
    )

    assert list(Note.objects.filter(user=user)) == [pinned, plain]


@pytest.mark.django_db
def test_tag_unique_per_user(user, other_user):
    """Test tag names are unique per owner only."""
    Tag.objects.create(user=user, name='work')
    Tag.objects.create(user=other_user, name='work')

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Tag.objects.create(user=user, name='work')


@pytest.mark.django_db
def test_file_type_choices():
    """Test available file categories."""
    assert set(File.FileType.values) == {'image', 'pdf', 'document', 'other'}
