"""Tests for file operations business logic."""

import pytest
from botocore.exceptions import ClientError
from django.core.exceptions import ValidationError
from django.core.files.base import ContentFile

from drive.apps.storage.exceptions import (
    ParentFolderNotFoundError,
    QuotaExceededError,
)
from drive.apps.storage.infrastructure.storage import FileStorage
from drive.apps.storage.logic import file_operations
from drive.apps.storage.logic.file_operations import (
    delete_file,
    duplicate_file,
    get_file,
    list_files,
    open_file,
    update_file,
    upload_files,
)
from drive.apps.storage.logic.folder_operations import (
    ROOT,
    create_folder,
    delete_folder,
)
from drive.apps.storage.logic.quota_operations import release_storage
from drive.apps.storage.models import File, StorageQuota


def _bucket_keys(mock_s3):
    return sorted(obj.key for obj in mock_s3.Bucket('drive').objects.all())


def _used_bytes(user):
    return StorageQuota.objects.get(user=user).used_bytes


@pytest.mark.django_db
class TestUploadFiles:
    """Tests for upload_files."""

    def test_upload_success(self, user, mock_s3, sample_file_content):
        """Test upload stores bytes, records metadata and charges quota."""
        created = upload_files(user, [sample_file_content])

        assert len(created) == 1
        file_instance = created[0]
        assert file_instance.user == user
        assert file_instance.original_name == 'test.txt'
        assert file_instance.file.name.startswith(f'{user.id}/')
        assert file_instance.file.name.endswith('.txt')
        assert file_instance.size_bytes == len(b'test file content')
        assert file_instance.mime_type == 'text/plain'
        assert file_instance.file_type == File.FileType.DOCUMENT
        assert len(file_instance.checksum_sha256) == 64
        assert file_instance.folder is None
        assert _bucket_keys(mock_s3) == [file_instance.file.name]
        assert _used_bytes(user) == file_instance.size_bytes

    def test_upload_batch_into_folder(self, user, mock_s3):
        """Test a batch lands in the target folder with shared tags."""
        folder = create_folder(user, 'Docs')
        uploads = [
            ContentFile(b'a' * 10, name='one.pdf'),
            ContentFile(b'b' * 20, name='two.png'),
        ]

        created = upload_files(
            user,
            uploads,
            folder.id,
            tags='work, 2024',
            description='  scans  ',
        )

        assert [item.file_type for item in created] == ['pdf', 'image']
        assert all(item.folder == folder for item in created)
        assert all(item.description == 'scans' for item in created)
        assert sorted(tag.name for tag in created[0].tags.all()) == [
            '2024',
            'work',
        ]
        folder.refresh_from_db()
        assert folder.item_count == 2
        assert _used_bytes(user) == 30

    def test_upload_keys_are_unique(self, user, mock_s3):
        """Test identical names get distinct storage keys."""
        created = upload_files(
            user,
            [
                ContentFile(b'first', name='same.txt'),
                ContentFile(b'second', name='same.txt'),
            ],
        )

        assert created[0].file.name != created[1].file.name
        assert len(_bucket_keys(mock_s3)) == 2

    def test_quota_scenario(self, user, mock_s3):
        """Test 600 fits, 500 more is rejected, delete frees everything."""
        StorageQuota.objects.create(user=user, quota_bytes=1000)

        first = upload_files(user, [ContentFile(b'x' * 600, name='a.bin')])[0]
        assert _used_bytes(user) == 600

        rejected = ContentFile(b'y' * 500, name='b.bin')
        with pytest.raises(QuotaExceededError):
            upload_files(user, [rejected])

        assert _used_bytes(user) == 600
        assert File.objects.filter(user=user).count() == 1
        assert _bucket_keys(mock_s3) == [first.file.name]
        assert rejected.closed

        delete_file(user, first.id)

        assert _used_bytes(user) == 0
        assert _bucket_keys(mock_s3) == []

    def test_batch_reserved_as_a_whole(self, user, mock_s3):
        """Test a batch over quota stores nothing even if one part fits."""
        StorageQuota.objects.create(user=user, quota_bytes=100)

        with pytest.raises(QuotaExceededError):
            upload_files(
                user,
                [
                    ContentFile(b'a' * 60, name='a.bin'),
                    ContentFile(b'b' * 60, name='b.bin'),
                ],
            )

        assert _used_bytes(user) == 0
        assert not File.objects.exists()
        assert _bucket_keys(mock_s3) == []

    def test_record_failure_rolls_back(self, user, mock_s3, monkeypatch):
        """Test stored bytes and the reservation are undone on failure."""

        def fail(*args, **kwargs):
            raise RuntimeError('database down')

        monkeypatch.setattr(file_operations, '_create_record', fail)

        with pytest.raises(RuntimeError):
            upload_files(user, [ContentFile(b'data', name='a.txt')])

        assert _used_bytes(user) == 0
        assert not File.objects.exists()
        assert _bucket_keys(mock_s3) == []

    def test_target_folder_removed_during_upload(
        self,
        user,
        mock_s3,
        monkeypatch,
    ):
        """Test a target deleted while bytes are stored undoes the batch."""
        folder = create_folder(user, 'Docs')
        store_bytes = file_operations._store_bytes  # noqa: SLF001

        def store_then_delete_folder(*args):
            saved_name = store_bytes(*args)
            delete_folder(user, folder.id)
            return saved_name

        monkeypatch.setattr(
            file_operations,
            '_store_bytes',
            store_then_delete_folder,
        )

        with pytest.raises(ParentFolderNotFoundError):
            upload_files(user, [ContentFile(b'data', name='a.txt')], folder.id)

        assert not File.objects.exists()
        assert _bucket_keys(mock_s3) == []
        assert _used_bytes(user) == 0

    def test_name_too_long(self, user, mock_s3):
        """Test a 256 character file name is rejected before storing."""
        upload = ContentFile(b'data', name=f'{"n" * 252}.txt')

        with pytest.raises(ValidationError):
            upload_files(user, [upload])

        assert not File.objects.exists()
        assert _bucket_keys(mock_s3) == []

    def test_empty_batch(self, user):
        """Test an empty batch is rejected."""
        with pytest.raises(ValidationError):
            upload_files(user, [])

    def test_too_many_files(self, user, settings):
        """Test the batch size limit."""
        settings.DRIVE_MAX_UPLOAD_FILES = 1

        with pytest.raises(ValidationError):
            upload_files(
                user,
                [
                    ContentFile(b'a', name='a.txt'),
                    ContentFile(b'b', name='b.txt'),
                ],
            )

    def test_upload_into_foreign_folder(self, user, other_user, mock_s3):
        """Test another owner's folder is not a valid target."""
        foreign = create_folder(other_user, 'Theirs')

        with pytest.raises(ParentFolderNotFoundError):
            upload_files(user, [ContentFile(b'a', name='a.txt')], foreign.id)

        assert not File.objects.exists()
        assert _bucket_keys(mock_s3) == []


@pytest.mark.django_db
class TestReadFiles:
    """Tests for get_file, list_files and open_file."""

    def test_get_file_updates_last_accessed(self, user, make_file):
        """Test reading a file touches last_accessed."""
        file_instance = make_file()
        before = file_instance.last_accessed

        fetched = get_file(user, file_instance.id)

        assert fetched.last_accessed >= before

    def test_get_file_not_owned(self, user, other_user, make_file):
        """Test another owner's file looks absent."""
        foreign = make_file(user=other_user)

        with pytest.raises(File.DoesNotExist):
            get_file(user, foreign.id)

    def test_list_files_paginates(self, user, make_file):
        """Test pages hold at most page_size files."""
        for _ in range(3):
            make_file()

        first_page = list_files(user, page=1, page_size=2)
        second_page = list_files(user, page=2, page_size=2)

        assert first_page.paginator.count == 3
        assert len(first_page.object_list) == 2
        assert len(second_page.object_list) == 1

    def test_list_files_by_folder(self, user, make_file):
        """Test folder and root filters."""
        folder = create_folder(user, 'Docs')
        in_folder = make_file(folder=folder)
        at_root = make_file()

        assert list(list_files(user, folder=folder.id)) == [in_folder]
        assert list(list_files(user, folder=ROOT)) == [at_root]

    def test_list_files_by_type_and_favorite(self, user, make_file):
        """Test type and favorite filters."""
        image = make_file(file_type=File.FileType.IMAGE, is_favorite=True)
        make_file(file_type=File.FileType.IMAGE)
        make_file(file_type=File.FileType.PDF, is_favorite=True)

        files = list_files(user, file_type='image', favorite=True)

        assert list(files) == [image]

    def test_list_files_search_name_and_tags(self, user, make_file):
        """Test search matches names and tag names without duplicates."""
        by_name = make_file(original_name='Quarterly Report.pdf')
        by_tag = make_file(original_name='scan.png')
        update_file(user, by_tag.id, tags=['report', 'reports'])
        make_file(original_name='other.txt')

        files = list_files(user, search='REPORT')

        assert {item.id for item in files} == {by_name.id, by_tag.id}
        assert files.paginator.count == 2

    def test_open_file_counts_download(self, user, mock_s3):
        """Test download streams the bytes and increments the counter."""
        file_instance = upload_files(
            user,
            [ContentFile(b'hello', name='hi.txt')],
        )[0]

        opened, stream = open_file(user, file_instance.id)
        with stream:
            assert stream.read() == b'hello'

        assert opened.download_count == 1
        open_file(user, file_instance.id)[1].close()
        file_instance.refresh_from_db()
        assert file_instance.download_count == 2

    def test_open_file_missing_bytes(self, user, mock_s3, make_file):
        """Test a record without stored bytes cannot be downloaded."""
        file_instance = make_file()

        with pytest.raises(FileNotFoundError):
            open_file(user, file_instance.id)

        file_instance.refresh_from_db()
        assert file_instance.download_count == 0


@pytest.mark.django_db
class TestUpdateFile:
    """Tests for update_file."""

    def test_update_metadata(self, user, make_file):
        """Test name, description and favorite updates."""
        file_instance = make_file()

        updated = update_file(
            user,
            file_instance.id,
            name=' renamed.txt ',
            description='notes',
            is_favorite=True,
        )

        assert updated.original_name == 'renamed.txt'
        assert updated.description == 'notes'
        assert updated.is_favorite

    def test_empty_name_rejected(self, user, make_file):
        """Test a blank name is rejected."""
        file_instance = make_file()

        with pytest.raises(ValidationError):
            update_file(user, file_instance.id, name='   ')

    def test_long_name_rejected(self, user, make_file):
        """Test a 256 character name is rejected and nothing changes."""
        file_instance = make_file(original_name='keep.txt')

        with pytest.raises(ValidationError):
            update_file(
                user,
                file_instance.id,
                name='n' * 256,
                description='changed',
            )

        file_instance.refresh_from_db()
        assert file_instance.original_name == 'keep.txt'
        assert file_instance.description == ''

    def test_move_between_folders(self, user, make_file):
        """Test moving refreshes both folders' item counts."""
        source = create_folder(user, 'Src')
        target = create_folder(user, 'Dst')
        file_instance = make_file(folder=source)

        update_file(user, file_instance.id, folder_id=target.id)

        source.refresh_from_db()
        target.refresh_from_db()
        file_instance.refresh_from_db()
        assert file_instance.folder == target
        assert source.item_count == 0
        assert target.item_count == 1

    def test_move_to_root(self, user, make_file):
        """Test folder_id=None moves the file to root."""
        folder = create_folder(user, 'Docs')
        file_instance = make_file(folder=folder)

        updated = update_file(user, file_instance.id, folder_id=None)

        assert updated.folder is None

    def test_move_to_foreign_folder(self, user, other_user, make_file):
        """Test moving into another owner's folder fails."""
        foreign = create_folder(other_user, 'Theirs')
        file_instance = make_file()

        with pytest.raises(ParentFolderNotFoundError):
            update_file(user, file_instance.id, folder_id=foreign.id)

        file_instance.refresh_from_db()
        assert file_instance.folder is None


@pytest.mark.django_db
class TestDeleteFile:
    """Tests for delete_file."""

    def test_delete_releases_quota(self, user, mock_s3):
        """Test bytes, ledger and record are all cleaned up."""
        file_instance = upload_files(
            user,
            [ContentFile(b'x' * 50, name='a.bin')],
        )[0]

        delete_file(user, file_instance.id)

        assert not File.objects.filter(id=file_instance.id).exists()
        assert _used_bytes(user) == 0
        assert _bucket_keys(mock_s3) == []

    def test_delete_with_missing_bytes(self, user, mock_s3, make_file):
        """Test a missing blob does not stop the delete."""
        StorageQuota.objects.create(user=user, quota_bytes=100, used_bytes=10)
        file_instance = make_file(size_bytes=10)

        delete_file(user, file_instance.id)

        assert not File.objects.filter(id=file_instance.id).exists()
        assert _used_bytes(user) == 0

    def test_delete_refreshes_folder_count(self, user, mock_s3, make_file):
        """Test the containing folder's item count drops."""
        folder = create_folder(user, 'Docs')
        file_instance = make_file(folder=folder)

        delete_file(user, file_instance.id)

        folder.refresh_from_db()
        assert folder.item_count == 0

    def test_concurrent_delete_releases_once(self, user, mock_s3, monkeypatch):
        """Test a file deleted meanwhile is not released a second time."""
        first, _ = upload_files(
            user,
            [
                ContentFile(b'x' * 50, name='a.bin'),
                ContentFile(b'y' * 50, name='b.bin'),
            ],
        )
        discard = FileStorage.discard

        def discard_after_other_delete(storage, name):
            File.objects.filter(id=first.id).delete()
            release_storage(user, first.size_bytes)
            return discard(storage, name)

        monkeypatch.setattr(
            FileStorage,
            'discard',
            discard_after_other_delete,
        )

        with pytest.raises(File.DoesNotExist):
            delete_file(user, first.id)

        assert _used_bytes(user) == 50

    def test_delete_twice(self, user, mock_s3, make_file):
        """Test a second delete of the same file is NotFound."""
        StorageQuota.objects.create(user=user, quota_bytes=100, used_bytes=20)
        file_instance = make_file(size_bytes=10)
        delete_file(user, file_instance.id)

        with pytest.raises(File.DoesNotExist):
            delete_file(user, file_instance.id)

        assert _used_bytes(user) == 10

    def test_delete_not_owned(self, user, other_user, make_file):
        """Test another owner's file looks absent."""
        foreign = make_file(user=other_user)

        with pytest.raises(File.DoesNotExist):
            delete_file(user, foreign.id)

        assert File.objects.filter(id=foreign.id).exists()


@pytest.mark.django_db
class TestDuplicateFile:
    """Tests for duplicate_file."""

    def test_duplicate_copies_bytes_and_metadata(self, user, mock_s3):
        """Test the copy gets fresh bytes, a copy name and the same tags."""
        folder = create_folder(user, 'Docs')
        original = upload_files(
            user,
            [ContentFile(b'payload', name='report.pdf')],
            folder.id,
            tags=['work'],
            description='q1',
        )[0]

        duplicate = duplicate_file(user, original.id)

        assert duplicate.original_name == 'report (Copy).pdf'
        assert duplicate.file.name != original.file.name
        assert duplicate.folder == folder
        assert duplicate.description == 'q1'
        assert [tag.name for tag in duplicate.tags.all()] == ['work']
        assert duplicate.checksum_sha256 == original.checksum_sha256
        assert len(_bucket_keys(mock_s3)) == 2
        assert _used_bytes(user) == 2 * len(b'payload')
        folder.refresh_from_db()
        assert folder.item_count == 2

    def test_duplicate_long_name_is_trimmed(self, user, mock_s3):
        """Test the copy name of a maximum-length name stays within limits."""
        original = upload_files(
            user,
            [ContentFile(b'payload', name=f'{"n" * 251}.txt')],
        )[0]

        duplicate = duplicate_file(user, original.id)

        assert len(duplicate.original_name) == 255
        assert duplicate.original_name.endswith(' (Copy).txt')

    def test_duplicate_over_quota(self, user, mock_s3):
        """Test a copy that does not fit is rejected without side effects."""
        StorageQuota.objects.create(user=user, quota_bytes=15)
        original = upload_files(
            user,
            [ContentFile(b'x' * 10, name='a.bin')],
        )[0]

        with pytest.raises(QuotaExceededError):
            duplicate_file(user, original.id)

        assert File.objects.filter(user=user).count() == 1
        assert len(_bucket_keys(mock_s3)) == 1
        assert _used_bytes(user) == 10

    def test_duplicate_copy_failure_releases(self, user, mock_s3, make_file):
        """Test a failed copy releases the reservation."""
        StorageQuota.objects.create(user=user, quota_bytes=100, used_bytes=10)
        file_instance = make_file(size_bytes=10)

        with pytest.raises(ClientError):
            duplicate_file(user, file_instance.id)

        assert _used_bytes(user) == 10
        assert File.objects.filter(user=user).count() == 1
